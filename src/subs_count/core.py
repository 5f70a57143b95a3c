"""Core building blocks shared by the observable classes.

This module contains the small, dependency-free pieces that `Observable`
and `CountedObservable` are assembled from.

## Key Components

- **Subscription**: Handle returned by `subscribe`, used to unsubscribe safely
- **DeliveryKind / Delivery**: Tagged result of invoking one subscriber callback
- **ObservableError**: Base exception for all errors raised by this package
- **SchedulerError**: Raised when a deferred task cannot be scheduled

## Usage Example

```python
from subs_count import Observable

def on_data(value: int) -> None:
    print(f"received {value}")

obs = Observable[int]()
sub = obs.subscribe(on_data)
obs.next_sync(1)

sub.unsubscribe()
sub.unsubscribe()  # safe, does nothing
assert not sub.live
```

"""

import weakref
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class ObservableError(Exception):
    """Base exception for all errors raised by this package.

    Failures of subscriber callbacks are never wrapped into this type; they
    reach the caller (or the `on_error` handler of `next_safe`) unchanged.
    """


class SchedulerError(ObservableError):
    """Raised when a deferred task cannot be scheduled.

    This occurs when:
    - A loop scheduler is used outside of a running event loop
    - A thread-pool scheduler is used after it was shut down
    """


class Subscription:
    """Result of subscribing to an observable, to let unsubscribe safely.

    The subscription only holds the release callback handed out by its
    observable, never the observable itself. It is live until released by
    the holder or cancelled by the owner, and both paths end in the same
    terminal state, so repeated calls are harmless.
    """

    def __init__(self, release: Callable[[], None]) -> None:
        """Initialize a live subscription.

        Args:
            release: Callback that removes the subscriber from its observable
        """
        self._release: Callable[[], None] | None = release

    @property
    def live(self) -> bool:
        """True until the subscription is cancelled by either party."""
        return self._release is not None

    def unsubscribe(self) -> None:
        """Unsubscribe from the observable.

        Does nothing when the subscription is no longer live.
        """
        release, self._release = self._release, None
        if release is not None:
            release()

    def cancel(self) -> None:
        """Cancel on behalf of the owning observable.

        Ends the subscription without calling the release callback, for when
        the observable has already dropped the subscriber itself.
        """
        self._release = None

    def __repr__(self) -> str:
        return f"<Subscription live={self.live}>"


class Subscriber:
    """Registry record: a callback plus the hook that cancels its subscription."""

    __slots__ = ("callback", "_subscription")

    def __init__(self, callback: Callable[[Any], Any]) -> None:
        self.callback = callback
        self._subscription: weakref.ref[Subscription] | None = None

    def bind(self, subscription: Subscription) -> None:
        # weak, so the registry never keeps a dropped handle alive
        self._subscription = weakref.ref(subscription)

    def cancel(self) -> None:
        subscription = self._subscription() if self._subscription is not None else None
        if subscription is not None:
            subscription.cancel()


class DeliveryKind(StrEnum):
    """How a subscriber callback answered a single delivery."""

    VALUE = "value"
    PENDING = "pending"


@dataclass(frozen=True, slots=True)
class Delivery:
    """Tagged result of invoking one subscriber callback.

    `value` holds the plain return value for `DeliveryKind.VALUE`, or the
    awaitable that is still to be resolved for `DeliveryKind.PENDING`.
    """

    kind: DeliveryKind
    value: Any = None
