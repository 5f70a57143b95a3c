"""Observable with subscriber-count notifications."""

from collections.abc import Callable
from typing import Any, TypeVar

from .core import Subscriber, Subscription
from .models import CountedOptions, SubCounts
from .observable import Observable
from .scheduler import Scheduler

T = TypeVar("T")


class CountedObservable(Observable[T]):
    """Extends `Observable` with the `on_count` event to monitor the subscriber count.

    An event is sent on every subscribe and every individual unsubscribe.
    `unsubscribe_all` sends a single event for the whole registry, and none
    when there was nobody subscribed.

    Example:
        ```python
        obs = CountedObservable[str](sync=True)
        obs.on_count.subscribe(lambda c: print(f"{c.prev_count} -> {c.new_count}"))
        sub = obs.subscribe(print)  # 0 -> 1
        sub.unsubscribe()  # 1 -> 0
        ```
    """

    def __init__(self, *, sync: bool = False, max: Any = 0, scheduler: Scheduler | None = None) -> None:
        """Initialize a new CountedObservable.

        Args:
            sync: If True, `on_count` events are delivered synchronously
            max: Maximum number of recipients per broadcast, see `Observable`
            scheduler: Scheduler shared by this observable and `on_count`
        """
        options = CountedOptions(sync=sync, max=max)
        super().__init__(max=options.max, scheduler=scheduler)
        self._sync = options.sync
        self._on_count: Observable[SubCounts] = Observable(scheduler=self._scheduler)
        c = self._on_count
        self._notify: Callable[[SubCounts], int] = c.next_sync if options.sync else c.next

    @property
    def on_count(self) -> Observable[SubCounts]:
        """Event on_count(SubCounts), sent whenever the subscriber count changes."""
        return self._on_count

    @property
    def sync(self) -> bool:
        """True when `on_count` events are delivered synchronously."""
        return self._sync

    def subscribe(self, callback: Callable[[T], Any]) -> Subscription:
        subscription = super().subscribe(callback)
        count = self.count
        self._notify(SubCounts(new_count=count, prev_count=count - 1))
        return subscription

    def unsubscribe_all(self) -> None:
        """Unsubscribe all clients, notifying `on_count` once if there were any."""
        prev_count = self.count
        if prev_count:
            super().unsubscribe_all()
            self._notify(SubCounts(new_count=0, prev_count=prev_count))

    def _remove(self, record: Subscriber) -> bool:
        removed = super()._remove(record)
        if removed:
            count = self.count
            self._notify(SubCounts(new_count=count, prev_count=count + 1))
        return removed
