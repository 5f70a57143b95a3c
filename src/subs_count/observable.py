"""Observable Implementation.

This module provides the `Observable` class: a subscriber registry plus three
ways of broadcasting data to it.

## Delivery Modes

- **next**: Deferred delivery, one scheduled task per recipient, with an
  optional notification once the last recipient has been called
- **next_sync**: Immediate delivery, in subscription order, in the caller's frame
- **next_safe**: Deferred delivery where each recipient's failure, synchronous
  or asynchronous, is routed to an error callback

Every mode first takes a snapshot of the recipients, limited to the first
`max` subscribers when a limit is set. Subscribing or unsubscribing after a
broadcast call never changes who receives that broadcast.

## Usage

```python
import asyncio

from subs_count import Observable

async def main() -> None:
    obs = Observable[int](max=10)

    async def store(value: int) -> None:
        await asyncio.sleep(0.1)
        print(f"stored {value}")

    obs.subscribe(lambda value: print(f"got {value}"))
    obs.subscribe(store)

    obs.next(1, lambda count: print(f"delivered to {count}"))
    obs.next_safe(2, lambda error: print(f"failed: {error}"))
    await asyncio.sleep(0)

asyncio.run(main())
```

"""

import asyncio
import concurrent.futures
import inspect
import weakref
from collections.abc import Callable
from functools import partial
from typing import Any, Generic, TypeVar

from loguru import logger

from .core import Delivery, DeliveryKind, Subscriber, Subscription
from .models import ObservableOptions
from .scheduler import Scheduler, get_background_loop, get_default_scheduler, report_failure

T = TypeVar("T")

ErrorHandler = Callable[[BaseException], Any]


class Observable(Generic[T]):
    """Subscribe to data events and broadcast them to the subscribers.

    Subscriber callbacks take one argument, the broadcast data, and may return
    an awaitable. Failures of callbacks are only isolated by `next_safe`; with
    `next` and `next_sync` they propagate like any other exception.

    The registry is not locked. On a thread-pool scheduler, subscribers run on
    the worker thread; unsubscribing from there is safe, other registry changes
    belong on the thread that owns the observable.

    Example:
        ```python
        obs = Observable[str]()
        sub = obs.subscribe(print)
        obs.next_sync("hello")
        sub.unsubscribe()
        ```
    """

    def __init__(self, *, max: Any = 0, scheduler: Scheduler | None = None) -> None:
        """Initialize a new Observable.

        Args:
            max: Maximum number of recipients per broadcast. Anything that is
                 not a positive integer means no limit.
            scheduler: Scheduler for deferred delivery. If None, the default
                       scheduler is used.
        """
        options = ObservableOptions(max=max)
        self._max = options.max
        self._subs: list[Subscriber] = []
        self._scheduler = scheduler if scheduler is not None else get_default_scheduler()
        self._pending: set[asyncio.Future] = set()

    @property
    def count(self) -> int:
        """Current number of subscribers, regardless of `max`."""
        return len(self._subs)

    @property
    def max(self) -> int:
        """Maximum number of recipients per broadcast, 0 when unlimited."""
        return self._max

    def subscribe(self, callback: Callable[[T], Any]) -> Subscription:
        """Subscribe for data broadcast by `next`, `next_sync` and `next_safe`.

        The same callback may be subscribed more than once; each call creates
        an independent subscription.

        Args:
            callback: Data notification function

        Returns:
            Subscription to unsubscribe with
        """
        record = Subscriber(callback)
        self._subs.append(record)
        subscription = Subscription(self._create_release(record))
        record.bind(subscription)
        logger.debug(f"Subscribed {callback} ({len(self._subs)} total)")
        return subscription

    def next(self, data: T, on_complete: Callable[[int], Any] | None = None) -> int:
        """Deferred data broadcast, in a separate task for each recipient.

        Args:
            data: Data to be sent
            on_complete: Optional callback invoked after the last recipient
                         has been called. It receives the number of recipients.

        Returns:
            Number of recipients that will be receiving the data
        """
        recipients = self._get_recipients()
        total = len(recipients)
        for index, callback in enumerate(recipients):
            done = on_complete if index == total - 1 else None
            self._scheduler.schedule(partial(self._run, callback, data, done, total))
        logger.trace(f"Scheduled broadcast to {total} recipients")
        return total

    def next_sync(self, data: T) -> int:
        """Synchronous data broadcast.

        Awaitables returned by recipients are started, not awaited.

        Args:
            data: Data to be sent

        Returns:
            Number of recipients that have received the data
        """
        recipients = self._get_recipients()
        for callback in recipients:
            self._settle(self._invoke(callback, data))
        logger.trace(f"Broadcast to {len(recipients)} recipients")
        return len(recipients)

    def next_safe(self, data: T, on_error: ErrorHandler) -> int:
        """Deferred data broadcast with per-recipient error isolation.

        Provided safety features:

        1. Exceptions raised by a recipient are passed into `on_error`
        2. Failures of awaitables returned by a recipient are passed into `on_error`
        3. A failing recipient does not affect delivery to the others

        Unlike `next`, there is no completion notification.

        Args:
            data: Data to be sent
            on_error: Called once with the exception of every failing recipient

        Returns:
            Number of recipients that will be receiving the data
        """
        recipients = self._get_recipients()
        for callback in recipients:
            self._scheduler.schedule(partial(self._run_safe, callback, data, on_error))
        logger.trace(f"Scheduled safe broadcast to {len(recipients)} recipients")
        return len(recipients)

    def unsubscribe_all(self) -> None:
        """Cancel all subscriptions and clear the registry."""
        subs, self._subs = self._subs, []
        for record in subs:
            record.cancel()
        if subs:
            logger.debug(f"Unsubscribed all {len(subs)} subscribers")

    def _get_recipients(self) -> list[Callable[[T], Any]]:
        """Take a snapshot of the callbacks that must receive a broadcast.

        It is a copy of the registry prefix, limited by `max` when it is set.
        """
        end = self._max or len(self._subs)
        return [record.callback for record in self._subs[:end]]

    def _create_release(self, record: Subscriber) -> Callable[[], None]:
        owner = weakref.ref(self)

        def release() -> None:
            observable = owner()
            if observable is not None:
                observable._remove(record)

        return release

    def _remove(self, record: Subscriber) -> bool:
        """Remove a subscriber record, located by identity.

        Returns:
            True if the record was still registered
        """
        try:
            # records have no __eq__, so remove() matches by identity in one step
            self._subs.remove(record)
        except ValueError:
            return False
        logger.debug(f"Unsubscribed {record.callback} ({len(self._subs)} total)")
        return True

    def _run(self, callback: Callable[[T], Any], data: T, on_complete: Callable[[int], Any] | None, total: int) -> None:
        self._settle(self._invoke(callback, data))
        if on_complete is not None:
            on_complete(total)

    def _run_safe(self, callback: Callable[[T], Any], data: T, on_error: ErrorHandler) -> None:
        try:
            delivery = self._invoke(callback, data)
        except Exception as e:
            logger.debug(f"Recipient {callback} failed: {e!r}")
            on_error(e)
            return
        self._settle(delivery, on_error)

    @staticmethod
    def _invoke(callback: Callable[[T], Any], data: T) -> Delivery:
        result = callback(data)
        if inspect.isawaitable(result):
            return Delivery(DeliveryKind.PENDING, result)
        return Delivery(DeliveryKind.VALUE, result)

    def _settle(self, delivery: Delivery, on_error: ErrorHandler | None = None) -> None:
        """Start the awaitable of a pending delivery without waiting for it.

        With a running event loop the awaitable becomes a task on it. Without
        one it is submitted to the shared background loop.

        Args:
            delivery: Result of invoking a recipient
            on_error: If given, receives the failure of the awaitable instead
                      of letting it propagate
        """
        if delivery.kind is DeliveryKind.VALUE:
            return

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            future = get_background_loop().submit(delivery.value)
            # failures of next/next_sync recipients have no loop handler to reach
            future.add_done_callback(report_failure if on_error is None else partial(_route_failure, on_error))
            return

        task = asyncio.ensure_future(delivery.value)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        if on_error is not None:
            task.add_done_callback(partial(_route_failure, on_error))


def _route_failure(on_error: ErrorHandler, task: asyncio.Future | concurrent.futures.Future) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.debug(f"Asynchronous recipient failed: {error!r}")
        on_error(error)
