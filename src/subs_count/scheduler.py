"""Deferred-task schedulers.

`Observable.next` and `Observable.next_safe` never call subscribers directly;
they hand one task per recipient to a scheduler. A scheduler has a single
operation, `schedule(task)`, which runs `task()` later, in FIFO order relative
to other tasks given to the same scheduler.

Two hosts are supported out of the box:

- **Event loop hosts**: `LoopScheduler` queues tasks with `loop.call_soon`
- **Threaded hosts**: `ThreadPoolScheduler` runs tasks on one worker thread

`AutoScheduler` picks between them per call, and `get_default_scheduler`
returns the scheduler selected by `Settings.scheduler`.

Awaitables returned by subscribers outside of a running loop are started on
`BackgroundLoop`, a shared event loop on a daemon thread.
"""

import asyncio
import concurrent.futures
import threading
from collections.abc import Awaitable, Callable
from functools import lru_cache
from typing import Any, Protocol, runtime_checkable

from loguru import logger

from .core import SchedulerError
from .settings import get_settings

Task = Callable[[], None]


@runtime_checkable
class Scheduler(Protocol):
    """Runs tasks later, in the order they were scheduled."""

    def schedule(self, task: Task) -> None: ...


class LoopScheduler:
    """Schedule tasks on an asyncio event loop.

    Tasks run as plain loop callbacks, so an exception raised by a task is
    reported through the loop's exception handler.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Initialize the scheduler.

        Args:
            loop: Loop to schedule on. If None, the loop running at the time
                  of each `schedule` call is used.
        """
        self._loop = loop

    def schedule(self, task: Task) -> None:
        loop = self._loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError as e:
                raise SchedulerError("LoopScheduler requires a running event loop") from e
        loop.call_soon(task)


class ThreadPoolScheduler:
    """Schedule tasks on a single worker thread.

    One worker keeps tasks in FIFO order. Exceptions raised by tasks are
    logged, the worker keeps running.
    """

    def __init__(self) -> None:
        self._executor: concurrent.futures.ThreadPoolExecutor | None = concurrent.futures.ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="subs-count"
        )
        logger.debug("ThreadPoolScheduler initialized")

    def schedule(self, task: Task) -> None:
        if self._executor is None:
            raise SchedulerError("ThreadPoolScheduler has been shut down")
        future = self._executor.submit(task)
        future.add_done_callback(report_failure)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting tasks and release the worker thread.

        Args:
            wait: If True, block until every scheduled task has run
        """
        if self._executor is not None:
            logger.debug("Shutting down ThreadPoolScheduler")
            self._executor.shutdown(wait=wait)
            self._executor = None


class AutoScheduler:
    """Use the running event loop when there is one, a worker thread otherwise."""

    def schedule(self, task: Task) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            get_thread_scheduler().schedule(task)
            return
        loop.call_soon(task)


class BackgroundLoop:
    """Event loop on a daemon thread, for awaitables started outside of any loop.

    Subscribers may return awaitables from code where no event loop is
    running, e.g. `next_sync` in a plain script or `next` on a worker thread.
    They are submitted here so the caller never waits for them.
    """

    def __init__(self) -> None:
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._loop is not None

    def submit(self, awaitable: Awaitable[Any]) -> concurrent.futures.Future:
        """Start an awaitable on the background loop without waiting for it.

        Args:
            awaitable: Awaitable returned by a subscriber

        Returns:
            Future that resolves with the awaitable's outcome
        """
        return asyncio.run_coroutine_threadsafe(resolve(awaitable), self._ensure_loop())

    def stop(self) -> None:
        """Stop the loop and join its thread. Awaitables still pending are dropped."""
        with self._lock:
            loop, thread = self._loop, self._thread
            self._loop = self._thread = None
        if loop is None or thread is None:
            return
        logger.debug("Stopping background event loop")
        loop.call_soon_threadsafe(loop.stop)
        thread.join()
        loop.close()

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._loop is None:
                loop = asyncio.new_event_loop()
                thread = threading.Thread(target=loop.run_forever, name="subs-count-loop", daemon=True)
                thread.start()
                self._loop, self._thread = loop, thread
                logger.debug("Background event loop started")
            return self._loop


async def resolve(awaitable: Awaitable[Any]) -> Any:
    return await awaitable


def report_failure(future: concurrent.futures.Future) -> None:
    """Log the failure of a future nobody else observes."""
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.opt(exception=error).error(f"Deferred task failed: {error!r}")


@lru_cache
def get_background_loop() -> BackgroundLoop:
    """Get the shared background event loop.

    The loop thread is only started by the first submitted awaitable.

    Returns:
        The BackgroundLoop instance shared by the process
    """
    return BackgroundLoop()


@lru_cache
def get_thread_scheduler() -> ThreadPoolScheduler:
    """Get the shared thread-pool scheduler.

    Returns:
        The ThreadPoolScheduler instance shared by the process
    """
    return ThreadPoolScheduler()


@lru_cache
def get_default_scheduler() -> Scheduler:
    """Get the scheduler used by observables created without one.

    The choice is read once from ``Settings.scheduler``.

    Returns:
        The default Scheduler instance
    """
    kind = get_settings().scheduler
    logger.debug(f"Default scheduler: {kind}")
    if kind == "loop":
        return LoopScheduler()
    if kind == "thread":
        return get_thread_scheduler()
    return AutoScheduler()
