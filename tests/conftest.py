"""Shared fixtures for subs-count tests."""

import asyncio
import time
from collections import deque
from collections.abc import Awaitable, Callable

import pytest
from loguru import logger


class ManualScheduler:
    """Scheduler that only runs tasks when asked to, for deterministic tests."""

    def __init__(self):
        self.tasks: deque[Callable[[], None]] = deque()

    def schedule(self, task: Callable[[], None]) -> None:
        self.tasks.append(task)

    def run_pending(self) -> int:
        """Run queued tasks in FIFO order, including ones queued while running."""
        ran = 0
        while self.tasks:
            self.tasks.popleft()()
            ran += 1
        return ran


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


async def _drain(iterations: int = 10) -> None:
    """Let the running event loop process pending callbacks and tasks."""
    for _ in range(iterations):
        await asyncio.sleep(0)


@pytest.fixture
def drain() -> Callable[..., Awaitable[None]]:
    return _drain


@pytest.fixture
def log_messages():
    """Capture package log messages emitted by loguru."""
    messages = []
    logger.enable("subs_count")
    handler_id = logger.add(messages.append, level="DEBUG", format="{level}|{message}")
    yield messages
    logger.remove(handler_id)
    logger.disable("subs_count")


def _wait_for(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Poll until predicate() holds, for outcomes produced on other threads."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            return False
        time.sleep(0.01)
    return True


@pytest.fixture
def wait_for() -> Callable[..., bool]:
    return _wait_for
