"""In-process publish/subscribe with subscriber counting.

This package provides a broadcast channel that lets multiple listeners
subscribe and receive data pushed by a producer:

- **Observable**: Subscriber registry with synchronous, deferred and
  error-isolated delivery, and an optional recipient limit
- **Subscription**: Handle to unsubscribe safely, any number of times
- **CountedObservable**: Observable that reports subscriber-count changes
  on its nested `on_count` observable

## Quick Start

```python
from subs_count import CountedObservable

obs = CountedObservable[int](sync=True)
obs.on_count.subscribe(lambda c: print(f"subscribers: {c.new_count}"))

sub = obs.subscribe(lambda value: print(f"value: {value}"))
obs.next_sync(123)
sub.unsubscribe()
```

Deferred delivery (`next`, `next_safe`) goes through a scheduler: the running
asyncio loop when there is one, a worker thread otherwise. See `scheduler.py`.

The package logs through loguru and is silent by default; call
`subs_count.logging.setup_logging()` to see its output.
"""

from loguru import logger

from .core import ObservableError, SchedulerError, Subscription
from .counted import CountedObservable
from .models import CountedOptions, ObservableOptions, SubCounts
from .observable import Observable
from .scheduler import (
    AutoScheduler,
    BackgroundLoop,
    LoopScheduler,
    Scheduler,
    ThreadPoolScheduler,
    get_background_loop,
    get_default_scheduler,
    get_thread_scheduler,
)
from .settings import Settings, get_settings

logger.disable(__name__)

__all__ = [
    "AutoScheduler",
    "BackgroundLoop",
    "CountedObservable",
    "CountedOptions",
    "LoopScheduler",
    "Observable",
    "ObservableError",
    "ObservableOptions",
    "Scheduler",
    "SchedulerError",
    "Settings",
    "SubCounts",
    "Subscription",
    "ThreadPoolScheduler",
    "get_background_loop",
    "get_default_scheduler",
    "get_settings",
    "get_thread_scheduler",
]
