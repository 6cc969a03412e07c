"""Callgate rate-limits calls to a function with throttle and debounce wrappers.

Both wrappers own at most one delayed call at a time, expose `cancel()` and
`flush()`, and run their delayed calls on a pluggable scheduler (asyncio, a timer
thread, Qt, or a fake clock for tests).
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("callgate")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

__all__ = [
    "AsyncioScheduler",
    "Debouncer",
    "Scheduler",
    "ThreadScheduler",
    "Throttler",
    "__version__",
    "clear_default_scheduler",
    "debounce",
    "get_default_scheduler",
    "set_default_scheduler",
    "throttle",
]

from ._scheduler import (
    AsyncioScheduler,
    Scheduler,
    ThreadScheduler,
    clear_default_scheduler,
    get_default_scheduler,
    set_default_scheduler,
)
from ._throttler import Debouncer, Throttler, debounce, throttle
