from __future__ import annotations

import logging
import os
import threading
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, overload

if TYPE_CHECKING:
    import asyncio
    from collections.abc import Callable
    from typing import Literal, Protocol, TypeAlias

    from callgate.qt import QtScheduler

    SchedulerName: TypeAlias = Literal["asyncio", "thread", "qt"]

    class TimerHandle(Protocol):
        def cancel(self) -> None:
            """Prevent the scheduled callback from running."""
            ...


__all__ = [
    "AsyncioScheduler",
    "Scheduler",
    "ThreadScheduler",
    "clear_default_scheduler",
    "get_default_scheduler",
    "resolve_scheduler",
    "set_default_scheduler",
]

logger = logging.getLogger(__name__)

ENV_VAR = "CALLGATE_SCHEDULER"
_DEFAULT_SCHEDULER: Scheduler | None = None


class Scheduler(ABC):
    """Single-shot delayed-callback facility plus the clock it runs on.

    All times are in seconds. `time()` only needs to be monotonic; it is used for
    interval arithmetic, never as a calendar time.
    """

    name: str = ""

    @abstractmethod
    def time(self) -> float: ...

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], object]) -> TimerHandle:
        """Run `callback` once, `delay` seconds from now. Return a cancellable handle."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"


class AsyncioScheduler(Scheduler):
    """Schedule callbacks on an asyncio event loop.

    Parameters
    ----------
    loop : asyncio.AbstractEventLoop, optional
        The loop to schedule on.  If not provided, the loop running at the time of
        each call is used (and `RuntimeError` is raised if there is none).
    """

    name = "asyncio"

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        import asyncio

        self._asyncio = asyncio
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return self._asyncio.get_running_loop()

    def time(self) -> float:
        return self.loop.time()

    def call_later(
        self, delay: float, callback: Callable[[], object]
    ) -> asyncio.TimerHandle:
        return self.loop.call_later(delay, callback)


class ThreadScheduler(Scheduler):
    """Schedule callbacks with `threading.Timer`.

    Callbacks run on the timer's own (daemon) thread, so the wrapped function must
    be safe to call from there.  Gates hold their lock while calling it, so a
    timer that wakes up during `cancel()` cannot fire afterwards.  Useful for
    scripts that have no event loop.
    """

    name = "thread"

    def time(self) -> float:
        return time.monotonic()

    def call_later(
        self, delay: float, callback: Callable[[], object]
    ) -> threading.Timer:
        timer = threading.Timer(max(delay, 0), callback)
        timer.daemon = True
        timer.start()
        return timer


def _create(name: str) -> Scheduler:
    if name == "asyncio":
        return AsyncioScheduler()
    if name == "thread":
        return ThreadScheduler()
    if name == "qt":
        from callgate.qt import QtScheduler

        return QtScheduler()
    raise ValueError(
        f"Scheduler not supported: {name!r}.  Must be one of: 'asyncio', 'thread', 'qt'"
    )


def get_default_scheduler() -> Scheduler | None:
    """Get the configured default scheduler. Returns None if none is set."""
    return _DEFAULT_SCHEDULER


def clear_default_scheduler() -> None:
    """Clear the configured default scheduler. Primarily for testing purposes."""
    global _DEFAULT_SCHEDULER
    _DEFAULT_SCHEDULER = None


@overload
def set_default_scheduler(scheduler: Literal["asyncio"]) -> AsyncioScheduler: ...
@overload
def set_default_scheduler(scheduler: Literal["thread"]) -> ThreadScheduler: ...
@overload
def set_default_scheduler(scheduler: Literal["qt"]) -> QtScheduler: ...
@overload
def set_default_scheduler(scheduler: Scheduler) -> Scheduler: ...
def set_default_scheduler(scheduler: Scheduler | SchedulerName) -> Scheduler:
    """Set the scheduler used by wrappers that were not given one explicitly.

    May be a `Scheduler` instance or one of: 'asyncio', 'thread', 'qt'.  This should
    be done as early as possible; wrappers resolve their scheduler on first call.
    """
    global _DEFAULT_SCHEDULER

    if isinstance(scheduler, str):
        if _DEFAULT_SCHEDULER is not None:
            if _DEFAULT_SCHEDULER.name == scheduler:
                # allow setting the same scheduler multiple times, for tests
                return _DEFAULT_SCHEDULER
            raise RuntimeError(
                f"Default scheduler already set to: {_DEFAULT_SCHEDULER.name!r}"
            )
        scheduler = _create(scheduler)
    elif not isinstance(scheduler, Scheduler):
        raise TypeError(
            "`scheduler` must be a Scheduler instance or a scheduler name, "
            f"not {type(scheduler).__name__}"
        )
    elif _DEFAULT_SCHEDULER is not None and _DEFAULT_SCHEDULER is not scheduler:
        raise RuntimeError(f"Default scheduler already set to: {_DEFAULT_SCHEDULER!r}")

    logger.debug("default scheduler set to %r", scheduler)
    _DEFAULT_SCHEDULER = scheduler
    return scheduler


def _loop_is_running() -> bool:
    import asyncio

    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


def resolve_scheduler(scheduler: Scheduler | SchedulerName | None = None) -> Scheduler:
    """Return the scheduler a wrapper should use.

    In order of precedence: `scheduler` itself (or the scheduler it names), the
    configured default, the `CALLGATE_SCHEDULER` environment variable, an
    `AsyncioScheduler` if an asyncio loop is running, else a `ThreadScheduler`.
    """
    if isinstance(scheduler, Scheduler):
        return scheduler
    if scheduler is not None:
        return _create(scheduler)
    if _DEFAULT_SCHEDULER is not None:
        return _DEFAULT_SCHEDULER
    if name := os.getenv(ENV_VAR):
        logger.debug("using scheduler %r from $%s", name, ENV_VAR)
        return _create(name.strip().lower())
    if _loop_is_running():
        # not bound to this loop: each call uses whichever loop is running then
        return AsyncioScheduler()
    return ThreadScheduler()
