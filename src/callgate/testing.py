"""Utilities for testing code that uses throttled or debounced callables."""

from __future__ import annotations

import heapq
import itertools
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ._scheduler import Scheduler

if TYPE_CHECKING:
    from collections.abc import Callable

__all__ = ["FakeScheduler"]

# float slack when comparing due times, so 0.5 + 0.5 ms windows land on time
_EPS = 1e-9


@dataclass(order=True)
class _FakeTimer:
    when: float
    seq: int
    callback: Callable[[], object] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)
    owner: FakeScheduler | None = field(default=None, compare=False, repr=False)

    def cancel(self) -> None:
        if not self.cancelled and self.owner is not None:
            self.owner._live -= 1
        self.cancelled = True


class FakeScheduler(Scheduler):
    """A scheduler driven by a virtual clock.

    Time only moves when you call [`advance()`][callgate.testing.FakeScheduler.advance]
    (or [`run_all()`][callgate.testing.FakeScheduler.run_all]), and due callbacks
    run synchronously, in order, inside that call.  Exceptions raised by a callback
    propagate out of `advance()`.

    Parameters
    ----------
    start : float
        The initial clock value, in seconds, by default 0.

    Examples
    --------
    ```python
    from unittest.mock import Mock

    from callgate import throttle
    from callgate.testing import FakeScheduler

    clock = FakeScheduler()
    mock = Mock()
    f = throttle(mock, 1000, scheduler=clock)
    f()
    f()
    assert mock.call_count == 1
    clock.advance(1000)
    assert mock.call_count == 2
    ```
    """

    name = "fake"

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._timers: list[_FakeTimer] = []
        self._live = 0
        self._seq = itertools.count()

    def time(self) -> float:
        return self._now

    @property
    def now_ms(self) -> float:
        """The current virtual time in milliseconds."""
        return self._now * 1000

    @property
    def pending_count(self) -> int:
        """Number of scheduled callbacks that have not run or been cancelled."""
        return self._live

    def call_later(self, delay: float, callback: Callable[[], object]) -> _FakeTimer:
        # drop cancelled timers at the head, so restarted timers don't pile up
        while self._timers and self._timers[0].cancelled:
            heapq.heappop(self._timers)
        timer = _FakeTimer(self._now + max(delay, 0), next(self._seq), callback)
        timer.owner = self
        heapq.heappush(self._timers, timer)
        self._live += 1
        return timer

    def advance(self, msec: float) -> None:
        """Move the clock forward by `msec`, running every callback that comes due."""
        if msec < 0:
            raise ValueError("Cannot move the clock backwards")
        target = self._now + msec / 1000
        while self._timers and self._timers[0].when <= target + _EPS:
            timer = heapq.heappop(self._timers)
            if timer.cancelled:
                continue
            timer.owner = None
            self._live -= 1
            self._now = max(self._now, timer.when)
            timer.callback()
        self._now = max(self._now, target)

    def run_all(self, max_callbacks: int = 10_000) -> None:
        """Advance until nothing is scheduled."""
        for _ in range(max_callbacks):
            live = [t for t in self._timers if not t.cancelled]
            if not live:
                return
            self.advance(max(min(live).when - self._now, 0) * 1000)
        raise RuntimeError(f"Callbacks still scheduled after {max_callbacks} runs")

    def __repr__(self) -> str:
        return f"<FakeScheduler now_ms={self.now_ms:g} pending={self.pending_count}>"
