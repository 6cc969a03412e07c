"""Module that provides a Qt scheduler for callgate.

Use this in a Qt application so that trailing/deferred calls run on the Qt event
loop (in the thread that owns the scheduler) instead of on a timer thread:

```python
from callgate import set_default_scheduler

set_default_scheduler("qt")
```
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ._scheduler import Scheduler

try:
    from qtpy.QtCore import QElapsedTimer, Qt, QTimer
except (ImportError, RuntimeError):  # pragma: no cover
    raise ImportError(
        "The callgate.qt module requires qtpy and some Qt backend to be installed"
    ) from None

if TYPE_CHECKING:
    from collections.abc import Callable

__all__ = ["QtScheduler"]


class _QtTimerHandle:
    """Cancellable wrapper around a `QTimer.singleShot` callback."""

    def __init__(self, callback: Callable[[], object]) -> None:
        self._callback: Callable[[], object] | None = callback

    def cancel(self) -> None:
        self._callback = None

    def _fire(self) -> None:
        if (cb := self._callback) is not None:
            self._callback = None
            cb()


class QtScheduler(Scheduler):
    """Schedule callbacks with `QTimer.singleShot`.

    A QApplication (or QCoreApplication) event loop must be running for the
    callbacks to fire.  Cancelled timers still elapse, but do nothing.

    Parameters
    ----------
    timer_type : Qt.TimerType
        The timer type, by default `Qt.TimerType.PreciseTimer`.
    """

    name = "qt"

    def __init__(
        self, timer_type: Qt.TimerType = Qt.TimerType.PreciseTimer
    ) -> None:
        self._timer_type = timer_type
        self._clock = QElapsedTimer()
        self._clock.start()

    def time(self) -> float:
        return self._clock.nsecsElapsed() / 1e9

    def call_later(
        self, delay: float, callback: Callable[[], object]
    ) -> _QtTimerHandle:
        handle = _QtTimerHandle(callback)
        QTimer.singleShot(max(round(delay * 1000), 0), self._timer_type, handle._fire)
        return handle
