"""The Qt scheduler should work with a running Qt event loop."""

from typing import TYPE_CHECKING
from unittest.mock import Mock, call

import pytest

from callgate import debounce, throttle

pytest.importorskip("pytestqt")
from callgate.qt import QtScheduler  # noqa: E402

if TYPE_CHECKING:
    from pytestqt.qtbot import QtBot


def test_qt_throttle(qtbot: "QtBot") -> None:
    mock = Mock()
    f = throttle(mock, 20, scheduler=QtScheduler())

    f(1)
    f(2)
    f(3)
    mock.assert_called_once_with(1)
    qtbot.waitUntil(lambda: mock.call_count == 2, timeout=1000)
    assert mock.call_args_list == [call(1), call(3)]


def test_qt_debounce_cancel(qtbot: "QtBot") -> None:
    mock = Mock()
    f = debounce(mock, 10, scheduler="qt")
    f()
    f.cancel()
    qtbot.wait(50)
    mock.assert_not_called()

    f(1)
    qtbot.waitUntil(lambda: mock.call_count == 1, timeout=1000)
    mock.assert_called_once_with(1)


def test_qt_scheduler_clock() -> None:
    sched = QtScheduler()
    t0 = sched.time()
    assert sched.time() >= t0 >= 0
