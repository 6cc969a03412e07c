from __future__ import annotations

import logging
import threading
from functools import partial
from typing import TYPE_CHECKING, Any, Callable, Generic, TypeVar, overload

from typing_extensions import ParamSpec

from ._scheduler import Scheduler, resolve_scheduler

if TYPE_CHECKING:
    import inspect

    from typing_extensions import Self

    from ._scheduler import SchedulerName, TimerHandle

__all__ = ["Debouncer", "Throttler", "debounce", "throttle"]

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


class _GateBase(Generic[P, R]):
    """State shared by throttlers and debouncers.

    One instance owns at most one outstanding timer handle, the latest pending
    `(args, kwargs)` record and the result of the most recent actual call.
    """

    def __init__(
        self,
        func: Callable[P, R],
        wait: float = 100,
        scheduler: Scheduler | SchedulerName | None = None,
    ) -> None:
        self.__wrapped__: Callable[P, R] = func
        self._wait = wait
        self._interval: float = wait / 1000
        self._scheduler_arg = scheduler
        self._scheduler: Scheduler | None = (
            scheduler if isinstance(scheduler, Scheduler) else None
        )
        self._handle: TimerHandle | None = None
        # identifies the live timer; callbacks of replaced timers see a stale token
        self._token: object | None = None
        self._lock = threading.RLock()
        self._pending: tuple[tuple[Any, ...], dict[str, Any]] | None = None
        self._result: R | None = None
        self._attr_name = ""

        # mimics functools.wraps without copying __dict__, which holds our state
        self.__module__: str = getattr(func, "__module__", "")
        self.__name__: str = getattr(func, "__name__", "")
        self.__qualname__: str = getattr(func, "__qualname__", "")
        self.__doc__: str | None = getattr(func, "__doc__", None)
        self.__annotations__: dict[str, Any] = getattr(func, "__annotations__", {})

    @property
    def wait(self) -> float:
        """The window length in milliseconds."""
        return self._wait

    @property
    def scheduler(self) -> Scheduler:
        """The scheduler used for delayed calls, resolved on first use."""
        if self._scheduler is None:
            self._scheduler = resolve_scheduler(self._scheduler_arg)
            logger.debug("%r resolved scheduler %r", self, self._scheduler)
        return self._scheduler

    @property
    def pending(self) -> bool:
        """Whether a delayed call is scheduled and has arguments waiting."""
        return self._handle is not None and self._pending is not None

    def _start_timer(self, delay: float) -> None:
        self._stop_timer()
        self._token = token = object()
        self._handle = self.scheduler.call_later(delay, partial(self._timeout, token))

    def _stop_timer(self) -> bool:
        self._token = None
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        return True

    def _invoke(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> R:
        self._result = self.__wrapped__(*args, **kwargs)
        return self._result

    def _timeout(self, token: object) -> None:
        with self._lock:
            # a timer thread may wake up after its timer was cancelled or replaced
            if token is not self._token:
                return
            self._token = None
            self._on_timeout()

    def _on_timeout(self) -> None:
        raise NotImplementedError("Subclasses must implement this method.")

    def _call(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> R | None:
        raise NotImplementedError("Subclasses must implement this method.")

    def _flush(self) -> R | None:
        raise NotImplementedError("Subclasses must implement this method.")

    def _cancel(self) -> None:
        if self._stop_timer():
            logger.debug("cancelled pending call to %r", self.__wrapped__)
        self._pending = None

    def _options(self) -> dict[str, Any]:
        return {"wait": self._wait, "scheduler": self._scheduler_arg}

    def cancel(self) -> None:
        """Cancel any pending calls. No scheduled call runs after this returns."""
        with self._lock:
            self._cancel()

    def flush(self) -> R | None:
        """Force a call if there is one pending."""
        with self._lock:
            return self._flush()

    def __call__(self, *args: P.args, **kwargs: P.kwargs) -> R | None:
        """Call underlying function, or schedule it for later."""
        with self._lock:
            return self._call(args, kwargs)

    def __set_name__(self, owner: type, name: str) -> None:
        self._attr_name = name

    def __get__(self, instance: object | None, owner: type | None = None) -> Self:
        """Give each instance its own gate around the bound method."""
        if instance is None:
            return self
        name = self._attr_name or self.__name__
        try:
            namespace = vars(instance)
        except TypeError:
            raise TypeError(
                f"Cannot bind {type(self).__name__} to {type(instance).__name__!r} "
                "instances, which have no __dict__"
            ) from None
        bound = self.__wrapped__.__get__(instance, owner)  # type: ignore
        gate = type(self)(bound, **self._options())
        namespace[name] = gate
        return gate

    @property
    def __signature__(self) -> inspect.Signature:
        import inspect

        return inspect.signature(self.__wrapped__)

    def __repr__(self) -> str:
        name = getattr(self.__wrapped__, "__qualname__", repr(self.__wrapped__))
        return f"<{type(self).__name__} {name} wait={self._wait}>"


class Throttler(_GateBase[P, R]):
    """Class that prevents calling `func` more than once per `wait` window.

    Parameters
    ----------
    func : Callable[P, R]
        a function to wrap
    wait : float, optional
        the window length in ms, by default 100
    leading : bool, optional
        Whether to invoke `func` on the leading edge of the window, by default True
    trailing : bool, optional
        Whether to invoke `func` (with the latest arguments) on the trailing edge of
        the window, by default True
    scheduler : Scheduler | str, optional
        Scheduler (or scheduler name) used for trailing calls.  If not provided, one
        is resolved on first call, see `resolve_scheduler`.
    """

    def __init__(
        self,
        func: Callable[P, R],
        wait: float = 100,
        leading: bool = True,
        trailing: bool = True,
        scheduler: Scheduler | SchedulerName | None = None,
    ) -> None:
        super().__init__(func, wait, scheduler)
        self._leading = bool(leading)
        self._trailing = bool(trailing)
        self._last_call: float | None = None

    def _options(self) -> dict[str, Any]:
        return {
            **super()._options(),
            "leading": self._leading,
            "trailing": self._trailing,
        }

    def _should_invoke(self, now: float) -> bool:
        return self._last_call is None or now - self._last_call >= self._interval

    def _invoke_pending(self, now: float) -> R:
        args, kwargs = self._pending  # type: ignore[misc]
        self._pending = None
        self._last_call = now
        return self._invoke(args, kwargs)

    def _leading_edge(self, now: float) -> R | None:
        self._last_call = now
        if self._leading:
            return self._invoke_pending(now)
        if self._trailing:
            self._start_timer(self._interval)
        else:
            self._pending = None
        return self._result

    def _on_timeout(self) -> None:
        self._handle = None
        if self._trailing and self._pending is not None:
            self._invoke_pending(self.scheduler.time())
        else:
            self._pending = None

    def _call(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> R | None:
        now = self.scheduler.time()
        invoking = self._should_invoke(now)
        self._pending = (args, kwargs)

        if invoking:
            if self._handle is None:
                return self._leading_edge(now)
            # window expired while a trailing call is still scheduled: restart it.
            # NOTE: with `leading` this also calls `func` right away, so a burst
            # straddling the window boundary can produce two calls back to back.
            if self._trailing:
                self._start_timer(self._interval)
            return self._invoke_pending(now) if self._leading else self._result

        if self._handle is None:
            if self._trailing:
                remaining = self._interval - (now - self._last_call)  # type: ignore
                self._start_timer(remaining)
            else:
                self._pending = None
        return self._result

    def _cancel(self) -> None:
        # the next call starts a fresh window
        super()._cancel()
        self._last_call = None

    def _flush(self) -> R | None:
        # counts as a call: the window restarts now
        if self._handle is None or self._pending is None:
            return self._result
        self._stop_timer()
        return self._invoke_pending(self.scheduler.time())


class Debouncer(_GateBase[P, R]):
    """Class that waits for `wait` ms of quiet before calling `func`.

    Parameters
    ----------
    func : Callable[P, R]
        a function to wrap
    wait : float, optional
        the quiet period in ms that must pass after the last call, by default 100
    immediate : bool, optional
        If True, call `func` on the first call of a burst instead of after the quiet
        period, by default False
    scheduler : Scheduler | str, optional
        Scheduler (or scheduler name) used for delayed calls.  If not provided, one
        is resolved on first call, see `resolve_scheduler`.
    """

    def __init__(
        self,
        func: Callable[P, R],
        wait: float = 100,
        immediate: bool = False,
        scheduler: Scheduler | SchedulerName | None = None,
    ) -> None:
        super().__init__(func, wait, scheduler)
        self._immediate = bool(immediate)

    def _options(self) -> dict[str, Any]:
        return {**super()._options(), "immediate": self._immediate}

    def _on_timeout(self) -> None:
        self._handle = None
        if self._pending is not None:
            args, kwargs = self._pending
            self._pending = None
            self._invoke(args, kwargs)

    def _call(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> R | None:
        # restart the quiet period, calling `func` now if this opens a burst
        call_now = self._immediate and self._handle is None
        self._start_timer(self._interval)
        if call_now:
            return self._invoke(args, kwargs)
        if not self._immediate:
            self._pending = (args, kwargs)
        return self._result

    def _flush(self) -> R | None:
        self._stop_timer()
        if self._pending is None:
            return self._result
        args, kwargs = self._pending
        self._pending = None
        return self._invoke(args, kwargs)


@overload
def throttle(
    func: Callable[P, R],
    wait: float = 100,
    leading: bool = True,
    trailing: bool = True,
    *,
    scheduler: Scheduler | SchedulerName | None = None,
) -> Throttler[P, R]: ...
@overload
def throttle(
    func: None = None,
    wait: float = 100,
    leading: bool = True,
    trailing: bool = True,
    *,
    scheduler: Scheduler | SchedulerName | None = None,
) -> Callable[[Callable[P, R]], Throttler[P, R]]: ...
def throttle(
    func: Callable[P, R] | None = None,
    wait: float = 100,
    leading: bool = True,
    trailing: bool = True,
    *,
    scheduler: Scheduler | SchedulerName | None = None,
) -> Throttler[P, R] | Callable[[Callable[P, R]], Throttler[P, R]]:
    """Create a throttled function that invokes `func` at most once per `wait` ms.

    The throttled function comes with a `cancel` method to cancel a delayed call and
    a `flush` method to invoke it immediately. `leading` and `trailing` say whether
    `func` is invoked on the leading and/or trailing edge of the window; a trailing
    call uses the *last* arguments provided to the throttled function. Calls that do
    not invoke `func` return the result of the last `func` invocation.

    This decorator may be used with or without parameters.

    Parameters
    ----------
    func : Callable
        A function to throttle
    wait : float
        Window length in milliseconds, by default 100
    leading : bool
        Whether to invoke the function on the leading edge of the window,
        by default True
    trailing : bool
        Whether to invoke the function on the trailing edge of the window,
        by default True
    scheduler : Scheduler | str, optional
        Scheduler used for trailing calls, by default resolved on first call.

    Examples
    --------
    ```python
    from callgate import throttle


    @throttle(wait=250)
    def on_scroll(position: int) -> None:
        # do something possibly expensive
        ...


    for pos in range(1000):
        on_scroll(pos)  # runs for 0, then once more with 999 after 250 ms
    ```
    """

    def deco(func: Callable[P, R]) -> Throttler[P, R]:
        return Throttler(func, wait, leading, trailing, scheduler)

    return deco(func) if func is not None else deco


@overload
def debounce(
    func: Callable[P, R],
    wait: float = 100,
    immediate: bool = False,
    *,
    scheduler: Scheduler | SchedulerName | None = None,
) -> Debouncer[P, R]: ...
@overload
def debounce(
    func: None = None,
    wait: float = 100,
    immediate: bool = False,
    *,
    scheduler: Scheduler | SchedulerName | None = None,
) -> Callable[[Callable[P, R]], Debouncer[P, R]]: ...
def debounce(
    func: Callable[P, R] | None = None,
    wait: float = 100,
    immediate: bool = False,
    *,
    scheduler: Scheduler | SchedulerName | None = None,
) -> Debouncer[P, R] | Callable[[Callable[P, R]], Debouncer[P, R]]:
    """Create a debounced function that delays invoking `func`.

    `func` will not be invoked until `wait` ms have elapsed since the last time the
    debounced function was called, and is then invoked with the *last* arguments.
    With `immediate=True`, `func` is instead invoked right away on the first call of
    a burst, and not again until a call arrives after `wait` ms of quiet.

    The debounced function comes with a `cancel` method to cancel a delayed call and
    a `flush` method to invoke it immediately. Calls that do not invoke `func`
    return the result of the last `func` invocation.

    This decorator may be used with or without parameters.

    Parameters
    ----------
    func : Callable
        A function to debounce
    wait : float
        Quiet period in milliseconds, by default 100
    immediate : bool
        Whether to invoke the function on the leading edge of a burst instead of
        the trailing edge, by default False
    scheduler : Scheduler | str, optional
        Scheduler used for delayed calls, by default resolved on first call.

    Examples
    --------
    ```python
    from callgate import debounce


    @debounce(wait=300)
    def save(text: str) -> None: ...


    save("h")
    save("he")
    save("hello")  # only this one is saved, 300 ms from now
    ```
    """

    def deco(func: Callable[P, R]) -> Debouncer[P, R]:
        return Debouncer(func, wait, immediate, scheduler)

    return deco(func) if func is not None else deco
