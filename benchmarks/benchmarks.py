# type: ignore
from callgate import Debouncer, Throttler, debounce, throttle
from callgate.testing import FakeScheduler


def _noop(x: int) -> int:
    return x


class CreateSuite:
    def setup(self):
        self.clock = FakeScheduler()

    def time_create_throttler(self):
        _ = Throttler(_noop, 100, scheduler=self.clock)

    def time_create_debouncer(self):
        _ = Debouncer(_noop, 100, scheduler=self.clock)


class CallSuite:
    params = [True, False]
    param_names = ["leading"]

    def setup(self, leading):
        self.clock = FakeScheduler()
        self.throttled = throttle(_noop, 100, leading=leading, scheduler=self.clock)
        self.debounced = debounce(_noop, 100, scheduler=self.clock)

    def time_throttle_burst(self, leading):
        for i in range(1000):
            self.throttled(i)

    def time_debounce_burst(self, leading):
        for i in range(1000):
            self.debounced(i)

    def time_throttle_stream(self, leading):
        # one call per ms for a second of virtual time
        for i in range(1000):
            self.throttled(i)
            self.clock.advance(1)
