import time

from .errors import ConfigurationError

MIN_HZ = 1
MAX_HZ = 20


def sleep_until_next_tick(period: float, last_tick: float, clock=time.monotonic, sleep=time.sleep) -> float:
    """Block for what is left of ``period`` since ``last_tick``.

    Returns the timestamp taken right after waking.
    """
    remaining = period - (clock() - last_tick)
    if remaining > 0:
        sleep(remaining)
    return clock()


class RateLimiter:
    """Fixed command period shared by every velocity command of a session."""

    def __init__(self, hz: int, clock=time.monotonic, sleep=time.sleep):
        self._clock = clock
        self._sleep = sleep
        self.set_rate(hz)
        self.last_tick = clock()

    def set_rate(self, hz: int):
        if not MIN_HZ <= hz <= MAX_HZ:
            raise ConfigurationError(f"the update rate must be between {MIN_HZ} and {MAX_HZ} Hz, got {hz}")
        self.hz = hz
        self.period = 1.0 / hz

    def tick(self) -> float:
        self.last_tick = sleep_until_next_tick(self.period, self.last_tick, self._clock, self._sleep)
        return self.last_tick
