"""
Receiver clocks for arrival stamping

Arrival times must come from a monotonic source. Wall-clock time can step
(NTP slew, manual adjustment) and would show up as a fake offset jump.
"""

import time
import threading
from typing import Protocol


class ReceiverClock(Protocol):
    """Anything with a monotonic now_ns()"""

    def now_ns(self) -> int:
        ...


class MonotonicClock:
    """Host monotonic clock (time.monotonic_ns)"""

    def now_ns(self) -> int:
        return time.monotonic_ns()


class ManualClock:
    """
    Externally driven clock for replay and tests.

    Refuses to go backwards, same as a real monotonic source.
    """

    def __init__(self, start_ns: int = 0):
        self._now_ns = int(start_ns)
        self._lock = threading.Lock()

    def now_ns(self) -> int:
        with self._lock:
            return self._now_ns

    def set(self, now_ns: int) -> None:
        with self._lock:
            if now_ns < self._now_ns:
                raise ValueError(f"ManualClock cannot go backwards ({now_ns} < {self._now_ns})")
            self._now_ns = int(now_ns)

    def advance(self, delta_ns: int) -> int:
        if delta_ns < 0:
            raise ValueError(f"ManualClock cannot go backwards (delta {delta_ns})")
        with self._lock:
            self._now_ns += int(delta_ns)
            return self._now_ns
