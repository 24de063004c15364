from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Protocol


class Clock(Protocol):
    def now_ms(self) -> int: ...


@dataclass(frozen=True, slots=True)
class RealClock(Clock):
    def now_ms(self) -> int:
        return int(time.monotonic() * 1000)


class FakeClock(Clock):
    """
    Deterministic clock for tests.

    - now_ms() is monotonic and only moves through advance().
    """

    def __init__(self, start_ms: int = 0) -> None:
        self._now_ms = start_ms

    def now_ms(self) -> int:
        return self._now_ms

    def advance(self, ms: int) -> None:
        if ms < 0:
            raise ValueError("FakeClock.advance(ms): ms must be >= 0")
        self._now_ms += ms
