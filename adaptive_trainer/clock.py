from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Time source abstraction.

    Core logic depends on this interface rather than calling real time directly.
    """

    def now(self) -> float:
        """Return seconds."""


class RealClock:
    """Monotonic clock used to time answers."""

    def now(self) -> float:
        return time.monotonic()


class WallClock:
    """Epoch-seconds clock used to timestamp recorded attempts."""

    def now(self) -> float:
        return time.time()
