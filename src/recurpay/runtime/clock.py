"""Time sources for the execution environment.

Timestamps are integer UNIX seconds. Both clocks are monotonically
non-decreasing; billing eligibility is a pure function of ``now()``.
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Anything that can report the current timestamp."""

    def now(self) -> int: ...


class SystemClock:
    """Wall clock, truncated to whole seconds."""

    def __init__(self) -> None:
        self._last = 0

    def now(self) -> int:
        # Wall time can step backwards on NTP adjustments
        self._last = max(self._last, int(time.time()))
        return self._last


class ManualClock:
    """Externally driven clock used by tests and simulations.

    Examples:
        >>> clock = ManualClock(start=1_700_000_000)
        >>> clock.advance(30 * 24 * 60 * 60)
        1702592000
    """

    def __init__(self, start: int | None = None) -> None:
        self._now = int(time.time()) if start is None else int(start)
        if self._now < 0:
            raise ValueError(f"start cannot be negative, got {start}")

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        """Move the clock forward and return the new timestamp."""
        if seconds < 0:
            raise ValueError(f"clock cannot move backwards, got {seconds} seconds")
        self._now += int(seconds)
        return self._now

    def set(self, timestamp: int) -> int:
        """Jump to an absolute timestamp that is not in the past."""
        if timestamp < self._now:
            raise ValueError(
                f"clock cannot move backwards from {self._now} to {timestamp}"
            )
        self._now = int(timestamp)
        return self._now
