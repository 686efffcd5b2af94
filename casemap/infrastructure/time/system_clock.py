"""System clock adapter providing real waiting.

This is the production implementation of ClockPort.
For tests, inject FakeClock or similar test doubles.
"""

from __future__ import annotations

import time

from ...application.ports.clock_port import ClockPort


class SystemClock(ClockPort):
    """Production clock adapter. Tests should use fakes, not this."""

    def sleep(self, seconds: float) -> None:  # pragma: no cover - trivial
        time.sleep(seconds)
