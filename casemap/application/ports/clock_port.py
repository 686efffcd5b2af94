from __future__ import annotations

from abc import ABC, abstractmethod


class ClockPort(ABC):
    """Port for time-related operations.

    Polling adapters wait through this port so tests can run without
    real delays.
    """

    @abstractmethod
    def sleep(self, seconds: float) -> None:
        """Block for ``seconds``."""
        ...
