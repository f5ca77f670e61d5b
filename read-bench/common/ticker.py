"""
Progress signals incremented once per unit of benchmark work.
"""

import logging
import threading
from typing import Protocol

from configuration import PROGRESS_INTERVAL

logger = logging.getLogger(__name__)


class Ticker(Protocol):
    """Anything that can count completed units of work."""

    def add(self, n: int) -> None:
        ...


class ProgressTicker:
    """Thread-safe counter that logs progress every ``interval`` ticks."""

    def __init__(self, total: int, label: str = "", interval: int = PROGRESS_INTERVAL):
        self.total = total
        self.label = label
        self.interval = max(1, interval)
        self._count = 0
        self._lock = threading.Lock()

    def add(self, n: int) -> None:
        with self._lock:
            previous = self._count
            self._count += n
            count = self._count

        crossed_interval = count // self.interval > previous // self.interval
        if crossed_interval or count == self.total:
            logger.info(f"{self.label}: {count}/{self.total}")

    @property
    def count(self) -> int:
        with self._lock:
            return self._count

    def __repr__(self) -> str:
        return f"ProgressTicker(label='{self.label}', count={self.count}/{self.total})"


class NilTicker:
    """Ticker that ignores every increment."""

    def add(self, n: int) -> None:
        pass
