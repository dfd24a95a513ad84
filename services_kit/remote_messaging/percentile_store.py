"""Per-message rollout percentiles."""

from __future__ import annotations

import random
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable


class PercentileStore(ABC):
    """Assigns each message id a stable random percentile in ``[0, 1)``.

    The first call for an id draws the value; every later call returns
    the same value.
    """

    @abstractmethod
    def percentile(self, message_id: str) -> float:
        pass


class InMemoryPercentileStore(PercentileStore):
    """Process-local percentiles, safe to share between threads.

    Args:
        percentiles: Previously assigned values to start from
        random_source: Draws a float in ``[0, 1)``
    """

    def __init__(
        self,
        percentiles: dict[str, float] | None = None,
        random_source: Callable[[], float] = random.random,
    ) -> None:
        self._percentiles: dict[str, float] = dict(percentiles or {})
        self._random_source = random_source
        self._lock = threading.Lock()

    def percentile(self, message_id: str) -> float:
        with self._lock:
            value = self._percentiles.get(message_id)
            if value is None:
                value = self._random_source()
                self._percentiles[message_id] = value
            return value

    def snapshot(self) -> dict[str, float]:
        """Copy of the assigned percentiles, e.g. to persist them."""
        with self._lock:
            return dict(self._percentiles)

    def __repr__(self) -> str:
        return f"InMemoryPercentileStore(assigned={len(self._percentiles)})"
