"""Single-slot TTL cache cells, one per feed.

A cell is owned by its feed component and holds the most recent successful
payload together with the time it was fetched. Reads past the TTL return
``None`` so the caller refetches; ``last_good`` still exposes the old payload
for the degrade-on-failure path.

No locking: two requests that miss at the same time both go upstream and the
last writer wins. Both payloads are equally fresh, so nothing is corrupted.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable

T = TypeVar("T")


class CacheCell(Generic[T]):
    """Holds ``(data, fetched_at)`` for a single feed."""

    def __init__(
        self,
        ttl_seconds: float,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._data: T | None = None
        self._fetched_at: float | None = None

    @property
    def fetched_at(self) -> float | None:
        return self._fetched_at

    def get(self) -> T | None:
        """Return the cached payload if it is younger than the TTL."""
        if self._fetched_at is None:
            return None
        if self._clock() - self._fetched_at >= self.ttl_seconds:
            return None
        return self._data

    def set(self, data: T) -> None:
        self._data = data
        self._fetched_at = self._clock()

    def last_good(self) -> T | None:
        """Return the most recent payload regardless of age."""
        return self._data
