"""Time-bounded cache for classification results."""

import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Generic, Hashable, Optional, TypeVar

from ledgerflow.domain.entities import Direction

V = TypeVar("V")

DEFAULT_TTL_SECONDS = 3600


@dataclass
class _Entry(Generic[V]):
    value: V
    expires_at: float


class TTLCache(Generic[V]):
    """Map with per-entry expiry.

    The clock is injected so tests can move time forward without sleeping.
    Expired entries are never returned; they are dropped on access.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Optional[Callable[[], float]] = None,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.monotonic
        self._entries: dict[Hashable, _Entry[V]] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: Hashable) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            self.misses += 1
            return None
        self.hits += 1
        return entry.value

    def set(self, key: Hashable, value: V) -> None:
        self._entries[key] = _Entry(value, self._clock() + self.ttl_seconds)

    def invalidate(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def purge_expired(self) -> int:
        """Drop every expired entry. Returns how many were removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if now >= e.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


def classification_key(
    company_id: int, description: str, amount: Decimal, direction: Direction
) -> tuple:
    """Cache key for one classification request."""
    return (
        company_id,
        (description or "").strip().lower(),
        Decimal(amount).quantize(Decimal("0.01")),
        direction.value,
    )
