"""In-memory cache for generation results.

Entries expire after a per-kind TTL and the least recently used entry is
evicted once ``max_items`` is exceeded. The cache is an ordinary object:
construct one per process (or per test) and pass it to whatever needs it.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from logostream.settings import CacheConfig

logger = logging.getLogger(__name__)


class CacheKind(StrEnum):
    """Categories of cached data, each with its own TTL."""

    GENERATION = "generation"
    INTERMEDIATE = "intermediate"
    ASSET = "asset"
    PROGRESS = "progress"


class CacheStats(BaseModel):
    """Snapshot of cache occupancy and hit rate."""

    enabled: bool
    items: int = Field(ge=0)
    items_by_kind: dict[str, int] = Field(default_factory=dict)
    hits: int = Field(default=0, ge=0)
    misses: int = Field(default=0, ge=0)
    hit_ratio: float = Field(default=0.0, ge=0.0, le=1.0)


@dataclass
class _Entry:
    value: Any
    kind: CacheKind
    expires_at: float


def brief_key(brief: BaseModel | dict[str, Any]) -> str:
    """Stable cache key for a logo brief.

    Field order does not matter; two briefs with the same content share
    a key.
    """
    data = brief.model_dump(mode="json") if isinstance(brief, BaseModel) else brief
    encoded = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


class GenerationCache:
    """TTL + LRU cache keyed by strings.

    Args:
        config: Capacity, TTLs and the enabled flag.
        clock: Monotonic time source in seconds (injectable for tests).
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or CacheConfig()
        self._clock = clock
        self._entries: OrderedDict[str, _Entry] = OrderedDict()
        self._hits: dict[CacheKind, int] = {kind: 0 for kind in CacheKind}
        self._misses: dict[CacheKind, int] = {kind: 0 for kind in CacheKind}

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str, kind: CacheKind | str = CacheKind.GENERATION) -> Any | None:
        """Return the cached value, or None on a miss or expired entry."""
        kind = CacheKind(kind)
        if not self._config.enabled:
            return None

        entry = self._entries.get(key)
        if entry is None or entry.kind is not kind:
            self._misses[kind] += 1
            return None
        if entry.expires_at <= self._clock():
            del self._entries[key]
            self._misses[kind] += 1
            logger.debug("Cache entry expired: %s (%s)", key[:12], kind)
            return None

        self._entries.move_to_end(key)
        self._hits[kind] += 1
        return entry.value

    def set(
        self,
        key: str,
        value: Any,
        kind: CacheKind | str = CacheKind.GENERATION,
        ttl: float | None = None,
    ) -> None:
        """Store ``value``; ``ttl`` overrides the kind's configured TTL."""
        kind = CacheKind(kind)
        if not self._config.enabled:
            return

        lifetime = ttl if ttl is not None else getattr(self._config.ttl, kind.value)
        self._entries[key] = _Entry(value=value, kind=kind, expires_at=self._clock() + lifetime)
        self._entries.move_to_end(key)

        while len(self._entries) > self._config.max_items:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Cache full, evicted LRU entry %s", evicted[:12])

    def invalidate(self, key: str) -> bool:
        """Remove one entry; return True if it existed."""
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Remove every entry. Hit and miss counters are kept."""
        self._entries.clear()
        logger.info("Cache cleared")

    def cleanup(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Removed %d expired cache entries", len(expired))
        return len(expired)

    def stats(self) -> CacheStats:
        by_kind = {kind.value: 0 for kind in CacheKind}
        for entry in self._entries.values():
            by_kind[entry.kind.value] += 1
        hits = sum(self._hits.values())
        misses = sum(self._misses.values())
        total = hits + misses
        return CacheStats(
            enabled=self._config.enabled,
            items=len(self._entries),
            items_by_kind=by_kind,
            hits=hits,
            misses=misses,
            hit_ratio=hits / total if total else 0.0,
        )
