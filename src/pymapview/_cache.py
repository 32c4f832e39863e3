"""In-memory cache of loaded layer feature data."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, ConfigDict

from pymapview.models.geojson import FeatureCollection


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class LayerCacheEntry:
    """Feature data of a single layer, as loaded."""

    layer_id: int
    layer_name: str
    collection: FeatureCollection
    stored_at: datetime

    @property
    def feature_count(self) -> int:
        return len(self.collection)


class CacheInfo(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    entries: int = 0
    total_features: int = 0
    layer_ids: list[int] = []
    oldest_age_seconds: float | None = None


class LayerDataCache:
    """Per-layer feature cache with a fixed time-to-live.

    A ``ttl`` of zero or less disables caching: :meth:`put` stores
    nothing and :meth:`get` always misses.
    """

    def __init__(
        self,
        *,
        ttl: timedelta = timedelta(minutes=30),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[int, LayerCacheEntry] = {}

    @property
    def enabled(self) -> bool:
        return self._ttl > timedelta(0)

    def _is_fresh(self, entry: LayerCacheEntry, now: datetime) -> bool:
        return now - entry.stored_at < self._ttl

    def get(self, layer_id: int) -> FeatureCollection | None:
        """Return cached data for *layer_id*, dropping it if it has expired."""
        entry = self._entries.get(layer_id)
        if entry is None:
            return None
        if not self._is_fresh(entry, self._clock()):
            del self._entries[layer_id]
            return None
        return entry.collection

    def put(self, layer_id: int, layer_name: str, collection: FeatureCollection) -> None:
        if not self.enabled:
            return
        self._entries[layer_id] = LayerCacheEntry(
            layer_id=layer_id,
            layer_name=layer_name,
            collection=collection,
            stored_at=self._clock(),
        )

    def invalidate(self, layer_id: int | None = None) -> None:
        """Forget one layer, or everything when *layer_id* is None."""
        if layer_id is None:
            self._entries.clear()
        else:
            self._entries.pop(layer_id, None)

    def purge_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = self._clock()
        expired = [layer_id for layer_id, entry in self._entries.items() if not self._is_fresh(entry, now)]
        for layer_id in expired:
            del self._entries[layer_id]
        return len(expired)

    def info(self) -> CacheInfo:
        now = self._clock()
        entries = list(self._entries.values())
        oldest = min((entry.stored_at for entry in entries), default=None)
        return CacheInfo(
            entries=len(entries),
            total_features=sum(entry.feature_count for entry in entries),
            layer_ids=[entry.layer_id for entry in entries],
            oldest_age_seconds=(now - oldest).total_seconds() if oldest is not None else None,
        )

    def __contains__(self, layer_id: object) -> bool:
        return layer_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
