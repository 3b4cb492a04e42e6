"""Session caches for cluster results and fetched record coverage.

Neither cache evicts; both live as long as the controller that owns
them.
"""

from __future__ import annotations

from collections.abc import Hashable, Sequence
from dataclasses import dataclass
from typing import Any, Final

from pyleadmap._constants import CACHE_KEY_PRECISION, DEFAULT_GLOBAL_BUCKET
from pyleadmap.geo import Region
from pyleadmap.models.markers import ClusterPoint

#: Key shared by every lookup for the global bucket; its aggregate does
#: not depend on where the user has panned.
GLOBAL_KEY: Final = ("global",)


def _round_corner(value: float, precision: int) -> float:
    # ``+ 0.0`` folds -0.0 into 0.0 so both round to the same key.
    return round(value, precision) + 0.0


@dataclass(frozen=True)
class CacheEntry:
    """A stored fetch result."""

    key: Hashable
    payload: tuple[Any, ...]
    inserted_at_ticket: int


class ClusterCache:
    """Memoize cluster results by bucket and (rounded) expanded region."""

    def __init__(
        self,
        *,
        global_bucket: int = DEFAULT_GLOBAL_BUCKET,
        precision: int = CACHE_KEY_PRECISION,
    ) -> None:
        self._global_bucket = global_bucket
        self._precision = precision
        self._entries: dict[Hashable, CacheEntry] = {}

    def is_global(self, bucket: int) -> bool:
        return bucket == self._global_bucket

    def key_for(self, bucket: int, region: Region) -> Hashable:
        if self.is_global(bucket):
            return GLOBAL_KEY
        p = self._precision
        return (
            bucket,
            _round_corner(region.south, p),
            _round_corner(region.west, p),
            _round_corner(region.north, p),
            _round_corner(region.east, p),
        )

    def get(self, bucket: int, region: Region) -> tuple[ClusterPoint, ...] | None:
        entry = self._entries.get(self.key_for(bucket, region))
        if entry is None:
            return None
        return entry.payload

    def put(self, bucket: int, region: Region, points: Sequence[ClusterPoint], ticket: int) -> CacheEntry:
        """Store *points*; an existing entry for the key is kept as is."""
        key = self.key_for(bucket, region)
        entry = self._entries.get(key)
        if entry is None:
            entry = CacheEntry(key=key, payload=tuple(points), inserted_at_ticket=ticket)
            self._entries[key] = entry
        return entry

    def entry(self, bucket: int, region: Region) -> CacheEntry | None:
        return self._entries.get(self.key_for(bucket, region))

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class CoverageCache:
    """Union of regions whose records have already been fetched.

    Answers "is what I need now a subset of something already
    loaded", so panning inside a loaded neighbourhood costs nothing.
    """

    def __init__(self) -> None:
        self._regions: list[Region] = []

    def is_covered(self, region: Region) -> bool:
        return any(covered.contains(region) for covered in self._regions)

    def record(self, region: Region) -> None:
        self._regions.append(region)

    def reset(self) -> None:
        self._regions.clear()

    @property
    def regions(self) -> tuple[Region, ...]:
        return tuple(self._regions)

    def __len__(self) -> int:
        return len(self._regions)
