"""Owned marker collections and the snapshot published to the map."""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from pyleadmap.models.markers import ClusterPoint, IndividualRecord
from pyleadmap.viewport.zoom import DisplayMode

T = TypeVar("T")


class MarkerCollection(Generic[T]):
    """Markers indexed by identity.

    All mutation goes through :meth:`replace_all`, :meth:`merge_add`
    and :meth:`clear`. Insertion order is preserved; merging an item
    whose identity is already present replaces it in place.
    """

    def __init__(self, identity: Callable[[T], Hashable]) -> None:
        self._identity = identity
        self._items: dict[Hashable, T] = {}

    def replace_all(self, items: Iterable[T]) -> None:
        self._items = {self._identity(item): item for item in items}

    def merge_add(self, items: Iterable[T]) -> int:
        """Add *items*, returning how many identities were new."""
        added = 0
        for item in items:
            key = self._identity(item)
            if key not in self._items:
                added += 1
            self._items[key] = item
        return added

    def clear(self) -> None:
        self._items.clear()

    def values(self) -> tuple[T, ...]:
        return tuple(self._items.values())

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)


def cluster_identity(point: ClusterPoint) -> Hashable:
    return (point.latitude, point.longitude)


def record_identity(record: IndividualRecord) -> Hashable:
    return record.id


@dataclass(frozen=True)
class MarkerSnapshot:
    """What the map should currently show."""

    mode: DisplayMode | None
    bucket: int | None = None
    clusters: tuple[ClusterPoint, ...] = field(default_factory=tuple)
    records: tuple[IndividualRecord, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.clusters and not self.records
