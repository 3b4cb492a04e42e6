"""Geographic value types.

These are plain frozen dataclasses rather than pydantic models: they
are created on every viewport evaluation and never cross the wire
without being converted first.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from pyleadmap.exceptions import InvalidBoundsError


@dataclass(frozen=True, slots=True)
class LatLng:
    """A single vertex in degrees."""

    lat: float
    lng: float

    @property
    def is_finite(self) -> bool:
        return math.isfinite(self.lat) and math.isfinite(self.lng)

    def as_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}

    def as_lng_lat(self) -> list[float]:
        """GeoJSON position order."""
        return [self.lng, self.lat]


@dataclass(frozen=True, slots=True)
class Region:
    """Axis-aligned bounding rectangle ``(south, west, north, east)`` in degrees.

    Longitudes are not wrapped: a region expanded across the
    anti-meridian simply carries ``east > 180``.
    """

    south: float
    west: float
    north: float
    east: float

    def __post_init__(self) -> None:
        corners = (self.south, self.west, self.north, self.east)
        if not all(isinstance(c, (int, float)) and math.isfinite(c) for c in corners):
            raise InvalidBoundsError(f"region has non-finite corners: {corners}")
        if self.south > self.north or self.west > self.east:
            raise InvalidBoundsError(f"region corners are inverted: {corners}")

    @classmethod
    def coerce(cls, value: Region | Sequence[float]) -> Region:
        """Build a region from a ``Region`` or a ``(south, west, north, east)`` sequence."""
        if isinstance(value, Region):
            return value
        try:
            south, west, north, east = (float(v) for v in value)
        except (TypeError, ValueError) as exc:
            raise InvalidBoundsError(f"cannot read bounds from {value!r}") from exc
        return cls(south, west, north, east)

    @classmethod
    def from_points(cls, points: Iterable[LatLng]) -> Region:
        lats: list[float] = []
        lngs: list[float] = []
        for point in points:
            lats.append(point.lat)
            lngs.append(point.lng)
        if not lats:
            raise InvalidBoundsError("cannot bound an empty point set")
        return cls(min(lats), min(lngs), max(lats), max(lngs))

    @property
    def lat_span(self) -> float:
        return self.north - self.south

    @property
    def lng_span(self) -> float:
        return self.east - self.west

    @property
    def center(self) -> LatLng:
        return LatLng((self.south + self.north) / 2, (self.west + self.east) / 2)

    def contains_point(self, lat: float, lng: float) -> bool:
        return self.south <= lat <= self.north and self.west <= lng <= self.east

    def contains(self, other: Region) -> bool:
        """True when both corners of *other* lie inside this region."""
        return self.contains_point(other.south, other.west) and self.contains_point(other.north, other.east)

    def as_query(self) -> dict[str, Any]:
        return {
            "min_lat": self.south,
            "min_lon": self.west,
            "max_lat": self.north,
            "max_lon": self.east,
        }
