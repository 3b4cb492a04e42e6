"""Polygon ring helpers: coercion, closing, validation and WKT parsing."""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from pyleadmap._constants import MIN_RING_VERTICES
from pyleadmap.exceptions import InvalidGeometryError
from pyleadmap.geo import LatLng, Region

_WKT_POLYGON = re.compile(r"^\s*POLYGON\s*\(\((?P<body>.*)\)\)\s*$", re.IGNORECASE | re.DOTALL)


def to_vertex(value: Any) -> LatLng:
    """Read one vertex from a ``LatLng``, ``{"lat", "lng"}`` mapping or ``(lat, lng)`` pair.

    Non-numeric values become NaN so that :func:`validate_ring` can
    report them; this function itself only fails on shapes it cannot read.
    """
    if isinstance(value, LatLng):
        return value
    if isinstance(value, Mapping):
        lat = value.get("lat", value.get("latitude"))
        lng = value.get("lng", value.get("lon", value.get("longitude")))
    elif isinstance(value, Sequence) and not isinstance(value, str) and len(value) == 2:
        lat, lng = value
    else:
        raise InvalidGeometryError(f"cannot read vertex from {value!r}")
    return LatLng(_as_float(lat), _as_float(lng))


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def to_ring(vertices: Iterable[Any]) -> list[LatLng]:
    return [to_vertex(v) for v in vertices]


def is_closed(ring: Sequence[LatLng]) -> bool:
    return len(ring) > 1 and ring[0] == ring[-1]


def close_ring(vertices: Iterable[Any]) -> tuple[LatLng, ...]:
    """Validate *vertices* and return them as a closed ring.

    The closing vertex is appended when the first and last vertices
    differ, or when the ring is too short to already be closed.

    Raises
    ------
    InvalidGeometryError
        Fewer than three vertices or any non-finite coordinate.
    """
    ring = to_ring(vertices)
    # A ring passed in already closed carries one duplicate vertex.
    distinct = len(ring) - 1 if is_closed(ring) else len(ring)
    if distinct < MIN_RING_VERTICES:
        raise InvalidGeometryError(f"polygon needs at least {MIN_RING_VERTICES} vertices, got {distinct}")
    for index, vertex in enumerate(ring):
        if not vertex.is_finite:
            raise InvalidGeometryError(f"invalid coordinate at vertex {index}: {vertex.lat}, {vertex.lng}")
    if len(ring) < MIN_RING_VERTICES + 1 or not is_closed(ring):
        ring.append(ring[0])
    validate_ring(ring)
    return tuple(ring)


def validate_ring(ring: Sequence[LatLng]) -> None:
    """Raise :class:`InvalidGeometryError` unless *ring* is a closed, finite ring."""
    if len(ring) < MIN_RING_VERTICES + 1:
        raise InvalidGeometryError(f"closed ring needs at least {MIN_RING_VERTICES + 1} vertices, got {len(ring)}")
    if not is_closed(ring):
        raise InvalidGeometryError("ring is not closed")
    if not all(v.is_finite for v in ring):
        raise InvalidGeometryError("ring contains a non-finite coordinate")


def ring_bounds(ring: Sequence[LatLng]) -> Region:
    return Region.from_points(ring)


def ring_to_geojson(ring: Sequence[LatLng]) -> dict[str, Any]:
    return {"type": "Polygon", "coordinates": [[v.as_lng_lat() for v in ring]]}


def ring_from_geojson(geom: Mapping[str, Any]) -> list[LatLng]:
    """Outer ring of a GeoJSON ``Polygon`` (or the first polygon of a ``MultiPolygon``)."""
    kind = geom.get("type")
    coordinates = geom.get("coordinates") or []
    if kind == "Polygon" and coordinates:
        outer = coordinates[0]
    elif kind == "MultiPolygon" and coordinates and coordinates[0]:
        outer = coordinates[0][0]
    else:
        raise InvalidGeometryError(f"unsupported geometry type {kind!r}")
    ring: list[LatLng] = []
    for position in outer:
        if not isinstance(position, Sequence) or len(position) < 2:
            raise InvalidGeometryError(f"bad GeoJSON position {position!r}")
        ring.append(LatLng(_as_float(position[1]), _as_float(position[0])))
    return ring


def parse_wkt_polygon(wkt: str) -> list[LatLng]:
    """Parse ``POLYGON((lng lat, lng lat, ...))`` into ordered vertices.

    Only the outer ring is read; holes are ignored.
    """
    match = _WKT_POLYGON.match(wkt or "")
    if match is None:
        raise InvalidGeometryError("boundary is not a WKT POLYGON")
    outer = match.group("body").split("),", 1)[0].strip().lstrip("(")
    vertices: list[LatLng] = []
    for pair in outer.split(","):
        parts = pair.split()
        if len(parts) < 2:
            raise InvalidGeometryError(f"bad WKT vertex {pair.strip()!r}")
        vertices.append(LatLng(_as_float(parts[1]), _as_float(parts[0])))
    return vertices
