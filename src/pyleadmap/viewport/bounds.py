"""Prefetch margin helpers."""

from __future__ import annotations

from pyleadmap.geo import Region


def expand(region: Region, factor: float) -> Region:
    """Grow *region* by ``(factor - 1)`` of its span on every side.

    ``factor == 1`` returns an equal region. Longitudes are left
    unclamped, so an expansion past ±180 yields ``west < -180`` or
    ``east > 180`` rather than a wrapped box.
    """
    if factor < 1:
        raise ValueError(f"expansion factor must be >= 1, got {factor}")
    if factor == 1:
        return region
    grow = factor - 1
    lat_margin = region.lat_span * grow
    lng_margin = region.lng_span * grow
    return Region(
        south=region.south - lat_margin,
        west=region.west - lng_margin,
        north=region.north + lat_margin,
        east=region.east + lng_margin,
    )


def contains(outer: Region, inner: Region) -> bool:
    return outer.contains(inner)
