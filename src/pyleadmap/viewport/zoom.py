"""Zoom → resolution bucket policy.

Pure logic with no I/O. Coarse buckets deliberately span wide zoom
ranges so that the cluster cache keeps hitting while the user zooms
around a region.
"""

from __future__ import annotations

import math
from enum import StrEnum

from pyleadmap._constants import DEFAULT_DISPLAY_THRESHOLD

#: ``(min_zoom, bucket)`` pairs, evaluated top-down; the first bound the
#: zoom reaches wins.
BUCKET_TABLE: tuple[tuple[float, int], ...] = (
    (12.0, 10),
    (11.0, 9),
    (10.0, 8),
    (8.0, 6),
    (3.0, 5),
)


class DisplayMode(StrEnum):
    CLUSTERED = "clustered"
    INDIVIDUAL = "individual"


def bucket_for(zoom: float) -> int:
    """Map a continuous zoom level to a resolution bucket.

    Zoom levels below the lowest table bound map to themselves,
    rounded half up.
    """
    for min_zoom, bucket in BUCKET_TABLE:
        if zoom >= min_zoom:
            return bucket
    return math.floor(zoom + 0.5)


def display_mode_for(zoom: float, threshold: float = DEFAULT_DISPLAY_THRESHOLD) -> DisplayMode:
    if zoom >= threshold:
        return DisplayMode.INDIVIDUAL
    return DisplayMode.CLUSTERED
