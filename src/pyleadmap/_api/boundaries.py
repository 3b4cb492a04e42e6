"""Postal-code boundary lookup."""

from __future__ import annotations

import logging

from pyleadmap._constants import ZIP_BOUNDARY_PATH, ZIP_COLUMN
from pyleadmap._normalize import unwrap_list
from pyleadmap._transport import Transport
from pyleadmap.geo import LatLng
from pyleadmap.models.requests import ZipCodeRequest
from pyleadmap.territory.geometry import parse_wkt_polygon

_logger = logging.getLogger(__name__)


async def fetch_zip_wkt(transport: Transport, zip_code: str) -> str | None:
    """Return the WKT boundary for *zip_code*, or ``None`` when the dataset has no row."""
    request = ZipCodeRequest(zip_code=zip_code)
    payload = await transport.request_json(
        "GET",
        ZIP_BOUNDARY_PATH,
        params={ZIP_COLUMN: f"eq.{request.zip_code}", "select": "geometry"},
    )
    rows = unwrap_list(payload, "data")
    if not rows and isinstance(payload, dict):
        rows = [payload]
    for row in rows:
        geometry = row.get("geometry") if isinstance(row, dict) else None
        if isinstance(geometry, str) and geometry.strip():
            return geometry
    _logger.debug("No boundary row for zip %s", request.zip_code)
    return None


async def lookup_zip_boundary(transport: Transport, zip_code: str) -> list[LatLng] | None:
    wkt = await fetch_zip_wkt(transport, zip_code)
    if wkt is None:
        return None
    return parse_wkt_polygon(wkt)
