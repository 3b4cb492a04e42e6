"""Territory persistence endpoints."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from pyleadmap._api._common import parse_count, parse_items, parse_one
from pyleadmap._constants import SAVE_TERRITORY_PATH, TERRITORIES_PATH, TERRITORY_STATS_PATH
from pyleadmap._normalize import unwrap_list
from pyleadmap._transport import Transport
from pyleadmap.exceptions import LeadMapApiError
from pyleadmap.geo import LatLng
from pyleadmap.models.requests import SaveTerritoryRequest
from pyleadmap.models.territory import Territory

_logger = logging.getLogger(__name__)


async def list_territories(transport: Transport) -> list[Territory]:
    payload = await transport.request_json("GET", TERRITORIES_PATH)
    return parse_items(Territory, unwrap_list(payload, "territories", "data"), endpoint=TERRITORIES_PATH)


async def save_territory(
    transport: Transport,
    *,
    name: str,
    color: str,
    ring: Sequence[LatLng],
) -> Territory:
    """Persist a territory and return the stored record with its assigned id.

    The server answers either with the record itself or with
    ``{"data": [record]}``.
    """
    request = SaveTerritoryRequest(name=name, color=color, ring=tuple(ring))
    payload = await transport.request_json("POST", SAVE_TERRITORY_PATH, body=request.as_body())

    stored = unwrap_list(payload, "data")
    if stored:
        record = stored[0]
    elif isinstance(payload, dict) and "id" in payload:
        record = payload
    else:
        raise LeadMapApiError(
            f"{SAVE_TERRITORY_PATH} did not return the stored territory",
            endpoint=SAVE_TERRITORY_PATH,
        )
    if isinstance(record, dict):
        # Fill in what the server may echo back without geometry.
        record = {"name": request.name, "color": request.color, **record}
        if not any(k in record for k in ("ring", "coordinates", "geom")):
            record["ring"] = request.ring
    territory = parse_one(Territory, record, endpoint=SAVE_TERRITORY_PATH)
    _logger.debug("Saved territory id=%s name=%s", territory.id, territory.name)
    return territory


async def delete_territory(transport: Transport, territory_id: str) -> None:
    await transport.request_json("DELETE", TERRITORIES_PATH, params={"id": territory_id})


async def count_records(transport: Transport, ring: Sequence[LatLng]) -> int:
    payload = await transport.request_json(
        "POST",
        TERRITORY_STATS_PATH,
        body={"coordinates": [vertex.as_dict() for vertex in ring]},
    )
    return parse_count(payload, endpoint=TERRITORY_STATS_PATH, keys=("total",))
