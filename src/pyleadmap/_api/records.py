"""Individual record queries and bulk assignment."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from pyleadmap._api._common import parse_count, parse_items
from pyleadmap._constants import ASSIGN_RPC, PROFILES_PATH, RECORDS_PATH
from pyleadmap._normalize import unwrap_list
from pyleadmap._transport import Transport
from pyleadmap.geo import LatLng, Region
from pyleadmap.models.markers import IndividualRecord, Owner
from pyleadmap.models.requests import AssignRecordsRequest, RecordFilter
from pyleadmap.territory.geometry import ring_to_geojson

_logger = logging.getLogger(__name__)


def build_record_params(region: Region, filters: Sequence[RecordFilter] = ()) -> list[tuple[str, Any]]:
    params: list[tuple[str, Any]] = list(region.as_query().items())
    for record_filter in filters:
        params.extend(record_filter.as_params())
    return params


async def fetch_records(
    transport: Transport,
    region: Region,
    filters: Sequence[RecordFilter] = (),
) -> list[IndividualRecord]:
    payload = await transport.request_json("GET", RECORDS_PATH, params=build_record_params(region, filters))
    records = parse_items(IndividualRecord, unwrap_list(payload, "restaurants", "data"), endpoint=RECORDS_PATH)
    _logger.debug("Records in %s filters=%d -> %d", region, len(filters), len(records))
    return records


async def assign_records(transport: Transport, ring: Sequence[LatLng], owner_id: str) -> int:
    """Assign every record inside *ring* to *owner_id*; returns the number updated."""
    request = AssignRecordsRequest(owner_id=owner_id, ring=tuple(ring))
    payload = await transport.request_json(
        "POST",
        ASSIGN_RPC,
        body={"p_polygon": ring_to_geojson(request.ring), "p_user_id": request.owner_id},
    )
    return parse_count(payload, endpoint=ASSIGN_RPC)


async def list_owners(transport: Transport) -> list[Owner]:
    payload = await transport.request_json(
        "GET",
        PROFILES_PATH,
        params={"select": "user_id,first_name,last_name", "order": "first_name.asc"},
    )
    return parse_items(Owner, unwrap_list(payload, "data"), endpoint=PROFILES_PATH)
