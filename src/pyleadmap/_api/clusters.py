"""Cluster aggregate RPC."""

from __future__ import annotations

import logging

from pyleadmap._api._common import parse_items
from pyleadmap._constants import CLUSTERS_RPC
from pyleadmap._normalize import unwrap_list
from pyleadmap._transport import Transport
from pyleadmap.geo import Region
from pyleadmap.models.markers import ClusterPoint

_logger = logging.getLogger(__name__)


def build_cluster_body(bucket: int, region: Region | None) -> dict[str, float | int | None]:
    """RPC arguments; ``region=None`` asks for the bucket's global aggregate."""
    return {
        "p_zoom_level": bucket,
        "p_min_lat": region.south if region is not None else None,
        "p_min_lon": region.west if region is not None else None,
        "p_max_lat": region.north if region is not None else None,
        "p_max_lon": region.east if region is not None else None,
    }


async def fetch_clusters(transport: Transport, bucket: int, region: Region | None) -> list[ClusterPoint]:
    payload = await transport.request_json("POST", CLUSTERS_RPC, body=build_cluster_body(bucket, region))
    points = parse_items(ClusterPoint, unwrap_list(payload, "data", "clusters"), endpoint=CLUSTERS_RPC)
    _logger.debug("Clusters bucket=%d global=%s -> %d points", bucket, region is None, len(points))
    return points
