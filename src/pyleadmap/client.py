"""High-level async client for the lead map backend."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import aiohttp

from pyleadmap._api import boundaries as _boundaries_api
from pyleadmap._api import clusters as _clusters_api
from pyleadmap._api import records as _records_api
from pyleadmap._api import territories as _territories_api
from pyleadmap._transport import HttpTransport, Transport
from pyleadmap.config import LeadMapConfig, get_config
from pyleadmap.exceptions import LeadMapError
from pyleadmap.geo import LatLng, Region
from pyleadmap.models.markers import ClusterPoint, IndividualRecord, Owner
from pyleadmap.models.requests import RecordFilter
from pyleadmap.models.territory import Territory

_logger = logging.getLogger(__name__)


class LeadMapClient:
    """Async client for the clustering, record and territory backend.

    It satisfies the backend protocols expected by
    :class:`~pyleadmap.viewport.controller.ViewportController` and
    :class:`~pyleadmap.territory.manager.TerritoryOverlayManager`.

    Usage::

        async with LeadMapClient(LeadMapConfig.from_env()) as client:
            points = await client.fetch_clusters(5, None)
    """

    def __init__(
        self,
        config: LeadMapConfig | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config if config is not None else get_config()
        self._external_session = session is not None
        self._http_session = session
        self._transport: Transport | None = None
        self._boundary_transport: Transport | None = None

    @property
    def config(self) -> LeadMapConfig:
        return self._config

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> LeadMapClient:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        timeout = self._config.request_timeout
        self._transport = HttpTransport(
            self._config.base_url,
            self._config.api_key,
            self._http_session,
            timeout=timeout,
        )
        self._boundary_transport = HttpTransport(
            self._config.boundary_base_url,
            self._config.boundary_api_key,
            self._http_session,
            timeout=timeout,
        )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._transport = None
        self._boundary_transport = None

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise LeadMapError("Client not initialized. Use 'async with LeadMapClient(...) as client:'")
        return self._transport

    def _require_boundary_transport(self) -> Transport:
        if self._boundary_transport is None:
            raise LeadMapError("Client not initialized. Use 'async with LeadMapClient(...) as client:'")
        return self._boundary_transport

    # ------------------------------------------------------------------
    # Viewport data
    # ------------------------------------------------------------------

    async def fetch_clusters(self, bucket: int, region: Region | None) -> list[ClusterPoint]:
        """Aggregated clusters for *bucket*; ``region=None`` requests the global aggregate."""
        return await _clusters_api.fetch_clusters(self._require_transport(), bucket, region)

    async def fetch_records(
        self,
        region: Region,
        filters: Sequence[RecordFilter] = (),
    ) -> list[IndividualRecord]:
        return await _records_api.fetch_records(self._require_transport(), region, filters)

    # ------------------------------------------------------------------
    # Territories
    # ------------------------------------------------------------------

    async def list_territories(self) -> list[Territory]:
        return await _territories_api.list_territories(self._require_transport())

    async def save_territory(self, *, name: str, color: str, ring: Sequence[LatLng]) -> Territory:
        return await _territories_api.save_territory(self._require_transport(), name=name, color=color, ring=ring)

    async def delete_territory(self, territory_id: str) -> None:
        await _territories_api.delete_territory(self._require_transport(), territory_id)

    async def count_records(self, ring: Sequence[LatLng]) -> int:
        """Number of records inside the polygon *ring*."""
        return await _territories_api.count_records(self._require_transport(), ring)

    async def lookup_zip_boundary(self, zip_code: str) -> list[LatLng] | None:
        """Boundary vertices for a postal code, or ``None`` if the dataset has none."""
        return await _boundaries_api.lookup_zip_boundary(self._require_boundary_transport(), zip_code)

    # ------------------------------------------------------------------
    # Assignment
    # ------------------------------------------------------------------

    async def assign_records(self, ring: Sequence[LatLng], owner_id: str) -> int:
        updated = await _records_api.assign_records(self._require_transport(), ring, owner_id)
        _logger.debug("Assigned %d records to owner=%s", updated, owner_id)
        return updated

    async def list_owners(self) -> list[Owner]:
        return await _records_api.list_owners(self._require_transport())
