"""Viewport orchestrator: decide what to fetch and what to show.

The controller is fed raw map readings (zoom + visible bounds) and,
once the readings settle, picks a display mode, consults the caches,
issues at most one current fetch per stream and publishes the
resulting marker set.

State machine::

    (none) --first reading--> CLUSTERED | INDIVIDUAL
    CLUSTERED  --zoom >= threshold--> INDIVIDUAL   clear clusters
    INDIVIDUAL --zoom <  threshold--> CLUSTERED    clear records + coverage
    CLUSTERED  --same bucket-->       no-op
    INDIVIDUAL --covered viewport-->  no-op

Every fetch is ticketed; a completion whose ticket is no longer
current is dropped without touching markers or caches.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from pyleadmap.config import LeadMapConfig, get_config
from pyleadmap.exceptions import InvalidBoundsError, LeadMapError
from pyleadmap.geo import Region
from pyleadmap.models.markers import ClusterPoint, IndividualRecord
from pyleadmap.models.requests import RecordFilter
from pyleadmap.viewport.bounds import expand
from pyleadmap.viewport.cache import ClusterCache, CoverageCache
from pyleadmap.viewport.debounce import DebounceScheduler
from pyleadmap.viewport.markers import MarkerCollection, MarkerSnapshot, cluster_identity, record_identity
from pyleadmap.viewport.sequencer import RequestSequencer
from pyleadmap.viewport.zoom import DisplayMode, bucket_for, display_mode_for

_logger = logging.getLogger(__name__)

CLUSTER_FAILURE_MESSAGE = "Failed to load clusters."
RECORD_FAILURE_MESSAGE = "Failed to load individual markers."


class ViewportBackend(Protocol):
    """Backend calls the controller depends on (see :class:`pyleadmap.client.LeadMapClient`)."""

    async def fetch_clusters(self, bucket: int, region: Region | None) -> Sequence[ClusterPoint]:
        ...

    async def fetch_records(
        self,
        region: Region,
        filters: Sequence[RecordFilter] = (),
    ) -> Sequence[IndividualRecord]:
        ...


@dataclass
class MapReading:
    """Latest raw values reported by the map; validated only when evaluated."""

    zoom: float | None = None
    bounds: Region | Sequence[float] | None = None


class ViewportController:
    """Orchestrates cluster and record fetches for one map view.

    Parameters
    ----------
    backend : ViewportBackend
        Source of clusters and records.
    config : LeadMapConfig or None
        Policy settings; defaults to the process-wide configuration.
    on_publish : callable or None
        Receives a :class:`MarkerSnapshot` whenever the displayed set changes.
    on_error : callable or None
        Receives a short user-facing message when a fetch fails.
    """

    def __init__(
        self,
        backend: ViewportBackend,
        config: LeadMapConfig | None = None,
        *,
        on_publish: Callable[[MarkerSnapshot], None] | None = None,
        on_error: Callable[[str], None] | None = None,
    ) -> None:
        self._backend = backend
        self._config = config if config is not None else get_config()
        self._on_publish = on_publish
        self._on_error = on_error

        self._reading = MapReading()
        self._scheduler = DebounceScheduler(self.refresh, self._config.debounce_seconds)

        self._cluster_seq = RequestSequencer("clusters")
        self._record_seq = RequestSequencer("records")
        self._cluster_cache = ClusterCache(global_bucket=self._config.global_bucket)
        self._coverage = CoverageCache()
        self._clusters: MarkerCollection[ClusterPoint] = MarkerCollection(cluster_identity)
        self._records: MarkerCollection[IndividualRecord] = MarkerCollection(record_identity)

        self._mode: DisplayMode | None = None
        self._bucket: int | None = None
        self._pending_bucket: int | None = None
        self._filters: tuple[RecordFilter, ...] = ()
        self._replace_records = False

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def mode(self) -> DisplayMode | None:
        return self._mode

    @property
    def bucket(self) -> int | None:
        """Bucket of the cluster set currently published."""
        return self._bucket

    @property
    def filters(self) -> tuple[RecordFilter, ...]:
        return self._filters

    @property
    def reading(self) -> MapReading:
        return self._reading

    @property
    def cluster_cache(self) -> ClusterCache:
        return self._cluster_cache

    @property
    def coverage(self) -> CoverageCache:
        return self._coverage

    @property
    def has_pending_evaluation(self) -> bool:
        return self._scheduler.pending

    def snapshot(self) -> MarkerSnapshot:
        return MarkerSnapshot(
            mode=self._mode,
            bucket=self._bucket,
            clusters=self._clusters.values(),
            records=self._records.values(),
        )

    # ------------------------------------------------------------------
    # Map notifications
    # ------------------------------------------------------------------

    def notify_idle(self, zoom: float, bounds: Region | Sequence[float] | None) -> None:
        """Record the map's settled position and schedule an evaluation."""
        self._reading.zoom = zoom
        self._reading.bounds = bounds
        self._scheduler.schedule()

    def notify_zoom_changed(self, zoom: float) -> None:
        self._reading.zoom = zoom
        self._scheduler.schedule()

    async def flush(self) -> None:
        """Run any pending debounced evaluation now and wait for fired ones."""
        await self._scheduler.flush()
        await self._scheduler.wait_idle()

    def close(self) -> None:
        self._scheduler.cancel()

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    async def refresh(self) -> None:
        """Evaluate the latest map reading immediately."""
        zoom = self._reading.zoom
        raw_bounds = self._reading.bounds
        if zoom is None or raw_bounds is None or not math.isfinite(zoom):
            _logger.debug("Map not ready (zoom=%s bounds=%s); skipping", zoom, raw_bounds)
            return
        try:
            viewport = Region.coerce(raw_bounds)
        except InvalidBoundsError as exc:
            _logger.debug("Skipping evaluation: %s", exc)
            return

        if display_mode_for(zoom, self._config.display_threshold) is DisplayMode.INDIVIDUAL:
            await self._evaluate_individual(viewport)
        else:
            await self._evaluate_clustered(bucket_for(zoom), viewport)

    async def _evaluate_individual(self, viewport: Region) -> None:
        if self._mode is not DisplayMode.INDIVIDUAL:
            self._switch_mode(DisplayMode.INDIVIDUAL)
        if self._coverage.is_covered(viewport):
            _logger.debug("Viewport %s already covered; no fetch", viewport)
            return
        await self._fetch_records(expand(viewport, self._config.record_expansion))

    async def _evaluate_clustered(self, bucket: int, viewport: Region) -> None:
        if self._mode is not DisplayMode.CLUSTERED:
            self._switch_mode(DisplayMode.CLUSTERED)
        elif bucket == (self._pending_bucket if self._pending_bucket is not None else self._bucket):
            _logger.debug("Bucket %d unchanged; no fetch", bucket)
            return

        region = expand(viewport, self._config.cluster_expansion)
        cached = self._cluster_cache.get(bucket, region)
        if cached is not None:
            _logger.debug("Cluster cache hit bucket=%d", bucket)
            # Anything still in flight belongs to an older viewport.
            self._cluster_seq.invalidate()
            self._pending_bucket = None
            self._show_clusters(bucket, cached)
            return

        ticket = self._cluster_seq.next_ticket()
        self._pending_bucket = bucket
        query_region = None if self._cluster_cache.is_global(bucket) else region
        try:
            points = await self._backend.fetch_clusters(bucket, query_region)
        except LeadMapError as exc:
            if self._cluster_seq.is_current(ticket):
                self._pending_bucket = None
            self._report_failure(self._cluster_seq, ticket, exc, CLUSTER_FAILURE_MESSAGE)
            return

        if not self._cluster_seq.is_current(ticket):
            _logger.debug("Discarding stale cluster result ticket=%d (current=%d)", ticket, self._cluster_seq.current)
            return
        self._pending_bucket = None
        self._cluster_cache.put(bucket, region, points, ticket)
        self._show_clusters(bucket, points)

    async def _fetch_records(self, region: Region) -> None:
        ticket = self._record_seq.next_ticket()
        filters = self._filters
        try:
            records = await self._backend.fetch_records(region, filters)
        except LeadMapError as exc:
            self._report_failure(self._record_seq, ticket, exc, RECORD_FAILURE_MESSAGE)
            return

        if not self._record_seq.is_current(ticket):
            _logger.debug("Discarding stale record result ticket=%d (current=%d)", ticket, self._record_seq.current)
            return
        if self._replace_records:
            self._records.replace_all(records)
            self._replace_records = False
        else:
            added = self._records.merge_add(records)
            _logger.debug("Merged %d records (%d new)", len(records), added)
        self._coverage.record(region)
        self._publish()

    def _switch_mode(self, mode: DisplayMode) -> None:
        _logger.debug("Display mode %s -> %s", self._mode, mode)
        previous = self._mode
        self._mode = mode
        if mode is DisplayMode.INDIVIDUAL:
            self._cluster_seq.invalidate()
            self._clusters.clear()
            self._bucket = None
            self._pending_bucket = None
        else:
            self._record_seq.invalidate()
            self._records.clear()
            self._coverage.reset()
            self._replace_records = False
        if previous is not None:
            self._publish()

    def _show_clusters(self, bucket: int, points: Iterable[ClusterPoint]) -> None:
        self._clusters.replace_all(points)
        self._bucket = bucket
        self._publish()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def set_filters(self, filters: Iterable[RecordFilter | Mapping[str, Any]]) -> None:
        """Apply new record filters.

        Coverage recorded under the old filters no longer applies, so it
        is dropped and the next record fetch replaces the marker set
        instead of merging into it.
        """
        self._filters = tuple(
            f if isinstance(f, RecordFilter) else RecordFilter.model_validate(f) for f in filters
        )
        self._coverage.reset()
        self._record_seq.invalidate()
        self._replace_records = True
        if self._mode is DisplayMode.INDIVIDUAL:
            self._scheduler.cancel()
            await self.refresh()

    async def fetch_region(self, region: Region) -> bool:
        """Fetch records for *region* (e.g. a selected territory) in individual mode.

        Returns ``False`` when the controller is not showing records or
        the region is already covered.
        """
        if self._mode is not DisplayMode.INDIVIDUAL:
            return False
        if self._coverage.is_covered(region):
            return False
        await self._fetch_records(region)
        return True

    async def reload(self) -> None:
        """Refetch what is on screen, e.g. after records were reassigned.

        Both caches are dropped, so clusters are fetched again too.
        """
        self._coverage.reset()
        self._cluster_cache.clear()
        self._record_seq.invalidate()
        self._cluster_seq.invalidate()
        self._replace_records = True
        self._bucket = None
        self._pending_bucket = None
        self._scheduler.cancel()
        await self.refresh()

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def _publish(self) -> None:
        if self._on_publish is None:
            return
        try:
            self._on_publish(self.snapshot())
        except Exception:
            _logger.debug("on_publish callback failed", exc_info=True)

    def _report_failure(self, seq: RequestSequencer, ticket: int, exc: LeadMapError, message: str) -> None:
        if not seq.is_current(ticket):
            _logger.debug("Ignoring failure of superseded %s fetch ticket=%d: %s", seq.name, ticket, exc)
            return
        _logger.warning("%s %s", message, exc)
        if self._on_error is None:
            return
        try:
            self._on_error(message)
        except Exception:
            _logger.debug("on_error callback failed", exc_info=True)
