from __future__ import annotations

# pylint: disable=redefined-outer-name

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field

import pytest

from pyleadmap.config import LeadMapConfig
from pyleadmap.geo import Region
from pyleadmap.models.markers import IndividualRecord
from pyleadmap.models.requests import RecordFilter
from pyleadmap.viewport.bounds import expand
from pyleadmap.viewport.controller import (
    CLUSTER_FAILURE_MESSAGE,
    RECORD_FAILURE_MESSAGE,
    ViewportController,
)
from pyleadmap.viewport.markers import MarkerSnapshot
from pyleadmap.viewport.zoom import DisplayMode

from fakes import FakeViewportBackend
from fakes import make_record as _record

NYC = Region(40.70, -74.02, 40.80, -73.92)
BOX = Region(30.0, -100.0, 40.0, -90.0)


@pytest.fixture
def config() -> LeadMapConfig:
    return LeadMapConfig(base_url="https://api.example.test", api_key="anon-key", debounce_seconds=0.01)


@pytest.fixture
def backend() -> FakeViewportBackend:
    return FakeViewportBackend()


@dataclass
class _Sink:
    published: list[MarkerSnapshot] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@pytest.fixture
def sink() -> _Sink:
    return _Sink()


@pytest.fixture
def controller(config: LeadMapConfig, backend: FakeViewportBackend, sink: _Sink) -> ViewportController:
    return ViewportController(
        backend,
        config,
        on_publish=sink.published.append,
        on_error=sink.errors.append,
    )


async def _settle(controller: ViewportController, zoom: float, bounds: Region | Sequence[float]) -> None:
    controller.notify_idle(zoom, bounds)
    await controller.flush()


# ------------------------------------------------------------------
# Clustered mode
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_zoom_five_fetches_global_clusters(
    controller: ViewportController, backend: FakeViewportBackend, sink: _Sink
) -> None:
    await _settle(controller, 5.0, NYC)

    assert backend.cluster_calls == [(5, None)]
    assert backend.record_calls == []
    snapshot = controller.snapshot()
    assert snapshot.mode is DisplayMode.CLUSTERED
    assert snapshot.bucket == 5
    assert len(snapshot.clusters) == 1
    assert sink.published[-1] == snapshot


@pytest.mark.asyncio
async def test_regional_bucket_fetches_expanded_region(
    controller: ViewportController, backend: FakeViewportBackend
) -> None:
    await _settle(controller, 8.5, NYC)

    assert backend.cluster_calls == [(6, expand(NYC, 2.0))]


@pytest.mark.asyncio
async def test_same_bucket_is_a_no_op(controller: ViewportController, backend: FakeViewportBackend) -> None:
    await _settle(controller, 8.0, NYC)
    await _settle(controller, 9.5, Region(41.0, -75.0, 41.1, -74.9))

    assert len(backend.cluster_calls) == 1
    assert controller.bucket == 6


@pytest.mark.asyncio
async def test_returning_to_a_bucket_hits_the_cache(
    controller: ViewportController, backend: FakeViewportBackend
) -> None:
    await _settle(controller, 8.0, NYC)
    await _settle(controller, 10.0, NYC)
    await _settle(controller, 8.0, NYC)

    assert [bucket for bucket, _ in backend.cluster_calls] == [6, 8]
    assert controller.bucket == 6
    assert controller.snapshot().clusters[0].count == 250 + 6


@pytest.mark.asyncio
async def test_global_bucket_is_cached_regardless_of_pan(
    controller: ViewportController, backend: FakeViewportBackend
) -> None:
    await _settle(controller, 5.0, NYC)
    await _settle(controller, 8.0, NYC)
    await _settle(controller, 4.0, Region(-10.0, 100.0, 10.0, 120.0))

    assert backend.cluster_calls == [(5, None), (6, expand(NYC, 2.0))]
    assert controller.bucket == 5


# ------------------------------------------------------------------
# Individual mode
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_zoom_jump_within_one_window_fetches_once(
    controller: ViewportController, backend: FakeViewportBackend
) -> None:
    controller.notify_idle(9.0, NYC)
    controller.notify_zoom_changed(11.0)
    controller.notify_idle(13.0, NYC)

    await asyncio.sleep(0.05)
    await controller.flush()

    assert backend.cluster_calls == []
    assert len(backend.record_calls) == 1
    assert backend.record_calls[0][0] == expand(NYC, 3.0)
    assert controller.mode is DisplayMode.INDIVIDUAL
    assert [r.id for r in controller.snapshot().records] == ["r1", "r2"]


@pytest.mark.asyncio
async def test_panning_inside_covered_box_issues_no_fetch(
    controller: ViewportController, backend: FakeViewportBackend
) -> None:
    await _settle(controller, 13.0, BOX)
    await _settle(controller, 13.0, Region(32.0, -98.0, 42.0, -88.0))
    await _settle(controller, 14.0, Region(35.0, -95.0, 36.0, -94.0))

    assert len(backend.record_calls) == 1

    # Far outside the prefetched area.
    await _settle(controller, 13.0, Region(60.0, 10.0, 70.0, 20.0))
    assert len(backend.record_calls) == 2


@pytest.mark.asyncio
async def test_new_records_merge_into_existing_set(
    controller: ViewportController, backend: FakeViewportBackend
) -> None:
    await _settle(controller, 13.0, NYC)
    backend.records = [_record("r2"), _record("r3")]
    await _settle(controller, 13.0, Region(50.0, 0.0, 50.1, 0.1))

    assert [r.id for r in controller.snapshot().records] == ["r1", "r2", "r3"]


@pytest.mark.asyncio
async def test_mode_switches_clear_the_other_marker_kind(
    controller: ViewportController, backend: FakeViewportBackend
) -> None:
    await _settle(controller, 5.0, NYC)
    await _settle(controller, 13.0, NYC)

    snapshot = controller.snapshot()
    assert snapshot.clusters == ()
    assert snapshot.bucket is None
    assert len(snapshot.records) == 2

    await _settle(controller, 5.0, NYC)

    snapshot = controller.snapshot()
    assert snapshot.records == ()
    assert len(controller.coverage) == 0
    assert snapshot.bucket == 5
    # Served from the cache.
    assert len(backend.cluster_calls) == 1

    await _settle(controller, 13.0, NYC)
    assert len(backend.record_calls) == 2


# ------------------------------------------------------------------
# Staleness
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_stale_record_result_is_discarded(
    controller: ViewportController, backend: FakeViewportBackend
) -> None:
    first_gate, second_gate = asyncio.Event(), asyncio.Event()
    backend.record_gates = [first_gate, second_gate]
    east = Region(40.70, -60.0, 40.80, -59.9)

    def records_for(region: Region, _filters: Sequence[RecordFilter]) -> list[IndividualRecord]:
        if region.contains(NYC):
            return [_record("old")]
        return [_record("new", 40.75, -59.95)]

    backend.records_for = records_for

    controller.notify_idle(13.0, NYC)
    controller.close()
    first = asyncio.create_task(controller.refresh())
    await asyncio.sleep(0)

    controller.notify_idle(13.0, east)
    controller.close()
    second = asyncio.create_task(controller.refresh())
    await asyncio.sleep(0)

    second_gate.set()
    await second
    first_gate.set()
    await first

    assert [r.id for r in controller.snapshot().records] == ["new"]
    assert controller.coverage.regions == (expand(east, 3.0),)


@pytest.mark.asyncio
async def test_stale_cluster_result_is_not_cached(
    controller: ViewportController, backend: FakeViewportBackend
) -> None:
    slow = asyncio.Event()
    backend.cluster_gates = [slow]

    controller.notify_idle(8.0, NYC)
    controller.close()
    first = asyncio.create_task(controller.refresh())
    await asyncio.sleep(0)

    await _settle(controller, 10.0, NYC)
    slow.set()
    await first

    assert controller.bucket == 8
    assert controller.cluster_cache.entry(6, expand(NYC, 2.0)) is None
    assert controller.cluster_cache.entry(8, expand(NYC, 2.0)) is not None


@pytest.mark.asyncio
async def test_stale_failure_is_not_reported(
    controller: ViewportController, backend: FakeViewportBackend, sink: _Sink
) -> None:
    slow = asyncio.Event()
    backend.record_gates = [slow]
    backend.fail_records = True

    controller.notify_idle(13.0, NYC)
    controller.close()
    first = asyncio.create_task(controller.refresh())
    await asyncio.sleep(0)

    backend.fail_records = False
    await _settle(controller, 13.0, Region(50.0, 0.0, 50.1, 0.1))
    backend.fail_records = True
    slow.set()
    await first

    assert sink.errors == []
    assert len(controller.snapshot().records) == 2


# ------------------------------------------------------------------
# Errors and invalid input
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_cluster_failure_keeps_markers_and_retries(
    controller: ViewportController, backend: FakeViewportBackend, sink: _Sink
) -> None:
    await _settle(controller, 5.0, NYC)
    before = controller.snapshot()

    backend.fail_clusters = True
    await _settle(controller, 8.0, NYC)

    assert sink.errors == [CLUSTER_FAILURE_MESSAGE]
    assert controller.snapshot() == before

    backend.fail_clusters = False
    await _settle(controller, 8.0, NYC)

    assert len(backend.cluster_calls) == 3
    assert controller.bucket == 6


@pytest.mark.asyncio
async def test_record_failure_is_reported_and_retried(
    controller: ViewportController, backend: FakeViewportBackend, sink: _Sink
) -> None:
    backend.fail_records = True
    await _settle(controller, 13.0, NYC)

    assert sink.errors == [RECORD_FAILURE_MESSAGE]
    assert len(controller.coverage) == 0

    backend.fail_records = False
    await _settle(controller, 13.0, NYC)

    assert len(backend.record_calls) == 2
    assert len(controller.snapshot().records) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "bounds",
    [
        (float("nan"), -74.0, 40.8, -73.9),
        (41.0, -74.0, 40.0, -73.9),
        None,
    ],
)
async def test_invalid_bounds_skip_the_fetch(
    controller: ViewportController, backend: FakeViewportBackend, sink: _Sink, bounds: Sequence[float] | None
) -> None:
    await _settle(controller, 13.0, bounds)  # type: ignore[arg-type]

    assert backend.record_calls == []
    assert backend.cluster_calls == []
    assert controller.mode is None
    assert sink.errors == []


@pytest.mark.asyncio
async def test_callback_failures_do_not_break_evaluation(
    config: LeadMapConfig, backend: FakeViewportBackend
) -> None:
    def explode(_snapshot: MarkerSnapshot) -> None:
        raise RuntimeError("render failed")

    controller = ViewportController(backend, config, on_publish=explode)
    await _settle(controller, 5.0, NYC)

    assert controller.bucket == 5


# ------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_set_filters_replaces_records(controller: ViewportController, backend: FakeViewportBackend) -> None:
    await _settle(controller, 13.0, NYC)
    backend.records = [_record("r3")]

    await controller.set_filters([{"column": "status", "operator": "=", "value": 1}])

    assert len(backend.record_calls) == 2
    assert backend.record_calls[-1][1] == (RecordFilter(column="status", operator="=", value=1),)
    assert [r.id for r in controller.snapshot().records] == ["r3"]
    assert controller.filters[0].verb == "eq"


@pytest.mark.asyncio
async def test_set_filters_in_clustered_mode_waits_for_individual_mode(
    controller: ViewportController, backend: FakeViewportBackend
) -> None:
    await _settle(controller, 5.0, NYC)
    await controller.set_filters([RecordFilter(column="status", operator="!=", value=3)])

    assert backend.record_calls == []

    await _settle(controller, 13.0, NYC)
    assert backend.record_calls[0][1][0].verb == "neq"


@pytest.mark.asyncio
async def test_fetch_region_only_in_individual_mode(
    controller: ViewportController, backend: FakeViewportBackend
) -> None:
    territory_box = Region(45.0, -70.0, 45.5, -69.5)

    await _settle(controller, 5.0, NYC)
    assert await controller.fetch_region(territory_box) is False

    await _settle(controller, 13.0, NYC)
    assert await controller.fetch_region(territory_box) is True
    assert await controller.fetch_region(Region(45.1, -69.9, 45.2, -69.8)) is False
    assert backend.record_calls[-1][0] == territory_box


@pytest.mark.asyncio
async def test_reload_refetches_what_is_on_screen(
    controller: ViewportController, backend: FakeViewportBackend
) -> None:
    await _settle(controller, 13.0, NYC)
    backend.records = [_record("r1"), _record("r2", 41.0, -74.0)]

    await controller.reload()

    assert len(backend.record_calls) == 2
    assert controller.snapshot().records[1].latitude == 41.0

    await _settle(controller, 8.0, NYC)
    calls_before = len(backend.cluster_calls)
    await controller.reload()
    assert len(backend.cluster_calls) == calls_before + 1
    assert backend.cluster_calls[-1][0] == 6
    assert controller.bucket == 6
