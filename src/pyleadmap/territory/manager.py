"""Territory overlays: candidate polygons, persistence and counts."""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Protocol

from pyleadmap._constants import DEFAULT_TERRITORY_COLOR, TEMP_ID_PREFIX
from pyleadmap.exceptions import InvalidGeometryError, LeadMapError
from pyleadmap.geo import LatLng, Region
from pyleadmap.models.territory import Territory
from pyleadmap.territory.geometry import close_ring, to_ring
from pyleadmap.viewport.controller import ViewportController
from pyleadmap.viewport.sequencer import RequestSequencer

_logger = logging.getLogger(__name__)


class TerritoryBackend(Protocol):
    """Backend calls the manager depends on (see :class:`pyleadmap.client.LeadMapClient`)."""

    async def list_territories(self) -> Sequence[Territory]:
        ...

    async def save_territory(self, *, name: str, color: str, ring: Sequence[LatLng]) -> Territory:
        ...

    async def delete_territory(self, territory_id: str) -> None:
        ...

    async def count_records(self, ring: Sequence[LatLng]) -> int:
        ...

    async def lookup_zip_boundary(self, zip_code: str) -> list[LatLng] | None:
        ...

    async def assign_records(self, ring: Sequence[LatLng], owner_id: str) -> int:
        ...


class CandidateSource(StrEnum):
    DRAW = "draw"
    ZIP = "zip"


class CountStatus(StrEnum):
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class TerritoryCount:
    """Contained-record count for one territory."""

    status: CountStatus
    total: int | None = None


@dataclass
class Candidate:
    """The polygon being drawn or looked up, not yet persisted."""

    source: CandidateSource
    vertices: list[LatLng] = field(default_factory=list)
    color: str = DEFAULT_TERRITORY_COLOR
    zip_code: str | None = None
    complete: bool = False


def _new_temp_id() -> str:
    return f"{TEMP_ID_PREFIX}{secrets.token_hex(6)}"


class TerritoryOverlayManager:
    """Owns the local territory set and the candidate polygon for one map view.

    Saves are optimistic: the territory is shown under a temporary id at
    once and swapped for the stored record when the backend answers, or
    removed again when it fails.

    Parameters
    ----------
    backend : TerritoryBackend
        Persistence, counting and boundary lookups.
    controller : ViewportController or None
        Used for scoped record fetches on selection and reloads after
        assignment.
    fit_bounds : callable or None
        Asked to fit the map to a region (selection, zip results).
    on_change : callable or None
        Called whenever territories, counts, selection or the candidate change.
    on_error : callable or None
        Receives a short user-facing message.
    """

    def __init__(
        self,
        backend: TerritoryBackend,
        controller: ViewportController | None = None,
        *,
        fit_bounds: Callable[[Region], None] | None = None,
        on_change: Callable[[], None] | None = None,
        on_error: Callable[[str], None] | None = None,
    ) -> None:
        self._backend = backend
        self._controller = controller
        self._fit_bounds = fit_bounds
        self._on_change = on_change
        self._on_error = on_error

        self._territories: dict[str, Territory] = {}
        self._counts: dict[str, TerritoryCount] = {}
        self._selected: str | None = None
        self._candidate: Candidate | None = None
        self._color = DEFAULT_TERRITORY_COLOR
        # Temporary ids deleted while their save was still in flight.
        self._abandoned: set[str] = set()
        self._zip_seq = RequestSequencer("zip")
        self._load_seq = RequestSequencer("territories")
        # Local saves and deletes made while a load is in flight, by load ticket.
        self._load_edits: dict[int, dict[str, Territory | None]] = {}

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def territories(self) -> tuple[Territory, ...]:
        return tuple(self._territories.values())

    @property
    def selected(self) -> Territory | None:
        if self._selected is None:
            return None
        return self._territories.get(self._selected)

    @property
    def candidate(self) -> Candidate | None:
        return self._candidate

    @property
    def color(self) -> str:
        return self._color

    def get(self, territory_id: str) -> Territory | None:
        return self._territories.get(territory_id)

    def count_for(self, territory_id: str) -> TerritoryCount | None:
        return self._counts.get(territory_id)

    def filtered(self, query: str | None) -> list[Territory]:
        """Territories whose name contains *query*, ignoring case."""
        needle = (query or "").strip().casefold()
        if not needle:
            return list(self._territories.values())
        return [t for t in self._territories.values() if needle in t.name.casefold()]

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load(self) -> tuple[Territory, ...]:
        """Replace the local copy with the persisted territories.

        Optimistic inserts still waiting on the backend are kept, and saves
        or deletes that finish while the list is in flight are applied on
        top of it. Only the latest load is applied.
        """
        ticket = self._load_seq.next_ticket()
        edits: dict[str, Territory | None] = {}
        self._load_edits[ticket] = edits
        try:
            loaded = await self._backend.list_territories()
        except LeadMapError as exc:
            if self._load_seq.is_current(ticket):
                self._report("Failed to load territories.", exc)
            return self.territories
        finally:
            self._load_edits.pop(ticket, None)

        if not self._load_seq.is_current(ticket):
            _logger.debug("Discarding stale territory list")
            return self.territories

        pending = {tid: t for tid, t in self._territories.items() if t.is_temporary}
        self._territories = {t.id: t for t in loaded}
        for tid, territory in edits.items():
            if territory is None:
                self._territories.pop(tid, None)
            else:
                self._territories[tid] = territory
        self._territories.update(pending)
        self._counts = {tid: c for tid, c in self._counts.items() if tid in self._territories}
        if self._selected is not None and self._selected not in self._territories:
            self._selected = None
        _logger.debug("Loaded %d territories", len(loaded))
        self._changed()
        return self.territories

    # ------------------------------------------------------------------
    # Candidate polygon
    # ------------------------------------------------------------------

    def start_draw(self) -> Candidate:
        self._zip_seq.invalidate()
        self._candidate = Candidate(source=CandidateSource.DRAW, color=self._color)
        self._changed()
        return self._candidate

    def update_path(self, vertices: Iterable[Any]) -> Candidate | None:
        """Replace the candidate's vertex path after an insert, move or remove.

        A path with an unreadable vertex discards the candidate and
        returns ``None``.
        """
        try:
            ring = to_ring(vertices)
        except InvalidGeometryError as exc:
            self._discard_invalid(exc)
            return None
        candidate = self._candidate
        if candidate is None or candidate.source is not CandidateSource.DRAW:
            candidate = self.start_draw()
        candidate.vertices = ring
        self._changed()
        return candidate

    def complete_draw(self, vertices: Iterable[Any]) -> Candidate | None:
        candidate = self.update_path(vertices)
        if candidate is None:
            return None
        candidate.complete = True
        self._changed()
        return candidate

    async def search_zip(self, zip_code: str) -> Candidate | None:
        """Make the boundary of *zip_code* the candidate polygon."""
        zip_code = (zip_code or "").strip()
        if not zip_code:
            self._report("Please enter a zip code.")
            return None

        ticket = self._zip_seq.next_ticket()
        try:
            vertices = await self._backend.lookup_zip_boundary(zip_code)
        except InvalidGeometryError as exc:
            if self._zip_seq.is_current(ticket):
                self._report(f"Boundary for zip code {zip_code} could not be read.", exc)
            return None
        except LeadMapError as exc:
            if self._zip_seq.is_current(ticket):
                self._report("Failed to look up zip code.", exc)
            return None

        if not self._zip_seq.is_current(ticket):
            _logger.debug("Discarding stale boundary for zip %s", zip_code)
            return None
        if not vertices:
            self._report(f"No polygon found for zip code {zip_code}.")
            return None

        self._candidate = Candidate(
            source=CandidateSource.ZIP,
            vertices=list(vertices),
            color=self._color,
            zip_code=zip_code,
            complete=True,
        )
        self._changed()
        try:
            self._fit(Region.from_points(vertices))
        except ValueError:
            _logger.debug("Boundary for zip %s has no usable extent", zip_code)
        return self._candidate

    def set_color(self, color: str) -> None:
        self._color = color
        if self._candidate is not None:
            self._candidate.color = color
        self._changed()

    def cancel(self) -> None:
        """Discard the candidate polygon."""
        self._zip_seq.invalidate()
        if self._candidate is not None:
            self._candidate = None
            self._changed()

    def _take_ring(self) -> tuple[LatLng, ...] | None:
        candidate = self._candidate
        if candidate is None:
            self._report("Draw a polygon or search a zip code first.")
            return None
        try:
            return close_ring(candidate.vertices)
        except InvalidGeometryError as exc:
            self._discard_invalid(exc)
            return None

    def _discard_invalid(self, exc: InvalidGeometryError) -> None:
        self._zip_seq.invalidate()
        self._candidate = None
        self._changed()
        self._report(f"Invalid polygon: {exc}", exc)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def submit(self, name: str) -> Territory | None:
        """Persist the candidate as a territory called *name*.

        Returns the stored territory, or ``None`` when validation or the
        save failed (the reason goes to ``on_error``).
        """
        name = (name or "").strip()
        if not name:
            self._report("Please enter a territory name.")
            return None
        ring = self._take_ring()
        if ring is None:
            return None

        color = self._candidate.color if self._candidate is not None else self._color
        temp_id = _new_temp_id()
        self._territories[temp_id] = Territory(id=temp_id, name=name, color=color, ring=ring)
        self._candidate = None
        self._changed()

        try:
            saved = await self._backend.save_territory(name=name, color=color, ring=ring)
        except LeadMapError as exc:
            self._territories.pop(temp_id, None)
            self._abandoned.discard(temp_id)
            self._drop_state(temp_id)
            self._changed()
            self._report("Failed to save territory.", exc)
            return None

        if temp_id in self._abandoned:
            self._abandoned.discard(temp_id)
            _logger.debug("Territory %s was deleted while saving; removing %s", temp_id, saved.id)
            self._note_edit(saved.id, None)
            try:
                await self._backend.delete_territory(saved.id)
            except LeadMapError as exc:
                self._report("Failed to delete territory.", exc)
            return None

        self._reconcile(temp_id, saved)
        return saved

    def _reconcile(self, temp_id: str, saved: Territory) -> None:
        # Keep the territory's position in the list.
        reconciled: dict[str, Territory] = {}
        for tid, territory in self._territories.items():
            if tid == temp_id:
                reconciled[saved.id] = saved
            else:
                reconciled[tid] = territory
        self._territories = reconciled
        self._note_edit(saved.id, saved)
        # A count requested under the temporary id is requested again on next select.
        self._counts.pop(temp_id, None)
        if self._selected == temp_id:
            self._selected = saved.id
        _logger.debug("Territory %s stored as %s", temp_id, saved.id)
        self._changed()

    async def delete(self, territory_id: str) -> bool:
        """Delete a territory; returns ``False`` if it is unknown or the backend refused."""
        territory = self._territories.get(territory_id)
        if territory is None:
            return False
        if territory.is_temporary:
            self._abandoned.add(territory_id)
        else:
            try:
                await self._backend.delete_territory(territory_id)
            except LeadMapError as exc:
                self._report("Failed to delete territory.", exc)
                return False
        self._territories.pop(territory_id, None)
        self._note_edit(territory_id, None)
        self._drop_state(territory_id)
        self._changed()
        return True

    def _note_edit(self, territory_id: str, territory: Territory | None) -> None:
        for edits in self._load_edits.values():
            edits[territory_id] = territory

    def _drop_state(self, territory_id: str) -> None:
        self._counts.pop(territory_id, None)
        if self._selected == territory_id:
            self._selected = None

    # ------------------------------------------------------------------
    # Selection and counts
    # ------------------------------------------------------------------

    async def select(self, territory_id: str) -> Territory | None:
        """Select a territory, fit the map to it and load what it contains."""
        territory = self._territories.get(territory_id)
        if territory is None:
            return None
        self._selected = territory_id
        self._changed()

        bounds = territory.bounds()
        self._fit(bounds)
        if self._controller is not None:
            await self._controller.fetch_region(bounds)

        count = self._counts.get(territory_id)
        if count is None or count.status is CountStatus.FAILED:
            await self.request_count(territory_id)
        return territory

    async def request_count(self, territory_id: str) -> TerritoryCount | None:
        territory = self._territories.get(territory_id)
        if territory is None:
            return None
        self._counts[territory_id] = TerritoryCount(CountStatus.LOADING)
        self._changed()

        try:
            total = await self._backend.count_records(territory.ring)
        except LeadMapError as exc:
            result = TerritoryCount(CountStatus.FAILED)
            _logger.warning("Count for territory %s failed: %s", territory_id, exc)
        else:
            result = TerritoryCount(CountStatus.READY, total)

        # The territory may have been deleted, or reconciled to a new id.
        if territory_id not in self._territories:
            return None
        self._counts[territory_id] = result
        self._changed()
        return result

    # ------------------------------------------------------------------
    # Assignment
    # ------------------------------------------------------------------

    async def assign_records(self, owner_id: str) -> int | None:
        """Assign every record inside the candidate polygon to *owner_id*.

        Returns the number of records updated, or ``None`` on failure.
        """
        owner_id = (owner_id or "").strip()
        if not owner_id:
            self._report("Please choose an owner.")
            return None
        ring = self._take_ring()
        if ring is None:
            return None

        try:
            updated = await self._backend.assign_records(ring, owner_id)
        except LeadMapError as exc:
            self._report("Failed to assign records.", exc)
            return None

        _logger.debug("Assigned %d records to %s", updated, owner_id)
        self._candidate = None
        self._changed()
        if self._controller is not None:
            await self._controller.reload()
        return updated

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def _fit(self, region: Region) -> None:
        if self._fit_bounds is None:
            return
        try:
            self._fit_bounds(region)
        except Exception:
            _logger.debug("fit_bounds callback failed", exc_info=True)

    def _changed(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change()
        except Exception:
            _logger.debug("on_change callback failed", exc_info=True)

    def _report(self, message: str, exc: Exception | None = None) -> None:
        if exc is not None:
            _logger.warning("%s %s", message, exc)
        else:
            _logger.debug("%s", message)
        if self._on_error is None:
            return
        try:
            self._on_error(message)
        except Exception:
            _logger.debug("on_error callback failed", exc_info=True)
