"""Territory model."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator, model_validator

from pyleadmap._constants import DEFAULT_TERRITORY_COLOR, TEMP_ID_PREFIX
from pyleadmap.models._base import LeadMapBaseModel
from pyleadmap.geo import LatLng, Region
from pyleadmap.territory.geometry import close_ring, parse_wkt_polygon, ring_from_geojson, ring_to_geojson


class Territory(LeadMapBaseModel):
    """A named polygon used to scope or assign records.

    The ring is always stored closed. It can be supplied directly
    (``ring`` or ``coordinates`` as ``{lat, lng}`` items) or read from
    the backend's ``geom`` column, either GeoJSON or WKT.
    """

    id: str
    name: str
    color: str = DEFAULT_TERRITORY_COLOR
    ring: tuple[LatLng, ...] = Field(min_length=4)

    @model_validator(mode="before")
    @classmethod
    def _resolve_ring(cls, values: Any) -> Any:
        if not isinstance(values, dict) or "ring" in values:
            return values
        resolved = dict(values)
        coordinates = resolved.pop("coordinates", None)
        geom = resolved.pop("geom", None)
        if coordinates is not None:
            resolved["ring"] = coordinates
        elif isinstance(geom, dict):
            resolved["ring"] = ring_from_geojson(geom)
        elif isinstance(geom, str):
            resolved["ring"] = parse_wkt_polygon(geom)
        return resolved

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return str(value).strip()

    @field_validator("name")
    @classmethod
    def _name_non_empty(cls, value: str) -> str:
        name = value.strip()
        if not name:
            raise ValueError("name must be non-empty")
        return name

    @field_validator("ring", mode="before")
    @classmethod
    def _close_ring(cls, value: Any) -> tuple[LatLng, ...]:
        return close_ring(value)

    @property
    def is_temporary(self) -> bool:
        return self.id.startswith(TEMP_ID_PREFIX)

    def bounds(self) -> Region:
        return Region.from_points(self.ring)

    def to_geojson(self) -> dict[str, Any]:
        return ring_to_geojson(self.ring)

    def coordinates(self) -> list[dict[str, float]]:
        return [vertex.as_dict() for vertex in self.ring]
