"""Pydantic request models for backend calls.

These models provide a consistent "validate → normalize → execute" flow.
They are used internally by :class:`pyleadmap.client.LeadMapClient` and
the territory manager.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pyleadmap._constants import DEFAULT_TERRITORY_COLOR
from pyleadmap.geo import LatLng

#: Filter operators accepted by the record endpoint, mapped to the
#: backend's query verbs.
FILTER_OPERATORS: dict[str, str] = {
    "=": "eq",
    "!=": "neq",
    ">": "gt",
    "<": "lt",
    ">=": "gte",
    "<=": "lte",
    "LIKE": "like",
}


class _Request(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
    )


class RecordFilter(_Request):
    """A ``column operator value`` constraint on individual records."""

    column: str = Field(min_length=1)
    operator: str
    value: str | int | float | bool

    @field_validator("operator")
    @classmethod
    def _known_operator(cls, value: str) -> str:
        op = value.strip()
        if op.lower() == "like":
            op = "LIKE"
        if op not in FILTER_OPERATORS:
            raise ValueError(f"unsupported operator {value!r}")
        return op

    @property
    def verb(self) -> str:
        return FILTER_OPERATORS[self.operator]

    def as_params(self) -> list[tuple[str, Any]]:
        return [("column", self.column), ("operator", self.verb), ("value", self.value)]


class SaveTerritoryRequest(_Request):
    name: str = Field(min_length=1)
    color: str = DEFAULT_TERRITORY_COLOR
    ring: tuple[LatLng, ...] = Field(min_length=4)

    def as_body(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "color": self.color,
            "coordinates": [vertex.as_dict() for vertex in self.ring],
        }


class ZipCodeRequest(_Request):
    zip_code: str

    @field_validator("zip_code")
    @classmethod
    def _zip_non_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("zip code must be non-empty")
        return value


class AssignRecordsRequest(_Request):
    owner_id: str = Field(min_length=1)
    ring: tuple[LatLng, ...] = Field(min_length=4)
