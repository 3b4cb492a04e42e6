"""Cluster and individual record models."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from pyleadmap._constants import marker_scale
from pyleadmap._normalize import safe_float, safe_int, safe_str
from pyleadmap.models._base import LeadMapBaseModel, LeadMapEnum


class RecordStatus(LeadMapEnum):
    """Lead pipeline status code."""

    UNKNOWN = -1
    NEW = 0
    CONTACTED = 1
    QUALIFIED = 2
    CLOSED = 3


class ClusterPoint(LeadMapBaseModel):
    """Aggregated marker returned by the cluster RPC."""

    latitude: float
    longitude: float
    count: int = Field(default=1, ge=1)

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _coerce_coordinate(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("count", mode="before")
    @classmethod
    def _coerce_count(cls, value: Any) -> int:
        parsed = safe_int(value)
        return 1 if parsed is None else parsed

    @property
    def marker_scale(self) -> float:
        return marker_scale(self.count)


class IndividualRecord(LeadMapBaseModel):
    """A single geolocated lead.

    ``assigned_owner`` is ``None`` for unassigned leads.
    """

    id: str
    latitude: float
    longitude: float
    status: RecordStatus = RecordStatus.UNKNOWN
    assigned_owner: str | None = Field(
        default=None,
        validation_alias=AliasChoices("assigned_owner", "assignedOwner", "restaurant_user_id", "user_id"),
    )

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str | None:
        return safe_str(value)

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _coerce_coordinate(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> RecordStatus:
        parsed = safe_int(value)
        return RecordStatus.UNKNOWN if parsed is None else RecordStatus(parsed)

    @field_validator("assigned_owner", mode="before")
    @classmethod
    def _coerce_owner(cls, value: Any) -> str | None:
        return safe_str(value)

    @property
    def is_assigned(self) -> bool:
        return self.assigned_owner is not None


class Owner(LeadMapBaseModel):
    """A user records can be assigned to."""

    user_id: str
    first_name: str = ""
    last_name: str = ""

    @field_validator("user_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str | None:
        return safe_str(value)

    @property
    def display_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part) or self.user_id
