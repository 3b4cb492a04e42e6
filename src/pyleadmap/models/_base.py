"""Base model and enum for backend payloads.

Every response model inherits from :class:`LeadMapBaseModel` which
provides:

* A ``model_validator(mode="before")`` that drops empty strings and
  NaN so the field default is used.
* A ``raw`` dict that captures the original payload.

Enumerated codes inherit from :class:`LeadMapEnum` which resolves any
unmapped value to ``UNKNOWN`` (``-1``) instead of raising.
"""

from __future__ import annotations

import enum
import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class LeadMapEnum(enum.IntEnum):
    """Base for backend code enums.

    Every subclass **must** define ``UNKNOWN = -1``.
    """

    @classmethod
    def _missing_(cls, value: object) -> LeadMapEnum:
        unknown: LeadMapEnum = cls.UNKNOWN  # type: ignore[attr-defined]
        return unknown


class LeadMapBaseModel(BaseModel):
    """Base for backend response models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    raw: dict[str, Any] = Field(default_factory=dict, repr=False, exclude=True)
    """Original backend dict."""

    @staticmethod
    def _clean_dict(values: dict[str, Any]) -> dict[str, Any]:
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_values(cls, values: Any) -> Any:
        """Drop empty values and stash the raw payload."""
        if not isinstance(values, dict):
            return values
        cleaned = LeadMapBaseModel._clean_dict(values)
        # Keep a caller-supplied raw (constructing with kwargs).
        if "raw" not in values:
            cleaned["raw"] = dict(values)
        return cleaned
