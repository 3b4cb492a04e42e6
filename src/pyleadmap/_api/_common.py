"""Shared helpers for backend endpoint modules.

It is internal to pyleadmap and may change at any time.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from pyleadmap._normalize import safe_int
from pyleadmap.exceptions import LeadMapApiError

_logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def parse_items(model: type[M], items: Iterable[Any], *, endpoint: str) -> list[M]:
    """Validate each item, skipping (and logging) the ones that do not parse.

    Backend rows with missing or non-numeric coordinates are dropped
    rather than failing the whole batch.
    """
    parsed: list[M] = []
    skipped = 0
    for item in items:
        try:
            parsed.append(model.model_validate(item))
        except ValidationError as exc:
            skipped += 1
            _logger.debug("%s: skipping invalid %s: %s", endpoint, model.__name__, exc.errors(include_url=False))
    if skipped:
        _logger.debug("%s: kept %d, skipped %d %s rows", endpoint, len(parsed), skipped, model.__name__)
    return parsed


def parse_one(model: type[M], payload: Any, *, endpoint: str) -> M:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise LeadMapApiError(
            f"{endpoint} returned an unusable {model.__name__}",
            endpoint=endpoint,
            details=str(exc),
        ) from exc


def parse_count(payload: Any, *, endpoint: str, keys: tuple[str, ...] = ("total", "count", "updated")) -> int:
    """Read an integer count from a bare number or an object wrapping one."""
    value = payload
    if isinstance(payload, dict):
        value = next((payload[k] for k in keys if k in payload), None)
    elif isinstance(payload, list) and len(payload) == 1:
        value = payload[0]
    count = safe_int(value)
    if count is None:
        raise LeadMapApiError(f"{endpoint} did not return a count: {payload!r}", endpoint=endpoint)
    return count
