"""Normalization helpers.

Centralizes defensive parsing of backend values.
"""

from __future__ import annotations

import math
from typing import Any


def safe_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    parsed = safe_float(value)
    if parsed is None:
        return None
    return int(parsed)


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def unwrap_list(payload: Any, *keys: str) -> list[Any]:
    """Return the list found under the first matching key, or *payload* itself.

    Backend endpoints answer either with a bare list or with an object
    wrapping it (``{"restaurants": [...]}``, ``{"data": [...]}``).
    """
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in keys:
            value = payload.get(key)
            if isinstance(value, list):
                return value
    return []
