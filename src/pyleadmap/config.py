"""Client configuration for pyleadmap."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyleadmap._constants import (
    DEFAULT_CLUSTER_EXPANSION,
    DEFAULT_DEBOUNCE_SECONDS,
    DEFAULT_DISPLAY_THRESHOLD,
    DEFAULT_GLOBAL_BUCKET,
    DEFAULT_RECORD_EXPANSION,
)
from pyleadmap.exceptions import LeadMapConfigError


@dataclasses.dataclass(frozen=True)
class LeadMapConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        Backend base URL serving both the REST/RPC routes and the app API.
    api_key : str
        Key sent as ``apikey`` and ``Authorization: Bearer`` header.
    boundary_url : str or None
        Base URL of the postal boundary dataset. Defaults to ``base_url``.
    boundary_key : str or None
        Key for the boundary dataset. Defaults to ``api_key``.
    display_threshold : float
        Zoom at and above which individual records replace clusters.
    global_bucket : int
        Bucket whose aggregate is requested without bounds and cached
        under a single key.
    cluster_expansion : float
        Prefetch factor applied to the viewport for cluster queries.
    record_expansion : float
        Prefetch factor applied to the viewport for record queries.
    debounce_seconds : float
        Stabilization window for idle/zoom notifications.
    request_timeout : float
        Total timeout for a single HTTP request in seconds.
    """

    base_url: str
    api_key: str
    boundary_url: str | None = None
    boundary_key: str | None = None
    display_threshold: float = DEFAULT_DISPLAY_THRESHOLD
    global_bucket: int = DEFAULT_GLOBAL_BUCKET
    cluster_expansion: float = DEFAULT_CLUSTER_EXPANSION
    record_expansion: float = DEFAULT_RECORD_EXPANSION
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    request_timeout: float = 30.0

    def __post_init__(self) -> None:
        if not self.base_url:
            raise LeadMapConfigError("base_url must be set")
        if not self.api_key:
            raise LeadMapConfigError("api_key must be set")
        if self.cluster_expansion < 1 or self.record_expansion < 1:
            raise LeadMapConfigError("expansion factors must be >= 1")
        if self.debounce_seconds < 0:
            raise LeadMapConfigError("debounce_seconds must be >= 0")
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))
        if self.boundary_url:
            object.__setattr__(self, "boundary_url", self.boundary_url.rstrip("/"))

    @property
    def boundary_base_url(self) -> str:
        return self.boundary_url or self.base_url

    @property
    def boundary_api_key(self) -> str:
        return self.boundary_key or self.api_key

    @classmethod
    def from_env(cls, **overrides: Any) -> LeadMapConfig:
        """Create configuration from environment variables.

        Reads ``LEADMAP_BASE_URL``, ``LEADMAP_API_KEY`` and the optional
        ``LEADMAP_*`` variables below. Explicit keyword arguments override
        environment values.

        Raises
        ------
        LeadMapConfigError
            If a numeric variable cannot be parsed or a required one is missing.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "LEADMAP_BASE_URL": "base_url",
            "LEADMAP_API_KEY": "api_key",
            "LEADMAP_BOUNDARY_URL": "boundary_url",
            "LEADMAP_BOUNDARY_KEY": "boundary_key",
        }
        _ENV_NUM_MAP: dict[str, tuple[str, type]] = {
            "LEADMAP_DISPLAY_THRESHOLD": ("display_threshold", float),
            "LEADMAP_GLOBAL_BUCKET": ("global_bucket", int),
            "LEADMAP_CLUSTER_EXPANSION": ("cluster_expansion", float),
            "LEADMAP_RECORD_EXPANSION": ("record_expansion", float),
            "LEADMAP_DEBOUNCE_SECONDS": ("debounce_seconds", float),
            "LEADMAP_REQUEST_TIMEOUT": ("request_timeout", float),
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        for env_key, (field_name, caster) in _ENV_NUM_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = caster(val)
            except ValueError as exc:
                raise LeadMapConfigError(f"{env_key} is not a valid {caster.__name__}: {val!r}") from exc

        config_kwargs.update(overrides)
        for required in ("base_url", "api_key"):
            if not config_kwargs.get(required):
                raise LeadMapConfigError(f"missing required setting {required!r} (LEADMAP_{required.upper()})")

        return cls(**config_kwargs)


# ------------------------------------------------------------------
# Process-wide context
# ------------------------------------------------------------------

_active_config: LeadMapConfig | None = None


def init_config(config: LeadMapConfig) -> LeadMapConfig:
    """Install *config* as the process-wide configuration."""
    global _active_config
    _active_config = config
    return config


def get_config() -> LeadMapConfig:
    """Return the process-wide configuration installed by :func:`init_config`."""
    if _active_config is None:
        raise LeadMapConfigError("pyleadmap is not configured; call init_config() first")
    return _active_config


def reset_config() -> None:
    global _active_config
    _active_config = None
