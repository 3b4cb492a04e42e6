"""Custom exception hierarchy for pyleadmap."""

from __future__ import annotations


class LeadMapError(Exception):
    """Base exception for all pyleadmap errors."""


class LeadMapConfigError(LeadMapError):
    """Invalid or missing configuration."""


class LeadMapTransportError(LeadMapError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class LeadMapApiError(LeadMapError):
    """Backend answered, but not with what the caller asked for."""

    def __init__(
        self,
        message: str,
        *,
        endpoint: str = "",
        details: str = "",
    ) -> None:
        self.endpoint = endpoint
        self.details = details
        super().__init__(message)


class BackendRejectionError(LeadMapApiError):
    """Backend refused the request with an explicit error payload.

    Raised for non-2xx responses whose body carries a ``message``
    (and optionally ``details``), e.g. a failed territory insert.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
        details: str = "",
    ) -> None:
        self.status_code = status_code
        super().__init__(message, endpoint=endpoint, details=details)


class InvalidGeometryError(LeadMapError, ValueError):
    """Polygon ring is unusable (too few vertices, non-finite coordinate, bad WKT)."""


class InvalidBoundsError(LeadMapError, ValueError):
    """Region corners are non-finite or inverted.

    Usually means the map has not finished laying out yet; callers
    skip the fetch instead of reporting it.
    """
