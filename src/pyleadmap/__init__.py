"""pyleadmap - Async viewport data orchestration for a lead map."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyleadmap")
except PackageNotFoundError:
    __version__ = "0+local"
from pyleadmap.client import LeadMapClient
from pyleadmap.config import LeadMapConfig, get_config, init_config, reset_config
from pyleadmap.exceptions import (
    BackendRejectionError,
    InvalidBoundsError,
    InvalidGeometryError,
    LeadMapApiError,
    LeadMapConfigError,
    LeadMapError,
    LeadMapTransportError,
)
from pyleadmap.geo import LatLng, Region
from pyleadmap.models import (
    ClusterPoint,
    IndividualRecord,
    Owner,
    RecordFilter,
    RecordStatus,
    Territory,
)
from pyleadmap.territory.manager import (
    Candidate,
    CandidateSource,
    CountStatus,
    TerritoryCount,
    TerritoryOverlayManager,
)
from pyleadmap.viewport.controller import ViewportController
from pyleadmap.viewport.markers import MarkerSnapshot
from pyleadmap.viewport.zoom import DisplayMode, bucket_for, display_mode_for

__all__ = [
    "__version__",
    "BackendRejectionError",
    "Candidate",
    "CandidateSource",
    "ClusterPoint",
    "CountStatus",
    "DisplayMode",
    "IndividualRecord",
    "InvalidBoundsError",
    "InvalidGeometryError",
    "LatLng",
    "LeadMapApiError",
    "LeadMapClient",
    "LeadMapConfig",
    "LeadMapConfigError",
    "LeadMapError",
    "LeadMapTransportError",
    "MarkerSnapshot",
    "Owner",
    "RecordFilter",
    "RecordStatus",
    "Region",
    "Territory",
    "TerritoryCount",
    "TerritoryOverlayManager",
    "ViewportController",
    "bucket_for",
    "display_mode_for",
    "get_config",
    "init_config",
    "reset_config",
]
