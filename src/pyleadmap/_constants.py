"""Internal constants shared across the library."""

USER_AGENT = "pyleadmap/1 aiohttp"

# ------------------------------------------------------------------
# Backend endpoints
# ------------------------------------------------------------------

CLUSTERS_RPC = "/rest/v1/rpc/get_cached_clusters"
ASSIGN_RPC = "/rest/v1/rpc/assign_restaurants_within_polygon"
PROFILES_PATH = "/rest/v1/profiles"
ZIP_BOUNDARY_PATH = "/rest/v1/zctas"
ZIP_COLUMN = "ZCTA5CE20"

RECORDS_PATH = "/api/restaurants"
TERRITORIES_PATH = "/api/territories"
SAVE_TERRITORY_PATH = "/api/saveTerritory"
TERRITORY_STATS_PATH = "/api/territoryStats"

# ------------------------------------------------------------------
# Viewport policy defaults
# ------------------------------------------------------------------

DEFAULT_DISPLAY_THRESHOLD = 12.0
DEFAULT_GLOBAL_BUCKET = 5
DEFAULT_CLUSTER_EXPANSION = 2.0
DEFAULT_RECORD_EXPANSION = 3.0
DEFAULT_DEBOUNCE_SECONDS = 0.5

#: Decimal places kept for cluster cache keys (~11 m at the equator).
CACHE_KEY_PRECISION = 4

# ------------------------------------------------------------------
# Territories
# ------------------------------------------------------------------

DEFAULT_TERRITORY_COLOR = "#FF0000"
TEMP_ID_PREFIX = "temp-"
MIN_RING_VERTICES = 3

# Marker scale range used for cluster bubbles.
_SCALE_MIN = 20.0
_SCALE_MAX = 50.0
_SCALE_COUNT_SPAN = 999


def marker_scale(count: int) -> float:
    """Linear bubble scale for a cluster of *count* records (20-50, clamped)."""
    normalized = min(1.0, max(0.0, (count - 1) / _SCALE_COUNT_SPAN))
    return _SCALE_MIN + normalized * (_SCALE_MAX - _SCALE_MIN)
