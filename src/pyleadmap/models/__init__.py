"""Data models for backend payloads and requests."""

from pyleadmap.models._base import LeadMapBaseModel, LeadMapEnum
from pyleadmap.geo import LatLng, Region
from pyleadmap.models.markers import ClusterPoint, IndividualRecord, Owner, RecordStatus
from pyleadmap.models.requests import (
    FILTER_OPERATORS,
    AssignRecordsRequest,
    RecordFilter,
    SaveTerritoryRequest,
    ZipCodeRequest,
)
from pyleadmap.models.territory import Territory

__all__ = [
    "FILTER_OPERATORS",
    "AssignRecordsRequest",
    "ClusterPoint",
    "IndividualRecord",
    "LatLng",
    "LeadMapBaseModel",
    "LeadMapEnum",
    "Owner",
    "RecordFilter",
    "RecordStatus",
    "Region",
    "SaveTerritoryRequest",
    "Territory",
    "ZipCodeRequest",
]
