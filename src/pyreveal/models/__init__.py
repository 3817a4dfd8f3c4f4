"""Data models for pyreveal records and viewport state."""

from pyreveal.models._base import RevealBaseModel, RevealTimestamp, parse_timestamp
from pyreveal.models.location import Location
from pyreveal.models.revealed_area import RevealedArea
from pyreveal.models.viewport import ViewportBounds, ViewportState

__all__ = [
    "Location",
    "RevealBaseModel",
    "RevealTimestamp",
    "RevealedArea",
    "ViewportBounds",
    "ViewportState",
    "parse_timestamp",
]
