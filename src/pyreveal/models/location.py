"""GPS fix model."""

from __future__ import annotations

import math
from typing import Any

from pydantic import AliasChoices, Field, field_validator

from pyreveal._constants import in_latitude_range, in_longitude_range
from pyreveal.models._base import RevealBaseModel, RevealTimestamp


class Location(RevealBaseModel):
    """A single point-in-time position fix.

    Append-only and immutable once stored.

    Parameters
    ----------
    latitude : float
        Latitude in degrees, -90 to 90.
    longitude : float
        Longitude in degrees, -180 to 180.
    timestamp : datetime
        Time of the fix (UTC).  Epoch seconds or milliseconds are accepted.
    id : int or None
        Store-assigned identifier, ``None`` until persisted.
    """

    latitude: float = Field(validation_alias=AliasChoices("latitude", "lat"))
    longitude: float = Field(validation_alias=AliasChoices("longitude", "lon", "lng"))
    timestamp: RevealTimestamp
    id: int | None = None

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _coerce_float(cls, value: Any) -> float:
        result = float(value)
        if not math.isfinite(result):
            raise ValueError("coordinate must be finite")
        return result

    @field_validator("latitude")
    @classmethod
    def _check_latitude(cls, value: float) -> float:
        if not in_latitude_range(value):
            raise ValueError(f"latitude out of range: {value}")
        return value

    @field_validator("longitude")
    @classmethod
    def _check_longitude(cls, value: float) -> float:
        if not in_longitude_range(value):
            raise ValueError(f"longitude out of range: {value}")
        return value

    def is_near(self, other: Location | None, tolerance: float) -> bool:
        """Return ``True`` when *other* is the same fix within *tolerance* degrees."""
        if other is None:
            return False
        return abs(self.latitude - other.latitude) < tolerance and abs(self.longitude - other.longitude) < tolerance
