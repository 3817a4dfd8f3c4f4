"""Viewport bounds and transient viewport state."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, model_validator

from pyreveal._constants import in_latitude_range, in_longitude_range


class ViewportBounds(BaseModel):
    """Visible map bounds as ``[min_lng, min_lat, max_lng, max_lat]``."""

    model_config = ConfigDict(frozen=True)

    min_lng: float
    min_lat: float
    max_lng: float
    max_lat: float

    @model_validator(mode="after")
    def _check_bounds(self) -> ViewportBounds:
        values = self.as_bbox()
        if not all(math.isfinite(v) for v in values):
            raise ValueError(f"bounds contain non-finite values: {values}")
        if not (in_longitude_range(self.min_lng) and in_longitude_range(self.max_lng)):
            raise ValueError(f"longitude out of range: {values}")
        if not (in_latitude_range(self.min_lat) and in_latitude_range(self.max_lat)):
            raise ValueError(f"latitude out of range: {values}")
        if self.min_lng >= self.max_lng or self.min_lat >= self.max_lat:
            raise ValueError(f"min values must be less than max values: {values}")
        return self

    @classmethod
    def from_bbox(cls, bbox: Sequence[float]) -> ViewportBounds:
        if len(bbox) != 4:
            raise ValueError(f"bbox must have 4 values, got {len(bbox)}")
        min_lng, min_lat, max_lng, max_lat = (float(v) for v in bbox)
        return cls(min_lng=min_lng, min_lat=min_lat, max_lng=max_lng, max_lat=max_lat)

    def as_bbox(self) -> tuple[float, float, float, float]:
        return (self.min_lng, self.min_lat, self.max_lng, self.max_lat)

    def differs_from(self, other: ViewportBounds | None, threshold: float) -> bool:
        """Whether any edge moved by at least *threshold* degrees relative to *other*."""
        if other is None:
            return True
        return any(abs(a - b) >= threshold for a, b in zip(self.as_bbox(), other.as_bbox()))


@dataclass
class ViewportState:
    """Transient map state owned by the viewport controller. Never persisted."""

    bounds: ViewportBounds | None = None
    loaded: bool = False
    is_changing: bool = False
