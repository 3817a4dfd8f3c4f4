"""Revealed-area record model."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from shapely.geometry import MultiPolygon
from shapely.geometry.base import BaseGeometry

from pyreveal.geometry.geojson import from_feature_collection, parse_geometry, to_feature_collection, to_multipolygon
from pyreveal.models._base import RevealBaseModel, RevealTimestamp, utcnow


class RevealedArea(RevealBaseModel):
    """Accumulated geometry a scope (user or session) has explored.

    Parameters
    ----------
    id : str
        Opaque store identifier.
    scope : str
        Persistence partition the record belongs to.
    geometry : MultiPolygon
        Revealed region in lon/lat; empty when nothing is revealed yet.
    version : int
        Incremented on every geometry-changing write; used for conflict
        detection between concurrent writers.
    updated_at : datetime
        Time of the last geometry-changing write (UTC).
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str
    scope: str
    geometry: MultiPolygon = Field(default_factory=MultiPolygon)
    version: int = 1
    updated_at: RevealTimestamp = Field(default_factory=utcnow)

    @field_validator("geometry", mode="before")
    @classmethod
    def _coerce_geometry(cls, value: Any) -> MultiPolygon:
        if value is None:
            return MultiPolygon()
        if isinstance(value, Mapping):
            if value.get("type") == "FeatureCollection":
                return from_feature_collection(value)
            value = parse_geometry(value)
        if isinstance(value, BaseGeometry):
            return to_multipolygon(value)
        raise ValueError(f"unsupported geometry value: {type(value).__name__}")

    @property
    def is_empty(self) -> bool:
        return self.geometry.is_empty

    def to_feature_collection(self) -> dict[str, Any]:
        return to_feature_collection(
            self.geometry,
            {"id": self.id, "scope": self.scope, "version": self.version, "updatedAt": self.updated_at.isoformat()},
        )

    @classmethod
    def from_feature_collection(cls, data: Mapping[str, Any], **fields: Any) -> RevealedArea:
        """Build a record from the persisted layout.

        Record fields missing from *fields* are read from the first
        feature's properties.
        """
        features = data.get("features") or []
        properties: dict[str, Any] = {}
        if features and isinstance(features[0], Mapping):
            properties = dict(features[0].get("properties") or {})
        merged = {**properties, **{to_camel(key): value for key, value in fields.items()}}
        return cls.model_validate({**merged, "geometry": from_feature_collection(data)})

    def with_geometry(self, geometry: MultiPolygon, *, updated_at: datetime) -> RevealedArea:
        """Copy with new geometry and the next version."""
        return self.model_copy(update={"geometry": geometry, "version": self.version + 1, "updated_at": updated_at})
