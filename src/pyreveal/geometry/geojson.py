"""GeoJSON conversion for the persisted revealed-area layout.

Revealed areas are stored as a feature collection holding a single
multipolygon feature of ``[longitude, latitude]`` rings.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import shapely
from shapely.errors import ShapelyError
from shapely.geometry import GeometryCollection, MultiPolygon, Polygon, mapping, shape
from shapely.geometry.base import BaseGeometry

from pyreveal.exceptions import InvalidGeometry

_POLYGONAL = ("Polygon", "MultiPolygon")


def polygon_parts(geometry: BaseGeometry) -> list[Polygon]:
    """Flatten *geometry* into its non-empty polygons, dropping lower-dimension parts."""
    if geometry.is_empty:
        return []
    if isinstance(geometry, Polygon):
        return [geometry]
    if isinstance(geometry, (MultiPolygon, GeometryCollection)):
        parts: list[Polygon] = []
        for part in geometry.geoms:
            parts.extend(polygon_parts(part))
        return parts
    return []


def to_multipolygon(geometry: BaseGeometry | None) -> MultiPolygon:
    """Coerce polygonal geometry into a (possibly empty) ``MultiPolygon``.

    Parts are taken as-is; callers that may hold overlapping parts must
    dissolve them first.
    """
    if geometry is None or geometry.is_empty:
        return MultiPolygon()
    if isinstance(geometry, MultiPolygon):
        return geometry
    return MultiPolygon(polygon_parts(geometry))


def _shape(data: Mapping[str, Any]) -> BaseGeometry:
    try:
        return shape(data)
    except (ShapelyError, ValueError, TypeError, KeyError, IndexError) as exc:
        raise InvalidGeometry(f"Malformed GeoJSON geometry: {exc}", reason="malformed") from exc


def parse_geometry(value: BaseGeometry | Mapping[str, Any]) -> BaseGeometry:
    """Parse a shapely geometry or GeoJSON geometry/Feature/FeatureCollection.

    A feature collection becomes a ``GeometryCollection`` of its feature
    geometries; features without geometry are skipped.
    """
    if isinstance(value, BaseGeometry):
        return value
    if not isinstance(value, Mapping):
        raise InvalidGeometry(f"Unsupported geometry value: {type(value).__name__}", reason="malformed")

    kind = value.get("type")
    if kind == "FeatureCollection":
        features = value.get("features")
        if not isinstance(features, list):
            raise InvalidGeometry("FeatureCollection without a features list", reason="malformed")
        parts = [parse_geometry(feature) for feature in features if isinstance(feature, Mapping) and feature.get("geometry")]
        return GeometryCollection(parts)
    if kind == "Feature":
        geometry = value.get("geometry")
        if not isinstance(geometry, Mapping):
            return GeometryCollection()
        return _shape(geometry)
    return _shape(value)


def to_feature_collection(geometry: BaseGeometry, properties: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Serialise polygonal *geometry* into the persisted feature-collection layout."""
    multi = to_multipolygon(geometry)
    if multi.is_empty:
        return {"type": "FeatureCollection", "features": []}
    geojson = mapping(multi)
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": dict(properties or {}),
                "geometry": {
                    "type": geojson["type"],
                    "coordinates": _as_lists(geojson["coordinates"]),
                },
            }
        ],
    }


def from_feature_collection(data: Mapping[str, Any]) -> MultiPolygon:
    """Read persisted revealed-area geometry back into a ``MultiPolygon``.

    Stored data is trusted to be polygonal; multiple features are dissolved.
    """
    geometry = parse_geometry(data)
    parts = polygon_parts(geometry)
    if not parts:
        return MultiPolygon()
    if len(parts) == 1:
        return MultiPolygon(parts)
    return to_multipolygon(shapely.union_all(parts))


def _as_lists(coords: Any) -> Any:
    if isinstance(coords, (tuple, list)):
        return [_as_lists(c) for c in coords]
    return coords
