"""Candidate-region validation and complexity metrics."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from shapely.geometry import LinearRing, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.validation import explain_validity

from pyreveal._constants import (
    COMPLEXITY_HIGH_VERTICES,
    COMPLEXITY_MEDIUM_VERTICES,
    SNAP_TOLERANCE_DEGREES,
    in_latitude_range,
    in_longitude_range,
)
from pyreveal.exceptions import InvalidGeometry
from pyreveal.geometry.geojson import parse_geometry

_logger = logging.getLogger(__name__)


class ComplexityLevel(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class GeometryComplexity:
    """Vertex statistics used to decide when revealed geometry needs compacting."""

    total_vertices: int = 0
    ring_count: int = 0
    max_ring_vertices: int = 0

    @property
    def average_ring_vertices(self) -> float:
        return self.total_vertices / self.ring_count if self.ring_count else 0.0

    @property
    def level(self) -> ComplexityLevel:
        if self.total_vertices > COMPLEXITY_HIGH_VERTICES:
            return ComplexityLevel.HIGH
        if self.total_vertices > COMPLEXITY_MEDIUM_VERTICES:
            return ComplexityLevel.MEDIUM
        return ComplexityLevel.LOW


def _iter_polygons(geometry: BaseGeometry) -> Iterator[BaseGeometry]:
    if hasattr(geometry, "geoms"):
        for part in geometry.geoms:
            yield from _iter_polygons(part)
    else:
        yield geometry


def _rings(polygon: Polygon) -> Iterator[LinearRing]:
    yield polygon.exterior
    yield from polygon.interiors


def geometry_complexity(geometry: BaseGeometry) -> GeometryComplexity:
    total = 0
    rings = 0
    largest = 0
    for part in _iter_polygons(geometry):
        if not isinstance(part, Polygon) or part.is_empty:
            continue
        for ring in _rings(part):
            count = len(ring.coords)
            total += count
            rings += 1
            largest = max(largest, count)
    return GeometryComplexity(total_vertices=total, ring_count=rings, max_ring_vertices=largest)


def count_vertices(geometry: BaseGeometry) -> int:
    return geometry_complexity(geometry).total_vertices


def _distinct_vertices(coords: list[tuple[float, ...]], tolerance: float) -> int:
    snapped = {(round(c[0] / tolerance), round(c[1] / tolerance)) for c in coords}
    return len(snapped)


def _check_ring(ring: LinearRing, *, where: str, tolerance: float) -> None:
    coords = list(ring.coords)
    for coord in coords:
        lon, lat = coord[0], coord[1]
        if not (math.isfinite(lon) and math.isfinite(lat)):
            raise InvalidGeometry(f"{where}: non-finite coordinate {coord}", reason="non_finite")
        if not in_longitude_range(lon) or not in_latitude_range(lat):
            raise InvalidGeometry(f"{where}: coordinate out of range {coord}", reason="out_of_range")

    if _distinct_vertices(coords, tolerance) < 3:
        raise InvalidGeometry(f"{where}: ring has fewer than 3 distinct vertices", reason="degenerate_ring")

    if not ring.is_simple:
        raise InvalidGeometry(f"{where}: ring is self-intersecting", reason="self_intersection")


def validate_candidate(
    value: BaseGeometry | Mapping[str, Any],
    *,
    snap_tolerance: float = SNAP_TOLERANCE_DEGREES,
) -> BaseGeometry:
    """Parse and validate a candidate region, returning the parsed geometry.

    Raises
    ------
    InvalidGeometry
        When the candidate is not polygonal, has a degenerate or
        self-intersecting ring, or has coordinates outside valid
        longitude/latitude ranges.  Empty candidates are valid.
    """
    geometry = parse_geometry(value)

    for index, part in enumerate(_iter_polygons(geometry)):
        if part.is_empty:
            continue
        if not isinstance(part, Polygon):
            raise InvalidGeometry(f"part {index}: {part.geom_type} is not polygonal", reason="not_polygonal")
        for ring_index, ring in enumerate(_rings(part)):
            _check_ring(ring, where=f"part {index} ring {ring_index}", tolerance=snap_tolerance)
        if not part.is_valid:
            raise InvalidGeometry(f"part {index}: {explain_validity(part)}", reason="invalid_polygon")

    _logger.debug("Candidate validated: %s", geometry_complexity(geometry))
    return geometry
