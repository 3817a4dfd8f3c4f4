"""Exploration statistics derived from revealed geometry and location history.

Numbers only; turning them into display strings is the UI's job.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from pyproj import Geod
from shapely.geometry.base import BaseGeometry

from pyreveal._constants import EARTH_SURFACE_AREA_KM2, GEOD_ELLIPSOID
from pyreveal.geometry.validation import count_vertices
from pyreveal.models.location import Location
from pyreveal.models.revealed_area import RevealedArea

_logger = logging.getLogger(__name__)

_GEOD = Geod(ellps=GEOD_ELLIPSOID)


@dataclass(frozen=True)
class ExplorationStats:
    revealed_area_km2: float
    world_percentage: float
    distance_km: float
    location_count: int
    vertex_count: int
    last_updated: datetime | None


def revealed_area_km2(geometry: BaseGeometry) -> float:
    """Geodesic area of lon/lat *geometry* on the WGS84 ellipsoid, in km²."""
    if geometry.is_empty:
        return 0.0
    area_m2, _perimeter = _GEOD.geometry_area_perimeter(geometry)
    return abs(area_m2) / 1_000_000.0


def world_percentage(area_km2: float) -> float:
    return area_km2 / EARTH_SURFACE_AREA_KM2 * 100.0


def total_distance_km(locations: Sequence[Location]) -> float:
    """Geodesic length of the track through *locations* in timestamp order."""
    if len(locations) < 2:
        return 0.0
    ordered = sorted(locations, key=lambda loc: loc.timestamp)
    lons = [loc.longitude for loc in ordered]
    lats = [loc.latitude for loc in ordered]
    return _GEOD.line_length(lons, lats) / 1000.0


def compute_statistics(area: RevealedArea | None, locations: Sequence[Location]) -> ExplorationStats:
    geometry = area.geometry if area is not None else None
    area_km2 = revealed_area_km2(geometry) if geometry is not None else 0.0
    stats = ExplorationStats(
        revealed_area_km2=area_km2,
        world_percentage=world_percentage(area_km2),
        distance_km=total_distance_km(locations),
        location_count=len(locations),
        vertex_count=count_vertices(geometry) if geometry is not None else 0,
        last_updated=area.updated_at if area is not None else None,
    )
    _logger.debug("Exploration statistics: %s", stats)
    return stats
