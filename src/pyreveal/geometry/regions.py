"""Ready-made candidate region builders.

Any ``compute_candidate_region(bounds)`` callable can drive the update
pipeline; these cover the two common cases: reveal the whole visible
viewport, or reveal a disc around a GPS fix.
"""

from __future__ import annotations

import numpy as np
from pyproj import Geod
from shapely.affinity import translate
from shapely.geometry import MultiPolygon, Polygon, box

from pyreveal._constants import BUFFER_RESOLUTION, GEOD_ELLIPSOID
from pyreveal.geometry.geojson import polygon_parts
from pyreveal.models.viewport import ViewportBounds

_GEOD = Geod(ellps=GEOD_ELLIPSOID)

# Longitude windows that fold back into [-180, 180] and the shift that does it.
_WRAP_WINDOWS = (
    (box(-180.0, -90.0, 180.0, 90.0), 0.0),
    (box(180.0, -90.0, 540.0, 90.0), -360.0),
    (box(-540.0, -90.0, -180.0, 90.0), 360.0),
)


def viewport_region(bounds: ViewportBounds) -> Polygon:
    """Candidate region covering the full visible map bounds."""
    return box(bounds.min_lng, bounds.min_lat, bounds.max_lng, bounds.max_lat)


def _split_at_antimeridian(polygon: Polygon) -> Polygon | MultiPolygon:
    min_lon, _min_lat, max_lon, _max_lat = polygon.bounds
    if min_lon >= -180.0 and max_lon <= 180.0:
        return polygon
    parts: list[Polygon] = []
    for window, shift in _WRAP_WINDOWS:
        piece = polygon.intersection(window)
        if shift:
            piece = translate(piece, xoff=shift)
        parts.extend(polygon_parts(piece))
    return MultiPolygon(parts)


def location_region(
    latitude: float,
    longitude: float,
    radius_meters: float,
    *,
    resolution: int = BUFFER_RESOLUTION,
) -> Polygon | MultiPolygon:
    """Geodesic disc of *radius_meters* around a fix, as lon/lat polygon(s).

    Latitudes are clamped to the valid range near the poles.  A disc
    crossing the antimeridian is split into one part on each side.
    """
    if radius_meters <= 0:
        raise ValueError(f"radius_meters must be positive, got {radius_meters}")
    azimuths = np.linspace(0.0, 360.0, resolution, endpoint=False)
    lons, lats, _back = _GEOD.fwd(
        np.full(resolution, longitude),
        np.full(resolution, latitude),
        azimuths,
        np.full(resolution, radius_meters),
    )
    # Geod.fwd wraps longitudes into [-180, 180]; keep the ring continuous around the centre.
    lons = longitude + (np.asarray(lons) - longitude + 180.0) % 360.0 - 180.0
    lats = np.clip(lats, -90.0, 90.0)
    return _split_at_antimeridian(Polygon(zip(lons.tolist(), lats.tolist())))
