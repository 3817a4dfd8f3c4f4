from __future__ import annotations

import math
from datetime import UTC, datetime

import pytest
from pyproj import Geod
from shapely.geometry import MultiPolygon, Point, box

from pyreveal.geometry.regions import location_region, viewport_region
from pyreveal.geometry.stats import compute_statistics, revealed_area_km2, total_distance_km, world_percentage
from pyreveal.geometry.validation import validate_candidate
from pyreveal.models import Location, RevealedArea, ViewportBounds

_GEOD = Geod(ellps="WGS84")


def test_viewport_region_is_the_bounds_box() -> None:
    bounds = ViewportBounds.from_bbox([-0.2, 51.4, 0.1, 51.6])

    region = viewport_region(bounds)

    assert region.bounds == (-0.2, 51.4, 0.1, 51.6)


def test_location_region_has_requested_radius() -> None:
    region = location_region(51.5, -0.12, 100.0, resolution=64)

    assert region.is_valid
    assert len(region.exterior.coords) == 65
    for lon, lat in list(region.exterior.coords)[:-1]:
        _az, _back, dist = _GEOD.inv(-0.12, 51.5, lon, lat)
        assert dist == pytest.approx(100.0, rel=1e-6)
    assert revealed_area_km2(region) == pytest.approx(math.pi * 0.1**2, rel=0.01)


@pytest.mark.parametrize("longitude", [179.9995, -179.9995])
def test_location_region_is_split_at_antimeridian(longitude: float) -> None:
    region = location_region(-17.0, longitude, 100.0)

    assert isinstance(region, MultiPolygon)
    assert len(region.geoms) == 2
    assert validate_candidate(region).equals(region)
    min_lon, _min_lat, max_lon, _max_lat = region.bounds
    assert min_lon == pytest.approx(-180.0)
    assert max_lon == pytest.approx(180.0)
    assert region.contains(Point(longitude, -17.0))
    # Splitting keeps the full disc area.
    assert revealed_area_km2(region) == pytest.approx(math.pi * 0.1**2, rel=0.01)


def test_location_region_rejects_non_positive_radius() -> None:
    with pytest.raises(ValueError):
        location_region(0.0, 0.0, 0.0)


def test_area_of_one_degree_cell_at_equator() -> None:
    # A 1x1 degree cell on the equator is roughly 12,300 km².
    assert revealed_area_km2(box(0, 0, 1, 1)) == pytest.approx(12_308, rel=0.01)
    assert revealed_area_km2(MultiPolygon()) == 0.0


def test_world_percentage() -> None:
    assert world_percentage(510_072_000.0) == pytest.approx(100.0)
    assert world_percentage(0.0) == 0.0


def test_distance_follows_timestamp_order() -> None:
    locations = [
        Location(latitude=0.0, longitude=1.0, timestamp=datetime(2024, 1, 1, 0, 2, tzinfo=UTC)),
        Location(latitude=0.0, longitude=0.0, timestamp=datetime(2024, 1, 1, 0, 0, tzinfo=UTC)),
        Location(latitude=0.0, longitude=0.5, timestamp=datetime(2024, 1, 1, 0, 1, tzinfo=UTC)),
    ]

    # One degree of longitude along the equator on WGS84.
    assert total_distance_km(locations) == pytest.approx(111.319, rel=1e-3)
    assert total_distance_km(locations[:1]) == 0.0


def test_compute_statistics() -> None:
    updated = datetime(2024, 6, 1, tzinfo=UTC)
    area = RevealedArea(id="a", scope="s", geometry=box(0, 0, 1, 1), updated_at=updated)
    locations = [Location(latitude=0.5, longitude=0.5, timestamp=0)]

    stats = compute_statistics(area, locations)

    assert stats.revealed_area_km2 == pytest.approx(12_308, rel=0.01)
    assert stats.world_percentage == pytest.approx(stats.revealed_area_km2 / 510_072_000.0 * 100.0)
    assert stats.location_count == 1
    assert stats.distance_km == 0.0
    assert stats.vertex_count == 5
    assert stats.last_updated == updated


def test_compute_statistics_without_area() -> None:
    stats = compute_statistics(None, [])

    assert stats.revealed_area_km2 == 0.0
    assert stats.vertex_count == 0
    assert stats.last_updated is None
