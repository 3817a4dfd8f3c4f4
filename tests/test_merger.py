from __future__ import annotations

import pytest
from shapely.geometry import MultiPolygon, Polygon, box

from pyreveal.exceptions import InvalidGeometry
from pyreveal.geometry.geojson import to_feature_collection
from pyreveal.geometry.merger import geometries_equal, merge, simplify_revealed, snap
from pyreveal.geometry.regions import location_region
from pyreveal.geometry.validation import count_vertices

# Roughly 1 km x 1 km near the equator.
_SQUARE = box(0.0, 0.0, 0.009, 0.009)


def test_empty_plus_square_reports_change() -> None:
    result = merge(MultiPolygon(), _SQUARE)

    assert result.changed is True
    assert isinstance(result.union, MultiPolygon)
    assert geometries_equal(result.union, _SQUARE)


def test_none_existing_is_treated_as_empty() -> None:
    result = merge(None, _SQUARE)

    assert result.changed is True
    assert result.union.area == pytest.approx(_SQUARE.area)


def test_merging_same_square_twice_is_a_no_op() -> None:
    first = merge(MultiPolygon(), _SQUARE)
    second = merge(first.union, _SQUARE)

    assert second.changed is False
    assert second.union.equals(first.union)


def test_contained_candidate_changes_nothing() -> None:
    existing = merge(MultiPolygon(), _SQUARE).union
    inner = box(0.002, 0.002, 0.004, 0.004)

    result = merge(existing, inner)

    assert result.changed is False


def test_union_never_shrinks_existing() -> None:
    existing = merge(MultiPolygon(), _SQUARE).union
    for candidate in (
        box(0.005, 0.005, 0.02, 0.02),
        box(1.0, 1.0, 1.001, 1.001),
        box(0.001, 0.001, 0.002, 0.002),
    ):
        result = merge(existing, candidate)
        assert result.union.area >= existing.area - 1e-12
        assert result.union.buffer(1e-9).covers(existing)
        existing = result.union


def test_accumulation_order_does_not_matter() -> None:
    a = box(0.0, 0.0, 0.01, 0.01)
    b = box(0.005, 0.005, 0.015, 0.015)
    c = box(0.02, 0.0, 0.03, 0.01)

    forward = MultiPolygon()
    for candidate in (a, b, c):
        forward = merge(forward, candidate).union
    backward = MultiPolygon()
    for candidate in (c, b, a):
        backward = merge(backward, candidate).union

    assert geometries_equal(forward, backward)
    assert len(forward.geoms) == 2


def test_merge_is_deterministic_regardless_of_ring_start() -> None:
    rotated = Polygon([(0.009, 0.009), (0.0, 0.009), (0.0, 0.0), (0.009, 0.0)])

    first = merge(MultiPolygon(), _SQUARE).union
    second = merge(MultiPolygon(), rotated).union

    assert first.wkt == second.wkt


def test_overlapping_candidates_are_dissolved() -> None:
    existing = merge(MultiPolygon(), box(0.0, 0.0, 0.01, 0.01)).union

    result = merge(existing, box(0.005, 0.0, 0.015, 0.01))

    assert result.changed is True
    assert len(result.union.geoms) == 1
    assert result.union.area == pytest.approx(0.015 * 0.01)


def test_candidate_accepts_geojson_mapping() -> None:
    result = merge(MultiPolygon(), to_feature_collection(_SQUARE))

    assert result.changed is True
    assert geometries_equal(result.union, _SQUARE)


def test_empty_candidate_is_valid_and_unchanged() -> None:
    existing = merge(MultiPolygon(), _SQUARE).union

    result = merge(existing, Polygon())

    assert result.changed is False
    assert result.union.equals(existing)


def test_invalid_candidate_raises() -> None:
    bowtie = Polygon([(0, 0), (1, 1), (1, 0), (0, 1)])

    with pytest.raises(InvalidGeometry) as excinfo:
        merge(MultiPolygon(), bowtie)

    assert excinfo.value.reason == "self_intersection"
    assert excinfo.value.phase == "merge"


def test_differences_below_tolerance_are_not_changes() -> None:
    existing = merge(MultiPolygon(), _SQUARE).union
    nudged = box(0.0, 0.0, 0.009 + 1e-9, 0.009)

    result = merge(existing, nudged)

    assert result.changed is False


def test_snap_dissolves_overlapping_parts() -> None:
    parts = MultiPolygon([box(0, 0, 2, 2), box(1, 1, 3, 3)])

    snapped = snap(parts)

    assert len(snapped.geoms) == 1
    assert snapped.area == pytest.approx(7.0)


def test_simplify_reduces_vertices_without_losing_area() -> None:
    disc = location_region(51.5, -0.12, 100.0, resolution=256)
    revealed = merge(MultiPolygon(), disc).union

    simplified = simplify_revealed(revealed, 0.0001)

    assert count_vertices(simplified) < count_vertices(revealed)
    assert simplified.buffer(1e-9).covers(revealed)


def test_simplify_returns_input_when_nothing_to_gain() -> None:
    revealed = merge(MultiPolygon(), _SQUARE).union

    assert simplify_revealed(revealed, 0.0001).equals(revealed)
    assert simplify_revealed(revealed, 0.0).equals(revealed)
