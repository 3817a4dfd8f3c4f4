from __future__ import annotations

import pytest
from shapely.geometry import LineString, MultiPolygon, Point, Polygon, box

from pyreveal.exceptions import InvalidGeometry
from pyreveal.geometry.validation import ComplexityLevel, geometry_complexity, validate_candidate


@pytest.mark.parametrize(
    ("candidate", "reason"),
    [
        ({"type": "Polygon", "coordinates": [[[0, 0], [1, 1], [1, 1], [0, 0]]]}, "degenerate_ring"),
        (Polygon([(0, 0), (1, 1), (1, 0), (0, 1)]), "self_intersection"),
        (Polygon([(0, 89), (1, 89), (1, 95)]), "out_of_range"),
        (Polygon([(179, 0), (181, 0), (181, 1)]), "out_of_range"),
        (LineString([(0, 0), (1, 1)]), "not_polygonal"),
        (Point(0, 0), "not_polygonal"),
        ({"type": "Polygon"}, "malformed"),
        ({"type": "Hexagon", "coordinates": []}, "malformed"),
    ],
)
def test_invalid_candidates_are_rejected(candidate: object, reason: str) -> None:
    with pytest.raises(InvalidGeometry) as excinfo:
        validate_candidate(candidate)  # type: ignore[arg-type]
    assert excinfo.value.reason == reason


def test_near_duplicate_vertices_count_as_one() -> None:
    # Three vertices, two of which coincide within the snap tolerance.
    ring = [(0.0, 0.0), (1.0, 1.0), (1.0 + 1e-9, 1.0), (0.0, 0.0)]

    with pytest.raises(InvalidGeometry) as excinfo:
        validate_candidate(Polygon(ring))

    assert excinfo.value.reason == "degenerate_ring"


def test_valid_candidates_pass_through() -> None:
    square = box(0, 0, 1, 1)
    with_hole = Polygon(
        [(0, 0), (10, 0), (10, 10), (0, 10)],
        holes=[[(2, 2), (4, 2), (4, 4), (2, 4)]],
    )

    assert validate_candidate(square).equals(square)
    assert validate_candidate(with_hole).equals(with_hole)
    assert validate_candidate(MultiPolygon([square, box(5, 5, 6, 6)])).area == pytest.approx(2.0)


def test_empty_candidates_are_valid() -> None:
    assert validate_candidate(Polygon()).is_empty
    assert validate_candidate({"type": "FeatureCollection", "features": []}).is_empty


def test_complexity_levels() -> None:
    low = geometry_complexity(box(0, 0, 1, 1))
    assert low.total_vertices == 5
    assert low.ring_count == 1
    assert low.level is ComplexityLevel.LOW

    medium = geometry_complexity(Point(0, 0).buffer(1, quad_segs=150))
    assert medium.total_vertices > 500
    assert medium.level is ComplexityLevel.MEDIUM

    high = geometry_complexity(Point(0, 0).buffer(1, quad_segs=300))
    assert high.level is ComplexityLevel.HIGH
    assert high.average_ring_vertices == high.total_vertices


def test_empty_complexity() -> None:
    empty = geometry_complexity(MultiPolygon())

    assert empty.total_vertices == 0
    assert empty.average_ring_vertices == 0.0
    assert empty.level is ComplexityLevel.LOW
