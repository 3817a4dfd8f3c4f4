from __future__ import annotations

from shapely.geometry import MultiPolygon, box

from pyreveal._logfmt import describe_geometry, truncate_for_log
from pyreveal.geometry.geojson import to_feature_collection


def test_describe_geometry() -> None:
    assert describe_geometry(None) == "<none>"
    assert describe_geometry(MultiPolygon()) == "MultiPolygon(empty)"
    assert describe_geometry(MultiPolygon([box(0, 0, 1, 1), box(2, 2, 3, 3)])) == "MultiPolygon(parts=2, vertices=10)"


def test_truncate_for_log_hides_coordinates() -> None:
    payload = {"geometry": to_feature_collection(box(0, 0, 1, 1)), "expectedVersion": 3}

    shortened = truncate_for_log(payload)

    assert shortened["expectedVersion"] == 3
    assert shortened["geometry"]["features"][0]["geometry"]["coordinates"] == "<coordinates>"


def test_truncate_for_log_truncates_long_strings_and_lists() -> None:
    shortened = truncate_for_log({"value": "x" * 600, "items": list(range(20))}, max_string=10, max_items=3)

    assert shortened["value"].startswith("x" * 10)
    assert "<truncated>" in shortened["value"]
    assert shortened["items"][:3] == [0, 1, 2]
    assert shortened["items"][-1] == "…<17 more>"
