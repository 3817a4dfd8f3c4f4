"""Helpers for compact debug logging.

Revealed geometry grows to thousands of vertices and GeoJSON payloads can
be large.  This module summarises such values before they reach a log line.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from shapely.geometry.base import BaseGeometry

from pyreveal.geometry.validation import count_vertices


def describe_geometry(geometry: BaseGeometry | None) -> str:
    """Return a one-line summary such as ``MultiPolygon(parts=2, vertices=10)``."""
    if geometry is None:
        return "<none>"
    if geometry.is_empty:
        return f"{geometry.geom_type}(empty)"
    parts = len(getattr(geometry, "geoms", [geometry]))
    return f"{geometry.geom_type}(parts={parts}, vertices={count_vertices(geometry)})"


def truncate_for_log(value: Any, *, max_string: int = 256, max_items: int = 8, _depth: int = 0) -> Any:
    """Return a shortened copy of *value* suitable for debug logs."""
    if _depth > 6:
        return "<max-depth>"

    if value is None or isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, bytes):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, BaseGeometry):
        return describe_geometry(value)

    if isinstance(value, Mapping):
        shortened: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k)
            if key == "coordinates":
                shortened[key] = "<coordinates>"
            else:
                shortened[key] = truncate_for_log(v, max_string=max_string, max_items=max_items, _depth=_depth + 1)
        return shortened

    if isinstance(value, Sequence):
        items = [truncate_for_log(v, max_string=max_string, max_items=max_items, _depth=_depth + 1) for v in value[:max_items]]
        if len(value) > max_items:
            items.append(f"…<{len(value) - max_items} more>")
        return items

    return repr(value)
