"""Revealed-area merge.

Pure functions: given the stored revealed geometry and a candidate region,
compute the union on a snap grid, detect whether it changes anything, and
compact long-lived geometry without ever shrinking it.

Invariants:

* ``merge(a, b).union`` covers ``a`` (revealed area never shrinks).
* ``merge(a, a).changed`` is ``False``.
* Output is normalized, so equal inputs give equal output regardless of
  ring start vertex or part order.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import shapely
from shapely.geometry import MultiPolygon
from shapely.geometry.base import BaseGeometry
from shapely.validation import make_valid

from pyreveal._constants import SNAP_TOLERANCE_DEGREES
from pyreveal._logfmt import describe_geometry
from pyreveal.geometry.geojson import parse_geometry, polygon_parts, to_multipolygon
from pyreveal.geometry.validation import count_vertices, validate_candidate

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MergeResult:
    """Outcome of :func:`merge`.

    ``changed`` is ``False`` exactly when ``union`` equals the existing
    geometry within snap tolerance; the caller then skips the write.
    """

    union: MultiPolygon
    changed: bool


def snap(geometry: BaseGeometry | None, tolerance: float = SNAP_TOLERANCE_DEGREES) -> MultiPolygon:
    """Dissolve polygonal *geometry* onto a grid of *tolerance* degrees.

    Overlapping parts are merged, near-duplicate vertices collapse and
    sliver artifacts below the grid size disappear.
    """
    if geometry is None or geometry.is_empty:
        return MultiPolygon()
    if not geometry.is_valid:
        geometry = make_valid(geometry)
    parts = polygon_parts(geometry)
    if not parts:
        return MultiPolygon()
    dissolved = shapely.union_all(parts, grid_size=tolerance)
    return to_multipolygon(shapely.normalize(dissolved))


def geometries_equal(a: BaseGeometry, b: BaseGeometry, *, tolerance: float = SNAP_TOLERANCE_DEGREES) -> bool:
    """Topological equality, ignoring differences thinner than *tolerance*."""
    if a.is_empty or b.is_empty:
        return a.is_empty and b.is_empty
    if a.equals(b):
        return True
    difference = a.symmetric_difference(b)
    if difference.is_empty:
        return True
    return difference.buffer(-tolerance).is_empty


def merge(
    existing: BaseGeometry | Mapping[str, Any] | None,
    candidate: BaseGeometry | Mapping[str, Any],
    *,
    snap_tolerance: float = SNAP_TOLERANCE_DEGREES,
) -> MergeResult:
    """Union *candidate* into *existing*.

    Parameters
    ----------
    existing
        Currently revealed geometry; ``None`` or empty when nothing has been
        revealed yet.  Not validated beyond being made valid.
    candidate
        Newly observed region.  Shapely geometry or GeoJSON mapping.
    snap_tolerance
        Degrees below which coordinates are treated as coincident.

    Raises
    ------
    InvalidGeometry
        When *candidate* fails validation.
    """
    candidate_geometry = validate_candidate(candidate, snap_tolerance=snap_tolerance)
    existing_geometry = parse_geometry(existing) if existing is not None else None
    base = snap(existing_geometry, snap_tolerance)

    if candidate_geometry.is_empty:
        _logger.debug("Empty candidate, nothing to merge")
        return MergeResult(union=base, changed=False)

    addition = snap(candidate_geometry, snap_tolerance)
    if base.is_empty:
        union = addition
    elif addition.is_empty:
        union = base
    else:
        union = to_multipolygon(shapely.normalize(shapely.union(base, addition, grid_size=snap_tolerance)))

    if geometries_equal(union, base, tolerance=snap_tolerance):
        _logger.debug("Candidate already revealed: %s", describe_geometry(base))
        return MergeResult(union=base, changed=False)

    _logger.debug("Merged candidate %s into %s -> %s", describe_geometry(addition), describe_geometry(base), describe_geometry(union))
    return MergeResult(union=union, changed=True)


def simplify_revealed(
    geometry: BaseGeometry,
    tolerance: float,
    *,
    snap_tolerance: float = SNAP_TOLERANCE_DEGREES,
) -> MultiPolygon:
    """Reduce vertex density of revealed geometry without reducing its area.

    The geometry is grown by 1.5 * *tolerance* before Douglas-Peucker
    simplification so simplified chords stay outside the input; the
    result is checked to cover the input and falls back to the input when
    nothing is gained.
    """
    base = snap(geometry, snap_tolerance)
    if base.is_empty or tolerance <= 0:
        return base

    grown = shapely.buffer(base, tolerance * 1.5, join_style="mitre")
    simplified = snap(shapely.simplify(grown, tolerance, preserve_topology=True), snap_tolerance)
    if not simplified.covers(base):
        simplified = snap(shapely.union(simplified, base), snap_tolerance)

    before = count_vertices(base)
    after = count_vertices(simplified)
    if after >= before:
        return base
    _logger.debug("Simplified revealed geometry from %d to %d vertices", before, after)
    return simplified
