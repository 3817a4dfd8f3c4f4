"""Geometry store contract and write rules shared by the implementations."""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Protocol

from shapely.geometry import MultiPolygon
from shapely.geometry.base import BaseGeometry

from pyreveal.exceptions import InvalidGeometry, StorageConflict, StorageFailure
from pyreveal.geometry.geojson import parse_geometry, to_multipolygon
from pyreveal.geometry.merger import geometries_equal
from pyreveal.models.location import Location
from pyreveal.models.revealed_area import RevealedArea

GeometryInput = BaseGeometry | Mapping[str, Any]


class GeometryStore(Protocol):
    """Durable keyed storage of revealed-area geometry and location records.

    All operations are async and report failures as
    :class:`~pyreveal.exceptions.StorageFailure`.  Stores never retry and
    never drop data silently.
    """

    @property
    def scope(self) -> str: ...

    async def get_locations(self) -> list[Location]: ...

    async def add_location(self, location: Location) -> int: ...

    async def get_revealed_areas(self) -> list[RevealedArea]: ...

    async def get_revealed_area(self) -> RevealedArea | None: ...

    async def save_revealed_area(self, geometry: GeometryInput, *, expected_version: int | None = None) -> str: ...

    async def reset_revealed_area(self) -> None: ...

    async def close(self) -> None: ...


def coerce_geometry(geometry: GeometryInput, *, operation: str) -> MultiPolygon:
    """Turn save input into a ``MultiPolygon`` or fail as a storage error."""
    try:
        return to_multipolygon(parse_geometry(geometry))
    except InvalidGeometry as exc:
        raise StorageFailure(f"{operation}: cannot store geometry: {exc}", operation=operation, cause=exc) from exc


def plan_save(
    current: RevealedArea | None,
    geometry: MultiPolygon,
    *,
    scope: str,
    expected_version: int | None,
    snap_tolerance: float,
    now: datetime,
) -> RevealedArea | None:
    """Decide what an upsert should persist.

    Returns ``None`` when *geometry* equals the stored geometry (the save is
    an idempotent no-op).  ``expected_version=0`` means "no record yet".

    Raises
    ------
    StorageConflict
        When *expected_version* does not match the stored version.
    """
    if current is not None and geometries_equal(current.geometry, geometry, tolerance=snap_tolerance):
        return None

    actual = current.version if current is not None else 0
    if expected_version is not None and expected_version != actual:
        raise StorageConflict(
            f"Revealed area for scope {scope!r} is at version {actual}, expected {expected_version}",
            operation="save_revealed_area",
            expected_version=expected_version,
            actual_version=actual,
        )

    if current is None:
        return RevealedArea(id=uuid.uuid4().hex, scope=scope, geometry=geometry, version=1, updated_at=now)
    return current.with_geometry(geometry, updated_at=now)
