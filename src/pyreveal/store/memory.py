"""In-memory geometry store."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from pyreveal._constants import DEFAULT_SCOPE, SNAP_TOLERANCE_DEGREES
from pyreveal._logfmt import describe_geometry
from pyreveal.models._base import utcnow
from pyreveal.models.location import Location
from pyreveal.models.revealed_area import RevealedArea
from pyreveal.store.base import GeometryInput, coerce_geometry, plan_save

_logger = logging.getLogger(__name__)


@dataclass
class _MemoryBackend:
    areas: dict[str, RevealedArea] = field(default_factory=dict)
    locations: dict[str, list[Location]] = field(default_factory=dict)
    next_location_id: int = 1
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class InMemoryGeometryStore:
    """Store backed by process memory.

    Sibling stores created with :meth:`for_scope` share the same data, so
    several controllers in one process see each other's writes.
    """

    def __init__(
        self,
        *,
        scope: str = DEFAULT_SCOPE,
        snap_tolerance: float = SNAP_TOLERANCE_DEGREES,
        clock: Callable[[], datetime] = utcnow,
        _backend: _MemoryBackend | None = None,
    ) -> None:
        self._scope = scope
        self._snap_tolerance = snap_tolerance
        self._clock = clock
        self._backend = _backend if _backend is not None else _MemoryBackend()

    @property
    def scope(self) -> str:
        return self._scope

    def for_scope(self, scope: str) -> InMemoryGeometryStore:
        return InMemoryGeometryStore(
            scope=scope,
            snap_tolerance=self._snap_tolerance,
            clock=self._clock,
            _backend=self._backend,
        )

    async def get_locations(self) -> list[Location]:
        return list(self._backend.locations.get(self._scope, []))

    async def add_location(self, location: Location) -> int:
        async with self._backend.lock:
            location_id = self._backend.next_location_id
            self._backend.next_location_id += 1
            stored = location.model_copy(update={"id": location_id})
            self._backend.locations.setdefault(self._scope, []).append(stored)
        return location_id

    async def get_revealed_areas(self) -> list[RevealedArea]:
        area = self._backend.areas.get(self._scope)
        return [area] if area is not None else []

    async def get_revealed_area(self) -> RevealedArea | None:
        return self._backend.areas.get(self._scope)

    async def save_revealed_area(self, geometry: GeometryInput, *, expected_version: int | None = None) -> str:
        multi = coerce_geometry(geometry, operation="save_revealed_area")
        async with self._backend.lock:
            current = self._backend.areas.get(self._scope)
            planned = plan_save(
                current,
                multi,
                scope=self._scope,
                expected_version=expected_version,
                snap_tolerance=self._snap_tolerance,
                now=self._clock(),
            )
            if planned is None:
                assert current is not None  # noqa: S101
                _logger.debug("Revealed area for %s unchanged, save is a no-op", self._scope)
                return current.id
            self._backend.areas[self._scope] = planned
        _logger.debug("Saved revealed area %s v%d: %s", planned.id, planned.version, describe_geometry(multi))
        return planned.id

    async def reset_revealed_area(self) -> None:
        async with self._backend.lock:
            self._backend.areas.pop(self._scope, None)
        _logger.info("Revealed area for scope %s reset", self._scope)

    async def close(self) -> None:
        return None
