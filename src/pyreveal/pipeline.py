"""Reveal update pipeline.

The caller-side half of a viewport update: compute the candidate region
for the settled viewport, merge it into the stored revealed area, and
persist the result only when it changed anything.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable

from shapely.geometry import MultiPolygon

from pyreveal._logfmt import describe_geometry
from pyreveal.config import RevealConfig
from pyreveal.exceptions import ComputationFailure
from pyreveal.geometry.merger import MergeResult, merge, simplify_revealed
from pyreveal.geometry.regions import location_region, viewport_region
from pyreveal.geometry.validation import count_vertices
from pyreveal.models.location import Location
from pyreveal.models.viewport import ViewportBounds
from pyreveal.store.base import GeometryInput, GeometryStore

_logger = logging.getLogger(__name__)

CandidateRegionFn = Callable[[ViewportBounds], GeometryInput | Awaitable[GeometryInput]]


class RevealPipeline:
    """Compute, merge and persist revealed area for one store scope.

    ``update`` is the callback handed to the viewport controller.  Every
    read-merge-write runs under one lock, so the pipeline is the single
    active writer for its store's scope.
    """

    def __init__(
        self,
        store: GeometryStore,
        compute_candidate_region: CandidateRegionFn = viewport_region,
        *,
        config: RevealConfig | None = None,
    ) -> None:
        self._store = store
        self._compute = compute_candidate_region
        self._config = config or RevealConfig(scope=store.scope)
        self._lock = asyncio.Lock()
        self._last_location: Location | None = None
        self._last_revealed = False

    @property
    def store(self) -> GeometryStore:
        return self._store

    async def update(self, bounds: ViewportBounds) -> MergeResult:
        """Reveal the candidate region computed for *bounds*.

        Raises
        ------
        ComputationFailure
            When the candidate region computation raises.
        InvalidGeometry
            When the computed candidate is malformed.
        StorageFailure
            When reading or writing the store fails.
        """
        candidate = await self.compute_candidate(bounds)
        return await self.reveal(candidate)

    async def compute_candidate(self, bounds: ViewportBounds) -> GeometryInput:
        try:
            region = self._compute(bounds)
            if inspect.isawaitable(region):
                region = await region
        except ComputationFailure:
            raise
        except Exception as exc:
            raise ComputationFailure(f"Candidate region computation failed for {bounds.as_bbox()}: {exc}") from exc
        return region

    async def reveal(self, candidate: GeometryInput) -> MergeResult:
        """Merge *candidate* into the stored revealed area and persist it if it grew."""
        async with self._lock:
            area = await self._store.get_revealed_area()
            existing = area.geometry if area is not None else MultiPolygon()
            result = merge(existing, candidate, snap_tolerance=self._config.snap_tolerance)
            if not result.changed:
                _logger.debug("Candidate adds nothing to scope %s, skipping write", self._store.scope)
                return result

            geometry = self._maybe_compact(result.union)
            expected_version = area.version if area is not None else 0
            area_id = await self._store.save_revealed_area(geometry, expected_version=expected_version)
            _logger.info("Revealed area %s updated: %s", area_id, describe_geometry(geometry))
            return MergeResult(union=geometry, changed=True)

    def _maybe_compact(self, geometry: MultiPolygon) -> MultiPolygon:
        threshold = self._config.simplify_vertex_threshold
        if threshold <= 0 or count_vertices(geometry) <= threshold:
            return geometry
        return simplify_revealed(
            geometry,
            self._config.simplify_tolerance,
            snap_tolerance=self._config.snap_tolerance,
        )

    async def compact(self) -> bool:
        """Simplify the stored revealed area; ``True`` when a smaller geometry was written."""
        async with self._lock:
            area = await self._store.get_revealed_area()
            if area is None or area.is_empty:
                return False
            simplified = simplify_revealed(
                area.geometry,
                self._config.simplify_tolerance,
                snap_tolerance=self._config.snap_tolerance,
            )
            if count_vertices(simplified) >= count_vertices(area.geometry):
                return False
            await self._store.save_revealed_area(simplified, expected_version=area.version)
            _logger.info("Compacted revealed area %s: %s", area.id, describe_geometry(simplified))
            return True

    async def record_location(self, location: Location) -> MergeResult | None:
        """Store a GPS fix and reveal a disc around it.

        Returns ``None`` when the fix duplicates the previous one.  A fix
        is only remembered once stored, and a retry after a failed reveal
        reveals again without storing a second row.
        """
        if location.is_near(self._last_location, self._config.duplicate_location_tolerance):
            if self._last_revealed:
                _logger.debug("Duplicate location %.6f,%.6f skipped", location.latitude, location.longitude)
                return None
            _logger.debug("Retrying reveal for stored location %.6f,%.6f", location.latitude, location.longitude)
        else:
            await self._store.add_location(location)
            self._last_location = location
            self._last_revealed = False

        region = location_region(location.latitude, location.longitude, self._config.location_buffer_meters)
        result = await self.reveal(region)
        self._last_revealed = True
        return result
