"""High-level async entry point wiring store, pipeline and controller."""

from __future__ import annotations

import logging
from typing import Any

from pyreveal.config import RevealConfig
from pyreveal.geometry.merger import MergeResult
from pyreveal.geometry.regions import viewport_region
from pyreveal.geometry.stats import ExplorationStats, compute_statistics
from pyreveal.models.location import Location
from pyreveal.pipeline import CandidateRegionFn, RevealPipeline
from pyreveal.store.base import GeometryStore
from pyreveal.store.http import HttpGeometryStore
from pyreveal.store.sqlite import SqliteGeometryStore
from pyreveal.viewport.controller import BoundsProvider, ViewportUpdateController

_logger = logging.getLogger(__name__)


class RevealTracker:
    """Revealed-area tracking for one scope.

    Usage::

        async with RevealTracker(RevealConfig.from_env()) as tracker:
            tracker.controller.on_load()
            tracker.controller.on_viewport_settled([-0.2, 51.4, 0.1, 51.6])
            await tracker.controller.wait_idle()
            stats = await tracker.statistics()

    Without an explicit *store*, an HTTP store is used when
    ``config.base_url`` is set and a SQLite store otherwise; stores created
    here are closed on exit.
    """

    def __init__(
        self,
        config: RevealConfig | None = None,
        *,
        store: GeometryStore | None = None,
        compute_candidate_region: CandidateRegionFn = viewport_region,
        bounds_provider: BoundsProvider | None = None,
    ) -> None:
        self._config = config or RevealConfig()
        self._owns_store = store is None
        self._store = store
        self._compute = compute_candidate_region
        self._bounds_provider = bounds_provider
        self._pipeline: RevealPipeline | None = None
        self._controller: ViewportUpdateController | None = None

    async def __aenter__(self) -> RevealTracker:
        if self._store is None:
            if self._config.base_url:
                self._store = HttpGeometryStore.from_config(self._config)
            else:
                self._store = SqliteGeometryStore.from_config(self._config)
        self._pipeline = RevealPipeline(self._store, self._compute, config=self._config)
        self._controller = ViewportUpdateController.from_config(
            self._pipeline.update,
            self._config,
            bounds_provider=self._bounds_provider,
        )
        _logger.debug("Reveal tracker started for scope %s", self._config.scope)
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._controller is not None:
            await self._controller.aclose()
        if self._store is not None and self._owns_store:
            await self._store.close()
            self._store = None

    def _require_pipeline(self) -> RevealPipeline:
        if self._pipeline is None:
            raise RuntimeError("RevealTracker must be entered with 'async with' before use")
        return self._pipeline

    @property
    def config(self) -> RevealConfig:
        return self._config

    @property
    def controller(self) -> ViewportUpdateController:
        if self._controller is None:
            raise RuntimeError("RevealTracker must be entered with 'async with' before use")
        return self._controller

    @property
    def store(self) -> GeometryStore:
        return self._require_pipeline().store

    async def record_location(self, location: Location) -> MergeResult | None:
        return await self._require_pipeline().record_location(location)

    async def statistics(self) -> ExplorationStats:
        store = self.store
        area = await store.get_revealed_area()
        locations = await store.get_locations()
        return compute_statistics(area, locations)

    async def compact(self) -> bool:
        return await self._require_pipeline().compact()

    async def reset(self) -> None:
        """Forget everything revealed for this scope (explicit user reset)."""
        await self.store.reset_revealed_area()
