"""Viewport update controller.

Owns the live/not-live state of the map and turns the widget's raw
signals into at most one in-flight reveal update at a time:

* settle signals before the map has loaded are ignored, never replayed;
* bursts of settle signals are debounced and coalesced so only the most
  recent viewport is processed;
* while the camera is moving, a ready update is held until camera idle;
* update failures are logged with their phase and never raised.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence

from pyreveal._constants import BOUNDS_CHANGE_THRESHOLD
from pyreveal.config import RevealConfig
from pyreveal.models.viewport import ViewportBounds, ViewportState
from pyreveal.viewport.events import ControllerState, ViewportSignal
from pyreveal.viewport.policy import error_phase, should_process_bounds

_logger = logging.getLogger(__name__)

UpdateCallback = Callable[[ViewportBounds], Awaitable[object]]
BoundsProvider = Callable[[], ViewportBounds | Sequence[float] | None]


class ViewportUpdateController:
    """State machine driving reveal updates from map-widget signals.

    Usage::

        controller = ViewportUpdateController(pipeline.update, bounds_provider=map_view.bounds)
        map_view.on_load(controller.on_load)
        map_view.on_camera_changed(controller.on_camera_change_start)
        map_view.on_idle(controller.on_camera_idle)
        map_view.on_region_did_change(controller.on_viewport_settled)

    Signal methods are synchronous and must be called from the event loop
    thread.  They never raise.
    """

    def __init__(
        self,
        update: UpdateCallback,
        *,
        bounds_provider: BoundsProvider | None = None,
        debounce_seconds: float = 0.3,
        bounds_change_threshold: float = BOUNDS_CHANGE_THRESHOLD,
    ) -> None:
        self._update = update
        self._bounds_provider = bounds_provider
        self._debounce_seconds = debounce_seconds
        self._bounds_change_threshold = bounds_change_threshold

        self._viewport = ViewportState()
        self._pending: ViewportBounds | None = None
        self._last_processed: ViewportBounds | None = None
        self._debounce_handle: asyncio.TimerHandle | None = None
        self._debounce_deadline: float = 0.0
        self._inflight: asyncio.Task[None] | None = None
        self._closed = False

        self.completed_updates = 0
        self.failed_updates = 0
        self.ignored_signals = 0

    @classmethod
    def from_config(
        cls,
        update: UpdateCallback,
        config: RevealConfig,
        *,
        bounds_provider: BoundsProvider | None = None,
    ) -> ViewportUpdateController:
        return cls(
            update,
            bounds_provider=bounds_provider,
            debounce_seconds=config.debounce_seconds,
            bounds_change_threshold=config.bounds_change_threshold,
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> ControllerState:
        if not self._viewport.loaded:
            return ControllerState.IDLE
        if self._inflight is not None:
            return ControllerState.UPDATING
        if self._viewport.is_changing:
            return ControllerState.LOADED_CHANGING
        return ControllerState.LOADED_STABLE

    @property
    def viewport(self) -> ViewportState:
        return self._viewport

    @property
    def pending_bounds(self) -> ViewportBounds | None:
        return self._pending

    @property
    def last_processed_bounds(self) -> ViewportBounds | None:
        return self._last_processed

    # ------------------------------------------------------------------
    # Widget signals
    # ------------------------------------------------------------------

    def handle(self, signal: ViewportSignal | str, bounds: ViewportBounds | Sequence[float] | None = None) -> None:
        """Dispatch a signal by name."""
        try:
            kind = ViewportSignal(signal)
        except ValueError:
            _logger.warning("Unknown viewport signal %r ignored", signal)
            self.ignored_signals += 1
            return
        if kind is ViewportSignal.LOAD:
            self.on_load()
        elif kind is ViewportSignal.CAMERA_CHANGE_START:
            self.on_camera_change_start()
        elif kind is ViewportSignal.CAMERA_IDLE:
            self.on_camera_idle()
        else:
            self.on_viewport_settled(bounds)

    def on_load(self) -> None:
        if self._closed:
            _logger.debug("Controller closed, ignoring map load")
            self.ignored_signals += 1
            return
        if self._viewport.loaded:
            _logger.debug("Map already loaded")
            return
        self._viewport.loaded = True
        _logger.info("Map loaded, viewport tracking active")

    def on_camera_change_start(self) -> None:
        if not self._viewport.loaded:
            _logger.debug("Map not loaded, ignoring camera change")
            self.ignored_signals += 1
            return
        self._viewport.is_changing = True

    def on_camera_idle(self) -> None:
        if not self._viewport.loaded:
            _logger.debug("Map not loaded, ignoring camera idle")
            self.ignored_signals += 1
            return
        self._viewport.is_changing = False
        _logger.debug("Camera idle, viewport changes complete")
        try:
            self._maybe_start()
        except Exception:
            _logger.exception("Error starting update on camera idle")

    def on_viewport_settled(self, bounds: ViewportBounds | Sequence[float] | None = None) -> None:
        if self._closed:
            _logger.debug("Controller closed, ignoring viewport change")
            self.ignored_signals += 1
            return
        if not self._viewport.loaded:
            _logger.debug("Map not loaded, skipping viewport change")
            self.ignored_signals += 1
            return
        try:
            self._accept_settled(bounds)
        except Exception:
            _logger.exception("Error in viewport change handler")

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def _resolve_bounds(self, bounds: ViewportBounds | Sequence[float] | None) -> ViewportBounds | None:
        if bounds is None:
            if self._bounds_provider is None:
                _logger.warning("Viewport settled without bounds and no bounds provider configured")
                return None
            bounds = self._bounds_provider()
            if bounds is None:
                _logger.debug("Bounds provider returned no bounds")
                return None
        if isinstance(bounds, ViewportBounds):
            return bounds
        try:
            return ViewportBounds.from_bbox(bounds)
        except ValueError as exc:
            _logger.warning("Invalid viewport bounds %r ignored: %s", bounds, exc)
            return None

    def _accept_settled(self, raw_bounds: ViewportBounds | Sequence[float] | None) -> None:
        bounds = self._resolve_bounds(raw_bounds)
        if bounds is None:
            self.ignored_signals += 1
            return
        self._viewport.bounds = bounds

        if not should_process_bounds(bounds, self._last_processed, self._bounds_change_threshold):
            _logger.debug("Viewport unchanged since last update, dropping pending request")
            self._pending = None
            self._cancel_debounce()
            return

        # Latest request wins; anything older is obsolete.
        self._pending = bounds
        self._arm_debounce()

    def _arm_debounce(self) -> None:
        loop = asyncio.get_running_loop()
        self._cancel_debounce()
        self._debounce_deadline = loop.time() + self._debounce_seconds
        self._debounce_handle = loop.call_later(self._debounce_seconds, self._on_debounce_elapsed)

    def _cancel_debounce(self) -> None:
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None

    def _on_debounce_elapsed(self) -> None:
        self._debounce_handle = None
        try:
            self._maybe_start()
        except Exception:
            _logger.exception("Error starting debounced update")

    def _maybe_start(self) -> None:
        if self._closed or self._pending is None or self._inflight is not None:
            return
        if self._debounce_handle is not None:
            return
        if self._viewport.is_changing:
            _logger.debug("Camera moving, holding update until idle")
            return

        bounds, self._pending = self._pending, None
        self._inflight = asyncio.get_running_loop().create_task(self._run_update(bounds))

    async def _run_update(self, bounds: ViewportBounds) -> None:
        _logger.debug("Updating revealed area for viewport %s", bounds.as_bbox())
        try:
            await self._update(bounds)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self.failed_updates += 1
            _logger.warning("Reveal update failed in %s phase: %s", error_phase(exc), exc, exc_info=True)
        else:
            self.completed_updates += 1
            self._last_processed = bounds
        finally:
            self._inflight = None
            self._maybe_start()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def wait_idle(self) -> None:
        """Wait until no update is in flight or waiting on its debounce timer.

        Requests held back by camera motion do not count as pending work.
        """
        loop = asyncio.get_running_loop()
        while True:
            task = self._inflight
            if task is not None:
                await asyncio.wait({task})
                continue
            if self._debounce_handle is not None:
                await asyncio.sleep(max(0.0, self._debounce_deadline - loop.time()))
                continue
            return

    async def aclose(self) -> None:
        """Stop accepting signals, drop pending requests and let the in-flight update finish."""
        self._closed = True
        self._pending = None
        self._cancel_debounce()
        task = self._inflight
        if task is not None:
            await asyncio.wait({task})
        _logger.debug("Viewport controller closed")
