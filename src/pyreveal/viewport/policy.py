"""Viewport update policy.

Small pure decisions used by the controller, kept apart so they can be
tested without an event loop.
"""

from __future__ import annotations

from pyreveal.exceptions import RevealError
from pyreveal.models.viewport import ViewportBounds


def should_process_bounds(
    bounds: ViewportBounds,
    last_processed: ViewportBounds | None,
    threshold: float,
) -> bool:
    """Whether *bounds* moved far enough from the last processed viewport."""
    if threshold <= 0:
        return True
    return bounds.differs_from(last_processed, threshold)


def error_phase(exc: BaseException) -> str:
    """Pipeline phase an update error originates from (``update`` when unknown)."""
    if isinstance(exc, RevealError):
        return exc.phase
    return "update"
