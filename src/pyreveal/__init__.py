"""pyreveal - Async revealed-area tracking for fog-of-war map exploration."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyreveal")
except PackageNotFoundError:
    __version__ = "0+local"
from pyreveal.config import RevealConfig
from pyreveal.exceptions import (
    ComputationFailure,
    InvalidGeometry,
    RevealConfigError,
    RevealError,
    StorageConflict,
    StorageFailure,
)
from pyreveal.geometry.merger import MergeResult, merge, simplify_revealed
from pyreveal.geometry.regions import location_region, viewport_region
from pyreveal.geometry.stats import ExplorationStats, compute_statistics
from pyreveal.models import Location, RevealedArea, ViewportBounds, ViewportState
from pyreveal.pipeline import RevealPipeline
from pyreveal.store import GeometryStore, HttpGeometryStore, InMemoryGeometryStore, SqliteGeometryStore
from pyreveal.tracker import RevealTracker
from pyreveal.viewport.controller import ViewportUpdateController
from pyreveal.viewport.events import ControllerState, ViewportSignal

__all__ = [
    "__version__",
    "ComputationFailure",
    "ControllerState",
    "ExplorationStats",
    "GeometryStore",
    "HttpGeometryStore",
    "InMemoryGeometryStore",
    "InvalidGeometry",
    "Location",
    "MergeResult",
    "RevealConfig",
    "RevealConfigError",
    "RevealError",
    "RevealPipeline",
    "RevealTracker",
    "RevealedArea",
    "SqliteGeometryStore",
    "StorageConflict",
    "StorageFailure",
    "ViewportBounds",
    "ViewportSignal",
    "ViewportState",
    "ViewportUpdateController",
    "compute_statistics",
    "location_region",
    "merge",
    "simplify_revealed",
    "viewport_region",
]
