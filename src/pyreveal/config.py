"""Engine configuration for pyreveal."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any

from pyreveal._constants import (
    BOUNDS_CHANGE_THRESHOLD,
    DEFAULT_SCOPE,
    DUPLICATE_LOCATION_TOLERANCE,
    SIMPLIFY_TOLERANCE_DEGREES,
    SNAP_TOLERANCE_DEGREES,
)
from pyreveal.exceptions import RevealConfigError


def _env_float(env: Mapping[str, str], key: str) -> float | None:
    value = env.get(key)
    if value is None:
        return None
    try:
        return float(value)
    except ValueError as exc:
        raise RevealConfigError(f"{key} must be a number, got {value!r}") from exc


def _env_int(env: Mapping[str, str], key: str) -> int | None:
    parsed = _env_float(env, key)
    if parsed is None:
        return None
    return int(parsed)


@dataclasses.dataclass(frozen=True)
class RevealConfig:
    """Engine configuration.

    Parameters
    ----------
    scope : str
        Persistence partition the revealed area belongs to (user or session).
    snap_tolerance : float
        Degrees below which coordinates are treated as coincident.
    debounce_seconds : float
        Quiet period after the last viewport-settled signal before an
        update starts.
    bounds_change_threshold : float
        Degrees the viewport must move, relative to the last successfully
        processed bounds, to be worth a new update. ``0`` disables the check.
    simplify_tolerance : float
        Douglas-Peucker tolerance in degrees used when compacting the
        revealed geometry.
    simplify_vertex_threshold : int
        Vertex count above which the pipeline compacts the merged geometry
        before persisting it. ``0`` disables automatic compaction.
    location_buffer_meters : float
        Radius of the disc revealed around each recorded GPS fix.
    duplicate_location_tolerance : float
        Degrees below which two consecutive GPS fixes are the same fix.
    database_path : str
        Path of the SQLite database used by ``SqliteGeometryStore``.
    base_url : str or None
        Base URL of the REST backend used by ``HttpGeometryStore``.
    request_timeout : float
        Total timeout in seconds for a single HTTP store request.
    """

    scope: str = DEFAULT_SCOPE
    snap_tolerance: float = SNAP_TOLERANCE_DEGREES
    debounce_seconds: float = 0.3
    bounds_change_threshold: float = BOUNDS_CHANGE_THRESHOLD
    simplify_tolerance: float = SIMPLIFY_TOLERANCE_DEGREES
    simplify_vertex_threshold: int = 1000
    location_buffer_meters: float = 100.0
    duplicate_location_tolerance: float = DUPLICATE_LOCATION_TOLERANCE
    database_path: str = "locations.db"
    base_url: str | None = None
    request_timeout: float = 10.0

    def __post_init__(self) -> None:
        if not self.scope.strip():
            raise RevealConfigError("scope must be non-empty")
        if self.snap_tolerance <= 0:
            raise RevealConfigError(f"snap_tolerance must be positive, got {self.snap_tolerance}")
        for name in (
            "debounce_seconds",
            "bounds_change_threshold",
            "simplify_tolerance",
            "simplify_vertex_threshold",
            "duplicate_location_tolerance",
        ):
            if getattr(self, name) < 0:
                raise RevealConfigError(f"{name} must not be negative, got {getattr(self, name)}")
        if self.location_buffer_meters <= 0:
            raise RevealConfigError(f"location_buffer_meters must be positive, got {self.location_buffer_meters}")
        if self.request_timeout <= 0:
            raise RevealConfigError(f"request_timeout must be positive, got {self.request_timeout}")

    @classmethod
    def from_env(cls, **overrides: Any) -> RevealConfig:
        """Create configuration from environment variables.

        Reads optional ``REVEAL_*`` variables.  Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        RevealConfig
            Populated configuration.
        """
        env = os.environ

        config_kwargs: dict[str, Any] = {}
        _ENV_STR_MAP = {
            "REVEAL_SCOPE": "scope",
            "REVEAL_DATABASE_PATH": "database_path",
            "REVEAL_BASE_URL": "base_url",
        }
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_FLOAT_MAP = {
            "REVEAL_SNAP_TOLERANCE": "snap_tolerance",
            "REVEAL_DEBOUNCE_SECONDS": "debounce_seconds",
            "REVEAL_BOUNDS_CHANGE_THRESHOLD": "bounds_change_threshold",
            "REVEAL_SIMPLIFY_TOLERANCE": "simplify_tolerance",
            "REVEAL_LOCATION_BUFFER_METERS": "location_buffer_meters",
            "REVEAL_DUPLICATE_LOCATION_TOLERANCE": "duplicate_location_tolerance",
            "REVEAL_REQUEST_TIMEOUT": "request_timeout",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            if field_name in overrides:
                continue
            parsed = _env_float(env, env_key)
            if parsed is not None:
                config_kwargs[field_name] = parsed

        # vertex threshold is integral, handle separately
        if "simplify_vertex_threshold" not in overrides:
            threshold = _env_int(env, "REVEAL_SIMPLIFY_VERTEX_THRESHOLD")
            if threshold is not None:
                config_kwargs["simplify_vertex_threshold"] = threshold

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
