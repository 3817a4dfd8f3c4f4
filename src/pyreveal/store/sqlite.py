"""SQLite-backed geometry store.

Blocking ``sqlite3`` calls run on a single dedicated worker thread, so the
event loop is never blocked and every read-compare-write on a scope is
serialized.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from typing import Any, TypeVar

from pyreveal._constants import DEFAULT_SCOPE, SNAP_TOLERANCE_DEGREES
from pyreveal._logfmt import describe_geometry
from pyreveal.config import RevealConfig
from pyreveal.exceptions import StorageFailure
from pyreveal.models._base import utcnow
from pyreveal.models.location import Location
from pyreveal.models.revealed_area import RevealedArea
from pyreveal.store.base import GeometryInput, coerce_geometry, plan_save

_logger = logging.getLogger(__name__)

T = TypeVar("T")


def _to_epoch_ms(value: datetime) -> int:
    return round(value.timestamp() * 1000)


def _from_epoch_ms(value: int) -> datetime:
    # Always milliseconds; parse_timestamp would read pre-2001 values as seconds.
    return datetime.fromtimestamp(value / 1000, tz=UTC)


_SCHEMA = (
    "CREATE TABLE IF NOT EXISTS locations ("
    "id INTEGER PRIMARY KEY AUTOINCREMENT, "
    "scope TEXT NOT NULL, "
    "latitude REAL NOT NULL, "
    "longitude REAL NOT NULL, "
    "timestamp INTEGER NOT NULL)",
    "CREATE INDEX IF NOT EXISTS idx_locations_scope ON locations (scope)",
    "CREATE TABLE IF NOT EXISTS revealed_areas ("
    "scope TEXT PRIMARY KEY NOT NULL, "
    "id TEXT NOT NULL, "
    "geojson TEXT NOT NULL, "
    "version INTEGER NOT NULL, "
    "updated_at TEXT NOT NULL)",
)


class SqliteGeometryStore:
    """File-backed store (``locations`` and ``revealed_areas`` tables).

    Revealed geometry is kept as GeoJSON feature-collection text, location
    timestamps as epoch milliseconds.
    """

    def __init__(
        self,
        path: str,
        *,
        scope: str = DEFAULT_SCOPE,
        snap_tolerance: float = SNAP_TOLERANCE_DEGREES,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._path = path
        self._scope = scope
        self._snap_tolerance = snap_tolerance
        self._clock = clock
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pyreveal-sqlite")
        self._conn: sqlite3.Connection | None = None

    @classmethod
    def from_config(cls, config: RevealConfig) -> SqliteGeometryStore:
        return cls(config.database_path, scope=config.scope, snap_tolerance=config.snap_tolerance)

    @property
    def scope(self) -> str:
        return self._scope

    # ------------------------------------------------------------------
    # Worker-thread plumbing
    # ------------------------------------------------------------------

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            _logger.debug("Opening SQLite database %s", self._path)
            conn = sqlite3.connect(self._path)
            for statement in _SCHEMA:
                conn.execute(statement)
            conn.commit()
            self._conn = conn
        return self._conn

    async def _run(self, operation: str, fn: Callable[[sqlite3.Connection], T]) -> T:
        def _call() -> T:
            return fn(self._connection())

        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self._executor, _call)
        except StorageFailure:
            raise
        except (sqlite3.Error, OSError, ValueError, RuntimeError) as exc:
            _logger.debug("SQLite %s failed", operation, exc_info=True)
            raise StorageFailure(f"{operation} failed: {exc}", operation=operation, cause=exc) from exc

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    def _area_from_row(self, row: tuple[Any, ...]) -> RevealedArea:
        area_id, geojson, version, updated_at = row
        return RevealedArea.from_feature_collection(
            json.loads(geojson),
            id=area_id,
            scope=self._scope,
            version=version,
            updated_at=updated_at,
        )

    def _select_area(self, conn: sqlite3.Connection) -> RevealedArea | None:
        row = conn.execute(
            "SELECT id, geojson, version, updated_at FROM revealed_areas WHERE scope = ?",
            (self._scope,),
        ).fetchone()
        return self._area_from_row(row) if row is not None else None

    # ------------------------------------------------------------------
    # Store contract
    # ------------------------------------------------------------------

    async def get_locations(self) -> list[Location]:
        def _select(conn: sqlite3.Connection) -> list[Location]:
            rows = conn.execute(
                "SELECT id, latitude, longitude, timestamp FROM locations WHERE scope = ? ORDER BY id",
                (self._scope,),
            ).fetchall()
            return [Location(id=r[0], latitude=r[1], longitude=r[2], timestamp=_from_epoch_ms(r[3])) for r in rows]

        return await self._run("get_locations", _select)

    async def add_location(self, location: Location) -> int:
        def _insert(conn: sqlite3.Connection) -> int:
            with conn:
                cursor = conn.execute(
                    "INSERT INTO locations (scope, latitude, longitude, timestamp) VALUES (?, ?, ?, ?)",
                    (self._scope, location.latitude, location.longitude, _to_epoch_ms(location.timestamp)),
                )
            return int(cursor.lastrowid or 0)

        return await self._run("add_location", _insert)

    async def get_revealed_areas(self) -> list[RevealedArea]:
        area = await self._run("get_revealed_areas", self._select_area)
        return [area] if area is not None else []

    async def get_revealed_area(self) -> RevealedArea | None:
        return await self._run("get_revealed_area", self._select_area)

    async def save_revealed_area(self, geometry: GeometryInput, *, expected_version: int | None = None) -> str:
        multi = coerce_geometry(geometry, operation="save_revealed_area")

        def _upsert(conn: sqlite3.Connection) -> str:
            with conn:
                current = self._select_area(conn)
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
                    return current.id
                conn.execute(
                    "INSERT INTO revealed_areas (scope, id, geojson, version, updated_at) VALUES (?, ?, ?, ?, ?) "
                    "ON CONFLICT(scope) DO UPDATE SET geojson = excluded.geojson, "
                    "version = excluded.version, updated_at = excluded.updated_at",
                    (
                        self._scope,
                        planned.id,
                        json.dumps(planned.to_feature_collection(), separators=(",", ":")),
                        planned.version,
                        planned.updated_at.isoformat(),
                    ),
                )
            _logger.debug("Saved revealed area %s v%d: %s", planned.id, planned.version, describe_geometry(multi))
            return planned.id

        return await self._run("save_revealed_area", _upsert)

    async def reset_revealed_area(self) -> None:
        def _delete(conn: sqlite3.Connection) -> None:
            with conn:
                conn.execute("DELETE FROM revealed_areas WHERE scope = ?", (self._scope,))

        await self._run("reset_revealed_area", _delete)
        _logger.info("Revealed area for scope %s reset", self._scope)

    async def close(self) -> None:
        def _close() -> None:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(self._executor, _close)
        finally:
            self._executor.shutdown(wait=False)
