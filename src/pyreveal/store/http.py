"""REST-backed geometry store over aiohttp.

Endpoints, relative to ``base_url``:

* ``GET  /scopes/{scope}/locations`` -> ``{"locations": [...]}``
* ``POST /scopes/{scope}/locations`` -> ``{"id": <int>}``
* ``GET  /scopes/{scope}/revealed-area`` -> feature collection, 404 when none
* ``PUT  /scopes/{scope}/revealed-area`` with
  ``{"geometry": <feature collection>, "expectedVersion": <int|null>}``
  -> ``{"id": <str>}``, 409 on version conflict
* ``DELETE /scopes/{scope}/revealed-area``
"""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import quote

import aiohttp

from pyreveal._constants import DEFAULT_SCOPE, SNAP_TOLERANCE_DEGREES, USER_AGENT
from pyreveal._logfmt import describe_geometry, truncate_for_log
from pyreveal.config import RevealConfig
from pyreveal.exceptions import RevealConfigError, StorageConflict, StorageFailure
from pyreveal.geometry.geojson import to_feature_collection
from pyreveal.geometry.merger import geometries_equal
from pyreveal.models.location import Location
from pyreveal.models.revealed_area import RevealedArea
from pyreveal.store.base import GeometryInput, coerce_geometry

_logger = logging.getLogger(__name__)


class HttpGeometryStore:
    """Store talking to a REST backend.

    Usage::

        async with HttpGeometryStore("https://example.test/api", scope="user-1") as store:
            areas = await store.get_revealed_areas()
    """

    def __init__(
        self,
        base_url: str,
        *,
        scope: str = DEFAULT_SCOPE,
        snap_tolerance: float = SNAP_TOLERANCE_DEGREES,
        timeout: float = 10.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._scope = scope
        self._snap_tolerance = snap_tolerance
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._external_session = session is not None
        self._http = session

    @classmethod
    def from_config(cls, config: RevealConfig, *, session: aiohttp.ClientSession | None = None) -> HttpGeometryStore:
        if not config.base_url:
            raise RevealConfigError("base_url is required for HttpGeometryStore")
        return cls(
            config.base_url,
            scope=config.scope,
            snap_tolerance=config.snap_tolerance,
            timeout=config.request_timeout,
            session=session,
        )

    @property
    def scope(self) -> str:
        return self._scope

    async def __aenter__(self) -> HttpGeometryStore:
        if self._http is None:
            self._http = aiohttp.ClientSession()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._http is not None and not self._external_session:
            await self._http.close()
        self._http = None

    def _url(self, suffix: str) -> str:
        return f"{self._base_url}/scopes/{quote(self._scope, safe='')}{suffix}"

    async def _request(
        self,
        method: str,
        suffix: str,
        *,
        operation: str,
        payload: dict[str, Any] | None = None,
        allow_not_found: bool = False,
    ) -> Any:
        """Send one request and return the decoded JSON body (``None`` for 404/204)."""
        if self._http is None:
            self._http = aiohttp.ClientSession()

        url = self._url(suffix)
        headers = {"accept": "application/json", "user-agent": USER_AGENT}
        _logger.debug("%s %s %s", method, url, truncate_for_log(payload))

        try:
            async with self._http.request(method, url, json=payload, headers=headers, timeout=self._timeout) as resp:
                text = await resp.text()
                if resp.status == 404 and allow_not_found:
                    return None
                if resp.status == 409:
                    raise StorageConflict(f"HTTP 409 from {operation}: {text[:200]}", operation=operation)
                if resp.status >= 400:
                    raise StorageFailure(f"HTTP {resp.status} from {operation}: {text[:200]}", operation=operation)
        except StorageFailure:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise StorageFailure(f"Request for {operation} failed: {exc!r}", operation=operation, cause=exc) from exc

        if resp.status == 204 or not text.strip():
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise StorageFailure(f"Invalid JSON from {operation}: {text[:200]}", operation=operation, cause=exc) from exc

    def _invalid(self, operation: str, exc: Exception) -> StorageFailure:
        return StorageFailure(f"Unexpected payload from {operation}: {exc}", operation=operation, cause=exc)

    async def get_locations(self) -> list[Location]:
        body = await self._request("GET", "/locations", operation="get_locations")
        if body is None:
            return []
        try:
            return [Location.model_validate(item) for item in body.get("locations", [])]
        except (ValueError, AttributeError) as exc:
            raise self._invalid("get_locations", exc) from exc

    async def add_location(self, location: Location) -> int:
        payload = location.model_dump(mode="json", by_alias=True, exclude={"id"})
        body = await self._request("POST", "/locations", operation="add_location", payload=payload)
        try:
            return int(body["id"])
        except (TypeError, KeyError, ValueError) as exc:
            raise self._invalid("add_location", exc) from exc

    async def get_revealed_area(self) -> RevealedArea | None:
        body = await self._request("GET", "/revealed-area", operation="get_revealed_area", allow_not_found=True)
        if body is None:
            return None
        try:
            return RevealedArea.from_feature_collection(body, scope=self._scope)
        except ValueError as exc:
            raise self._invalid("get_revealed_area", exc) from exc

    async def get_revealed_areas(self) -> list[RevealedArea]:
        area = await self.get_revealed_area()
        return [area] if area is not None else []

    async def save_revealed_area(self, geometry: GeometryInput, *, expected_version: int | None = None) -> str:
        multi = coerce_geometry(geometry, operation="save_revealed_area")

        # Idempotence is enforced client-side so any backend satisfies it.
        current = await self.get_revealed_area()
        if current is not None and geometries_equal(current.geometry, multi, tolerance=self._snap_tolerance):
            _logger.debug("Revealed area for %s unchanged, save is a no-op", self._scope)
            return current.id

        payload = {"geometry": to_feature_collection(multi), "expectedVersion": expected_version}
        body = await self._request("PUT", "/revealed-area", operation="save_revealed_area", payload=payload)
        try:
            area_id = str(body["id"])
        except (TypeError, KeyError) as exc:
            raise self._invalid("save_revealed_area", exc) from exc
        _logger.debug("Saved revealed area %s: %s", area_id, describe_geometry(multi))
        return area_id

    async def reset_revealed_area(self) -> None:
        await self._request("DELETE", "/revealed-area", operation="reset_revealed_area", allow_not_found=True)
        _logger.info("Revealed area for scope %s reset", self._scope)
