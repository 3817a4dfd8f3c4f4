from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

import pytest
from aiohttp import test_utils, web
from shapely.geometry import box

from pyreveal.config import RevealConfig
from pyreveal.exceptions import RevealConfigError, StorageConflict, StorageFailure
from pyreveal.models import Location
from pyreveal.store import HttpGeometryStore


@dataclass
class _FakeBackend:
    """Minimal REST backend keeping one revealed area and a location list per scope."""

    areas: dict[str, dict[str, Any]] = field(default_factory=dict)
    locations: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    puts: int = 0
    fail_status: int | None = None

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/scopes/{scope}/locations", self.get_locations)
        app.router.add_post("/scopes/{scope}/locations", self.add_location)
        app.router.add_get("/scopes/{scope}/revealed-area", self.get_area)
        app.router.add_put("/scopes/{scope}/revealed-area", self.put_area)
        app.router.add_delete("/scopes/{scope}/revealed-area", self.delete_area)
        return app

    async def get_locations(self, request: web.Request) -> web.Response:
        if self.fail_status is not None:
            return web.Response(status=self.fail_status, text="backend unavailable")
        return web.json_response({"locations": self.locations.get(request.match_info["scope"], [])})

    async def add_location(self, request: web.Request) -> web.Response:
        body = await request.json()
        items = self.locations.setdefault(request.match_info["scope"], [])
        body["id"] = len(items) + 1
        items.append(body)
        return web.json_response({"id": body["id"]}, status=201)

    async def get_area(self, request: web.Request) -> web.Response:
        if self.fail_status is not None:
            return web.Response(status=self.fail_status, text="backend unavailable")
        record = self.areas.get(request.match_info["scope"])
        if record is None:
            return web.json_response({"error": "not found"}, status=404)
        fc = dict(record["geometry"])
        fc["features"] = [
            {**feature, "properties": {"id": record["id"], "version": record["version"], "updatedAt": 1704067200000}}
            for feature in fc["features"]
        ]
        return web.json_response(fc)

    async def put_area(self, request: web.Request) -> web.Response:
        self.puts += 1
        scope = request.match_info["scope"]
        body = await request.json()
        record = self.areas.get(scope)
        actual = record["version"] if record is not None else 0
        expected = body.get("expectedVersion")
        if expected is not None and expected != actual:
            return web.json_response({"error": "version conflict"}, status=409)
        if record is None:
            record = {"id": uuid.uuid4().hex, "version": 0}
        record = {**record, "geometry": body["geometry"], "version": actual + 1}
        self.areas[scope] = record
        return web.json_response({"id": record["id"]})

    async def delete_area(self, request: web.Request) -> web.Response:
        self.areas.pop(request.match_info["scope"], None)
        return web.Response(status=204)


@pytest.mark.asyncio
async def test_revealed_area_roundtrip() -> None:
    backend = _FakeBackend()
    async with test_utils.TestServer(backend.app()) as server:
        async with HttpGeometryStore(str(server.make_url("/")), scope="user 1") as store:
            assert await store.get_revealed_area() is None
            assert await store.get_revealed_areas() == []

            area_id = await store.save_revealed_area(box(0, 0, 1, 1), expected_version=0)
            area = await store.get_revealed_area()

    assert area is not None
    assert area.id == area_id
    assert area.scope == "user 1"
    assert area.version == 1
    assert area.geometry.area == pytest.approx(1.0)
    assert "user 1" in backend.areas


@pytest.mark.asyncio
async def test_equal_geometry_is_not_sent_again() -> None:
    backend = _FakeBackend()
    async with test_utils.TestServer(backend.app()) as server:
        async with HttpGeometryStore(str(server.make_url("/"))) as store:
            first = await store.save_revealed_area(box(0, 0, 1, 1))
            second = await store.save_revealed_area(box(0, 0, 1, 1), expected_version=0)

    assert first == second
    assert backend.puts == 1


@pytest.mark.asyncio
async def test_conflict_maps_to_storage_conflict() -> None:
    backend = _FakeBackend()
    async with test_utils.TestServer(backend.app()) as server:
        async with HttpGeometryStore(str(server.make_url("/"))) as store:
            await store.save_revealed_area(box(0, 0, 1, 1), expected_version=0)
            with pytest.raises(StorageConflict):
                await store.save_revealed_area(box(0, 0, 2, 2), expected_version=0)


@pytest.mark.asyncio
async def test_locations_and_reset() -> None:
    backend = _FakeBackend()
    async with test_utils.TestServer(backend.app()) as server:
        async with HttpGeometryStore(str(server.make_url("/"))) as store:
            location_id = await store.add_location(Location(latitude=51.5, longitude=-0.12, timestamp=1704067200))
            locations = await store.get_locations()
            await store.save_revealed_area(box(0, 0, 1, 1))
            await store.reset_revealed_area()
            after_reset = await store.get_revealed_area()

    assert location_id == 1
    assert len(locations) == 1
    assert locations[0].id == 1
    assert locations[0].latitude == 51.5
    assert after_reset is None


@pytest.mark.asyncio
async def test_server_error_maps_to_storage_failure() -> None:
    backend = _FakeBackend(fail_status=503)
    async with test_utils.TestServer(backend.app()) as server:
        async with HttpGeometryStore(str(server.make_url("/"))) as store:
            with pytest.raises(StorageFailure) as excinfo:
                await store.get_revealed_area()

    assert not isinstance(excinfo.value, StorageConflict)
    assert excinfo.value.operation == "get_revealed_area"
    assert "503" in str(excinfo.value)


@pytest.mark.asyncio
async def test_connection_error_keeps_cause() -> None:
    backend = _FakeBackend()
    server = test_utils.TestServer(backend.app())
    await server.start_server()
    base_url = str(server.make_url("/"))
    await server.close()

    async with HttpGeometryStore(base_url, timeout=2.0) as store:
        with pytest.raises(StorageFailure) as excinfo:
            await store.get_locations()

    assert excinfo.value.cause is not None
    assert excinfo.value.__cause__ is excinfo.value.cause


def test_from_config_requires_base_url() -> None:
    with pytest.raises(RevealConfigError):
        HttpGeometryStore.from_config(RevealConfig())

    store = HttpGeometryStore.from_config(RevealConfig(base_url="https://reveal.example.test/api/", scope="s"))
    assert store.scope == "s"
