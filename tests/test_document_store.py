"""Tests for the document store HTTP client against a local aiohttp server."""

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp import test_utils

from ev_fleet_charging.app.config import AppConfig
from ev_fleet_charging.app.document_store import DocumentStoreClient

TESLA = {
    "_id": "k173x8f9g2h1j4k5l6m7n8p9",
    "_creationTime": 1704110400000.0,
    "nickname": "My Tesla Car",
    "model": "Tesla Model 3",
    "batteryCapacity": 75,
    "stateOfCharge": 62.5,
}
LEAF = {
    "_id": "j9a8b7c6d5e4",
    "_creationTime": 1704110500000.0,
    "nickname": "Leaf",
    "model": "Nissan Leaf",
    "batteryCapacity": 40,
    "stateOfCharge": 30,
}


def make_app(calls):
    docs = [TESLA, LEAF]

    async def query(request):
        body = await request.json()
        calls.append(("query", body, request.headers.get("Authorization")))
        path, args = body["path"], body["args"]
        if path == "vehicles:get":
            value = docs
        elif path == "vehicles:getById":
            value = next((d for d in docs if d["_id"] == args["id"]), None)
        elif path == "vehicles:getBySlug":
            partial = args["slug"].rpartition("-")[2]
            value = next((d for d in docs if d["_id"].startswith(partial)), None)
        elif path == "vehicles:broken":
            return web.json_response({"status": "error", "errorMessage": "boom"})
        else:
            return web.Response(status=404)
        return web.json_response({"status": "success", "value": value})

    async def mutation(request):
        body = await request.json()
        calls.append(("mutation", body, request.headers.get("Authorization")))
        return web.json_response({"status": "success", "value": "newvehicle123"})

    app = web.Application()
    app.router.add_post("/api/query", query)
    app.router.add_post("/api/mutation", mutation)
    return app


@pytest.fixture
def calls():
    return []


@pytest_asyncio.fixture
async def client(calls):
    server = test_utils.TestServer(make_app(calls))
    await server.start_server()
    config = AppConfig(
        document_store_url=f"http://{server.host}:{server.port}/",
        document_store_token="secret",
    )
    yield DocumentStoreClient(config)
    await server.close()


class TestQueries:
    @pytest.mark.asyncio
    async def test_list_all(self, client, calls):
        records = await client.list_all()
        assert [r.nickname for r in records] == ["My Tesla Car", "Leaf"]
        assert records[0].state_of_charge == 62.5
        assert records[0].creation_time == 1704110400000.0
        kind, body, auth = calls[0]
        assert kind == "query"
        assert body == {"path": "vehicles:get", "args": {}, "format": "json"}
        assert auth == "Bearer secret"

    @pytest.mark.asyncio
    async def test_get_by_id(self, client):
        record = await client.get("j9a8b7c6d5e4")
        assert record.model == "Nissan Leaf"
        assert await client.get("unknown") is None

    @pytest.mark.asyncio
    async def test_get_by_slug(self, client, calls):
        record = await client.get_by_slug("my-tesla-car-k173x8")
        assert record.id == TESLA["_id"]
        assert calls[-1][1]["args"] == {"slug": "my-tesla-car-k173x8"}

    @pytest.mark.asyncio
    async def test_malformed_slug_skips_the_request(self, client, calls):
        assert await client.get_by_slug("tesla-abc") is None
        assert calls == []

    @pytest.mark.asyncio
    async def test_search(self, client):
        assert [r.nickname for r in await client.search("my t")] == ["My Tesla Car"]

    @pytest.mark.asyncio
    async def test_error_status_returns_none(self, client):
        assert await client.query("vehicles:broken") is None

    @pytest.mark.asyncio
    async def test_http_error_returns_none(self, client):
        assert await client.query("vehicles:unknown") is None


class TestMutations:
    @pytest.mark.asyncio
    async def test_create(self, client, calls):
        vehicle_id = await client.create("kEVin", "Mini Cooper E", 32.6)
        assert vehicle_id == "newvehicle123"
        kind, body, _ = calls[-1]
        assert kind == "mutation"
        assert body["path"] == "vehicles:create"
        assert body["args"] == {
            "nickname": "kEVin",
            "model": "Mini Cooper E",
            "batteryCapacity": 32.6,
        }


class TestUnreachable:
    @pytest.mark.asyncio
    async def test_connection_failure_degrades_to_empty(self):
        client = DocumentStoreClient(AppConfig(document_store_url="http://127.0.0.1:1"))
        assert await client.list_all() == []
        assert await client.get("anything") is None
        assert await client.create("n", "m", 1) is None
