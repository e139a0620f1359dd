"""End-to-end tests of the HTTP surface over httpx's ASGI transport."""

import pytest
from httpx import ASGITransport, AsyncClient

from shortlink.core.rate_limit import OperationClass, RatePolicyGate
from shortlink.db.session import Database
from shortlink.main import create_app

RECORD_FIELDS = {"id", "targetUrl", "shortCode", "accessCount", "createdAt", "updatedAt"}


async def shorten(client: AsyncClient, url: str = "https://example.com/article/42") -> dict:
    response = await client.post("/shorten", json={"url": url})
    assert response.status_code == 201, response.text
    return response.json()


class TestHealth:
    @pytest.mark.asyncio
    async def test_root_and_health(self, client):
        assert (await client.get("/")).status_code == 200
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestCreateEndpoint:
    @pytest.mark.asyncio
    async def test_create_returns_record(self, client):
        response = await client.post("/shorten", json={"url": "https://example.com/a"})

        assert response.status_code == 201
        body = response.json()
        assert set(body) == RECORD_FIELDS
        assert body["targetUrl"] == "https://example.com/a"
        assert body["accessCount"] == 0
        assert len(body["shortCode"]) == 6
        assert "T" in body["createdAt"]
        assert response.headers["RateLimit-Limit"] == "100"

    @pytest.mark.asyncio
    async def test_invalid_url(self, client):
        response = await client.post("/shorten", json={"url": "not-a-url"})

        assert response.status_code == 400
        body = response.json()
        assert body["status"] == "error"
        assert body["kind"] == "validation_error"

    @pytest.mark.asyncio
    async def test_missing_url_field(self, client):
        response = await client.post("/shorten", json={"link": "https://example.com"})
        assert response.status_code == 400
        assert response.json()["kind"] == "validation_error"


class TestRecordEndpoints:
    @pytest.mark.asyncio
    async def test_resolve_counts_access(self, client):
        created = await shorten(client)
        code = created["shortCode"]

        first = await client.get(f"/shorten/{code}")
        second = await client.get(f"/shorten/{code}")

        assert first.status_code == 200
        assert first.json()["accessCount"] == 1
        assert second.json()["accessCount"] == 2
        assert second.json()["targetUrl"] == created["targetUrl"]

    @pytest.mark.asyncio
    async def test_redirect(self, client):
        created = await shorten(client, "https://example.com/landing")

        response = await client.get(f"/{created['shortCode']}")

        assert response.status_code == 302
        assert response.headers["location"] == "https://example.com/landing"

        stats = await client.get(f"/shorten/{created['shortCode']}/stats")
        assert stats.json()["accessCount"] == 1

    @pytest.mark.asyncio
    async def test_stats_does_not_count(self, client):
        created = await shorten(client)
        code = created["shortCode"]

        for _ in range(2):
            response = await client.get(f"/shorten/{code}/stats")
            assert response.status_code == 200
            assert response.json()["accessCount"] == 0

    @pytest.mark.asyncio
    async def test_update(self, client):
        created = await shorten(client)
        code = created["shortCode"]

        response = await client.put(f"/shorten/{code}", json={"url": "https://example.org/v2"})

        assert response.status_code == 200
        body = response.json()
        assert body["targetUrl"] == "https://example.org/v2"
        assert body["shortCode"] == code
        assert body["id"] == created["id"]
        assert body["accessCount"] == 0

    @pytest.mark.asyncio
    async def test_update_invalid_url(self, client):
        created = await shorten(client)
        response = await client.put(f"/shorten/{created['shortCode']}", json={"url": "nope"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_delete_twice(self, client):
        created = await shorten(client)
        code = created["shortCode"]

        assert (await client.delete(f"/shorten/{code}")).status_code == 204
        assert (await client.get(f"/shorten/{code}")).status_code == 404

        second = await client.delete(f"/shorten/{code}")
        assert second.status_code == 404
        assert second.json()["kind"] == "not_found"

    @pytest.mark.asyncio
    async def test_unknown_code(self, client):
        response = await client.get("/shorten/zzzzzz")
        assert response.status_code == 404
        assert response.json() == {
            "status": "error",
            "kind": "not_found",
            "message": "Short code 'zzzzzz' not found",
        }


    @pytest.mark.asyncio
    async def test_padded_code_is_not_found(self, client):
        created = await shorten(client)
        code = created["shortCode"]

        response = await client.get(f"/shorten/%20{code}%20/stats")
        assert response.status_code == 404
        assert response.json()["kind"] == "not_found"

        assert (await client.get(f"/shorten/{code}/stats")).status_code == 200

    @pytest.mark.asyncio
    async def test_error_schema_documented(self, client):
        schema = (await client.get("/openapi.json")).json()
        resolve = schema["paths"]["/shorten/{short_code}"]["get"]["responses"]
        assert resolve["404"]["content"]["application/json"]["schema"]["$ref"].endswith(
            "/ErrorResponse"
        )


class TestRateLimiting:
    @pytest.mark.asyncio
    async def test_create_quota_exceeded(self, settings, database):
        gate = RatePolicyGate({
            OperationClass.GLOBAL: "100/15 minutes",
            OperationClass.CREATE: "2/15 minutes",
            OperationClass.READ: "100/1 minute",
            OperationClass.MODIFY: "100/15 minutes",
        })
        app = create_app(settings, database=database, rate_gate=gate)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            await shorten(client)
            await shorten(client)
            response = await client.post("/shorten", json={"url": "https://example.com"})

            assert response.status_code == 429
            assert response.json()["kind"] == "rate_limited"
            assert int(response.headers["Retry-After"]) > 0
            assert response.headers["RateLimit-Limit"] == "2"
            assert response.headers["RateLimit-Remaining"] == "0"
            assert int(response.headers["RateLimit-Reset"]) > 0

            # Reads have their own quota
            assert (await client.get("/shorten/abcdef/stats")).status_code == 404

    @pytest.mark.asyncio
    async def test_failed_requests_count(self, settings, database):
        gate = RatePolicyGate({
            OperationClass.GLOBAL: "100/15 minutes",
            OperationClass.CREATE: "100/15 minutes",
            OperationClass.READ: "2/1 minute",
            OperationClass.MODIFY: "100/15 minutes",
        })
        app = create_app(settings, database=database, rate_gate=gate)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            assert (await client.get("/shorten/aaaaaa")).status_code == 404
            assert (await client.get("/shorten/bbbbbb/stats")).status_code == 404
            assert (await client.get("/shorten/cccccc")).status_code == 429

    @pytest.mark.asyncio
    async def test_health_is_not_limited(self, settings, database):
        gate = RatePolicyGate({policy: "1/15 minutes" for policy in OperationClass})
        app = create_app(settings, database=database, rate_gate=gate)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            for _ in range(3):
                assert (await client.get("/health")).status_code == 200


class TestStoreOutage:
    @pytest.mark.asyncio
    async def test_unreachable_store_returns_503_without_detail(self, settings, tmp_path):
        database = Database(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'x.db'}")
        app = create_app(settings, database=database)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.post("/shorten", json={"url": "https://example.com"})

        assert response.status_code == 503
        body = response.json()
        assert body["kind"] == "service_unavailable"
        assert "detail" not in body
        assert "sqlite" not in body["message"].lower()
        await database.shutdown()

    @pytest.mark.asyncio
    async def test_debug_mode_exposes_detail(self, settings, tmp_path):
        settings = settings.model_copy(update={"DEBUG": True})
        database = Database(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'x.db'}")
        app = create_app(settings, database=database)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/shorten/abcdef/stats")

        assert response.status_code == 503
        assert "OperationalError" in response.json()["detail"]
        await database.shutdown()
