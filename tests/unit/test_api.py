"""
Unit Tests - API Endpoints
"""
import httpx
import pytest

from adgate.database.connection import get_session_provider
from adgate.ingestion.reference_cache import CacheKind, get_reference_cache
from adgate.main import create_app

SALES_CSV = (
    "ASIN,Date,Units Sold,Shipped Revenue\n"
    "B0001,2Jan'26,3,299.97\n"
    "B-missing,2Jan'26,1,99.99\n"
    "B0002,1Jan'26,,\n"
)


@pytest.fixture
async def client(session_provider, cache):
    """API client bound to the test database and cache"""
    app = create_app()
    app.dependency_overrides[get_session_provider] = lambda: session_provider
    app.dependency_overrides[get_reference_cache] = lambda: cache

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def upload_sales(client, **form):
    return await client.post(
        "/api/v1/uploads/sales",
        files={"file": ("sales.csv", SALES_CSV.encode(), "text/csv")},
        data=form,
    )


class TestHealthEndpoints:
    async def test_liveness(self, client):
        response = await client.get("/api/v1/health/live")
        assert response.status_code == 200
        assert response.json() == {"status": "alive"}

    async def test_health_checks_database(self, client):
        response = await client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json()["checks"]["database"]["status"] == "healthy"

    async def test_readiness(self, client):
        response = await client.get("/api/v1/health/ready")
        assert response.json() == {"status": "ready"}

    async def test_security_headers(self, client):
        response = await client.get("/api/v1/health/live")
        assert response.headers["X-Content-Type-Options"] == "nosniff"


class TestUploadEndpoints:
    """Tests for spreadsheet upload"""

    async def test_sales_upload(self, client, catalog):
        response = await upload_sales(client, platform="Amazon", seller_id="5")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["has_warnings"] is True
        assert body["row_count"] == 2
        assert body["skipped_row_count"] == 1
        assert body["error_row_count"] == 0
        assert body["missing_platform_skus"] == ["B-missing"]
        assert body["message"] == "Imported 2 rows"
        assert body["upload_id"]

    async def test_latest_upload(self, client, catalog):
        await upload_sales(client, platform="Amazon", seller_id="5")

        response = await client.get("/api/v1/uploads/latest", params={"table_type": "sales", "seller_id": 5})
        latest = response.json()["latest"]
        assert latest["row_count"] == 2
        assert latest["range_label"] == "2026-01-01 to 2026-01-02"

    async def test_latest_upload_when_none(self, client, platforms):
        response = await client.get("/api/v1/uploads/latest", params={"table_type": "ratings"})
        assert response.json() == {"success": True, "latest": None}

    async def test_unknown_table_type(self, client, catalog):
        response = await client.post(
            "/api/v1/uploads/orders",
            files={"file": ("orders.csv", b"SKU\nA\n", "text/csv")},
        )
        assert response.status_code == 400
        assert "hint" in response.json()

    async def test_missing_seller(self, client, catalog):
        response = await upload_sales(client, platform="Amazon")
        assert response.status_code == 400
        assert response.json()["error"] == "seller_id is required for sales"

    async def test_unsupported_file(self, client, catalog):
        response = await client.post(
            "/api/v1/uploads/sales",
            files={"file": ("sales.pdf", b"%PDF", "application/pdf")},
            data={"platform": "Amazon", "seller_id": "5"},
        )
        assert response.status_code == 400

    async def test_nothing_imported(self, client, catalog):
        response = await client.post(
            "/api/v1/uploads/sales",
            files={"file": ("sales.csv", b"ASIN,Date\nB-missing,1Jan'26\n", "text/csv")},
            data={"platform": "Amazon", "seller_id": "5"},
        )
        assert response.status_code == 200
        assert response.json()["success"] is False
        assert response.json()["message"] == "No rows were imported"


class TestSellerEndpoints:
    async def test_filter_by_platform(self, client, catalog):
        response = await client.get("/api/v1/sellers", params={"platform": "Amazon"})
        body = response.json()
        assert body["count"] == 1
        assert body["sellers"][0]["name"] == "Acme Retail"

        response = await client.get("/api/v1/sellers", params={"platform": "Myntra"})
        assert response.json()["count"] == 0

    async def test_platform_name_ignores_case(self, client, catalog):
        response = await client.get("/api/v1/sellers", params={"platform": "amazon"})
        assert response.json()["count"] == 1


class TestDecisionEndpoints:
    async def test_run_and_list(self, client, catalog):
        response = await client.post("/api/v1/decisions/run", json={"as_of": "2026-01-31"})
        assert response.status_code == 200
        assert response.json()["total"] == 4

        response = await client.get("/api/v1/decisions", params={"decision": "false", "page_size": 2})
        body = response.json()
        assert body["total"] == 4
        assert len(body["items"]) == 2
        assert body["items"][0]["platform_name"] == "Amazon"

    async def test_run_for_unknown_seller(self, client, catalog):
        response = await client.post("/api/v1/decisions/run", json={"seller_id": 999})
        assert response.status_code == 404

    async def test_list_filters(self, client, catalog):
        await client.post("/api/v1/decisions/run", json={"as_of": "2026-01-31"})

        response = await client.get("/api/v1/decisions", params={"platform": "AMAZON"})
        assert response.json()["total"] == 4

        response = await client.get("/api/v1/decisions", params={"product_platform_id": catalog.listing_2})
        items = response.json()["items"]
        assert {item["platform_sku"] for item in items} == {"B0002"}
        assert len(items) == 2

    async def test_listing_decisions(self, client, catalog):
        await client.post("/api/v1/decisions/run", json={"as_of": "2026-01-31"})

        response = await client.get(f"/api/v1/decisions/{catalog.listing_1}")
        assert response.status_code == 200
        body = response.json()
        assert body["product_platform_id"] == catalog.listing_1
        assert [d["seller_name"] for d in body["decisions"]] == ["Acme Retail", "All Sellers"]

    async def test_listing_without_decisions(self, client, catalog):
        response = await client.get(f"/api/v1/decisions/{catalog.listing_1}")
        assert response.status_code == 404

    async def test_upload_for_all_sellers_after_run(self, client, cache, catalog):
        await cache.load(CacheKind.SELLER)
        await client.post("/api/v1/decisions/run", json={"as_of": "2026-01-31"})

        sellers = (await client.get("/api/v1/sellers", params={"platform": "Amazon"})).json()["sellers"]
        all_sellers = next(s["seller_id"] for s in sellers if s["name"] == "All Sellers")
        response = await upload_sales(client, platform="Amazon", seller_id=str(all_sellers))
        assert response.status_code == 200
        assert response.json()["row_count"] == 2


class TestReportEndpoints:
    async def test_custom_range(self, client, catalog):
        await upload_sales(client, platform="Amazon", seller_id="5")

        response = await client.get(
            "/api/v1/reports/product-summary",
            params={"range": "custom", "start": "2026-01-01", "end": "2026-01-31", "search": "B0001"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["range_start"] == "2026-01-01"
        assert body["total"] == 1
        assert body["rows"][0]["sales_by_seller"] == {"Acme Retail": 3}

    async def test_custom_range_needs_bounds(self, client, catalog):
        response = await client.get("/api/v1/reports/product-summary", params={"range": "custom"})
        assert response.status_code == 400
        assert response.json()["success"] is False

    async def test_unknown_range(self, client, catalog):
        response = await client.get("/api/v1/reports/product-summary", params={"range": "last_decade"})
        assert response.status_code == 422


class TestDataEndpoints:
    async def test_browse_sales(self, client, catalog):
        await upload_sales(client, platform="Amazon", seller_id="5")

        response = await client.get("/api/v1/data/sales", params={"page_size": 1})
        body = response.json()
        assert body["total"] == 2
        assert len(body["rows"]) == 1
        assert body["rows"][0]["period_start_date"] == "2026-01-02"
        assert body["rows"][0]["seller_name"] == "Acme Retail"

    async def test_search(self, client, catalog):
        response = await client.get("/api/v1/data/product-platforms", params={"search": "b0002"})
        rows = response.json()["rows"]
        assert [(r["sku"], r["platform_name"]) for r in rows] == [("SKU-002", "Amazon")]

    async def test_reference_tables(self, client, catalog):
        response = await client.get("/api/v1/data/sellers")
        assert response.json()["rows"][0]["platform_name"] == "Amazon"

        response = await client.get("/api/v1/data/products", params={"search": "mat"})
        assert [r["sku"] for r in response.json()["rows"]] == ["SKU-002"]

    async def test_invalid_table_type(self, client, catalog):
        response = await client.get("/api/v1/data/orders")
        assert response.status_code == 400
        assert "hint" in response.json()


class TestSyncEndpoint:
    async def test_unconfigured_api(self, client, monkeypatch):
        monkeypatch.setattr("adgate.ingestion.sync.settings.product_sync.url", None)
        response = await client.post("/api/v1/sync/products")
        assert response.status_code == 502
