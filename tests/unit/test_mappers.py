"""
Unit Tests - Row Mappers

The cache is populated in memory; no database is involved.
"""
from datetime import date

import pytest

from adgate.database.models import AdType
from adgate.ingestion.errors import CacheNotLoaded, RowMappingError
from adgate.ingestion.mappers import (
    ImportContext,
    Mapped,
    Skipped,
    map_ad_performance,
    map_company_inventory,
    map_inventory,
    map_product,
    map_product_platform,
    map_ratings,
    map_sales,
    map_seller,
    resolve_listing,
)
from adgate.ingestion.reference_cache import (
    PLATFORMS,
    PRODUCT_PLATFORMS,
    PRODUCTS,
    ReferenceCache,
)
from adgate.ingestion.rows import RawRow

AMAZON = 1
FLIPKART = 2


@pytest.fixture
def warm_cache() -> ReferenceCache:
    cache = ReferenceCache()
    cache.populate(PLATFORMS, [
        {"platform_id": AMAZON, "name": "Amazon"},
        {"platform_id": FLIPKART, "name": "Flipkart"},
    ])
    cache.populate(PRODUCTS, [
        {"product_id": 10, "sku_normalized": "SKU001"},
        {"product_id": 20, "sku_normalized": "SKU002"},
    ])
    cache.populate(PRODUCT_PLATFORMS, [
        {"product_platform_id": 100, "platform_id": AMAZON, "platform_sku": "B0001", "sku_normalized": "SKU001"},
        {"product_platform_id": 200, "platform_id": AMAZON, "platform_sku": None, "sku_normalized": "SKU002"},
        {"product_platform_id": 300, "platform_id": FLIPKART, "platform_sku": "FK-1", "sku_normalized": "SKU001"},
    ])
    return cache


@pytest.fixture
def amazon_seller() -> ImportContext:
    return ImportContext(platform_id=AMAZON, platform_name="Amazon", seller_id=5)


class TestResolveListing:
    """Tests for product-platform resolution"""

    def test_platform_sku_resolves(self, warm_cache, amazon_seller):
        row = RawRow({"ASIN": "b0001"})
        assert resolve_listing(row, amazon_seller, warm_cache) == 100

    def test_falls_back_to_sku(self, warm_cache, amazon_seller):
        row = RawRow({"ASIN": "B9999", "SKU": "sku-002"})
        assert resolve_listing(row, amazon_seller, warm_cache) == 200

    def test_lookup_is_scoped_to_platform(self, warm_cache):
        ctx = ImportContext(platform_id=FLIPKART, seller_id=5)
        assert resolve_listing(RawRow({"SKU": "SKU-001"}), ctx, warm_cache) == 300
        assert isinstance(resolve_listing(RawRow({"Platform SKU": "B0001"}), ctx, warm_cache), Skipped)

    def test_missing_keys_skip(self, warm_cache, amazon_seller):
        outcome = resolve_listing(RawRow({"Units Sold": "3"}), amazon_seller, warm_cache)
        assert isinstance(outcome, Skipped)
        assert outcome.missing_sku is None and outcome.missing_platform_sku is None

    def test_unknown_keys_are_recorded(self, warm_cache, amazon_seller):
        outcome = resolve_listing(RawRow({"ASIN": "B-missing"}), amazon_seller, warm_cache)
        assert isinstance(outcome, Skipped)
        assert outcome.missing_platform_sku == "B-missing"

    def test_unloaded_cache_raises(self, amazon_seller):
        with pytest.raises(CacheNotLoaded):
            resolve_listing(RawRow({"ASIN": "B0001"}), amazon_seller, ReferenceCache())


class TestReferenceMappers:
    def test_product(self, warm_cache):
        row = RawRow({"SKU": " sku  003 ", "Product Name": "Lamp", "Launch Date": "2025-01-15", "Active": "no"})
        outcome = map_product(row, ImportContext(), warm_cache)
        assert outcome == Mapped({
            "sku": "SKU 003",
            "sku_normalized": "SKU003",
            "product_name": "Lamp",
            "category": None,
            "launch_date": date(2025, 1, 15),
            "active": False,
        })

    def test_product_without_sku_skips(self, warm_cache):
        assert isinstance(map_product(RawRow({"SKU": "--"}), ImportContext(), warm_cache), Skipped)

    def test_product_bad_launch_date_is_error(self, warm_cache):
        with pytest.raises(RowMappingError):
            map_product(RawRow({"SKU": "A1", "Launch Date": "soon"}), ImportContext(), warm_cache)

    def test_product_platform_uses_row_platform(self, warm_cache):
        row = RawRow({"SKU": "SKU-001", "Platform SKU": "fk-9", "Platform": "flipkart"})
        outcome = map_product_platform(row, ImportContext(platform_id=AMAZON), warm_cache)
        assert outcome.record == {"product_id": 10, "platform_id": FLIPKART, "platform_sku": "FK-9"}

    def test_product_platform_unknown_platform_is_error(self, warm_cache):
        row = RawRow({"SKU": "SKU-001", "Platform": "eBay"})
        with pytest.raises(RowMappingError):
            map_product_platform(row, ImportContext(), warm_cache)

    def test_product_platform_unknown_sku_skips(self, warm_cache):
        outcome = map_product_platform(RawRow({"SKU": "NOPE"}), ImportContext(platform_id=AMAZON), warm_cache)
        assert outcome.missing_sku == "NOPE"

    def test_seller(self, warm_cache):
        row = RawRow({"Seller Name": "  Acme   Retail "})
        outcome = map_seller(row, ImportContext(platform_id=AMAZON), warm_cache)
        assert outcome.record == {"name": "Acme Retail", "platform_id": AMAZON, "active": True}

    def test_seller_needs_platform(self, warm_cache):
        with pytest.raises(RowMappingError):
            map_seller(RawRow({"Seller Name": "Acme"}), ImportContext(), warm_cache)


class TestFactMappers:
    def test_sales(self, warm_cache, amazon_seller):
        row = RawRow({"ASIN": "B0001", "Date": "1Jan'26", "Units Sold": "4", "Shipped Revenue": "399.5"})
        outcome = map_sales(row, amazon_seller, warm_cache)
        assert outcome.record == {
            "product_platform_id": 100,
            "seller_id": 5,
            "period_start_date": date(2026, 1, 1),
            "period_end_date": date(2026, 1, 1),
            "units_sold": 4,
            "revenue": 399.5,
        }

    def test_sales_bad_date_is_error(self, warm_cache, amazon_seller):
        with pytest.raises(RowMappingError):
            map_sales(RawRow({"ASIN": "B0001", "Date": "Jan 2026"}), amazon_seller, warm_cache)

    def test_sales_unknown_listing_skips_before_date_check(self, warm_cache, amazon_seller):
        outcome = map_sales(RawRow({"ASIN": "B-missing", "Date": "bad"}), amazon_seller, warm_cache)
        assert isinstance(outcome, Skipped)

    def test_inventory_requires_snapshot_date(self, warm_cache, amazon_seller):
        with pytest.raises(RowMappingError):
            map_inventory(RawRow({"ASIN": "B0001", "Inventory Units": "3"}), amazon_seller, warm_cache)

    def test_inventory(self, warm_cache):
        ctx = ImportContext(platform_id=AMAZON, seller_id=5, snapshot_date=date(2025, 6, 1))
        outcome = map_inventory(RawRow({"SKU": "SKU-002", "Inventory Units": "12"}), ctx, warm_cache)
        assert outcome.record["product_platform_id"] == 200
        assert outcome.record["inventory_units"] == 12

    def test_company_inventory(self, warm_cache):
        row = RawRow({"SKU": "sku001", "Snapshot Date (YYYY-MM-DD)": "2025-06-01", "Inventory Units": "40"})
        outcome = map_company_inventory(row, ImportContext(), warm_cache)
        assert outcome.record == {
            "product_id": 10,
            "snapshot_date": date(2025, 6, 1),
            "inventory_units": 40,
            "location": "",
        }

    def test_ratings(self, warm_cache):
        ctx = ImportContext(platform_id=AMAZON, snapshot_date=date(2025, 6, 1))
        outcome = map_ratings(RawRow({"ASIN": "B0001", "Ratings": "4.3", "Review Count": "87"}), ctx, warm_cache)
        assert outcome.record["rating"] == 4.3
        assert outcome.record["review_count"] == 87

    def test_ad_performance(self, warm_cache):
        ctx = ImportContext(platform_id=AMAZON, ad_type=AdType.SP)
        row = RawRow({
            "ASIN": "B0001", "Month": "Mar", "Year": "2025",
            "Spend": "100", "Revenue": "950", "Shipped Revenue": "5",
        })
        outcome = map_ad_performance(row, ctx, warm_cache)
        assert outcome.record["period_start_date"] == date(2025, 3, 1)
        assert outcome.record["period_end_date"] == date(2025, 3, 31)
        assert outcome.record["revenue"] == 950.0
        assert outcome.record["ad_type"] is AdType.SP

    def test_ad_performance_requires_ad_type(self, warm_cache):
        ctx = ImportContext(platform_id=AMAZON)
        with pytest.raises(RowMappingError):
            map_ad_performance(RawRow({"ASIN": "B0001", "Date": "1Mar'25"}), ctx, warm_cache)
