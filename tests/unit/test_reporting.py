"""
Unit Tests - Product Summary Report
"""
from datetime import date

import pytest

from adgate.database.models import AdPerformanceFact, AdType, InventoryFact, RatingsFact, SalesFact, Seller
from adgate.reporting import (
    RangeType,
    ReportRange,
    ReportRangeError,
    build_product_summary,
    resolve_report_range,
)

JANUARY = ReportRange(date(2026, 1, 1), date(2026, 1, 31))


class TestResolveReportRange:
    """Tests for named reporting ranges"""

    def test_last_month(self):
        assert resolve_report_range(RangeType.LAST_MONTH, date(2026, 3, 15)) == ReportRange(
            date(2026, 2, 1), date(2026, 2, 28)
        )

    def test_last_month_in_january(self):
        assert resolve_report_range("last_month", date(2026, 1, 9)) == ReportRange(
            date(2025, 12, 1), date(2025, 12, 31)
        )

    def test_current_month(self):
        assert resolve_report_range(RangeType.CURRENT_MONTH, date(2026, 5, 20)) == ReportRange(
            date(2026, 5, 1), date(2026, 5, 20)
        )

    @pytest.mark.parametrize("today,start,end", [
        (date(2026, 2, 10), date(2025, 10, 1), date(2025, 12, 31)),
        (date(2026, 5, 31), date(2026, 1, 1), date(2026, 3, 31)),
        (date(2026, 9, 30), date(2026, 4, 1), date(2026, 6, 30)),
        (date(2026, 12, 1), date(2026, 7, 1), date(2026, 9, 30)),
    ])
    def test_last_quarter(self, today, start, end):
        assert resolve_report_range(RangeType.LAST_QUARTER, today) == ReportRange(start, end)

    def test_custom(self):
        period = resolve_report_range(RangeType.CUSTOM, start=date(2026, 1, 5), end=date(2026, 1, 9))
        assert period == ReportRange(date(2026, 1, 5), date(2026, 1, 9))

    def test_custom_needs_both_bounds(self):
        with pytest.raises(ReportRangeError):
            resolve_report_range(RangeType.CUSTOM, start=date(2026, 1, 5))

    def test_custom_start_after_end(self):
        with pytest.raises(ReportRangeError):
            resolve_report_range(RangeType.CUSTOM, start=date(2026, 2, 1), end=date(2026, 1, 1))

    def test_unknown_range(self):
        with pytest.raises(ValueError):
            resolve_report_range("last_decade")


@pytest.fixture
async def january_facts(session_provider, catalog):
    """Sales for two sellers on listing 1, stock, ratings and ads in and around January"""
    async with session_provider() as db:
        db.add(Seller(seller_id=6, name="Zen Traders", platform_id=catalog.amazon, active=True))
        await db.flush()
        db.add_all([
            SalesFact(product_platform_id=catalog.listing_1, seller_id=5, period_start_date=date(2026, 1, 3),
                      period_end_date=date(2026, 1, 3), units_sold=4, revenue=40),
            SalesFact(product_platform_id=catalog.listing_1, seller_id=5, period_start_date=date(2025, 12, 29),
                      period_end_date=date(2026, 1, 4), units_sold=7, revenue=70),
            SalesFact(product_platform_id=catalog.listing_1, seller_id=6, period_start_date=date(2026, 1, 10),
                      period_end_date=date(2026, 1, 10), units_sold=2, revenue=20),
            # February, outside the range
            SalesFact(product_platform_id=catalog.listing_1, seller_id=5, period_start_date=date(2026, 2, 2),
                      period_end_date=date(2026, 2, 2), units_sold=100, revenue=1),
            InventoryFact(product_platform_id=catalog.listing_1, seller_id=5,
                          snapshot_date=date(2026, 1, 2), inventory_units=50),
            InventoryFact(product_platform_id=catalog.listing_1, seller_id=5,
                          snapshot_date=date(2026, 1, 30), inventory_units=12),
            InventoryFact(product_platform_id=catalog.listing_1, seller_id=6,
                          snapshot_date=date(2026, 1, 15), inventory_units=3),
            InventoryFact(product_platform_id=catalog.listing_1, seller_id=6,
                          snapshot_date=date(2026, 2, 15), inventory_units=90),
            RatingsFact(product_platform_id=catalog.listing_1, snapshot_date=date(2026, 1, 20),
                        rating=4.3, review_count=88),
            AdPerformanceFact(product_platform_id=catalog.listing_1, period_start_date=date(2026, 1, 1),
                              period_end_date=date(2026, 1, 7), spend=50, revenue=400, ad_type=AdType.SP),
            AdPerformanceFact(product_platform_id=catalog.listing_1, period_start_date=date(2026, 1, 8),
                              period_end_date=date(2026, 1, 14), spend=50, revenue=100, ad_type=AdType.SD),
        ])
    return catalog


class TestProductSummary:
    async def test_rollup_per_listing(self, session_provider, january_facts):
        async with session_provider() as db:
            report = await build_product_summary(db, JANUARY)

        assert report.total == 2
        assert (report.range_start, report.range_end) == (JANUARY.start, JANUARY.end)
        bottle, mat = report.rows

        assert bottle.sku == "SKU-001"
        assert bottle.sales_by_seller == {"Acme Retail": 11, "Zen Traders": 2}
        assert bottle.sales_total == 13
        assert bottle.inventory_by_seller == {"Acme Retail": 12, "Zen Traders": 3}
        assert bottle.inventory_total == 15
        assert (bottle.rating, bottle.review_count) == (4.3, 88)
        assert bottle.roas == 5.0

        assert mat.sales_total == 0
        assert mat.inventory_by_seller == {}
        assert mat.rating is None and mat.roas is None

    async def test_search_and_paging(self, session_provider, january_facts):
        async with session_provider() as db:
            by_name = await build_product_summary(db, JANUARY, search="yoga")
            by_asin = await build_product_summary(db, JANUARY, search=" b0001 ")
            second = await build_product_summary(db, JANUARY, page=2, page_size=1)

        assert [r.sku for r in by_name.rows] == ["SKU-002"]
        assert [r.platform_sku for r in by_asin.rows] == ["B0001"]
        assert second.total == 2
        assert [r.sku for r in second.rows] == ["SKU-002"]

    async def test_platform_filter_ignores_case(self, session_provider, january_facts):
        async with session_provider() as db:
            amazon = await build_product_summary(db, JANUARY, platform="amazon")
            flipkart = await build_product_summary(db, JANUARY, platform="Flipkart")
        assert amazon.total == 2
        assert flipkart.total == 0
        assert flipkart.rows == []
