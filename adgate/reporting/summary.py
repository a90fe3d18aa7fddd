"""
Product Summary Report

Per-listing rollup over a reporting range: units sold and latest stock per
seller, latest rating and ROAS. Listings are paged and searchable by SKU,
platform SKU or product name; facts are aggregated for the page only.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Dict, List, Optional, Tuple

import structlog
from pydantic import BaseModel
from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from adgate.database.models import (
    AdPerformanceFact,
    InventoryFact,
    Platform,
    Product,
    ProductPlatform,
    RatingsFact,
    SalesFact,
    Seller,
)

logger = structlog.get_logger(__name__)


class RangeType(str, Enum):
    LAST_MONTH = "last_month"
    CURRENT_MONTH = "current_month"
    LAST_QUARTER = "last_quarter"
    CUSTOM = "custom"


class ReportRangeError(ValueError):
    """Custom range without both bounds, or with start after end."""


@dataclass(frozen=True)
class ReportRange:
    start: date
    end: date


def resolve_report_range(
    range_type: RangeType,
    today: Optional[date] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> ReportRange:
    """
    Turn a named range into inclusive dates.

    last_month and last_quarter are the previous full calendar month and
    quarter; current_month runs from the 1st to `today`.

    Example:
        resolve_report_range(RangeType.LAST_QUARTER, date(2026, 2, 10))
        # ReportRange(start=date(2025, 10, 1), end=date(2025, 12, 31))
    """
    today = today or date.today()
    range_type = RangeType(range_type)

    if range_type is RangeType.CUSTOM:
        if start is None or end is None:
            raise ReportRangeError("start and end are required for a custom range")
        if start > end:
            raise ReportRangeError(f"start {start} is after end {end}")
        return ReportRange(start, end)

    month_start = today.replace(day=1)
    if range_type is RangeType.CURRENT_MONTH:
        return ReportRange(month_start, today)

    if range_type is RangeType.LAST_MONTH:
        last_day = month_start - timedelta(days=1)
        return ReportRange(last_day.replace(day=1), last_day)

    quarter_start = date(today.year, (today.month - 1) // 3 * 3 + 1, 1)
    last_day = quarter_start - timedelta(days=1)
    return ReportRange(date(last_day.year, last_day.month - 2, 1), last_day)


class ProductSummaryRow(BaseModel):
    product_platform_id: int
    sku: str
    product_name: Optional[str]
    platform_name: str
    platform_sku: Optional[str]
    sales_by_seller: Dict[str, int]
    sales_total: int
    inventory_by_seller: Dict[str, int]
    inventory_total: int
    rating: Optional[float] = None
    review_count: Optional[int] = None
    roas: Optional[float] = None


class ProductSummaryReport(BaseModel):
    range_start: date
    range_end: date
    rows: List[ProductSummaryRow]
    total: int
    page: int
    page_size: int


def _listing_filter(search: Optional[str], platform: Optional[str]):
    conditions = []
    if search and search.strip():
        like = f"%{search.strip()}%"
        conditions.append(or_(
            Product.sku.ilike(like),
            Product.product_name.ilike(like),
            ProductPlatform.platform_sku.ilike(like),
        ))
    if platform:
        conditions.append(func.lower(Platform.name) == platform.lower())
    return and_(*conditions) if conditions else None


async def _sales_by_seller(db: AsyncSession, ids: List[int], period: ReportRange) -> Dict[int, Dict[str, int]]:
    result = await db.execute(
        select(SalesFact.product_platform_id, Seller.name, func.coalesce(func.sum(SalesFact.units_sold), 0))
        .join(Seller, Seller.seller_id == SalesFact.seller_id)
        .where(
            SalesFact.product_platform_id.in_(ids),
            SalesFact.period_start_date <= period.end,
            SalesFact.period_end_date >= period.start,
        )
        .group_by(SalesFact.product_platform_id, Seller.name)
    )
    sales: Dict[int, Dict[str, int]] = {}
    for pp_id, seller, units in result.all():
        sales.setdefault(pp_id, {})[seller] = int(units)
    return sales


async def _inventory_by_seller(db: AsyncSession, ids: List[int], period: ReportRange) -> Dict[int, Dict[str, int]]:
    latest = (
        select(
            InventoryFact.product_platform_id,
            InventoryFact.seller_id,
            func.max(InventoryFact.snapshot_date).label("snapshot_date"),
        )
        .where(InventoryFact.product_platform_id.in_(ids), InventoryFact.snapshot_date <= period.end)
        .group_by(InventoryFact.product_platform_id, InventoryFact.seller_id)
        .subquery()
    )
    result = await db.execute(
        select(InventoryFact.product_platform_id, Seller.name, InventoryFact.inventory_units)
        .join(
            latest,
            and_(
                InventoryFact.product_platform_id == latest.c.product_platform_id,
                InventoryFact.seller_id == latest.c.seller_id,
                InventoryFact.snapshot_date == latest.c.snapshot_date,
            ),
        )
        .join(Seller, Seller.seller_id == InventoryFact.seller_id)
    )
    inventory: Dict[int, Dict[str, int]] = {}
    for pp_id, seller, units in result.all():
        inventory.setdefault(pp_id, {})[seller] = int(units or 0)
    return inventory


async def _latest_ratings(db: AsyncSession, ids: List[int], period: ReportRange) -> Dict[int, Tuple[float, int]]:
    latest = (
        select(RatingsFact.product_platform_id, func.max(RatingsFact.snapshot_date).label("snapshot_date"))
        .where(RatingsFact.product_platform_id.in_(ids), RatingsFact.snapshot_date <= period.end)
        .group_by(RatingsFact.product_platform_id)
        .subquery()
    )
    result = await db.execute(
        select(RatingsFact.product_platform_id, RatingsFact.rating, RatingsFact.review_count)
        .join(
            latest,
            and_(
                RatingsFact.product_platform_id == latest.c.product_platform_id,
                RatingsFact.snapshot_date == latest.c.snapshot_date,
            ),
        )
    )
    return {pp_id: (float(rating), int(reviews)) for pp_id, rating, reviews in result.all()}


async def _roas(db: AsyncSession, ids: List[int], period: ReportRange) -> Dict[int, float]:
    result = await db.execute(
        select(
            AdPerformanceFact.product_platform_id,
            func.coalesce(func.sum(AdPerformanceFact.spend), 0),
            func.coalesce(func.sum(AdPerformanceFact.revenue), 0),
        )
        .where(
            AdPerformanceFact.product_platform_id.in_(ids),
            AdPerformanceFact.period_start_date <= period.end,
            AdPerformanceFact.period_end_date >= period.start,
        )
        .group_by(AdPerformanceFact.product_platform_id)
    )
    # zero spend divides by 1, so the ratio is the attributed revenue
    return {pp_id: float(revenue) / (float(spend) or 1.0) for pp_id, spend, revenue in result.all()}


async def build_product_summary(
    db: AsyncSession,
    period: ReportRange,
    search: Optional[str] = None,
    platform: Optional[str] = None,
    page: int = 1,
    page_size: int = 50,
) -> ProductSummaryReport:
    """
    Build one page of the product summary.

    Sales and ad spend count every period overlapping the range; inventory
    and ratings use the latest snapshot on or before the range end.
    """
    listings = (
        select(
            ProductPlatform.product_platform_id,
            Product.sku,
            Product.product_name,
            Platform.name.label("platform_name"),
            ProductPlatform.platform_sku,
        )
        .join(Product, Product.product_id == ProductPlatform.product_id)
        .join(Platform, Platform.platform_id == ProductPlatform.platform_id)
    )
    condition = _listing_filter(search, platform)
    if condition is not None:
        listings = listings.where(condition)

    total = (await db.execute(select(func.count()).select_from(listings.subquery()))).scalar() or 0
    base_rows = (
        await db.execute(
            listings.order_by(ProductPlatform.product_platform_id)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
    ).mappings().all()

    ids = [row["product_platform_id"] for row in base_rows]
    sales, inventory, ratings, roas = {}, {}, {}, {}
    if ids:
        sales = await _sales_by_seller(db, ids, period)
        inventory = await _inventory_by_seller(db, ids, period)
        ratings = await _latest_ratings(db, ids, period)
        roas = await _roas(db, ids, period)

    rows = []
    for base in base_rows:
        pp_id = base["product_platform_id"]
        seller_sales = sales.get(pp_id, {})
        seller_stock = inventory.get(pp_id, {})
        rating, reviews = ratings.get(pp_id, (None, None))
        rows.append(ProductSummaryRow(
            **base,
            sales_by_seller=seller_sales,
            sales_total=sum(seller_sales.values()),
            inventory_by_seller=seller_stock,
            inventory_total=sum(seller_stock.values()),
            rating=rating,
            review_count=reviews,
            roas=roas.get(pp_id),
        ))

    logger.debug(
        "Product summary built",
        range_start=period.start.isoformat(),
        range_end=period.end.isoformat(),
        rows=len(rows),
        total=total,
    )
    return ProductSummaryReport(
        range_start=period.start,
        range_end=period.end,
        rows=rows,
        total=total,
        page=page,
        page_size=page_size,
    )
