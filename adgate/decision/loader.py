"""
Decision Data Loader

Preloads every aggregate the gates need in a handful of grouped queries, so
evaluating thousands of tuples never issues a query per tuple.

Seller-scoped facts (sales, seller inventory) are kept per seller and also
rolled up across sellers for the synthetic "All Sellers" tuple.
"""

from datetime import date, timedelta
from typing import Dict, Optional, Tuple

import structlog
from sqlalchemy import and_, distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from adgate.database.models import (
    AdPerformanceFact,
    CompanyInventoryFact,
    InventoryFact,
    RatingsFact,
    SalesFact,
)
from adgate.decision.gates import TRAILING_WINDOW_DAYS, DecisionFacts

logger = structlog.get_logger(__name__)

SellerKey = Tuple[int, Optional[int]]   # (product_platform_id, seller_id or None for all sellers)


class DecisionDataLoader:
    """
    Example:
        loader = DecisionDataLoader(as_of=date.today())
        await loader.load(db)
        facts = loader.facts(product_platform_id=12, product_id=3, seller_id=5)
    """

    def __init__(self, as_of: Optional[date] = None):
        self.as_of = as_of or date.today()
        self.window_start = self.as_of - timedelta(days=TRAILING_WINDOW_DAYS)

        self.sales: Dict[SellerKey, Tuple[int, int]] = {}
        self.seller_inventory: Dict[SellerKey, int] = {}
        self.company_inventory: Dict[int, int] = {}
        self.ratings: Dict[int, float] = {}
        self.ads: Dict[int, Tuple[float, float]] = {}

    async def load(self, db: AsyncSession) -> "DecisionDataLoader":
        await self._load_sales(db)
        await self._load_seller_inventory(db)
        await self._load_company_inventory(db)
        await self._load_ratings(db)
        await self._load_ads(db)
        logger.info(
            "Decision data preloaded",
            as_of=self.as_of.isoformat(),
            sales=len(self.sales),
            inventory=len(self.seller_inventory),
            company_inventory=len(self.company_inventory),
            ratings=len(self.ratings),
            ads=len(self.ads),
        )
        return self

    def _in_window(self, column):
        return and_(column >= self.window_start, column <= self.as_of)

    async def _load_sales(self, db: AsyncSession) -> None:
        units = func.coalesce(func.sum(SalesFact.units_sold), 0)
        days = func.count(distinct(SalesFact.period_start_date))
        window = self._in_window(SalesFact.period_start_date)

        per_seller = await db.execute(
            select(SalesFact.product_platform_id, SalesFact.seller_id, units, days)
            .where(window)
            .group_by(SalesFact.product_platform_id, SalesFact.seller_id)
        )
        for pp_id, seller_id, total, n_days in per_seller.all():
            self.sales[(pp_id, seller_id)] = (int(total), int(n_days))

        overall = await db.execute(
            select(SalesFact.product_platform_id, units, days)
            .where(window)
            .group_by(SalesFact.product_platform_id)
        )
        for pp_id, total, n_days in overall.all():
            self.sales[(pp_id, None)] = (int(total), int(n_days))

    async def _load_seller_inventory(self, db: AsyncSession) -> None:
        not_future = InventoryFact.snapshot_date <= self.as_of

        latest_per_seller = (
            select(
                InventoryFact.product_platform_id,
                InventoryFact.seller_id,
                func.max(InventoryFact.snapshot_date).label("snapshot_date"),
            )
            .where(not_future)
            .group_by(InventoryFact.product_platform_id, InventoryFact.seller_id)
            .subquery()
        )
        per_seller = await db.execute(
            select(InventoryFact.product_platform_id, InventoryFact.seller_id, InventoryFact.inventory_units)
            .join(
                latest_per_seller,
                and_(
                    InventoryFact.product_platform_id == latest_per_seller.c.product_platform_id,
                    InventoryFact.seller_id == latest_per_seller.c.seller_id,
                    InventoryFact.snapshot_date == latest_per_seller.c.snapshot_date,
                ),
            )
        )
        for pp_id, seller_id, units in per_seller.all():
            self.seller_inventory[(pp_id, seller_id)] = int(units)

        # All sellers: sum across sellers at the listing's latest snapshot date
        latest_overall = (
            select(
                InventoryFact.product_platform_id,
                func.max(InventoryFact.snapshot_date).label("snapshot_date"),
            )
            .where(not_future)
            .group_by(InventoryFact.product_platform_id)
            .subquery()
        )
        overall = await db.execute(
            select(InventoryFact.product_platform_id, func.sum(InventoryFact.inventory_units))
            .join(
                latest_overall,
                and_(
                    InventoryFact.product_platform_id == latest_overall.c.product_platform_id,
                    InventoryFact.snapshot_date == latest_overall.c.snapshot_date,
                ),
            )
            .group_by(InventoryFact.product_platform_id)
        )
        for pp_id, units in overall.all():
            self.seller_inventory[(pp_id, None)] = int(units or 0)

    async def _load_company_inventory(self, db: AsyncSession) -> None:
        latest = (
            select(
                CompanyInventoryFact.product_id,
                func.max(CompanyInventoryFact.snapshot_date).label("snapshot_date"),
            )
            .where(CompanyInventoryFact.snapshot_date <= self.as_of)
            .group_by(CompanyInventoryFact.product_id)
            .subquery()
        )
        result = await db.execute(
            select(CompanyInventoryFact.product_id, func.sum(CompanyInventoryFact.inventory_units))
            .join(
                latest,
                and_(
                    CompanyInventoryFact.product_id == latest.c.product_id,
                    CompanyInventoryFact.snapshot_date == latest.c.snapshot_date,
                ),
            )
            .group_by(CompanyInventoryFact.product_id)
        )
        for product_id, units in result.all():
            self.company_inventory[product_id] = int(units or 0)

    async def _load_ratings(self, db: AsyncSession) -> None:
        latest = (
            select(
                RatingsFact.product_platform_id,
                func.max(RatingsFact.snapshot_date).label("snapshot_date"),
            )
            .where(RatingsFact.snapshot_date <= self.as_of)
            .group_by(RatingsFact.product_platform_id)
            .subquery()
        )
        result = await db.execute(
            select(RatingsFact.product_platform_id, RatingsFact.rating)
            .join(
                latest,
                and_(
                    RatingsFact.product_platform_id == latest.c.product_platform_id,
                    RatingsFact.snapshot_date == latest.c.snapshot_date,
                ),
            )
        )
        for pp_id, rating in result.all():
            self.ratings[pp_id] = float(rating)

    async def _load_ads(self, db: AsyncSession) -> None:
        result = await db.execute(
            select(
                AdPerformanceFact.product_platform_id,
                func.coalesce(func.sum(AdPerformanceFact.spend), 0),
                func.coalesce(func.sum(AdPerformanceFact.revenue), 0),
            )
            .where(self._in_window(AdPerformanceFact.period_start_date))
            .group_by(AdPerformanceFact.product_platform_id)
        )
        for pp_id, spend, revenue in result.all():
            self.ads[pp_id] = (float(spend), float(revenue))

    def facts(self, product_platform_id: int, product_id: int, seller_id: Optional[int]) -> DecisionFacts:
        """Facts for one tuple; `seller_id=None` means all sellers."""
        units, days = self.sales.get((product_platform_id, seller_id), (0, 0))
        spend, revenue = self.ads.get(product_platform_id, (0.0, 0.0))
        return DecisionFacts(
            units_sold_30d=units,
            sale_days_30d=days,
            seller_inventory=self.seller_inventory.get((product_platform_id, seller_id), 0),
            company_inventory=self.company_inventory.get(product_id, 0),
            rating=self.ratings.get(product_platform_id),
            ad_spend_30d=spend,
            ad_revenue_30d=revenue,
        )
