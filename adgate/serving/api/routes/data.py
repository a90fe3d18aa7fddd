"""
Data Browser API Endpoints

Paginated, searchable views over the reference and fact tables, with
listing facts flattened to SKU, platform and product name.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy import Select, func, or_, select

from adgate.database.connection import SessionProvider, get_session_provider
from adgate.database.models import (
    AdPerformanceFact,
    CompanyInventoryFact,
    Decision,
    InventoryFact,
    Platform,
    Product,
    ProductPlatform,
    RatingsFact,
    SalesFact,
    Seller,
)
from adgate.ingestion.errors import PrecheckFailed

router = APIRouter()

LISTING_COLUMNS = (
    Platform.name.label("platform_name"),
    Product.sku,
    Product.product_name,
    ProductPlatform.platform_sku,
)
LISTING_SEARCH = (Product.sku, ProductPlatform.platform_sku, Product.product_name)


@dataclass(frozen=True)
class BrowseSpec:
    query: Select
    order_by: Sequence[Any]
    search: Sequence[Any]


def _with_listing(query: Select, fact) -> Select:
    return (
        query.join(ProductPlatform, ProductPlatform.product_platform_id == fact.product_platform_id)
        .join(Product, Product.product_id == ProductPlatform.product_id)
        .join(Platform, Platform.platform_id == ProductPlatform.platform_id)
    )


BROWSE_SPECS: Dict[str, BrowseSpec] = {
    "platforms": BrowseSpec(
        select(Platform.platform_id, Platform.name),
        (Platform.name,),
        (Platform.name,),
    ),
    "products": BrowseSpec(
        select(
            Product.product_id, Product.sku, Product.product_name, Product.category,
            Product.launch_date, Product.active, Product.created_at,
        ),
        (Product.product_name, Product.sku),
        (Product.sku, Product.product_name),
    ),
    "product-platforms": BrowseSpec(
        select(ProductPlatform.product_platform_id, *LISTING_COLUMNS)
        .join(Product, Product.product_id == ProductPlatform.product_id)
        .join(Platform, Platform.platform_id == ProductPlatform.platform_id),
        (ProductPlatform.product_platform_id,),
        LISTING_SEARCH,
    ),
    "sellers": BrowseSpec(
        select(Seller.seller_id, Seller.name, Platform.name.label("platform_name"), Seller.active)
        .join(Platform, Platform.platform_id == Seller.platform_id),
        (Seller.name,),
        (Seller.name,),
    ),
    "sales": BrowseSpec(
        _with_listing(
            select(
                SalesFact.id, *LISTING_COLUMNS, Seller.name.label("seller_name"),
                SalesFact.period_start_date, SalesFact.period_end_date,
                SalesFact.units_sold, SalesFact.revenue,
            ),
            SalesFact,
        ).join(Seller, Seller.seller_id == SalesFact.seller_id),
        (SalesFact.period_start_date.desc(), SalesFact.id),
        LISTING_SEARCH,
    ),
    "inventory": BrowseSpec(
        _with_listing(
            select(
                InventoryFact.id, *LISTING_COLUMNS, Seller.name.label("seller_name"),
                InventoryFact.snapshot_date, InventoryFact.inventory_units,
            ),
            InventoryFact,
        ).join(Seller, Seller.seller_id == InventoryFact.seller_id),
        (InventoryFact.snapshot_date.desc(), InventoryFact.id),
        LISTING_SEARCH,
    ),
    "company-inventory": BrowseSpec(
        select(
            CompanyInventoryFact.id, Product.sku, Product.product_name,
            CompanyInventoryFact.snapshot_date, CompanyInventoryFact.inventory_units,
            CompanyInventoryFact.location,
        ).join(Product, Product.product_id == CompanyInventoryFact.product_id),
        (CompanyInventoryFact.snapshot_date.desc(), CompanyInventoryFact.id),
        (Product.sku, Product.product_name),
    ),
    "ratings": BrowseSpec(
        _with_listing(
            select(
                RatingsFact.id, *LISTING_COLUMNS,
                RatingsFact.snapshot_date, RatingsFact.rating, RatingsFact.review_count,
            ),
            RatingsFact,
        ),
        (RatingsFact.snapshot_date.desc(), RatingsFact.id),
        LISTING_SEARCH,
    ),
    "ad-performance": BrowseSpec(
        _with_listing(
            select(
                AdPerformanceFact.id, *LISTING_COLUMNS,
                AdPerformanceFact.period_start_date, AdPerformanceFact.period_end_date,
                AdPerformanceFact.spend, AdPerformanceFact.revenue, AdPerformanceFact.ad_type,
            ),
            AdPerformanceFact,
        ),
        (AdPerformanceFact.period_start_date.desc(), AdPerformanceFact.id),
        LISTING_SEARCH,
    ),
    "decisions": BrowseSpec(
        _with_listing(
            select(
                Decision.id, *LISTING_COLUMNS, Seller.name.label("seller_name"),
                Decision.decision, Decision.reason, Decision.evaluated_at,
            ),
            Decision,
        ).join(Seller, Seller.seller_id == Decision.seller_id),
        (Decision.evaluated_at.desc(), Decision.id),
        LISTING_SEARCH,
    ),
}


class DataPage(BaseModel):
    table_type: str
    rows: List[Dict[str, Any]]
    total: int
    page: int
    page_size: int


@router.get("/{table_type}", response_model=DataPage)
async def browse_table(
    table_type: str,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(25, ge=1, le=200),
    session_provider: SessionProvider = Depends(get_session_provider),
) -> DataPage:
    """One page of a table, newest facts first."""
    spec = BROWSE_SPECS.get(table_type)
    if spec is None:
        raise PrecheckFailed(
            f"Invalid table type: {table_type}",
            hint=f"Use one of: {', '.join(BROWSE_SPECS)}",
        )

    query = spec.query
    if search and search.strip():
        like = f"%{search.strip()}%"
        query = query.where(or_(*(column.ilike(like) for column in spec.search)))

    count_query = select(func.count()).select_from(query.subquery())
    page_query = query.order_by(*spec.order_by).offset((page - 1) * page_size).limit(page_size)

    async with session_provider() as db:
        total = (await db.execute(count_query)).scalar() or 0
        rows = (await db.execute(page_query)).mappings().all()

    return DataPage(
        table_type=table_type,
        rows=[dict(row) for row in rows],
        total=total,
        page=page,
        page_size=page_size,
    )
