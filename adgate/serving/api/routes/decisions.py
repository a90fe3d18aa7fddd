"""
Decisions API Endpoints

Read the latest decisions and trigger an evaluation run.
"""

from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy import Select, and_, func, select

from adgate.database.connection import SessionProvider, get_session_provider
from adgate.database.models import Decision, Platform, Product, ProductPlatform, Seller
from adgate.decision.runner import DecisionRunSummary, run_decisions
from adgate.ingestion.reference_cache import ReferenceCache, get_reference_cache

router = APIRouter()


class DecisionItem(BaseModel):
    product_platform_id: int
    sku: str
    product_name: Optional[str]
    platform_name: str
    platform_sku: Optional[str]
    seller_id: int
    seller_name: str
    decision: bool
    reason: str
    evaluated_at: datetime


class DecisionListResponse(BaseModel):
    items: List[DecisionItem]
    total: int
    page: int
    page_size: int


class ListingDecisionsResponse(BaseModel):
    """Every seller's decision for one product-platform"""
    product_platform_id: int
    decisions: List[DecisionItem]


class RunDecisionsRequest(BaseModel):
    seller_id: Optional[int] = None
    as_of: Optional[date] = None


def _decision_rows() -> Select:
    return (
        select(
            Decision.product_platform_id,
            Product.sku,
            Product.product_name,
            Platform.name.label("platform_name"),
            ProductPlatform.platform_sku,
            Decision.seller_id,
            Seller.name.label("seller_name"),
            Decision.decision,
            Decision.reason,
            Decision.evaluated_at,
        )
        .join(ProductPlatform, ProductPlatform.product_platform_id == Decision.product_platform_id)
        .join(Product, Product.product_id == ProductPlatform.product_id)
        .join(Platform, Platform.platform_id == ProductPlatform.platform_id)
        .join(Seller, Seller.seller_id == Decision.seller_id)
    )


@router.get("", response_model=DecisionListResponse)
async def list_decisions(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    seller_id: Optional[int] = None,
    product_platform_id: Optional[int] = None,
    platform: Optional[str] = None,
    decision: Optional[bool] = None,
    session_provider: SessionProvider = Depends(get_session_provider),
) -> DecisionListResponse:
    """List decisions with product, platform and seller names."""
    conditions = []
    if seller_id is not None:
        conditions.append(Decision.seller_id == seller_id)
    if product_platform_id is not None:
        conditions.append(Decision.product_platform_id == product_platform_id)
    if platform:
        conditions.append(func.lower(Platform.name) == platform.lower())
    if decision is not None:
        conditions.append(Decision.decision == decision)

    joined = _decision_rows()
    if conditions:
        joined = joined.where(and_(*conditions))

    count_query = select(func.count()).select_from(joined.subquery())
    query = (
        joined.order_by(Product.sku, Seller.name)
        .offset((page - 1) * page_size)
        .limit(page_size)
    )

    async with session_provider() as db:
        total = (await db.execute(count_query)).scalar() or 0
        rows = (await db.execute(query)).mappings().all()

    return DecisionListResponse(
        items=[DecisionItem(**row) for row in rows],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{product_platform_id}", response_model=ListingDecisionsResponse)
async def get_listing_decisions(
    product_platform_id: int,
    session_provider: SessionProvider = Depends(get_session_provider),
) -> ListingDecisionsResponse:
    """Decisions for one product-platform, one per evaluated seller."""
    query = (
        _decision_rows()
        .where(Decision.product_platform_id == product_platform_id)
        .order_by(Seller.name)
    )
    async with session_provider() as db:
        rows = (await db.execute(query)).mappings().all()

    if not rows:
        raise HTTPException(status_code=404, detail="Decision not found")

    return ListingDecisionsResponse(
        product_platform_id=product_platform_id,
        decisions=[DecisionItem(**row) for row in rows],
    )


@router.post("/run", response_model=DecisionRunSummary)
async def trigger_decision_run(
    body: Optional[RunDecisionsRequest] = None,
    session_provider: SessionProvider = Depends(get_session_provider),
    cache: ReferenceCache = Depends(get_reference_cache),
) -> DecisionRunSummary:
    """Evaluate all gates now and overwrite the stored decisions."""
    body = body or RunDecisionsRequest()
    return await run_decisions(
        seller_id=body.seller_id,
        as_of=body.as_of,
        session_provider=session_provider,
        cache=cache,
    )
