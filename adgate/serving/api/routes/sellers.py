"""
Sellers API Endpoints
"""

from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import func, select

from adgate.database.connection import SessionProvider, get_session_provider
from adgate.database.models import Platform, Seller

router = APIRouter()


class SellerSummary(BaseModel):
    seller_id: int
    name: str
    platform_id: int
    platform_name: str
    active: bool


class SellerListResponse(BaseModel):
    success: bool = True
    count: int
    sellers: List[SellerSummary]


@router.get("", response_model=SellerListResponse)
async def list_sellers(
    platform_id: Optional[int] = None,
    platform: Optional[str] = None,
    session_provider: SessionProvider = Depends(get_session_provider),
) -> SellerListResponse:
    """List sellers, optionally filtered by platform id or name."""
    query = (
        select(Seller.seller_id, Seller.name, Seller.platform_id, Platform.name.label("platform_name"), Seller.active)
        .join(Platform, Platform.platform_id == Seller.platform_id)
        .order_by(Seller.name)
    )
    if platform_id is not None:
        query = query.where(Seller.platform_id == platform_id)
    if platform:
        query = query.where(func.lower(Platform.name) == platform.lower())

    async with session_provider() as db:
        rows = (await db.execute(query)).mappings().all()

    sellers = [SellerSummary(**row) for row in rows]
    return SellerListResponse(count=len(sellers), sellers=sellers)
