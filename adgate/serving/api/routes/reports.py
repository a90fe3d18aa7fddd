"""
Reports API Endpoints
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from adgate.database.connection import SessionProvider, get_session_provider
from adgate.reporting import (
    ProductSummaryReport,
    RangeType,
    build_product_summary,
    resolve_report_range,
)

router = APIRouter()


@router.get("/product-summary", response_model=ProductSummaryReport)
async def product_summary(
    range_type: RangeType = Query(RangeType.LAST_MONTH, alias="range"),
    start: Optional[date] = None,
    end: Optional[date] = None,
    search: Optional[str] = None,
    platform: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    session_provider: SessionProvider = Depends(get_session_provider),
) -> ProductSummaryReport:
    """Sales, stock, rating and ROAS per listing over a reporting range."""
    period = resolve_report_range(range_type, start=start, end=end)
    async with session_provider() as db:
        return await build_product_summary(db, period, search, platform, page, page_size)
