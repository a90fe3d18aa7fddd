"""
Product Sync Endpoint
"""

from fastapi import APIRouter, Depends

from adgate.database.connection import SessionProvider, get_session_provider
from adgate.ingestion.reference_cache import ReferenceCache, get_reference_cache
from adgate.ingestion.sync import SyncResult, fetch_external_products, sync_products

router = APIRouter()


@router.post("/products", response_model=SyncResult)
async def sync_product_catalogue(
    session_provider: SessionProvider = Depends(get_session_provider),
    cache: ReferenceCache = Depends(get_reference_cache),
) -> SyncResult:
    """Pull the external catalogue and upsert it into products."""
    items = await fetch_external_products()
    return await sync_products(items, session_provider=session_provider, cache=cache)
