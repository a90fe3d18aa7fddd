"""
Product catalogue sync from the external products API.

Products are keyed by their match SKU; items whose SKUs collapse to the same
match key are reported as duplicates and only the first one is kept.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select

from adgate.config import get_settings
from adgate.database.connection import SessionProvider, get_db
from adgate.database.dml import build_upsert
from adgate.database.models import Product
from adgate.ingestion.errors import IngestionError
from adgate.ingestion.parsing import display_sku, match_key
from adgate.ingestion.reference_cache import PRODUCTS, ReferenceCache

logger = structlog.get_logger(__name__)
settings = get_settings()

UPSERT_CHUNK_SIZE = 1000


class ProductSyncError(IngestionError):
    """The external products API is misconfigured or failed."""


class ExternalProduct(BaseModel):
    """Item as returned by the external products API"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    sku: Optional[str] = None
    product_name: Optional[str] = Field(default=None, alias="productName")
    category: Optional[str] = Field(default=None, alias="categoryName")


class DuplicateEntry(BaseModel):
    original_sku: Optional[str]
    product_name: Optional[str]


class DuplicateGroup(BaseModel):
    match_sku: str
    entries: List[DuplicateEntry]


class SyncResult(BaseModel):
    inserted: int = 0
    updated: int = 0
    total: int = 0
    duplicates: List[DuplicateGroup] = Field(default_factory=list)


def normalize_sku_for_storage(sku: Optional[str]) -> Optional[str]:
    return display_sku(sku) or None


def normalize_sku_for_match(sku: Optional[str]) -> Optional[str]:
    return match_key(sku) or None


def dedupe_external_products(
    items: Sequence[ExternalProduct],
) -> Tuple[List[Dict[str, Any]], List[DuplicateGroup]]:
    """
    Normalize items and split off duplicates.

    Returns the product rows to store (first occurrence per match SKU) and
    one duplicate group per colliding match SKU, first occurrence included.
    """
    kept: Dict[str, Dict[str, Any]] = {}
    originals: Dict[str, DuplicateEntry] = {}
    duplicates: Dict[str, List[DuplicateEntry]] = {}

    for item in items:
        match_sku = normalize_sku_for_match(item.sku)
        storage_sku = normalize_sku_for_storage(item.sku)
        if not match_sku or not storage_sku:
            continue

        entry = DuplicateEntry(original_sku=item.sku, product_name=item.product_name)
        if match_sku in kept:
            duplicates.setdefault(match_sku, [originals[match_sku]]).append(entry)
            continue

        originals[match_sku] = entry
        kept[match_sku] = {
            "sku": storage_sku,
            "sku_normalized": match_sku,
            "product_name": item.product_name,
            "category": item.category,
            "active": True,
        }

    groups = [DuplicateGroup(match_sku=k, entries=v) for k, v in duplicates.items()]
    return list(kept.values()), groups


async def fetch_external_products(
    url: Optional[str] = None,
    api_key: Optional[str] = None,
    timeout: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[ExternalProduct]:
    """Fetch the catalogue. Accepts either a bare list or `{"data": [...]}`."""
    url = url or settings.product_sync.url
    if api_key is None and settings.product_sync.key is not None:
        api_key = settings.product_sync.key.get_secret_value()
    if not url or not api_key:
        raise ProductSyncError("Missing PRODUCTS_API_URL or PRODUCTS_API_KEY")

    async with httpx.AsyncClient(
        timeout=timeout or settings.product_sync.timeout_seconds,
        transport=transport,
    ) as client:
        try:
            response = await client.get(url, headers={"x-api-key": api_key})
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ProductSyncError(f"External API failed: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ProductSyncError(f"External API unreachable: {e}") from e

    try:
        payload = response.json()
    except ValueError as e:
        raise ProductSyncError("External API returned invalid JSON") from e
    items = payload.get("data", []) if isinstance(payload, dict) else payload
    products = [ExternalProduct.model_validate(item) for item in items or []]
    logger.info("Fetched external products", count=len(products))
    return products


async def sync_products(
    items: Sequence[ExternalProduct],
    session_provider: Optional[SessionProvider] = None,
    cache: Optional[ReferenceCache] = None,
) -> SyncResult:
    """Upsert the catalogue on `sku_normalized`."""
    session_provider = session_provider or get_db
    products, duplicates = dedupe_external_products(items)
    if not products:
        return SyncResult(duplicates=duplicates)

    now = datetime.now(timezone.utc).replace(tzinfo=None)
    for p in products:
        p["updated_at"] = now

    async with session_provider() as db:
        result = await db.execute(select(Product.sku_normalized))
        existing = set(result.scalars().all())

        for i in range(0, len(products), UPSERT_CHUNK_SIZE):
            chunk = products[i:i + UPSERT_CHUNK_SIZE]
            await db.execute(build_upsert(db, Product, chunk, ("sku_normalized",)))

    updated = sum(1 for p in products if p["sku_normalized"] in existing)
    if cache is not None:
        cache.reset(PRODUCTS)

    logger.info(
        "Product sync complete",
        inserted=len(products) - updated,
        updated=updated,
        duplicates=len(duplicates),
    )
    return SyncResult(
        inserted=len(products) - updated,
        updated=updated,
        total=len(products),
        duplicates=duplicates,
    )
