"""
Reference Cache

In-memory lookup tables for platforms, products, product listings and
sellers. Each backing table is bulk-loaded once and shared by every row of
an import, so mapping a row never touches the database.

Loads are single-flight: concurrent first callers wait on one per-table lock
and the second caller finds the table already loaded. Nothing invalidates
the cache automatically; writers call `reset()`.
"""

import asyncio
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, Hashable, Iterable, List, Mapping, Optional, Set

import structlog
from sqlalchemy import select

from adgate.database.connection import SessionProvider, get_db
from adgate.database.models import Platform, Product, ProductPlatform, Seller
from adgate.ingestion.errors import CacheNotLoaded, PrecheckFailed
from adgate.ingestion.parsing import fold_name, match_key

logger = structlog.get_logger(__name__)


class CacheKind(str, Enum):
    """Lookup kinds. Several kinds can share one backing table."""
    PLATFORM = "platform"                                  # name -> platform_id
    PRODUCT = "product"                                    # sku -> product_id
    PRODUCT_PLATFORM = "product_platform"                  # (platform_id, platform_sku) -> product_platform_id
    PRODUCT_PLATFORM_BY_SKU = "product_platform_by_sku"    # (platform_id, sku) -> product_platform_id
    SELLER = "seller"                                      # (platform_id, name) -> seller_id


PLATFORMS = "platforms"
PRODUCTS = "products"
PRODUCT_PLATFORMS = "product_platforms"
SELLERS = "sellers"

BACKING_TABLE = {
    CacheKind.PLATFORM: PLATFORMS,
    CacheKind.PRODUCT: PRODUCTS,
    CacheKind.PRODUCT_PLATFORM: PRODUCT_PLATFORMS,
    CacheKind.PRODUCT_PLATFORM_BY_SKU: PRODUCT_PLATFORMS,
    CacheKind.SELLER: SELLERS,
}

EMPTY_TABLE_HINTS = {
    PLATFORMS: "Seed platforms first (python -m adgate.database.seed)",
    PRODUCTS: "Upload products first",
    PRODUCT_PLATFORMS: "Upload product-platforms first",
    SELLERS: "Upload sellers first",
}


def _product_platform_query():
    # Listings joined to their product so lookups work by SKU as well as platform SKU
    return (
        select(
            ProductPlatform.product_platform_id,
            ProductPlatform.platform_id,
            ProductPlatform.platform_sku,
            Product.sku_normalized,
        )
        .join(Product, Product.product_id == ProductPlatform.product_id)
    )


_QUERIES = {
    PLATFORMS: lambda: select(Platform.platform_id, Platform.name),
    PRODUCTS: lambda: select(Product.product_id, Product.sku_normalized),
    PRODUCT_PLATFORMS: _product_platform_query,
    SELLERS: lambda: select(Seller.seller_id, Seller.platform_id, Seller.name),
}


class ReferenceCache:
    """
    Explicit, injectable reference lookup cache.

    Example:
        cache = ReferenceCache(get_db)
        await cache.load(CacheKind.PRODUCT_PLATFORM)
        pp_id = cache.resolve(CacheKind.PRODUCT_PLATFORM, (1, "B0ABC"))
    """

    def __init__(self, session_provider: Optional[SessionProvider] = None):
        self._session_provider = session_provider or get_db
        self._locks: Dict[str, asyncio.Lock] = {t: asyncio.Lock() for t in _QUERIES}
        self._maps: Dict[CacheKind, Dict[Hashable, int]] = {}
        self._loaded: Set[str] = set()
        self._sellers_by_platform: Dict[int, Set[int]] = {}
        self.load_count: Dict[str, int] = {t: 0 for t in _QUERIES}

    def is_loaded(self, kind: CacheKind) -> bool:
        return BACKING_TABLE[kind] in self._loaded

    async def load(self, kind: CacheKind) -> None:
        """Bulk-load the backing table of `kind` unless already loaded."""
        table = BACKING_TABLE[kind]
        if table in self._loaded:
            return
        async with self._locks[table]:
            if table in self._loaded:
                return
            async with self._session_provider() as db:
                result = await db.execute(_QUERIES[table]())
                rows = [dict(r) for r in result.mappings().all()]
            if not rows:
                raise PrecheckFailed(f"No rows in {table}", hint=EMPTY_TABLE_HINTS[table])
            self.populate(table, rows)
            self.load_count[table] += 1
            logger.info("Reference cache loaded", table=table, rows=len(rows))

    def populate(self, table: str, rows: Iterable[Mapping[str, Any]]) -> None:
        """Index already-fetched rows of `table` and mark it loaded."""
        if table == PLATFORMS:
            self._maps[CacheKind.PLATFORM] = {
                fold_name(r["name"]): r["platform_id"] for r in rows
            }
        elif table == PRODUCTS:
            self._maps[CacheKind.PRODUCT] = {
                match_key(r["sku_normalized"]): r["product_id"] for r in rows
            }
        elif table == PRODUCT_PLATFORMS:
            by_platform_sku: Dict[Hashable, int] = {}
            by_sku: Dict[Hashable, int] = {}
            for r in rows:
                if r.get("platform_sku"):
                    by_platform_sku[(r["platform_id"], match_key(r["platform_sku"]))] = r["product_platform_id"]
                if r.get("sku_normalized"):
                    by_sku[(r["platform_id"], match_key(r["sku_normalized"]))] = r["product_platform_id"]
            self._maps[CacheKind.PRODUCT_PLATFORM] = by_platform_sku
            self._maps[CacheKind.PRODUCT_PLATFORM_BY_SKU] = by_sku
        elif table == SELLERS:
            sellers: Dict[Hashable, int] = {}
            by_platform: Dict[int, Set[int]] = {}
            for r in rows:
                sellers[(r["platform_id"], fold_name(r["name"]))] = r["seller_id"]
                by_platform.setdefault(r["platform_id"], set()).add(r["seller_id"])
            self._maps[CacheKind.SELLER] = sellers
            self._sellers_by_platform = by_platform
        else:
            raise ValueError(f"Unknown reference table: {table}")
        self._loaded.add(table)

    def _normalize(self, kind: CacheKind, key: Any) -> Hashable:
        if kind == CacheKind.PLATFORM:
            return fold_name(key)
        if kind == CacheKind.PRODUCT:
            return match_key(key)
        platform_id, name = key
        if kind == CacheKind.SELLER:
            return (int(platform_id), fold_name(name))
        return (int(platform_id), match_key(name))

    def resolve(self, kind: CacheKind, key: Any) -> Optional[int]:
        """O(1) lookup. None means not found."""
        if not self.is_loaded(kind):
            raise CacheNotLoaded(f"{kind.value} lookup before {BACKING_TABLE[kind]} was loaded")
        return self._maps[kind].get(self._normalize(kind, key))

    async def get(self, kind: CacheKind, key: Any) -> Optional[int]:
        await self.load(kind)
        return self.resolve(kind, key)

    def seller_ids(self, platform_id: int) -> Set[int]:
        if SELLERS not in self._loaded:
            raise CacheNotLoaded(f"seller lookup before {SELLERS} was loaded")
        return set(self._sellers_by_platform.get(platform_id, ()))

    def reset(self, table: Optional[str] = None) -> None:
        """Drop one backing table, or everything."""
        tables: List[str] = [table] if table else list(_QUERIES)
        for t in tables:
            self._loaded.discard(t)
            for kind, backing in BACKING_TABLE.items():
                if backing == t:
                    self._maps.pop(kind, None)
            if t == SELLERS:
                self._sellers_by_platform = {}
        logger.debug("Reference cache reset", tables=tables)


@lru_cache()
def get_reference_cache() -> ReferenceCache:
    """Process-wide cache bound to the application session factory."""
    return ReferenceCache(get_db)
