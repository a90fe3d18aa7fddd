"""
Row Mappers

One mapper per table type, each turning a RawRow into a record ready for the
store. A mapper returns `Mapped` with the record, returns `Skipped` when the
row is well-formed but refers to something unknown, and raises
RowMappingError when the row itself is malformed.

Mappers only read from the ReferenceCache; the caller loads the kinds a
mapper needs before streaming starts.
"""

from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Callable, Dict, Optional, Union

from adgate.database.models import AdType
from adgate.ingestion.errors import RowMappingError
from adgate.ingestion.parsing import (
    display_sku,
    match_key,
    parse_flexible_date,
    parse_period,
    to_bool,
    to_float,
    to_int,
)
from adgate.ingestion.reference_cache import CacheKind, ReferenceCache
from adgate.ingestion.rows import AD_PERFORMANCE_ALIASES, DEFAULT_ALIASES, ColumnAliases, RawRow


@dataclass(frozen=True)
class ImportContext:
    """Per-upload parameters, resolved once before the first row."""
    platform_id: Optional[int] = None
    platform_name: Optional[str] = None
    seller_id: Optional[int] = None
    ad_type: Optional[AdType] = None
    snapshot_date: Optional[date] = None
    range_label: Optional[str] = None

    def with_platform(self, platform_id: int) -> "ImportContext":
        return replace(self, platform_id=platform_id)


@dataclass(frozen=True)
class Mapped:
    record: Dict[str, Any]


@dataclass(frozen=True)
class Skipped:
    reason: str
    missing_sku: Optional[str] = None
    missing_platform_sku: Optional[str] = None


MapOutcome = Union[Mapped, Skipped]
Mapper = Callable[[RawRow, ImportContext, ReferenceCache], MapOutcome]


# =============================================================================
# SHARED RESOLUTION
# =============================================================================

def _require(value: Any, what: str, row: RawRow) -> Any:
    if value is None:
        raise RowMappingError(f"Missing {what} for this import", row)
    return value


def resolve_listing(
    row: RawRow,
    ctx: ImportContext,
    cache: ReferenceCache,
    aliases: ColumnAliases = DEFAULT_ALIASES,
) -> Union[int, Skipped]:
    """
    Product-platform id for a fact row.

    Platform SKU/ASIN is tried first, then SKU, both on the import's
    platform. The first key that resolves wins.
    """
    platform_id = _require(ctx.platform_id, "platform", row)
    platform_sku = row.first(aliases.platform_sku)
    sku = row.first(aliases.sku)

    if not platform_sku and not sku:
        return Skipped("Missing SKU and Platform SKU/ASIN")

    if platform_sku:
        found = cache.resolve(CacheKind.PRODUCT_PLATFORM, (platform_id, platform_sku))
        if found is not None:
            return found
    if sku:
        found = cache.resolve(CacheKind.PRODUCT_PLATFORM_BY_SKU, (platform_id, sku))
        if found is not None:
            return found

    given = " / ".join(v for v in (platform_sku, sku) if v)
    return Skipped(
        f"No product-platform mapping for {given}",
        missing_sku=sku,
        missing_platform_sku=platform_sku,
    )


def _resolve_platform(row: RawRow, ctx: ImportContext, cache: ReferenceCache, aliases: ColumnAliases) -> int:
    name = row.first(aliases.platform)
    if name is None:
        return _require(ctx.platform_id, "platform", row)
    platform_id = cache.resolve(CacheKind.PLATFORM, name)
    if platform_id is None:
        raise RowMappingError(f"Unknown platform: {name}", row)
    return platform_id


# =============================================================================
# REFERENCE MAPPERS
# =============================================================================

def map_product(row: RawRow, ctx: ImportContext, cache: ReferenceCache,
                aliases: ColumnAliases = DEFAULT_ALIASES) -> MapOutcome:
    raw_sku = row.first(aliases.sku)
    if not raw_sku or not match_key(raw_sku):
        return Skipped("Missing SKU")

    try:
        launch_date = parse_flexible_date(row.first(aliases.launch_date))
    except ValueError as e:
        raise RowMappingError(f"Invalid Launch Date: {e}", row) from None

    return Mapped({
        "sku": display_sku(raw_sku),
        "sku_normalized": match_key(raw_sku),
        "product_name": row.first(aliases.product_name),
        "category": row.first(aliases.category),
        "launch_date": launch_date,
        "active": to_bool(row, aliases.active),
    })


def map_product_platform(row: RawRow, ctx: ImportContext, cache: ReferenceCache,
                         aliases: ColumnAliases = DEFAULT_ALIASES) -> MapOutcome:
    sku = row.first(aliases.sku)
    if not sku:
        return Skipped("Missing SKU")

    product_id = cache.resolve(CacheKind.PRODUCT, sku)
    if product_id is None:
        return Skipped(f"Unknown product SKU {sku}", missing_sku=sku)

    platform_sku = row.first(aliases.platform_sku)
    return Mapped({
        "product_id": product_id,
        "platform_id": _resolve_platform(row, ctx, cache, aliases),
        "platform_sku": display_sku(platform_sku) if platform_sku else None,
    })


def map_seller(row: RawRow, ctx: ImportContext, cache: ReferenceCache,
               aliases: ColumnAliases = DEFAULT_ALIASES) -> MapOutcome:
    name = row.first(aliases.seller_name)
    if not name:
        return Skipped("Missing Seller Name")

    return Mapped({
        "name": " ".join(name.split()),
        "platform_id": _resolve_platform(row, ctx, cache, aliases),
        "active": to_bool(row, aliases.active),
    })


# =============================================================================
# FACT MAPPERS
# =============================================================================

def map_sales(row: RawRow, ctx: ImportContext, cache: ReferenceCache,
              aliases: ColumnAliases = DEFAULT_ALIASES) -> MapOutcome:
    listing = resolve_listing(row, ctx, cache, aliases)
    if isinstance(listing, Skipped):
        return listing
    start, end = parse_period(row, aliases)
    return Mapped({
        "product_platform_id": listing,
        "seller_id": _require(ctx.seller_id, "seller", row),
        "period_start_date": start,
        "period_end_date": end,
        "units_sold": to_int(row.first(aliases.units_sold)),
        "revenue": to_float(row.first(aliases.revenue)),
    })


def map_inventory(row: RawRow, ctx: ImportContext, cache: ReferenceCache,
                  aliases: ColumnAliases = DEFAULT_ALIASES) -> MapOutcome:
    listing = resolve_listing(row, ctx, cache, aliases)
    if isinstance(listing, Skipped):
        return listing
    return Mapped({
        "product_platform_id": listing,
        "seller_id": _require(ctx.seller_id, "seller", row),
        "snapshot_date": _require(ctx.snapshot_date, "snapshot date", row),
        "inventory_units": to_int(row.first(aliases.inventory_units)),
    })


def map_company_inventory(row: RawRow, ctx: ImportContext, cache: ReferenceCache,
                          aliases: ColumnAliases = DEFAULT_ALIASES) -> MapOutcome:
    sku = row.first(aliases.sku)
    if not sku:
        return Skipped("Missing SKU")

    product_id = cache.resolve(CacheKind.PRODUCT, sku)
    if product_id is None:
        return Skipped(f"Unknown product SKU {sku}", missing_sku=sku)

    try:
        snapshot = parse_flexible_date(row.first(aliases.snapshot_date))
    except ValueError as e:
        raise RowMappingError(f"Invalid Snapshot Date: {e}", row) from None

    return Mapped({
        "product_id": product_id,
        "snapshot_date": _require(snapshot or ctx.snapshot_date, "snapshot date", row),
        "inventory_units": to_int(row.first(aliases.inventory_units)),
        "location": row.first(aliases.location) or "",
    })


def map_ratings(row: RawRow, ctx: ImportContext, cache: ReferenceCache,
                aliases: ColumnAliases = DEFAULT_ALIASES) -> MapOutcome:
    listing = resolve_listing(row, ctx, cache, aliases)
    if isinstance(listing, Skipped):
        return listing
    return Mapped({
        "product_platform_id": listing,
        "snapshot_date": _require(ctx.snapshot_date, "snapshot date", row),
        "rating": to_float(row.first(aliases.rating)),
        "review_count": to_int(row.first(aliases.review_count)),
    })


def map_ad_performance(row: RawRow, ctx: ImportContext, cache: ReferenceCache,
                       aliases: ColumnAliases = AD_PERFORMANCE_ALIASES) -> MapOutcome:
    listing = resolve_listing(row, ctx, cache, aliases)
    if isinstance(listing, Skipped):
        return listing
    start, end = parse_period(row, aliases)
    return Mapped({
        "product_platform_id": listing,
        "period_start_date": start,
        "period_end_date": end,
        "spend": to_float(row.first(aliases.spend)),
        "revenue": to_float(row.first(aliases.revenue)),
        "ad_type": _require(ctx.ad_type, "ad type", row),
    })
