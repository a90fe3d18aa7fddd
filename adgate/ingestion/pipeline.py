"""
Import Pipeline

Binds each upload table type to its mapper, target model and conflict key,
checks the upload's context before the first row is read, then streams the
CSV through the ingestion engine and records the run in `upload_logs`.

Flow: run_import -> prechecks -> ReferenceCache.load -> ingest_csv -> UploadLog
"""

from dataclasses import dataclass
from datetime import date
from functools import partial
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Type, Union
from uuid import UUID

import structlog

from adgate.database.connection import SessionProvider, get_db
from adgate.database.models import (
    AdPerformanceFact,
    Base,
    CompanyInventoryFact,
    InventoryFact,
    Product,
    ProductPlatform,
    RatingsFact,
    SalesFact,
    Seller,
    UploadLog,
)
from adgate.ingestion.engine import IngestOptions, IngestResult, ingest_csv
from adgate.ingestion.errors import PrecheckFailed
from adgate.ingestion.mappers import (
    ImportContext,
    Mapped,
    MapOutcome,
    Mapper,
    map_ad_performance,
    map_company_inventory,
    map_inventory,
    map_product,
    map_product_platform,
    map_ratings,
    map_sales,
    map_seller,
)
from adgate.ingestion.reference_cache import (
    PRODUCT_PLATFORMS,
    PRODUCTS,
    SELLERS,
    CacheKind,
    ReferenceCache,
    get_reference_cache,
)
from adgate.ingestion.rows import RawRow

logger = structlog.get_logger(__name__)

PERIOD_FIELDS = ("period_start_date", "period_end_date")
SNAPSHOT_FIELDS = ("snapshot_date", "snapshot_date")
LISTING_CACHES = (CacheKind.PRODUCT_PLATFORM, CacheKind.PRODUCT_PLATFORM_BY_SKU)


@dataclass(frozen=True)
class TableSpec:
    """How one upload type is mapped and stored."""
    table_type: str
    model: Type[Base]
    mapper: Mapper
    conflict_key: Tuple[str, ...]
    caches: Tuple[CacheKind, ...] = ()
    requires_platform: bool = True
    requires_seller: bool = False
    requires_snapshot_date: bool = False
    requires_ad_type: bool = False
    range_fields: Optional[Tuple[str, str]] = None
    invalidates: Optional[str] = None


TABLE_SPECS: Dict[str, TableSpec] = {
    spec.table_type: spec
    for spec in (
        TableSpec(
            "products", Product, map_product, ("sku_normalized",),
            requires_platform=False, invalidates=PRODUCTS,
        ),
        TableSpec(
            "product-platforms", ProductPlatform, map_product_platform, ("product_id", "platform_id"),
            caches=(CacheKind.PRODUCT, CacheKind.PLATFORM),
            requires_platform=False, invalidates=PRODUCT_PLATFORMS,
        ),
        TableSpec(
            "sellers", Seller, map_seller, ("platform_id", "name"),
            caches=(CacheKind.PLATFORM,),
            requires_platform=False, invalidates=SELLERS,
        ),
        TableSpec(
            "sales", SalesFact, map_sales,
            ("product_platform_id", "seller_id", "period_start_date", "period_end_date"),
            caches=LISTING_CACHES, requires_seller=True, range_fields=PERIOD_FIELDS,
        ),
        TableSpec(
            "inventory", InventoryFact, map_inventory,
            ("product_platform_id", "seller_id", "snapshot_date"),
            caches=LISTING_CACHES, requires_seller=True, requires_snapshot_date=True,
            range_fields=SNAPSHOT_FIELDS,
        ),
        TableSpec(
            "company-inventory", CompanyInventoryFact, map_company_inventory,
            ("product_id", "snapshot_date", "location"),
            caches=(CacheKind.PRODUCT,), requires_platform=False, range_fields=SNAPSHOT_FIELDS,
        ),
        TableSpec(
            "ratings", RatingsFact, map_ratings, ("product_platform_id", "snapshot_date"),
            caches=LISTING_CACHES, requires_snapshot_date=True, range_fields=SNAPSHOT_FIELDS,
        ),
        TableSpec(
            "ad-performance", AdPerformanceFact, map_ad_performance,
            ("product_platform_id", "period_start_date", "period_end_date", "ad_type"),
            caches=LISTING_CACHES, requires_ad_type=True, range_fields=PERIOD_FIELDS,
        ),
    )
}


class ImportResult(IngestResult):
    """IngestResult plus the upload log entry it produced."""
    table_type: str
    upload_id: Optional[UUID] = None
    range_start: Optional[date] = None
    range_end: Optional[date] = None
    range_label: Optional[str] = None


class _RangeTracker:
    """Min start / max end over the records a run actually mapped."""

    def __init__(self, fields: Optional[Tuple[str, str]]):
        self.fields = fields
        self.start: Optional[date] = None
        self.end: Optional[date] = None

    def observe(self, record: Dict[str, Any]) -> None:
        if not self.fields:
            return
        start, end = record.get(self.fields[0]), record.get(self.fields[1])
        if start is not None and (self.start is None or start < self.start):
            self.start = start
        if end is not None and (self.end is None or end > self.end):
            self.end = end

    def label(self, explicit: Optional[str]) -> Optional[str]:
        if explicit:
            return explicit
        if self.start is None:
            return None
        if self.start == self.end:
            return self.start.isoformat()
        return f"{self.start.isoformat()} to {self.end.isoformat()}"


def get_table_spec(table_type: str) -> TableSpec:
    spec = TABLE_SPECS.get(table_type)
    if spec is None:
        raise PrecheckFailed(
            f"Invalid table type: {table_type}",
            hint=f"Use one of: {', '.join(TABLE_SPECS)}",
        )
    return spec


async def _resolve_context(
    spec: TableSpec, context: ImportContext, cache: ReferenceCache
) -> ImportContext:
    if context.platform_name and context.platform_id is None:
        platform_id = await cache.get(CacheKind.PLATFORM, context.platform_name)
        if platform_id is None:
            raise PrecheckFailed(f"Unknown platform: {context.platform_name}")
        context = context.with_platform(platform_id)

    if spec.requires_platform and context.platform_id is None:
        raise PrecheckFailed(f"platform is required for {spec.table_type}")
    if spec.requires_seller and context.seller_id is None:
        raise PrecheckFailed(f"seller_id is required for {spec.table_type}")
    if spec.requires_snapshot_date and context.snapshot_date is None:
        raise PrecheckFailed(f"snapshot_date is required for {spec.table_type}")
    if spec.requires_ad_type and context.ad_type is None:
        raise PrecheckFailed(f"ad_type is required for {spec.table_type}")

    for kind in spec.caches:
        await cache.load(kind)

    if spec.requires_seller:
        await cache.load(CacheKind.SELLER)
        if context.seller_id not in cache.seller_ids(context.platform_id):
            # reload once; sellers may have been created since the last load
            cache.reset(SELLERS)
            await cache.load(CacheKind.SELLER)
        if context.seller_id not in cache.seller_ids(context.platform_id):
            raise PrecheckFailed(
                f"Seller {context.seller_id} does not belong to platform {context.platform_name or context.platform_id}",
                hint="Pick a seller listed for this platform",
            )
    return context


async def run_import(
    table_type: str,
    csv_path: Union[str, Path],
    context: ImportContext,
    cache: Optional[ReferenceCache] = None,
    session_provider: Optional[SessionProvider] = None,
    options: Optional[IngestOptions] = None,
) -> ImportResult:
    """
    Import one CSV into the table behind `table_type`.

    Raises:
        PrecheckFailed: unknown type, missing context, empty reference table,
            seller not on the platform
        StreamError, BatchWriteFailure: propagated from the engine
    """
    spec = get_table_spec(table_type)
    cache = cache or get_reference_cache()
    session_provider = session_provider or get_db
    context = await _resolve_context(spec, context, cache)

    tracker = _RangeTracker(spec.range_fields)
    bound = partial(spec.mapper, ctx=context, cache=cache)

    def mapper(row: RawRow) -> MapOutcome:
        outcome = bound(row)
        if isinstance(outcome, Mapped):
            tracker.observe(outcome.record)
        return outcome

    if options is None:
        options = IngestOptions(upsert=True, conflict_key=spec.conflict_key)

    log = logger.bind(table_type=table_type, platform_id=context.platform_id, seller_id=context.seller_id)
    log.info("Import started", csv=str(csv_path))

    result = await ingest_csv(csv_path, spec.model, mapper, options, session_provider)
    report = ImportResult(
        **result.model_dump(exclude={"success", "has_warnings"}),
        table_type=table_type,
        range_start=tracker.start,
        range_end=tracker.end,
        range_label=tracker.label(context.range_label),
    )

    if result.row_count > 0:
        entry = UploadLog(
            table_type=table_type,
            seller_id=context.seller_id,
            range_start=tracker.start,
            range_end=tracker.end,
            range_label=report.range_label,
            row_count=result.row_count,
        )
        async with session_provider() as db:
            db.add(entry)
            await db.flush()
            report.upload_id = entry.upload_id

        if spec.invalidates:
            cache.reset(spec.invalidates)

    log.info(
        "Import finished",
        success=report.success,
        rows=report.row_count,
        skipped=report.skipped_row_count,
        errors=report.error_row_count,
        upload_id=str(report.upload_id) if report.upload_id else None,
    )
    return report
