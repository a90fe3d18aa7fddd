"""
Decision Runner

Evaluates every product-platform against every active seller on its
platform (or one requested seller) and upserts the results into
`decisions`. A failure while evaluating one tuple becomes a "no" decision
carrying the error; it never aborts the run.
"""

import time
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import structlog
from prometheus_client import Counter, Histogram
from pydantic import BaseModel
from sqlalchemy import select

from adgate.config import get_settings
from adgate.database.connection import SessionProvider, get_db
from adgate.database.dml import build_insert_ignore, build_upsert
from adgate.database.models import Decision, ProductPlatform, Seller
from adgate.decision.gates import evaluate
from adgate.decision.loader import DecisionDataLoader
from adgate.ingestion.reference_cache import SELLERS, ReferenceCache

logger = structlog.get_logger(__name__)
settings = get_settings()

DECISIONS_EVALUATED = Counter(
    "decisions_evaluated_total",
    "Decisions evaluated by outcome",
    ["outcome"],
)

DECISION_RUN_TIME = Histogram(
    "decision_run_seconds",
    "Duration of a full decision run",
    buckets=[0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0],
)

DECISION_CONFLICT_KEY = ("product_platform_id", "seller_id")


class UnknownSeller(LookupError):
    """Requested seller does not exist."""


class DecisionRunSummary(BaseModel):
    total: int
    yes: int
    no: int
    duration_ms: int


async def _ensure_all_sellers(db, platform_ids: List[int]) -> Tuple[Dict[int, int], bool]:
    """
    Get-or-create the synthetic platform-wide seller for each platform.

    Returns the seller id per platform and whether any seller was created.
    """
    if not platform_ids:
        return {}, False
    name = settings.decision.all_sellers_name
    query = select(Seller.platform_id, Seller.seller_id).where(
        Seller.name == name, Seller.platform_id.in_(platform_ids)
    )

    existing = dict((await db.execute(query)).all())
    missing = [pid for pid in platform_ids if pid not in existing]
    if not missing:
        return existing, False

    await db.execute(
        build_insert_ignore(
            db, Seller, [{"name": name, "platform_id": pid, "active": True} for pid in missing]
        )
    )
    logger.info("Created All Sellers entries", platform_ids=missing)
    return dict((await db.execute(query)).all()), True


async def _build_tuples(
    db, seller_id: Optional[int]
) -> Tuple[List[Tuple[int, int, int, Optional[int]]], bool]:
    """
    (product_platform_id, product_id, stored seller_id, facts seller_id) per
    tuple, plus whether All Sellers entries were created on the way.

    The facts seller is None for the All Sellers tuple.
    """
    listings = (
        await db.execute(
            select(ProductPlatform.product_platform_id, ProductPlatform.product_id, ProductPlatform.platform_id)
            .order_by(ProductPlatform.product_platform_id)
        )
    ).all()

    if seller_id is not None:
        seller = await db.get(Seller, seller_id)
        if seller is None:
            raise UnknownSeller(f"Seller {seller_id} not found")
        facts_seller = None if seller.name == settings.decision.all_sellers_name else seller_id
        return [
            (pp_id, product_id, seller_id, facts_seller)
            for pp_id, product_id, platform_id in listings
            if platform_id == seller.platform_id
        ], False

    platform_ids = sorted({platform_id for _, _, platform_id in listings})
    all_sellers, created = await _ensure_all_sellers(db, platform_ids)

    sellers_by_platform: Dict[int, List[int]] = {}
    result = await db.execute(
        select(Seller.platform_id, Seller.seller_id)
        .where(Seller.active.is_(True), Seller.name != settings.decision.all_sellers_name)
        .order_by(Seller.seller_id)
    )
    for platform_id, sid in result.all():
        sellers_by_platform.setdefault(platform_id, []).append(sid)

    tuples = []
    for pp_id, product_id, platform_id in listings:
        for sid in sellers_by_platform.get(platform_id, []):
            tuples.append((pp_id, product_id, sid, sid))
        if platform_id in all_sellers:
            tuples.append((pp_id, product_id, all_sellers[platform_id], None))
    return tuples, created


async def run_decisions(
    seller_id: Optional[int] = None,
    as_of: Optional[date] = None,
    session_provider: Optional[SessionProvider] = None,
    cache: Optional[ReferenceCache] = None,
) -> DecisionRunSummary:
    """
    Evaluate and persist decisions.

    Args:
        seller_id: Only this seller's platform listings; all active sellers
            plus All Sellers when omitted
        as_of: Last day of the trailing window, defaults to today
        cache: Reference cache whose sellers are dropped when All Sellers
            entries get created

    Raises:
        UnknownSeller: `seller_id` does not exist
    """
    session_provider = session_provider or get_db
    start = time.perf_counter()
    evaluated_at = datetime.now(timezone.utc).replace(tzinfo=None)

    async with session_provider() as db:
        tuples, sellers_created = await _build_tuples(db, seller_id)
        loader = await DecisionDataLoader(as_of).load(db)

    if sellers_created and cache is not None:
        cache.reset(SELLERS)

    rows: List[Dict[str, Any]] = []
    yes = 0
    for pp_id, product_id, stored_seller, facts_seller in tuples:
        try:
            result = evaluate(loader.facts(pp_id, product_id, facts_seller))
            decision, reason = result.decision, result.reason
        except Exception as e:
            logger.warning("Decision evaluation failed", product_platform_id=pp_id, seller_id=stored_seller, error=str(e))
            decision, reason = False, f"Evaluation error: {e}"

        yes += int(decision)
        rows.append({
            "product_platform_id": pp_id,
            "seller_id": stored_seller,
            "decision": decision,
            "reason": reason,
            "evaluated_at": evaluated_at,
        })

    chunk_size = settings.decision.upsert_chunk_size
    if rows:
        async with session_provider() as db:
            for i in range(0, len(rows), chunk_size):
                await db.execute(build_upsert(db, Decision, rows[i:i + chunk_size], DECISION_CONFLICT_KEY))

    duration = time.perf_counter() - start
    DECISION_RUN_TIME.observe(duration)
    DECISIONS_EVALUATED.labels(outcome="yes").inc(yes)
    DECISIONS_EVALUATED.labels(outcome="no").inc(len(rows) - yes)

    summary = DecisionRunSummary(
        total=len(rows),
        yes=yes,
        no=len(rows) - yes,
        duration_ms=int(duration * 1000),
    )
    logger.info("Decision run complete", seller_id=seller_id, as_of=loader.as_of.isoformat(), **summary.model_dump())
    return summary
