"""
Test Suite Configuration
"""
from pathlib import Path
from types import SimpleNamespace
from typing import Dict, List, Sequence

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from adgate.config import Settings
from adgate.database.connection import session_scope
from adgate.database.models import Base, Platform, Product, ProductPlatform, Seller
from adgate.database.seed import seed_platforms
from adgate.ingestion.reference_cache import ReferenceCache


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(
        APP_ENV="testing",
        DEBUG=True,
    )


@pytest.fixture
async def test_engine():
    """In-memory SQLite engine shared by every session of one test"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_provider(test_engine):
    """Session provider bound to the test engine"""
    factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    return lambda: session_scope(factory)


@pytest.fixture
async def platforms(session_provider) -> Dict[str, int]:
    """Default platforms, name -> platform_id"""
    await seed_platforms(session_provider)
    async with session_provider() as db:
        result = await db.execute(select(Platform.name, Platform.platform_id))
        return dict(result.all())


@pytest.fixture
async def catalog(session_provider, platforms) -> SimpleNamespace:
    """
    Two products listed on Amazon and seller 5 on Amazon.

    SKU-001 -> ASIN B0001, SKU-002 -> ASIN B0002
    """
    amazon = platforms["Amazon"]
    async with session_provider() as db:
        p1 = Product(sku="SKU-001", sku_normalized="SKU001", product_name="Steel Bottle", active=True)
        p2 = Product(sku="SKU-002", sku_normalized="SKU002", product_name="Yoga Mat", active=True)
        db.add_all([p1, p2])
        await db.flush()

        pp1 = ProductPlatform(product_id=p1.product_id, platform_id=amazon, platform_sku="B0001")
        pp2 = ProductPlatform(product_id=p2.product_id, platform_id=amazon, platform_sku="B0002")
        seller = Seller(seller_id=5, name="Acme Retail", platform_id=amazon, active=True)
        db.add_all([pp1, pp2, seller])
        await db.flush()

        return SimpleNamespace(
            amazon=amazon,
            flipkart=platforms["Flipkart"],
            product_1=p1.product_id,
            product_2=p2.product_id,
            listing_1=pp1.product_platform_id,
            listing_2=pp2.product_platform_id,
            seller_id=seller.seller_id,
        )


@pytest.fixture
def cache(session_provider) -> ReferenceCache:
    """Fresh reference cache bound to the test database"""
    return ReferenceCache(session_provider)


@pytest.fixture
def write_csv(tmp_path: Path):
    """Write a CSV from a header and rows of already-formatted cells"""

    def _write(name: str, header: Sequence[str], rows: List[Sequence[str]]) -> Path:
        path = tmp_path / name
        lines = [",".join(header)] + [",".join(row) for row in rows]
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _write
