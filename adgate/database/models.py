"""
Database Models - Ads Decision Schema

Reference Tables:
- Platform: marketplaces (Amazon, Flipkart, ...)
- Product: internal catalogue keyed by normalized SKU
- ProductPlatform: product listing on one platform, the join key of every fact
- Seller: seller accounts, each bound to one platform

Fact Tables:
- SalesFact: units and revenue per reporting period
- InventoryFact: seller stock snapshots
- CompanyInventoryFact: central warehouse stock snapshots per location
- RatingsFact: platform rating snapshots
- AdPerformanceFact: ad spend and attributed revenue per period

Outputs:
- Decision: latest ads go/no-go per product-platform-seller
- UploadLog: append-only audit of ingestion runs
"""

from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional, List
import uuid

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# =============================================================================
# ENUMERATIONS
# =============================================================================

class AdType(str, Enum):
    """Ad product type"""
    SP = "sp"  # Sponsored Products
    SD = "sd"  # Sponsored Display


# =============================================================================
# REFERENCE TABLES
# =============================================================================

class Platform(Base):
    """Marketplace a product is listed on."""
    __tablename__ = "platforms"

    platform_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)

    sellers: Mapped[List["Seller"]] = relationship(back_populates="platform")


class Product(Base):
    """
    Product Catalogue

    `sku` keeps the display form (trimmed, whitespace collapsed, upper case),
    `sku_normalized` the match form (alphanumeric only) used for uniqueness.
    """
    __tablename__ = "products"

    product_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sku: Mapped[str] = mapped_column(String(100), nullable=False)
    sku_normalized: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    product_name: Mapped[Optional[str]] = mapped_column(String(300))
    category: Mapped[Optional[str]] = mapped_column(String(100))
    launch_date: Mapped[Optional[date]] = mapped_column(Date)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Audit
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    listings: Mapped[List["ProductPlatform"]] = relationship(back_populates="product")

    __table_args__ = (
        Index("ix_products_category", "category"),
        Index("ix_products_active", "active"),
    )


class ProductPlatform(Base):
    """
    Product listing on a platform

    Binds one product to one platform through its platform-specific SKU/ASIN.
    """
    __tablename__ = "product_platforms"

    product_platform_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("products.product_id"), nullable=False
    )
    platform_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("platforms.platform_id"), nullable=False
    )
    platform_sku: Mapped[Optional[str]] = mapped_column(String(100))

    product: Mapped["Product"] = relationship(back_populates="listings")
    platform: Mapped["Platform"] = relationship()

    __table_args__ = (
        UniqueConstraint("product_id", "platform_id", name="uq_product_platform"),
        UniqueConstraint("platform_id", "platform_sku", name="uq_platform_sku"),
        Index("ix_product_platforms_platform", "platform_id"),
    )


class Seller(Base):
    """Seller account on exactly one platform."""
    __tablename__ = "sellers"

    seller_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    platform_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("platforms.platform_id"), nullable=False
    )
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    platform: Mapped["Platform"] = relationship(back_populates="sellers")

    __table_args__ = (
        UniqueConstraint("platform_id", "name", name="uq_seller_platform_name"),
    )


# =============================================================================
# FACT TABLES
# =============================================================================

class SalesFact(Base):
    """
    Sales Fact Table

    Grain: one row per product-platform, seller and reporting period.
    """
    __tablename__ = "sales_facts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_platform_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("product_platforms.product_platform_id"), nullable=False
    )
    seller_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("sellers.seller_id"), nullable=False
    )
    period_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    period_end_date: Mapped[date] = mapped_column(Date, nullable=False)
    units_sold: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    revenue: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "product_platform_id", "seller_id", "period_start_date", "period_end_date",
            name="uq_sales_period",
        ),
        Index("ix_sales_facts_period", "period_start_date"),
    )


class InventoryFact(Base):
    """
    Seller Inventory Snapshot

    Grain: one row per product-platform, seller and snapshot date.
    """
    __tablename__ = "inventory_facts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_platform_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("product_platforms.product_platform_id"), nullable=False
    )
    seller_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("sellers.seller_id"), nullable=False
    )
    snapshot_date: Mapped[date] = mapped_column(Date, nullable=False)
    inventory_units: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "product_platform_id", "seller_id", "snapshot_date",
            name="uq_inventory_snapshot",
        ),
    )


class CompanyInventoryFact(Base):
    """
    Central Inventory Snapshot

    Grain: one row per product, snapshot date and warehouse location.
    """
    __tablename__ = "company_inventory_facts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("products.product_id"), nullable=False
    )
    snapshot_date: Mapped[date] = mapped_column(Date, nullable=False)
    inventory_units: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    location: Mapped[str] = mapped_column(String(200), default="", server_default="", nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "product_id", "snapshot_date", "location",
            name="uq_company_inventory_snapshot",
        ),
    )


class RatingsFact(Base):
    """
    Rating Snapshot

    Platform level, not seller specific.
    """
    __tablename__ = "ratings_facts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_platform_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("product_platforms.product_platform_id"), nullable=False
    )
    snapshot_date: Mapped[date] = mapped_column(Date, nullable=False)
    rating: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    review_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    __table_args__ = (
        UniqueConstraint("product_platform_id", "snapshot_date", name="uq_ratings_snapshot"),
    )


class AdPerformanceFact(Base):
    """Ad spend and attributed revenue per period and ad type."""
    __tablename__ = "ad_performance_facts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_platform_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("product_platforms.product_platform_id"), nullable=False
    )
    period_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    period_end_date: Mapped[date] = mapped_column(Date, nullable=False)
    spend: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0, nullable=False)
    revenue: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0, nullable=False)
    ad_type: Mapped[AdType] = mapped_column(
        SQLEnum(AdType, name="ad_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint(
            "product_platform_id", "period_start_date", "period_end_date", "ad_type",
            name="uq_ad_performance_period",
        ),
        Index("ix_ad_performance_period", "period_start_date"),
    )


# =============================================================================
# OUTPUTS
# =============================================================================

class Decision(Base):
    """
    Ads Decision

    Overwritten on every evaluation run, never historized.
    """
    __tablename__ = "decisions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_platform_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("product_platforms.product_platform_id"), nullable=False
    )
    seller_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("sellers.seller_id"), nullable=False
    )
    decision: Mapped[bool] = mapped_column(Boolean, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    evaluated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("product_platform_id", "seller_id", name="uq_decision_tuple"),
        Index("ix_decisions_decision", "decision"),
    )


class UploadLog(Base):
    """Append-only audit trail of ingestion runs."""
    __tablename__ = "upload_logs"

    upload_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    table_type: Mapped[str] = mapped_column(String(50), nullable=False)
    seller_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("sellers.seller_id")
    )
    range_start: Mapped[Optional[date]] = mapped_column(Date)
    range_end: Mapped[Optional[date]] = mapped_column(Date)
    range_label: Mapped[Optional[str]] = mapped_column(String(200))
    row_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_upload_logs_type_created", "table_type", "created_at"),
    )
