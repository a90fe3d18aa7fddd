"""
Database Module
Connection management and ORM models
"""
from .connection import (
    SessionProvider,
    close_database,
    get_db,
    get_session_provider,
    init_database,
    session_scope,
)
from .models import (
    AdPerformanceFact,
    AdType,
    Base,
    CompanyInventoryFact,
    Decision,
    InventoryFact,
    Platform,
    Product,
    ProductPlatform,
    RatingsFact,
    SalesFact,
    Seller,
    UploadLog,
)

__all__ = [
    "SessionProvider",
    "close_database",
    "get_db",
    "get_session_provider",
    "init_database",
    "session_scope",
    "AdPerformanceFact",
    "AdType",
    "Base",
    "CompanyInventoryFact",
    "Decision",
    "InventoryFact",
    "Platform",
    "Product",
    "ProductPlatform",
    "RatingsFact",
    "SalesFact",
    "Seller",
    "UploadLog",
]
