"""
API Routes Module
"""
from .data import router as data_router
from .decisions import router as decisions_router
from .health import router as health_router
from .reports import router as reports_router
from .sellers import router as sellers_router
from .sync import router as sync_router
from .uploads import router as uploads_router

__all__ = [
    "data_router",
    "decisions_router",
    "health_router",
    "reports_router",
    "sellers_router",
    "sync_router",
    "uploads_router",
]
