"""
API Module
"""
from .errors import register_exception_handlers
from .middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware

__all__ = [
    "register_exception_handlers",
    "RequestLoggingMiddleware",
    "SecurityHeadersMiddleware",
]
