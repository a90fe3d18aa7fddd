"""
Exception handlers mapping ingestion and decision errors to HTTP responses.

PrecheckFailed and ReportRangeError -> 400, UnknownSeller -> 404, ProductSyncError -> 502,
StreamError / BatchWriteFailure -> 500.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from adgate.decision.runner import UnknownSeller
from adgate.ingestion.errors import BatchWriteFailure, PrecheckFailed, StreamError
from adgate.ingestion.sync import ProductSyncError
from adgate.reporting import ReportRangeError

logger = structlog.get_logger(__name__)


async def precheck_failed_handler(request: Request, exc: PrecheckFailed) -> JSONResponse:
    logger.info("Precheck failed", path=request.url.path, error=exc.message, hint=exc.hint)
    return JSONResponse(status_code=400, content={"success": False, **exc.to_dict()})


async def unknown_seller_handler(request: Request, exc: UnknownSeller) -> JSONResponse:
    return JSONResponse(status_code=404, content={"success": False, "error": str(exc)})


async def product_sync_handler(request: Request, exc: ProductSyncError) -> JSONResponse:
    logger.error("Product sync failed", error=str(exc))
    return JSONResponse(status_code=502, content={"success": False, "error": str(exc)})


async def report_range_handler(request: Request, exc: ReportRangeError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"success": False, "error": str(exc)})


async def stream_error_handler(request: Request, exc: StreamError) -> JSONResponse:
    logger.error("Upload stream failed", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})


async def batch_write_handler(request: Request, exc: BatchWriteFailure) -> JSONResponse:
    logger.error("Upload batch write failed", path=request.url.path, batch=exc.batch_index, error=str(exc))
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": str(exc),
            "batch_index": exc.batch_index,
            "sample_rows": jsonable_encoder(exc.sample_rows),
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PrecheckFailed, precheck_failed_handler)
    app.add_exception_handler(UnknownSeller, unknown_seller_handler)
    app.add_exception_handler(ProductSyncError, product_sync_handler)
    app.add_exception_handler(ReportRangeError, report_range_handler)
    app.add_exception_handler(StreamError, stream_error_handler)
    app.add_exception_handler(BatchWriteFailure, batch_write_handler)
