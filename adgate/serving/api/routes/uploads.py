"""
Upload API Endpoints

Spreadsheet upload per table type and the upload audit log.
"""

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from pydantic import BaseModel, ConfigDict
from sqlalchemy import select

from adgate.database.connection import SessionProvider, get_session_provider
from adgate.database.models import AdType, UploadLog
from adgate.ingestion.mappers import ImportContext
from adgate.ingestion.pipeline import ImportResult, get_table_spec, run_import
from adgate.ingestion.reference_cache import ReferenceCache, get_reference_cache
from adgate.ingestion.uploads import staged_upload

router = APIRouter()


class UploadLogEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    upload_id: UUID
    table_type: str
    seller_id: Optional[int]
    range_start: Optional[date]
    range_end: Optional[date]
    range_label: Optional[str]
    row_count: int
    created_at: Optional[datetime]


class LatestUploadResponse(BaseModel):
    success: bool = True
    latest: Optional[UploadLogEntry]


class UploadResponse(ImportResult):
    message: str


@router.get("/latest", response_model=LatestUploadResponse)
async def latest_upload(
    table_type: str = Query(..., description="Upload table type, e.g. sales"),
    seller_id: Optional[int] = None,
    session_provider: SessionProvider = Depends(get_session_provider),
) -> LatestUploadResponse:
    """Most recent upload of a table type, optionally for one seller."""
    query = (
        select(UploadLog)
        .where(UploadLog.table_type == table_type)
        .order_by(UploadLog.created_at.desc())
        .limit(1)
    )
    if seller_id is not None:
        query = query.where(UploadLog.seller_id == seller_id)

    async with session_provider() as db:
        entry = (await db.execute(query)).scalars().first()
        latest = UploadLogEntry.model_validate(entry) if entry else None

    return LatestUploadResponse(latest=latest)


@router.post("/{table_type}", response_model=UploadResponse)
async def upload_table(
    table_type: str,
    file: UploadFile = File(..., description="CSV or Excel file"),
    platform: Optional[str] = Form(None),
    seller_id: Optional[int] = Form(None),
    snapshot_date: Optional[date] = Form(None),
    ad_type: Optional[AdType] = Form(None),
    range_label: Optional[str] = Form(None),
    session_provider: SessionProvider = Depends(get_session_provider),
    cache: ReferenceCache = Depends(get_reference_cache),
) -> UploadResponse:
    """
    Import one spreadsheet.

    Returns 200 with `success=false` when nothing could be imported, so the
    row samples reach the operator.
    """
    get_table_spec(table_type)
    context = ImportContext(
        platform_name=platform,
        seller_id=seller_id,
        ad_type=ad_type,
        snapshot_date=snapshot_date,
        range_label=range_label,
    )

    async with staged_upload(file.filename, file) as csv_path:
        result = await run_import(
            table_type, csv_path, context, cache=cache, session_provider=session_provider
        )

    message = f"Imported {result.row_count} rows" if result.success else "No rows were imported"
    return UploadResponse(**result.model_dump(exclude={"success", "has_warnings"}), message=message)
