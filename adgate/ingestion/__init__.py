"""
Ingestion Module
Spreadsheet uploads into the fact and reference tables
"""
from .engine import IngestOptions, IngestResult, ingest, ingest_csv, read_csv_rows
from .errors import (
    BatchWriteFailure,
    CacheNotLoaded,
    IngestionError,
    PrecheckFailed,
    RowMappingError,
    StreamError,
)
from .mappers import ImportContext, Mapped, Skipped
from .pipeline import TABLE_SPECS, ImportResult, run_import
from .reference_cache import CacheKind, ReferenceCache, get_reference_cache
from .rows import ColumnAliases, RawRow
from .uploads import staged_upload

__all__ = [
    "IngestOptions",
    "IngestResult",
    "ingest",
    "ingest_csv",
    "read_csv_rows",
    "BatchWriteFailure",
    "CacheNotLoaded",
    "IngestionError",
    "PrecheckFailed",
    "RowMappingError",
    "StreamError",
    "ImportContext",
    "Mapped",
    "Skipped",
    "TABLE_SPECS",
    "ImportResult",
    "run_import",
    "CacheKind",
    "ReferenceCache",
    "get_reference_cache",
    "ColumnAliases",
    "RawRow",
    "staged_upload",
]
