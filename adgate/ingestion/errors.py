"""
Ingestion error hierarchy.

Run-level errors (PrecheckFailed, BatchWriteFailure, StreamError) abort an
import and propagate to the caller. RowMappingError never leaves the engine:
it is counted and sampled per row.
"""

from typing import Any, Dict, List, Mapping, Optional


class IngestionError(Exception):
    """Base class for ingestion failures."""


class PrecheckFailed(IngestionError):
    """Import aborted before any row was read."""

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.hint = hint

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.message}
        if self.hint:
            payload["hint"] = self.hint
        return payload


class RowMappingError(IngestionError):
    """A single row is structurally invalid."""

    def __init__(self, reason: str, row: Optional[Mapping[str, str]] = None):
        super().__init__(reason)
        self.reason = reason
        self.row = dict(row) if row is not None else None


class BatchWriteFailure(IngestionError):
    """A batch flush failed or timed out. Fatal for the run."""

    def __init__(
        self,
        batch_index: int,
        sample_rows: List[Dict[str, Any]],
        cause: Optional[BaseException] = None,
    ):
        detail = f": {str(cause) or type(cause).__name__}" if cause is not None else ""
        super().__init__(f"Batch {batch_index} failed to write{detail}")
        self.batch_index = batch_index
        self.sample_rows = sample_rows
        self.cause = cause


class StreamError(IngestionError):
    """The row source is missing, unreadable or stalled."""


class CacheNotLoaded(IngestionError):
    """A reference lookup ran before its table was loaded."""
