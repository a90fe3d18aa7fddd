"""
Streaming Ingestion Engine

Maps a stream of raw rows one at a time, in order, and writes the mapped
records in fixed-size batches, each batch in its own transaction.

Row-level problems (skipped or malformed rows) are counted and sampled and
never stop the run. Source and write problems are fatal:
- StreamError: the CSV is missing, unreadable or stalls
- BatchWriteFailure: a batch insert/upsert failed or timed out

Example:
    options = IngestOptions(upsert=True, conflict_key=("product_platform_id", "snapshot_date"))
    result = await ingest_csv("ratings.csv", RatingsFact, mapper, options)
"""

import asyncio
import inspect
import time
from dataclasses import dataclass
from pathlib import Path
from typing import (
    Any,
    AsyncIterable,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
    Type,
    Union,
)

import polars as pl
import structlog
from prometheus_client import Counter, Histogram
from pydantic import BaseModel, Field, computed_field
from sqlalchemy import insert

from adgate.config import get_settings
from adgate.database.connection import SessionProvider, get_db
from adgate.database.dml import build_upsert
from adgate.database.models import Base
from adgate.ingestion.errors import (
    BatchWriteFailure,
    CacheNotLoaded,
    RowMappingError,
    StreamError,
)
from adgate.ingestion.mappers import MapOutcome, Mapped, Skipped
from adgate.ingestion.rows import RawRow

logger = structlog.get_logger(__name__)
settings = get_settings()


# =============================================================================
# METRICS
# =============================================================================

ROWS_PROCESSED = Counter(
    "ingestion_rows_total",
    "Rows processed by the ingestion engine",
    ["table", "outcome"],
)

BATCH_FLUSH_TIME = Histogram(
    "ingestion_batch_flush_seconds",
    "Time to write one batch",
    ["table"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

INGEST_RUNS = Counter(
    "ingestion_runs_total",
    "Ingestion runs by final status",
    ["table", "status"],
)


# =============================================================================
# OPTIONS AND RESULTS
# =============================================================================

RowMapper = Callable[[RawRow], Union[MapOutcome, Awaitable[MapOutcome]]]


@dataclass
class IngestOptions:
    """Knobs for one ingestion run. Defaults come from IngestionSettings."""
    batch_size: int = settings.ingestion.batch_size
    upsert: bool = False
    conflict_key: Optional[Tuple[str, ...]] = None
    sample_limit: int = settings.ingestion.sample_limit
    read_chunk_size: int = settings.ingestion.read_chunk_size
    flush_timeout_seconds: float = settings.ingestion.flush_timeout_seconds
    read_timeout_seconds: float = settings.ingestion.read_timeout_seconds

    def __post_init__(self):
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if self.upsert and not self.conflict_key:
            raise ValueError("upsert requires a conflict_key")


class SkippedRowSample(BaseModel):
    row_num: int
    reason: str
    row: Dict[str, str]


class ErrorRowSample(BaseModel):
    row_num: int
    error: str
    row: Dict[str, str]


class IngestResult(BaseModel):
    """Outcome of one ingestion run"""
    table: str
    row_count: int = 0
    batch_count: int = 0
    raw_row_count: int = 0
    skipped_row_count: int = 0
    error_row_count: int = 0
    skipped_rows_sample: List[SkippedRowSample] = Field(default_factory=list)
    error_rows_sample: List[ErrorRowSample] = Field(default_factory=list)
    missing_skus: List[str] = Field(default_factory=list)
    missing_platform_skus: List[str] = Field(default_factory=list)
    duration_seconds: float = 0

    @computed_field
    @property
    def success(self) -> bool:
        return self.row_count > 0

    @computed_field
    @property
    def has_warnings(self) -> bool:
        return self.skipped_row_count > 0 or self.error_row_count > 0


# =============================================================================
# ROW SOURCE
# =============================================================================

def _open_batches(path: Path, chunk_size: int) -> Iterator[pl.DataFrame]:
    return iter(pl.scan_csv(path, infer_schema_length=0).collect_batches(chunk_size=chunk_size))


def _next_chunk(batches: Iterator[pl.DataFrame]) -> Optional[pl.DataFrame]:
    return next(batches, None)


async def read_csv_rows(
    path: Union[str, Path],
    chunk_size: Optional[int] = None,
    timeout: Optional[float] = None,
) -> AsyncIterator[Dict[str, Optional[str]]]:
    """
    Stream CSV rows as dicts of strings.

    Polars reads every column as text and parses the file once, handing
    chunks back through a worker thread so a large file never blocks the
    event loop. Blank cells come back as None.
    """
    path = Path(path)
    chunk_size = chunk_size or settings.ingestion.read_chunk_size
    timeout = timeout or settings.ingestion.read_timeout_seconds

    if not path.is_file():
        raise StreamError(f"CSV file not found: {path}")

    row_num = 1

    async def pull(func: Callable[..., Any], *args: Any) -> Any:
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=timeout)
        except asyncio.TimeoutError:
            raise StreamError(f"Timed out reading {path.name} at row {row_num}") from None
        except pl.exceptions.NoDataError:
            return None
        except (pl.exceptions.PolarsError, OSError, UnicodeDecodeError) as e:
            raise StreamError(f"Unreadable CSV {path.name}: {e}") from e

    batches = await pull(_open_batches, path, chunk_size)
    if batches is None:
        return

    while True:
        chunk = await pull(_next_chunk, batches)
        if chunk is None:
            return
        for row in chunk.iter_rows(named=True):
            yield row
        row_num += chunk.height


# =============================================================================
# ENGINE
# =============================================================================

class StreamingIngestor:
    """
    One ingestion run into `target`.

    The batch buffer belongs to the run; rows are mapped strictly in order
    and the next row is not mapped until the previous batch is flushed.
    """

    def __init__(
        self,
        target: Type[Base],
        mapper: RowMapper,
        options: Optional[IngestOptions] = None,
        session_provider: Optional[SessionProvider] = None,
    ):
        self.target = target
        self.mapper = mapper
        self.options = options or IngestOptions()
        self.session_provider = session_provider or get_db
        self.table = target.__tablename__

        self._buffer: List[Dict[str, Any]] = []
        self._missing_skus: Dict[str, None] = {}
        self._missing_platform_skus: Dict[str, None] = {}
        self.result = IngestResult(table=self.table)

    async def _map(self, row: RawRow) -> MapOutcome:
        outcome = self.mapper(row)
        if inspect.isawaitable(outcome):
            outcome = await outcome
        return outcome

    def _dedupe(self, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        # One statement may not touch the same conflict target twice; last row wins
        keys = self.options.conflict_key
        latest: Dict[Tuple[Any, ...], Dict[str, Any]] = {}
        for record in records:
            latest[tuple(record.get(k) for k in keys)] = record
        return list(latest.values())

    async def _write(self, records: List[Dict[str, Any]]) -> None:
        async with self.session_provider() as db:
            if self.options.upsert:
                stmt = build_upsert(db, self.target, self._dedupe(records), self.options.conflict_key)
                await db.execute(stmt)
            else:
                await db.execute(insert(self.target), records)

    async def _flush(self) -> None:
        if not self._buffer:
            return
        batch, self._buffer = self._buffer, []
        batch_index = self.result.batch_count + 1
        start = time.perf_counter()
        try:
            await asyncio.wait_for(self._write(batch), timeout=self.options.flush_timeout_seconds)
        except asyncio.TimeoutError as e:
            logger.error("Batch write timed out", table=self.table, batch=batch_index, rows=len(batch))
            raise BatchWriteFailure(batch_index, batch[:5], e) from None
        except Exception as e:
            logger.error(
                "Batch write failed",
                table=self.table,
                batch=batch_index,
                rows=len(batch),
                error=str(e),
            )
            raise BatchWriteFailure(batch_index, batch[:5], e) from e
        finally:
            BATCH_FLUSH_TIME.labels(table=self.table).observe(time.perf_counter() - start)

        self.result.batch_count = batch_index
        logger.debug("Batch written", table=self.table, batch=batch_index, rows=len(batch))

    def _record_skip(self, row: RawRow, skipped: Skipped) -> None:
        result = self.result
        result.skipped_row_count += 1
        if len(result.skipped_rows_sample) < self.options.sample_limit:
            result.skipped_rows_sample.append(
                SkippedRowSample(row_num=row.row_num, reason=skipped.reason, row=row.to_dict())
            )
        if skipped.missing_sku:
            self._missing_skus[skipped.missing_sku] = None
        if skipped.missing_platform_sku:
            self._missing_platform_skus[skipped.missing_platform_sku] = None

    def _record_error(self, row: RawRow, error: str) -> None:
        result = self.result
        result.error_row_count += 1
        if len(result.error_rows_sample) < self.options.sample_limit:
            result.error_rows_sample.append(
                ErrorRowSample(row_num=row.row_num, error=error, row=row.to_dict())
            )

    async def run(self, rows: AsyncIterable[Mapping[str, Any]]) -> IngestResult:
        start = time.perf_counter()
        result = self.result
        logger.info("Ingestion started", table=self.table, upsert=self.options.upsert)

        try:
            async for cells in rows:
                result.raw_row_count += 1
                row = RawRow(cells, row_num=result.raw_row_count)

                try:
                    outcome = await self._map(row)
                except CacheNotLoaded:
                    raise
                except RowMappingError as e:
                    self._record_error(row, e.reason)
                    continue
                except Exception as e:
                    self._record_error(row, str(e) or type(e).__name__)
                    continue

                if isinstance(outcome, Skipped):
                    self._record_skip(row, outcome)
                    continue
                if not isinstance(outcome, Mapped):
                    self._record_error(row, f"Mapper returned {type(outcome).__name__}")
                    continue

                self._buffer.append(outcome.record)
                result.row_count += 1
                if len(self._buffer) >= self.options.batch_size:
                    await self._flush()

            await self._flush()
        except Exception:
            INGEST_RUNS.labels(table=self.table, status="failed").inc()
            raise
        finally:
            result.missing_skus = list(self._missing_skus)
            result.missing_platform_skus = list(self._missing_platform_skus)
            result.duration_seconds = round(time.perf_counter() - start, 3)
            ROWS_PROCESSED.labels(table=self.table, outcome="mapped").inc(result.row_count)
            ROWS_PROCESSED.labels(table=self.table, outcome="skipped").inc(result.skipped_row_count)
            ROWS_PROCESSED.labels(table=self.table, outcome="error").inc(result.error_row_count)

        INGEST_RUNS.labels(
            table=self.table, status="success" if result.success else "empty"
        ).inc()
        logger.info(
            "Ingestion completed",
            table=self.table,
            rows=result.row_count,
            batches=result.batch_count,
            raw_rows=result.raw_row_count,
            skipped=result.skipped_row_count,
            errors=result.error_row_count,
            duration_seconds=result.duration_seconds,
        )
        return result


async def ingest(
    rows: AsyncIterable[Mapping[str, Any]],
    target: Type[Base],
    mapper: RowMapper,
    options: Optional[IngestOptions] = None,
    session_provider: Optional[SessionProvider] = None,
) -> IngestResult:
    """Ingest an async stream of raw rows into `target`."""
    ingestor = StreamingIngestor(target, mapper, options, session_provider)
    return await ingestor.run(rows)


async def ingest_csv(
    path: Union[str, Path],
    target: Type[Base],
    mapper: RowMapper,
    options: Optional[IngestOptions] = None,
    session_provider: Optional[SessionProvider] = None,
) -> IngestResult:
    """Ingest a CSV file into `target`."""
    options = options or IngestOptions()
    rows = read_csv_rows(path, options.read_chunk_size, options.read_timeout_seconds)
    return await ingest(rows, target, mapper, options, session_provider)
