"""
Upload staging.

Uploaded spreadsheets are written to a private temp directory, Excel
workbooks are converted to CSV (first sheet, every cell as text) and the
whole directory is removed when the import finishes, however it finishes.
"""

import asyncio
import shutil
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional, Protocol

import pandas as pd
import structlog

from adgate.config import get_settings
from adgate.ingestion.errors import PrecheckFailed, StreamError

logger = structlog.get_logger(__name__)
settings = get_settings()

ALLOWED_EXTENSIONS = {".csv", ".xlsx", ".xls"}
EXCEL_EXTENSIONS = {".xlsx", ".xls"}
COPY_CHUNK_BYTES = 1024 * 1024


class AsyncReadable(Protocol):
    async def read(self, size: int = -1) -> bytes: ...


def excel_to_csv(excel_path: Path, csv_path: Path) -> Path:
    """Convert the first sheet of a workbook to CSV."""
    df = pd.read_excel(excel_path, sheet_name=0, dtype=str, keep_default_na=False)
    df.to_csv(csv_path, index=False)
    logger.info("Converted Excel to CSV", source=excel_path.name, rows=len(df))
    return csv_path


@asynccontextmanager
async def staged_upload(
    filename: str,
    stream: AsyncReadable,
    upload_dir: Optional[str] = None,
    max_bytes: Optional[int] = None,
) -> AsyncIterator[Path]:
    """
    Stage an upload and yield the path of a CSV ready for ingestion.

    Example:
        async with staged_upload(file.filename, file) as csv_path:
            result = await run_import("sales", csv_path, context)
    """
    suffix = Path(filename or "").suffix.lower()
    if suffix not in ALLOWED_EXTENSIONS:
        raise PrecheckFailed(
            f"Unsupported file type: {suffix or filename!r}",
            hint="Upload a .csv, .xlsx or .xls file",
        )

    base = Path(upload_dir or settings.ingestion.upload_dir)
    base.mkdir(parents=True, exist_ok=True)
    max_bytes = max_bytes or settings.ingestion.max_upload_mb * 1024 * 1024
    workdir = Path(tempfile.mkdtemp(prefix="upload-", dir=base))

    try:
        staged = workdir / f"source{suffix}"
        written = 0
        with open(staged, "wb") as f:
            while True:
                chunk = await stream.read(COPY_CHUNK_BYTES)
                if not chunk:
                    break
                written += len(chunk)
                if written > max_bytes:
                    raise PrecheckFailed(
                        f"File exceeds {max_bytes // (1024 * 1024)} MB",
                        hint="Split the file into smaller uploads",
                    )
                f.write(chunk)
        logger.debug("Upload staged", filename=filename, bytes=written)

        if suffix in EXCEL_EXTENSIONS:
            try:
                csv_path = await asyncio.to_thread(excel_to_csv, staged, workdir / "source.csv")
            except Exception as e:
                raise StreamError(f"Could not read workbook {filename}: {e}") from e
        else:
            csv_path = staged

        yield csv_path
    finally:
        shutil.rmtree(workdir, ignore_errors=True)
        logger.debug("Upload staging cleaned", filename=filename)
