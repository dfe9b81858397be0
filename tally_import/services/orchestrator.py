from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime, tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo

from ..errors import DecodeError, PartialRecordSkipped
from ..excel.reader import SPREADSHEET_EXTENSIONS, decode_workbook
from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import DEFAULT_EXTENSIONS, PipelineConfig
from ..models.error_record import ErrorRecord
from ..models.import_record import ImportResult, ImportStatus
from ..models.processing_result import FileStat, ProcessingResult
from ..storage.import_store import ImportStore, ImportStoreError
from ..xml.vouchers import decode_vouchers
from .normalizer import NormalizationResult, normalize_grid, normalize_records
from .progress import ProgressTracker

"""Import orchestration: bytes / file / directory -> stored import documents.

Each file is decoded, normalized and saved as one ImportDocument. A file
that cannot be decoded becomes a FAILED ImportResult plus an error log
record, and processing continues with the next file. Records skipped inside
a file are logged individually and counted; the file itself still succeeds.
"""

__all__ = [
    "ProcessingError",
    "XML_EXTENSIONS",
    "detect_source",
    "scan_import_files",
    "import_bytes",
    "import_file",
    "process_directory",
]

logger = logging.getLogger(__name__)

XML_EXTENSIONS: frozenset[str] = frozenset({".xml"})


class ProcessingError(Exception):
    """Fatal error that stops a directory run (e.g. missing directory)."""


def detect_source(file_name: str) -> str | None:
    """'spreadsheet', 'xml' or None for an unsupported extension."""
    suffix = Path(file_name).suffix.lower()
    if suffix in SPREADSHEET_EXTENSIONS:
        return "spreadsheet"
    if suffix in XML_EXTENSIONS:
        return "xml"
    return None


def scan_import_files(directory: Path, extensions: Sequence[str] = DEFAULT_EXTENSIONS) -> list[Path]:
    """Supported files directly under ``directory`` (non-recursive, name order).

    Raises ProcessingError if the directory is missing or unreadable.
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")
    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")
    wanted = {e.lower() for e in extensions}
    try:
        files = [
            p for p in directory.iterdir()
            if p.is_file() and p.suffix.lower() in wanted and not p.name.startswith("~$")  # Excel lock file
        ]
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e
    return sorted(files, key=lambda p: p.name)


def _record_skips(error_log: ErrorLogBuffer | None, file_name: str, skips: Sequence[PartialRecordSkipped]) -> None:
    if error_log is None:
        return
    for skip in skips:
        error_log.append(ErrorRecord.create(file_name, skip.row, "PARTIAL_RECORD_SKIPPED", skip.reason))


def _failed(
    file_name: str,
    error_type: str,
    message: str,
    error_log: ErrorLogBuffer | None,
    started: datetime,
) -> ImportResult:
    logger.error("file=%s %s", file_name, message)
    if error_log is not None:
        error_log.append(ErrorRecord.create(file_name, -1, error_type, message))
    return ImportResult(
        file_name=file_name,
        status=ImportStatus.FAILED,
        error=message,
        elapsed_seconds=(datetime.now(UTC) - started).total_seconds(),
    )


def import_bytes(
    data: bytes,
    original_name: str,
    store: ImportStore,
    error_log: ErrorLogBuffer | None = None,
    aliases: Mapping[str, Sequence[str]] | None = None,
    tz: tzinfo = UTC,
) -> ImportResult:
    """Decode, normalize and persist one uploaded file.

    Parameters
    ----------
    data: raw file bytes
    original_name: uploaded file name; its extension selects the decoder
    store: destination ImportStore
    error_log: optional buffer receiving file-level and record-level errors
    aliases: extra header aliases per canonical field
    tz: timezone for the upload timestamp

    Never raises for bad input: decode failures return a FAILED result with
    0 rows. ImportStoreError (the store itself is unusable) propagates.
    """
    started = datetime.now(UTC)
    source = detect_source(original_name)
    if source is None:
        return _failed(
            original_name, "UNSUPPORTED_FORMAT",
            f"unsupported file type: {Path(original_name).suffix or '<none>'}",
            error_log, started,
        )

    try:
        if source == "xml":
            batch = decode_vouchers(data, original_name)
            result = normalize_records(batch.rows, aliases=aliases, file_name=original_name)
            # デコード段階のスキップも同じ件数に含める
            result.skipped_rows += batch.skipped
            result.errors[:0] = batch.errors
        else:
            grid = decode_workbook(data, original_name)
            result = normalize_grid(grid, aliases=aliases, file_name=original_name)
    except DecodeError as e:
        return _failed(original_name, "DECODE_ERROR", str(e), error_log, started)

    _record_skips(error_log, original_name, result.errors)
    meta = store.save(
        result.rows,
        original_name,
        source=source,
        skipped_rows=result.skipped_rows,
        uploaded_at=datetime.now(tz),
    )
    logger.info(
        "imported file=%s id=%s rows=%d skipped=%d noise=%d",
        original_name, meta.import_id, meta.row_count, result.skipped_rows, result.noise_rows,
    )
    _log_unmapped(original_name, result)
    return ImportResult(
        file_name=original_name,
        status=ImportStatus.SUCCESS,
        row_count=meta.row_count,
        skipped_rows=result.skipped_rows,
        noise_rows=result.noise_rows,
        import_id=meta.import_id,
        elapsed_seconds=(datetime.now(UTC) - started).total_seconds(),
    )


def _log_unmapped(file_name: str, result: NormalizationResult) -> None:
    missing = [name for name in ("party_name", "amount") if not result.header_map.get(name)]
    if missing and any(result.header_map.values()):
        logger.warning("file=%s no column for %s", file_name, ", ".join(missing))


def import_file(
    path: Path,
    store: ImportStore,
    error_log: ErrorLogBuffer | None = None,
    aliases: Mapping[str, Sequence[str]] | None = None,
    tz: tzinfo = UTC,
) -> ImportResult:
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        return _failed(path.name, "READ_ERROR", f"cannot read file: {e}", error_log, datetime.now(UTC))
    return import_bytes(data, path.name, store, error_log=error_log, aliases=aliases, tz=tz)


def _zone(name: str) -> tzinfo:
    return UTC if name.upper() == "UTC" else ZoneInfo(name)


def process_directory(config: PipelineConfig, store: ImportStore | None = None) -> ProcessingResult:
    """Import every supported file of the configured source directory.

    1. Scan (non-recursive) for the configured extensions
    2. Import each file into its own ImportDocument
    3. Flush the error log once at the end
    4. Return the aggregated ProcessingResult

    Raises ProcessingError for a missing source directory or an unusable store.
    """
    start_time = datetime.now(UTC)
    store = store or ImportStore(config.store_directory)
    error_log = ErrorLogBuffer(config.log_directory)
    tz = _zone(config.timezone)

    file_paths = scan_import_files(Path(config.source_directory), config.file_extensions)

    file_stats: list[FileStat] = []
    success_count = 0
    failed_count = 0
    total_rows = 0
    total_skipped = 0

    with ProgressTracker(len(file_paths), description="Importing files") as progress:
        for file_path in file_paths:
            progress.start_file(file_path)
            try:
                result = import_file(file_path, store, error_log, config.field_aliases, tz)
            except ImportStoreError as e:
                error_log.flush()
                raise ProcessingError(f"import store failed: {e}") from e

            if result.status is ImportStatus.SUCCESS:
                success_count += 1
                total_rows += result.row_count
            else:
                failed_count += 1
            total_skipped += result.skipped_rows

            progress.set_postfix(success=success_count, failed=failed_count, rows=total_rows)
            progress.finish_file()
            file_stats.append(
                FileStat(
                    file_name=result.file_name,
                    status=result.status.value,
                    row_count=result.row_count,
                    skipped_rows=result.skipped_rows,
                    elapsed_seconds=result.elapsed_seconds,
                )
            )

    log_path = error_log.flush()
    if log_path is not None:
        logger.info("error log written: %s", log_path)

    end_time = datetime.now(UTC)
    elapsed_seconds = (end_time - start_time).total_seconds()
    throughput_rps = total_rows / elapsed_seconds if elapsed_seconds > 0 else 0.0

    return ProcessingResult(
        success_files=success_count,
        failed_files=failed_count,
        total_rows=total_rows,
        skipped_rows=total_skipped,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=elapsed_seconds,
        throughput_rows_per_sec=throughput_rps,
        file_stats=file_stats,
    )
