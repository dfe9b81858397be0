from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""Directory run results: per-file stats and the aggregated SUMMARY metrics."""


@dataclass(frozen=True)
class FileStat:
    """Per-file statistics collected by the directory run."""
    file_name: str
    status: str  # success/failed
    row_count: int
    skipped_rows: int
    elapsed_seconds: float


@dataclass(frozen=True)
class ProcessingResult:
    """Aggregated results for one directory import run (SUMMARY line source)."""
    success_files: int
    failed_files: int
    total_rows: int
    skipped_rows: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    throughput_rows_per_sec: float  # total_rows / elapsed
    file_stats: list[FileStat] | None = None
