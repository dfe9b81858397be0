from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from ..models.processing_result import ProcessingResult

"""SUMMARY line rendering and report presentation helpers.

The SUMMARY line format is fixed (contract tests match it with a regex):

    SUMMARY files={n}/{n} success={s} failed={f} rows={rows}
    skipped_rows={skipped} elapsed_sec={elapsed} throughput_rps={rps}

format_amount / format_percent are the only place report numbers become
display strings; projection keeps raw values.
"""

__all__ = [
    "render_summary_line",
    "format_amount",
    "format_percent",
    "render_report_table",
    "AMOUNT_COLUMNS",
]

CURRENCY = "₹"
AMOUNT_COLUMNS: frozenset[str] = frozenset({"sales", "target", "achievement", "monthly_sales"})
PERCENT_COLUMNS: frozenset[str] = frozenset({"achievement_percent"})


def _format_number(value: float) -> str:
    # 整数はそのまま、極小値は指数表記を避ける
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if abs(value) < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return str(value)


def render_summary_line(total_files: int, result: ProcessingResult) -> str:
    """Render the SUMMARY line for one directory run.

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2024, 4, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2024, 4, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> result = ProcessingResult(
        ...     success_files=1, failed_files=0, total_rows=1000,
        ...     skipped_rows=3, start_time=start, end_time=end,
        ...     elapsed_seconds=2.0, throughput_rows_per_sec=500.0
        ... )
        >>> render_summary_line(1, result)
        'SUMMARY files=1/1 success=1 failed=0 rows=1000 skipped_rows=3 elapsed_sec=2 throughput_rps=500'
    """
    return (
        f"SUMMARY files={total_files}/{total_files} "
        f"success={result.success_files} "
        f"failed={result.failed_files} "
        f"rows={result.total_rows} "
        f"skipped_rows={result.skipped_rows} "
        f"elapsed_sec={_format_number(result.elapsed_seconds)} "
        f"throughput_rps={_format_number(result.throughput_rows_per_sec)}"
    )


def format_amount(value: float | None) -> str:
    """Rupee amount with Indian digit grouping and no decimals.

    >>> format_amount(1234567.4)
    '₹12,34,567'
    >>> format_amount(-950)
    '-₹950'
    """
    if value is None:
        return "-"
    rounded = int(round(value))
    digits = str(abs(rounded))
    if len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        digits = ",".join(groups + [tail])
    sign = "-" if rounded < 0 else ""
    return f"{sign}{CURRENCY}{digits}"


def format_percent(value: float | None) -> str:
    """One-decimal percentage; None (no target) renders as "-"."""
    if value is None:
        return "-"
    return f"{value:.1f}%"


def _cell(column: str, value: Any) -> str:
    if column in PERCENT_COLUMNS:
        return format_percent(value)
    if column in AMOUNT_COLUMNS:
        return format_amount(value)
    return "" if value is None else str(value)


def render_report_table(rows: Sequence[dict[str, Any]]) -> str:
    """Plain-text table of projected report rows (column order of the first row)."""
    if not rows:
        return "(no rows)"
    columns = list(rows[0].keys())
    cells = [[_cell(c, row.get(c)) for c in columns] for row in rows]
    widths = [max(len(c), *(len(r[i]) for r in cells)) for i, c in enumerate(columns)]

    def line(values: Sequence[str]) -> str:
        parts = []
        for i, v in enumerate(values):
            # 金額・率は右寄せ
            if columns[i] in AMOUNT_COLUMNS or columns[i] in PERCENT_COLUMNS:
                parts.append(v.rjust(widths[i]))
            else:
                parts.append(v.ljust(widths[i]))
        return "  ".join(parts).rstrip()

    out = [line(columns), "  ".join("-" * w for w in widths)]
    out.extend(line(r) for r in cells)
    return "\n".join(out)
