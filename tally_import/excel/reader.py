from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pandas as pd

from ..errors import DecodeError

"""Spreadsheet decoding and header/data split.

Tally report exports share one layout: row 1 is a report title, row 2 holds
the real column headers and data starts on row 3. The decoder returns the
first sheet as a raw cell grid (blank cells as ""), and normalize_sheet()
applies the row-2 header to the remaining rows.
"""

__all__ = [
    "RawGrid",
    "SheetData",
    "SPREADSHEET_EXTENSIONS",
    "MIN_GRID_ROWS",
    "decode_workbook",
    "read_workbook_file",
    "normalize_sheet",
]

RawGrid = list[list[Any]]

SPREADSHEET_EXTENSIONS: frozenset[str] = frozenset({".xls", ".xlsx", ".csv"})
MIN_GRID_ROWS = 3  # title + header + at least one data row
HEADER_ROW_INDEX = 1
DATA_START_INDEX = 2


@dataclass
class SheetData:
    columns: list[str] = field(default_factory=list)
    rows: list[dict[str, Any]] = field(default_factory=list)  # 列名→生値
    trailing_total_dropped: bool = False


def decode_workbook(data: bytes, file_name: str) -> RawGrid:
    """Decode the first sheet of a workbook (or a CSV file) into a cell grid.

    Parameters
    ----------
    data: raw file bytes
    file_name: original name; its extension selects CSV vs Excel decoding

    Returns an empty grid when the sheet has fewer than MIN_GRID_ROWS rows.
    Raises DecodeError for input pandas cannot read.
    """
    suffix = Path(file_name).suffix.lower()
    if suffix == ".csv":
        grid = _decode_csv(data, file_name)
    else:
        grid = _decode_excel(data, file_name)
    if len(grid) < MIN_GRID_ROWS:
        return []
    return grid


def read_workbook_file(path: Path) -> RawGrid:
    try:
        data = path.read_bytes()
    except OSError as e:
        raise DecodeError(path.name, str(e)) from e
    return decode_workbook(data, path.name)


def _decode_excel(data: bytes, file_name: str) -> RawGrid:
    if not data:
        raise DecodeError(file_name, "empty file")
    try:
        # ヘッダなしで生読み (2行目ヘッダは normalize_sheet で適用)
        df = pd.read_excel(
            io.BytesIO(data),
            sheet_name=0,
            header=None,
            dtype=object,
            keep_default_na=False,
        )
    except Exception as e:  # pandas / openpyxl / xlrd raise many types
        raise DecodeError(file_name, str(e)) from e
    return _frame_to_grid(df)


def _decode_csv(data: bytes, file_name: str) -> RawGrid:
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = data.decode("latin-1")
    try:
        # 行ごとに列数が異なる (タイトル行は1列) ため最大列数を先に求める
        width = max((len(r) for r in csv.reader(io.StringIO(text))), default=0)
        if width == 0:
            return []
        df = pd.read_csv(
            io.StringIO(text),
            header=None,
            names=list(range(width)),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=False,
        )
    except (csv.Error, pd.errors.ParserError, ValueError) as e:
        raise DecodeError(file_name, str(e)) from e
    return _frame_to_grid(df)


def _frame_to_grid(df: pd.DataFrame) -> RawGrid:
    grid: RawGrid = []
    for raw in df.itertuples(index=False, name=None):
        grid.append(["" if _is_missing(v) else v for v in raw])
    return grid


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def normalize_sheet(grid: RawGrid) -> SheetData:
    """Apply the row-2 header to the data rows of a decoded grid.

    Steps:
    1. Grids with fewer than 3 rows yield an empty SheetData
    2. Header cells are trimmed; empty or repeated headers become COL_<n>
    3. Rows from index 2 become dicts (short rows padded with "")
    4. A last row mentioning "total" in any cell is dropped
    """
    if len(grid) < MIN_GRID_ROWS:
        return SheetData()

    columns: list[str] = []
    for i, cell in enumerate(grid[HEADER_ROW_INDEX]):
        name = "" if _is_missing(cell) else str(cell).strip()
        if not name or name in columns:
            name = f"COL_{i + 1}"
        columns.append(name)

    data_rows = grid[DATA_START_INDEX:]
    dropped = False
    if data_rows and any("total" in str(c).lower() for c in data_rows[-1]):
        data_rows = data_rows[:-1]
        dropped = True

    rows: list[dict[str, Any]] = []
    for raw in data_rows:
        row_dict: dict[str, Any] = {}
        for i, col in enumerate(columns):
            row_dict[col] = raw[i] if i < len(raw) else ""
        rows.append(row_dict)
    return SheetData(columns=columns, rows=rows, trailing_total_dropped=dropped)
