from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from tally_import.errors import DecodeError
from tally_import.excel.reader import decode_workbook, normalize_sheet, read_workbook_file


def make_workbook(directory: Path, name: str, rows: list[list[object]]) -> Path:
    path = directory / name
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame(rows).to_excel(writer, sheet_name="Sheet1", header=False, index=False)
    return path


def test_decode_and_normalize_xlsx(temp_workdir: Path, sales_rows):
    path = make_workbook(temp_workdir, "sales.xlsx", sales_rows)
    grid = read_workbook_file(path)
    assert len(grid) == 6
    sheet = normalize_sheet(grid)
    assert sheet.columns[:3] == ["Date", "Party Name", "Item Name"]
    # Grand Total 行は末尾なので落ちる
    assert len(sheet.rows) == 3
    assert sheet.trailing_total_dropped is True
    assert sheet.rows[0]["Party Name"] == "Sharma Traders"
    assert sheet.rows[0]["Qty"] == 10


def test_short_grid_is_empty(temp_workdir: Path):
    path = make_workbook(temp_workdir, "short.xlsx", [["Title"], ["Party Name", "Amount"]])
    assert read_workbook_file(path) == []
    assert normalize_sheet([["Title"], ["Party Name"]]).columns == []


def test_header_row_is_second_row():
    grid = [
        ["Report title", ""],
        ["Party", "Amount"],
        ["A", 1],
        ["B", 2],
    ]
    sheet = normalize_sheet(grid)
    assert sheet.columns == ["Party", "Amount"]
    assert [r["Party"] for r in sheet.rows] == ["A", "B"]
    assert sheet.trailing_total_dropped is False


def test_only_last_total_row_is_dropped():
    grid = [
        ["Title"],
        ["Party", "Amount"],
        ["Sub Total", 5],
        ["B", 2],
        ["Total", 7],
    ]
    sheet = normalize_sheet(grid)
    # 途中の Sub Total はここでは残す (ノイズ除去は正規化側)
    assert [r["Party"] for r in sheet.rows] == ["Sub Total", "B"]


def test_empty_and_duplicate_headers_get_positional_names():
    grid = [
        ["Title"],
        ["Party", "", "Party"],
        ["A", "x", "y"],
    ]
    sheet = normalize_sheet(grid)
    assert sheet.columns == ["Party", "COL_2", "COL_3"]
    assert sheet.rows[0] == {"Party": "A", "COL_2": "x", "COL_3": "y"}


def test_short_rows_are_padded():
    sheet = normalize_sheet([["Title"], ["A", "B", "C"], ["1"]])
    assert sheet.rows == [{"A": "1", "B": "", "C": ""}]


def test_decode_csv_with_ragged_rows():
    data = "Sales Register\nParty Name,Amount,Qty\nSharma Traders,\"1,200\",3\n".encode("utf-8")
    grid = decode_workbook(data, "sales.csv")
    assert grid[0][0] == "Sales Register"
    assert grid[1] == ["Party Name", "Amount", "Qty"]
    assert grid[2] == ["Sharma Traders", "1,200", "3"]


def test_decode_csv_latin1_fallback():
    data = "Title\nParty Name,Amount\nCaf\xe9 Stores,10\n".encode("latin-1")
    grid = decode_workbook(data, "sales.CSV")
    assert grid[2][0] == "Café Stores"


def test_corrupt_workbook_raises_decode_error():
    with pytest.raises(DecodeError) as ei:
        decode_workbook(b"this is not a workbook", "broken.xlsx")
    assert ei.value.file_name == "broken.xlsx"


def test_empty_workbook_bytes_raise_decode_error():
    with pytest.raises(DecodeError):
        decode_workbook(b"", "empty.xlsx")


def test_missing_file_raises_decode_error(temp_workdir: Path):
    with pytest.raises(DecodeError):
        read_workbook_file(temp_workdir / "nope.xlsx")
