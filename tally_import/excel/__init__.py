"""Spreadsheet decoding (first sheet, row 2 header)."""
