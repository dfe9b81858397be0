"""Tally export import & report aggregation pipeline.

Spreadsheet (xls/xlsx/csv) and XML voucher exports are decoded, normalized
into a fixed row schema, stored as JSON import documents and summarised by
a single aggregation engine for every report view.
"""

__version__ = "0.3.0"
