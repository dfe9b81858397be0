from __future__ import annotations

from datetime import date

from ..models.normalized_row import NormalizedRow
from .aggregation import RowFilter

"""Row predicate builders for report filters (category, month, date range, search)."""


def by_category(category: str | None) -> RowFilter:
    """Exact item_category match after trimming; None / "" matches every row."""
    wanted = (category or "").strip()

    def predicate(row: NormalizedRow) -> bool:
        return not wanted or row.item_category.strip() == wanted

    return predicate


def by_month(month: str | None) -> RowFilter:
    """Match rows dated in ``month`` (``YYYY-MM``); rows without a date never match."""
    wanted = (month or "").strip()

    def predicate(row: NormalizedRow) -> bool:
        if not wanted:
            return True
        return row.date is not None and row.date.strftime("%Y-%m") == wanted

    return predicate


def by_date_range(start: date | None = None, end: date | None = None) -> RowFilter:
    """Inclusive range; undated rows are kept (they cannot be placed outside it)."""

    def predicate(row: NormalizedRow) -> bool:
        if row.date is None:
            return True
        if start is not None and row.date < start:
            return False
        return end is None or row.date <= end

    return predicate


def by_search(query: str | None) -> RowFilter:
    """Case-insensitive substring search over every text value of the row."""
    needle = (query or "").strip().lower()

    def predicate(row: NormalizedRow) -> bool:
        if not needle:
            return True
        return any(needle in v.lower() for v in row.text_values())

    return predicate


def all_of(*predicates: RowFilter | None) -> RowFilter:
    active = [p for p in predicates if p is not None]

    def predicate(row: NormalizedRow) -> bool:
        return all(p(row) for p in active)

    return predicate
