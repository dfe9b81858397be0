from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence

from ..errors import InvalidAggregationSpec
from ..models.aggregation import AggregationBucket, GroupBucket, TargetBucket
from ..models.normalized_row import NormalizedRow
from .fields import contains_noise_marker

"""Aggregation engine shared by every report view.

Groups NormalizedRows by one or two canonical dimensions and sums a measure.
Pure functions: inputs are never mutated and nothing is cached between calls,
so several report views may aggregate the same row sequence concurrently.

Grouping rules:
- key = tuple of trimmed dimension values, blank -> UNKNOWN_LABEL
- exact string equality (no case folding)
- default order: sum descending, ties keep group discovery order
"""

__all__ = [
    "UNKNOWN_LABEL",
    "DIMENSIONS",
    "MEASURES",
    "RowFilter",
    "aggregate",
    "aggregate_target",
    "aggregate_top_dealer",
    "sort_buckets",
    "dimension_value",
    "measure_value",
    "usable_rows",
]

UNKNOWN_LABEL = "Unknown"

DIMENSIONS: frozenset[str] = frozenset({
    "party_name",
    "item_name",
    "item_category",
    "item_group",
    "salesman",
    "city",
    "party_group",
    "voucher_type",
    "date",
    "month",
})
MEASURES: frozenset[str] = frozenset({"amount", "qty", "target", "achievement"})

RowFilter = Callable[[NormalizedRow], bool]


def dimension_value(row: NormalizedRow, dimension: str) -> str:
    if dimension == "date":
        value = row.date.isoformat() if row.date else ""
    elif dimension == "month":
        value = row.date.strftime("%Y-%m") if row.date else ""
    else:
        value = getattr(row, dimension)
    value = value.strip()
    return value or UNKNOWN_LABEL


def measure_value(row: NormalizedRow, measure: str) -> float:
    if measure == "achievement":
        # 明示的な Achievement 列がない行は amount を実績とみなす
        return row.achievement if row.achievement is not None else row.amount
    return getattr(row, measure)


def usable_rows(rows: Iterable[NormalizedRow], where: RowFilter | None = None) -> Iterable[NormalizedRow]:
    """Rows that pass the global noise filter and the optional predicate.

    Stored imports are normalized already; the noise check is repeated here
    so totals that reach the engine by another route are still left out.
    """
    for row in rows:
        if row.is_blank() or contains_noise_marker(row.text_values()):
            continue
        if where is not None and not where(row):
            continue
        yield row


def _check_spec(dimensions: Sequence[str], measures: Sequence[str], sort_key: str | None = None) -> None:
    if isinstance(dimensions, str):
        dimensions = [dimensions]
    if not 1 <= len(dimensions) <= 2:
        raise InvalidAggregationSpec(list(dimensions) or ["<none>"], "expected one or two dimensions")
    bad = [d for d in dimensions if d not in DIMENSIONS]
    bad.extend(m for m in measures if m not in MEASURES)
    if bad:
        raise InvalidAggregationSpec(bad)
    if sort_key is not None and sort_key not in ("sum", "count") and sort_key not in dimensions:
        raise InvalidAggregationSpec([sort_key], "unknown sort key")


def aggregate(
    rows: Iterable[NormalizedRow],
    dimensions: Sequence[str] | str,
    measure: str = "amount",
    where: RowFilter | None = None,
    sort_key: str = "sum",
    descending: bool = True,
) -> list[AggregationBucket]:
    """Group rows by ``dimensions`` and sum ``measure`` per group.

    Parameters
    ----------
    rows: normalized rows (not modified)
    dimensions: one or two canonical field names (see DIMENSIONS)
    measure: field to sum (see MEASURES), default ``amount``
    where: optional row predicate applied after the noise filter
    sort_key: ``sum`` (default), ``count`` or one of ``dimensions``
    descending: sort direction

    Raises InvalidAggregationSpec for unknown field names.
    """
    dims = [dimensions] if isinstance(dimensions, str) else list(dimensions)
    _check_spec(dims, [measure], sort_key)

    buckets: dict[tuple[str, ...], AggregationBucket] = {}
    for row in usable_rows(rows, where):
        key = tuple(dimension_value(row, d) for d in dims)
        bucket = buckets.get(key)
        if bucket is None:
            bucket = AggregationBucket(dimension_values=dict(zip(dims, key)))
            buckets[key] = bucket
        bucket.add(measure_value(row, measure))
    return sort_buckets(list(buckets.values()), sort_key, descending)


def aggregate_target(
    rows: Iterable[NormalizedRow],
    dimension: str = "salesman",
    where: RowFilter | None = None,
) -> list[TargetBucket]:
    """Target vs achievement per group, sorted by achievement (descending).

    target = Σtarget, achievement = Σ(achievement, or amount when absent),
    monthly_sales = Σamount. ``achievement_percent`` is None when target is 0.
    """
    _check_spec([dimension], ["target", "achievement"])
    buckets: dict[str, TargetBucket] = {}
    for row in usable_rows(rows, where):
        key = dimension_value(row, dimension)
        bucket = buckets.get(key)
        if bucket is None:
            bucket = TargetBucket(dimension_values={dimension: key})
            buckets[key] = bucket
        bucket.target += row.target
        bucket.achievement += measure_value(row, "achievement")
        bucket.monthly_sales += row.amount
        bucket.count += 1
    return sorted(buckets.values(), key=lambda b: b.achievement, reverse=True)


def aggregate_top_dealer(
    rows: Iterable[NormalizedRow],
    group_dimension: str = "party_group",
    dealer_dimension: str = "party_name",
    measure: str = "amount",
    where: RowFilter | None = None,
) -> list[GroupBucket]:
    """Per-group totals with a nested dealer tally (``top_dealer`` per group)."""
    _check_spec([group_dimension, dealer_dimension], [measure])
    buckets: dict[str, GroupBucket] = {}
    for row in usable_rows(rows, where):
        key = dimension_value(row, group_dimension)
        dealer = dimension_value(row, dealer_dimension)
        value = measure_value(row, measure)
        bucket = buckets.get(key)
        if bucket is None:
            bucket = GroupBucket(dimension_values={group_dimension: key})
            buckets[key] = bucket
        bucket.sum += value
        bucket.count += 1
        bucket.dealer_totals[dealer] = bucket.dealer_totals.get(dealer, 0.0) + value
    return sorted(buckets.values(), key=lambda b: b.sum, reverse=True)


def sort_buckets(
    buckets: Sequence[AggregationBucket],
    sort_key: str = "sum",
    descending: bool = True,
) -> list[AggregationBucket]:
    """Stable re-sort of an aggregation result (new list, buckets untouched).

    ``sort_key`` is ``sum``, ``count`` or a dimension name ("sort by company").
    """
    if sort_key in ("sum", "count"):
        return sorted(buckets, key=lambda b: getattr(b, sort_key), reverse=descending)
    if buckets and sort_key not in buckets[0].dimension_values:
        raise InvalidAggregationSpec([sort_key], "unknown sort key")
    return sorted(buckets, key=lambda b: b.dimension_values[sort_key], reverse=descending)
