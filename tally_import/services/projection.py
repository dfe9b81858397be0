from __future__ import annotations

from collections.abc import Iterable, Sequence
from enum import Enum
from typing import Any

from ..errors import InvalidAggregationSpec
from ..models.aggregation import AggregationBucket, GroupBucket, TargetBucket
from ..models.normalized_row import NormalizedRow
from .aggregation import (
    UNKNOWN_LABEL,
    RowFilter,
    aggregate,
    aggregate_target,
    aggregate_top_dealer,
    usable_rows,
)

"""Report projection: aggregation results -> the column set of one report view.

Values stay raw numbers here (achievement_percent may be None); currency and
percent formatting happen at the presentation boundary (services.summary).
Unknown shapes fall back to the generic raw row layout instead of failing.
"""

__all__ = [
    "ReportShape",
    "ReportRow",
    "REPORT_DIMENSIONS",
    "resolve_shape",
    "project",
    "build_report",
]

ReportRow = dict[str, Any]


class ReportShape(Enum):
    DEALER = "dealer"
    PRODUCT = "product"
    AREA = "area"
    SALESMAN = "salesman"
    ITEM_GROUP = "item_group"
    TARGET = "target"
    GROUP = "group"
    RAW = "raw"


# shape -> (dimension, output column) pairs, in output order
REPORT_DIMENSIONS: dict[ReportShape, tuple[tuple[str, str], ...]] = {
    ReportShape.DEALER: (("party_name", "dealer"), ("item_category", "company")),
    ReportShape.PRODUCT: (("item_category", "company"), ("item_name", "product")),
    ReportShape.AREA: (("city", "area"), ("item_category", "company")),
    ReportShape.SALESMAN: (("salesman", "salesman"), ("item_category", "company")),
    ReportShape.ITEM_GROUP: (("item_group", "item_group"), ("item_category", "company")),
}


def resolve_shape(shape: ReportShape | str) -> ReportShape:
    """Map a shape name to ReportShape; unknown names resolve to RAW."""
    if isinstance(shape, ReportShape):
        return shape
    try:
        return ReportShape(str(shape).strip().lower())
    except ValueError:
        return ReportShape.RAW


def project(items: Sequence[Any], shape: ReportShape | str) -> list[ReportRow]:
    """Shape aggregation buckets (or raw rows for RAW) into report rows.

    Each shape takes the item type its aggregation produces: TargetBucket for
    TARGET, GroupBucket for GROUP, AggregationBucket over the shape's own
    dimensions for the dimension shapes, NormalizedRow or AggregationBucket
    for RAW. Anything else raises InvalidAggregationSpec.
    """
    resolved = resolve_shape(shape)
    _check_items(items, resolved)
    if resolved is ReportShape.TARGET:
        return [_target_row(b) for b in items]
    if resolved is ReportShape.GROUP:
        return [_group_row(b) for b in items]
    if resolved is ReportShape.RAW:
        return [_raw_row(item) for item in items]
    columns = REPORT_DIMENSIONS[resolved]
    out: list[ReportRow] = []
    for bucket in items:
        row: ReportRow = {column: bucket.dimension_values[dim] for dim, column in columns}
        row["sales"] = bucket.sum
        out.append(row)
    return out


def build_report(
    rows: Iterable[NormalizedRow],
    shape: ReportShape | str,
    where: RowFilter | None = None,
) -> list[ReportRow]:
    """Run the aggregation a report shape needs and project the result."""
    resolved = resolve_shape(shape)
    if resolved is ReportShape.TARGET:
        return project(aggregate_target(rows, "salesman", where=where), resolved)
    if resolved is ReportShape.GROUP:
        return project(aggregate_top_dealer(rows, "party_group", "party_name", where=where), resolved)
    if resolved is ReportShape.RAW:
        return project(list(usable_rows(rows, where)), resolved)
    dims = [dim for dim, _ in REPORT_DIMENSIONS[resolved]]
    return project(aggregate(rows, dims, "amount", where=where), resolved)


def _target_row(bucket: TargetBucket) -> ReportRow:
    return {
        "asm": next(iter(bucket.dimension_values.values()), UNKNOWN_LABEL),
        "target": bucket.target,
        "achievement": bucket.achievement,
        "monthly_sales": bucket.monthly_sales,
        "achievement_percent": bucket.achievement_percent,
    }


def _group_row(bucket: GroupBucket) -> ReportRow:
    return {
        "group": next(iter(bucket.dimension_values.values()), UNKNOWN_LABEL),
        "top_dealer": bucket.top_dealer,
        "sales": bucket.sum,
    }


def _raw_row(item: NormalizedRow | AggregationBucket) -> ReportRow:
    if isinstance(item, AggregationBucket):
        row: ReportRow = dict(item.dimension_values)
        row["sales"] = item.sum
        return row
    return {
        "party": item.party_name or UNKNOWN_LABEL,
        "product": item.item_name or UNKNOWN_LABEL,
        "salesman": item.salesman or UNKNOWN_LABEL,
        "area": item.city or UNKNOWN_LABEL,
        "sales": item.amount,
        "date": item.date.isoformat() if item.date else "",
    }


_SHAPE_ITEM_TYPES: dict[ReportShape, tuple[type, ...]] = {
    ReportShape.TARGET: (TargetBucket,),
    ReportShape.GROUP: (GroupBucket,),
    ReportShape.RAW: (NormalizedRow, AggregationBucket),
}


def _check_items(items: Sequence[Any], shape: ReportShape) -> None:
    expected = _SHAPE_ITEM_TYPES.get(shape, (AggregationBucket,))
    wrong = next((item for item in items if not isinstance(item, expected)), None)
    if wrong is not None:
        names = " or ".join(t.__name__ for t in expected)
        raise InvalidAggregationSpec(
            [shape.value], f"{shape.value} shape needs {names} items, got {type(wrong).__name__}"
        )
    if shape not in REPORT_DIMENSIONS:
        return
    # 別の次元で集計したバケットを Unknown 埋めで出さない
    dims = [dim for dim, _ in REPORT_DIMENSIONS[shape]]
    for bucket in items:
        missing = [d for d in dims if d not in bucket.dimension_values]
        if missing:
            raise InvalidAggregationSpec(missing, f"{shape.value} shape needs buckets grouped by {', '.join(dims)}")
