from __future__ import annotations

from datetime import date

import pytest

from tally_import.errors import InvalidAggregationSpec
from tally_import.models.normalized_row import NormalizedRow
from tally_import.services.aggregation import (
    UNKNOWN_LABEL,
    aggregate,
    aggregate_target,
    aggregate_top_dealer,
    sort_buckets,
)


def _row(**kwargs) -> NormalizedRow:
    return NormalizedRow(**kwargs)


def test_two_dimension_sum_count_and_order():
    rows = [
        _row(party_name="A", item_category="X", amount=100),
        _row(party_name="B", item_category="Y", amount=30),
        _row(party_name="A", item_category="X", amount=50),
    ]
    buckets = aggregate(rows, ["party_name", "item_category"], "amount")
    assert [(b.dimension_values, b.sum, b.count) for b in buckets] == [
        ({"party_name": "A", "item_category": "X"}, 150.0, 2),
        ({"party_name": "B", "item_category": "Y"}, 30.0, 1),
    ]


def test_ties_keep_discovery_order():
    rows = [
        _row(city="Pune", amount=10),
        _row(city="Nashik", amount=10),
        _row(city="Agra", amount=10),
    ]
    assert [b.dimension_values["city"] for b in aggregate(rows, "city")] == ["Pune", "Nashik", "Agra"]


def test_blank_dimension_groups_under_unknown():
    rows = [_row(party_name="A", city="", amount=5), _row(party_name="B", city="  ", amount=7)]
    buckets = aggregate(rows, "city")
    assert len(buckets) == 1
    assert buckets[0].dimension_values == {"city": UNKNOWN_LABEL}
    assert buckets[0].sum == 12.0


def test_grouping_is_case_sensitive():
    rows = [_row(party_name="acme", amount=1), _row(party_name="Acme", amount=1)]
    assert len(aggregate(rows, "party_name")) == 2


def test_noise_rows_never_reach_buckets():
    rows = [
        _row(party_name="A", amount=100),
        _row(party_name="Grand Total", amount=100),
        _row(),
    ]
    buckets = aggregate(rows, "party_name")
    assert [b.dimension_values["party_name"] for b in buckets] == ["A"]


def test_where_filter_and_measure():
    rows = [
        _row(party_name="A", item_category="X", qty=2, amount=100),
        _row(party_name="A", item_category="Y", qty=3, amount=100),
    ]
    buckets = aggregate(rows, "party_name", "qty", where=lambda r: r.item_category == "Y")
    assert buckets[0].sum == 3.0
    assert buckets[0].count == 1


def test_month_dimension():
    rows = [
        _row(party_name="A", date=date(2024, 4, 1), amount=1),
        _row(party_name="A", date=date(2024, 4, 30), amount=2),
        _row(party_name="A", date=date(2024, 5, 1), amount=4),
    ]
    buckets = aggregate(rows, "month")
    assert {b.dimension_values["month"]: b.sum for b in buckets} == {"2024-05": 4.0, "2024-04": 3.0}


def test_input_rows_are_not_mutated():
    rows = [_row(party_name="A", amount=1)]
    before = list(rows)
    aggregate(rows, "party_name")
    aggregate_target(rows)
    assert rows == before


@pytest.mark.parametrize(
    "dimensions, measure",
    [
        (["dealer"], "amount"),
        (["party_name"], "profit"),
        ([], "amount"),
        (["party_name", "city", "salesman"], "amount"),
    ],
)
def test_invalid_spec_raises(dimensions, measure):
    with pytest.raises(InvalidAggregationSpec):
        aggregate([], dimensions, measure)


def test_invalid_spec_names_the_field():
    with pytest.raises(InvalidAggregationSpec) as ei:
        aggregate([], ["party_name", "colour"])
    assert ei.value.fields == ["colour"]
    assert "colour" in str(ei.value)


def test_target_zero_gives_no_percent():
    rows = [
        _row(salesman="Ravi", target=0, amount=500),
        _row(salesman="Meena", target=1000, achievement=800, amount=900),
    ]
    buckets = aggregate_target(rows)
    by_name = {b.dimension_values["salesman"]: b for b in buckets}
    assert by_name["Ravi"].achievement_percent is None
    assert by_name["Ravi"].achievement == 500.0  # Achievement 列なし -> amount
    assert by_name["Meena"].achievement_percent == pytest.approx(80.0)
    assert by_name["Meena"].monthly_sales == 900.0
    # 実績の降順
    assert [b.dimension_values["salesman"] for b in buckets] == ["Meena", "Ravi"]


def test_top_dealer_per_group():
    rows = [
        _row(party_group="Retail", party_name="A", amount=100),
        _row(party_group="Retail", party_name="B", amount=300),
        _row(party_group="Retail", party_name="A", amount=250),
        _row(party_group="Wholesale", party_name="C", amount=50),
        _row(party_group="Wholesale", party_name="D", amount=50),
    ]
    buckets = aggregate_top_dealer(rows)
    assert [(b.dimension_values["party_group"], b.sum, b.top_dealer) for b in buckets] == [
        ("Retail", 650.0, "A"),
        ("Wholesale", 100.0, "C"),
    ]


def test_sort_by_dimension_is_stable_and_returns_new_list():
    rows = [
        _row(party_name="B", item_category="X", amount=1),
        _row(party_name="A", item_category="X", amount=5),
        _row(party_name="C", item_category="W", amount=3),
    ]
    buckets = aggregate(rows, ["party_name", "item_category"])
    by_company = sort_buckets(buckets, "item_category", descending=False)
    assert [b.dimension_values["party_name"] for b in by_company] == ["C", "A", "B"]
    assert [b.dimension_values["party_name"] for b in buckets] == ["A", "C", "B"]
    with pytest.raises(InvalidAggregationSpec):
        sort_buckets(buckets, "city")
