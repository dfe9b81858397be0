from __future__ import annotations

from datetime import UTC, date, datetime

from tally_import.models import GroupBucket, ImportMeta, NormalizedRow, TargetBucket
from tally_import.models.normalized_row import CAMEL_KEYS


def test_normalized_row_dict_round_trip():
    row = NormalizedRow(date=date(2024, 4, 1), party_name="A", item_group="Fasteners",
                        amount=10.5, qty=2, extra={"Narration": "x"})
    data = row.to_dict()
    assert set(data) == set(CAMEL_KEYS.values())
    assert data["itemGroup"] == "Fasteners"
    assert NormalizedRow.from_dict(data) == row


def test_normalized_row_blank_and_text_values():
    assert NormalizedRow().is_blank()
    assert not NormalizedRow(amount=5).is_blank()
    assert "A" in NormalizedRow(party_name="A").text_values()


def test_target_bucket_percent():
    assert TargetBucket({"salesman": "R"}, target=0, achievement=10).achievement_percent is None
    assert TargetBucket({"salesman": "R"}, target=200, achievement=50).achievement_percent == 25.0


def test_group_bucket_top_dealer():
    assert GroupBucket({"party_group": "G"}).top_dealer == "-"
    bucket = GroupBucket({"party_group": "G"}, dealer_totals={"A": 5.0, "B": 7.0, "C": 7.0})
    assert bucket.top_dealer == "B"


def test_import_meta_round_trip():
    meta = ImportMeta("1711929600000_0a1b2c3d", "sales.xlsx", datetime(2024, 4, 1, tzinfo=UTC), "xml", 3, 1)
    data = meta.to_dict()
    assert data["uploadedAt"] == "2024-04-01T00:00:00Z"
    assert ImportMeta.from_dict(data) == meta
