from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..errors import PartialRecordSkipped
from ..excel.reader import RawGrid, normalize_sheet
from ..models.normalized_row import NormalizedRow
from .fields import (
    FIELD_ALIASES,
    HeaderMap,
    build_header_map,
    is_blank_value,
    is_noise_values,
    json_safe,
    merge_aliases,
    resolve_field,
    to_date,
    to_number,
    to_text,
)

"""Row normalizer: source records -> NormalizedRow sequence.

Works on header-keyed dicts, whether they come from a spreadsheet grid
(normalize_sheet) or from the XML voucher decoder. Noise rows (blank,
total/subtotal lines) are dropped here; rows that fail extraction are
counted as skipped and the rest of the batch continues. Output order is the
source order, and the same input always yields the same rows.
"""

__all__ = [
    "NormalizationResult",
    "normalize_records",
    "normalize_grid",
]

logger = logging.getLogger(__name__)


@dataclass
class NormalizationResult:
    rows: list[NormalizedRow] = field(default_factory=list)
    noise_rows: int = 0
    skipped_rows: int = 0
    header_map: HeaderMap = field(default_factory=dict)
    errors: list[PartialRecordSkipped] = field(default_factory=list)


def normalize_grid(
    grid: RawGrid,
    aliases: Mapping[str, Sequence[str]] | None = None,
    file_name: str = "<grid>",
) -> NormalizationResult:
    """Normalize a decoded spreadsheet grid (row 2 header, data from row 3)."""
    sheet = normalize_sheet(grid)
    if not sheet.columns:
        return NormalizationResult()
    result = normalize_records(sheet.rows, aliases=aliases, columns=sheet.columns, file_name=file_name)
    if sheet.trailing_total_dropped:
        result.noise_rows += 1
    return result


def normalize_records(
    records: Iterable[Mapping[str, Any]],
    aliases: Mapping[str, Sequence[str]] | None = None,
    columns: Sequence[str] | None = None,
    file_name: str = "<records>",
) -> NormalizationResult:
    """Normalize header-keyed records into NormalizedRows.

    Parameters
    ----------
    records: source rows (column name -> raw value)
    aliases: extra header names per canonical field (appended to the defaults)
    columns: header order; defaults to the keys of the first record
    file_name: used in skip warnings only
    """
    records = list(records)
    if columns is None:
        columns = list(records[0].keys()) if records else []
    table = merge_aliases(aliases) if aliases else FIELD_ALIASES
    header_map = build_header_map(columns, table)
    mapped = {h for candidates in header_map.values() for h in candidates}
    passthrough = [c for c in columns if c not in mapped]

    result = NormalizationResult(header_map=header_map)
    for position, record in enumerate(records, start=1):
        try:
            if is_noise_values(record.values()):
                result.noise_rows += 1
                continue
            row = _build_row(record, header_map, passthrough)
        except (TypeError, ValueError, AttributeError) as e:
            skipped = PartialRecordSkipped(position, str(e))
            logger.warning("file=%s %s", file_name, skipped)
            result.errors.append(skipped)
            result.skipped_rows += 1
            continue
        result.rows.append(row)
    return result


def _build_row(record: Mapping[str, Any], header_map: HeaderMap, passthrough: Sequence[str]) -> NormalizedRow:
    def text(name: str) -> str:
        return to_text(resolve_field(record, header_map.get(name, ())))

    # 空セルは None: 集計側で amount を実績として使う
    raw_achievement = resolve_field(record, header_map.get("achievement", ()))
    return NormalizedRow(
        date=to_date(resolve_field(record, header_map.get("date", ()))),
        party_name=text("party_name"),
        item_name=text("item_name"),
        item_category=text("item_category"),
        item_group=text("item_group"),
        salesman=text("salesman"),
        city=text("city"),
        party_group=text("party_group"),
        voucher_type=text("voucher_type"),
        qty=to_number(resolve_field(record, header_map.get("qty", ()))),
        amount=to_number(resolve_field(record, header_map.get("amount", ()))),
        target=to_number(resolve_field(record, header_map.get("target", ()))),
        achievement=None if is_blank_value(raw_achievement) else to_number(raw_achievement),
        extra={col: json_safe(record.get(col)) for col in passthrough},
    )
