from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime, timedelta
from typing import Any

import pandas as pd

"""Canonical field table, header aliasing and value coercion.

Tally exports name the same column differently from report to report
("Dealer" / "Party Name" / "Party"). Aliases are resolved once per file into
a HeaderMap so the rest of the pipeline only sees canonical field names.
Coercion helpers never raise: unparsable numbers become 0, unparsable dates
become None.
"""

__all__ = [
    "FIELD_ALIASES",
    "NOISE_MARKERS",
    "HeaderMap",
    "header_key",
    "merge_aliases",
    "build_header_map",
    "resolve_field",
    "to_number",
    "to_date",
    "to_text",
    "json_safe",
    "is_blank_value",
    "is_noise_values",
    "contains_noise_marker",
]

# canonical field -> header candidates, earlier entries win
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "party_name": ("Party Name", "Party", "Dealer", "Customer"),
    "item_name": (
        "Item Name", "ItemName", "Item", "Product Name", "Stock Item", "Description",
        "Party Name",  # 品目列なしのエクスポートは Party Name で代替
    ),
    "item_category": ("Item Category", "Product Name", "Company", "Category"),
    "item_group": ("Item Group", "ItemGroup", "Item Category Group", "Item Group Name"),
    "salesman": ("Salesman", "ASM", "Sales Man"),
    "city": ("City/Area", "City", "Area"),
    "party_group": ("Ledger", "Party Group", "Group"),
    "voucher_type": ("Voucher Type", "Vch Type", "Type"),
    "date": ("Date", "Bill Date", "Voucher Date", "Inv Date"),
    "amount": ("Amount", "Amt", "Net Amount", "Value"),
    "qty": ("Qty", "Quantity", "Billed Qty"),
    "target": ("Target",),
    "achievement": ("Achievement",),
}

NOISE_MARKERS: tuple[str, ...] = ("total", "grand total", "sub total", "overall total")

_NUMERIC_STRIP = re.compile(r"[^0-9.\-]")
_EXCEL_EPOCH = datetime(1899, 12, 30)
_DATE_FORMATS = (
    "%Y%m%d",  # Tally XML
    "%Y-%m-%d",
    "%d-%m-%Y",
    "%d/%m/%Y",
    "%d.%m.%Y",
    "%d-%b-%Y",
    "%d-%b-%y",
    "%d %b %Y",
)

HeaderMap = dict[str, tuple[str, ...]]


def header_key(header: str) -> str:
    """Case-insensitive, whitespace-collapsed comparison key for headers."""
    return " ".join(str(header).split()).lower()


def merge_aliases(extra: Mapping[str, Sequence[str]] | None = None) -> dict[str, tuple[str, ...]]:
    """Return the alias table with configured extra headers appended per field."""
    merged = dict(FIELD_ALIASES)
    for field_name, names in (extra or {}).items():
        base = merged.get(field_name, ())
        merged[field_name] = base + tuple(n for n in names if n not in base)
    return merged


def build_header_map(
    headers: Iterable[str],
    aliases: Mapping[str, Sequence[str]] | None = None,
) -> HeaderMap:
    """Resolve which source headers of one file can populate each canonical field.

    The result keeps alias priority order and uses the file's own header text,
    so a file with "Dealer" and one with "Party Name" both map ``party_name``.
    Fields without any matching header map to an empty tuple.
    """
    table = aliases if aliases is not None else FIELD_ALIASES
    by_key: dict[str, str] = {}
    for h in headers:
        by_key.setdefault(header_key(h), h)
    header_map: HeaderMap = {}
    for field_name, candidates in table.items():
        present: list[str] = []
        for alias in candidates:
            source = by_key.get(header_key(alias))
            if source is not None and source not in present:
                present.append(source)
        header_map[field_name] = tuple(present)
    return header_map


def resolve_field(record: Mapping[str, Any], candidates: Sequence[str]) -> Any:
    """First non-blank value among the candidate columns, else ""."""
    for column in candidates:
        value = record.get(column)
        if not is_blank_value(value):
            return value
    return ""


def is_blank_value(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if value is pd.NaT:
        return True
    return isinstance(value, str) and value.strip() == ""


def to_number(value: Any) -> float:
    """Coerce a cell to a finite float; anything unparsable is 0.

    Strings drop every character other than digits, '.' and '-' first, so
    "₹1,234.50" -> 1234.5 and "N/A" -> 0.
    """
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        cleaned = _NUMERIC_STRIP.sub("", "" if value is None else str(value))
        try:
            number = float(cleaned)
        except ValueError:
            return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def to_date(value: Any) -> date | None:
    """Coerce a cell to a date, or None when it does not look like one."""
    if is_blank_value(value):
        return None
    if isinstance(value, datetime):  # pd.Timestamp 含む
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # Excel serial date (1900 system)
        if 1 <= value < 2958466:
            return (_EXCEL_EPOCH + timedelta(days=float(value))).date()
        value = str(int(value)) if float(value).is_integer() else str(value)  # 20240401 形式
    text = str(value).strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    # ISO timestamp string (e.g. "2024-04-01T00:00:00")
    parsed = pd.to_datetime(text, errors="coerce", format="ISO8601")
    if pd.isna(parsed):
        return None
    return parsed.date()


def to_text(value: Any) -> str:
    """Trimmed string form of a cell ("" for blanks; 12.0 -> "12")."""
    if is_blank_value(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.date().isoformat() if value.time() == datetime.min.time() else value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def json_safe(value: Any) -> Any:
    """Passthrough value converted to something json.dumps accepts."""
    if is_blank_value(value):
        return ""
    if isinstance(value, (datetime, date)):
        return to_text(value)
    if isinstance(value, bool) or isinstance(value, (int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else ""
    if hasattr(value, "item"):  # numpy scalar
        return json_safe(value.item())
    return str(value)


def is_noise_values(values: Iterable[Any]) -> bool:
    """True for blank rows and total/subtotal lines.

    A row is noise when every value is blank, or when the joined lowercase
    text of all values contains any NOISE_MARKERS entry.
    """
    texts = [to_text(v) for v in values]
    if all(t == "" for t in texts):
        return True
    return contains_noise_marker(texts)


def contains_noise_marker(values: Iterable[Any]) -> bool:
    joined = " ".join(to_text(v) for v in values).lower()
    return any(marker in joined for marker in NOISE_MARKERS)
