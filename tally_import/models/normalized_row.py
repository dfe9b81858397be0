from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

"""NormalizedRow: fixed-shape record produced by the row normalizer.

Every downstream stage (aggregation, projection, storage) reads these
canonical attributes instead of repeating header alias lookups. Rows are
immutable once built; one import's rows are stored as a single JSON document.
"""

__all__ = [
    "NormalizedRow",
    "TEXT_FIELDS",
    "NUMERIC_FIELDS",
    "CAMEL_KEYS",
]

TEXT_FIELDS: tuple[str, ...] = (
    "party_name",
    "item_name",
    "item_category",
    "item_group",
    "salesman",
    "city",
    "party_group",
    "voucher_type",
)
NUMERIC_FIELDS: tuple[str, ...] = ("qty", "amount", "target")

# 永続化 JSON のキー名 (import document contract)
CAMEL_KEYS: dict[str, str] = {
    "date": "date",
    "party_name": "partyName",
    "item_name": "itemName",
    "item_category": "itemCategory",
    "item_group": "itemGroup",
    "salesman": "salesman",
    "city": "city",
    "party_group": "partyGroup",
    "voucher_type": "voucherType",
    "qty": "qty",
    "amount": "amount",
    "target": "target",
    "achievement": "achievement",
    "extra": "extra",
}


@dataclass(frozen=True)
class NormalizedRow:
    """One sales/voucher line after alias resolution and type coercion.

    Text fields are trimmed strings ("" when absent). ``qty``, ``amount`` and
    ``target`` are always finite floats. ``achievement`` stays None when the
    source file had no achievement column so the target report can fall back
    to ``amount``. ``extra`` carries unmapped source columns for display.
    """
    date: date | None = None
    party_name: str = ""
    item_name: str = ""
    item_category: str = ""
    item_group: str = ""
    salesman: str = ""
    city: str = ""
    party_group: str = ""
    voucher_type: str = ""
    qty: float = 0.0
    amount: float = 0.0
    target: float = 0.0
    achievement: float | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def text_values(self) -> list[str]:
        """All values as strings, in field order then extra columns (noise checks)."""
        values = [self.date.isoformat() if self.date else ""]
        values.extend(getattr(self, name) for name in TEXT_FIELDS)
        values.extend("" if v is None else str(v) for v in self.extra.values())
        return values

    def is_blank(self) -> bool:
        if any(v.strip() for v in self.text_values()):
            return False
        return self.qty == 0 and self.amount == 0 and self.target == 0 and not self.achievement

    def to_dict(self) -> dict[str, Any]:
        """Serialize with camelCase keys (date as ISO string or None)."""
        out: dict[str, Any] = {}
        for attr, key in CAMEL_KEYS.items():
            value = getattr(self, attr)
            if attr == "date":
                value = value.isoformat() if value else None
            elif attr == "extra":
                value = dict(value)
            out[key] = value
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NormalizedRow:
        raw_date = data.get("date")
        achievement = data.get("achievement")
        return cls(
            date=date.fromisoformat(raw_date) if raw_date else None,
            party_name=data.get("partyName", ""),
            item_name=data.get("itemName", ""),
            item_category=data.get("itemCategory", ""),
            item_group=data.get("itemGroup", ""),
            salesman=data.get("salesman", ""),
            city=data.get("city", ""),
            party_group=data.get("partyGroup", ""),
            voucher_type=data.get("voucherType", ""),
            qty=float(data.get("qty", 0)),
            amount=float(data.get("amount", 0)),
            target=float(data.get("target", 0)),
            achievement=None if achievement is None else float(achievement),
            extra=dict(data.get("extra") or {}),
        )
