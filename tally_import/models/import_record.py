from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .normalized_row import NormalizedRow

"""Import document and per-file import result models.

An ImportDocument is the unit of storage: ``meta`` plus the full normalized
row sequence of one uploaded file. ImportResult reports what happened to one
file (status, parsed row count, skipped records, failure reason).
"""

__all__ = [
    "ImportStatus",
    "ImportMeta",
    "ImportDocument",
    "ImportResult",
]


class ImportStatus(Enum):
    """Outcome of a single file import.

    Partial successes (some records skipped) are SUCCESS with a smaller
    row count; FAILED is reserved for files that could not be decoded.
    """
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class ImportMeta:
    import_id: str
    original_name: str
    uploaded_at: datetime
    source: str  # "spreadsheet" | "xml"
    row_count: int = 0
    skipped_rows: int = 0

    def to_dict(self) -> dict[str, object]:
        return {
            "importId": self.import_id,
            "originalName": self.original_name,
            "uploadedAt": self.uploaded_at.isoformat().replace("+00:00", "Z"),
            "source": self.source,
            "rowCount": self.row_count,
            "skippedRows": self.skipped_rows,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> ImportMeta:
        uploaded = str(data["uploadedAt"]).replace("Z", "+00:00")
        return cls(
            import_id=str(data["importId"]),
            original_name=str(data["originalName"]),
            uploaded_at=datetime.fromisoformat(uploaded),
            source=str(data.get("source", "spreadsheet")),
            row_count=int(data.get("rowCount", 0)),  # type: ignore[arg-type]
            skipped_rows=int(data.get("skippedRows", 0)),  # type: ignore[arg-type]
        )


@dataclass(frozen=True)
class ImportDocument:
    meta: ImportMeta
    rows: list[NormalizedRow] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {"meta": self.meta.to_dict(), "rows": [r.to_dict() for r in self.rows]}


@dataclass(frozen=True)
class ImportResult:
    """Processing outcome for one file."""
    file_name: str
    status: ImportStatus
    row_count: int = 0
    skipped_rows: int = 0
    noise_rows: int = 0
    import_id: str | None = None
    error: str | None = None
    elapsed_seconds: float = 0.0
