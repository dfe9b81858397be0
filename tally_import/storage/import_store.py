from __future__ import annotations

import json
import logging
import re
import uuid
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path

import jsonschema
from jsonschema.exceptions import ValidationError

from ..models.import_record import ImportDocument, ImportMeta
from ..models.normalized_row import NormalizedRow

"""Versioned store of import documents.

Each import is written once as ``<import_id>.json``:
``{"meta": {...}, "rows": [NormalizedRow, ...]}``. The current dataset is an
explicit pointer (``CURRENT`` file) set with set_current(); when no pointer
exists the newest import by upload time is used. File modification times
are never consulted.
"""

__all__ = [
    "ImportStoreError",
    "ImportStore",
    "SCHEMA_PATH",
]

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).with_name("import_document_schema.json")
_IMPORT_ID = re.compile(r"^[0-9]+_[0-9a-f]{8}$")
CURRENT_POINTER = "CURRENT"


class ImportStoreError(Exception):
    pass


def _load_schema() -> dict:
    try:
        return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ImportStoreError(f"invalid import document schema: {e}") from e


class ImportStore:
    """Directory of JSON import documents keyed by import id."""

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)
        self._schema: dict | None = None

    @property
    def schema(self) -> dict:
        if self._schema is None:
            self._schema = _load_schema()
        return self._schema

    # -- write -------------------------------------------------------------

    def save(
        self,
        rows: Sequence[NormalizedRow],
        original_name: str,
        source: str = "spreadsheet",
        skipped_rows: int = 0,
        uploaded_at: datetime | None = None,
    ) -> ImportMeta:
        """Persist one import and return its metadata (including the new id)."""
        uploaded_at = uploaded_at or datetime.now(UTC)
        import_id = f"{int(uploaded_at.timestamp() * 1000)}_{uuid.uuid4().hex[:8]}"
        meta = ImportMeta(
            import_id=import_id,
            original_name=original_name,
            uploaded_at=uploaded_at,
            source=source,
            row_count=len(rows),
            skipped_rows=skipped_rows,
        )
        document = ImportDocument(meta=meta, rows=list(rows))
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(import_id)
        try:
            path.write_text(json.dumps(document.to_dict(), ensure_ascii=False), encoding="utf-8")
        except OSError as e:
            raise ImportStoreError(f"cannot write import {import_id}: {e}") from e
        logger.debug("stored import id=%s rows=%d file=%s", import_id, len(rows), path)
        return meta

    def set_current(self, import_id: str) -> None:
        """Point the current dataset at an existing import."""
        if not self._path(import_id).exists():
            raise ImportStoreError(f"import not found: {import_id}")
        (self.directory / CURRENT_POINTER).write_text(import_id, encoding="utf-8")

    def delete(self, import_id: str) -> None:
        path = self._path(import_id)
        if not path.exists():
            raise ImportStoreError(f"import not found: {import_id}")
        path.unlink()
        if self._current_id() == import_id:
            (self.directory / CURRENT_POINTER).unlink()

    # -- read --------------------------------------------------------------

    def load(self, import_id: str) -> ImportDocument:
        data = self._read(self._path(import_id))
        return ImportDocument(
            meta=ImportMeta.from_dict(data["meta"]),
            rows=[NormalizedRow.from_dict(r) for r in data["rows"]],
        )

    def list_imports(self) -> list[ImportMeta]:
        """Metadata of every stored import, newest upload first."""
        if not self.directory.exists():
            return []
        metas = [
            ImportMeta.from_dict(self._read(p)["meta"])
            for p in self.directory.glob("*.json")
            if _IMPORT_ID.match(p.stem)
        ]
        return sorted(metas, key=lambda m: (m.uploaded_at, m.import_id), reverse=True)

    def latest(self) -> ImportDocument | None:
        metas = self.list_imports()
        return self.load(metas[0].import_id) if metas else None

    def current(self) -> ImportDocument | None:
        """The explicitly selected import, else the newest one, else None."""
        current_id = self._current_id()
        if current_id is not None and self._path(current_id).exists():
            return self.load(current_id)
        return self.latest()

    # -- helpers -----------------------------------------------------------

    def _current_id(self) -> str | None:
        pointer = self.directory / CURRENT_POINTER
        if not pointer.exists():
            return None
        value = pointer.read_text(encoding="utf-8").strip()
        return value or None

    def _path(self, import_id: str) -> Path:
        # パス走査防止: id 形式のみ許可
        if not _IMPORT_ID.match(import_id):
            raise ImportStoreError(f"invalid import id: {import_id!r}")
        return self.directory / f"{import_id}.json"

    def _read(self, path: Path) -> dict:
        if not path.exists():
            raise ImportStoreError(f"import not found: {path.stem}")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            jsonschema.validate(data, self.schema)
        except json.JSONDecodeError as e:
            raise ImportStoreError(f"invalid import document {path.name}: {e}") from e
        except ValidationError as e:
            raise ImportStoreError(f"import document {path.name} failed validation: {e.message}") from e
        return data
