from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import jsonschema
import pytest
from jsonschema.exceptions import ValidationError

from tally_import.models.normalized_row import NormalizedRow
from tally_import.storage.import_store import SCHEMA_PATH, ImportStore

"""Stored import document contract ({meta, rows} with camelCase keys)."""


def _schema() -> dict:
    return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))


def _saved_document(tmp_path: Path) -> dict:
    store = ImportStore(tmp_path)
    meta = store.save(
        [NormalizedRow(date=date(2024, 4, 1), party_name="Sharma Traders", amount=1000.0, extra={"Bill No": 17})],
        "sales.xlsx",
        source="spreadsheet",
    )
    return json.loads((tmp_path / f"{meta.import_id}.json").read_text(encoding="utf-8"))


def test_saved_document_matches_schema(tmp_path: Path):
    jsonschema.validate(_saved_document(tmp_path), _schema())


def test_unknown_row_key_is_rejected(tmp_path: Path):
    doc = _saved_document(tmp_path)
    doc["rows"][0]["party_name"] = "snake case is not allowed"
    with pytest.raises(ValidationError):
        jsonschema.validate(doc, _schema())


def test_unknown_source_is_rejected(tmp_path: Path):
    doc = _saved_document(tmp_path)
    doc["meta"]["source"] = "pdf"
    with pytest.raises(ValidationError):
        jsonschema.validate(doc, _schema())
