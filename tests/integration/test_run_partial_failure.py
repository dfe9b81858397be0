from __future__ import annotations

import json
from pathlib import Path

from tally_import.cli.__main__ import main as cli_main
from tally_import.storage.import_store import ImportStore

"""Partial failure: a corrupt workbook fails alone, the other files are stored."""


def test_corrupt_file_does_not_stop_the_run(temp_workdir: Path, write_config, voucher_xml: str, capsys):
    data_dir = temp_workdir / "data"
    (data_dir / "a_broken.xlsx").write_bytes(b"PK\x03\x04 truncated zip")
    (data_dir / "b_daybook.xml").write_text(voucher_xml, encoding="utf-8")
    (data_dir / "c_ignored.txt").write_text("not an export", encoding="utf-8")

    code = cli_main([])
    out = capsys.readouterr().out

    assert code == 2
    assert "SUMMARY files=2/2 success=1 failed=1 rows=3 skipped_rows=1" in out
    assert "ERROR file=a_broken.xlsx cannot decode 'a_broken.xlsx'" in out

    metas = ImportStore(temp_workdir / "store").list_imports()
    assert [m.original_name for m in metas] == ["b_daybook.xml"]

    log = next((temp_workdir / "logs").glob("import-errors-*.log"))
    records = [json.loads(line) for line in log.read_text(encoding="utf-8").splitlines()]
    decode = [r for r in records if r["error_type"] == "DECODE_ERROR"]
    assert len(decode) == 1
    assert (decode[0]["file"], decode[0]["row"]) == ("a_broken.xlsx", -1)
