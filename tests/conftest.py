# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from tally_import.logging.init import reset_logging


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    # .env / 実行環境のディレクトリ上書きをテストに持ち込まない
    monkeypatch.delenv("TALLY_IMPORT_SOURCE_DIR", raising=False)
    monkeypatch.delenv("TALLY_IMPORT_STORE_DIR", raising=False)
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_directory: ./data
store_directory: ./store
log_directory: ./logs
file_extensions: [.xlsx, .csv, .xml]
timezone: UTC
field_aliases:
  party_name: [Dealer Name]
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def sales_rows() -> list[list[object]]:
    return [
        ["Sales Register 01-Apr-2024 to 30-Apr-2024"],
        ["Date", "Party Name", "Item Name", "Item Category", "Salesman", "City", "Qty", "Amount"],
        ["01-04-2024", "Sharma Traders", "Widget A", "Acme", "Ravi", "Pune", 10, "₹1,000.00"],
        ["02-04-2024", "Sharma Traders", "Widget B", "Acme", "Ravi", "Pune", 5, 500],
        ["03-04-2024", "Gupta & Sons", "Gadget X", "Zenith", "Meena", "Nashik", 2, 250.5],
        ["", "Grand Total", "", "", "", "", 17, 1750.5],
    ]


@pytest.fixture()
def voucher_xml() -> str:
    return """<ENVELOPE xmlns:UDF="TallyUDF">
 <BODY><DATA><TALLYMESSAGE>
  <VOUCHER VCHTYPE="Sales">
   <DATE>20240401</DATE><VOUCHERTYPENAME>Sales</VOUCHERTYPENAME>
   <PARTYNAME>Sharma Traders</PARTYNAME>
   <ALLINVENTORYENTRIES.LIST>
    <STOCKITEMNAME>Widget A</STOCKITEMNAME><BILLEDQTY>10 Nos</BILLEDQTY><AMOUNT>1000.00</AMOUNT>
   </ALLINVENTORYENTRIES.LIST>
   <BASICSALESNAME>Ravi</BASICSALESNAME>
  </VOUCHER>
  <VOUCHER VCHTYPE="Sales">
   <DATE>20240402</DATE><VOUCHERTYPENAME>Sales</VOUCHERTYPENAME>
   <PARTYLEDGERNAME>Gupta &amp; Sons</PARTYLEDGERNAME>
   <UDF:NARRATION.LIST><UDF:NOTE>urgent</UDF:NOTE></UDF:NARRATION.LIST>
   <ALLINVENTORYENTRIES.LIST>
    <STOCKITEMNAME>Gadget X</STOCKITEMNAME><BILLEDQTY>2 Nos</BILLEDQTY><AMOUNT>250.50</AMOUNT>
   </ALLINVENTORYENTRIES.LIST>
  </VOUCHER>
  <VOUCHER VCHTYPE="Sales">
   <DATE>20240403</DATE><PARTYNAME>Mehta Stores</PARTYNAME>
   <ALLINVENTORYENTRIES.LIST>
    <STOCKITEMNAME>Widget B</STOCKITEMNAME><BILLEDQTY>1</BILLEDQTY><AMOUNT>-75</AMOUNT>
   </ALLINVENTORYENTRIES.LIST>
  </VOUCHER>
  <VOUCHER VCHTYPE="Sales">
   <DATE>20240404</DATE><PARTYNAME>Broken <b>Ltd</PARTYNAME>
  </VOUCHER>
 </TALLYMESSAGE></DATA></BODY>
</ENVELOPE>
"""
