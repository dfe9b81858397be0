from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

from ..errors import DecodeError, PartialRecordSkipped

"""Tally XML voucher decoder.

Tally day book / sales exports contain any number of <VOUCHER> blocks. Each
block is parsed on its own so that one corrupt voucher is skipped (and
counted) instead of failing the whole document. Output rows use the same
header names as spreadsheet exports, so the regular alias table normalizes
them.
"""

__all__ = [
    "VoucherBatch",
    "VOUCHER_TAGS",
    "decode_vouchers",
]

logger = logging.getLogger(__name__)

# XML tag -> spreadsheet-style column name
VOUCHER_TAGS: dict[str, str] = {
    "VOUCHERTYPENAME": "Voucher Type",
    "DATE": "Date",
    "PARTYNAME": "Party Name",
    "STOCKITEMNAME": "Item Name",
    "BILLEDQTY": "Qty",
    "AMOUNT": "Amount",
    "BASICSALESNAME": "Salesman",
}
# 旧バージョンの Tally は PARTYNAME を出さない
_TAG_FALLBACKS: dict[str, tuple[str, ...]] = {
    "PARTYNAME": ("PARTYLEDGERNAME",),
}

_VOUCHER_OPEN = re.compile(r"<VOUCHER\b")
# one <VOUCHER ...>...</VOUCHER> block that does not contain another opener
_VOUCHER_BLOCK = re.compile(r"<VOUCHER\b(?:(?!<VOUCHER\b).)*?</VOUCHER>", re.DOTALL)
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
# Tally writes invalid character references such as &#4; into names
_BAD_CHAR_REFS = re.compile(r"&#(?:x0*[0-8bBcCeEfF]|x0*1[0-9a-fA-F]|0*(?:[0-8]|1[1-2]|1[4-9]|2[0-9]|3[01]));")
# UDF:xxx prefixes are declared on ENVELOPE, unbound once a block is cut out
_NS_TAG_PREFIX = re.compile(r"<(/?)[A-Za-z_][\w.-]*:")
_NS_ATTR_PREFIX = re.compile(r"(\s)[A-Za-z_][\w.-]*:([A-Za-z_][\w.-]*=)")


@dataclass
class VoucherBatch:
    rows: list[dict[str, str]] = field(default_factory=list)
    skipped: int = 0
    errors: list[PartialRecordSkipped] = field(default_factory=list)


def decode_vouchers(payload: str | bytes, file_name: str = "<xml>") -> VoucherBatch:
    """Extract one row per <VOUCHER> block.

    Text without any "<VOUCHER" marker is not voucher XML and yields an empty
    batch. Missing tags become "". Malformed blocks (and openers without a
    closing tag) are skipped with a warning and counted in ``skipped``.
    """
    text = _to_text(payload, file_name)
    batch = VoucherBatch()
    if "<VOUCHER" not in text:
        return batch

    text = _BAD_CHAR_REFS.sub("", _CONTROL_CHARS.sub("", text))
    blocks = _VOUCHER_BLOCK.findall(text)
    for index, block in enumerate(blocks, start=1):
        try:
            batch.rows.append(_parse_block(index, block))
        except PartialRecordSkipped as e:
            logger.warning("file=%s %s", file_name, e)
            batch.errors.append(e)
            batch.skipped += 1

    unterminated = len(_VOUCHER_OPEN.findall(text)) - len(blocks)
    if unterminated > 0:
        e = PartialRecordSkipped(-1, f"{unterminated} unterminated <VOUCHER> block(s)")
        logger.warning("file=%s %s", file_name, e)
        batch.errors.append(e)
        batch.skipped += unterminated
    return batch


def _to_text(payload: str | bytes, file_name: str) -> str:
    if isinstance(payload, str):
        return payload
    # Tally の XML エクスポートは UTF-16 の場合がある
    if payload.startswith((b"\xff\xfe", b"\xfe\xff")):
        encodings: tuple[str, ...] = ("utf-16",)
    else:
        encodings = ("utf-8-sig", "latin-1")
    for enc in encodings:
        try:
            return payload.decode(enc)
        except UnicodeDecodeError:
            continue
    raise DecodeError(file_name, "undecodable XML bytes")


def _parse_block(index: int, block: str) -> dict[str, str]:
    block = _NS_ATTR_PREFIX.sub(r"\1\2", _NS_TAG_PREFIX.sub(r"<\1", block))
    try:
        voucher = ET.fromstring(block)
    except ET.ParseError as e:
        raise PartialRecordSkipped(index, f"malformed voucher: {e}") from e
    row: dict[str, str] = {}
    for tag, column in VOUCHER_TAGS.items():
        value = _first_text(voucher, tag)
        for fallback in _TAG_FALLBACKS.get(tag, ()):
            if value:
                break
            value = _first_text(voucher, fallback)
        row[column] = value
    return row


def _first_text(node: ET.Element, tag: str) -> str:
    """Text of the first ``tag`` element anywhere under ``node`` ("" if absent)."""
    for elem in node.iter(tag):
        if elem.text and elem.text.strip():
            return elem.text.strip()
    return ""
