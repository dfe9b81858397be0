from __future__ import annotations

from collections.abc import Iterable

"""Error taxonomy shared by the decode / normalize / aggregate stages.

- DecodeError: the whole file cannot be decoded (fatal to that file only)
- InvalidAggregationSpec: caller asked for an unknown field (programmer error)
- PartialRecordSkipped: one voucher / one row could not be extracted; the
  caller logs it, counts it and continues with the rest of the batch
"""

__all__ = [
    "PipelineError",
    "DecodeError",
    "InvalidAggregationSpec",
    "PartialRecordSkipped",
]


class PipelineError(Exception):
    """Base class for pipeline errors."""


class DecodeError(PipelineError):
    """Raised when a spreadsheet or XML payload cannot be decoded at all."""

    def __init__(self, file_name: str, reason: str) -> None:
        super().__init__(f"cannot decode '{file_name}': {reason}")
        self.file_name = file_name
        self.reason = reason


class InvalidAggregationSpec(PipelineError):
    """Raised when an aggregation names unknown dimension / measure fields."""

    def __init__(self, fields: Iterable[str], reason: str = "unknown field") -> None:
        self.fields = list(fields)
        super().__init__(f"invalid aggregation spec ({reason}): {', '.join(self.fields)}")


class PartialRecordSkipped(PipelineError):
    """One record of a batch failed extraction and was left out."""

    def __init__(self, row: int, reason: str) -> None:
        super().__init__(f"record {row} skipped: {reason}")
        self.row = row
        self.reason = reason
