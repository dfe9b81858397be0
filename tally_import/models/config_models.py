from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclass for the import pipeline.

Built by tally_import.config.loader from config/import.yml after JSON schema
validation; environment variables may override the directories.
"""

DEFAULT_EXTENSIONS: tuple[str, ...] = (".xls", ".xlsx", ".csv", ".xml")


@dataclass(frozen=True)
class PipelineConfig:
    """Root configuration object for import runs."""
    source_directory: str  # Directory scanned for exports (non-recursive)
    store_directory: str  # Where import documents are written
    log_directory: str = "./logs"  # errors-*.log destination
    file_extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    timezone: str = "UTC"
    # canonical field -> extra header names appended after the built-in aliases
    field_aliases: dict[str, list[str]] = field(default_factory=dict)
