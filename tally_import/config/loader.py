from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import DEFAULT_EXTENSIONS, PipelineConfig

"""Config loader for config/import.yml.

Responsibilities:
- Load YAML and validate it against config_schema.json (shipped beside this module)
- Apply defaults (log_directory=./logs, timezone=UTC, all supported extensions)
- Let TALLY_IMPORT_SOURCE_DIR / TALLY_IMPORT_STORE_DIR override the directories
"""

__all__ = [
    "ConfigError",
    "SCHEMA_PATH",
    "DEFAULT_CONFIG_PATH",
    "ENV_SOURCE_DIR",
    "ENV_STORE_DIR",
    "load_config",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/import.yml")

ENV_SOURCE_DIR = "TALLY_IMPORT_SOURCE_DIR"
ENV_STORE_DIR = "TALLY_IMPORT_STORE_DIR"


class ConfigError(Exception):
    pass


def _validate_config_schema(data: Any) -> None:
    """Raise ConfigError when ``data`` does not satisfy the config schema."""
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> PipelineConfig:
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e

    _validate_config_schema(data)

    # 環境変数 (.env 含む) がディレクトリ指定を上書き
    source_dir = os.getenv(ENV_SOURCE_DIR) or data["source_directory"]
    store_dir = os.getenv(ENV_STORE_DIR) or data["store_directory"]
    timezone = data.get("timezone", "UTC")
    if timezone.upper() != "UTC":
        try:
            ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigError(f"unknown timezone: {timezone}") from e

    extensions = tuple(e.lower() for e in data.get("file_extensions", DEFAULT_EXTENSIONS))
    return PipelineConfig(
        source_directory=source_dir,
        store_directory=store_dir,
        log_directory=data.get("log_directory", "./logs"),
        file_extensions=extensions,
        timezone=timezone,
        field_aliases={k: list(v) for k, v in (data.get("field_aliases") or {}).items()},
    )
