from __future__ import annotations

from pathlib import Path

import pytest

from tally_import.config.loader import ConfigError, load_config


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.source_directory == "./data"
    assert cfg.store_directory == "./store"
    assert cfg.log_directory == "./logs"
    assert cfg.timezone == "UTC"
    assert cfg.file_extensions == (".xlsx", ".csv", ".xml")
    assert cfg.field_aliases == {"party_name": ["Dealer Name"]}


def test_load_config_defaults(temp_workdir: Path):
    cfg_path = temp_workdir / "config" / "import.yml"
    cfg_path.write_text("source_directory: ./in\nstore_directory: ./out\n", encoding="utf-8")
    cfg = load_config(cfg_path)
    assert cfg.log_directory == "./logs"
    assert cfg.timezone == "UTC"
    assert cfg.file_extensions == (".xls", ".xlsx", ".csv", ".xml")
    assert cfg.field_aliases == {}


def test_load_config_missing_file(temp_workdir: Path):
    with pytest.raises(ConfigError):
        load_config(temp_workdir / "config" / "not_exists.yml")


def test_load_config_missing_required(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace("store_directory: ./store\n", "")
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "config validation failed" in str(e.value) and "required property" in str(e.value)


def test_load_config_extra_field(write_config: Path):
    text = write_config.read_text(encoding="utf-8") + "\nextra_field: not_allowed\n"
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "config validation failed" in str(e.value)


def test_load_config_unknown_alias_field(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace("party_name:", "dealer:")
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError, match="config validation failed"):
        load_config(write_config)


def test_load_config_unsupported_extension(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace(".csv", ".pdf")
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError, match="config validation failed"):
        load_config(write_config)


def test_load_config_invalid_yaml(write_config: Path):
    write_config.write_text("source_directory: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid yaml"):
        load_config(write_config)


def test_env_overrides_directories(write_config: Path, monkeypatch):
    monkeypatch.setenv("TALLY_IMPORT_SOURCE_DIR", "/srv/tally/in")
    monkeypatch.setenv("TALLY_IMPORT_STORE_DIR", "/srv/tally/store")
    cfg = load_config(write_config)
    assert cfg.source_directory == "/srv/tally/in"
    assert cfg.store_directory == "/srv/tally/store"
