"""
Unit tests for the configuration layer.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from compta_loader.config import (
    ColumnNames,
    CsvConfig,
    LoaderConfig,
    load_config,
)
from compta_loader.errors import ConfigError


class TestDefaults:
    def test_column_defaults(self) -> None:
        names = ColumnNames()
        assert names.stock == "amount"
        assert names.bank == "account"
        assert dict(names.items())["kind"] == "kind"

    def test_strict_by_default(self) -> None:
        config = LoaderConfig()
        assert config.strict_mode
        assert config.receipts_folder is None
        assert config.csv.delimiter == ""


class TestCsvConfig:
    def test_single_characters_accepted(self) -> None:
        assert CsvConfig(delimiter=";", comment="#").comment == "#"

    def test_multi_character_delimiter_rejected(self) -> None:
        with pytest.raises(ConfigError, match="comma separator must be a single character"):
            CsvConfig(delimiter=";;")

    def test_multi_character_comment_rejected(self) -> None:
        with pytest.raises(ConfigError, match="comment character"):
            CsvConfig(comment="//")


class TestLoadConfig:
    @pytest.fixture
    def raw(self) -> dict:
        return {
            "csv": {
                "comma": ";",
                "comment": "#",
                "columns": {"date": "Date", "amount": "Montant", "stock": "Quantité"},
            },
            "budget": "FON",
            "payment": "card",
            "receipts": "receipts",
            "strict_mode": False,
            "suggestion_threshold": 90,
            "log_level": "debug",
        }

    def test_from_mapping(self, raw: dict) -> None:
        config = LoaderConfig.from_mapping(raw)

        assert config.csv == CsvConfig(delimiter=";", comment="#")
        assert config.columns.date == "Date"
        assert config.columns.stock == "Quantité"
        # unspecified columns keep their defaults
        assert config.columns.name == "name"
        assert config.defaults.budget == "FON"
        assert config.defaults.payment == "card"
        assert config.defaults.period == ""
        assert config.receipts_folder == Path("receipts")
        assert config.strict_mode is False
        assert config.suggestion_threshold == 90.0
        assert config.log_level == logging.DEBUG

    def test_empty_mapping(self) -> None:
        assert LoaderConfig.from_mapping({}) == LoaderConfig()

    def test_from_json_string(self, raw: dict) -> None:
        assert load_config(json.dumps(raw)).defaults.budget == "FON"

    def test_from_file(self, raw: dict, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps(raw), encoding="utf-8")
        assert load_config(path).csv.delimiter == ";"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="failed to read configuration"):
            load_config(tmp_path / "nope.json")

    def test_invalid_json(self) -> None:
        with pytest.raises(ConfigError, match="invalid configuration JSON"):
            load_config('{"csv": ')

    def test_non_string_column(self, raw: dict) -> None:
        raw["csv"]["columns"]["date"] = 3
        with pytest.raises(ConfigError, match="'csv.columns.date' must be a string"):
            LoaderConfig.from_mapping(raw)

    def test_long_delimiter(self, raw: dict) -> None:
        raw["csv"]["comma"] = "ab"
        with pytest.raises(ConfigError):
            LoaderConfig.from_mapping(raw)
