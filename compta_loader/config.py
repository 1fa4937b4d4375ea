"""
Configuration module for the entry loader.

All tuneable parameters (column names, default cell values, CSV dialect and
batch policy) live here.  Nothing is hard-coded in business logic modules.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from compta_loader.errors import ConfigError


#: Logical fields a spreadsheet column can be mapped to, in a fixed order.
LOGICAL_FIELDS = (
    "name",
    "date",
    "amount",
    "stock",
    "category",
    "comment",
    "payment",
    "budget",
    "employee",
    "provider",
    "kind",
    "period",
    "bank",
)


@dataclass(frozen=True)
class ColumnNames:
    """Header text expected for each logical field.

    An empty name disables the field: it will never be found in the header.
    """

    name: str = "name"
    date: str = "date"
    amount: str = "amount"
    # Check allocations and orders carry the count in the amount column.
    stock: str = "amount"
    category: str = "category"
    comment: str = "comment"
    payment: str = "payment"
    budget: str = "budget"
    employee: str = "employee"
    provider: str = "provider"
    kind: str = "kind"
    period: str = "period"
    bank: str = "account"

    def items(self):
        return ((f, getattr(self, f)) for f in LOGICAL_FIELDS)


@dataclass(frozen=True)
class Defaults:
    """Fallback values, used only when the matching cell is blank."""

    budget: str = ""
    bank: str = ""
    category: str = ""
    payment: str = ""
    kind: str = ""
    # Empty means "the current accounting period".
    period: str = ""


@dataclass(frozen=True)
class CsvConfig:
    """Low-level CSV dialect.  Empty strings keep the ``csv`` defaults."""

    delimiter: str = ""
    comment: str = ""

    def __post_init__(self) -> None:
        _single_char(self.delimiter, "comma separator")
        _single_char(self.comment, "comment character")


@dataclass(frozen=True)
class LoaderConfig:
    """Top-level configuration aggregating all sub-configs."""

    columns: ColumnNames = field(default_factory=ColumnNames)
    defaults: Defaults = field(default_factory=Defaults)
    csv: CsvConfig = field(default_factory=CsvConfig)

    # When True any failing row makes the whole batch fail and no entry is
    # returned; when False the valid entries come back with the row errors.
    strict_mode: bool = True

    # Logging level for the loading audit trail
    log_level: int = logging.INFO

    # Folder holding receipts to attach to the entries; None disables it.
    receipts_folder: Optional[Path] = None

    # Minimum rapidfuzz score (0–100) for a "did you mean" suggestion
    suggestion_threshold: float = 80.0

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "LoaderConfig":
        """Build a config from the nested JSON shape.

        ``{"csv": {"comma": ";", "comment": "#", "columns": {...}},
        "budget": "FON", ..., "receipts": "receipts", "strict_mode": true}``
        """
        csv_data = data.get("csv") or {}
        if not isinstance(csv_data, Mapping):
            raise ConfigError("'csv' must be an object")

        columns = ColumnNames(**_string_fields(
            ColumnNames, csv_data.get("columns") or {}, "csv.columns"
        ))
        defaults = Defaults(**_string_fields(Defaults, data, ""))
        csv_config = CsvConfig(**_string_fields(
            CsvConfig,
            {"delimiter": csv_data.get("comma", ""),
             "comment": csv_data.get("comment", "")},
            "csv",
        ))

        kwargs: Dict[str, Any] = {
            "columns": columns,
            "defaults": defaults,
            "csv": csv_config,
        }
        if "strict_mode" in data:
            kwargs["strict_mode"] = bool(data["strict_mode"])
        if data.get("receipts"):
            kwargs["receipts_folder"] = Path(str(data["receipts"]))
        if "suggestion_threshold" in data:
            kwargs["suggestion_threshold"] = float(data["suggestion_threshold"])
        if "log_level" in data:
            level = data["log_level"]
            kwargs["log_level"] = (
                logging.getLevelName(level.upper()) if isinstance(level, str) else int(level)
            )
        return cls(**kwargs)


def load_config(source: Union[str, Path]) -> LoaderConfig:
    """Load a ``LoaderConfig`` from a JSON file path or JSON string."""
    try:
        if isinstance(source, Path) or not source.lstrip().startswith("{"):
            with open(source, encoding="utf-8") as fh:
                data = json.load(fh)
        else:
            data = json.loads(source)
    except OSError as exc:
        raise ConfigError(f"failed to read configuration {source}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"invalid configuration JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Unsupported configuration root type: {type(data).__name__}")
    return LoaderConfig.from_mapping(data)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _single_char(value: str, what: str) -> None:
    if len(value) > 1:
        raise ConfigError(f"{what} must be a single character, but got '{value}'")


def _string_fields(cls: type, data: Mapping[str, Any], prefix: str) -> Dict[str, str]:
    """Pick the keys of *data* that are fields of *cls*, checking they are strings."""
    result: Dict[str, str] = {}
    for f in fields(cls):
        if f.name not in data:
            continue
        value = data[f.name]
        if value is None:
            continue
        if not isinstance(value, str):
            key = f"{prefix}.{f.name}" if prefix else f.name
            raise ConfigError(f"'{key}' must be a string, got {type(value).__name__}")
        result[f.name] = value
    return result
