"""
Column Mapping Layer.

Matches the configured header name of every logical field against the
header row of the source file and records the column index each field is
read from.

Design decisions
----------------
* Matching is exact: no trimming, no case folding.  Readers hand over
  header cells untouched.
* Headers are scanned left to right and assigned unconditionally, so when
  two columns carry the same header the right-most one wins.
* Several logical fields may be configured with the same header name (the
  default configuration reads ``stock`` from the ``amount`` column); each
  of them receives the column index.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Sequence

from compta_loader.config import LOGICAL_FIELDS, ColumnNames
from compta_loader.logging_setup import get_logger

logger = get_logger("column_mapper")

#: Index of a logical field that was not found in the header.
ABSENT = -1


@dataclass(frozen=True)
class ColumnMap:
    """Immutable logical-field → column-index table."""

    indices: Mapping[str, int] = field(
        default_factory=lambda: MappingProxyType({f: ABSENT for f in LOGICAL_FIELDS})
    )

    def index_of(self, logical: str) -> int:
        return self.indices[logical]

    def is_present(self, logical: str) -> bool:
        return self.indices[logical] != ABSENT

    def cell(self, row: Sequence[str], logical: str) -> str:
        """Return the stripped cell of *row* for *logical*, ``""`` if absent."""
        idx = self.indices[logical]
        if 0 <= idx < len(row):
            return row[idx].strip()
        return ""

    def cell_or_default(self, row: Sequence[str], logical: str, default: str) -> str:
        """Like ``cell`` but falls back to *default* when the cell is blank."""
        return self.cell(row, logical) or default

    def to_dict(self) -> Dict[str, int]:
        return dict(self.indices)


def build_column_map(header: Sequence[str], names: ColumnNames) -> ColumnMap:
    """Map every configured logical column to its index in *header*.

    Parameters
    ----------
    header:
        The first row of the file.
    names:
        Expected header text per logical field; empty names never match.

    Returns
    -------
    ColumnMap
        Fields without a match keep ``ABSENT`` (-1).
    """
    by_header: Dict[str, list[str]] = {}
    for logical, configured in names.items():
        if configured != "":
            by_header.setdefault(configured, []).append(logical)

    indices: Dict[str, int] = {f: ABSENT for f in LOGICAL_FIELDS}
    for i, header_name in enumerate(header):
        for logical in by_header.get(header_name, ()):
            indices[logical] = i

    missing = [f for f, idx in indices.items() if idx == ABSENT]
    if missing:
        logger.debug("Columns not found in header: %s", ", ".join(missing))

    return ColumnMap(MappingProxyType(indices))
