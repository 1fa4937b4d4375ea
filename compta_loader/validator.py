"""
Validation Layer.

Collects every rule a row breaks instead of stopping at the first one, so
that a whole spreadsheet can be corrected in a single pass.

The converter records each failure in a ``RowReport``; ``raise_if_invalid``
then turns the report into one ``RowError`` carrying all the messages.
"""

from __future__ import annotations

from typing import List

from compta_loader.errors import FieldError, RowError
from compta_loader.logging_setup import get_logger

logger = get_logger("validator")


class RowReport:
    """Accumulates field errors while one row is converted."""

    def __init__(self, row_index: int) -> None:
        self.row_index = row_index
        self.errors: List[FieldError] = []

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, error: FieldError) -> None:
        self.errors.append(error)
        logger.debug("Row %d: %s", self.row_index, error)

    def raise_if_invalid(self) -> None:
        """Raise a ``RowError`` holding every collected error, if any."""
        if self.errors:
            raise RowError(self.row_index, self.errors)
