"""
Row Sources.

Reads the spreadsheet export into rows of strings, one list per record, the
header first.  Two formats are supported:

* delimited text (CSV) with a configurable field delimiter and comment
  character;
* Excel workbooks (``.xlsx``) through ``openpyxl``.

Readers are iterators that keep counting records after a malformed one: a
broken line raises ``RowReadError`` from ``next()`` and the following call
returns the next record.  The header is record 0.
"""

from __future__ import annotations

import csv
from contextlib import contextmanager
from datetime import date, datetime
from io import StringIO
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

import openpyxl

from compta_loader.config import CsvConfig
from compta_loader.errors import RowReadError
from compta_loader.logging_setup import get_logger
from compta_loader.schema import DATE_FORMAT

logger = get_logger("readers")


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------

class CsvRowReader:
    """Iterate over the records of delimited text.

    *lines* may be ``str`` or raw ``bytes``; bytes are decoded as UTF-8 one
    line at a time, so an undecodable byte only spoils the record it is in.
    Blank lines are skipped, and so are lines starting with the comment
    character where a record begins (not inside a quoted multi-line cell).
    Neither is counted.  Every record must have as many fields as the header.
    """

    def __init__(
        self, lines: Iterable[Union[str, bytes]], config: Optional[CsvConfig] = None
    ) -> None:
        config = config or CsvConfig()
        fmt: Dict[str, Any] = {"strict": True}
        if config.delimiter:
            fmt["delimiter"] = config.delimiter
        self._comment = config.comment
        self._record_start = True
        self._undecodable = False
        self._reader = csv.reader(self._text_lines(lines), **fmt)
        self._expected_fields: Optional[int] = None
        self.row_index = -1

    def _text_lines(self, lines: Iterable[Union[str, bytes]]) -> Iterator[str]:
        first = True
        for raw in lines:
            bad = False
            if isinstance(raw, bytes):
                try:
                    line = raw.decode("utf-8")
                except UnicodeDecodeError:
                    line = raw.decode("utf-8", errors="replace")
                    bad = True
            else:
                line = raw
            if first:
                # Spreadsheet tools put a BOM in front of the header.
                line = line[1:] if line.startswith("\ufeff") else line
                first = False

            if self._record_start and self._comment and line.startswith(self._comment):
                continue
            self._record_start = False
            self._undecodable = self._undecodable or bad
            yield line

    def __iter__(self) -> "CsvRowReader":
        return self

    def __next__(self) -> List[str]:
        while True:
            self._record_start = True
            self._undecodable = False
            try:
                row = next(self._reader)
            except csv.Error as exc:
                self.row_index += 1
                raise RowReadError(self.row_index, str(exc)) from exc
            if row:
                break

        self.row_index += 1
        if self._undecodable:
            raise RowReadError(self.row_index, "invalid UTF-8 byte sequence")
        if self._expected_fields is None:
            self._expected_fields = len(row)
        elif len(row) != self._expected_fields:
            raise RowReadError(
                self.row_index,
                f"wrong number of fields: expected {self._expected_fields}, got {len(row)}",
            )
        return row


@contextmanager
def open_csv_rows(
    path: Union[str, Path], config: Optional[CsvConfig] = None
) -> Iterator[CsvRowReader]:
    """Open a CSV file; the handle is closed when the block exits."""
    path = Path(path)
    with open(path, "rb") as fh:
        logger.info("Reading CSV file %s", path)
        yield CsvRowReader(fh, config)


def read_csv_text(text: str, config: Optional[CsvConfig] = None) -> CsvRowReader:
    """Reader over in-memory CSV text."""
    return CsvRowReader(StringIO(text, newline=""), config)


# ---------------------------------------------------------------------------
# Excel
# ---------------------------------------------------------------------------

def cell_to_text(value: Any) -> str:
    """Render a worksheet cell the way it would appear in a CSV export."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.strftime(DATE_FORMAT)
    if isinstance(value, date):
        return value.strftime(DATE_FORMAT)
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        # Always two decimals: "100.5" or "10.125" would otherwise be read
        # with the dot as a European thousands separator.
        text = f"{round(value, 2):.2f}"
        if value < 0:
            # The US amount pattern has no sign; use the European decimal comma.
            text = text.replace(".", ",")
        return text
    return str(value)


class ExcelRowReader:
    """Iterate over the rows of one worksheet as lists of strings.

    Fully empty rows are skipped and not counted.
    """

    def __init__(self, worksheet: Any) -> None:
        self._rows = worksheet.iter_rows(values_only=True)
        self._width: Optional[int] = None
        self.row_index = -1

    def __iter__(self) -> "ExcelRowReader":
        return self

    def __next__(self) -> List[str]:
        while True:
            values = next(self._rows)
            cells = [cell_to_text(v) for v in values]
            if any(cells):
                break

        self.row_index += 1
        if self._width is None:
            # Header width; blank trailing header cells do not count.
            while cells and cells[-1] == "":
                cells.pop()
            self._width = len(cells)
        return cells[: self._width] + [""] * (self._width - len(cells))


@contextmanager
def open_excel_rows(
    path: Union[str, Path], sheet: Optional[str] = None
) -> Iterator[ExcelRowReader]:
    """Open a workbook and read its first (or *sheet*) worksheet."""
    path = Path(path)
    wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
    try:
        ws = wb[sheet] if sheet else wb.worksheets[0]
        logger.info("Reading sheet '%s' of %s", ws.title, path)
        yield ExcelRowReader(ws)
    finally:
        wb.close()
