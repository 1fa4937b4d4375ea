"""
Pipeline Orchestrator.

The central entry point that wires together every layer:

    Rows  →  Column Mapper (header)  →  Row Converter (per row,
             Reference Index + Account Resolver + Amount Parser)
          →  Batch output / aggregated errors  →  (optional) receipts

Usage
-----
>>> from compta_loader.config import LoaderConfig
>>> from compta_loader.pipeline import EntryLoadingPipeline
>>> from compta_loader.reference_index import ReferenceData
>>>
>>> pipe = EntryLoadingPipeline(LoaderConfig())
>>> output = pipe.load_csv("entries.csv", ReferenceData.from_json("dump.json"))
>>> print(output.to_dict())
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from compta_loader.column_mapper import ColumnMap, build_column_map
from compta_loader.config import ColumnNames, Defaults, LoaderConfig
from compta_loader.converter import convert_row
from compta_loader.errors import BatchError, EmptyFileError, LoaderError, RowError, RowReadError
from compta_loader.logging_setup import configure_logging, for_source, get_logger
from compta_loader.receipts import attach_receipts
from compta_loader.readers import open_csv_rows, open_excel_rows, read_csv_text
from compta_loader.reference_index import ReferenceData, index_reference_data
from compta_loader.schema import Entry

logger = get_logger("pipeline")


@dataclass
class BatchOutput:
    """Aggregate result of one batch run."""

    entries: List[Entry] = field(default_factory=list)
    # 1-based source row of each entry, parallel to ``entries``
    entry_rows: List[int] = field(default_factory=list)
    row_errors: List[LoaderError] = field(default_factory=list)
    columns: Optional[ColumnMap] = None

    @property
    def success(self) -> bool:
        return len(self.row_errors) == 0

    @property
    def error(self) -> Optional[BatchError]:
        """All row failures joined into one error, ``None`` when clean."""
        if self.success:
            return None
        return BatchError(self.row_errors, self.entries)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "entries": [
                dict(e.to_dict(), row=row)
                for e, row in zip(self.entries, self.entry_rows)
            ],
            "errors": [_error_to_dict(e) for e in self.row_errors],
            "columns": self.columns.to_dict() if self.columns else {},
        }


def _error_to_dict(error: LoaderError) -> Dict[str, Any]:
    if isinstance(error, RowError):
        return {
            "row": error.row_index,
            "messages": [str(e) for e in error.errors],
            "types": [type(e).__name__ for e in error.errors],
        }
    return {
        "row": getattr(error, "row_index", None),
        "messages": [str(error)],
        "types": [type(error).__name__],
    }


def parse_all(
    rows: Iterable[List[str]],
    names: ColumnNames,
    defaults: Defaults,
    reference: ReferenceData,
    strict: bool = True,
    suggestion_threshold: float = 80.0,
    source: str = "<rows>",
) -> BatchOutput:
    """Convert every row of a source into entries.

    Parameters
    ----------
    rows:
        Header first, then one list of cells per record.  Readers may raise
        ``RowReadError`` from ``next()`` for a malformed record; reading then
        resumes with the following one.
    names:
        Configured header text per logical field.
    defaults:
        Fallback cell values.
    reference:
        Accounts, categories, employees, providers and periods.
    strict:
        When True, any failing row raises ``BatchError`` and no entry is
        returned.  When False, the entries of the valid rows come back
        together with the row errors.
    source:
        Name of the file or sheet, prefixed to every log line of the batch.

    Raises
    ------
    ReferenceDataError
        No account or no period is defined.
    EmptyFileError
        The source has no header (in both modes).
    BatchError
        In strict mode, when at least one row failed.
    """
    log = for_source(logger, source)
    reference.check_usable()

    iterator = iter(rows)
    try:
        header = next(iterator)
    except StopIteration:
        raise EmptyFileError() from None

    columns = build_column_map(header, names)
    log.info("Header read. Mapped columns: %s", columns.to_dict())

    index = index_reference_data(reference, suggestion_threshold)
    accounts = reference.accounts

    output = BatchOutput(columns=columns)
    row_index = 0
    while True:
        row_index += 1
        try:
            row = next(iterator)
        except StopIteration:
            break
        except RowReadError as exc:
            log.warning("Row %d unreadable: %s", exc.row_index, exc.reason)
            output.row_errors.append(exc)
            row_index = exc.row_index
            continue

        # Readers know the real record number (they skip comments/blanks).
        row_index = getattr(iterator, "row_index", row_index)
        try:
            entry = convert_row(row, columns, defaults, row_index, accounts, index)
        except RowError as exc:
            log.warning(
                "Row %d rejected with %d error(s)", row_index, len(exc.errors)
            )
            output.row_errors.append(exc)
            continue

        output.entries.append(entry)
        output.entry_rows.append(row_index)

    log.info(
        "Batch complete: entries=%d, rejected rows=%d",
        len(output.entries),
        len(output.row_errors),
    )

    if strict and not output.success:
        raise BatchError(output.row_errors)

    return output


class EntryLoadingPipeline:
    """Loads spreadsheet exports into entries according to a ``LoaderConfig``.

    Parameters
    ----------
    config:
        All tuneable knobs.  Defaults to lower-case column names and strict mode.
    """

    def __init__(self, config: Optional[LoaderConfig] = None) -> None:
        self._config = config or LoaderConfig()

        # Bootstrap logging before anything else
        configure_logging(level=self._config.log_level)

        logger.info(
            "Pipeline initialised: strict=%s, receipts=%s",
            self._config.strict_mode,
            self._config.receipts_folder,
        )

    @property
    def config(self) -> LoaderConfig:
        return self._config

    # ------------------------------------------------------------------ #
    # Convenience entry points (one per input format)
    # ------------------------------------------------------------------ #

    def load_csv(self, path: Union[str, Path], reference: ReferenceData) -> BatchOutput:
        """Load a CSV file; it is closed on every exit path."""
        with open_csv_rows(path, self._config.csv) as rows:
            return self._run(rows, reference, Path(path).name)

    def load_csv_text(
        self, text: str, reference: ReferenceData, source: str = "<upload>"
    ) -> BatchOutput:
        return self._run(read_csv_text(text, self._config.csv), reference, source)

    def load_excel(
        self,
        path: Union[str, Path],
        reference: ReferenceData,
        sheet: Optional[str] = None,
    ) -> BatchOutput:
        """Load the first (or named) worksheet of an ``.xlsx`` workbook."""
        source = Path(path).name if sheet is None else f"{Path(path).name}:{sheet}"
        with open_excel_rows(path, sheet) as rows:
            return self._run(rows, reference, source)

    def load_rows(self, rows: Iterable[List[str]], reference: ReferenceData) -> BatchOutput:
        """Load pre-split rows, header first."""
        return self._run(rows, reference, "<rows>")

    # ------------------------------------------------------------------ #
    # Core pipeline logic
    # ------------------------------------------------------------------ #

    def _run(
        self, rows: Iterable[List[str]], reference: ReferenceData, source: str
    ) -> BatchOutput:
        output = parse_all(
            rows,
            self._config.columns,
            self._config.defaults,
            reference,
            strict=self._config.strict_mode,
            suggestion_threshold=self._config.suggestion_threshold,
            source=source,
        )

        if self._config.receipts_folder and output.entries:
            output.entries = attach_receipts(
                self._config.receipts_folder, output.entries, output.entry_rows
            )
        return output
