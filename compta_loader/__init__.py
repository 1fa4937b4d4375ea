"""
Compta Loader: Spreadsheet-to-Accounting-Entry Resolution Engine.

Reads rows exported from a spreadsheet (CSV or Excel), resolves every
free-text cell against the organisation's reference data (categories,
employees, providers, periods, bank accounts) and produces validated
accounting entries ready to be posted to the bookkeeping back end.

Every row is checked completely: all the problems of a row are reported
together, and all the failing rows of a file are reported in one batch.
"""

__version__ = "1.0.0"
__author__ = "Compta Loader Team"

from compta_loader.config import LoaderConfig  # noqa: F401
from compta_loader.pipeline import BatchOutput, EntryLoadingPipeline, parse_all  # noqa: F401
from compta_loader.reference_index import ReferenceData  # noqa: F401
