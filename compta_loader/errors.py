"""
Error types raised or collected while loading entries.

Field-level problems are *collected* by the row converter and surfaced
together through ``RowError``; the batch driver gathers every ``RowError``
(and every unreadable line) into a single ``BatchError``.  Only the fatal
conditions (empty file, unusable reference data or configuration, invalid
receipts) abort a run on their own.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence


class LoaderError(Exception):
    """Base class for every error raised by ``compta_loader``."""


# ---------------------------------------------------------------------------
# Fatal errors
# ---------------------------------------------------------------------------

class EmptyFileError(LoaderError):
    """The source has no header row at all."""

    def __init__(self, message: str = "CSV file is empty") -> None:
        super().__init__(message)


class ReferenceDataError(LoaderError):
    """Reference records could not be read or are unusable."""


class ConfigError(LoaderError):
    """A configuration value is malformed."""


class ReceiptError(LoaderError):
    """A receipts folder breaks the size or count limits."""


# ---------------------------------------------------------------------------
# Row structure
# ---------------------------------------------------------------------------

class RowReadError(LoaderError):
    """A source line could not be decoded or split into cells."""

    def __init__(self, row_index: int, reason: str) -> None:
        self.row_index = row_index
        self.reason = reason
        super().__init__(f"failed to read row {row_index}: {reason}")


# ---------------------------------------------------------------------------
# Field errors (collected per row)
# ---------------------------------------------------------------------------

class FieldError(LoaderError):
    """A single rule violated by one cell of a row."""

    #: Logical column the error belongs to.
    field: str = ""


class DateMissingError(FieldError):
    field = "date"

    def __init__(self) -> None:
        super().__init__("date column is missing or empty")


class DateParseError(FieldError):
    field = "date"

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(
            f"failed to parse date '{value}': expected DD/MM/YYYY"
        )


class EmptyAmountError(FieldError):
    field = "amount"

    def __init__(self) -> None:
        super().__init__("amount is missing or empty")


class AmountParseError(FieldError):
    field = "amount"

    def __init__(self, original: str, cleaned: str) -> None:
        self.original = original
        self.cleaned = cleaned
        super().__init__(
            f"failed to parse amount '{original}' (cleaned: '{cleaned}')"
        )


class InvalidKindError(FieldError):
    field = "kind"

    def __init__(self, value: str, row_index: int, accepted: Sequence[str]) -> None:
        self.value = value
        super().__init__(
            f"invalid entry type '{value}' on row {row_index}, "
            f"accepted values are {', '.join(accepted[:-1])} and {accepted[-1]}"
        )


class InvalidBudgetError(FieldError):
    field = "budget"

    def __init__(self, value: str, row_index: int) -> None:
        self.value = value
        super().__init__(f"invalid budget '{value}' on row {row_index}")


class InvalidPaymentMethodError(FieldError):
    field = "payment"

    def __init__(self, value: str, row_index: int) -> None:
        self.value = value
        super().__init__(f"invalid payment method '{value}' on row {row_index}")


class MissingPaymentMethodError(FieldError):
    field = "payment"

    def __init__(self, row_index: int) -> None:
        super().__init__(f"missing payment method on row {row_index}")


class CategoryNotFoundError(FieldError):
    field = "category"

    def __init__(
        self,
        category: str,
        budget: str,
        row_index: int,
        suggestion: Optional[str] = None,
    ) -> None:
        self.category = category
        self.budget = budget
        message = (
            f"invalid category '{category}' name / '{budget}' budget "
            f"combination for row {row_index}"
        )
        if suggestion:
            message += f", did you mean '{suggestion}'?"
        super().__init__(message)


class StockRequiredError(FieldError):
    field = "stock"

    def __init__(self, category: str, row_index: int) -> None:
        self.category = category
        super().__init__(
            f"no stock defined for row {row_index} but {category} category needs it"
        )


class StockParseError(FieldError):
    field = "stock"

    def __init__(self, value: str, row_index: int) -> None:
        self.value = value
        super().__init__(
            f"failed to parse '{value}' stock as an integer for row {row_index}"
        )


class PartyMutualExclusionError(FieldError):
    field = "party"

    def __init__(self, employee: str, provider: str, row_index: int) -> None:
        self.employee = employee
        self.provider = provider
        super().__init__(
            f"row {row_index} has both employee ('{employee}') and "
            f"provider ('{provider}') specified"
        )


class UnknownEmployeeError(FieldError):
    field = "employee"

    def __init__(
        self, name: str, row_index: int, suggestion: Optional[str] = None
    ) -> None:
        self.name = name
        message = (
            f"unknown employee '{name}' for row {row_index}, the value needs "
            f"to be in the <Lastname> <Firstname> format"
        )
        if suggestion:
            message += f", did you mean '{suggestion}'?"
        super().__init__(message)


class UnknownProviderError(FieldError):
    field = "provider"

    def __init__(
        self, name: str, row_index: int, suggestion: Optional[str] = None
    ) -> None:
        self.name = name
        message = (
            f"unknown provider '{name}' for row {row_index}, the value needs "
            f"to match the name of an existing provider"
        )
        if suggestion:
            message += f", did you mean '{suggestion}'?"
        super().__init__(message)


class PeriodNotFoundError(FieldError):
    field = "period"

    def __init__(self, period: str, row_index: int) -> None:
        self.period = period
        super().__init__(
            f"couldn't find the '{period}' period for row {row_index}. "
            f"Is there a current one defined?"
        )


# ---------------------------------------------------------------------------
# Account resolution
# ---------------------------------------------------------------------------

class AccountError(LoaderError):
    """The target account cannot be determined."""


class AmbiguousBankError(AccountError):
    def __init__(self, banks: Sequence[str]) -> None:
        self.banks = list(banks)
        super().__init__(
            "more than one bank found, you have to provide the name of the "
            "bank holding the account"
        )


class AmbiguousAccountError(AccountError):
    def __init__(self, bank: str, budget: Optional[str] = None) -> None:
        self.bank = bank
        self.budget = budget
        if budget is None:
            message = (
                f"more than one account found for the both budgets at {bank} "
                f"bank. This is not supported yet"
            )
        else:
            message = (
                f"more than one account found for the {budget} budget at "
                f"{bank} bank. This is not supported yet"
            )
        super().__init__(message)


class AccountNotFoundError(AccountError):
    def __init__(self, bank: str, budget: str) -> None:
        self.bank = bank
        self.budget = budget
        super().__init__(
            f"no account found matching the {budget} budget at {bank} bank"
        )


class AccountResolutionError(FieldError):
    """Row-level wrapper around an ``AccountError``."""

    field = "bank"

    def __init__(self, cause: AccountError, row_index: int) -> None:
        self.cause = cause
        super().__init__(f"failed to find the account for row {row_index}: {cause}")


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------

class RowError(LoaderError):
    """Every field error found on one row."""

    def __init__(self, row_index: int, errors: List[FieldError]) -> None:
        self.row_index = row_index
        self.errors = list(errors)
        super().__init__(
            f"failed to process entry on row {row_index}:\n"
            + "\n".join(f"  - {e}" for e in self.errors)
        )

    def of_type(self, kind: type) -> List[FieldError]:
        """Return the collected errors that are instances of *kind*."""
        return [e for e in self.errors if isinstance(e, kind)]


class BatchError(LoaderError):
    """Aggregate of all the row failures of a batch run."""

    def __init__(
        self,
        row_errors: List[LoaderError],
        entries: Optional[List[Any]] = None,
    ) -> None:
        self.row_errors = list(row_errors)
        self.entries = list(entries or [])
        super().__init__(
            f"{len(self.row_errors)} row(s) could not be loaded:\n"
            + "\n".join(str(e) for e in self.row_errors)
        )

    @property
    def row_indices(self) -> List[int]:
        return [getattr(e, "row_index", -1) for e in self.row_errors]
