"""
Row-to-Entry Converter.

Turns one spreadsheet row into a validated ``Entry``.  Every field is
checked independently and all the failures of the row are reported
together in a ``RowError``.

Lookups that depend on the budget (category, stock, account) are skipped
when the budget itself is invalid: their failures would only repeat the
budget error.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional, Sequence

from compta_loader.account_resolver import resolve_account
from compta_loader.column_mapper import ColumnMap
from compta_loader.config import Defaults
from compta_loader.errors import (
    AccountError,
    AccountResolutionError,
    CategoryNotFoundError,
    DateMissingError,
    DateParseError,
    FieldError,
    InvalidBudgetError,
    InvalidKindError,
    InvalidPaymentMethodError,
    MissingPaymentMethodError,
    PartyMutualExclusionError,
    PeriodNotFoundError,
    StockParseError,
    StockRequiredError,
    UnknownEmployeeError,
    UnknownProviderError,
)
from compta_loader.logging_setup import get_logger
from compta_loader.normalizer import parse_amount
from compta_loader.reference_index import ReferenceIndex
from compta_loader.schema import (
    DATE_FORMAT,
    KIND_VALUES,
    Account,
    AllocationLine,
    Budget,
    Category,
    Entry,
    Kind,
    Party,
    PaymentMethod,
)
from compta_loader.validator import RowReport

logger = get_logger("converter")

# strptime alone would also take "1/1/2025"
_DATE_RE = re.compile(r"\d{2}/\d{2}/\d{4}")


def convert_row(
    row: Sequence[str],
    columns: ColumnMap,
    defaults: Defaults,
    row_index: int,
    accounts: Sequence[Account],
    index: ReferenceIndex,
) -> Entry:
    """Convert a raw row into an ``Entry``.

    Parameters
    ----------
    row:
        The cells of the row.
    columns:
        Logical field → column index, built from the header.
    defaults:
        Values used when a budget/category/payment/kind/period/bank cell is blank.
    row_index:
        1-based row number (0 is the header), used in messages.
    accounts:
        Accounts the entry may post to.
    index:
        Reference lookup tables.

    Raises
    ------
    RowError
        With every field error found on the row.
    """
    report = RowReport(row_index)

    entry_date = _read_date(row, columns, report)
    name = columns.cell(row, "name")
    amount = _read_amount(row, columns, report)
    comment = columns.cell(row, "comment")
    kind = _read_kind(row, columns, defaults, row_index, report)
    budget = _read_budget(row, columns, defaults, row_index, report)
    payment_method = _read_payment_method(row, columns, defaults, row_index, report)

    category: Optional[Category] = None
    stock = 0
    account: Optional[Account] = None
    if budget is not None:
        category = _read_category(row, columns, defaults, budget, row_index, index, report)
        if category is not None:
            stock = _read_stock(row, columns, category, row_index, report)
        account = _read_account(row, columns, defaults, budget, row_index, accounts, report)

    party = _read_party(row, columns, row_index, index, report)
    period_id = _read_period(row, columns, defaults, row_index, index, report)

    report.raise_if_invalid()

    logger.debug("Row %d: %r converted (%s, %s)", row_index, name, kind.value, budget.label)
    return Entry(
        period_id=period_id,
        kind=kind,
        date=entry_date,
        name=name,
        budget=budget,
        allocation=(
            AllocationLine(category_id=category.id, amount=amount, stock=stock),
        ),
        account=account,
        payment_method=payment_method,
        party=party,
        comment=comment,
    )


# ---------------------------------------------------------------------------
# Field readers.  Each records its failures in *report* and returns None.
# ---------------------------------------------------------------------------

def _read_date(row: Sequence[str], columns: ColumnMap, report: RowReport) -> Optional[date]:
    text = columns.cell(row, "date")
    if not text:
        report.add_error(DateMissingError())
        return None
    if _DATE_RE.fullmatch(text):
        try:
            return datetime.strptime(text, DATE_FORMAT).date()
        except ValueError:
            pass
    report.add_error(DateParseError(text))
    return None


def _read_amount(row: Sequence[str], columns: ColumnMap, report: RowReport) -> Optional[float]:
    try:
        return parse_amount(columns.cell(row, "amount"))
    except FieldError as exc:
        report.add_error(exc)
        return None


def _read_kind(
    row: Sequence[str],
    columns: ColumnMap,
    defaults: Defaults,
    row_index: int,
    report: RowReport,
) -> Optional[Kind]:
    text = columns.cell_or_default(row, "kind", defaults.kind)
    kind = Kind.from_string(text)
    if kind is None:
        report.add_error(InvalidKindError(text, row_index, KIND_VALUES))
    return kind


def _read_budget(
    row: Sequence[str],
    columns: ColumnMap,
    defaults: Defaults,
    row_index: int,
    report: RowReport,
) -> Optional[Budget]:
    text = columns.cell_or_default(row, "budget", defaults.budget)
    budget = Budget.from_string(text)
    if budget == Budget.UNDEFINED:
        report.add_error(InvalidBudgetError(text, row_index))
        return None
    return budget


def _read_payment_method(
    row: Sequence[str],
    columns: ColumnMap,
    defaults: Defaults,
    row_index: int,
    report: RowReport,
) -> Optional[PaymentMethod]:
    text = columns.cell_or_default(row, "payment", defaults.payment)
    if not text:
        report.add_error(MissingPaymentMethodError(row_index))
        return None
    method = PaymentMethod.from_string(text)
    if method is None:
        report.add_error(InvalidPaymentMethodError(text, row_index))
    return method


def _read_category(
    row: Sequence[str],
    columns: ColumnMap,
    defaults: Defaults,
    budget: Budget,
    row_index: int,
    index: ReferenceIndex,
    report: RowReport,
) -> Optional[Category]:
    name = columns.cell_or_default(row, "category", defaults.category)
    category = index.category(budget, name)
    if category is None:
        report.add_error(CategoryNotFoundError(
            name, budget.label, row_index, index.suggest_category(budget, name)
        ))
    return category


def _read_stock(
    row: Sequence[str],
    columns: ColumnMap,
    category: Category,
    row_index: int,
    report: RowReport,
) -> int:
    if not category.requires_stock:
        return 0

    text = columns.cell(row, "stock")
    if not text:
        report.add_error(StockRequiredError(category.name, row_index))
        return 0
    try:
        return int(text)
    except ValueError:
        report.add_error(StockParseError(text, row_index))
        return 0


def _read_party(
    row: Sequence[str],
    columns: ColumnMap,
    row_index: int,
    index: ReferenceIndex,
    report: RowReport,
) -> Party:
    employee_name = columns.cell(row, "employee")
    provider_name = columns.cell(row, "provider")

    if employee_name and provider_name:
        report.add_error(PartyMutualExclusionError(employee_name, provider_name, row_index))
        return None

    if employee_name:
        employee = index.employee(employee_name)
        if employee is None:
            report.add_error(UnknownEmployeeError(
                employee_name, row_index, index.suggest_employee(employee_name)
            ))
        return employee

    if provider_name:
        provider = index.provider(provider_name)
        if provider is None:
            report.add_error(UnknownProviderError(
                provider_name, row_index, index.suggest_provider(provider_name)
            ))
        return provider

    return None


def _read_period(
    row: Sequence[str],
    columns: ColumnMap,
    defaults: Defaults,
    row_index: int,
    index: ReferenceIndex,
    report: RowReport,
) -> Optional[str]:
    key = columns.cell_or_default(row, "period", defaults.period)
    period = index.period(key)
    if period is None:
        report.add_error(PeriodNotFoundError(key, row_index))
        return None
    return period.id


def _read_account(
    row: Sequence[str],
    columns: ColumnMap,
    defaults: Defaults,
    budget: Budget,
    row_index: int,
    accounts: Sequence[Account],
    report: RowReport,
) -> Optional[Account]:
    bank = columns.cell_or_default(row, "bank", defaults.bank)
    try:
        return resolve_account(accounts, bank, budget)
    except AccountError as exc:
        report.add_error(AccountResolutionError(exc, row_index))
        return None
