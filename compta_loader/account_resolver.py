"""
Account Resolution.

Picks the account an entry posts to from a bank name and a budget.

Banks usually hold one account per budget, or one account dedicated to a
budget next to a catch-all account (budget left undefined).  An account
dedicated to the requested budget is therefore always preferred over a
catch-all one at the same bank.
"""

from __future__ import annotations

from typing import List, Sequence

from compta_loader.errors import (
    AccountNotFoundError,
    AmbiguousAccountError,
    AmbiguousBankError,
)
from compta_loader.logging_setup import get_logger
from compta_loader.schema import Account, Budget

logger = get_logger("account_resolver")


def distinct_banks(accounts: Sequence[Account]) -> List[str]:
    """Bank names in order of first appearance."""
    banks: List[str] = []
    for account in accounts:
        if account.bank not in banks:
            banks.append(account.bank)
    return banks


def resolve_account(accounts: Sequence[Account], bank: str, budget: Budget) -> Account:
    """Return the single account matching *bank* and *budget*.

    Parameters
    ----------
    accounts:
        Every known account.
    bank:
        Bank name, compared case-insensitively.  May be empty when all the
        accounts are held by a single bank.
    budget:
        The (valid) budget of the entry.

    Raises
    ------
    AmbiguousBankError
        No bank given while accounts are held by several banks.
    AmbiguousAccountError
        Several accounts match at the same precedence level.
    AccountNotFoundError
        Nothing matches.
    """
    if not bank:
        banks = distinct_banks(accounts)
        if len(banks) > 1:
            raise AmbiguousBankError(banks)
        if not banks:
            raise AccountNotFoundError("", budget.label)
        bank = banks[0]

    exact: List[Account] = []
    universal: List[Account] = []
    wanted = bank.casefold()
    for account in accounts:
        if account.bank.casefold() != wanted:
            continue
        if account.budget == budget:
            exact.append(account)
        elif account.budget == Budget.UNDEFINED:
            universal.append(account)

    if len(exact) == 1:
        return exact[0]
    if len(exact) > 1:
        raise AmbiguousAccountError(bank, budget.label)
    if len(universal) == 1:
        logger.debug("No %s account at %s, using its account for both budgets", budget.label, bank)
        return universal[0]
    if len(universal) > 1:
        raise AmbiguousAccountError(bank)

    raise AccountNotFoundError(bank, budget.label)
