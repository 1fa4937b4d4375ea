"""
Bookkeeping vocabulary and data models.

Defines the fixed vocabularies of the bookkeeping back end (budgets, entry
kinds, payment methods, period statuses), the reference records it lists
(accounts, categories, employees, providers, periods) and the ``Entry`` that
a spreadsheet row is converted into.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum, IntEnum
from typing import Any, Optional, Tuple, Union


# Dates are written DD/MM/YYYY by the back end and in the spreadsheets.
DATE_FORMAT = "%d/%m/%Y"


# ---------------------------------------------------------------------------
# Vocabularies
# ---------------------------------------------------------------------------

class Budget(IntEnum):
    """Budget an entry is charged to.

    The ``.value`` is the numeric code used by the back end.
    """

    UNDEFINED = 0
    FON = 1
    ASC = 2

    @property
    def label(self) -> str:
        if self is Budget.UNDEFINED:
            return "unknown"
        return self.name

    def __str__(self) -> str:
        return self.label

    @classmethod
    def from_string(cls, text: str) -> "Budget":
        """Case-insensitive parse; ``AEP`` is read as ``FON``."""
        upper = text.upper()
        if upper in ("FON", "AEP"):
            return cls.FON
        if upper == "ASC":
            return cls.ASC
        return cls.UNDEFINED

    @classmethod
    def from_code(cls, code: Optional[int]) -> "Budget":
        """Decode the back-end code; ``None``, 0 and 3 mean both budgets."""
        if code is None or code in (0, 3):
            return cls.UNDEFINED
        if code == 1:
            return cls.FON
        if code == 2:
            return cls.ASC
        raise ValueError(f"unknown Budget value: {code}")


class Kind(str, Enum):
    """Entry type; the ``.value`` is the wire string."""

    SPEND = "depenses"
    TAKE = "recettes"
    ALLOCATION = "attributions"

    @classmethod
    def from_string(cls, text: str) -> Optional["Kind"]:
        for kind in cls:
            if kind.value == text:
                return kind
        return None


class PaymentMethod(IntEnum):
    """Payment methods with their back-end codes."""

    CHECK_RECEIVED = 12
    CASH = 13
    CARD = 14
    TRANSFER = 15
    DIRECT_DEBIT = 16
    CHECK_EMITTED = 22
    CHECK_ALLOCATION = 23

    @property
    def label(self) -> str:
        return self.name.lower().replace("_", " ")

    def __str__(self) -> str:
        return self.label

    @classmethod
    def from_string(cls, text: str) -> Optional["PaymentMethod"]:
        """Case-insensitive lookup by label (``"direct debit"``)."""
        lower = text.lower()
        for method in cls:
            if method.label == lower:
                return method
        return None


class PeriodStatus(IntEnum):
    UNDEFINED = 0
    CURRENT = 1
    PROVISIONALLY_CLOSED = 2
    DEFINITELY_CLOSED = 3

    @classmethod
    def from_code(cls, code: Optional[int]) -> "PeriodStatus":
        if code is None:
            return cls.UNDEFINED
        try:
            return cls(code)
        except ValueError:
            raise ValueError(f"unknown PeriodStatus value: {code}") from None


PAYMENT_METHOD_LABELS: Tuple[str, ...] = tuple(m.label for m in PaymentMethod)
KIND_VALUES: Tuple[str, ...] = tuple(k.value for k in Kind)


# ---------------------------------------------------------------------------
# Reference records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Account:
    """A bank account; ``Budget.UNDEFINED`` means usable for both budgets."""

    id: int
    bank: str
    budget: Budget = Budget.UNDEFINED
    abbrev: str = ""


@dataclass(frozen=True)
class Category:
    id: int
    name: str
    budget: Budget
    requires_stock: bool = False
    parent_id: int = 0
    kind: Optional[Kind] = None


@dataclass(frozen=True)
class Employee:
    id: str
    lastname: str
    firstname: str
    active: bool = True

    @property
    def full_name(self) -> str:
        """``"Lastname Firstname"``, the form used in spreadsheets."""
        return f"{self.lastname} {self.firstname}"


@dataclass(frozen=True)
class Provider:
    id: str
    name: str
    address: str = ""
    zip_code: str = ""
    city: str = ""
    phone: str = ""
    email: str = ""
    comment: str = ""
    archived: bool = False


@dataclass(frozen=True)
class Period:
    id: str
    start: date
    end: date
    status: PeriodStatus = PeriodStatus.UNDEFINED

    @property
    def key(self) -> str:
        """``"DD/MM/YYYY-DD/MM/YYYY"`` as typed in the period column."""
        return f"{self.start.strftime(DATE_FORMAT)}-{self.end.strftime(DATE_FORMAT)}"


#: Counterpart of an entry: nobody, an employee or a provider.
Party = Union[Employee, Provider, None]


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AllocationLine:
    category_id: int
    amount: float
    stock: int = 0


@dataclass(frozen=True)
class Entry:
    """A fully resolved accounting entry, ready for submission."""

    period_id: str
    kind: Kind
    date: date
    name: str
    budget: Budget
    allocation: Tuple[AllocationLine, ...]
    account: Account
    payment_method: PaymentMethod
    party: Party = None
    comment: str = ""
    receipts: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def employee(self) -> Optional[Employee]:
        return self.party if isinstance(self.party, Employee) else None

    @property
    def provider(self) -> Optional[Provider]:
        return self.party if isinstance(self.party, Provider) else None

    def to_dict(self) -> dict[str, Any]:
        """Serialise with the back end's conventions (decimal comma)."""
        return {
            "period_id": self.period_id,
            "kind": self.kind.value,
            "budget": int(self.budget),
            "date": self.date.strftime(DATE_FORMAT),
            "name": self.name,
            "allocation": [
                {
                    "category_id": line.category_id,
                    "amount": f"{line.amount:.2f}".replace(".", ","),
                    "stock": line.stock if line.stock else "",
                }
                for line in self.allocation
            ],
            "employee_id": self.employee.id if self.employee else "0",
            "provider_id": self.provider.id if self.provider else "0",
            "payment_method": int(self.payment_method),
            "account_id": self.account.id,
            "comment": self.comment,
            "receipts": list(self.receipts),
        }
