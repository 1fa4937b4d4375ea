"""
Reference Index Builder.

The bookkeeping back end lists accounts, categories, employees, providers
and accounting periods.  ``ReferenceData`` holds those raw lists (and can
decode them from a JSON dump); ``build_reference_index`` turns them into the
read-only lookup tables the row converter queries:

* categories: ``"<budget>|<category name>"`` (exact, case-sensitive)
* employees:  ``"lastname firstname"`` lower-cased, diacritics removed
* providers:  provider name lower-cased
* periods:    ``"DD/MM/YYYY-DD/MM/YYYY"``; ``""`` is the current period
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from compta_loader.errors import ReferenceDataError
from compta_loader.fuzzy_matcher import FuzzyMatcher
from compta_loader.logging_setup import get_logger
from compta_loader.normalizer import normalize_person, normalize_provider
from compta_loader.schema import (
    DATE_FORMAT,
    Account,
    Budget,
    Category,
    Employee,
    Kind,
    Period,
    PeriodStatus,
    Provider,
)

logger = get_logger("reference_index")


# ---------------------------------------------------------------------------
# Raw reference lists
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ReferenceData:
    """The five lists supplied by the bookkeeping back end."""

    accounts: Tuple[Account, ...] = ()
    categories: Tuple[Category, ...] = ()
    employees: Tuple[Employee, ...] = ()
    providers: Tuple[Provider, ...] = ()
    periods: Tuple[Period, ...] = ()

    def check_usable(self) -> None:
        """Raise if entries cannot possibly be built from this data."""
        if not self.accounts:
            raise ReferenceDataError("no bank account defined in the bookkeeping data")
        if not self.periods:
            raise ReferenceDataError("no accounting period defined in the bookkeeping data")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ReferenceData":
        """Decode the back end's JSON shapes (see ``_decode_*``)."""
        try:
            return cls(
                accounts=tuple(_decode_account(a) for a in data.get("accounts") or []),
                categories=tuple(_decode_category(c) for c in data.get("categories") or []),
                employees=tuple(_decode_employee(e) for e in data.get("employees") or []),
                providers=tuple(_decode_provider(p) for p in data.get("providers") or []),
                periods=tuple(_decode_period(p) for p in data.get("periods") or []),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ReferenceDataError(f"failed to parse reference data: {exc}") from exc

    @classmethod
    def from_json(cls, source: Union[str, Path]) -> "ReferenceData":
        """Read from a JSON file path or a JSON string."""
        if isinstance(source, Path) or not source.lstrip().startswith("{"):
            try:
                with open(source, encoding="utf-8") as fh:
                    data = json.load(fh)
            except OSError as exc:
                raise ReferenceDataError(
                    f"failed to read reference data {source}: {exc}"
                ) from exc
            except json.JSONDecodeError as exc:
                raise ReferenceDataError(f"invalid reference data JSON: {exc}") from exc
        else:
            try:
                data = json.loads(source)
            except json.JSONDecodeError as exc:
                raise ReferenceDataError(f"invalid reference data JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise ReferenceDataError(
                f"Unsupported reference data root type: {type(data).__name__}"
            )
        return cls.from_dict(data)


def _decode_account(raw: Mapping[str, Any]) -> Account:
    return Account(
        id=int(raw["id"]),
        bank=str(raw.get("banque") or ""),
        budget=Budget.from_code(raw.get("type")),
        abbrev=str(raw.get("abreviation") or ""),
    )


def _decode_category(raw: Mapping[str, Any]) -> Category:
    kind = raw.get("type")
    return Category(
        id=int(raw["id"]),
        name=str(raw["name"]),
        budget=Budget.from_code(raw.get("section_id")),
        requires_stock=raw.get("stock") == 1,
        parent_id=int(raw.get("parent_id") or 0),
        kind=Kind.from_string(kind) if isinstance(kind, str) else None,
    )


def _decode_employee(raw: Mapping[str, Any]) -> Employee:
    return Employee(
        id=str(raw["id"]),
        lastname=str(raw["lastname"]),
        firstname=str(raw["firstname"]),
        active=bool(raw.get("active", True)),
    )


def _decode_provider(raw: Mapping[str, Any]) -> Provider:
    return Provider(
        id=str(raw["id"]),
        name=str(raw["name"]),
        address=str(raw.get("address") or ""),
        zip_code=str(raw.get("zip_code") or ""),
        city=str(raw.get("city") or ""),
        phone=str(raw.get("phone") or ""),
        email=str(raw.get("email") or ""),
        comment=str(raw.get("comment") or ""),
        archived=bool(raw.get("archived", False)),
    )


def _decode_period(raw: Mapping[str, Any]) -> Period:
    return Period(
        id=str(raw["id"]),
        start=datetime.strptime(raw["start"], DATE_FORMAT).date(),
        end=datetime.strptime(raw["end"], DATE_FORMAT).date(),
        status=PeriodStatus.from_code(raw.get("status")),
    )


# ---------------------------------------------------------------------------
# Lookup index
# ---------------------------------------------------------------------------

def category_key(budget: Budget, name: str) -> str:
    return f"{budget.label}|{name}"


def employee_key(lastname: str, firstname: str) -> str:
    return normalize_person(f"{lastname} {firstname}")


@dataclass(frozen=True)
class ReferenceIndex:
    """Read-only lookup tables for one batch."""

    categories: Mapping[str, Category] = field(default_factory=lambda: MappingProxyType({}))
    employees: Mapping[str, Employee] = field(default_factory=lambda: MappingProxyType({}))
    providers: Mapping[str, Provider] = field(default_factory=lambda: MappingProxyType({}))
    periods: Mapping[str, Period] = field(default_factory=lambda: MappingProxyType({}))
    suggestion_threshold: float = 80.0

    # ------------------------------------------------------------------ #
    # Lookups
    # ------------------------------------------------------------------ #

    def category(self, budget: Budget, name: str) -> Optional[Category]:
        return self.categories.get(category_key(budget, name))

    def employee(self, name: str) -> Optional[Employee]:
        """Find an employee written ``"Lastname Firstname"`` in any case/accents."""
        return self.employees.get(normalize_person(name))

    def provider(self, name: str) -> Optional[Provider]:
        return self.providers.get(normalize_provider(name))

    def period(self, key: str) -> Optional[Period]:
        """``""`` resolves to the current period."""
        return self.periods.get(key)

    # ------------------------------------------------------------------ #
    # Suggestions for error messages
    # ------------------------------------------------------------------ #

    def suggest_category(self, budget: Budget, name: str) -> Optional[str]:
        names = [c.name for c in self.categories.values() if c.budget == budget]
        return FuzzyMatcher(names, self.suggestion_threshold).suggest_name(name)

    def suggest_employee(self, name: str) -> Optional[str]:
        names = [e.full_name for e in self.employees.values()]
        return FuzzyMatcher(names, self.suggestion_threshold).suggest_name(
            normalize_person(name)
        )

    def suggest_provider(self, name: str) -> Optional[str]:
        names = [p.name for p in self.providers.values()]
        return FuzzyMatcher(names, self.suggestion_threshold).suggest_name(name)


def build_categories_index(categories: Iterable[Category]) -> Dict[str, Category]:
    return {category_key(c.budget, c.name): c for c in categories}


def build_employees_index(employees: Iterable[Employee]) -> Dict[str, Employee]:
    return {employee_key(e.lastname, e.firstname): e for e in employees}


def build_providers_index(providers: Iterable[Provider]) -> Dict[str, Provider]:
    return {normalize_provider(p.name): p for p in providers}


def build_periods_index(periods: Iterable[Period]) -> Dict[str, Period]:
    """Key periods by their date range; ``""`` maps to the current one.

    Only one period should be current.  If several are, the last one listed
    keeps the ``""`` key.
    """
    index: Dict[str, Period] = {}
    current: List[Period] = []
    for period in periods:
        index[period.key] = period
        if period.status == PeriodStatus.CURRENT:
            index[""] = period
            current.append(period)

    if len(current) > 1:
        logger.warning(
            "%d periods are marked current (%s); using %s by default",
            len(current),
            ", ".join(p.key for p in current),
            current[-1].key,
        )
    return index


def build_reference_index(
    categories: Iterable[Category] = (),
    employees: Iterable[Employee] = (),
    providers: Iterable[Provider] = (),
    periods: Iterable[Period] = (),
    suggestion_threshold: float = 80.0,
) -> ReferenceIndex:
    """Build the four lookup tables.  Never fails."""
    index = ReferenceIndex(
        categories=MappingProxyType(build_categories_index(categories)),
        employees=MappingProxyType(build_employees_index(employees)),
        providers=MappingProxyType(build_providers_index(providers)),
        periods=MappingProxyType(build_periods_index(periods)),
        suggestion_threshold=suggestion_threshold,
    )
    logger.debug(
        "Reference index built: categories=%d, employees=%d, providers=%d, periods=%d",
        len(index.categories),
        len(index.employees),
        len(index.providers),
        len(index.periods),
    )
    return index


def index_reference_data(
    reference: ReferenceData, suggestion_threshold: float = 80.0
) -> ReferenceIndex:
    """Shortcut for ``build_reference_index`` over a ``ReferenceData``."""
    return build_reference_index(
        reference.categories,
        reference.employees,
        reference.providers,
        reference.periods,
        suggestion_threshold=suggestion_threshold,
    )
