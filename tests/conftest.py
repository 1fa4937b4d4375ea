"""
Shared fixtures: a small bookkeeping reference set and column layout.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import List

import pytest

from compta_loader.column_mapper import ColumnMap, build_column_map
from compta_loader.config import ColumnNames, Defaults, LoaderConfig
from compta_loader.reference_index import (
    ReferenceData,
    ReferenceIndex,
    build_reference_index,
)
from compta_loader.schema import (
    Account,
    Budget,
    Category,
    Employee,
    Period,
    PeriodStatus,
    Provider,
)

FULL_HEADER = [
    "DATE", "NAME", "AMOUNT", "CATEGORY", "BUDGET", "EMPLOYEE", "PROVIDER",
    "PAYMENT", "KIND", "COMMENT", "STOCK", "PERIOD", "BANK",
]


@pytest.fixture
def accounts() -> List[Account]:
    return [
        Account(id=10, bank="First National Bank", budget=Budget.FON, abbrev="FNB"),
        Account(id=20, bank="Global Reserve", budget=Budget.ASC, abbrev="GR"),
    ]


@pytest.fixture
def categories() -> List[Category]:
    return [
        Category(id=100, name="Office Supplies", budget=Budget.FON),
        Category(id=101, name="Rent", budget=Budget.FON),
        Category(id=200, name="Gifts", budget=Budget.ASC),
        Category(id=201, name="Check Alloc", budget=Budget.ASC, requires_stock=True),
        Category(id=300, name="Unused", budget=Budget.FON),
    ]


@pytest.fixture
def employees() -> List[Employee]:
    return [
        Employee(id="E10", lastname="DOE", firstname="JOHN"),
        Employee(id="E11", lastname="Lefèvre", firstname="Zoé"),
    ]


@pytest.fixture
def providers() -> List[Provider]:
    return [Provider(id="P50", name="TechCorp Solutions", city="Faketown")]


@pytest.fixture
def periods() -> List[Period]:
    return [
        Period(
            id="12345",
            start=date(2025, 1, 1),
            end=date(2025, 12, 31),
            status=PeriodStatus.CURRENT,
        ),
        Period(
            id="12346",
            start=date(2024, 1, 1),
            end=date(2024, 12, 31),
            status=PeriodStatus.DEFINITELY_CLOSED,
        ),
    ]


@pytest.fixture
def reference(accounts, categories, employees, providers, periods) -> ReferenceData:
    return ReferenceData(
        accounts=tuple(accounts),
        categories=tuple(categories),
        employees=tuple(employees),
        providers=tuple(providers),
        periods=tuple(periods),
    )


@pytest.fixture
def index(categories, employees, providers, periods) -> ReferenceIndex:
    return build_reference_index(categories, employees, providers, periods)


@pytest.fixture
def column_names() -> ColumnNames:
    return ColumnNames(**{name.lower(): name for name in FULL_HEADER})


@pytest.fixture
def full_columns(column_names: ColumnNames) -> ColumnMap:
    return build_column_map(FULL_HEADER, column_names)


@pytest.fixture
def defaults() -> Defaults:
    return Defaults(
        budget="FON",
        category="Office Supplies",
        payment="card",
        kind="depenses",
        period="",
    )


@pytest.fixture
def loader_config(column_names: ColumnNames, defaults: Defaults) -> LoaderConfig:
    return LoaderConfig(
        columns=column_names,
        defaults=defaults,
        log_level=logging.WARNING,
    )
