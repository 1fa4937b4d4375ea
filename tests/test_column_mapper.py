"""
Unit tests for the column mapping layer.
"""

from __future__ import annotations

import itertools

import pytest

from compta_loader.column_mapper import ABSENT, ColumnMap, build_column_map
from compta_loader.config import LOGICAL_FIELDS, ColumnNames


@pytest.fixture
def names() -> ColumnNames:
    return ColumnNames(
        name="Transaction_Name",
        date="Date_Of_Tx",
        amount="Tx_Amount",
        stock="",
        category="Type_Category",
        comment="",
        payment="",
        budget="Budget_Code",
        employee="Employee",
        provider="Vendor",
        kind="",
        period="",
        bank="",
    )


def _expected(**found: int) -> dict:
    result = {f: ABSENT for f in LOGICAL_FIELDS}
    result.update(found)
    return result


# ======================================================================
# Header matching
# ======================================================================

class TestBuildColumnMap:
    def test_full_match(self, names: ColumnNames) -> None:
        header = ["Date_Of_Tx", "Transaction_Name", "Tx_Amount", "Budget_Code", "Vendor"]
        columns = build_column_map(header, names)
        assert columns.to_dict() == _expected(date=0, name=1, amount=2, budget=3, provider=4)

    def test_partial_match(self, names: ColumnNames) -> None:
        columns = build_column_map(["Transaction_Name", "Tx_Amount"], names)
        assert columns.to_dict() == _expected(name=0, amount=1)

    def test_reordered_header(self, names: ColumnNames) -> None:
        columns = build_column_map(["Budget_Code", "Date_Of_Tx", "Transaction_Name"], names)
        assert columns.to_dict() == _expected(budget=0, date=1, name=2)

    def test_empty_header(self, names: ColumnNames) -> None:
        assert build_column_map([], names).to_dict() == _expected()

    def test_empty_configured_name_never_matches(self) -> None:
        names = ColumnNames(name="", date="Date_Of_Tx")
        columns = build_column_map(["Transaction_Name", ""], names)
        assert columns.index_of("name") == ABSENT

    def test_exact_match_required(self, names: ColumnNames) -> None:
        columns = build_column_map([" Date_Of_Tx ", "Transaction_Name", "tx_amount"], names)
        assert columns.index_of("date") == ABSENT
        assert columns.index_of("name") == 1
        assert columns.index_of("amount") == ABSENT

    def test_duplicate_header_last_wins(self, names: ColumnNames) -> None:
        columns = build_column_map(["Tx_Amount", "Transaction_Name", "Tx_Amount"], names)
        assert columns.index_of("amount") == 2

    def test_shared_name_maps_every_field(self) -> None:
        # Default layout: stock is read from the amount column.
        columns = build_column_map(["date", "amount"], ColumnNames())
        assert columns.index_of("amount") == 1
        assert columns.index_of("stock") == 1

    def test_default_bank_column_is_account(self) -> None:
        columns = build_column_map(["account"], ColumnNames())
        assert columns.index_of("bank") == 0

    def test_order_independent(self, names: ColumnNames) -> None:
        header = ["Date_Of_Tx", "Transaction_Name", "Tx_Amount", "Budget_Code"]
        for perm in itertools.permutations(header):
            columns = build_column_map(list(perm), names)
            for logical, configured in (
                ("date", "Date_Of_Tx"),
                ("name", "Transaction_Name"),
                ("amount", "Tx_Amount"),
                ("budget", "Budget_Code"),
            ):
                assert perm[columns.index_of(logical)] == configured


# ======================================================================
# Cell access
# ======================================================================

class TestColumnMapCells:
    @pytest.fixture
    def columns(self, names: ColumnNames) -> ColumnMap:
        return build_column_map(["Transaction_Name", "Tx_Amount"], names)

    def test_cell_is_stripped(self, columns: ColumnMap) -> None:
        assert columns.cell(["  Lunch ", "12"], "name") == "Lunch"

    def test_absent_column_reads_empty(self, columns: ColumnMap) -> None:
        assert not columns.is_present("date")
        assert columns.cell(["Lunch", "12"], "date") == ""

    def test_short_row_reads_empty(self, columns: ColumnMap) -> None:
        assert columns.cell(["Lunch"], "amount") == ""

    def test_default_only_for_blank_cells(self, columns: ColumnMap) -> None:
        assert columns.cell_or_default(["", "12"], "name", "fallback") == "fallback"
        assert columns.cell_or_default(["Lunch", "12"], "name", "fallback") == "Lunch"
        assert columns.cell_or_default(["Lunch", "12"], "kind", "depenses") == "depenses"

    def test_map_is_read_only(self, columns: ColumnMap) -> None:
        with pytest.raises(TypeError):
            columns.indices["name"] = 5  # type: ignore[index]
