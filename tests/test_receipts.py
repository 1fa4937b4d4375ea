"""
Unit tests for receipts matching.
"""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import List

import pytest

from compta_loader.errors import ReceiptError
from compta_loader.receipts import (
    MAX_RECEIPT_FILE_SIZE,
    attach_receipts,
    check_and_get_files,
    employee_entry_map,
)
from compta_loader.schema import (
    Account,
    AllocationLine,
    Budget,
    Employee,
    Entry,
    Kind,
    Party,
    PaymentMethod,
    Provider,
)

ALICE = Employee(id="E1", lastname="Smith", firstname="Alice")
JOHN = Employee(id="E2", lastname="Doe", firstname="John")


def _entry(name: str, party: Party = None) -> Entry:
    return Entry(
        period_id="12345",
        kind=Kind.SPEND,
        date=date(2025, 1, 1),
        name=name,
        budget=Budget.FON,
        allocation=(AllocationLine(category_id=100, amount=10.0),),
        account=Account(id=10, bank="First National Bank", budget=Budget.FON),
        payment_method=PaymentMethod.CARD,
        party=party,
    )


def _make_file(directory: Path, name: str, size: int = 100) -> str:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_bytes(b"T" * size)
    return str(path)


@pytest.fixture
def entries() -> List[Entry]:
    return [
        _entry("Entry 1", ALICE),
        _entry("Entry 2", ALICE),
        _entry("Entry 3", JOHN),
    ]


# ======================================================================
# Folder checks
# ======================================================================

class TestCheckAndGetFiles:
    def test_up_to_three_files(self, tmp_path: Path) -> None:
        expected = [_make_file(tmp_path, f"file_{i}.txt") for i in range(1, 4)]
        (tmp_path / "ignored_dir").mkdir()
        assert check_and_get_files(tmp_path) == expected

    def test_file_at_size_limit(self, tmp_path: Path) -> None:
        _make_file(tmp_path, "big.pdf", MAX_RECEIPT_FILE_SIZE)
        assert len(check_and_get_files(tmp_path)) == 1

    def test_too_many_files(self, tmp_path: Path) -> None:
        for i in range(4):
            _make_file(tmp_path, f"{i}.pdf", 1)
        with pytest.raises(ReceiptError, match="found 4 receipt files"):
            check_and_get_files(tmp_path)

    def test_file_too_large(self, tmp_path: Path) -> None:
        _make_file(tmp_path, "huge.pdf", MAX_RECEIPT_FILE_SIZE + 1)
        with pytest.raises(ReceiptError, match="is too large"):
            check_and_get_files(tmp_path)

    def test_empty_directory(self, tmp_path: Path) -> None:
        assert check_and_get_files(tmp_path) == []


def test_employee_entry_map() -> None:
    entries = [
        _entry("0", JOHN),
        _entry("1", ALICE),
        _entry("2", JOHN),
        _entry("3", Provider(id="P1", name="Vendor")),
        _entry("4"),
        _entry("5", Employee(id="E3", lastname="Jane", firstname="Mary")),
    ]

    assert employee_entry_map(entries) == {
        "doe john": [0, 2],
        "john doe": [0, 2],
        "smith alice": [1],
        "alice smith": [1],
        "jane mary": [5],
        "mary jane": [5],
    }


# ======================================================================
# Attaching
# ======================================================================

class TestAttachReceipts:
    def test_no_folder(self, entries: List[Entry]) -> None:
        result = attach_receipts(None, entries)
        assert all(e.receipts == () for e in result)

    def test_global_receipts(self, entries: List[Entry], tmp_path: Path) -> None:
        expected = (_make_file(tmp_path, "g1.pdf"), _make_file(tmp_path, "g2.pdf"))

        result = attach_receipts(tmp_path, entries)

        assert [e.receipts for e in result] == [expected] * 3

    def test_originals_untouched(self, entries: List[Entry], tmp_path: Path) -> None:
        _make_file(tmp_path, "g1.pdf")
        attach_receipts(tmp_path, entries)
        assert entries[0].receipts == ()

    def test_subfolders_by_number_and_employee(
        self, entries: List[Entry], tmp_path: Path
    ) -> None:
        numbered = (_make_file(tmp_path / "3", "entry3.png"),)
        by_name = (_make_file(tmp_path / "alice smith", "alice.jpg"),)
        (tmp_path / "empty").mkdir()

        result = attach_receipts(tmp_path, entries)

        assert result[0].receipts == by_name
        assert result[1].receipts == by_name
        assert result[2].receipts == numbered

    def test_employee_folder_any_order_and_case(
        self, entries: List[Entry], tmp_path: Path
    ) -> None:
        receipts = (_make_file(tmp_path / "DOE John", "taxi.pdf"),)
        result = attach_receipts(tmp_path, entries)
        assert result[2].receipts == receipts
        assert result[0].receipts == ()

    def test_numbers_follow_source_rows(
        self, entries: List[Entry], tmp_path: Path
    ) -> None:
        receipts = (_make_file(tmp_path / "5", "r.pdf"),)
        result = attach_receipts(tmp_path, entries, numbers=[1, 2, 5])
        assert result[2].receipts == receipts

    def test_unmatched_folder_ignored(self, entries: List[Entry], tmp_path: Path) -> None:
        _make_file(tmp_path / "42", "r.pdf")
        _make_file(tmp_path / "nobody", "r.pdf")
        result = attach_receipts(tmp_path, entries)
        assert all(e.receipts == () for e in result)

    def test_too_many_receipts_in_subfolder(
        self, entries: List[Entry], tmp_path: Path
    ) -> None:
        for i in range(4):
            _make_file(tmp_path / "invalid", f"{i}.pdf", 1)
        _make_file(tmp_path / "valid", "doc.pdf")

        with pytest.raises(ReceiptError, match="found 4 receipt files in "):
            attach_receipts(tmp_path, entries)

    def test_missing_root_folder(self, entries: List[Entry], tmp_path: Path) -> None:
        with pytest.raises(ReceiptError, match="failed to read root receipts folder"):
            attach_receipts(tmp_path / "missing", entries)
