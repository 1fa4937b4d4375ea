"""
Receipts Matching.

Attaches scanned receipts found on disk to the loaded entries.

Layouts of the receipts folder
------------------------------
* only files, no sub-folder: every file goes to every entry;
* sub-folders: each one is matched by name, either to a 1-based entry
  number or to an employee full name ("lastname firstname" or
  "firstname lastname", case-insensitive).

A folder never holds more than ``MAX_RECEIPTS`` files, each at most
``MAX_RECEIPT_FILE_SIZE`` bytes.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from compta_loader.errors import ReceiptError
from compta_loader.logging_setup import get_logger
from compta_loader.schema import Entry

logger = get_logger("receipts")

MAX_RECEIPT_FILE_SIZE = 2 * 1024 * 1024
MAX_RECEIPTS = 3


def check_and_get_files(directory: Union[str, Path]) -> List[str]:
    """List the receipt files of *directory*, sorted by name.

    Nested directories are ignored.

    Raises
    ------
    ReceiptError
        The directory cannot be read, holds a file over the size limit or
        more than ``MAX_RECEIPTS`` files.
    """
    directory = Path(directory)
    try:
        children = sorted(directory.iterdir())
    except OSError as exc:
        raise ReceiptError(f"failed to read directory {directory}: {exc}") from exc

    receipts: List[str] = []
    for child in children:
        if child.is_dir():
            continue
        size = child.stat().st_size
        if size > MAX_RECEIPT_FILE_SIZE:
            raise ReceiptError(
                f"receipt file {child} is too large "
                f"({size / (1024 * 1024):.2f}MB > 2MB)"
            )
        receipts.append(str(child))

    if len(receipts) > MAX_RECEIPTS:
        raise ReceiptError(
            f"found {len(receipts)} receipt files in {directory}, "
            f"but maximum is {MAX_RECEIPTS} per entry"
        )
    return receipts


def employee_entry_map(entries: Sequence[Entry]) -> Dict[str, List[int]]:
    """Lower-cased employee full names (both orders) → positions in *entries*."""
    mapping: Dict[str, List[int]] = {}
    for position, entry in enumerate(entries):
        employee = entry.employee
        if employee is None:
            continue
        last_first = f"{employee.lastname} {employee.firstname}".strip().lower()
        first_last = f"{employee.firstname} {employee.lastname}".strip().lower()
        if last_first:
            mapping.setdefault(last_first, []).append(position)
        if first_last and first_last != last_first:
            mapping.setdefault(first_last, []).append(position)
    return mapping


def attach_receipts(
    folder: Optional[Union[str, Path]],
    entries: Sequence[Entry],
    numbers: Optional[Sequence[int]] = None,
) -> List[Entry]:
    """Return copies of *entries* with the matching receipts attached.

    Parameters
    ----------
    folder:
        Root receipts folder.  Nothing is attached when empty.
    entries:
        Loaded entries.
    numbers:
        1-based number of each entry, matched against numeric sub-folder
        names.  Defaults to the position of the entry plus one.
    """
    result = list(entries)
    if not folder:
        return result

    root = Path(folder)
    try:
        items = sorted(root.iterdir())
    except OSError as exc:
        raise ReceiptError(f"failed to read root receipts folder {root}: {exc}") from exc

    subfolders = [item for item in items if item.is_dir()]
    has_files = any(not item.is_dir() for item in items)

    if not subfolders:
        if has_files:
            receipts = tuple(check_and_get_files(root))
            logger.info("Attaching %d global receipt(s) to every entry", len(receipts))
            result = [replace(e, receipts=receipts) for e in result]
        return result

    if numbers is None:
        numbers = range(1, len(result) + 1)
    by_number = {number: position for position, number in enumerate(numbers)}
    by_employee = employee_entry_map(result)

    for sub in subfolders:
        try:
            receipts = tuple(check_and_get_files(sub))
        except ReceiptError as exc:
            raise ReceiptError(f"error processing receipt folder {sub.name}: {exc}") from exc
        if not receipts:
            continue

        positions: List[int]
        if sub.name.isdigit() and int(sub.name) in by_number:
            positions = [by_number[int(sub.name)]]
        else:
            positions = by_employee.get(sub.name.lower(), [])

        if not positions:
            logger.warning("Receipt folder '%s' matches no entry, ignored", sub.name)
            continue
        for position in positions:
            result[position] = replace(result[position], receipts=receipts)
        logger.debug("Receipt folder '%s' attached to %d entry(ies)", sub.name, len(positions))

    return result
