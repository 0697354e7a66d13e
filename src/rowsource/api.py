from __future__ import annotations

from typing import List

from .model import InputRecord
from .rowsource import RowSource, RowSourceError, RowTable


def open_table(excel_path: str) -> RowTable:
    """Public API (RowSource)

    Contract:
    - First worksheet, opened read-only (openpyxl).
    - RowTable.records() yields one InputRecord per row from row 2 on; row 1 is the header.
    - Columns: A = header, B = number, C = initial; trimmed, missing cell -> "".
    - records() is lazy and can be consumed once.
    - Unreadable file -> RowSourceError (fatal).
    """
    return RowSource().open(excel_path)


def read_records(excel_path: str) -> List[InputRecord]:
    """Public API (RowSource): open, drain and close in one call."""
    return RowSource().read_records(excel_path)
