from __future__ import annotations

import datetime as dt
from pathlib import Path
from typing import Any, Iterator, List, Optional

from openpyxl import load_workbook
from openpyxl.workbook.workbook import Workbook

from src.errors.api import FatalInputError
from .model import InputRecord


FIRST_DATA_ROW: int = 2
COLUMN_HEADER: int = 0  # A
COLUMN_NUMBER: int = 1  # B
COLUMN_INITIAL: int = 2  # C
LAST_COLUMN: int = 3


class RowSourceError(FatalInputError):
    pass


class RowTable:
    """One worksheet opened read-only; rows are streamed once."""

    def __init__(self, workbook: Workbook, source_path: str):
        self._workbook = workbook
        self._sheet = workbook.worksheets[0]
        # Stored <dimension> may be stale; read every row present in the sheet XML.
        self._sheet.reset_dimensions()
        self._consumed = False
        self.source_path = source_path

    def __enter__(self) -> "RowTable":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._workbook.close()

    def records(self) -> Iterator[InputRecord]:
        if self._consumed:
            raise RowSourceError(f"records already read from {self.source_path}")
        self._consumed = True
        return self._iter_records()

    def _iter_records(self) -> Iterator[InputRecord]:
        rows = self._sheet.iter_rows(min_row=FIRST_DATA_ROW, max_col=LAST_COLUMN, values_only=True)
        row_number = FIRST_DATA_ROW
        while True:
            try:
                values = next(rows)
            except StopIteration:
                return
            except Exception as e:
                raise RowSourceError(f"Cannot read row {row_number} of {self.source_path}: {e}") from e
            yield InputRecord(
                row_number=row_number,
                header=_cell_text(values, COLUMN_HEADER),
                number=_cell_text(values, COLUMN_NUMBER),
                initial=_cell_text(values, COLUMN_INITIAL),
            )
            row_number += 1


class RowSource:
    def open(self, excel_path: str) -> RowTable:
        path = Path(excel_path)
        if not path.exists():
            raise RowSourceError(f"Spreadsheet not found: {path}")
        try:
            wb = load_workbook(str(path), read_only=True, data_only=True)
        except Exception as e:
            raise RowSourceError(f"Cannot open spreadsheet {path}: {e}") from e
        if not wb.worksheets:
            wb.close()
            raise RowSourceError(f"Spreadsheet has no worksheets: {path}")
        return RowTable(wb, str(path))

    def read_records(self, excel_path: str) -> List[InputRecord]:
        with self.open(excel_path) as table:
            return list(table.records())


def _cell_text(values: tuple, index: int) -> str:
    value: Optional[Any] = values[index] if index < len(values) else None
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, dt.datetime):
        if value.time() == dt.time(0, 0):
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, (dt.date, dt.time)):
        return value.isoformat()
    return str(value).strip()
