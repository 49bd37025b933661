"""
XLSX Model Layout

Column layout shared by the period-indexed sheets of a generated model.
"""
from __future__ import annotations

from dataclasses import dataclass

from openpyxl.utils import get_column_letter


@dataclass(frozen=True)
class SheetLayout:
    """Layout of period-based tables: labels in column A, periods from ``start_col``."""
    start_col: int = 2
    header_row: int = 3

    @staticmethod
    def cell(col: int, row: int) -> str:
        return f"{get_column_letter(col)}{row}"
