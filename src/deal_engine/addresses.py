"""
Cell Addresses

Structured (sheet, row, column) addresses with offset arithmetic and a single
serializer, so formula text never depends on ad hoc column-letter math.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from openpyxl.utils import get_column_letter
from openpyxl.utils.cell import coordinate_from_string, column_index_from_string


_BARE_SHEET_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_.]*$")
# Names such as FY2025 or Q1 read as cell references unless quoted.
_CELL_LIKE_NAME = re.compile(r"^[A-Za-z]{1,3}\d+$")


def quote_sheet_name(sheet: str) -> str:
    """Quote a sheet name for use in a formula reference when required."""
    if _BARE_SHEET_NAME.match(sheet) and not _CELL_LIKE_NAME.match(sheet):
        return sheet
    return "'{}'".format(sheet.replace("'", "''"))


def _split_sheet(text: str) -> tuple[Optional[str], str]:
    if "!" not in text:
        return None, text
    sheet, _, coord = text.rpartition("!")
    if sheet.startswith("'") and sheet.endswith("'"):
        sheet = sheet[1:-1].replace("''", "'")
    return sheet, coord


@dataclass(frozen=True)
class CellAddress:
    """A single cell, 1-based row and column."""
    sheet: str
    row: int
    col: int

    def __post_init__(self) -> None:
        if self.row < 1 or self.col < 1:
            raise ValueError(f"Cell address out of bounds: row={self.row}, col={self.col}")

    def offset(self, rows: int = 0, cols: int = 0) -> "CellAddress":
        return CellAddress(self.sheet, self.row + rows, self.col + cols)

    @property
    def column_letter(self) -> str:
        return get_column_letter(self.col)

    @property
    def a1(self) -> str:
        return f"{self.column_letter}{self.row}"

    def to_address_string(self) -> str:
        """Sheet-qualified reference, e.g. ``'Debt Model'!C6``."""
        return f"{quote_sheet_name(self.sheet)}!{self.a1}"

    def reference_from(self, sheet: str) -> str:
        """Reference as written in a formula on ``sheet`` (bare A1 when local)."""
        if sheet == self.sheet:
            return self.a1
        return self.to_address_string()

    @classmethod
    def parse(cls, text: str, default_sheet: Optional[str] = None) -> "CellAddress":
        sheet, coord = _split_sheet(text.strip())
        sheet = sheet or default_sheet
        if not sheet:
            raise ValueError(f"Cell reference has no sheet: {text}")
        column, row = coordinate_from_string(coord.replace("$", ""))
        return cls(sheet, row, column_index_from_string(column))

    def __str__(self) -> str:
        return self.to_address_string()


@dataclass(frozen=True)
class CellRange:
    """A rectangular range on one sheet."""
    start: CellAddress
    end: CellAddress

    def __post_init__(self) -> None:
        if self.start.sheet != self.end.sheet:
            raise ValueError("A range cannot span sheets")

    @property
    def sheet(self) -> str:
        return self.start.sheet

    @property
    def a1(self) -> str:
        return f"{self.start.a1}:{self.end.a1}"

    @property
    def width(self) -> int:
        return self.end.col - self.start.col + 1

    @property
    def height(self) -> int:
        return self.end.row - self.start.row + 1

    def to_address_string(self) -> str:
        return f"{quote_sheet_name(self.sheet)}!{self.a1}"

    def reference_from(self, sheet: str) -> str:
        if sheet == self.sheet:
            return self.a1
        return self.to_address_string()

    @classmethod
    def row_span(cls, sheet: str, row: int, first_col: int, last_col: int) -> "CellRange":
        return cls(CellAddress(sheet, row, first_col), CellAddress(sheet, row, last_col))

    @classmethod
    def parse(cls, text: str, default_sheet: Optional[str] = None) -> "CellRange":
        sheet, coords = _split_sheet(text.strip())
        sheet = sheet or default_sheet
        first, _, last = coords.partition(":")
        start = CellAddress.parse(first, sheet)
        end = CellAddress.parse(last, sheet) if last else start
        return cls(start, end)

    def __str__(self) -> str:
        return self.to_address_string()
