"""
Openpyxl Spreadsheet Host

In-memory workbook implementing the engine's host interface. Structural
changes apply immediately; cell writes are queued and land on ``commit()``.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional, Sequence

from openpyxl import Workbook, load_workbook
from openpyxl.cell.cell import TYPE_STRING
from openpyxl.utils.exceptions import IllegalCharacterError

from deal_engine.addresses import CellRange
from deal_engine.host import HostError, Text
from deal_io.writers import style_model_workbook


logger = logging.getLogger(__name__)


def _plain(value: Any) -> Any:
    return str(value) if isinstance(value, Text) else value


class OpenpyxlHost:
    """Spreadsheet host backed by an openpyxl Workbook."""

    def __init__(self, workbook: Optional[Workbook] = None, assumptions_sheet: str = "Assumptions"):
        if workbook is None:
            workbook = Workbook()
            workbook.remove(workbook.active)
        self.workbook = workbook
        self.assumptions_sheet = assumptions_sheet
        self._pending: list[tuple[str, CellRange, list[list[Any]]]] = []

    @classmethod
    def load(cls, path: str | Path, assumptions_sheet: str = "Assumptions") -> "OpenpyxlHost":
        """Open a saved workbook with formulas (not cached values)."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Workbook not found: {path}")
        return cls(load_workbook(path, data_only=False), assumptions_sheet)

    @property
    def sheet_names(self) -> list[str]:
        return list(self.workbook.sheetnames)

    @property
    def pending_writes(self) -> int:
        return len(self._pending)

    def sheet_exists(self, name: str) -> bool:
        return name in self.workbook.sheetnames

    def create_sheet(self, name: str) -> None:
        if self.sheet_exists(name):
            raise HostError(f"Sheet already exists: {name}")
        self.workbook.create_sheet(title=name)
        logger.debug("Created sheet %s", name)

    def delete_sheet_if_exists(self, name: str) -> bool:
        self._pending = [write for write in self._pending if write[0] != name]
        if not self.sheet_exists(name):
            return False
        self.workbook.remove(self.workbook[name])
        logger.debug("Deleted sheet %s", name)
        return True

    def write_cells(self, sheet: str, cell_range: CellRange, values: Sequence[Sequence[Any]]) -> None:
        if not self.sheet_exists(sheet):
            raise HostError(f"Cannot write to missing sheet: {sheet}")
        rows = [list(row) for row in values]
        if len(rows) != cell_range.height or any(len(row) != cell_range.width for row in rows):
            raise HostError(
                f"Values do not fit {cell_range.to_address_string()}: "
                f"expected {cell_range.height}x{cell_range.width}"
            )
        self._pending.append((sheet, cell_range, rows))

    def commit(self) -> None:
        """
        Apply queued writes in order.

        The queue is emptied even when a write fails, so a rejected value is
        not replayed by the next commit.
        """
        pending, self._pending = self._pending, []
        for sheet, cell_range, rows in pending:
            if not self.sheet_exists(sheet):
                raise HostError(f"Sheet removed before commit: {sheet}")
            ws = self.workbook[sheet]
            for r, row in enumerate(rows):
                for c, value in enumerate(row):
                    if value is None:
                        continue
                    target = cell_range.start.offset(rows=r, cols=c)
                    try:
                        cell = ws.cell(row=target.row, column=target.col, value=_plain(value))
                    except (IllegalCharacterError, ValueError) as e:
                        raise HostError(f"Cannot write {value!r} to {target.to_address_string()}: {e}") from e
                    if isinstance(value, Text):
                        cell.data_type = TYPE_STRING
        if pending:
            logger.debug("Committed %d writes", len(pending))

    def read_used_range(self, sheet: str) -> list[list[Any]]:
        """Committed content from A1 to the last used cell."""
        if not self.sheet_exists(sheet):
            raise HostError(f"Sheet not found: {sheet}")
        ws = self.workbook[sheet]
        if ws.max_row == 1 and ws.max_column == 1 and ws.cell(1, 1).value is None:
            return []
        return [
            list(row)
            for row in ws.iter_rows(min_row=1, max_row=ws.max_row, max_col=ws.max_column, values_only=True)
        ]

    def save(self, path: str | Path, styled: bool = True) -> Path:
        """Commit pending writes and save the workbook."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.commit()
        if styled:
            style_model_workbook(self.workbook, assumptions_sheet=self.assumptions_sheet)
        self.workbook.save(path)
        logger.info("Saved workbook to %s", path)
        return path
