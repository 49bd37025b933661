"""
Spreadsheet Host Interface

The engine writes formulas and reads committed content through this
interface only. Writes are queued by the host and become readable after
``commit()``.
"""
from __future__ import annotations

import logging
from typing import Any, Protocol, Sequence, runtime_checkable

from deal_engine.addresses import CellAddress, CellRange
from deal_engine.registry import CellReferenceRegistry


logger = logging.getLogger(__name__)


class HostError(Exception):
    """Raised by a host when a sheet operation or a cell write fails."""
    pass


class Text(str):
    """Literal cell text. Hosts store it as a string even when it starts with '='."""
    pass


@runtime_checkable
class SpreadsheetHost(Protocol):
    def create_sheet(self, name: str) -> None: ...

    def delete_sheet_if_exists(self, name: str) -> bool: ...

    def sheet_exists(self, name: str) -> bool: ...

    def write_cells(self, sheet: str, cell_range: CellRange, values: Sequence[Sequence[Any]]) -> None: ...

    def read_used_range(self, sheet: str) -> list[list[Any]]: ...

    def commit(self) -> None: ...


def recreate_sheet(host: SpreadsheetHost, registry: CellReferenceRegistry, name: str) -> None:
    """
    Destructively replace a sheet.

    Deletes the sheet if present, creates it again and drops the registry
    keys that pointed into it. Creation is retried once after another delete;
    a second failure propagates.
    """
    host.delete_sheet_if_exists(name)
    try:
        host.create_sheet(name)
    except HostError as e:
        logger.warning("Creating sheet %s failed (%s), retrying once", name, e)
        host.delete_sheet_if_exists(name)
        host.create_sheet(name)
    registry.clear_sheet(name)


class SheetBuffer:
    """Collects cell values for one sheet and flushes them row by row."""

    def __init__(self, host: SpreadsheetHost, sheet: str):
        self.host = host
        self.sheet = sheet
        self._rows: dict[int, dict[int, Any]] = {}

    def put(self, row: int, col: int, value: Any) -> CellAddress:
        self._rows.setdefault(row, {})[col] = value
        return CellAddress(self.sheet, row, col)

    def put_text(self, row: int, col: int, text: str) -> CellAddress:
        return self.put(row, col, Text(text))

    def put_row(self, row: int, start_col: int, values: Sequence[Any]) -> CellRange:
        for offset, value in enumerate(values):
            self.put(row, start_col + offset, value)
        last_col = start_col + max(len(values), 1) - 1
        return CellRange.row_span(self.sheet, row, start_col, last_col)

    def flush(self) -> None:
        for row in sorted(self._rows):
            cells = self._rows[row]
            first, last = min(cells), max(cells)
            values = [cells.get(col) for col in range(first, last + 1)]
            self.host.write_cells(
                self.sheet, CellRange.row_span(self.sheet, row, first, last), [values]
            )
        self._rows.clear()
