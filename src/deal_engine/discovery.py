"""
Structure Discovery

Recovers registry entries from already committed sheets by scanning the label
column for known markers. Best effort: an absent marker is reported as not
found and never replaced by a guessed row.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from deal_engine.addresses import CellAddress, CellRange
from deal_engine.config import SheetNames
from deal_engine.host import SpreadsheetHost
from deal_engine.registry import CellReferenceRegistry


logger = logging.getLogger(__name__)

LABEL_COL = 1
FIRST_VALUE_COL = 2


@dataclass(frozen=True)
class Marker:
    """
    A label pattern identifying one known row.

    ``name`` doubles as the registry key. A label matches when it contains any
    of ``patterns`` and none of ``excludes`` (case-insensitive). ``whole_word``
    markers only match patterns standing as separate words. ``value_only``
    markers resolve to the single value cell next to the label.
    """
    name: str
    patterns: tuple[str, ...]
    excludes: tuple[str, ...] = ()
    value_only: bool = False
    whole_word: bool = False

    def matches(self, label: str) -> bool:
        text = label.lower()
        if any(ex in text for ex in self.excludes):
            return False
        if self.whole_word:
            return any(re.search(rf"\b{re.escape(p)}\b", text) for p in self.patterns)
        return any(p in text for p in self.patterns)


OPERATING_MARKERS = (
    Marker("total_revenue", ("total revenue",)),
    Marker("noi", ("net operating income", "noi"), whole_word=True),
    Marker("total_opex", ("total operating expense",)),
    Marker("total_capex", ("total capex", "total capital expenditure")),
    Marker("interest_expense", ("interest expense",)),
    Marker("net_income", ("net income",)),
)

DEBT_MARKERS = (
    Marker("debt_balance", ("outstanding debt balance",)),
    Marker("debt_rate", ("interest rate",)),
    Marker("debt_expense", ("debt expense",)),
)

FCF_MARKERS = (
    Marker("fcf_unlevered", ("unlevered cashflows", "unlevered free cash flow")),
    Marker("fcf_levered", ("levered cashflows", "levered free cash flow"), excludes=("unlevered",)),
    Marker("fcf_equity_distributions", ("equity distributions",)),
)

ASSUMPTION_MARKERS = tuple(
    Marker(name, (pattern,), value_only=True)
    for name, pattern in (
        ("deal_value", "deal value"),
        ("transaction_fee", "transaction fee"),
        ("deal_ltv", "deal ltv"),
        ("equity_contribution", "equity contribution"),
        ("debt_financing", "debt financing"),
        ("loan_issuance_fees", "loan issuance fee"),
        ("fixed_interest_rate", "fixed interest rate"),
        ("disposal_cost", "disposal cost"),
        ("terminal_cap_rate", "terminal cap rate"),
        ("discount_rate", "discount rate"),
    )
)


@dataclass(frozen=True)
class MarkerLocation:
    marker: str
    row: int
    label: str
    cell_range: CellRange


@dataclass
class SheetStructure:
    """Markers found on one sheet."""
    sheet: str
    exists: bool = True
    last_col: int = 0
    locations: dict[str, MarkerLocation] = field(default_factory=dict)

    def find(self, marker: str) -> Optional[MarkerLocation]:
        return self.locations.get(marker)

    def __contains__(self, marker: object) -> bool:
        return marker in self.locations

    @property
    def found(self) -> bool:
        return bool(self.locations)

    def record_into(self, registry: CellReferenceRegistry, overwrite: bool = False) -> list[str]:
        """Record discovered locations; existing keys are kept unless ``overwrite``."""
        recorded = []
        for name, location in self.locations.items():
            if name in registry and not overwrite:
                continue
            registry.record_range(name, location.cell_range)
            recorded.append(name)
        return recorded


def _last_populated_col(rows: list[list[Any]]) -> int:
    last = 0
    for row in rows:
        for idx in range(len(row), 0, -1):
            if row[idx - 1] not in (None, ""):
                last = max(last, idx)
                break
    return last


class StructureDiscoverer:
    """Scans committed sheet content for known row labels."""

    def __init__(self, host: SpreadsheetHost, sheet_names: Optional[SheetNames] = None):
        self.host = host
        self.sheet_names = sheet_names or SheetNames()

    def discover(self, sheet: str, markers: Iterable[Marker]) -> SheetStructure:
        if not self.host.sheet_exists(sheet):
            logger.info("Sheet %s not found, nothing to discover", sheet)
            return SheetStructure(sheet=sheet, exists=False)

        rows = self.host.read_used_range(sheet)
        last_col = _last_populated_col(rows)
        structure = SheetStructure(sheet=sheet, last_col=last_col)
        pending = list(markers)

        for row_idx, row in enumerate(rows, start=1):
            if not pending or not row:
                continue
            label = row[LABEL_COL - 1]
            if not isinstance(label, str) or not label.strip():
                continue
            for marker in list(pending):
                if not marker.matches(label):
                    continue
                if marker.value_only:
                    cell = CellAddress(sheet, row_idx, FIRST_VALUE_COL)
                    cell_range = CellRange(cell, cell)
                elif last_col >= FIRST_VALUE_COL:
                    cell_range = CellRange.row_span(sheet, row_idx, FIRST_VALUE_COL, last_col)
                else:
                    continue
                structure.locations[marker.name] = MarkerLocation(
                    marker.name, row_idx, label.strip(), cell_range
                )
                pending.remove(marker)

        logger.info(
            "Discovered %d of %d markers on %s",
            len(structure.locations),
            len(structure.locations) + len(pending),
            sheet,
        )
        return structure

    def discover_assumptions(self) -> SheetStructure:
        return self.discover(self.sheet_names.assumptions, ASSUMPTION_MARKERS)

    def discover_projections(self) -> SheetStructure:
        return self.discover(self.sheet_names.projections, OPERATING_MARKERS)

    def discover_capex(self) -> SheetStructure:
        return self.discover(self.sheet_names.capex, OPERATING_MARKERS)

    def discover_debt(self) -> SheetStructure:
        return self.discover(self.sheet_names.debt, DEBT_MARKERS)

    def discover_fcf(self) -> SheetStructure:
        return self.discover(self.sheet_names.fcf, FCF_MARKERS)

    def discover_all(self) -> dict[str, SheetStructure]:
        return {
            structure.sheet: structure
            for structure in (
                self.discover_assumptions(),
                self.discover_projections(),
                self.discover_capex(),
                self.discover_debt(),
                self.discover_fcf(),
            )
        }

    def recover(self, registry: CellReferenceRegistry, keys: Iterable[str]) -> list[str]:
        """
        Fill missing registry keys from committed sheets.

        Returns the keys that are still missing afterwards.
        """
        missing = [key for key in keys if key not in registry]
        if not missing:
            return []
        for structure in self.discover_all().values():
            structure.record_into(registry)
        still_missing = [key for key in missing if key not in registry]
        if still_missing:
            logger.warning("References not recoverable from the workbook: %s", ", ".join(still_missing))
        return still_missing
