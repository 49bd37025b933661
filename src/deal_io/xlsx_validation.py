"""Workbook validation helpers for generated models."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from openpyxl import load_workbook

from deal_engine.registry import CellReferenceRegistry


@dataclass(frozen=True)
class FormulaCheck:
    sheet: str
    cells: Iterable[str]


def load_workbook_formulas(path: str):
    return load_workbook(path, data_only=False)


def _is_formula(cell) -> bool:
    return cell.data_type == "f"


def find_missing_formulas(wb, checks: Iterable[FormulaCheck]) -> list[str]:
    missing: list[str] = []
    for check in checks:
        ws = wb[check.sheet]
        for cell in check.cells:
            if not _is_formula(ws[cell]):
                missing.append(f"{check.sheet}!{cell}")
    return missing


def registry_checks(registry: CellReferenceRegistry, keys: Iterable[str]) -> list[FormulaCheck]:
    """Formula checks covering every cell of the given registry entries."""
    checks = []
    for key in keys:
        ref = registry.require(key)
        cell_range = ref.cell_range
        cells = [
            f"{cell_range.start.offset(rows=r, cols=c).a1}"
            for r in range(cell_range.height)
            for c in range(cell_range.width)
        ]
        checks.append(FormulaCheck(ref.sheet, cells))
    return checks


def find_dangling_references(wb, sheets: Iterable[str]) -> list[str]:
    """Formula cells that reference a sheet missing from the workbook."""
    known = set(wb.sheetnames)
    dangling: list[str] = []
    for sheet in sheets:
        ws = wb[sheet]
        for row in ws.iter_rows():
            for cell in row:
                if not _is_formula(cell) or "!" not in cell.value:
                    continue
                for target in _referenced_sheets(cell.value):
                    if target not in known:
                        dangling.append(f"{sheet}!{cell.coordinate}")
                        break
    return dangling


def _referenced_sheets(formula: str) -> list[str]:
    names = []
    for part in formula.split("!")[:-1]:
        if part.endswith("'"):
            start = part.rfind("'", 0, len(part) - 1)
            names.append(part[start + 1:-1].replace("''", "'"))
        else:
            token = ""
            for ch in reversed(part):
                if ch.isalnum() or ch in "_.":
                    token = ch + token
                else:
                    break
            names.append(token)
    return names
