"""
Returns Calculator

Unlevered IRR, Levered IRR and MOIC over the assembled FCF rows, both as
worksheet formulas and as numbers for previews.
"""
from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np

from deal_engine.addresses import CellRange
from deal_engine.ai import CompletionFn, build_returns_prompt, request_formulas
from deal_engine.discovery import StructureDiscoverer
from deal_engine.host import SheetBuffer, SpreadsheetHost
from deal_engine.models import ModelInput, StagePath
from deal_engine.registry import CellReferenceRegistry, MissingReferenceError


logger = logging.getLogger(__name__)

NO_SOLUTION = "No Solution"

FCF_KEYS = ("fcf_unlevered", "fcf_levered", "fcf_equity_distributions")

LABEL_COL = 1
VALUE_COL = 2


def compute_irr(cash_flows: Sequence[float]) -> Optional[float]:
    """
    Internal rate of return of a periodic cash-flow series.

    Solves sum(c_t * x^t) = 0 for x = 1 / (1 + r) and keeps the real root
    closest to r = 0. Returns None when no real solution exists.
    """
    flows = np.asarray(cash_flows, dtype=float)
    if flows.size < 2 or not (np.any(flows > 0) and np.any(flows < 0)):
        return None

    roots = np.roots(flows[::-1])
    real = roots[np.abs(roots.imag) < 1e-9].real
    real = real[real > 0]
    if real.size == 0:
        return None
    rates = 1.0 / real - 1.0
    return float(rates[np.argmin(np.abs(rates))])


def compute_moic(cash_flows: Sequence[float]) -> Optional[float]:
    """Distributions after period 0 over the absolute period-0 outlay."""
    if len(cash_flows) < 2 or cash_flows[0] == 0:
        return None
    return float(sum(cash_flows[1:]) / abs(cash_flows[0]))


def irr_formula(row: CellRange) -> str:
    return f'=IFERROR(IRR({row.a1}),"{NO_SOLUTION}")'


def moic_formula(row: CellRange) -> str:
    distributions = CellRange(row.start.offset(cols=1), row.end)
    return f"=SUM({distributions.a1})/ABS({row.start.a1})"


class ReturnsCalculator:
    """Writes the RETURNS block below the equity flows on the FCF sheet."""

    def __init__(
        self,
        host: SpreadsheetHost,
        registry: CellReferenceRegistry,
        sheet: str = "FCF",
        completion: Optional[CompletionFn] = None,
        discoverer: Optional[StructureDiscoverer] = None,
    ):
        self.host = host
        self.registry = registry
        self.sheet = sheet
        self.completion = completion
        self.discoverer = discoverer or StructureDiscoverer(host)

    def resolve_references(self) -> None:
        missing = [key for key in FCF_KEYS if key not in self.registry]
        if not missing:
            return
        still_missing = self.discoverer.recover(self.registry, missing)
        if still_missing:
            raise MissingReferenceError(still_missing[0], "returns")

    def template_formulas(self) -> dict[str, str]:
        unlevered = self.registry.require("fcf_unlevered", "returns").cell_range
        levered = self.registry.require("fcf_levered", "returns").cell_range
        distributions = self.registry.require("fcf_equity_distributions", "returns").cell_range
        return {
            "unleveredIRR": irr_formula(unlevered),
            "leveredIRR": irr_formula(levered),
            "leveredMOIC": moic_formula(distributions),
        }

    def compile(self, model: ModelInput, period_count: int) -> StagePath:
        self.resolve_references()
        formulas = self.template_formulas()
        path = StagePath.SUCCESS_WITH_TEMPLATE

        if self.completion is not None:
            prompt = build_returns_prompt(model, self.registry, period_count)
            suggested = request_formulas(self.completion, prompt)
            if suggested:
                used = [key for key in formulas if key in suggested]
                for key in used:
                    formulas[key] = suggested[key]
                if used:
                    path = StagePath.SUCCESS_WITH_AI
                    logger.info("Using AI formulas for %s", ", ".join(used))

        anchor = self.registry.require("fcf_equity_distributions", "returns").address
        buffer = SheetBuffer(self.host, self.sheet)
        title_row = anchor.row + 2
        buffer.put(title_row, LABEL_COL, "RETURNS")
        rows = (
            ("unleveredIRR", "Unlevered IRR", "irr_unlevered"),
            ("leveredIRR", "Levered IRR", "irr_levered"),
            ("leveredMOIC", "MOIC", "moic"),
        )
        for offset, (formula_key, label, registry_key) in enumerate(rows, start=1):
            row = title_row + offset
            buffer.put(row, LABEL_COL, label)
            cell = buffer.put(row, VALUE_COL, formulas[formula_key])
            self.registry.record(registry_key, cell)
        buffer.flush()

        logger.info("Returns written on %s (%s)", self.sheet, path.value)
        return path
