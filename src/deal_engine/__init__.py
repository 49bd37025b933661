"""
Deal Model Generation Engine

Compiles deal assumptions into a linked network of spreadsheet formulas:
- Assumptions sheet as the single source of truth
- Growth projections (P&L and CapEx) with period-aware compounding
- Interest-only debt schedule with bullet repayment
- Unlevered and levered free cash flow, IRR and MOIC
- Structure discovery to recover cell references from a saved workbook
"""
from deal_engine.models import (
    Granularity,
    GrowthKind,
    LineItem,
    LineItemCategory,
    DebtTerms,
    ModelInput,
    GenerationResult,
    GenerationSummary,
    StagePath,
)
from deal_engine.registry import CellReferenceRegistry, CellReference, MissingReferenceError
from deal_engine.engine import ModelGenerator

__all__ = [
    "Granularity",
    "GrowthKind",
    "LineItem",
    "LineItemCategory",
    "DebtTerms",
    "ModelInput",
    "GenerationResult",
    "GenerationSummary",
    "StagePath",
    "CellReferenceRegistry",
    "CellReference",
    "MissingReferenceError",
    "ModelGenerator",
]
