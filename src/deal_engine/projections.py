"""
Projection Compiler

Per-period growth formulas for revenue, operating expense and capital
expenditure line items, category totals and the NOI row.

Projections sheet: operating periods 1..P in columns B onward.
CapEx sheet: periods 0..P in columns B onward, period 0 carrying the base
outlay. Expenses and capital outflows are stored negative.
"""
from __future__ import annotations

import logging
from typing import Optional

from deal_engine.addresses import CellAddress, CellRange
from deal_engine.assumptions import item_key
from deal_engine.host import SheetBuffer, SpreadsheetHost, recreate_sheet
from deal_engine.models import Granularity, GrowthKind, LineItem, LineItemCategory, ModelInput
from deal_engine.periods import PeriodCalculator, period_divisor
from deal_engine.registry import CellReferenceRegistry


logger = logging.getLogger(__name__)

LABEL_COL = 1
FIRST_PERIOD_COL = 2
HEADER_ROW = 3
FIRST_BODY_ROW = 5

SECTION_TITLES = {
    LineItemCategory.REVENUE: "REVENUE",
    LineItemCategory.OPEX: "OPERATING EXPENSES",
    LineItemCategory.CAPEX: "CAPITAL EXPENDITURES",
}

TOTAL_LABELS = {
    LineItemCategory.REVENUE: "Total Revenue",
    LineItemCategory.OPEX: "Total Operating Expenses",
    LineItemCategory.CAPEX: "Total CapEx",
}

TOTAL_KEYS = {
    LineItemCategory.REVENUE: "total_revenue",
    LineItemCategory.OPEX: "total_opex",
    LineItemCategory.CAPEX: "total_capex",
}

_NEGATED = {LineItemCategory.OPEX, LineItemCategory.CAPEX}


# ============================================================================
# NUMERIC PROJECTIONS
# ============================================================================

def project_line_item(item: LineItem, periods: int, granularity: Granularity) -> list[float]:
    """
    Value of a line item in each of ``periods`` consecutive periods.

    Growth compounds: period k (zero-based) is base * (1 + r/d)^k.
    Sign is not applied here.
    """
    step = 1 + item.growth_fraction / period_divisor(granularity)
    values = []
    current = item.base_value
    for _ in range(periods):
        values.append(current)
        current = current * step
    return values


def project_category(
    items: list[LineItem],
    category: LineItemCategory,
    periods: int,
    granularity: Granularity,
) -> list[float]:
    """Signed category total per period; all zeros for an empty category."""
    sign = -1.0 if category in _NEGATED else 1.0
    totals = [0.0] * periods
    for item in items:
        for p, value in enumerate(project_line_item(item, periods, granularity)):
            totals[p] += sign * value
    return totals


def compute_noi(model: ModelInput, periods: int) -> list[float]:
    """NOI for operating periods 1..P (index 0 is period 1)."""
    revenue = project_category(model.revenue_items, LineItemCategory.REVENUE, periods, model.granularity)
    opex = project_category(model.opex_items, LineItemCategory.OPEX, periods, model.granularity)
    return [r + o for r, o in zip(revenue, opex)]


def compute_capex_totals(model: ModelInput, periods: int) -> list[float]:
    """CapEx total for periods 0..P (P + 1 values, negative)."""
    return project_category(model.capex_items, LineItemCategory.CAPEX, periods + 1, model.granularity)


# ============================================================================
# FORMULA GENERATION
# ============================================================================

def growth_formula(prev: CellAddress, growth: Optional[CellAddress], divisor: int) -> str:
    """Formula for a period that grows from the previous period's cell."""
    if growth is None:
        return f"={prev.a1}"
    rate = growth.reference_from(prev.sheet)
    if divisor == 1:
        return f"={prev.a1}*(1+{rate})"
    return f"={prev.a1}*(1+{rate}/{divisor})"


def sum_formula(first: CellAddress, last: CellAddress) -> str:
    return f"=SUM({first.a1}:{last.a1})"


class ProjectionCompiler:
    """Writes the Projections (P&L) and CapEx sheets."""

    def __init__(
        self,
        host: SpreadsheetHost,
        registry: CellReferenceRegistry,
        projections_sheet: str = "Projections",
        capex_sheet: str = "CapEx",
        calculator: Optional[PeriodCalculator] = None,
    ):
        self.host = host
        self.registry = registry
        self.projections_sheet = projections_sheet
        self.capex_sheet = capex_sheet
        self.calculator = calculator or PeriodCalculator()

    # ------------------------------------------------------------------
    # Projections sheet
    # ------------------------------------------------------------------

    def compile_projections(self, model: ModelInput, period_count: int) -> CellRange:
        """Write the P&L sheet and return the NOI row range."""
        sheet = self.projections_sheet
        recreate_sheet(self.host, self.registry, sheet)
        buffer = SheetBuffer(self.host, sheet)
        last_col = FIRST_PERIOD_COL + period_count - 1

        buffer.put(1, LABEL_COL, f"Profit & Loss Statement ({model.currency})")
        buffer.put(HEADER_ROW, LABEL_COL, "Period")
        buffer.put_row(
            HEADER_ROW,
            FIRST_PERIOD_COL,
            self.calculator.labels(model.start_date, period_count, model.granularity),
        )

        row = FIRST_BODY_ROW
        revenue_total, row = self._write_category(
            buffer, model, LineItemCategory.REVENUE, row, period_count, FIRST_PERIOD_COL
        )
        opex_total, row = self._write_category(
            buffer, model, LineItemCategory.OPEX, row + 1, period_count, FIRST_PERIOD_COL
        )

        noi_row = row + 1
        buffer.put(noi_row, LABEL_COL, "NOI")
        for col in range(FIRST_PERIOD_COL, last_col + 1):
            rev = CellAddress(sheet, revenue_total.start.row, col)
            opex = CellAddress(sheet, opex_total.start.row, col)
            buffer.put(noi_row, col, f"={rev.a1}+{opex.a1}")
        noi = CellRange.row_span(sheet, noi_row, FIRST_PERIOD_COL, last_col)
        self.registry.record_range("noi", noi)

        buffer.flush()
        logger.info("Projections written: %d periods, NOI at %s", period_count, noi.to_address_string())
        return noi

    # ------------------------------------------------------------------
    # CapEx sheet
    # ------------------------------------------------------------------

    def compile_capex(self, model: ModelInput, period_count: int) -> CellRange:
        """Write the CapEx sheet (periods 0..P) and return the total row range."""
        sheet = self.capex_sheet
        recreate_sheet(self.host, self.registry, sheet)
        buffer = SheetBuffer(self.host, sheet)

        buffer.put(1, LABEL_COL, f"Capital Expenditures ({model.currency})")
        buffer.put(HEADER_ROW, LABEL_COL, "Period")
        buffer.put(HEADER_ROW, FIRST_PERIOD_COL, "Period 0")
        buffer.put_row(
            HEADER_ROW,
            FIRST_PERIOD_COL + 1,
            self.calculator.labels(model.start_date, period_count, model.granularity),
        )

        total, _ = self._write_category(
            buffer, model, LineItemCategory.CAPEX, FIRST_BODY_ROW, period_count + 1, FIRST_PERIOD_COL
        )
        buffer.flush()
        logger.info("CapEx written: %d items, total at %s", len(model.capex_items), total.to_address_string())
        return total

    # ------------------------------------------------------------------
    # shared
    # ------------------------------------------------------------------

    def _write_category(
        self,
        buffer: SheetBuffer,
        model: ModelInput,
        category: LineItemCategory,
        row: int,
        columns: int,
        first_col: int,
    ) -> tuple[CellRange, int]:
        """
        Write a section title, one row per item and the total row.

        Returns the total row range and the row after the total.
        """
        sheet = buffer.sheet
        last_col = first_col + columns - 1
        divisor = period_divisor(model.granularity)
        sign = "-" if category in _NEGATED else ""
        items = model.items_for(category)

        buffer.put(row, LABEL_COL, SECTION_TITLES[category])
        row += 1

        first_item_row = row
        for index, item in enumerate(items):
            base = self.registry.require(
                item_key(category, index), f"{category.value} item '{item.name}'"
            ).address
            growth = self._growth_reference(category, index, item)

            buffer.put_text(row, LABEL_COL, item.name)
            buffer.put(row, first_col, f"={sign}{base.reference_from(sheet)}")
            for col in range(first_col + 1, last_col + 1):
                prev = CellAddress(sheet, row, col - 1)
                buffer.put(row, col, growth_formula(prev, growth, divisor))

            self.registry.record_range(
                item_key(category, index, "row"),
                CellRange.row_span(sheet, row, first_col, last_col),
            )
            row += 1

        total_row = row
        buffer.put(total_row, LABEL_COL, TOTAL_LABELS[category])
        for col in range(first_col, last_col + 1):
            if items:
                first = CellAddress(sheet, first_item_row, col)
                last = CellAddress(sheet, total_row - 1, col)
                buffer.put(total_row, col, sum_formula(first, last))
            else:
                buffer.put(total_row, col, 0)

        total = CellRange.row_span(sheet, total_row, first_col, last_col)
        self.registry.record_range(TOTAL_KEYS[category], total)
        return total, total_row + 1

    def _growth_reference(self, category: LineItemCategory, index: int, item: LineItem) -> Optional[CellAddress]:
        if item.growth_kind != GrowthKind.ANNUAL_RATE:
            return None
        ref = self.registry.lookup(item_key(category, index, "growth_rate"))
        if ref is None:
            logger.warning(
                "No growth rate recorded for %s item '%s', carrying the value forward flat",
                category.value,
                item.name,
            )
            return None
        return ref.address
