"""
Assumptions Compiler

Writes the single source-of-truth Assumptions sheet and records every value
cell in the registry. Equity and debt are written as formulas so edits to
deal value or LTV propagate.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from deal_engine.addresses import CellAddress, CellRange
from deal_engine.host import SheetBuffer, SpreadsheetHost, Text, recreate_sheet
from deal_engine.models import LineItemCategory, ModelInput
from deal_engine.registry import CellReferenceRegistry


logger = logging.getLogger(__name__)

TITLE = "M&A Financial Model - Assumptions"

CATEGORY_TITLES = {
    LineItemCategory.REVENUE: "REVENUE ITEMS",
    LineItemCategory.OPEX: "OPERATING EXPENSES",
    LineItemCategory.CAPEX: "CAPITAL EXPENDITURES (CAPEX)",
}

ITEM_HEADER = ["Name", "Base Value", "Growth Rate (%)", "Growth"]

LABEL_COL = 1
VALUE_COL = 2
GROWTH_COL = 3
KIND_COL = 4


def item_key(category: LineItemCategory, index: int, suffix: str = "") -> str:
    """Registry key for a line item cell, e.g. ``revenue_2_growth_rate``."""
    key = f"{LineItemCategory(category).value}_{index}"
    return f"{key}_{suffix}" if suffix else key


class AssumptionsCompiler:
    """Compiles a ModelInput into the Assumptions sheet."""

    def __init__(self, host: SpreadsheetHost, registry: CellReferenceRegistry, sheet: str = "Assumptions"):
        self.host = host
        self.registry = registry
        self.sheet = sheet
        self._buffer = SheetBuffer(host, sheet)
        self._row = 1

    def compile(self, model: ModelInput, period_count: int) -> None:
        recreate_sheet(self.host, self.registry, self.sheet)
        self._buffer = SheetBuffer(self.host, self.sheet)
        self._row = 1

        self._buffer.put(1, LABEL_COL, TITLE)
        self._row = 3
        self._write_high_level(model, period_count)
        self._write_deal(model)
        for category in LineItemCategory:
            self._write_category(model, category)
        self._write_exit(model)

        self._buffer.flush()
        logger.info(
            "Assumptions written: %d references on %s",
            len(self.registry.list_by_sheet(self.sheet)),
            self.sheet,
        )

    # ------------------------------------------------------------------
    # sections
    # ------------------------------------------------------------------

    def _section(self, title: str) -> None:
        self._buffer.put(self._row, LABEL_COL, title)
        self._row += 2

    def _scalar(self, key: str, label: str, value: Any) -> CellAddress:
        self._buffer.put(self._row, LABEL_COL, label)
        address = self._buffer.put(self._row, VALUE_COL, value)
        self.registry.record(key, address)
        self._row += 1
        return address

    def _write_high_level(self, model: ModelInput, period_count: int) -> None:
        self._section("HIGH-LEVEL PARAMETERS")
        self._scalar("currency", "Currency", Text(model.currency))
        self._scalar("project_start_date", "Project Start Date", model.start_date)
        self._scalar("model_periods", "Model Periods", model.granularity.value.capitalize())
        self._scalar("project_end_date", "Project End Date", model.end_date)
        self._scalar("period_count", "Number of Periods", period_count)
        self._row += 2

    def _write_deal(self, model: ModelInput) -> None:
        self._section("DEAL ASSUMPTIONS")
        self._scalar("deal_name", "Deal Name", Text(model.deal_name))
        deal_value = self._scalar("deal_value", "Deal Value", model.deal_value)
        self._scalar("transaction_fee", "Transaction Fee (%)", model.transaction_fee)
        ltv = self._scalar("deal_ltv", "Deal LTV (%)", model.ltv)
        self._scalar(
            "equity_contribution",
            "Equity Contribution (Calculated)",
            f"={deal_value.a1}*(1-{ltv.a1}/100)",
        )
        self._scalar(
            "debt_financing",
            "Debt Financing (Calculated)",
            f"={deal_value.a1}*{ltv.a1}/100",
        )
        if model.has_debt:
            self._scalar("loan_issuance_fees", "Loan Issuance Fees (%)", model.debt.issuance_fee / 100)
            self._scalar("fixed_interest_rate", "Fixed Interest Rate (%)", model.debt.fixed_rate / 100)
        self._row += 2

    def _write_category(self, model: ModelInput, category: LineItemCategory) -> Optional[CellRange]:
        items = model.items_for(category)
        if not items:
            return None

        title_row = self._row
        self._buffer.put(title_row, LABEL_COL, CATEGORY_TITLES[category])
        count_cell = self._buffer.put(title_row, VALUE_COL, len(items))
        self._buffer.put_row(title_row + 1, LABEL_COL, ITEM_HEADER)
        self._row = title_row + 2

        first_row = self._row
        for index, item in enumerate(items):
            row = self._row
            name = self._buffer.put_text(row, LABEL_COL, item.name)
            value = self._buffer.put(row, VALUE_COL, item.base_value)
            growth = self._buffer.put(row, GROWTH_COL, item.growth_fraction)
            self._buffer.put(row, KIND_COL, item.growth_kind.value)
            self.registry.record(item_key(category, index), value)
            self.registry.record(item_key(category, index, "name"), name)
            self.registry.record(item_key(category, index, "growth_rate"), growth)
            self._row += 1

        values = CellRange(
            CellAddress(self.sheet, first_row, VALUE_COL),
            CellAddress(self.sheet, self._row - 1, VALUE_COL),
        )
        self.registry.record_range(f"{category.value}_range", values)
        self.registry.record(f"{category.value}_count", count_cell)
        self._row += 2
        return values

    def _write_exit(self, model: ModelInput) -> None:
        self._section("EXIT ASSUMPTIONS")
        self._scalar("disposal_cost", "Disposal Cost (%)", model.disposal_cost / 100)
        self._scalar("terminal_cap_rate", "Terminal Cap Rate (%)", model.terminal_cap_rate / 100)
        self._scalar("discount_rate", "Discount Rate - WACC (%)", model.discount_rate / 100)
