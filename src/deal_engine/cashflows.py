"""
Free Cash Flow Assembler

Builds the FCF sheet for periods 0..P: unlevered operating flows, exit
proceeds net of disposal cost, levered adjustments and equity distributions.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from deal_engine.addresses import CellAddress, CellRange
from deal_engine.debt import compute_debt_schedule
from deal_engine.discovery import StructureDiscoverer
from deal_engine.host import SheetBuffer, SpreadsheetHost, recreate_sheet
from deal_engine.models import ModelInput
from deal_engine.periods import PeriodCalculator, period_as_serial_date, to_serial_date
from deal_engine.projections import compute_capex_totals, compute_noi
from deal_engine.registry import CellReferenceRegistry, MissingReferenceError


logger = logging.getLogger(__name__)

LABEL_COL = 1
FIRST_PERIOD_COL = 2
HEADER_ROW = 3
DATE_ROW = 4

UNLEVERED_ROWS = (
    "Purchase price",
    "Transaction costs",
    "NOI",
    "CapEx",
    "Sale Price",
    "Disposal Costs",
)

LEVERED_ROWS = (
    "Debt upfront costs",
    "Debt Expense",
    "Loan proceeds",
)

OPERATING_KEYS = ("deal_value", "transaction_fee", "terminal_cap_rate", "disposal_cost", "noi", "total_capex")
DEBT_KEYS = ("debt_financing", "loan_issuance_fees", "debt_expense")


# ============================================================================
# NUMERIC CASH FLOWS
# ============================================================================

@dataclass(frozen=True)
class CashFlowSeries:
    """Cash-flow rows for periods 0..P, mirroring the FCF sheet."""
    purchase_price: list[float]
    transaction_costs: list[float]
    noi: list[float]
    capex: list[float]
    sale_price: list[float]
    disposal_costs: list[float]
    unlevered: list[float]
    debt_upfront_costs: list[float]
    debt_expense: list[float]
    loan_proceeds: list[float]
    levered: list[float]

    @property
    def equity_distributions(self) -> list[float]:
        return list(self.levered)

    def as_rows(self) -> dict[str, list[float]]:
        return {
            "Purchase price": self.purchase_price,
            "Transaction costs": self.transaction_costs,
            "NOI": self.noi,
            "CapEx": self.capex,
            "Sale Price": self.sale_price,
            "Disposal Costs": self.disposal_costs,
            "Unlevered Cashflows": self.unlevered,
            "Debt upfront costs": self.debt_upfront_costs,
            "Debt Expense": self.debt_expense,
            "Loan proceeds": self.loan_proceeds,
            "Levered Cashflows": self.levered,
            "Equity distributions": self.equity_distributions,
        }


def compute_cash_flows(model: ModelInput, period_count: int) -> CashFlowSeries:
    """Evaluate the FCF rows directly from the inputs."""
    if period_count < 1:
        raise ValueError("Cash flows need at least one operating period")

    n = period_count + 1
    deal_value = model.deal_value or 0.0

    def only(p: int, value: float) -> list[float]:
        row = [0.0] * n
        row[p] = value
        return row

    noi = [0.0] + compute_noi(model, period_count)
    capex = compute_capex_totals(model, period_count)
    sale = noi[-1] / (model.terminal_cap_rate / 100)

    purchase = only(0, -deal_value)
    transaction = only(0, -deal_value * model.transaction_fee / 100)
    sale_price = only(period_count, sale)
    disposal = only(period_count, -sale * model.disposal_cost / 100)
    unlevered = [
        sum(values)
        for values in zip(purchase, transaction, noi, capex, sale_price, disposal)
    ]

    if model.has_debt:
        schedule = compute_debt_schedule(deal_value, model.ltv, model.debt.fixed_rate, period_count)
        upfront = only(0, -model.debt_amount * model.debt.issuance_fee / 100)
        expense = [0.0] + [-s for s in schedule.service[1:]]
        proceeds = only(1, model.debt_amount)
    else:
        upfront = [0.0] * n
        expense = [0.0] * n
        proceeds = [0.0] * n

    levered = [u + a + b + c for u, a, b, c in zip(unlevered, upfront, expense, proceeds)]
    return CashFlowSeries(
        purchase_price=purchase,
        transaction_costs=transaction,
        noi=noi,
        capex=capex,
        sale_price=sale_price,
        disposal_costs=disposal,
        unlevered=unlevered,
        debt_upfront_costs=upfront,
        debt_expense=expense,
        loan_proceeds=proceeds,
        levered=levered,
    )


# ============================================================================
# FCF SHEET
# ============================================================================

class FreeCashFlowAssembler:
    """Writes the FCF sheet from registry references."""

    def __init__(
        self,
        host: SpreadsheetHost,
        registry: CellReferenceRegistry,
        sheet: str = "FCF",
        discoverer: Optional[StructureDiscoverer] = None,
        calculator: Optional[PeriodCalculator] = None,
    ):
        self.host = host
        self.registry = registry
        self.sheet = sheet
        self.discoverer = discoverer or StructureDiscoverer(host)
        self.calculator = calculator or PeriodCalculator()

    def resolve_references(self, model: ModelInput) -> None:
        """
        Make sure every reference the sheet needs is recorded.

        Missing keys are recovered from committed sheets; anything still
        missing raises MissingReferenceError.
        """
        keys = list(OPERATING_KEYS) + (list(DEBT_KEYS) if model.has_debt else [])
        missing = [key for key in keys if key not in self.registry]
        if not missing:
            return
        logger.info("Registry is missing %s, scanning the workbook", ", ".join(missing))
        still_missing = self.discoverer.recover(self.registry, missing)
        if still_missing:
            raise MissingReferenceError(still_missing[0], "free cash flow")

    def _ref(self, key: str) -> str:
        return self.registry.require(key, "free cash flow").address.reference_from(self.sheet)

    def _row_range(self, key: str, width: int) -> CellRange:
        ref = self.registry.require(key, "free cash flow")
        cell_range = ref.cell_range
        if cell_range.width < width:
            raise MissingReferenceError(
                key, f"row covers {cell_range.width} periods, {width} needed"
            )
        return cell_range

    def compile(self, model: ModelInput, period_count: int) -> CellRange:
        """Write the FCF sheet and return the Levered Cashflows row range."""
        if period_count < 1:
            raise MissingReferenceError("terminal period", "model has no operating periods")

        self.resolve_references(model)
        noi = self._row_range("noi", period_count)
        capex = self._row_range("total_capex", period_count + 1)
        debt_expense = self._row_range("debt_expense", period_count + 1) if model.has_debt else None

        recreate_sheet(self.host, self.registry, self.sheet)
        buffer = SheetBuffer(self.host, self.sheet)
        sheet = self.sheet
        last_col = FIRST_PERIOD_COL + period_count
        columns = range(FIRST_PERIOD_COL, last_col + 1)

        buffer.put(1, LABEL_COL, f"Free Cash Flow Statement ({model.currency})")
        buffer.put(HEADER_ROW, LABEL_COL, "Period")
        buffer.put(HEADER_ROW, FIRST_PERIOD_COL, "Initial Investment")
        buffer.put_row(
            HEADER_ROW,
            FIRST_PERIOD_COL + 1,
            self.calculator.labels(model.start_date, period_count, model.granularity),
        )

        buffer.put(DATE_ROW, LABEL_COL, "Date Values")
        buffer.put(DATE_ROW, FIRST_PERIOD_COL, to_serial_date(model.start_date))
        for p in range(1, period_count + 1):
            buffer.put(
                DATE_ROW,
                FIRST_PERIOD_COL + p,
                period_as_serial_date(model.start_date, p - 1, model.granularity),
            )
        self.registry.record_range("fcf_dates", CellRange.row_span(sheet, DATE_ROW, FIRST_PERIOD_COL, last_col))

        deal_value = self._ref("deal_value")
        fee = self._ref("transaction_fee")
        cap_rate = self._ref("terminal_cap_rate")
        disposal = self._ref("disposal_cost")

        row = DATE_ROW + 2
        buffer.put(row, LABEL_COL, "UNLEVERED CASH FLOWS")
        first = row + 1
        rows = {label: first + i for i, label in enumerate(UNLEVERED_ROWS)}
        unlevered_row = first + len(UNLEVERED_ROWS)
        for label, r in rows.items():
            buffer.put(r, LABEL_COL, label)
        buffer.put(unlevered_row, LABEL_COL, "Unlevered Cashflows")

        final_noi = noi.start.offset(cols=period_count - 1)
        for p, col in enumerate(columns):
            initial = p == 0
            terminal = p == period_count
            sale_cell = CellAddress(sheet, rows["Sale Price"], col)

            buffer.put(rows["Purchase price"], col, f"=-{deal_value}" if initial else 0)
            buffer.put(rows["Transaction costs"], col, f"=-{deal_value}*{fee}/100" if initial else 0)
            buffer.put(
                rows["NOI"], col,
                0 if initial else f"={noi.start.offset(cols=p - 1).reference_from(sheet)}",
            )
            buffer.put(rows["CapEx"], col, f"={capex.start.offset(cols=p).reference_from(sheet)}")
            buffer.put(
                rows["Sale Price"], col,
                f"={final_noi.reference_from(sheet)}/{cap_rate}" if terminal else 0,
            )
            buffer.put(
                rows["Disposal Costs"], col,
                f"=-{sale_cell.a1}*{disposal}" if terminal else 0,
            )
            top = CellAddress(sheet, first, col)
            bottom = CellAddress(sheet, unlevered_row - 1, col)
            buffer.put(unlevered_row, col, f"=SUM({top.a1}:{bottom.a1})")

        unlevered = CellRange.row_span(sheet, unlevered_row, FIRST_PERIOD_COL, last_col)
        self.registry.record_range("fcf_unlevered", unlevered)

        row = unlevered_row + 2
        buffer.put(row, LABEL_COL, "LEVERED CASH FLOWS")
        first = row + 1
        lev_rows = {label: first + i for i, label in enumerate(LEVERED_ROWS)}
        levered_row = first + len(LEVERED_ROWS)
        for label, r in lev_rows.items():
            buffer.put(r, LABEL_COL, label)
        buffer.put(levered_row, LABEL_COL, "Levered Cashflows")

        if model.has_debt:
            debt = self._ref("debt_financing")
            issuance = self._ref("loan_issuance_fees")
        for p, col in enumerate(columns):
            if debt_expense is not None:
                buffer.put(lev_rows["Debt upfront costs"], col, f"=-{debt}*{issuance}" if p == 0 else 0)
                buffer.put(
                    lev_rows["Debt Expense"], col,
                    0 if p == 0 else f"=-{debt_expense.start.offset(cols=p).reference_from(sheet)}",
                )
                buffer.put(lev_rows["Loan proceeds"], col, f"={debt}" if p == 1 else 0)
            else:
                for r in lev_rows.values():
                    buffer.put(r, col, 0)
            parts = [CellAddress(sheet, r, col).a1 for r in (unlevered_row, *lev_rows.values())]
            buffer.put(levered_row, col, "=" + "+".join(parts))

        levered = CellRange.row_span(sheet, levered_row, FIRST_PERIOD_COL, last_col)
        self.registry.record_range("fcf_levered", levered)

        equity_row = levered_row + 3
        buffer.put(levered_row + 2, LABEL_COL, "EQUITY FLOWS")
        buffer.put(equity_row, LABEL_COL, "Equity distributions")
        for col in columns:
            buffer.put(equity_row, col, f"={CellAddress(sheet, levered_row, col).a1}")
        self.registry.record_range(
            "fcf_equity_distributions",
            CellRange.row_span(sheet, equity_row, FIRST_PERIOD_COL, last_col),
        )

        buffer.flush()
        logger.info("FCF written: %d periods, levered row %d on %s", period_count, levered_row, sheet)
        return levered
