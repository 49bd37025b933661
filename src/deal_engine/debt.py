"""
Debt Scheduler

Fixed-rate, interest-only senior debt with a bullet repayment in the terminal
period. Produces the "Debt Expense per Period" row consumed by the FCF sheet.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from deal_engine.addresses import CellAddress, CellRange
from deal_engine.host import SheetBuffer, SpreadsheetHost, recreate_sheet
from deal_engine.models import ModelInput
from deal_engine.periods import PeriodCalculator
from deal_engine.registry import CellReferenceRegistry


logger = logging.getLogger(__name__)

NO_DEBT_NOTE = "No debt financing (LTV = 0%)"

LABEL_COL = 1
FIRST_PERIOD_COL = 2
HEADER_ROW = 3
BALANCE_ROW = 4
RATE_ROW = 5
EXPENSE_ROW = 6


@dataclass(frozen=True)
class DebtSchedule:
    """Per-period debt rows for periods 0..P."""
    balance: list[float] = field(default_factory=list)
    rate: list[float] = field(default_factory=list)
    service: list[float] = field(default_factory=list)
    has_debt: bool = True

    @classmethod
    def no_debt(cls, periods: int) -> "DebtSchedule":
        zeros = [0.0] * (periods + 1)
        return cls(balance=list(zeros), rate=list(zeros), service=list(zeros), has_debt=False)


def compute_debt_schedule(deal_value: float, ltv: float, fixed_rate: float, periods: int) -> DebtSchedule:
    """
    Interest-only schedule with bullet repayment.

    ``ltv`` and ``fixed_rate`` are percentages; the rate applies per period.
    Balance is constant through period P-1 and zero in period P. Service is
    balance * rate in ordinary periods and prior balance * rate + prior
    balance in the terminal period.
    """
    if ltv <= 0:
        return DebtSchedule.no_debt(periods)

    amount = deal_value * ltv / 100
    rate = fixed_rate / 100
    balance = [amount] * periods + [0.0]
    rates = [0.0] + [rate] * periods
    service = [0.0]
    for p in range(1, periods + 1):
        if p == periods:
            service.append(balance[p - 1] * rates[p] + balance[p - 1])
        else:
            service.append(balance[p] * rates[p])
    return DebtSchedule(balance=balance, rate=rates, service=service)


class DebtScheduler:
    """Writes the Debt Model sheet."""

    def __init__(
        self,
        host: SpreadsheetHost,
        registry: CellReferenceRegistry,
        sheet: str = "Debt Model",
        calculator: Optional[PeriodCalculator] = None,
    ):
        self.host = host
        self.registry = registry
        self.sheet = sheet
        self.calculator = calculator or PeriodCalculator()

    def compile(self, model: ModelInput, period_count: int) -> Optional[CellRange]:
        """
        Write the schedule and return the debt expense row range.

        Returns None when the deal carries no debt; the sheet still exists
        and holds a note instead of a schedule.
        """
        recreate_sheet(self.host, self.registry, self.sheet)
        buffer = SheetBuffer(self.host, self.sheet)

        if not model.has_debt:
            buffer.put(1, LABEL_COL, NO_DEBT_NOTE)
            buffer.flush()
            logger.info("No debt financing, %s holds a note only", self.sheet)
            return None

        debt = self.registry.require("debt_financing", "debt schedule").address
        fixed = self.registry.require("fixed_interest_rate", "debt schedule").address
        last_col = FIRST_PERIOD_COL + period_count

        buffer.put(1, LABEL_COL, f"Debt Model ({model.currency})")
        buffer.put(HEADER_ROW, LABEL_COL, "Period")
        buffer.put(HEADER_ROW, FIRST_PERIOD_COL, "Period 0")
        buffer.put_row(
            HEADER_ROW,
            FIRST_PERIOD_COL + 1,
            self.calculator.labels(model.start_date, period_count, model.granularity),
        )

        buffer.put(BALANCE_ROW, LABEL_COL, "Outstanding Debt Balance")
        buffer.put(RATE_ROW, LABEL_COL, "Interest Rate (%)")
        buffer.put(EXPENSE_ROW, LABEL_COL, "Debt Expense per Period")

        for col in range(FIRST_PERIOD_COL, last_col + 1):
            balance = CellAddress(self.sheet, BALANCE_ROW, col)
            rate = CellAddress(self.sheet, RATE_ROW, col)
            terminal = col == last_col

            buffer.put(BALANCE_ROW, col, 0 if terminal else f"={debt.reference_from(self.sheet)}")
            if col == FIRST_PERIOD_COL:
                buffer.put(RATE_ROW, col, 0)
                buffer.put(EXPENSE_ROW, col, 0)
            elif terminal:
                prev = balance.offset(cols=-1)
                buffer.put(RATE_ROW, col, f"={fixed.reference_from(self.sheet)}")
                buffer.put(EXPENSE_ROW, col, f"={prev.a1}*{rate.a1}+{prev.a1}")
            else:
                buffer.put(RATE_ROW, col, f"={fixed.reference_from(self.sheet)}")
                buffer.put(EXPENSE_ROW, col, f"={balance.a1}*{rate.a1}")

        self.registry.record_range("debt_balance", CellRange.row_span(self.sheet, BALANCE_ROW, FIRST_PERIOD_COL, last_col))
        self.registry.record_range("debt_rate", CellRange.row_span(self.sheet, RATE_ROW, FIRST_PERIOD_COL, last_col))
        expense = CellRange.row_span(self.sheet, EXPENSE_ROW, FIRST_PERIOD_COL, last_col)
        self.registry.record_range("debt_expense", expense)

        buffer.flush()
        logger.info("Debt schedule written: %d periods on %s", period_count, self.sheet)
        return expense
