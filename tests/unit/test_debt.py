"""
Unit Tests for the Debt Schedule
"""
import pytest

from deal_engine.assumptions import AssumptionsCompiler
from deal_engine.debt import NO_DEBT_NOTE, DebtScheduler, compute_debt_schedule
from deal_engine.registry import MissingReferenceError


CURRENCY_TOLERANCE = 1e-2


class TestComputeDebtSchedule:
    def test_interest_only_with_bullet(self):
        schedule = compute_debt_schedule(1_000_000, 60, 5, 4)
        assert schedule.balance == [600000.0] * 4 + [0.0]
        assert schedule.rate == pytest.approx([0.0, 0.05, 0.05, 0.05, 0.05])
        assert schedule.service == pytest.approx([0, 30000, 30000, 30000, 630000], abs=CURRENCY_TOLERANCE)

    def test_single_period_is_terminal(self):
        schedule = compute_debt_schedule(1_000_000, 50, 4, 1)
        assert schedule.balance == [500000.0, 0.0]
        assert schedule.service == pytest.approx([0, 520000], abs=CURRENCY_TOLERANCE)

    def test_no_debt(self):
        schedule = compute_debt_schedule(1_000_000, 0, 5, 3)
        assert not schedule.has_debt
        assert schedule.service == [0.0] * 4


class TestDebtScheduler:
    def test_formulas(self, host, registry, model):
        AssumptionsCompiler(host, registry).compile(model, 3)
        expense = DebtScheduler(host, registry).compile(model, 3)
        host.commit()
        ws = host.workbook["Debt Model"]
        debt = registry.require("debt_financing").address.a1
        fixed = registry.require("fixed_interest_rate").address.a1

        assert expense.to_address_string() == "'Debt Model'!B6:E6"
        assert ws["B3"].value == "Period 0"
        assert ws["B4"].value == f"=Assumptions!{debt}"
        assert ws["D4"].value == f"=Assumptions!{debt}"
        assert ws["E4"].value == 0
        assert ws["B5"].value == 0
        assert ws["C5"].value == f"=Assumptions!{fixed}"
        assert ws["B6"].value == 0
        assert ws["C6"].value == "=C4*C5"
        assert ws["E6"].value == "=D4*E5+D4"

    def test_records_rows(self, host, registry, model):
        AssumptionsCompiler(host, registry).compile(model, 3)
        DebtScheduler(host, registry).compile(model, 3)
        for key in ("debt_balance", "debt_rate", "debt_expense"):
            assert registry.require(key).cell_range.width == 4

    def test_no_debt_writes_note(self, host, registry, make_model):
        model = make_model(ltv=0.0)
        AssumptionsCompiler(host, registry).compile(model, 3)
        assert DebtScheduler(host, registry).compile(model, 3) is None
        host.commit()
        assert host.workbook["Debt Model"]["A1"].value == NO_DEBT_NOTE
        assert "debt_expense" not in registry

    def test_missing_assumptions_raise(self, host, registry, model):
        with pytest.raises(MissingReferenceError):
            DebtScheduler(host, registry).compile(model, 3)
