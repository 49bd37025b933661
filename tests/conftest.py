"""Shared fixtures for deal model tests."""
from datetime import date

import pytest

from deal_engine.models import DebtTerms, Granularity, GrowthKind, LineItem, ModelInput
from deal_engine.registry import CellReferenceRegistry
from deal_io.workbook_host import OpenpyxlHost


def _make_model(**overrides) -> ModelInput:
    """Monthly deal over 2025-01-01..2025-04-01, i.e. three operating periods."""
    data = dict(
        deal_name="Test Deal",
        currency="USD",
        start_date=date(2025, 1, 1),
        end_date=date(2025, 4, 1),
        granularity=Granularity.MONTHLY,
        deal_value=1_000_000.0,
        transaction_fee=2.0,
        ltv=60.0,
        disposal_cost=2.0,
        terminal_cap_rate=8.0,
        discount_rate=10.0,
        debt=DebtTerms(issuance_fee=1.0, fixed_rate=5.0),
        revenue_items=[
            LineItem(name="Rent", base_value=12000.0, growth_kind=GrowthKind.ANNUAL_RATE, annual_growth_rate=12.0),
        ],
        opex_items=[
            LineItem(name="Management", base_value=2000.0),
        ],
        capex_items=[
            LineItem(name="Reserve", base_value=500.0),
        ],
    )
    data.update(overrides)
    return ModelInput(**data)


@pytest.fixture
def make_model():
    return _make_model


@pytest.fixture
def model() -> ModelInput:
    return _make_model()


@pytest.fixture
def host() -> OpenpyxlHost:
    return OpenpyxlHost()


@pytest.fixture
def registry() -> CellReferenceRegistry:
    return CellReferenceRegistry()
