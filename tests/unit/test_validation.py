"""
Unit Tests for Input Validation and Engine Configuration
"""
from datetime import date

import pytest

from deal_engine.config import EngineConfig, load_config
from deal_engine.models import DebtTerms, Granularity, GrowthKind, LineItem
from deal_engine.periods import PeriodCalculator
from deal_engine.validation import ValidationError, validate_inputs


class TestValidateInputs:
    def test_valid_inputs_return_period_count(self, model):
        assert validate_inputs(model) == 3

    def test_missing_deal_value(self, make_model):
        with pytest.raises(ValidationError, match="Deal value is required"):
            validate_inputs(make_model(deal_value=None))

    def test_non_positive_deal_value(self, make_model):
        with pytest.raises(ValidationError):
            validate_inputs(make_model(deal_value=0.0))

    def test_end_before_start(self, make_model):
        with pytest.raises(ValidationError, match="must be after start date"):
            validate_inputs(make_model(end_date=date(2024, 12, 31)))

    @pytest.mark.parametrize("ltv", [-1.0, 100.0, 120.0])
    def test_ltv_bounds(self, make_model, ltv):
        with pytest.raises(ValidationError, match="LTV"):
            validate_inputs(make_model(ltv=ltv))

    def test_negative_percentage(self, make_model):
        with pytest.raises(ValidationError, match="Transaction fee"):
            validate_inputs(make_model(transaction_fee=-0.5))

    def test_zero_cap_rate(self, make_model):
        with pytest.raises(ValidationError, match="cap rate"):
            validate_inputs(make_model(terminal_cap_rate=0.0))

    def test_control_characters_in_names(self, make_model):
        with pytest.raises(ValidationError, match="Deal name"):
            validate_inputs(make_model(deal_name="Test\x07Deal"))
        with pytest.raises(ValidationError, match="Opex item name"):
            validate_inputs(make_model(opex_items=[LineItem(name="Mgmt\x00", base_value=10)]))

    def test_tabs_and_leading_equals_allowed(self, make_model):
        model = make_model(deal_name="Deal\tA", revenue_items=[LineItem(name="=Rent", base_value=10)])
        assert validate_inputs(model) == 3

    def test_uses_calculator_caps(self, make_model):
        model = make_model(end_date=date(2030, 1, 1), granularity=Granularity.MONTHLY)
        assert validate_inputs(model, PeriodCalculator({Granularity.MONTHLY: 12})) == 12


class TestModels:
    def test_annual_rate_requires_rate(self):
        with pytest.raises(ValueError):
            LineItem(name="Rent", base_value=100, growth_kind=GrowthKind.ANNUAL_RATE)

    def test_negative_base_value_rejected(self):
        with pytest.raises(ValueError):
            LineItem(name="Rent", base_value=-1)

    def test_debt_amounts(self, model):
        assert model.has_debt
        assert model.debt_amount == pytest.approx(600_000)
        assert model.equity_amount == pytest.approx(400_000)

    def test_debt_defaults(self):
        assert DebtTerms().issuance_fee == 1.5
        assert DebtTerms().fixed_rate == 5.5


class TestLoadConfig:
    def test_defaults(self):
        config = load_config()
        assert config == EngineConfig()
        assert config.sheet_names.ordered() == ["Assumptions", "Projections", "CapEx", "Debt Model", "FCF"]
        assert config.period_caps.as_mapping()[Granularity.DAILY] == 1000
        assert not config.ai.enabled

    def test_yaml_overrides(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("period_caps:\n  monthly: 120\nai:\n  enabled: true\n  model: local-model\n")
        config = load_config(path)
        assert config.period_caps.monthly == 120
        assert config.period_caps.daily == 1000
        assert config.ai.enabled
        assert config.ai.model == "local-model"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")
