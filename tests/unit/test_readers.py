"""
Unit Tests for Deal Input Readers
"""
import json
from datetime import date

import pytest
import yaml

from deal_engine.models import Granularity, GrowthKind
from deal_io.readers import parse_input_dict, read_input_file


# ============================================================================
# Test fixtures
# ============================================================================

@pytest.fixture
def raw_inputs():
    return {
        "deal": {"name": "Dockside", "currency": "EUR", "value": 2_500_000, "ltv": 55},
        "timeline": {"start_date": "2025-01-01", "end_date": "2027-01-01", "granularity": "quarterly"},
        "debt": {"fixed_rate": 1.5},
        "exit": {"terminal_cap_rate": 7.0},
        "revenue_items": [
            {"name": "Rent", "base_value": 60_000, "growth_rate": 3},
            {"value": 5_000},
        ],
        "opex_items": [{"name": "Taxes", "base_value": 8_000, "growth_kind": "none"}],
    }


# ============================================================================
# Tests
# ============================================================================

class TestParseInputDict:
    def test_deal_and_timeline(self, raw_inputs):
        model = parse_input_dict(raw_inputs)
        assert model.deal_name == "Dockside"
        assert model.currency == "EUR"
        assert model.deal_value == 2_500_000
        assert model.ltv == 55
        assert model.start_date == date(2025, 1, 1)
        assert model.granularity == Granularity.QUARTERLY

    def test_defaults_for_omitted_fields(self, raw_inputs):
        model = parse_input_dict(raw_inputs)
        assert model.transaction_fee == 2.5
        assert model.disposal_cost == 2.5
        assert model.terminal_cap_rate == 7.0
        assert model.debt.fixed_rate == 1.5
        assert model.debt.issuance_fee == 1.5
        assert model.capex_items == []

    def test_growth_rate_implies_annual_rate(self, raw_inputs):
        model = parse_input_dict(raw_inputs)
        rent, unnamed = model.revenue_items
        assert rent.growth_kind == GrowthKind.ANNUAL_RATE
        assert rent.growth_fraction == pytest.approx(0.03)
        assert unnamed.name == "Revenue Item 2"
        assert unnamed.base_value == 5_000
        assert unnamed.growth_kind == GrowthKind.NONE
        assert model.opex_items[0].growth_kind == GrowthKind.NONE

    def test_missing_timeline_raises(self, raw_inputs):
        del raw_inputs["timeline"]
        with pytest.raises(KeyError):
            parse_input_dict(raw_inputs)


class TestReadInputFile:
    def test_yaml(self, raw_inputs, tmp_path):
        path = tmp_path / "deal.yaml"
        path.write_text(yaml.safe_dump(raw_inputs))
        assert read_input_file(path).deal_name == "Dockside"

    def test_json(self, raw_inputs, tmp_path):
        path = tmp_path / "deal.json"
        path.write_text(json.dumps(raw_inputs))
        assert read_input_file(path).granularity == Granularity.QUARTERLY

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "deal.toml"
        path.write_text("")
        with pytest.raises(ValueError, match="Unsupported file format"):
            read_input_file(path)
