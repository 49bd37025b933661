"""
Unit Tests for Cell Addresses and the Reference Registry
"""
import pytest

from deal_engine.addresses import CellAddress, CellRange, quote_sheet_name
from deal_engine.registry import CellReferenceRegistry, MissingReferenceError


# ============================================================================
# Addresses
# ============================================================================

class TestCellAddress:
    def test_a1_and_offset(self):
        addr = CellAddress("Projections", 6, 2)
        assert addr.a1 == "B6"
        assert addr.offset(cols=2).a1 == "D6"
        assert addr.offset(rows=-1, cols=25).a1 == "AA5"

    def test_sheet_names_with_spaces_are_quoted(self):
        assert CellAddress("Debt Model", 6, 3).to_address_string() == "'Debt Model'!C6"
        assert CellAddress("Assumptions", 15, 2).to_address_string() == "Assumptions!B15"
        assert quote_sheet_name("P&L Statement") == "'P&L Statement'"
        assert quote_sheet_name("O'Brien") == "'O''Brien'"

    def test_cell_like_sheet_names_are_quoted(self):
        assert quote_sheet_name("FY2025") == "'FY2025'"
        assert quote_sheet_name("Q1") == "'Q1'"
        assert quote_sheet_name("FCF") == "FCF"
        assert quote_sheet_name("Forecast2025") == "Forecast2025"
        addr = CellAddress("FY2025", 4, 2)
        assert addr.to_address_string() == "'FY2025'!B4"
        assert CellAddress.parse(addr.to_address_string()) == addr

    def test_reference_from_same_sheet_is_bare(self):
        addr = CellAddress("FCF", 7, 2)
        assert addr.reference_from("FCF") == "B7"
        assert addr.reference_from("Projections") == "FCF!B7"

    def test_parse_round_trip(self):
        addr = CellAddress.parse("'Debt Model'!$C$6")
        assert addr == CellAddress("Debt Model", 6, 3)
        assert CellAddress.parse("B4", default_sheet="FCF") == CellAddress("FCF", 4, 2)

    def test_parse_without_sheet_raises(self):
        with pytest.raises(ValueError):
            CellAddress.parse("B4")

    def test_out_of_bounds_rejected(self):
        with pytest.raises(ValueError):
            CellAddress("FCF", 0, 1)


class TestCellRange:
    def test_row_span(self):
        rng = CellRange.row_span("Projections", 12, 2, 4)
        assert rng.a1 == "B12:D12"
        assert rng.width == 3
        assert rng.height == 1

    def test_cross_sheet_range_rejected(self):
        with pytest.raises(ValueError):
            CellRange(CellAddress("A", 1, 1), CellAddress("B", 1, 2))

    def test_parse(self):
        rng = CellRange.parse("FCF!B13:E13")
        assert rng.start == CellAddress("FCF", 13, 2)
        assert rng.end == CellAddress("FCF", 13, 5)


# ============================================================================
# Registry
# ============================================================================

class TestRegistry:
    def test_record_and_lookup(self, registry):
        registry.record("deal_value", CellAddress("Assumptions", 15, 2))
        ref = registry.lookup("deal_value")
        assert ref is not None
        assert ref.to_address_string() == "Assumptions!B15"
        assert "deal_value" in registry
        assert len(registry) == 1

    def test_lookup_missing_returns_none(self, registry):
        assert registry.lookup("noi") is None

    def test_require_missing_raises(self, registry):
        with pytest.raises(MissingReferenceError) as exc:
            registry.require("noi", "free cash flow")
        assert exc.value.key == "noi"
        assert "noi" in str(exc.value)

    def test_re_record_overwrites(self, registry):
        registry.record("revenue_0", CellAddress("Assumptions", 20, 2))
        registry.record("revenue_0", CellAddress("Assumptions", 26, 2))
        assert registry.lookup("revenue_0").address.row == 26
        assert len(registry) == 1

    def test_range_reference(self, registry):
        registry.record_range("noi", CellRange.row_span("Projections", 12, 2, 4))
        ref = registry.lookup("noi")
        assert ref.is_range
        assert ref.to_address_string() == "Projections!B12:D12"

    def test_list_by_sheet_keeps_recording_order(self, registry):
        registry.record("b", CellAddress("Assumptions", 2, 2))
        registry.record("x", CellAddress("FCF", 2, 2))
        registry.record("a", CellAddress("Assumptions", 1, 2))
        assert list(registry.list_by_sheet("Assumptions")) == ["b", "a"]
        assert list(registry.list_by_sheet("FCF")) == ["x"]

    def test_clear_sheet_only_drops_that_sheet(self, registry):
        registry.record("deal_value", CellAddress("Assumptions", 15, 2))
        registry.record("noi", CellAddress("Projections", 12, 2))
        assert registry.clear_sheet("Projections") == 1
        assert "noi" not in registry
        assert "deal_value" in registry

    def test_reset(self, registry):
        registry.record("deal_value", CellAddress("Assumptions", 15, 2))
        registry.reset()
        assert len(registry) == 0

    def test_separate_instances_do_not_share_state(self):
        first = CellReferenceRegistry()
        second = CellReferenceRegistry()
        first.record("noi", CellAddress("Projections", 12, 2))
        assert "noi" not in second
