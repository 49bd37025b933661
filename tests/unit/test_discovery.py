"""
Unit Tests for Structure Discovery
"""
import pytest

from deal_engine.discovery import (
    DEBT_MARKERS,
    FCF_MARKERS,
    OPERATING_MARKERS,
    Marker,
    StructureDiscoverer,
)
from deal_engine.host import SheetBuffer


# ============================================================================
# Test fixtures
# ============================================================================

def write_sheet(host, name, rows):
    """Create ``name`` with the given rows starting at A1 and commit."""
    host.create_sheet(name)
    buffer = SheetBuffer(host, name)
    for r, values in enumerate(rows, start=1):
        if values:
            buffer.put_row(r, 1, values)
    buffer.flush()
    host.commit()


@pytest.fixture
def discoverer(host):
    return StructureDiscoverer(host)


# ============================================================================
# Tests
# ============================================================================

class TestMarker:
    def test_case_insensitive_contains(self):
        marker = Marker("noi", ("net operating income", "noi"))
        assert marker.matches("NOI")
        assert marker.matches("Net Operating Income (NOI)")
        assert not marker.matches("Revenue")

    def test_noi_matches_whole_words_only(self):
        noi = next(m for m in OPERATING_MARKERS if m.name == "noi")
        assert noi.matches("NOI")
        assert noi.matches("Net Operating Income (NOI)")
        assert not noi.matches("Illinois Rent")
        assert not noi.matches("Noise Barrier")

    def test_excludes(self):
        levered = next(m for m in FCF_MARKERS if m.name == "fcf_levered")
        assert levered.matches("Levered Cashflows")
        assert not levered.matches("Unlevered Cashflows")


class TestDiscover:
    def test_missing_sheet(self, discoverer):
        structure = discoverer.discover("Projections", OPERATING_MARKERS)
        assert not structure.exists
        assert not structure.found

    def test_no_markers_found(self, host, discoverer):
        write_sheet(host, "Notes", [["Some text", 1, 2], ["More text", 3, 4]])
        structure = discoverer.discover("Notes", OPERATING_MARKERS)
        assert structure.exists
        assert not structure.found
        assert structure.locations == {}

    def test_row_range_spans_populated_columns(self, host, discoverer):
        write_sheet(host, "Projections", [
            ["Profit & Loss Statement (USD)"],
            None,
            ["Period", "Jan 2025", "Feb 2025", "Mar 2025"],
            None,
            ["Total Revenue", "=SUM(B6:B6)", "=SUM(C6:C6)", "=SUM(D6:D6)"],
            ["NOI", "=B5", "=C5", "=D5"],
        ])
        structure = discoverer.discover("Projections", OPERATING_MARKERS)
        assert structure.last_col == 4
        assert structure.find("noi").cell_range.to_address_string() == "Projections!B6:D6"
        assert structure.find("total_revenue").row == 5
        assert "total_capex" not in structure

    def test_first_match_wins(self, host, discoverer):
        write_sheet(host, "Debt Model", [
            ["Debt Expense per Period", 1, 2],
            ["Debt Expense (memo)", 3, 4],
        ])
        structure = discoverer.discover("Debt Model", DEBT_MARKERS)
        assert structure.find("debt_expense").row == 1

    def test_noi_not_taken_from_item_rows(self, host, discoverer):
        write_sheet(host, "Projections", [
            ["Profit & Loss Statement (USD)"],
            None,
            ["Period", "Jan 2025", "Feb 2025"],
            ["Illinois Rent", 10, 10],
            ["Noise Barrier", -2, -2],
            ["NOI", "=B4+B5", "=C4+C5"],
        ])
        structure = discoverer.discover("Projections", OPERATING_MARKERS)
        assert structure.find("noi").row == 6

    def test_value_markers_resolve_to_column_b(self, host, discoverer):
        write_sheet(host, "Assumptions", [
            ["DEAL ASSUMPTIONS"],
            None,
            ["Deal Value", 1_000_000],
            ["Transaction Fee (%)", 2.5],
        ])
        structure = discoverer.discover_assumptions()
        assert structure.find("deal_value").cell_range.a1 == "B3:B3"
        assert structure.find("transaction_fee").cell_range.start.a1 == "B4"
        assert "terminal_cap_rate" not in structure


class TestRecovery:
    def test_record_into_keeps_existing(self, host, discoverer, registry):
        write_sheet(host, "FCF", [
            ["Unlevered Cashflows", 1, 2],
            ["Levered Cashflows", 3, 4],
        ])
        structure = discoverer.discover_fcf()
        registry.record_range("fcf_levered", structure.find("fcf_unlevered").cell_range)
        recorded = structure.record_into(registry)
        assert recorded == ["fcf_unlevered"]
        assert registry.require("fcf_levered").address.row == 1

    def test_recover_reports_missing(self, host, discoverer, registry):
        write_sheet(host, "FCF", [["Unlevered Cashflows", 1, 2]])
        missing = discoverer.recover(registry, ["fcf_unlevered", "fcf_levered"])
        assert missing == ["fcf_levered"]
        assert "fcf_unlevered" in registry

    def test_recover_nothing_missing(self, discoverer, registry):
        assert discoverer.recover(registry, []) == []
