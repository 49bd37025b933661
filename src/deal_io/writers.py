"""
Deal I/O Writers

Workbook styling for generated models and CSV export of the numeric preview.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from deal_engine.cashflows import compute_cash_flows
from deal_engine.models import GenerationSummary, ModelInput
from deal_engine.returns import NO_SOLUTION
from deal_io.xlsx_layout import SheetLayout


CURRENCY_FORMATS = {
    "USD": "[$$-en-US] #,##0;[Red][$$-en-US] -#,##0",
    "EUR": "[$€-en-US] #,##0;[Red][$€-en-US] -#,##0",
    "GBP": "[$£-en-GB] #,##0;[Red][$£-en-GB] -#,##0",
    "JPY": "[$¥-ja-JP] #,##0;[Red][$¥-ja-JP] -#,##0",
    "CAD": "[$C$-en-CA] #,##0;[Red][$C$-en-CA] -#,##0",
    "AUD": "[$A$-en-AU] #,##0;[Red][$A$-en-AU] -#,##0",
    "CHF": "[$CHF-de-CH] #,##0;[Red][$CHF-de-CH] -#,##0",
    "CNY": "[$¥-zh-CN] #,##0;[Red][$¥-zh-CN] -#,##0",
    "SEK": "[$kr-sv-SE] #,##0;[Red][$kr-sv-SE] -#,##0",
    "NOK": "[$kr-nb-NO] #,##0;[Red][$kr-nb-NO] -#,##0",
}

PERCENT_FORMAT = "0.00%"
DATE_FORMAT = "dd-mmm-yy"
MULTIPLE_FORMAT = '0.00"x"'

_BOLD_LABELS = ("total ", "noi", "unlevered cashflows", "levered cashflows", "equity distributions")
_PERCENT_LABELS = ("interest rate (%)", "unlevered irr", "levered irr")
_PLAIN_PERCENT_LABELS = ("Transaction Fee (%)", "Deal LTV (%)")


def currency_format(currency: Optional[str]) -> str:
    return CURRENCY_FORMATS.get((currency or "USD").upper(), CURRENCY_FORMATS["USD"])


# ============================================================================
# TABLES
# ============================================================================

def _create_summary_table(model: ModelInput, summary: GenerationSummary) -> pd.DataFrame:
    """Create deal and returns summary table."""
    def _pct(value: Optional[float]) -> str:
        return NO_SOLUTION if value is None else f"{value:.4f}"

    data = [
        ["Deal Name", summary.deal_name],
        ["Currency", model.currency],
        ["Granularity", summary.granularity.value],
        ["Periods", summary.period_count],
        ["Deal Value", model.deal_value],
        ["Equity Contribution", model.equity_amount],
        ["Debt Financing", model.debt_amount],
        ["Unlevered IRR", _pct(summary.unlevered_irr)],
        ["Levered IRR", _pct(summary.levered_irr)],
        ["MOIC", "" if summary.moic is None else f"{summary.moic:.4f}"],
        ["Generation Path", summary.path.value],
    ]
    return pd.DataFrame(data, columns=["Parameter", "Value"])


def _create_cashflows_table(model: ModelInput, summary: GenerationSummary) -> pd.DataFrame:
    """Create period-indexed cash flow table (one row per period)."""
    flows = compute_cash_flows(model, summary.period_count)
    table = pd.DataFrame(flows.as_rows())
    table.insert(0, "Period", summary.period_labels or list(range(len(table))))
    return table


def _create_stages_table(summary: GenerationSummary) -> pd.DataFrame:
    """Create stage outcome table."""
    return pd.DataFrame(
        [[s.stage, s.sheet, s.path.value, s.detail or ""] for s in summary.stages],
        columns=["Stage", "Sheet", "Path", "Detail"],
    )


def format_tables(model: ModelInput, summary: GenerationSummary) -> dict[str, pd.DataFrame]:
    """
    Convert a generation summary to display-ready DataFrames.

    Returns:
        Dict mapping table name to DataFrame
    """
    return {
        "1_Summary": _create_summary_table(model, summary),
        "2_Cash_Flows": _create_cashflows_table(model, summary),
        "3_Stages": _create_stages_table(summary),
    }


def export_csv(model: ModelInput, summary: GenerationSummary, output_dir: str | Path) -> list[Path]:
    """
    Export the numeric preview to CSV files (one per table).

    Args:
        model: Deal inputs the summary was generated from
        summary: Generation summary
        output_dir: Directory to write CSV files

    Returns:
        List of created file paths
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    tables = format_tables(model, summary)
    created_files = []

    for table_name, df in tables.items():
        file_path = output_dir / f"{table_name}.csv"
        df.to_csv(file_path, index=False)
        created_files.append(file_path)

    return created_files


# ============================================================================
# WORKBOOK STYLING
# ============================================================================

def _style_table_header(ws, header_row: int, max_col: int) -> None:
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="2E75B6", end_color="2E75B6", fill_type="solid")
    bottom = Border(bottom=Side(style="medium"))
    for col in range(1, max_col + 1):
        cell = ws.cell(row=header_row, column=col)
        cell.font = header_font
        cell.fill = header_fill
        cell.border = bottom
        cell.alignment = Alignment(horizontal="center")


def _style_title(ws) -> None:
    cell = ws.cell(row=1, column=1)
    cell.font = Font(bold=True, size=14, color="1F4E79")


def _auto_fit_columns(ws, max_col: int) -> None:
    for col in range(1, max_col + 1):
        max_length = 0
        for row in ws.iter_rows(min_col=col, max_col=col, max_row=ws.max_row):
            cell = row[0]
            if cell.value is None:
                continue
            text = str(cell.value)
            # formulas display as numbers
            length = 14 if text.startswith("=") else len(text)
            max_length = max(max_length, length)
        ws.column_dimensions[get_column_letter(col)].width = min(max_length + 2, 40)


def _is_numeric(value) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    return isinstance(value, str) and value.startswith("=")


def _row_format(label: str, money: str) -> str:
    text = label.lower()
    if text == "date values":
        return DATE_FORMAT
    if text == "moic":
        return MULTIPLE_FORMAT
    if any(p in text for p in _PERCENT_LABELS):
        return PERCENT_FORMAT
    return money


def _style_assumptions(ws, money: str) -> None:
    for row in ws.iter_rows(min_row=2, max_row=ws.max_row, max_col=4):
        label = row[0].value
        if isinstance(label, str) and label.isupper():
            row[0].font = Font(bold=True)
            continue
        if isinstance(label, str) and label == "Name":
            for cell in row:
                cell.font = Font(bold=True)
            continue
        value_cell, growth_cell = row[1], row[2]
        if isinstance(label, str) and label.endswith("(%)"):
            # fee and LTV hold percent numbers, other rates hold fractions
            if label in _PLAIN_PERCENT_LABELS:
                value_cell.number_format = "0.00"
            else:
                value_cell.number_format = PERCENT_FORMAT
        elif _is_numeric(value_cell.value) and label not in ("Number of Periods",):
            value_cell.number_format = money
        if isinstance(growth_cell.value, (int, float)):
            growth_cell.number_format = PERCENT_FORMAT
    for key in ("Project Start Date", "Project End Date"):
        for row in ws.iter_rows(min_row=1, max_row=ws.max_row, max_col=2):
            if row[0].value == key:
                row[1].number_format = "yyyy-mm-dd"


def _style_period_sheet(ws, money: str, layout: SheetLayout) -> None:
    max_col = ws.max_column
    if ws.cell(row=layout.header_row, column=1).value is not None:
        _style_table_header(ws, layout.header_row, max_col)
    for row in ws.iter_rows(min_row=layout.header_row + 1, max_row=ws.max_row, max_col=max_col):
        label = row[0].value
        if not isinstance(label, str):
            continue
        text = label.lower()
        if label.isupper() or text.startswith(_BOLD_LABELS):
            for cell in row:
                cell.font = Font(bold=True)
        fmt = _row_format(label, money)
        for cell in row[layout.start_col - 1:]:
            if _is_numeric(cell.value):
                cell.number_format = fmt


def _find_currency(wb: Workbook, assumptions: str) -> Optional[str]:
    if assumptions not in wb.sheetnames:
        return None
    for row in wb[assumptions].iter_rows(min_row=1, max_col=2, values_only=True):
        if row[0] == "Currency":
            return row[1]
    return None


def style_model_workbook(
    wb: Workbook,
    currency: Optional[str] = None,
    assumptions_sheet: str = "Assumptions",
) -> None:
    """Apply titles, header fills, number formats and column widths."""
    money = currency_format(currency or _find_currency(wb, assumptions_sheet))
    layout = SheetLayout(start_col=2, header_row=3)
    for ws in wb.worksheets:
        _style_title(ws)
        if ws.title == assumptions_sheet:
            _style_assumptions(ws, money)
        else:
            _style_period_sheet(ws, money, layout)
            ws.freeze_panes = layout.cell(layout.start_col, layout.header_row + 1)
        _auto_fit_columns(ws, ws.max_column)
