"""
Deal CLI Display

Rich table formatting for terminal output.
"""
from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from deal_engine.discovery import SheetStructure
from deal_engine.models import GenerationResult, GenerationSummary, ModelInput, StagePath
from deal_engine.registry import CellReferenceRegistry
from deal_engine.returns import NO_SOLUTION


console = Console()

_PATH_STYLES = {
    StagePath.SUCCESS_WITH_AI: "magenta",
    StagePath.SUCCESS_WITH_TEMPLATE: "green",
    StagePath.FAILURE: "red",
}


def display_header(title: str) -> None:
    """Display a section header."""
    console.print()
    console.print(Panel(Text(title, style="bold white"), style="blue"))


def _pct(value: Optional[float]) -> str:
    return NO_SOLUTION if value is None else f"{value:.2%}"


def display_inputs_summary(model: ModelInput, period_count: Optional[int] = None) -> None:
    """Display deal assumptions."""
    display_header("📊 Deal Assumptions")

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Parameter", style="dim")
    table.add_column("Value", justify="right")

    table.add_row("Deal Name", model.deal_name)
    table.add_row("Currency", model.currency)
    table.add_row("Timeline", f"{model.start_date} → {model.end_date}")
    table.add_row("Granularity", model.granularity.value)
    if period_count is not None:
        table.add_row("Periods", str(period_count))
    table.add_row("Deal Value", f"{model.deal_value or 0:,.0f}")
    table.add_row("Transaction Fee", f"{model.transaction_fee:.2f}%")
    table.add_row("LTV", f"{model.ltv:.2f}%")
    if model.has_debt:
        table.add_row("Debt Financing", f"{model.debt_amount:,.0f}")
        table.add_row("Fixed Rate", f"{model.debt.fixed_rate:.2f}%")
    table.add_row("Terminal Cap Rate", f"{model.terminal_cap_rate:.2f}%")
    table.add_row(
        "Line Items",
        f"{len(model.revenue_items)} revenue / {len(model.opex_items)} opex / {len(model.capex_items)} capex",
    )

    console.print(table)


def display_stages(summary: GenerationSummary) -> None:
    """Display the outcome of each generation stage."""
    display_header("🧱 Generated Sheets")

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Stage")
    table.add_column("Sheet")
    table.add_column("Path")
    table.add_column("Detail", style="dim")

    for stage in summary.stages:
        style = _PATH_STYLES[stage.path]
        table.add_row(stage.stage, stage.sheet, f"[{style}]{stage.path.value}[/{style}]", stage.detail or "")

    console.print(table)


def display_cash_flows(summary: GenerationSummary, max_rows: int = 24) -> None:
    """Display unlevered and levered cash flows by period."""
    display_header("💵 Cash Flows")

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Period", justify="center")
    table.add_column("Unlevered", justify="right")
    table.add_column("Levered", justify="right")

    rows = list(zip(summary.period_labels, summary.unlevered_cash_flows, summary.levered_cash_flows))
    shown = rows if len(rows) <= max_rows else rows[: max_rows - 1] + rows[-1:]
    for idx, (label, unlevered, levered) in enumerate(shown):
        if len(rows) > max_rows and idx == max_rows - 1:
            table.add_row("…", "", "")
        table.add_row(label, f"{unlevered:,.2f}", f"{levered:,.2f}")

    console.print(table)


def display_returns(summary: GenerationSummary) -> None:
    """Display IRR and MOIC."""
    display_header("📈 Returns")

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="dim")
    table.add_column("Value", justify="right")

    table.add_row("Unlevered IRR (per period)", _pct(summary.unlevered_irr))
    table.add_row("Levered IRR (per period)", _pct(summary.levered_irr))
    table.add_row("MOIC", "n/a" if summary.moic is None else f"{summary.moic:.2f}x")

    console.print(table)


def display_registry(registry: CellReferenceRegistry) -> None:
    """Display every recorded cell reference."""
    display_header("🔗 Cell References")

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Key")
    table.add_column("Address", justify="right")

    for key, address in registry.as_dict().items():
        table.add_row(key, address)

    console.print(table)


def display_structure(structure: SheetStructure) -> None:
    """Display markers discovered on one sheet."""
    display_header(f"🔍 {structure.sheet}")

    if not structure.exists:
        console.print("[yellow]Sheet not found[/yellow]")
        return
    if not structure.found:
        console.print("[yellow]No known markers found[/yellow]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Marker")
    table.add_column("Row", justify="right")
    table.add_column("Label", style="dim")
    table.add_column("Range", justify="right")

    for location in structure.locations.values():
        table.add_row(location.marker, str(location.row), location.label, location.cell_range.a1)

    console.print(table)


def display_result(model: ModelInput, result: GenerationResult) -> None:
    """Display all sections for a generation result."""
    if not result.success or result.summary is None:
        console.print(f"[red]Generation failed: {result.error}[/red]")
        return
    summary = result.summary
    display_inputs_summary(model, summary.period_count)
    display_stages(summary)
    display_cash_flows(summary)
    display_returns(summary)
    console.print()
