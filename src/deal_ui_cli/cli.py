"""
Deal Model CLI Application

Typer-based command-line interface for generating deal models.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from deal_engine.config import EngineConfig, load_config
from deal_engine.discovery import StructureDiscoverer
from deal_engine.engine import ModelGenerator
from deal_io.llm_client import build_completion
from deal_io.readers import read_input_file
from deal_io.workbook_host import OpenpyxlHost
from deal_io.writers import export_csv
from deal_ui_cli.display import (
    display_inputs_summary,
    display_registry,
    display_result,
    display_structure,
)


app = typer.Typer(
    name="dealmodel",
    help="Formula-driven M&A deal model generator",
    add_completion=False,
)

console = Console()


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _resolve_input_file(input_file: Optional[Path], input_option: Optional[Path]) -> Path:
    """Resolve input file from positional arg or --input option."""
    resolved = input_option or input_file
    if resolved is None:
        raise typer.BadParameter("Missing input file. Provide a positional INPUT_FILE or --input.")
    if not resolved.exists():
        raise typer.BadParameter(f"Input file not found: {resolved}")
    if not resolved.is_file():
        raise typer.BadParameter(f"Input path is not a file: {resolved}")
    return resolved


def _load_config(config_path: Optional[Path], log_level: Optional[str]) -> EngineConfig:
    config = load_config(config_path)
    _configure_logging(log_level or config.log_level)
    return config


@app.command()
def generate(
    input_file: Optional[Path] = typer.Argument(
        None,
        help="Path to deal input file (YAML or JSON)",
    ),
    input_option: Optional[Path] = typer.Option(
        None,
        "--input",
        "-i",
        help="Path to deal input file (YAML or JSON)",
    ),
    output: Path = typer.Option(
        Path("deal_model.xlsx"),
        "--output", "-o",
        help="Output Excel file path",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        help="Engine configuration file (YAML)",
    ),
    csv_dir: Optional[Path] = typer.Option(
        None,
        "--csv-dir",
        help="Directory to export CSV files",
    ),
    ai: Optional[bool] = typer.Option(
        None,
        "--ai/--no-ai",
        help="Ask the configured AI service for returns formulas",
    ),
    show_registry: bool = typer.Option(
        False,
        "--show-registry",
        help="Print every recorded cell reference",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (overrides config)",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet", "-q",
        help="Suppress table output",
    ),
) -> None:
    """
    Generate a formula-driven deal model workbook.

    Reads a YAML or JSON deal file, writes the Assumptions, Projections,
    CapEx, Debt Model and FCF sheets, and saves the workbook.
    """
    try:
        input_file = _resolve_input_file(input_file, input_option)
        config = _load_config(config_path, log_level)
        if ai is not None:
            config = config.model_copy(update={"ai": config.ai.model_copy(update={"enabled": ai})})

        console.print(f"[dim]Reading input file: {input_file}[/dim]")
        model = read_input_file(input_file)

        console.print("[dim]Generating model...[/dim]")
        host = OpenpyxlHost(assumptions_sheet=config.sheet_names.assumptions)
        generator = ModelGenerator(host, config, completion=build_completion(config.ai))
        result = generator.generate(model)

        if not result.success:
            raise RuntimeError(result.error)

        if not quiet:
            display_result(model, result)
        if show_registry:
            display_registry(generator.registry)

        host.save(output)
        console.print(f"[green]✓ Exported to {output}[/green]")

        if csv_dir:
            console.print(f"\n[dim]Exporting CSVs to: {csv_dir}[/dim]")
            files = export_csv(model, result.summary, csv_dir)
            console.print(f"[green]✓ Exported {len(files)} CSV files[/green]")

    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)


@app.command()
def validate(
    input_file: Optional[Path] = typer.Argument(
        None,
        help="Path to deal input file (YAML or JSON)",
    ),
    input_option: Optional[Path] = typer.Option(
        None,
        "--input",
        "-i",
        help="Path to deal input file (YAML or JSON)",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        help="Engine configuration file (YAML)",
    ),
) -> None:
    """
    Validate a deal input file without writing a workbook.

    Checks required fields, the timeline and percentage ranges.
    """
    try:
        input_file = _resolve_input_file(input_file, input_option)
        config = _load_config(config_path, None)
        console.print(f"[dim]Validating: {input_file}[/dim]")
        model = read_input_file(input_file)

        generator = ModelGenerator(OpenpyxlHost(), config)
        period_count = generator.period_count(model)

        console.print("[green]✓ Input file is valid[/green]")
        display_inputs_summary(model, period_count)

    except Exception as e:
        console.print(f"[red]Validation failed: {e}[/red]")
        raise typer.Exit(code=1)


@app.command()
def discover(
    workbook: Path = typer.Argument(
        ...,
        help="Previously generated workbook (.xlsx)",
    ),
    sheet: Optional[str] = typer.Option(
        None,
        "--sheet", "-s",
        help="Only scan this sheet",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        help="Engine configuration file (YAML)",
    ),
) -> None:
    """
    Recover cell references from a saved workbook.

    Scans each model sheet's label column for known row markers.
    """
    try:
        config = _load_config(config_path, None)
        host = OpenpyxlHost.load(workbook, config.sheet_names.assumptions)
        discoverer = StructureDiscoverer(host, config.sheet_names)
        structures = discoverer.discover_all()
        if sheet is not None:
            if sheet not in structures:
                raise ValueError(f"Not a model sheet: {sheet}")
            structures = {sheet: structures[sheet]}
        for structure in structures.values():
            display_structure(structure)

    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
