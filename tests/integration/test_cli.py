"""
Integration Test - Command Line

Runs the dealmodel commands in-process against the bundled example input.
"""
from pathlib import Path

from openpyxl import load_workbook
from typer.testing import CliRunner

from deal_ui_cli.cli import app


EXAMPLES = Path(__file__).resolve().parents[2] / "examples"

runner = CliRunner()


def test_validate_example():
    result = runner.invoke(app, ["validate", str(EXAMPLES / "deal_input.yaml")])
    assert result.exit_code == 0, result.output
    assert "Input file is valid" in result.output


def test_generate_and_discover(tmp_path):
    output = tmp_path / "deal_model.xlsx"
    result = runner.invoke(
        app,
        [
            "generate",
            "--input", str(EXAMPLES / "deal_input.yaml"),
            "--config", str(EXAMPLES / "engine_config.yaml"),
            "--output", str(output),
            "--csv-dir", str(tmp_path / "csv"),
            "--no-ai",
            "--quiet",
        ],
    )
    assert result.exit_code == 0, result.output
    assert output.exists()
    assert (tmp_path / "csv" / "1_Summary.csv").exists()
    assert load_workbook(output).sheetnames == ["Assumptions", "Projections", "CapEx", "Debt Model", "FCF"]

    result = runner.invoke(app, ["discover", str(output), "--sheet", "FCF"])
    assert result.exit_code == 0, result.output
    assert "fcf_levered" in result.output


def test_missing_input_file(tmp_path):
    result = runner.invoke(app, ["generate", str(tmp_path / "missing.yaml")])
    assert result.exit_code == 1
    assert "Input file not found" in result.output


def test_invalid_deal_reports_error(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text(
        "deal:\n  name: Broken\n"
        "timeline:\n  start_date: 2025-01-01\n  end_date: 2026-01-01\n  granularity: monthly\n"
    )
    result = runner.invoke(app, ["generate", str(path), "--output", str(tmp_path / "out.xlsx"), "--quiet"])
    assert result.exit_code == 1
    assert "Deal value is required" in result.output
