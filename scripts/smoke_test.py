from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path


def _run(cmd: list[str], env: dict[str, str]) -> None:
    result = subprocess.run(
        cmd,
        check=False,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        env=env,
    )
    if result.returncode != 0:
        print(result.stdout)
        raise SystemExit(result.returncode)


def main() -> None:
    root = Path(__file__).resolve().parents[1]
    env = os.environ.copy()
    env["PYTHONPATH"] = str(root / "src")
    cli = [sys.executable, "-m", "deal_ui_cli.cli"]
    workbook = root / "output" / "smoke" / "deal_model.xlsx"

    _run(cli + ["--help"], env)
    _run(cli + ["validate", "--input", str(root / "examples" / "deal_input.yaml")], env)
    _run(
        cli
        + [
            "generate",
            "--input",
            str(root / "examples" / "deal_input.yaml"),
            "--config",
            str(root / "examples" / "engine_config.yaml"),
            "--output",
            str(workbook),
            "--csv-dir",
            str(workbook.parent / "csv"),
            "--no-ai",
            "--quiet",
        ],
        env,
    )
    _run(cli + ["discover", str(workbook)], env)
    print("Smoke test passed")


if __name__ == "__main__":
    main()
