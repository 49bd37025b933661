"""
Deal I/O Readers

YAML and JSON deal input file parsing.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import yaml

from deal_engine.models import (
    DebtTerms,
    Granularity,
    GrowthKind,
    LineItem,
    ModelInput,
)


def _parse_line_item(data: dict, default_name: str) -> LineItem:
    """Parse one line item; a growth rate implies annual-rate growth."""
    growth_rate = data.get("growth_rate", data.get("annual_growth_rate"))
    if "growth_kind" in data:
        growth_kind = GrowthKind(data["growth_kind"])
    else:
        growth_kind = GrowthKind.ANNUAL_RATE if growth_rate else GrowthKind.NONE
    return LineItem(
        name=data.get("name") or default_name,
        base_value=data.get("base_value", data.get("value", 0)),
        growth_kind=growth_kind,
        annual_growth_rate=growth_rate,
    )


def _parse_line_items(data: Optional[list], prefix: str) -> list[LineItem]:
    """Parse a list of line items."""
    return [
        _parse_line_item(item, f"{prefix} {idx + 1}")
        for idx, item in enumerate(data or [])
    ]


def _parse_debt(data: dict) -> DebtTerms:
    """Parse debt section."""
    defaults = DebtTerms()
    return DebtTerms(
        issuance_fee=data.get("issuance_fee", defaults.issuance_fee),
        fixed_rate=data.get("fixed_rate", defaults.fixed_rate),
    )


def _drop_none(values: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


def parse_input_dict(data: dict[str, Any]) -> ModelInput:
    """
    Parse a dictionary of inputs into a ModelInput model.

    This is the core parsing function used by both YAML and JSON readers.

    Args:
        data: Raw input dictionary

    Returns:
        ModelInput model
    """
    deal = data.get("deal", {})
    timeline = data["timeline"]
    exit_ = data.get("exit", {})

    fields = _drop_none({
        "deal_name": deal.get("name"),
        "currency": deal.get("currency"),
        "deal_value": deal.get("value"),
        "transaction_fee": deal.get("transaction_fee"),
        "ltv": deal.get("ltv"),
        "start_date": timeline["start_date"],
        "end_date": timeline["end_date"],
        "granularity": Granularity(timeline.get("granularity", "monthly")),
        "disposal_cost": exit_.get("disposal_cost"),
        "terminal_cap_rate": exit_.get("terminal_cap_rate"),
        "discount_rate": exit_.get("discount_rate"),
    })

    return ModelInput(
        **fields,
        debt=_parse_debt(data.get("debt", {})),
        revenue_items=_parse_line_items(data.get("revenue_items"), "Revenue Item"),
        opex_items=_parse_line_items(data.get("opex_items"), "OpEx Item"),
        capex_items=_parse_line_items(data.get("capex_items"), "CapEx"),
    )


def read_yaml(path: str | Path) -> ModelInput:
    """
    Read deal inputs from a YAML file.

    Args:
        path: Path to YAML file

    Returns:
        ModelInput model
    """
    path = Path(path)
    with open(path, "r") as f:
        data = yaml.safe_load(f)

    return parse_input_dict(data)


def read_json(path: str | Path) -> ModelInput:
    """
    Read deal inputs from a JSON file.

    Args:
        path: Path to JSON file

    Returns:
        ModelInput model
    """
    path = Path(path)
    with open(path, "r") as f:
        data = json.load(f)

    return parse_input_dict(data)


def read_input_file(path: str | Path) -> ModelInput:
    """
    Read deal inputs from a file (auto-detects format).

    Args:
        path: Path to input file (YAML or JSON)

    Returns:
        ModelInput model
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix in (".yaml", ".yml"):
        return read_yaml(path)
    elif suffix == ".json":
        return read_json(path)
    else:
        raise ValueError(f"Unsupported file format: {suffix}")
