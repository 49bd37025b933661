"""
Deal Input Validation

Fail-fast validation run before any sheet is written.
"""
from __future__ import annotations

import re
from typing import Optional

from deal_engine.models import LineItemCategory, ModelInput
from deal_engine.periods import PeriodCalculator


# Control characters a workbook cell cannot hold (tab, LF and CR are allowed).
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


class ValidationError(Exception):
    """Raised when input validation fails."""
    pass


def validate_inputs(inputs: ModelInput, calculator: Optional[PeriodCalculator] = None) -> int:
    """
    Validate deal inputs for completeness and consistency.

    Returns the number of operating periods. Raises ValidationError with a
    precise message on failure.
    """
    _validate_deal_value(inputs)
    periods = _validate_timeline(inputs, calculator or PeriodCalculator())
    _validate_percentages(inputs)
    _validate_exit(inputs)
    _validate_text(inputs)
    return periods


def _validate_deal_value(inputs: ModelInput) -> None:
    if inputs.deal_value is None:
        raise ValidationError("Deal value is required")
    if inputs.deal_value <= 0:
        raise ValidationError(f"Deal value must be positive, got {inputs.deal_value}")


def _validate_timeline(inputs: ModelInput, calculator: PeriodCalculator) -> int:
    if inputs.end_date <= inputs.start_date:
        raise ValidationError(
            f"Project end date {inputs.end_date} must be after start date {inputs.start_date}"
        )
    periods = calculator.count_periods(inputs.start_date, inputs.end_date, inputs.granularity)
    if periods < 1:
        raise ValidationError("Model must have at least one operating period")
    return periods


def _validate_percentages(inputs: ModelInput) -> None:
    if not 0 <= inputs.ltv < 100:
        raise ValidationError(f"Deal LTV must be in [0, 100), got {inputs.ltv}")

    named = {
        "Transaction fee": inputs.transaction_fee,
        "Disposal cost": inputs.disposal_cost,
        "Discount rate": inputs.discount_rate,
        "Loan issuance fee": inputs.debt.issuance_fee,
        "Fixed interest rate": inputs.debt.fixed_rate,
    }
    for label, value in named.items():
        if value < 0:
            raise ValidationError(f"{label} must be non-negative, got {value}")


def _validate_exit(inputs: ModelInput) -> None:
    if inputs.terminal_cap_rate <= 0:
        raise ValidationError(
            f"Terminal cap rate must be positive, got {inputs.terminal_cap_rate}"
        )


def _validate_text(inputs: ModelInput) -> None:
    named = [("Deal name", inputs.deal_name), ("Currency", inputs.currency)]
    for category in LineItemCategory:
        named.extend((f"{category.value.capitalize()} item name", item.name) for item in inputs.items_for(category))
    for label, text in named:
        if _CONTROL_CHARS.search(text):
            raise ValidationError(f"{label} contains control characters: {text!r}")
