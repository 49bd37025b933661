"""
AI Formula Suggestions

Boundary to an optional text-completion service. The service is an opaque
``(prompt) -> text`` callable; its answer may be prose around a JSON block of
the form ``{"calculations": {"<key>": {"formula": "=..."}}}``. Any failure
yields None so callers fall back to their template formulas.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Callable, Optional

from deal_engine.models import ModelInput
from deal_engine.registry import CellReferenceRegistry


logger = logging.getLogger(__name__)

CompletionFn = Callable[[str], str]

_THINK_RE = re.compile(r"<think>[\s\S]*?</think>", re.IGNORECASE)
_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
_JSON_RE = re.compile(r"\{[\s\S]*\}")


def extract_calculations(text: Optional[str]) -> Optional[dict[str, str]]:
    """
    Pull ``calculations.<key>.formula`` strings out of a completion.

    Entries whose formula is not a string starting with ``=`` are dropped.
    Returns None when no usable entry remains.
    """
    if not text:
        return None
    cleaned = _THINK_RE.sub("", text)
    fenced = _FENCE_RE.search(cleaned)
    if fenced:
        cleaned = fenced.group(1)
    match = _JSON_RE.search(cleaned)
    if not match:
        return None
    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None

    calculations = payload.get("calculations") if isinstance(payload, dict) else None
    if not isinstance(calculations, dict):
        return None

    formulas = {}
    for key, entry in calculations.items():
        formula = entry.get("formula") if isinstance(entry, dict) else None
        if isinstance(formula, str) and formula.strip().startswith("="):
            formulas[key] = formula.strip()
    return formulas or None


def build_returns_prompt(model: ModelInput, registry: CellReferenceRegistry, period_count: int) -> str:
    """Prompt asking for IRR and MOIC formulas over the recorded FCF rows."""
    lines = [
        "You are a senior financial analyst building an M&A model in Excel.",
        f"Deal: {model.deal_name} ({model.currency}), {period_count} {model.granularity.value} periods "
        "plus an initial investment period 0.",
        "",
        "Cash-flow rows on the FCF sheet (period 0 first):",
    ]
    for key, label in (
        ("fcf_unlevered", "Unlevered Cashflows"),
        ("fcf_levered", "Levered Cashflows"),
        ("fcf_equity_distributions", "Equity distributions"),
        ("fcf_dates", "Date Values (serial dates)"),
    ):
        ref = registry.lookup(key)
        if ref is not None:
            lines.append(f"- {label}: {ref.cell_range.a1}")
    lines += [
        "",
        "Return ONLY a JSON object shaped like:",
        '{"calculations": {'
        '"unleveredIRR": {"formula": "=..."}, '
        '"leveredIRR": {"formula": "=..."}, '
        '"leveredMOIC": {"formula": "=..."}}}',
        "Formulas are written on the FCF sheet, must start with '=' and use only the ranges above.",
        'Wrap IRR formulas in IFERROR(...,"No Solution").',
    ]
    return "\n".join(lines)


def request_formulas(completion: Optional[CompletionFn], prompt: str) -> Optional[dict[str, str]]:
    """Call the completion service; None on any failure or unusable answer."""
    if completion is None:
        return None
    try:
        text = completion(prompt)
    except Exception as e:
        logger.warning("AI completion failed, using template formulas: %s", e)
        return None
    formulas = extract_calculations(text)
    if formulas is None:
        logger.warning("AI response held no usable formulas, using template formulas")
    return formulas
