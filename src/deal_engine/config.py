"""
Engine Configuration

Sheet names, period caps and AI settings, loadable from a YAML file.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field

from deal_engine.models import Granularity


class PeriodCaps(BaseModel):
    """Upper bound on generated periods per granularity (None = uncapped)."""
    daily: Optional[int] = Field(1000, ge=1)
    monthly: Optional[int] = Field(None, ge=1)
    quarterly: Optional[int] = Field(None, ge=1)
    yearly: Optional[int] = Field(None, ge=1)

    def as_mapping(self) -> dict[Granularity, Optional[int]]:
        return {
            Granularity.DAILY: self.daily,
            Granularity.MONTHLY: self.monthly,
            Granularity.QUARTERLY: self.quarterly,
            Granularity.YEARLY: self.yearly,
        }


class SheetNames(BaseModel):
    """Workbook sheet names. Other tooling reads these, so change with care."""
    assumptions: str = "Assumptions"
    projections: str = "Projections"
    capex: str = "CapEx"
    debt: str = "Debt Model"
    fcf: str = "FCF"

    def ordered(self) -> list[str]:
        return [self.assumptions, self.projections, self.capex, self.debt, self.fcf]


class AISettings(BaseModel):
    """Optional AI completion service used to suggest returns formulas."""
    enabled: bool = False
    model: str = "gpt-4o-mini"
    base_url: Optional[str] = None
    api_key_env: str = "LLM_API_KEY"
    temperature: float = Field(0.1, ge=0, le=2)
    max_tokens: int = Field(1500, ge=1)
    timeout: float = Field(60.0, gt=0)


class EngineConfig(BaseModel):
    """Top-level engine configuration."""
    period_caps: PeriodCaps = Field(default_factory=PeriodCaps)
    sheet_names: SheetNames = Field(default_factory=SheetNames)
    ai: AISettings = Field(default_factory=AISettings)
    log_level: str = "INFO"


def load_config(path: Optional[Union[str, Path]] = None) -> EngineConfig:
    """Load configuration from YAML; defaults when no path is given."""
    if path is None:
        return EngineConfig()
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return EngineConfig.model_validate(data)
