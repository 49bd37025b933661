"""
Deal Engine Core Data Models

Pydantic models for deal inputs and generation outputs with validation.
"""
from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Granularity(str, Enum):
    """Length of one model period."""
    DAILY = "daily"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class GrowthKind(str, Enum):
    """How a line item evolves from one period to the next."""
    NONE = "none"
    ANNUAL_RATE = "annual-rate"


class LineItemCategory(str, Enum):
    """Repeatable line-item categories written to the Assumptions sheet."""
    REVENUE = "revenue"
    OPEX = "opex"
    CAPEX = "capex"


class StagePath(str, Enum):
    """Outcome of a generation stage or run."""
    SUCCESS_WITH_AI = "success-with-ai"
    SUCCESS_WITH_TEMPLATE = "success-with-template"
    FAILURE = "failure"


# ============================================================================
# INPUT MODELS
# ============================================================================

class LineItem(BaseModel):
    """A single revenue, operating expense or capital expenditure item."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    base_value: float = Field(..., ge=0, description="Value in the first period")
    growth_kind: GrowthKind = GrowthKind.NONE
    annual_growth_rate: Optional[float] = Field(
        None, description="Annual growth rate in percent (e.g. 3 for 3%)"
    )

    @model_validator(mode="after")
    def validate_growth(self) -> "LineItem":
        if self.growth_kind == GrowthKind.ANNUAL_RATE and self.annual_growth_rate is None:
            raise ValueError(
                f"Line item '{self.name}' uses annual-rate growth but has no annual_growth_rate"
            )
        return self

    @property
    def growth_fraction(self) -> float:
        """Annual growth as a fraction, zero when the item does not grow."""
        if self.growth_kind != GrowthKind.ANNUAL_RATE or self.annual_growth_rate is None:
            return 0.0
        return self.annual_growth_rate / 100


class DebtTerms(BaseModel):
    """Senior debt terms (percentages)."""
    model_config = ConfigDict(frozen=True)

    issuance_fee: float = Field(1.5, ge=0, description="Loan issuance fee in percent")
    fixed_rate: float = Field(5.5, ge=0, description="Fixed interest rate per period in percent")


class ModelInput(BaseModel):
    """Complete deal assumptions submitted for model generation."""
    model_config = ConfigDict(frozen=True)

    deal_name: str = "Untitled Deal"
    currency: str = "USD"
    start_date: date
    end_date: date
    granularity: Granularity = Granularity.MONTHLY
    deal_value: Optional[float] = Field(None, description="Purchase price of the asset")
    transaction_fee: float = Field(2.5, description="Transaction fee in percent of deal value")
    ltv: float = Field(70.0, description="Loan-to-value in percent")
    disposal_cost: float = Field(2.5, description="Disposal cost in percent of sale price")
    terminal_cap_rate: float = Field(8.5, description="Terminal cap rate in percent")
    discount_rate: float = Field(10.0, description="Discount rate (WACC) in percent")
    debt: DebtTerms = Field(default_factory=DebtTerms)
    revenue_items: list[LineItem] = Field(default_factory=list)
    opex_items: list[LineItem] = Field(default_factory=list)
    capex_items: list[LineItem] = Field(default_factory=list)

    def items_for(self, category: LineItemCategory) -> list[LineItem]:
        return {
            LineItemCategory.REVENUE: self.revenue_items,
            LineItemCategory.OPEX: self.opex_items,
            LineItemCategory.CAPEX: self.capex_items,
        }[category]

    @property
    def has_debt(self) -> bool:
        return self.ltv > 0

    @property
    def debt_amount(self) -> float:
        return (self.deal_value or 0.0) * self.ltv / 100

    @property
    def equity_amount(self) -> float:
        return (self.deal_value or 0.0) * (1 - self.ltv / 100)


# ============================================================================
# OUTPUT MODELS
# ============================================================================

class StageOutcome(BaseModel):
    """Result of one pipeline stage."""
    stage: str
    sheet: str
    path: StagePath
    detail: Optional[str] = None


class GenerationSummary(BaseModel):
    """What a successful run produced, plus a numeric preview of the returns."""
    deal_name: str
    granularity: Granularity
    period_count: int
    sheets: list[str]
    stages: list[StageOutcome]
    reference_count: int
    period_labels: list[str] = Field(default_factory=list)
    unlevered_cash_flows: list[float] = Field(default_factory=list)
    levered_cash_flows: list[float] = Field(default_factory=list)
    unlevered_irr: Optional[float] = None
    levered_irr: Optional[float] = None
    moic: Optional[float] = None

    @property
    def path(self) -> StagePath:
        if any(stage.path == StagePath.SUCCESS_WITH_AI for stage in self.stages):
            return StagePath.SUCCESS_WITH_AI
        return StagePath.SUCCESS_WITH_TEMPLATE


class GenerationResult(BaseModel):
    """Single consolidated outcome of `ModelGenerator.generate`."""
    path: StagePath
    summary: Optional[GenerationSummary] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.path != StagePath.FAILURE

    @classmethod
    def ok(cls, summary: GenerationSummary) -> "GenerationResult":
        return cls(path=summary.path, summary=summary)

    @classmethod
    def failed(cls, error: str) -> "GenerationResult":
        return cls(path=StagePath.FAILURE, error=error)
