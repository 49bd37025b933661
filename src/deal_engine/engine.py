"""
Deal Model Generator

Runs the generation stages in order against a spreadsheet host:
Assumptions, Projections, CapEx, Debt Model, FCF and Returns.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from deal_engine.ai import CompletionFn
from deal_engine.assumptions import AssumptionsCompiler
from deal_engine.cashflows import FreeCashFlowAssembler, compute_cash_flows
from deal_engine.config import EngineConfig
from deal_engine.debt import DebtScheduler
from deal_engine.discovery import StructureDiscoverer
from deal_engine.host import HostError, SpreadsheetHost
from deal_engine.models import (
    GenerationResult,
    GenerationSummary,
    ModelInput,
    StageOutcome,
    StagePath,
)
from deal_engine.periods import PeriodCalculator
from deal_engine.projections import ProjectionCompiler
from deal_engine.registry import CellReferenceRegistry, MissingReferenceError
from deal_engine.returns import ReturnsCalculator, compute_irr, compute_moic
from deal_engine.validation import ValidationError, validate_inputs


logger = logging.getLogger(__name__)


class ModelGenerator:
    """
    Main model generation pipeline.

    Stages run strictly in order and the host is committed after each one,
    so later stages (and structure discovery) see earlier output. Each call
    to ``generate`` starts from a fresh registry.
    """

    def __init__(
        self,
        host: SpreadsheetHost,
        config: Optional[EngineConfig] = None,
        completion: Optional[CompletionFn] = None,
    ):
        """
        Initialize the generator.

        Args:
            host: Spreadsheet host receiving the writes
            config: Engine configuration (defaults when omitted)
            completion: Optional AI completion callable used for returns formulas
        """
        self.host = host
        self.config = config or EngineConfig()
        self.completion = completion
        self.sheets = self.config.sheet_names
        self.calculator = PeriodCalculator(self.config.period_caps.as_mapping())
        self.discoverer = StructureDiscoverer(host, self.sheets)
        self.registry = CellReferenceRegistry()

    def start_run(self) -> CellReferenceRegistry:
        """Discard the current registry and start a new one."""
        self.registry = CellReferenceRegistry()
        return self.registry

    def period_count(self, model: ModelInput) -> int:
        return validate_inputs(model, self.calculator)

    # ------------------------------------------------------------------
    # stages
    # ------------------------------------------------------------------

    def generate_assumptions(self, model: ModelInput, period_count: Optional[int] = None) -> StageOutcome:
        period_count = period_count or self.period_count(model)
        AssumptionsCompiler(self.host, self.registry, self.sheets.assumptions).compile(model, period_count)
        return self._committed("assumptions", self.sheets.assumptions)

    def generate_projections(self, model: ModelInput, period_count: Optional[int] = None) -> StageOutcome:
        period_count = period_count or self.period_count(model)
        self._projection_compiler().compile_projections(model, period_count)
        return self._committed("projections", self.sheets.projections)

    def generate_capex(self, model: ModelInput, period_count: Optional[int] = None) -> StageOutcome:
        period_count = period_count or self.period_count(model)
        self._projection_compiler().compile_capex(model, period_count)
        return self._committed("capex", self.sheets.capex)

    def generate_debt_schedule(self, model: ModelInput, period_count: Optional[int] = None) -> StageOutcome:
        period_count = period_count or self.period_count(model)
        if model.has_debt and "debt_financing" not in self.registry:
            self.discoverer.recover(self.registry, ["debt_financing", "fixed_interest_rate"])
        expense = DebtScheduler(self.host, self.registry, self.sheets.debt, self.calculator).compile(
            model, period_count
        )
        detail = None if expense is not None else "no debt"
        return self._committed("debt", self.sheets.debt, detail=detail)

    def generate_free_cash_flow(self, model: ModelInput, period_count: Optional[int] = None) -> StageOutcome:
        period_count = period_count or self.period_count(model)
        FreeCashFlowAssembler(
            self.host, self.registry, self.sheets.fcf, self.discoverer, self.calculator
        ).compile(model, period_count)
        return self._committed("fcf", self.sheets.fcf)

    def generate_returns(self, model: ModelInput, period_count: Optional[int] = None) -> StageOutcome:
        period_count = period_count or self.period_count(model)
        path = ReturnsCalculator(
            self.host, self.registry, self.sheets.fcf, self.completion, self.discoverer
        ).compile(model, period_count)
        return self._committed("returns", self.sheets.fcf, path=path)

    # ------------------------------------------------------------------
    # full run
    # ------------------------------------------------------------------

    def generate(self, model: ModelInput) -> GenerationResult:
        """
        Generate the complete model.

        Returns a success summary or a single consolidated error. Sheets
        written before a failure are left in place.
        """
        self.start_run()
        try:
            period_count = self.period_count(model)
        except ValidationError as e:
            logger.error("Input validation failed: %s", e)
            return GenerationResult.failed(f"Invalid input: {e}")

        logger.info(
            "Generating '%s': %d %s periods", model.deal_name, period_count, model.granularity.value
        )
        stages: list[Callable[[ModelInput, Optional[int]], StageOutcome]] = [
            self.generate_assumptions,
            self.generate_projections,
            self.generate_capex,
            self.generate_debt_schedule,
            self.generate_free_cash_flow,
            self.generate_returns,
        ]
        outcomes: list[StageOutcome] = []
        for stage in stages:
            name = stage.__name__.replace("generate_", "")
            try:
                outcomes.append(stage(model, period_count))
            except (MissingReferenceError, HostError, ValidationError) as e:
                logger.error("Stage %s failed: %s", name, e)
                self.registry.reset()
                return GenerationResult.failed(f"Stage '{name}' failed: {e}")

        return GenerationResult.ok(self._summarize(model, period_count, outcomes))

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _projection_compiler(self) -> ProjectionCompiler:
        return ProjectionCompiler(
            self.host, self.registry, self.sheets.projections, self.sheets.capex, self.calculator
        )

    def _committed(
        self,
        stage: str,
        sheet: str,
        path: StagePath = StagePath.SUCCESS_WITH_TEMPLATE,
        detail: Optional[str] = None,
    ) -> StageOutcome:
        self.host.commit()
        return StageOutcome(stage=stage, sheet=sheet, path=path, detail=detail)

    def _summarize(self, model: ModelInput, period_count: int, outcomes: list[StageOutcome]) -> GenerationSummary:
        flows = compute_cash_flows(model, period_count)
        labels = ["Initial Investment"] + self.calculator.labels(
            model.start_date, period_count, model.granularity
        )
        return GenerationSummary(
            deal_name=model.deal_name,
            granularity=model.granularity,
            period_count=period_count,
            sheets=self.sheets.ordered(),
            stages=outcomes,
            reference_count=len(self.registry),
            period_labels=labels,
            unlevered_cash_flows=flows.unlevered,
            levered_cash_flows=flows.levered,
            unlevered_irr=compute_irr(flows.unlevered),
            levered_irr=compute_irr(flows.levered),
            moic=compute_moic(flows.equity_distributions),
        )
