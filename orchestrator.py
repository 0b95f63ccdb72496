import logging
import operator
import time
from typing import Annotated, Any, Callable, Dict, List, Optional, TypedDict

from langgraph.graph import END, StateGraph
from prometheus_client import Counter, Histogram
from pydantic import BaseModel, ConfigDict

from agents.business_analyzer import BusinessAnalyzerAgent
from agents.report_formatter import ReportFormatterAgent
from agents.strategy_developer import StrategyDeveloperAgent
from utils.config import ServiceConfig
from utils.errors import ReportPipelineError
from utils.llm_utils import CompletionClient
from utils.pdf_renderer import render_report_pdf
from utils.records import (
    BusinessAnalysis,
    BusinessProfile,
    FormattedReport,
    MarketingStrategy,
    PipelineStage,
)

logger = logging.getLogger("orchestrator")
logger.setLevel(logging.INFO)
if not logger.handlers:
    ch = logging.StreamHandler()
    ch.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))
    logger.addHandler(ch)

STAGE_LATENCY = Histogram("pipeline_stage_latency_seconds", "Pipeline stage latency seconds", ["stage"])
STAGE_FAILURES = Counter("pipeline_stage_failures_total", "Pipeline stage failures", ["stage", "kind"])


# -------- Result types --------
class StageFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    stage: PipelineStage
    kind: str                   # completion | validation | render
    message: str
    field: Optional[str] = None


class PipelineResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    business_analysis: Optional[BusinessAnalysis] = None
    strategy: Optional[MarketingStrategy] = None
    report: Optional[FormattedReport] = None
    document: Optional[bytes] = None
    failure: Optional[StageFailure] = None
    history: List[PipelineStage] = []

    @property
    def ok(self) -> bool:
        return self.failure is None and self.document is not None


# -------- State --------
class PipelineState(TypedDict, total=False):
    form: BusinessProfile
    stage: PipelineStage
    history: Annotated[List[PipelineStage], operator.add]
    business_analysis: BusinessAnalysis
    strategy: MarketingStrategy
    report: FormattedReport
    document: bytes
    failure: StageFailure


def _failed(stage: PipelineStage, error: ReportPipelineError) -> Dict[str, Any]:
    failure = StageFailure(
        stage=stage,
        kind=error.kind,
        message=f"{stage.label} failed: {error}",
        field=getattr(error, "field", None),
    )
    STAGE_FAILURES.labels(stage=stage.value, kind=error.kind).inc()
    logger.error("Stage %s failed (%s): %s", stage.value, error.kind, error)
    return {"stage": PipelineStage.FAILED, "failure": failure, "history": [PipelineStage.FAILED]}


def _advance(next_stage: PipelineStage, **values) -> Dict[str, Any]:
    values.update({"stage": next_stage, "history": [next_stage]})
    return values


class ReportPipeline:
    """
    Linear report pipeline:
      analyze_business -> develop_strategy -> format_report -> render_document -> END

    Each node moves the state to the next PipelineStage only after its output
    has been validated. Any ReportPipelineError moves the state to FAILED and
    the conditional edge after that node goes straight to END.
    """

    def __init__(
        self,
        client: CompletionClient,
        config: Optional[ServiceConfig] = None,
        renderer: Callable[[FormattedReport], bytes] = render_report_pdf,
    ):
        config = config or ServiceConfig()
        self.analyzer = BusinessAnalyzerAgent(client, config.stages.business_analysis)
        self.strategist = StrategyDeveloperAgent(client, config.stages.strategy)
        self.formatter = ReportFormatterAgent(client, config.stages.report)
        self.renderer = renderer
        self.graph = self.build_graph()

    # -------- Nodes --------
    def analyze_business_node(self, state: PipelineState) -> Dict[str, Any]:
        stage = PipelineStage.ANALYZING_BUSINESS
        try:
            with STAGE_LATENCY.labels(stage=stage.value).time():
                analysis = self.analyzer.analyze(state["form"])
        except ReportPipelineError as e:
            return _failed(stage, e)
        return _advance(PipelineStage.DEVELOPING_STRATEGY, business_analysis=analysis)

    def develop_strategy_node(self, state: PipelineState) -> Dict[str, Any]:
        stage = PipelineStage.DEVELOPING_STRATEGY
        try:
            with STAGE_LATENCY.labels(stage=stage.value).time():
                strategy = self.strategist.develop(state["form"], state["business_analysis"])
        except ReportPipelineError as e:
            return _failed(stage, e)
        return _advance(PipelineStage.FORMATTING_REPORT, strategy=strategy)

    def format_report_node(self, state: PipelineState) -> Dict[str, Any]:
        stage = PipelineStage.FORMATTING_REPORT
        try:
            with STAGE_LATENCY.labels(stage=stage.value).time():
                report = self.formatter.format(state["form"], state["business_analysis"], state["strategy"])
        except ReportPipelineError as e:
            return _failed(stage, e)
        return _advance(PipelineStage.RENDERING_DOCUMENT, report=report)

    def render_document_node(self, state: PipelineState) -> Dict[str, Any]:
        stage = PipelineStage.RENDERING_DOCUMENT
        try:
            with STAGE_LATENCY.labels(stage=stage.value).time():
                document = self.renderer(state["report"])
        except ReportPipelineError as e:
            return _failed(stage, e)
        return _advance(PipelineStage.DONE, document=document)

    # -------- Build Graph --------
    def build_graph(self):
        g = StateGraph(PipelineState)

        g.add_node("analyze_business", self.analyze_business_node)
        g.add_node("develop_strategy", self.develop_strategy_node)
        g.add_node("format_report", self.format_report_node)
        g.add_node("render_document", self.render_document_node)

        g.set_entry_point("analyze_business")

        def route(next_node: str):
            return lambda s: END if s.get("stage") == PipelineStage.FAILED else next_node

        g.add_conditional_edges("analyze_business", route("develop_strategy"), ["develop_strategy", END])
        g.add_conditional_edges("develop_strategy", route("format_report"), ["format_report", END])
        g.add_conditional_edges("format_report", route("render_document"), ["render_document", END])
        g.add_edge("render_document", END)

        return g.compile()

    # -------- Public API --------
    def run(self, form: BusinessProfile) -> PipelineResult:
        t0 = time.time()
        state: PipelineState = {
            "form": form,
            "stage": PipelineStage.ANALYZING_BUSINESS,
            "history": [PipelineStage.ANALYZING_BUSINESS],
        }
        final = self.graph.invoke(state)

        result = PipelineResult(
            business_analysis=final.get("business_analysis"),
            strategy=final.get("strategy"),
            report=final.get("report"),
            document=final.get("document") if final.get("failure") is None else None,
            failure=final.get("failure"),
            history=final.get("history", []),
        )
        if result.ok:
            logger.info("Report pipeline finished in %.2fs", time.time() - t0)
        return result


def build_pipeline(config: ServiceConfig) -> ReportPipeline:
    return ReportPipeline(CompletionClient(config.completion), config)


def run_pipeline(form: BusinessProfile, config: Optional[ServiceConfig] = None) -> PipelineResult:
    return build_pipeline(config or ServiceConfig()).run(form)
