# records.py
"""
Typed records flowing through the report pipeline.

BusinessProfile is the raw form submission. The three stage records are
produced only by utils.json_schema.validate_stage_output and are frozen,
so a downstream stage can never mutate an upstream result.
"""
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class PipelineStage(str, Enum):
    ANALYZING_BUSINESS = "analyzing_business"
    DEVELOPING_STRATEGY = "developing_strategy"
    FORMATTING_REPORT = "formatting_report"
    RENDERING_DOCUMENT = "rendering_document"
    DONE = "done"
    FAILED = "failed"

    @property
    def label(self) -> str:
        return _STAGE_LABELS[self]


_STAGE_LABELS = {
    PipelineStage.ANALYZING_BUSINESS: "business analysis",
    PipelineStage.DEVELOPING_STRATEGY: "strategy development",
    PipelineStage.FORMATTING_REPORT: "report formatting",
    PipelineStage.RENDERING_DOCUMENT: "document rendering",
    PipelineStage.DONE: "done",
    PipelineStage.FAILED: "failed",
}


# -------- Form input --------
class BusinessProfile(BaseModel):
    """Form submission. Field names follow the web form (camelCase)."""

    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    company_type: Optional[str] = Field(None, alias="companyType")
    industry: Optional[str] = None
    annual_revenue: Optional[str] = Field(None, alias="annualRevenue")
    avg_deal_size: Optional[str] = Field(None, alias="avgDealSize")
    target_customer: Optional[str] = Field(None, alias="targetCustomer")
    customer_size: Optional[str] = Field(None, alias="customerSize")
    customer_industry: Optional[str] = Field(None, alias="customerIndustry")
    marketing_budget: Optional[str] = Field(None, alias="marketingBudget")
    timeline: Optional[str] = None
    main_goal: Optional[str] = Field(None, alias="mainGoal")
    sub_goal: Optional[str] = Field(None, alias="subGoal")

    def as_client_parameters(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


# -------- Stage 1: business analysis --------
class MarketPosition(_Record):
    industry_standing: str
    market_tier: str
    penetration_rate: str
    key_differentiators: Tuple[str, ...]


class BusinessModel(_Record):
    sales_cycle_length: str
    revenue_patterns: Tuple[str, ...]
    acquisition_channels: Tuple[str, ...]


class CompetitiveAnalysis(_Record):
    main_competitors: Tuple[str, ...]
    competitive_advantages: Tuple[str, ...]
    market_gaps: Tuple[str, ...]


class GrowthAssessment(_Record):
    tam_size: str
    expansion_opportunities: Tuple[str, ...]
    scaling_factors: Tuple[str, ...]


class BusinessAnalysis(_Record):
    market_position: MarketPosition
    business_model: BusinessModel
    competitive_analysis: CompetitiveAnalysis
    growth_assessment: GrowthAssessment


# -------- Stage 2: marketing strategy --------
class StrategicObjective(_Record):
    objective: str
    kpis: Tuple[str, ...]
    target_milestones: Tuple[str, ...]


class BudgetAllocation(_Record):
    channel: str
    allocation: str
    expected_roi: str


class ChannelStrategy(_Record):
    channel: str
    content_types: Tuple[str, ...]
    metrics: Tuple[str, ...]
    frequency: str


class ActionItem(_Record):
    title: str
    description: str
    timeline: str
    resources_needed: Tuple[str, ...]
    expected_outcome: str
    budget: str
    priority_level: str


class MarketingStrategy(_Record):
    strategic_objectives: Tuple[StrategicObjective, ...]
    budget_allocation: Tuple[BudgetAllocation, ...]
    channel_strategy: Tuple[ChannelStrategy, ...]
    action_items: Tuple[ActionItem, ...]


# -------- Stage 3: formatted report --------
class ReportSection(_Record):
    title: str
    content: str
    visualizations: Tuple[str, ...]
    tables: Tuple[str, ...]


class ReportStyling(_Record):
    fonts: Tuple[str, ...]
    colors: Tuple[str, ...]
    layouts: Tuple[str, ...]


class FormattedReport(_Record):
    sections: Tuple[ReportSection, ...]
    styling: ReportStyling
