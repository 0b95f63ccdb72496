# report_formatter.py
import json
from typing import Tuple

from utils.config import StageSettings
from utils.json_schema import validate_stage_output
from utils.llm_utils import CompletionClient
from utils.records import (
    BusinessAnalysis,
    BusinessProfile,
    FormattedReport,
    MarketingStrategy,
    PipelineStage,
)

STAGE = PipelineStage.FORMATTING_REPORT

SYSTEM_PROMPT = "You are an expert report writer specializing in marketing strategy reports."

REPORT_STRUCTURE = [
    "Executive Summary",
    "Business Analysis",
    "Marketing Strategy",
    "Implementation Plan",
    "ROI Projections",
]


def build_report_prompt(
    form: BusinessProfile,
    business_analysis: BusinessAnalysis,
    strategy: MarketingStrategy,
) -> Tuple[str, str]:
    structure = "\n".join(f"{i}. {name}" for i, name in enumerate(REPORT_STRUCTURE, 1))
    user_prompt = f"""
You are an expert report writer specializing in creating clear, actionable marketing plans. Transform the following strategic data into a comprehensive marketing report.

Business Analysis: {json.dumps(business_analysis.to_json_dict(), indent=2)}
Marketing Strategy: {json.dumps(strategy.to_json_dict(), indent=2)}
Client Parameters: {json.dumps(form.as_client_parameters(), indent=2)}

Create a detailed report following this structure:

{structure}

Format your response as a JSON object with exactly these keys:
- sections: list of {{title (string), content (string), visualizations (list of chart identifiers), tables (list of table identifiers)}}
- styling: {{fonts, colors, layouts (lists of strings)}}

Return ONLY valid JSON. No markdown or extra text.
"""
    return SYSTEM_PROMPT, user_prompt


class ReportFormatterAgent:
    def __init__(self, client: CompletionClient, settings: StageSettings = None):
        self.client = client
        self.settings = settings or StageSettings(max_tokens=3000)

    def format(
        self,
        form: BusinessProfile,
        business_analysis: BusinessAnalysis,
        strategy: MarketingStrategy,
    ) -> FormattedReport:
        system_prompt, user_prompt = build_report_prompt(form, business_analysis, strategy)
        raw = self.client.complete(
            system_prompt,
            user_prompt,
            temperature=self.settings.temperature,
            max_tokens=self.settings.max_tokens,
        )
        return validate_stage_output(raw, STAGE)
