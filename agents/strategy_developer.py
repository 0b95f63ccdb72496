# strategy_developer.py
import json
from typing import Tuple

from utils.config import StageSettings
from utils.json_schema import validate_stage_output
from utils.llm_utils import CompletionClient
from utils.records import BusinessAnalysis, BusinessProfile, MarketingStrategy, PipelineStage

STAGE = PipelineStage.DEVELOPING_STRATEGY

SYSTEM_PROMPT = "You are an expert marketing strategist specializing in comprehensive marketing plans."


def build_strategy_prompt(form: BusinessProfile, business_analysis: BusinessAnalysis) -> Tuple[str, str]:
    """Return (system_prompt, user_prompt); the validated analysis is embedded as JSON."""
    analysis_json = json.dumps(business_analysis.to_json_dict(), indent=2)
    goal = form.main_goal or "Not specified"
    if form.sub_goal:
        goal = f"{goal} ({form.sub_goal})"

    user_prompt = f"""
You are an expert marketing strategist responsible for developing comprehensive marketing plans. Using the business analysis provided and marketing parameters, create a detailed strategic marketing plan.

Business Analysis: {analysis_json}

Marketing Parameters:
Monthly Budget: {form.marketing_budget or "Not specified"}
Timeline: {form.timeline or "Not specified"}
Main Goal: {goal}
Target Customer Description: {form.target_customer or "Not specified"}

Follow these steps to develop your marketing strategy:

1. Goal Analysis:
   - Break down the main goal into specific, measurable objectives
   - Establish KPIs for each objective
   - Set milestone targets aligned with the timeline

2. Budget Allocation:
   - Divide budget across different marketing channels
   - Prioritize high-impact activities
   - Include contingency allocation

3. Channel Strategy:
   - Identify primary and secondary marketing channels
   - Specify content types for each channel
   - Define channel-specific success metrics

4. Action Plan Development:
   - Create detailed implementation steps
   - Establish timeline for each activity
   - Define resource requirements

Format your response as a JSON object with exactly these keys:
- strategic_objectives: list of {{objective (string), kpis (list of strings), target_milestones (list of strings)}}
- budget_allocation: list of {{channel, allocation, expected_roi (strings)}}
- channel_strategy: list of {{channel (string), content_types (list of strings), metrics (list of strings), frequency (string)}}
- action_items: list of {{title, description, timeline (strings), resources_needed (list of strings), expected_outcome, budget, priority_level (strings)}}

Return ONLY valid JSON. No markdown or extra text.
"""
    return SYSTEM_PROMPT, user_prompt


class StrategyDeveloperAgent:
    def __init__(self, client: CompletionClient, settings: StageSettings = None):
        self.client = client
        self.settings = settings or StageSettings(max_tokens=2500)

    def develop(self, form: BusinessProfile, business_analysis: BusinessAnalysis) -> MarketingStrategy:
        system_prompt, user_prompt = build_strategy_prompt(form, business_analysis)
        raw = self.client.complete(
            system_prompt,
            user_prompt,
            temperature=self.settings.temperature,
            max_tokens=self.settings.max_tokens,
        )
        return validate_stage_output(raw, STAGE)
