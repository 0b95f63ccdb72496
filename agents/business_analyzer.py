# business_analyzer.py
from typing import Tuple

from utils.config import StageSettings
from utils.json_schema import validate_stage_output
from utils.llm_utils import CompletionClient
from utils.records import BusinessAnalysis, BusinessProfile, PipelineStage

STAGE = PipelineStage.ANALYZING_BUSINESS

SYSTEM_PROMPT = "You are an expert business analyst specializing in marketing strategy."

NOT_SPECIFIED = "Not specified"


def _v(value) -> str:
    return value if value else NOT_SPECIFIED


def build_business_analysis_prompt(form: BusinessProfile) -> Tuple[str, str]:
    """Return (system_prompt, user_prompt) for the business analysis stage."""
    user_prompt = f"""
You are an expert business analyst with extensive experience in market research and strategic planning. Analyze the following business profile with exceptional detail and strategic insight:

Company Type: {_v(form.company_type)}
Industry/Vertical: {_v(form.industry)}
Annual Revenue: {_v(form.annual_revenue)}
Average Deal Size: {_v(form.avg_deal_size)}
Target Customer Description: {_v(form.target_customer)}
Customer Business Size: {_v(form.customer_size)}
Customer Industry: {_v(form.customer_industry)}

Provide a comprehensive analysis following these exact steps:

1. Market Position Analysis:
   - Evaluate the company's position within their industry vertical
   - Identify the market tier (enterprise, mid-market, SMB) based on deal size
   - Assess market penetration potential based on revenue

2. Business Model Evaluation:
   - Analyze sales cycle based on deal size and industry
   - Identify revenue patterns and growth opportunities
   - Evaluate customer acquisition channels

3. Competitive Landscape:
   - Determine likely competitors based on industry and company size
   - Identify potential competitive advantages
   - Analyze market differentiation opportunities

4. Growth Potential:
   - Calculate total addressable market (TAM)
   - Identify expansion opportunities
   - Evaluate scaling potential

Format your response as a JSON object with exactly these keys:
- market_position: {{industry_standing, market_tier, penetration_rate (strings), key_differentiators (list of strings)}}
- business_model: {{sales_cycle_length (string), revenue_patterns, acquisition_channels (lists of strings)}}
- competitive_analysis: {{main_competitors, competitive_advantages, market_gaps (lists of strings)}}
- growth_assessment: {{tam_size (string), expansion_opportunities, scaling_factors (lists of strings)}}

Return ONLY valid JSON. No markdown or extra text.
"""
    return SYSTEM_PROMPT, user_prompt


class BusinessAnalyzerAgent:
    def __init__(self, client: CompletionClient, settings: StageSettings = None):
        self.client = client
        self.settings = settings or StageSettings(max_tokens=2000)

    def analyze(self, form: BusinessProfile) -> BusinessAnalysis:
        system_prompt, user_prompt = build_business_analysis_prompt(form)
        raw = self.client.complete(
            system_prompt,
            user_prompt,
            temperature=self.settings.temperature,
            max_tokens=self.settings.max_tokens,
        )
        return validate_stage_output(raw, STAGE)
