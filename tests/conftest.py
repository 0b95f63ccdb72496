import copy
import json

import pytest

from utils.records import BusinessProfile

ANALYSIS = {
    "market_position": {
        "industry_standing": "Emerging challenger in mid-market IT tooling",
        "market_tier": "Mid-market",
        "penetration_rate": "Under 1% of addressable accounts",
        "key_differentiators": ["Fast onboarding", "Transparent pricing"],
    },
    "business_model": {
        "sales_cycle_length": "60-90 days",
        "revenue_patterns": ["Annual subscriptions", "Expansion seats"],
        "acquisition_channels": ["Outbound SDR", "Partner referrals"],
    },
    "competitive_analysis": {
        "main_competitors": ["ServiceNow", "Freshservice"],
        "competitive_advantages": ["Lower total cost of ownership"],
        "market_gaps": ["Self-serve trials for mid-market"],
    },
    "growth_assessment": {
        "tam_size": "$4B",
        "expansion_opportunities": ["EMEA mid-market"],
        "scaling_factors": ["Channel partnerships"],
    },
}

STRATEGY = {
    "strategic_objectives": [
        {
            "objective": "Grow qualified pipeline",
            "kpis": ["MQLs per month", "SQL conversion rate"],
            "target_milestones": ["Month 2: 40 MQLs", "Month 6: 120 MQLs"],
        }
    ],
    "budget_allocation": [
        {"channel": "LinkedIn Ads", "allocation": "$4,000", "expected_roi": "3x"},
        {"channel": "Content", "allocation": "$3,000", "expected_roi": "2.5x"},
    ],
    "channel_strategy": [
        {
            "channel": "LinkedIn",
            "content_types": ["Case studies", "Webinars"],
            "metrics": ["CTR", "Cost per lead"],
            "frequency": "Weekly",
        }
    ],
    "action_items": [
        {
            "title": "Launch webinar series",
            "description": "Monthly webinar for IT directors",
            "timeline": "Months 1-6",
            "resources_needed": ["Speaker", "Webinar platform"],
            "expected_outcome": "30 MQLs per session",
            "budget": "$1,500",
            "priority_level": "High",
        }
    ],
}

REPORT = {
    "sections": [
        {
            "title": "Executive Summary",
            "content": "A six month conversion plan focused on lead generation.",
            "visualizations": ["pipeline_growth_chart"],
            "tables": [],
        },
        {
            "title": "Marketing Strategy",
            "content": "LinkedIn and content lead the channel mix.",
            "visualizations": [],
            "tables": ["budget_allocation_table"],
        },
        {
            "title": "ROI Projections",
            "content": "Blended return of roughly 2.8x on spend.",
            "visualizations": ["roi_chart"],
            "tables": ["roi_table"],
        },
    ],
    "styling": {
        "fonts": ["Helvetica"],
        "colors": ["#1f2937"],
        "layouts": ["single-column"],
    },
}

FORM = {
    "companyType": "B2B",
    "industry": "Technology",
    "annualRevenue": "$1,000,000",
    "avgDealSize": "$50,000",
    "targetCustomer": "Mid-market IT directors",
    "marketingBudget": "$10,000",
    "timeline": "6 months",
    "mainGoal": "Conversion",
    "subGoal": "Lead Generation",
}


class StubCompletionClient:
    """
    Stands in for utils.llm_utils.CompletionClient. Returns the queued
    responses in order; an Exception in the queue is raised instead.
    """

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def complete(self, system_prompt, user_prompt, *, model=None, temperature=0.7, max_tokens=2000):
        self.calls.append({
            "system_prompt": system_prompt,
            "user_prompt": user_prompt,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if not self.responses:
            raise AssertionError("unexpected completion call")
        nxt = self.responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt


@pytest.fixture
def analysis_dict():
    return copy.deepcopy(ANALYSIS)


@pytest.fixture
def strategy_dict():
    return copy.deepcopy(STRATEGY)


@pytest.fixture
def report_dict():
    return copy.deepcopy(REPORT)


@pytest.fixture
def form_dict():
    return dict(FORM)


@pytest.fixture
def profile():
    return BusinessProfile.model_validate(FORM)


@pytest.fixture
def stub_responses():
    return [json.dumps(ANALYSIS), json.dumps(STRATEGY), json.dumps(REPORT)]


@pytest.fixture
def stub_client(stub_responses):
    return StubCompletionClient(stub_responses)


@pytest.fixture
def make_client():
    return StubCompletionClient
