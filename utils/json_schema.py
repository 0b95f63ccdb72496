# json_schema.py
import json
import re
from typing import Any, Dict, List, Tuple, Type

from jsonschema import Draft7Validator
from jsonschema.exceptions import best_match

from utils.errors import SchemaValidationError
from utils.records import (
    BusinessAnalysis,
    FormattedReport,
    MarketingStrategy,
    PipelineStage,
    _Record,
)

STRING = {"type": "string"}
STRING_LIST = {"type": "array", "items": STRING}


def _object(**properties) -> Dict[str, Any]:
    return {
        "type": "object",
        "required": list(properties),
        "properties": properties,
    }


def _list_of(item_schema: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": "array", "items": item_schema}


BUSINESS_ANALYSIS_SCHEMA = _object(
    market_position=_object(
        industry_standing=STRING,
        market_tier=STRING,
        penetration_rate=STRING,
        key_differentiators=STRING_LIST,
    ),
    business_model=_object(
        sales_cycle_length=STRING,
        revenue_patterns=STRING_LIST,
        acquisition_channels=STRING_LIST,
    ),
    competitive_analysis=_object(
        main_competitors=STRING_LIST,
        competitive_advantages=STRING_LIST,
        market_gaps=STRING_LIST,
    ),
    growth_assessment=_object(
        tam_size=STRING,
        expansion_opportunities=STRING_LIST,
        scaling_factors=STRING_LIST,
    ),
)

MARKETING_STRATEGY_SCHEMA = _object(
    strategic_objectives=_list_of(_object(
        objective=STRING,
        kpis=STRING_LIST,
        target_milestones=STRING_LIST,
    )),
    budget_allocation=_list_of(_object(
        channel=STRING,
        allocation=STRING,
        expected_roi=STRING,
    )),
    channel_strategy=_list_of(_object(
        channel=STRING,
        content_types=STRING_LIST,
        metrics=STRING_LIST,
        frequency=STRING,
    )),
    action_items=_list_of(_object(
        title=STRING,
        description=STRING,
        timeline=STRING,
        resources_needed=STRING_LIST,
        expected_outcome=STRING,
        budget=STRING,
        priority_level=STRING,
    )),
)

FORMATTED_REPORT_SCHEMA = _object(
    sections=_list_of(_object(
        title=STRING,
        content=STRING,
        visualizations=STRING_LIST,
        tables=STRING_LIST,
    )),
    styling=_object(
        fonts=STRING_LIST,
        colors=STRING_LIST,
        layouts=STRING_LIST,
    ),
)

# stage -> (json schema, record type)
STAGE_SCHEMAS: Dict[PipelineStage, Tuple[Dict[str, Any], Type[_Record]]] = {
    PipelineStage.ANALYZING_BUSINESS: (BUSINESS_ANALYSIS_SCHEMA, BusinessAnalysis),
    PipelineStage.DEVELOPING_STRATEGY: (MARKETING_STRATEGY_SCHEMA, MarketingStrategy),
    PipelineStage.FORMATTING_REPORT: (FORMATTED_REPORT_SCHEMA, FormattedReport),
}

_FENCE_RE = re.compile(r"^```(?:json)?\s*\n?(.*?)\n?```$", re.DOTALL | re.IGNORECASE)


def _strip_code_fence(text: str) -> str:
    """Models sometimes wrap JSON in a ```json fence; unwrap exactly one."""
    s = text.strip()
    m = _FENCE_RE.match(s)
    return m.group(1).strip() if m else s


def parse_json_text(raw: str, stage: PipelineStage) -> Any:
    if raw is None or not str(raw).strip():
        raise SchemaValidationError(f"{stage.label} returned no content to parse", stage=stage)
    try:
        return json.loads(_strip_code_fence(str(raw)))
    except json.JSONDecodeError as e:
        raise SchemaValidationError(
            f"{stage.label} response is not valid JSON: {e.msg} at line {e.lineno} column {e.colno}",
            stage=stage,
        ) from e


def _field_path(error) -> str:
    path: List[str] = [str(p) for p in error.absolute_path]
    if error.validator == "required" and isinstance(error.instance, dict):
        missing = [p for p in error.validator_value if p not in error.instance]
        if missing:
            path.append(missing[0])
    return ".".join(path) or "$"


def check_schema(instance: Any, stage: PipelineStage) -> None:
    """Raise SchemaValidationError for the most relevant violation, if any."""
    schema, _ = STAGE_SCHEMAS[stage]
    error = best_match(Draft7Validator(schema).iter_errors(instance))
    if error is None:
        return
    field = _field_path(error)
    raise SchemaValidationError(
        f"{stage.label} response does not match schema: {error.message}",
        stage=stage,
        field=field,
    )


def validate_stage_output(raw: str, stage: PipelineStage) -> _Record:
    """
    Parse raw completion text and validate it against the schema of `stage`.
    Returns the frozen record on success; raises SchemaValidationError naming
    the stage (and the offending field where derivable) otherwise.
    """
    if stage not in STAGE_SCHEMAS:
        raise ValueError(f"no schema registered for stage {stage.value}")
    instance = parse_json_text(raw, stage)
    check_schema(instance, stage)
    _, record_type = STAGE_SCHEMAS[stage]
    return record_type.model_validate(instance)
