# fastapi_app.py
import base64
import json
import logging
import time
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware

from orchestrator import PipelineResult, ReportPipeline, build_pipeline
from utils.config import load_config
from utils.records import BusinessProfile

# load config
CONFIG = load_config()

# logging + metrics
logging.basicConfig(level=getattr(logging, CONFIG.logging.level.upper(), logging.INFO))
logger = logging.getLogger("fastapi_app")
REQ_COUNTER = Counter("api_requests_total", "Total API requests", ["endpoint", "method"])
REQ_LATENCY = Histogram("api_request_latency_seconds", "Request latency seconds", ["endpoint"])

app = FastAPI(title="Marketing Report Generator API", version="0.1")
app.add_middleware(CORSMiddleware, allow_origins=CONFIG.server.cors_origins, allow_methods=["*"], allow_headers=["*"])

_pipeline: Optional[ReportPipeline] = None


def get_pipeline() -> ReportPipeline:
    """Build the pipeline on first use so the app starts even if ollama is down."""
    global _pipeline
    if _pipeline is None:
        _pipeline = build_pipeline(CONFIG)
    return _pipeline


def record(endpoint: str, t0: float):
    REQ_COUNTER.labels(endpoint=endpoint, method="POST").inc()
    REQ_LATENCY.labels(endpoint=endpoint).observe(time.time() - t0)


async def parse_profile(request: Request) -> BusinessProfile:
    body = await request.body()
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="request body must be UTF-8 encoded JSON")
    if len(text) > CONFIG.safety.max_input_chars:
        raise HTTPException(status_code=400, detail="input too long")
    try:
        payload = json.loads(text or "{}")
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="request body must be valid JSON")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="request body must be a JSON object")
    try:
        return BusinessProfile.model_validate(payload)
    except ValidationError as e:
        bad = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise HTTPException(status_code=400, detail=f"invalid form fields: {bad}")


def result_payload(result: PipelineResult) -> dict:
    return {
        "businessAnalysis": result.business_analysis.to_json_dict(),
        "strategy": result.strategy.to_json_dict(),
        "report": result.report.to_json_dict(),
        "pdf": base64.b64encode(result.document).decode("ascii"),
    }


@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.get("/health")
async def health():
    return {"status": "ok", "model": CONFIG.completion.model}


@app.get("/metrics")
async def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.post("/generate-report")
async def generate_report(request: Request, pipeline: ReportPipeline = Depends(get_pipeline)):
    start = time.time()
    profile = await parse_profile(request)

    try:
        result = await run_in_threadpool(pipeline.run, profile)
    except Exception as e:
        logger.exception("Report pipeline crashed")
        record("/generate-report", start)
        return JSONResponse(status_code=500, content={"error": str(e) or e.__class__.__name__})

    record("/generate-report", start)
    if not result.ok:
        failure = result.failure
        return JSONResponse(
            status_code=500,
            content={
                "error": failure.message,
                "stage": failure.stage.value,
                "kind": failure.kind,
                "field": failure.field,
            },
        )
    return result_payload(result)


@app.get("/")
async def root():
    return {"app": "marketing-report-generator"}
