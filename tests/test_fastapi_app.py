import base64
import io
import json

import pytest
from fastapi.testclient import TestClient
from PyPDF2 import PdfReader

import fastapi_app
from orchestrator import ReportPipeline
from utils.errors import CompletionError

from conftest import ANALYSIS, FORM, REPORT, STRATEGY


@pytest.fixture
def api(make_client):
    holder = {}

    def use_responses(responses):
        holder["client"] = make_client(responses)
        fastapi_app.app.dependency_overrides[fastapi_app.get_pipeline] = lambda: ReportPipeline(holder["client"])
        return holder["client"]

    use_responses([json.dumps(ANALYSIS), json.dumps(STRATEGY), json.dumps(REPORT)])
    with TestClient(fastapi_app.app) as client:
        client.use_responses = use_responses
        yield client
    fastapi_app.app.dependency_overrides.clear()


def test_end_to_end_report(api):
    resp = api.post("/generate-report", json=FORM)

    assert resp.status_code == 200
    body = resp.json()
    assert body["businessAnalysis"] == ANALYSIS
    assert body["strategy"] == STRATEGY
    assert body["report"] == REPORT

    pdf = base64.b64decode(body["pdf"])
    assert pdf.startswith(b"%PDF")
    text = "\n".join(p.extract_text() or "" for p in PdfReader(io.BytesIO(pdf)).pages)
    for section in REPORT["sections"]:
        assert section["title"] in text


def test_two_runs_return_identical_records(api):
    first = api.post("/generate-report", json=FORM).json()
    api.use_responses([json.dumps(ANALYSIS), json.dumps(STRATEGY), json.dumps(REPORT)])
    second = api.post("/generate-report", json=FORM).json()

    for key in ("businessAnalysis", "strategy", "report"):
        assert first[key] == second[key]


def test_stage_failure_returns_500_with_stage(api):
    client = api.use_responses([json.dumps(ANALYSIS), CompletionError("service unavailable")])

    resp = api.post("/generate-report", json=FORM)

    assert resp.status_code == 500
    body = resp.json()
    assert "service unavailable" in body["error"]
    assert body["stage"] == "developing_strategy"
    assert body["kind"] == "completion"
    assert "pdf" not in body
    assert "businessAnalysis" not in body
    assert len(client.calls) == 2


def test_validation_failure_names_field(api):
    broken = json.loads(json.dumps(REPORT))
    del broken["styling"]["fonts"]
    api.use_responses([json.dumps(ANALYSIS), json.dumps(STRATEGY), json.dumps(broken)])

    resp = api.post("/generate-report", json=FORM)

    assert resp.status_code == 500
    assert resp.json()["kind"] == "validation"
    assert resp.json()["field"] == "styling.fonts"


@pytest.mark.parametrize("method", ["get", "put", "delete"])
def test_non_post_is_405(api, method):
    resp = getattr(api, method)("/generate-report")
    assert resp.status_code == 405


def test_invalid_json_body_is_400(api):
    resp = api.post("/generate-report", content=b"{not json", headers={"Content-Type": "application/json"})
    assert resp.status_code == 400
    assert "error" in resp.json()


def test_non_object_body_is_400(api):
    resp = api.post("/generate-report", json=["B2B"])
    assert resp.status_code == 400


def test_wrong_field_type_is_400(api):
    resp = api.post("/generate-report", json={**FORM, "annualRevenue": 1000000})
    assert resp.status_code == 400
    assert "annualRevenue" in resp.json()["error"]


def test_oversized_body_is_400(api, monkeypatch):
    monkeypatch.setattr(fastapi_app.CONFIG.safety, "max_input_chars", 50)
    resp = api.post("/generate-report", json=FORM)
    assert resp.status_code == 400


def test_health_and_metrics(api):
    assert api.get("/health").json()["status"] == "ok"
    api.post("/generate-report", json=FORM)
    metrics = api.get("/metrics").text
    assert "api_requests_total" in metrics
    assert "pipeline_stage_latency_seconds" in metrics


def test_unexpected_pipeline_error_returns_500(api, make_client):
    client = make_client([json.dumps(ANALYSIS), json.dumps(STRATEGY), json.dumps(REPORT)])

    def broken_renderer(report):
        raise KeyError("bug")

    fastapi_app.app.dependency_overrides[fastapi_app.get_pipeline] = lambda: ReportPipeline(client, renderer=broken_renderer)

    resp = api.post("/generate-report", json=FORM)

    assert resp.status_code == 500
    body = resp.json()
    assert "error" in body
    assert "pdf" not in body


def test_size_limit_counts_characters_not_bytes(api, monkeypatch):
    form = {**FORM, "targetCustomer": "Directeurs informatiques é" * 20}
    text = json.dumps(form, ensure_ascii=False)
    payload = text.encode("utf-8")
    assert len(payload) > len(text)

    monkeypatch.setattr(fastapi_app.CONFIG.safety, "max_input_chars", len(text))
    resp = api.post("/generate-report", content=payload, headers={"Content-Type": "application/json"})
    assert resp.status_code == 200

    monkeypatch.setattr(fastapi_app.CONFIG.safety, "max_input_chars", len(text) - 1)
    resp = api.post("/generate-report", content=payload, headers={"Content-Type": "application/json"})
    assert resp.status_code == 400


def test_non_utf8_body_is_400(api):
    resp = api.post("/generate-report", content=b"\xff\xfe{}", headers={"Content-Type": "application/json"})
    assert resp.status_code == 400
