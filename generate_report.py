#!/usr/bin/env python3
"""
Generate a marketing report from a business profile JSON file.

Runs the three-stage pipeline locally against ollama, or posts the profile
to a running API with --api. Writes report.pdf and report.json.

Example:
python generate_report.py \
  --form ./configs/sample_profile.json \
  --out-dir ./out \
  --model mistral:7b
"""

import argparse
import base64
import json
import os
import sys
from typing import Any, Dict, Optional

import requests
from pydantic import ValidationError

from orchestrator import build_pipeline
from utils.config import load_config
from utils.records import BusinessProfile

# ----------------- Helpers -----------------

def read_form(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        raise FileNotFoundError(path)
    with open(path, "r") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object")
    return data


def write_outputs(out_dir: str, records: Dict[str, Any], pdf: bytes) -> None:
    os.makedirs(out_dir, exist_ok=True)
    with open(os.path.join(out_dir, "report.json"), "w") as f:
        json.dump(records, f, indent=2)
    with open(os.path.join(out_dir, "report.pdf"), "wb") as f:
        f.write(pdf)
    print(f"[info] wrote report.json and report.pdf ({len(pdf)} bytes) to {out_dir}")


def run_local(profile: BusinessProfile, config_path: Optional[str], model: Optional[str]):
    config = load_config(config_path)
    if model:
        config.completion.model = model
    result = build_pipeline(config).run(profile)
    if not result.ok:
        raise RuntimeError(result.failure.message)
    records = {
        "businessAnalysis": result.business_analysis.to_json_dict(),
        "strategy": result.strategy.to_json_dict(),
        "report": result.report.to_json_dict(),
    }
    return records, result.document


def run_remote(form: Dict[str, Any], api: str, timeout: float):
    url = api.rstrip("/") + "/generate-report"
    resp = requests.post(url, json=form, timeout=timeout)
    body = resp.json()
    if resp.status_code != 200:
        raise RuntimeError(f"API returned {resp.status_code}: {body.get('error')}")
    pdf = body.pop("pdf", None)
    if not pdf:
        raise RuntimeError("API response did not include a PDF")
    pdf = base64.b64decode(pdf)
    return body, pdf

# ----------------- CLI & runner -----------------

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--form", required=True, help="JSON file with the business profile form fields")
    parser.add_argument("--out-dir", default="./out")
    parser.add_argument("--config", default=None, help="settings YAML (defaults to $REPORT_CONFIG or configs/settings.yaml)")
    parser.add_argument("--model", default=None, help="override the completion model")
    parser.add_argument("--api", default=None, help="base URL of a running API, e.g. http://localhost:8000")
    parser.add_argument("--timeout", type=float, default=600.0, help="HTTP timeout in seconds for --api")
    args = parser.parse_args(argv)

    try:
        form = read_form(args.form)
        profile = BusinessProfile.model_validate(form)
        if args.api:
            records, pdf = run_remote(form, args.api, args.timeout)
        else:
            records, pdf = run_local(profile, args.config, args.model)
    except (ValidationError, RuntimeError, ValueError, OSError, requests.RequestException) as e:
        print(f"[error] report generation failed: {e}", file=sys.stderr)
        return 1

    write_outputs(args.out_dir, records, pdf)
    return 0

if __name__ == "__main__":
    sys.exit(main())
