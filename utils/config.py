# config.py
import os
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "configs" / "settings.yaml"


class CompletionSettings(BaseModel):
    host: Optional[str] = None          # None -> ollama client default (OLLAMA_HOST or localhost)
    model: str = "mistral:7b"
    api_key: Optional[str] = None       # bearer token for hosted endpoints
    timeout_seconds: float = 120.0
    json_mode: bool = True


class StageSettings(BaseModel):
    temperature: float = 0.7
    max_tokens: int = 2000


class StagesSettings(BaseModel):
    business_analysis: StageSettings = Field(default_factory=lambda: StageSettings(max_tokens=2000))
    strategy: StageSettings = Field(default_factory=lambda: StageSettings(max_tokens=2500))
    report: StageSettings = Field(default_factory=lambda: StageSettings(max_tokens=3000))


class SafetySettings(BaseModel):
    max_input_chars: int = 20000


class ServerSettings(BaseModel):
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])


class LoggingSettings(BaseModel):
    level: str = "INFO"


class ServiceConfig(BaseModel):
    completion: CompletionSettings = Field(default_factory=CompletionSettings)
    stages: StagesSettings = Field(default_factory=StagesSettings)
    safety: SafetySettings = Field(default_factory=SafetySettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def _apply_env_overrides(raw: dict) -> dict:
    completion = raw.get("completion") or {}
    raw["completion"] = completion
    if os.environ.get("OLLAMA_HOST"):
        completion["host"] = os.environ["OLLAMA_HOST"]
    if os.environ.get("REPORT_MODEL"):
        completion["model"] = os.environ["REPORT_MODEL"]
    if os.environ.get("OLLAMA_API_KEY"):
        completion["api_key"] = os.environ["OLLAMA_API_KEY"]
    return raw


def load_config(path: Optional[str] = None) -> ServiceConfig:
    """
    Load service config from YAML. Resolution order for the file:
    explicit `path`, then $REPORT_CONFIG, then configs/settings.yaml.
    A missing default file yields built-in defaults; a missing explicit
    file is an error.
    """
    explicit = path or os.environ.get("REPORT_CONFIG")
    cfg_path = Path(explicit) if explicit else DEFAULT_CONFIG_PATH

    raw = {}
    if cfg_path.exists():
        with open(cfg_path, "r") as f:
            raw = yaml.safe_load(f) or {}
    elif explicit:
        raise FileNotFoundError(f"config file not found: {cfg_path}")

    if not isinstance(raw, dict):
        raise ValueError(f"config file {cfg_path} must contain a mapping at top level")
    return ServiceConfig.model_validate(_apply_env_overrides(raw))
