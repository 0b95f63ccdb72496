import pytest

from utils.config import ServiceConfig, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("REPORT_CONFIG", "OLLAMA_HOST", "REPORT_MODEL", "OLLAMA_API_KEY"):
        monkeypatch.delenv(var, raising=False)


def test_bundled_settings_match_stage_budgets():
    config = load_config()
    assert config.stages.business_analysis.max_tokens == 2000
    assert config.stages.strategy.max_tokens == 2500
    assert config.stages.report.max_tokens == 3000
    assert config.stages.report.temperature == 0.7


def test_defaults_without_file():
    config = ServiceConfig()
    assert config.completion.model == "mistral:7b"
    assert config.completion.api_key is None
    assert config.safety.max_input_chars == 20000


def test_yaml_file_and_env_overrides(tmp_path, monkeypatch):
    cfg = tmp_path / "settings.yaml"
    cfg.write_text(
        "completion:\n"
        "  model: llama3\n"
        "  timeout_seconds: 15\n"
        "stages:\n"
        "  strategy:\n"
        "    temperature: 0.2\n"
        "    max_tokens: 900\n"
    )
    monkeypatch.setenv("REPORT_CONFIG", str(cfg))
    monkeypatch.setenv("OLLAMA_API_KEY", "secret")

    config = load_config()

    assert config.completion.model == "llama3"
    assert config.completion.timeout_seconds == 15
    assert config.completion.api_key == "secret"
    assert config.stages.strategy.max_tokens == 900
    assert config.stages.business_analysis.max_tokens == 2000


def test_model_env_override(monkeypatch):
    monkeypatch.setenv("REPORT_MODEL", "qwen2.5:7b")
    assert load_config().completion.model == "qwen2.5:7b"


def test_missing_explicit_file_is_an_error(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "nope.yaml"))


def test_non_mapping_file_is_rejected(tmp_path):
    cfg = tmp_path / "settings.yaml"
    cfg.write_text("- just\n- a list\n")
    with pytest.raises(ValueError):
        load_config(str(cfg))
