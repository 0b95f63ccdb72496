# llm_utils.py
import logging
import time
from typing import Any, Dict, Optional

import ollama

from utils.config import CompletionSettings
from utils.errors import CompletionError

logger = logging.getLogger("llm_utils")
logger.setLevel(logging.INFO)
if not logger.handlers:
    ch = logging.StreamHandler()
    ch.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))
    logger.addHandler(ch)


def _message_content(resp: Any) -> str:
    """Pull the first choice's text out of an ollama chat response (dict or model)."""
    if resp is None:
        return ""
    message = resp.get("message", {}) if hasattr(resp, "get") else getattr(resp, "message", None)
    if message is None:
        return ""
    if hasattr(message, "get"):
        content = message.get("content", "")
    else:
        content = getattr(message, "content", "")
    return content or ""


class CompletionClient:
    """
    Thin wrapper over the ollama chat endpoint.

    One call to `complete` is exactly one outbound request: no retries and
    no JSON repair round-trips. Any transport or service error, and any
    empty completion, is raised as CompletionError.
    """

    def __init__(self, settings: CompletionSettings, client: Optional[Any] = None):
        self.settings = settings
        if client is None:
            headers = {"Authorization": f"Bearer {settings.api_key}"} if settings.api_key else None
            client = ollama.Client(host=settings.host, timeout=settings.timeout_seconds, headers=headers)
        self._client = client

    @property
    def model(self) -> str:
        return self.settings.model

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> str:
        model = model or self.settings.model
        options: Dict[str, Any] = {
            "temperature": temperature,
            "num_predict": max_tokens,
        }
        kwargs: Dict[str, Any] = {}
        if self.settings.json_mode:
            kwargs["format"] = "json"

        t0 = time.time()
        try:
            resp = self._client.chat(
                model=model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                options=options,
                stream=False,
                **kwargs,
            )
        except Exception as e:
            logger.exception("ollama.chat failed for model %s: %s", model, e)
            raise CompletionError(f"completion request to model {model} failed: {e}") from e

        content = _message_content(resp)
        logger.info("completion from %s: %d chars in %.2fs", model, len(content), time.time() - t0)
        if not content.strip():
            raise CompletionError(f"model {model} returned an empty completion")
        return content
