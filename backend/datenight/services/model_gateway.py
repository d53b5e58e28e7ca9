"""Single-call gateway to the hosted chat-completion model."""
from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx
import openai

from datenight.core.config import Settings, settings as default_settings
from datenight.observability.metrics import log_metric
from datenight.observability.tracing import trace
from datenight.services.errors import GenerationUnavailable

logger = logging.getLogger(__name__)


def unwrap_envelope(body: Any) -> Optional[str]:
    """Return the model's text answer from a chat-completion envelope.

    ``None`` means the envelope is unreadable or reports an error.
    """
    if not body:
        return None
    try:
        envelope = json.loads(body)
    except (RecursionError, TypeError, ValueError):
        return None
    if not isinstance(envelope, dict) or envelope.get("error"):
        return None
    try:
        content = envelope["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    return content if isinstance(content, str) else None


class ModelGateway:
    """Sends one prompt and hands back the raw response body.

    The gateway never retries: a second call is a new sample from the model, so
    retrying is left to the caller.
    """

    def __init__(
        self,
        client: Optional[openai.OpenAI] = None,
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        config: Optional[Settings] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self._config = config or default_settings
        self._client = client
        self._http_client = http_client
        self.model = model or self._config.openai_model
        self.temperature = self._config.openai_temperature if temperature is None else temperature

    def complete(self, prompt: str) -> str:
        """Return the raw envelope text for ``prompt`` or raise GenerationUnavailable."""
        client = self._get_client()
        metadata = {"model": self.model, "temperature": self.temperature, "prompt_chars": len(prompt)}

        with trace("suggestions.model_call", metadata=metadata):
            try:
                response = client.chat.completions.with_raw_response.create(
                    model=self.model,
                    messages=[{"role": "user", "content": prompt}],
                    temperature=self.temperature,
                )
            except openai.OpenAIError as exc:
                status_code = getattr(exc, "status_code", None)
                logger.warning("Model call failed (%s): %s", type(exc).__name__, exc)
                log_metric("suggestions.model_call.failed", 1, {"error": type(exc).__name__})
                raise GenerationUnavailable(f"Model call failed: {exc}", status_code=status_code) from exc

            body = response.http_response.text
            logger.debug("Model response body: %s", body)
            if unwrap_envelope(body) is None:
                logger.warning("Model response envelope was malformed or reported an error")
                log_metric("suggestions.model_call.failed", 1, {"error": "envelope"})
                raise GenerationUnavailable(
                    "Model response envelope was malformed or reported an error",
                    status_code=response.http_response.status_code,
                )
        return body

    def _get_client(self) -> openai.OpenAI:
        if self._client is not None:
            return self._client

        api_key = self._config.openai_api_key
        if not api_key:
            logger.error("OPENAI_API_KEY missing; cannot generate suggestions.")
            raise GenerationUnavailable("OpenAI API key not configured")

        self._client = openai.OpenAI(
            api_key=api_key,
            base_url=self._config.openai_base_url,
            timeout=self._config.openai_timeout_seconds,
            max_retries=0,
            http_client=self._http_client,
        )
        return self._client
