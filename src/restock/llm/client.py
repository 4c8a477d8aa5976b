"""HTTP client for the decision-review LLM."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

import httpx

from restock.config import Settings, get_settings

_JSON_BLOCK_RE = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)

logger = logging.getLogger(__name__)


class EnhancementUnavailableError(RuntimeError):
    """Raised when the LLM endpoint cannot produce a usable reply."""


class DecisionLLMClient:
    """Call an OpenAI/Ollama-compatible chat endpoint."""

    def __init__(
        self,
        *,
        base_url: str,
        model: str,
        provider: str = "openai",
        temperature: float = 0.2,
        max_tokens: int = 800,
        timeout: float = 30.0,
        api_key: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._provider = (provider or "openai").strip().lower()
        self._temperature = max(0.0, float(temperature))
        self._max_tokens = max(1, int(max_tokens))
        self._timeout = timeout
        self._api_key = api_key
        self._transport = transport

    @property
    def provider(self) -> str:
        return self._provider

    def complete(self, system: str, user: str) -> str:
        try:
            return self._execute_chat(system, user)
        except httpx.HTTPError as exc:
            raise EnhancementUnavailableError(f"LLM request failed: {exc}") from exc

    def complete_json(self, system: str, user: str) -> dict[str, Any]:
        """Return the first JSON object in the model reply."""

        return parse_json_reply(self.complete(system, user))

    def _headers(self) -> dict[str, str]:
        if not self._api_key:
            return {}
        return {"Authorization": f"Bearer {self._api_key}"}

    def _post(self, endpoint: str, payload: dict[str, object]) -> dict[str, Any]:
        with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
            response = client.post(endpoint, json=payload, headers=self._headers())
        response.raise_for_status()
        return response.json()

    def _execute_chat(self, system: str, user: str) -> str:
        messages = [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ]
        if self._provider == "ollama":
            endpoint = self._base_url
            if not endpoint.endswith("/api/chat"):
                endpoint = f"{endpoint}/api/chat"
            body = self._post(
                endpoint,
                {
                    "model": self._model,
                    "messages": messages,
                    "stream": False,
                    "format": "json",
                    "options": {
                        "temperature": self._temperature,
                        "num_predict": self._max_tokens,
                    },
                },
            )
            message = body.get("message") or {}
            content = (message.get("content") or "").strip()
            if not content:
                raise EnhancementUnavailableError("Ollama response did not include content.")
            return content

        endpoint = self._base_url
        if not endpoint.endswith("/chat/completions"):
            endpoint = f"{endpoint}/chat/completions"
        body = self._post(
            endpoint,
            {
                "model": self._model,
                "temperature": self._temperature,
                "max_tokens": self._max_tokens,
                "messages": messages,
            },
        )
        choices = body.get("choices") or []
        if not choices:
            raise EnhancementUnavailableError("LLM returned no choices.")
        message = choices[0].get("message") or {}
        content = (message.get("content") or "").strip()
        if not content:
            raise EnhancementUnavailableError("LLM returned an empty response.")
        return content


def extract_json_blob(text: str) -> str:
    match = _JSON_BLOCK_RE.search(text)
    if match:
        return match.group(1).strip()

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end != -1 and end > start:
        return text[start : end + 1].strip()
    return text.strip()


def parse_json_reply(text: str) -> dict[str, Any]:
    """Decode a model reply into a JSON object or raise ``ValueError``."""

    blob = extract_json_blob(text)
    try:
        parsed = json.loads(blob)
    except json.JSONDecodeError as exc:
        snippet = blob.replace("\n", " ")[:200]
        raise ValueError(f"LLM returned invalid JSON: {exc}: payload={snippet}") from exc
    if not isinstance(parsed, dict):
        raise ValueError("LLM reply is not a JSON object.")
    return parsed


def build_decision_llm_client(settings: Optional[Settings] = None) -> Optional[DecisionLLMClient]:
    """Create an LLM client when enhancement is enabled and an endpoint is configured."""

    settings = settings or get_settings()
    if not settings.llm_enabled:
        return None
    if not settings.llm_base_url:
        logger.debug("LLM enhancement enabled but no base URL configured.")
        return None

    return DecisionLLMClient(
        base_url=settings.llm_base_url,
        model=settings.llm_model,
        provider=settings.llm_provider,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
        timeout=settings.llm_timeout_seconds,
        api_key=settings.llm_api_key,
    )


__all__ = [
    "DecisionLLMClient",
    "EnhancementUnavailableError",
    "build_decision_llm_client",
    "extract_json_blob",
    "parse_json_reply",
]
