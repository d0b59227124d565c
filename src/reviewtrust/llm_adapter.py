"""
Chat-completion client used for cross-review pattern classification.
One request per call, no retries. Every failure (transport, HTTP status,
unexpected payload) is raised as ClassifierFallbackError so the caller can
drop back to local detectors only.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Protocol

import httpx

from .config import Settings, get_settings

logger = logging.getLogger(__name__)


class ClassifierFallbackError(RuntimeError):
    """Raised when the external classifier result must be skipped."""


class PatternClassifierClient(Protocol):
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        response_schema: Dict[str, Any],
    ) -> str:
        """Return the raw JSON text produced for the prompt."""
        ...


class OpenAIClassifierClient:
    """
    Minimal OpenAI Chat Completions client.
    - structured output via a strict json_schema response format
    - the httpx client can be injected (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        settings = settings or get_settings()
        if not settings.openai_api_key:
            raise ClassifierFallbackError("OPENAI_API_KEY not configured")
        self._api_key = settings.openai_api_key
        self._model = settings.openai_model
        self._endpoint = f"{settings.openai_base_url.rstrip('/')}/chat/completions"
        self._temperature = settings.classifier_temperature
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=settings.classifier_timeout)

    # Public API -----------------------------------------------------
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        response_schema: Dict[str, Any],
    ) -> str:
        payload = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "response_format": {
                "type": "json_schema",
                "json_schema": {
                    "name": "review_analysis",
                    "strict": True,
                    "schema": response_schema,
                },
            },
            "temperature": self._temperature,
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}
        self._log_event("request", {"model": self._model, "prompt": user_prompt})
        try:
            response = await self._client.post(self._endpoint, json=payload, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            self._log_fallback("http-error", str(exc))
            raise ClassifierFallbackError(f"Classifier request failed: {exc}") from exc
        except ValueError as exc:
            self._log_fallback("non-json-body", str(exc))
            raise ClassifierFallbackError("Classifier returned a non-JSON body") from exc

        content = self._extract_content(data)
        if not content:
            self._log_fallback("empty-content", json.dumps(data)[:200])
            raise ClassifierFallbackError("No content in classifier response")
        self._log_event("response", {"output": content})
        return content

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # Internal helpers ----------------------------------------------
    @staticmethod
    def _extract_content(data: Any) -> str:
        # {"choices": [{"message": {"content": "..."}}]}
        if not isinstance(data, dict):
            return ""
        choices = data.get("choices") or []
        if not choices or not isinstance(choices[0], dict):
            return ""
        message = choices[0].get("message") or {}
        content = message.get("content") if isinstance(message, dict) else None
        return content.strip() if isinstance(content, str) else ""

    def _log_event(self, event: str, payload: Dict[str, Any]) -> None:
        short_payload = payload.copy()
        for key in ("prompt", "output"):
            if isinstance(short_payload.get(key), str):
                short_payload[key] = short_payload[key][:200]
        short_payload["event"] = event
        logger.debug("Classifier event: %s", json.dumps(short_payload, ensure_ascii=False))

    def _log_fallback(self, reason: str, error: str) -> None:
        self._log_event("fallback", {"reason": reason, "error": error[:200]})
