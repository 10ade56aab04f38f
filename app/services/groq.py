import json
import logging
import re
import time

import httpx

from app.core.config import get_settings
from app.services.coercer import parse_strict_json


settings = get_settings()
logger = logging.getLogger(__name__)


MODELS = {
    "LLAMA_70B": "llama-3.3-70b-versatile",
    "LLAMA_8B": "llama-3.1-8b-instant",
    "MIXTRAL": "mixtral-8x7b-32768",
    "GEMMA": "gemma2-9b-it",
}
SUPPORTED_MODELS = frozenset(MODELS.values()) | {"llama-3.1-70b-versatile"}

JSON_ONLY_INSTRUCTION = "\n\nRespond ONLY with valid JSON. Do not write anything else."

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


class GroqApiError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None, raw: str | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.raw = raw


class GroqClient:
    """Thin client for Groq's OpenAI-compatible chat completions API."""

    def __init__(self, api_key: str | None = None, base_url: str | None = None, timeout: float | None = None):
        self.api_key = api_key or settings.groq_api_key
        self.base_url = str(base_url or settings.groq_base_url).rstrip("/")
        self.timeout = settings.llm_timeout_seconds if timeout is None else timeout
        self.test_mode = settings.llm_test_mode

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _extract_error_message(self, response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            data = {}
        if isinstance(data, dict):
            error = data.get("error")
            if isinstance(error, dict):
                msg = error.get("message")
                if isinstance(msg, str) and msg.strip():
                    return msg.strip()
            if isinstance(error, str) and error.strip():
                return error.strip()
        text = (response.text or "").strip()
        return text[:300] if text else f"HTTP {response.status_code}"

    def _request(self, path: str, payload: dict) -> dict:
        url = f"{self.base_url}{path}"
        start = time.time()
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(url, json=payload, headers=self._headers())
        except httpx.TimeoutException as exc:
            raise GroqApiError("Model provider timed out.", raw=str(exc)) from exc
        except httpx.HTTPError as exc:
            raise GroqApiError("Unable to reach model provider.", raw=str(exc)) from exc

        duration_ms = round((time.time() - start) * 1000, 2)
        logger.info("Groq POST %s model=%s status=%s duration=%sms", path, payload.get("model"), response.status_code, duration_ms)
        if response.status_code >= 400:
            message = self._extract_error_message(response)
            raise GroqApiError(message, status_code=response.status_code, raw=response.text)
        try:
            return response.json()
        except ValueError as exc:
            raise GroqApiError("Model provider returned invalid JSON.", status_code=response.status_code, raw=response.text) from exc

    def chat(
        self,
        messages: list[dict],
        *,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 4000,
    ) -> str:
        if self.test_mode:
            # Never hit the provider; echo the last user message back as JSON.
            return json.dumps({"echo": messages[-1]["content"] if messages else ""})

        payload = {
            "model": model or settings.llm_default_model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        data = self._request("/chat/completions", payload)
        choices = data.get("choices") or []
        if not choices:
            return ""
        message = choices[0].get("message") or {}
        return message.get("content") or ""

    def generate_json(self, prompt: str, system_prompt: str, *, model: str | None = None, max_tokens: int = 4000) -> dict:
        text = self.chat(
            [
                {"role": "system", "content": system_prompt + JSON_ONLY_INSTRUCTION},
                {"role": "user", "content": prompt},
            ],
            model=model,
            temperature=0.3,
            max_tokens=max_tokens,
        )
        match = _JSON_OBJECT.search(text)
        if not match:
            raise GroqApiError("Could not parse JSON from response", raw=text)
        try:
            return parse_strict_json(match.group(0))
        except (ValueError, RecursionError) as exc:
            raise GroqApiError("Could not parse JSON from response", raw=text) from exc


def get_groq_client() -> GroqClient:
    return GroqClient()
