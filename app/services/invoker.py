import json
import logging
from dataclasses import dataclass
from typing import Any

from app.core.config import get_settings
from app.services.groq import GroqApiError, GroqClient, get_groq_client


settings = get_settings()
logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2000


class ModelInvocationError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class GenerationParams:
    model: str
    temperature: float
    max_tokens: int


def resolve_generation_params(configuration: Any) -> GenerationParams:
    config = configuration if isinstance(configuration, dict) else {}
    # Falsy values (0, "", None) fall back to the defaults.
    return GenerationParams(
        model=config.get("model") or settings.llm_default_model,
        temperature=config.get("temperature") or DEFAULT_TEMPERATURE,
        max_tokens=config.get("maxTokens") or DEFAULT_MAX_TOKENS,
    )


def build_messages(system_prompt: str, payload: Any) -> list[dict]:
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": json.dumps(payload, indent=2, ensure_ascii=False)},
    ]


class ModelInvoker:
    """Sends one system prompt + payload exchange to the model. No retries."""

    def __init__(self, client: GroqClient):
        self.client = client

    def invoke(self, system_prompt: str, payload: Any, configuration: Any) -> str:
        params = resolve_generation_params(configuration)
        messages = build_messages(system_prompt, payload)
        try:
            return self.client.chat(
                messages,
                model=params.model,
                temperature=params.temperature,
                max_tokens=params.max_tokens,
            )
        except GroqApiError as exc:
            raise ModelInvocationError(exc.message) from exc
        except Exception as exc:
            raise ModelInvocationError(str(exc) or exc.__class__.__name__) from exc


def get_model_invoker() -> ModelInvoker:
    return ModelInvoker(get_groq_client())
