from datetime import datetime
import re
import time
import unicodedata
from typing import Any

from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.security import generate_api_key, hash_api_key, key_display_prefix
from app.models import APIKey, ApiStatus, GeneratedAPI, UserPlan
from app.services.groq import SUPPORTED_MODELS


settings = get_settings()

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
API_KEY_PATTERN = re.compile(rf"^{re.escape(settings.api_key_prefix)}[a-zA-Z0-9]{{32}}$")
SLUG_MAX_LENGTH = 100
JSON_SCHEMA_TYPES = {"string", "number", "integer", "boolean", "object", "array", "null"}

DEFAULT_RATE_LIMIT = {"requestsPerMinute": 60, "requestsPerDay": 1000}

# -1 means unlimited.
PLAN_LIMITS = {
    UserPlan.FREE: {"maxApis": 3, "requestsPerMinute": 10, "requestsPerDay": 100, "maxTokensPerRequest": 2000},
    UserPlan.STARTER: {"maxApis": 10, "requestsPerMinute": 60, "requestsPerDay": 1000, "maxTokensPerRequest": 4000},
    UserPlan.PRO: {"maxApis": 50, "requestsPerMinute": 200, "requestsPerDay": 10000, "maxTokensPerRequest": 8000},
    UserPlan.ENTERPRISE: {"maxApis": -1, "requestsPerMinute": 1000, "requestsPerDay": -1, "maxTokensPerRequest": 16000},
}


def default_configuration() -> dict:
    return {
        "model": settings.llm_default_model,
        "temperature": 0.7,
        "maxTokens": 2000,
        "rateLimit": dict(DEFAULT_RATE_LIMIT),
        "authentication": True,
    }


def build_configuration(overrides: dict | None = None) -> dict:
    config = default_configuration()
    overrides = overrides or {}
    if overrides.get("temperature"):
        config["temperature"] = overrides["temperature"]
    if overrides.get("maxTokens"):
        config["maxTokens"] = overrides["maxTokens"]
    return config


def slugify(value: str) -> str:
    text = unicodedata.normalize("NFKD", str(value or "")).encode("ascii", "ignore").decode("ascii")
    text = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    text = text[:SLUG_MAX_LENGTH].rstrip("-")
    return text or "api"


def _base36(number: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    out = ""
    while number:
        number, rem = divmod(number, 36)
        out = digits[rem] + out
    return out or "0"


def allocate_slug(db: Session, candidate: str) -> str:
    slug = slugify(candidate)
    exists = db.query(GeneratedAPI).filter(GeneratedAPI.slug == slug).first()
    if exists:
        slug = f"{slug}-{_base36(int(time.time() * 1000))}"
    return slug


def validate_api_configuration(config: Any) -> list[str]:
    if not isinstance(config, dict):
        return ["Invalid configuration"]

    errors = []
    if config.get("model") not in SUPPORTED_MODELS:
        errors.append("Invalid AI model")

    temperature = config.get("temperature")
    if isinstance(temperature, bool) or not isinstance(temperature, (int, float)) or not 0 <= temperature <= 2:
        errors.append("Temperature must be between 0 and 2")

    max_tokens = config.get("maxTokens")
    if isinstance(max_tokens, bool) or not isinstance(max_tokens, (int, float)) or not 1 <= max_tokens <= 16000:
        errors.append("Max tokens must be between 1 and 16000")

    rate_limit = config.get("rateLimit")
    if rate_limit:
        if not isinstance(rate_limit, dict):
            errors.append("Invalid rate limit")
        else:
            for field_name, label in (("requestsPerMinute", "Requests per minute"), ("requestsPerDay", "Requests per day")):
                value = rate_limit.get(field_name)
                if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 1:
                    errors.append(f"{label} must be positive")
    return errors


def validate_json_schema(schema: Any) -> list[str]:
    if not isinstance(schema, dict):
        return ["Invalid schema"]

    errors = []
    schema_type = schema.get("type")
    if schema_type not in JSON_SCHEMA_TYPES:
        errors.append("Invalid schema type")

    properties = schema.get("properties")
    if schema_type == "object" and isinstance(properties, dict):
        for name, prop in properties.items():
            if not isinstance(prop, dict) or prop.get("type") not in JSON_SCHEMA_TYPES:
                errors.append(f'Invalid type for property "{name}"')
    return errors


def is_valid_api_key_format(key: Any) -> bool:
    return isinstance(key, str) and bool(API_KEY_PATTERN.match(key))


def plan_limits(plan: UserPlan) -> dict:
    return dict(PLAN_LIMITS.get(plan, PLAN_LIMITS[UserPlan.FREE]))


def _new_key(name: str, expires_at: datetime | None = None) -> tuple[APIKey, str]:
    plaintext = generate_api_key()
    record = APIKey(
        key_hash=hash_api_key(plaintext),
        key_prefix=key_display_prefix(plaintext),
        name=name,
        is_active=True,
        expires_at=expires_at,
        usage_count=0,
    )
    return record, plaintext


def create_generated_api(
    db: Session,
    *,
    user_id: int,
    prompt: str,
    setup: dict,
    config: dict | None = None,
) -> tuple[GeneratedAPI, str]:
    """Create an active API together with its default key in one commit.

    Returns the API and the plaintext key, which is never stored.
    """
    for label, schema in (("input", setup.get("inputSchema")), ("output", setup.get("outputSchema"))):
        errors = validate_json_schema(schema)
        if errors:
            raise HTTPException(status_code=400, detail=f"Invalid {label} schema: {errors[0]}")

    slug = allocate_slug(db, setup.get("suggestedEndpoint") or setup.get("name") or "")
    key, plaintext = _new_key("Default Key")
    api = GeneratedAPI(
        user_id=user_id,
        name=setup["name"],
        description=setup.get("description") or "",
        slug=slug,
        user_prompt=prompt,
        system_prompt=setup["systemPrompt"],
        configuration=build_configuration(config),
        input_schema=setup["inputSchema"],
        output_schema=setup["outputSchema"],
        status=ApiStatus.ACTIVE,
        usage_count=0,
    )
    api.api_keys.append(key)
    db.add(api)
    db.commit()
    db.refresh(api)
    return api, plaintext


def issue_api_key(db: Session, api: GeneratedAPI, *, name: str, expires_at: datetime | None = None) -> tuple[APIKey, str]:
    key, plaintext = _new_key(name, expires_at)
    key.api_id = api.id
    db.add(key)
    db.commit()
    db.refresh(key)
    return key, plaintext


def deactivate_api_key(db: Session, key: APIKey) -> APIKey:
    # The secret itself is never rewritten; rotation means issuing a new key.
    key.is_active = False
    db.commit()
    db.refresh(key)
    return key


def public_endpoint(slug: str) -> str:
    return f"{settings.public_base_url.rstrip('/')}{settings.gateway_prefix}/{slug}"
