from functools import lru_cache
import json
from typing import Optional

from pydantic import AnyHttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_cors_origins(value: str) -> list[str]:
    if not value:
        return []

    parsed: list[str]
    raw = value.strip()
    if raw.startswith("["):
        try:
            items = json.loads(raw)
            parsed = [str(item).strip() for item in items if str(item).strip()]
        except (TypeError, ValueError):
            parsed = []
    else:
        parsed = [origin.strip() for origin in raw.split(",") if origin.strip()]

    # Preserve order and remove duplicates.
    return list(dict.fromkeys(parsed))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    app_name: str = "Prompt API"
    environment: str = "development"
    api_prefix: str = "/api"
    gateway_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # Security
    secret_key: str
    access_token_expire_minutes: int = 30
    refresh_token_expire_days: int = 7
    password_bcrypt_rounds: int = 12

    # Database
    database_url: str
    db_pool_size: int = 5
    db_max_overflow: int = 5
    db_pool_timeout: int = 15
    db_pool_recycle: int = 1200
    db_pool_pre_ping: bool = True

    # Groq (OpenAI-compatible chat completions)
    groq_api_key: str
    groq_base_url: AnyHttpUrl = "https://api.groq.com/openai/v1"
    llm_default_model: str = "llama-3.3-70b-versatile"
    # Upper bound for a single model call; the provider itself imposes none.
    llm_timeout_seconds: float = 60
    llm_test_mode: bool = False

    # Base URL used when reporting the public endpoint of a generated API
    public_base_url: str = "http://localhost:8000"

    # CORS
    cors_origins: str = "http://localhost:3000"
    auto_create_tables: bool = False

    # Key prefix of issued API keys
    api_key_prefix: str = "pak_"
    demo_api_key: Optional[str] = None


@lru_cache
def get_settings() -> Settings:
    return Settings()
