from app.core.config import get_settings, parse_cors_origins


def test_parse_cors_origins_csv():
    value = "http://localhost:5173, http://localhost:3000"
    assert parse_cors_origins(value) == [
        "http://localhost:5173",
        "http://localhost:3000",
    ]


def test_parse_cors_origins_json_list():
    value = '["http://localhost:5173", "https://api.example.com"]'
    assert parse_cors_origins(value) == [
        "http://localhost:5173",
        "https://api.example.com",
    ]


def test_parse_cors_origins_deduplicates():
    value = "http://localhost:5173,http://localhost:5173"
    assert parse_cors_origins(value) == ["http://localhost:5173"]


def test_parse_cors_origins_bad_json_is_empty():
    assert parse_cors_origins("[not json") == []


def test_settings_defaults():
    settings = get_settings()
    assert settings.api_prefix == "/api"
    assert settings.gateway_prefix == "/api/v1"
    assert settings.api_key_prefix == "pak_"
    assert settings.llm_default_model == "llama-3.3-70b-versatile"
    assert settings.llm_timeout_seconds > 0
