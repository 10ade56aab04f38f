import os

import pytest


def _set_test_env() -> None:
    defaults = {
        "APP_NAME": "Prompt API Test",
        "ENVIRONMENT": "test",
        "SECRET_KEY": "test-secret",
        "ACCESS_TOKEN_EXPIRE_MINUTES": "30",
        "REFRESH_TOKEN_EXPIRE_DAYS": "7",
        "PASSWORD_BCRYPT_ROUNDS": "4",
        "AUTO_CREATE_TABLES": "false",
        "DATABASE_URL": "sqlite://",
        "GROQ_API_KEY": "gsk_test_xxx",
        "GROQ_BASE_URL": "https://api.groq.com/openai/v1",
        "LLM_TEST_MODE": "false",
        "PUBLIC_BASE_URL": "http://testserver",
        "CORS_ORIGINS": "http://localhost:5173,http://localhost:3000",
    }
    for key, value in defaults.items():
        os.environ.setdefault(key, value)


_set_test_env()


@pytest.fixture
def db_session():
    from app import models  # noqa: F401
    from app.core.database import Base, SessionLocal, engine

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
