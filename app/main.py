from fastapi import FastAPI
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import TimeoutError as SQLAlchemyTimeoutError
from app.api.v1.routes import router as api_router, gateway_router
from app.core.config import get_settings, parse_cors_origins
import logging
import time
from urllib.parse import urlparse
from app.core.database import Base, engine, SessionLocal
from app.core.logging import configure_logging
from app.middlewares.rate_limit import limiter
from app import models  # noqa: F401


settings = get_settings()

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
_started_at = time.time()


@app.exception_handler(SQLAlchemyTimeoutError)
async def sqlalchemy_timeout_handler(request, exc):
    logger.warning("Database pool timeout on %s %s: %s", request.method, request.url.path, exc)
    if request.url.path.startswith(f"{settings.gateway_prefix}/"):
        # Generated endpoints always answer in the {error, code} shape.
        return JSONResponse(
            status_code=503,
            content={"error": "Service is busy. Please retry in a moment.", "code": "SERVICE_UNAVAILABLE"},
        )
    return JSONResponse(
        status_code=503,
        content={"detail": "Service is busy. Please retry in a moment."},
    )


def _origin_from_url(raw: str) -> str | None:
    value = str(raw or "").strip()
    if not value:
        return None
    parsed = urlparse(value)
    if parsed.scheme and parsed.netloc:
        return f"{parsed.scheme}://{parsed.netloc}"
    return None


def _allowed_origins() -> list[str]:
    origins = parse_cors_origins(settings.cors_origins or "")
    public_origin = _origin_from_url(settings.public_base_url)
    if public_origin:
        origins.append(public_origin)
    return list(dict.fromkeys(origins))


allow_origins = _allowed_origins()
logger.info("CORS allow_origins=%s", allow_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    # Browser callers of generated endpoints read these for tracing.
    expose_headers=["X-Request-Id", "X-Latency-Ms"],
)

app.include_router(gateway_router, prefix=settings.gateway_prefix)
app.include_router(api_router, prefix=settings.api_prefix)


@app.on_event("startup")
def ensure_tables():
    logger.info(
        "Serving dashboard at %s and generated APIs at %s (model=%s, test_mode=%s)",
        settings.api_prefix,
        settings.gateway_prefix,
        settings.llm_default_model,
        settings.llm_test_mode,
    )
    if not settings.auto_create_tables:
        return

    # Local fallback for fresh environments; production runs Alembic.
    try:
        Base.metadata.create_all(bind=engine)
    except Exception as exc:
        logger.warning("DB unavailable on startup, skipping table creation: %s", exc)


@app.get("/")
def root():
    return {
        "status": "ok",
        "service": settings.app_name,
        "gateway": f"{settings.public_base_url.rstrip('/')}{settings.gateway_prefix}/{{slug}}",
    }


@app.get("/healthz")
def healthz():
    # Liveness: process is up.
    return {
        "status": "ok",
        "uptime_seconds": int(max(0, time.time() - _started_at)),
        "service": settings.app_name,
    }


@app.get("/readyz")
def readyz():
    # Readiness: database reachable and a model provider key configured.
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
    except Exception as exc:
        logger.warning("Readiness DB check failed: %s", exc)
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "detail": "database_unavailable"},
        )
    finally:
        db.close()

    if not (settings.groq_api_key or settings.llm_test_mode):
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "detail": "model_provider_unconfigured"},
        )
    return {
        "status": "ready",
        "uptime_seconds": int(max(0, time.time() - _started_at)),
    }
