"""Execution path of a generated API.

One call walks a fixed sequence of states and leaves through exactly one
usage record, success or failure:

    RESOLVE_API -> CHECK_STATUS -> EXTRACT_KEY -> RESOLVE_KEY -> CHECK_EXPIRY
    -> PARSE_BODY -> VALIDATE_SCHEMA -> INVOKE_MODEL -> COERCE_OUTPUT
    -> RECORD_SUCCESS -> RESPOND

Any failure jumps to RECORD_FAILURE -> RESPOND with the error's code and
HTTP status. Every error is rendered as ``{"error": ..., "code": ...}``.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
import enum
import json
import logging
import time
import uuid
from typing import Any, Mapping

from app.core.security import hash_api_key
from app.models import APIKey, ApiStatus, GeneratedAPI
from app.services.coercer import coerce_output
from app.services.invoker import ModelInvocationError, ModelInvoker
from app.services.schema_validator import InputSchema, MissingFieldError, validate_payload
from app.services.store import CredentialStore
from app.services.usage import UsageRecorder


logger = logging.getLogger(__name__)


class GatewayState(str, enum.Enum):
    RESOLVE_API = "resolve_api"
    CHECK_STATUS = "check_status"
    EXTRACT_KEY = "extract_key"
    RESOLVE_KEY = "resolve_key"
    CHECK_EXPIRY = "check_expiry"
    PARSE_BODY = "parse_body"
    VALIDATE_SCHEMA = "validate_schema"
    INVOKE_MODEL = "invoke_model"
    COERCE_OUTPUT = "coerce_output"
    RECORD_SUCCESS = "record_success"
    RECORD_FAILURE = "record_failure"
    RESPOND = "respond"


class GatewayError(Exception):
    code = "INTERNAL_ERROR"
    status_code = 500
    default_message = "API request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_body(self) -> dict:
        return {"error": self.message, "code": self.code}


class GatewayNotFound(GatewayError):
    code = "API_NOT_FOUND"
    status_code = 404
    default_message = "API not found"


class GatewayStatusError(GatewayError):
    code = "API_INACTIVE"
    status_code = 403
    default_message = "API is not active"


class GatewayAuthError(GatewayError):
    status_code = 401

    def __init__(self, code: str, message: str):
        self.code = code
        super().__init__(message)


class GatewayValidationError(GatewayError):
    code = "INVALID_INPUT"
    status_code = 400

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"Missing required field: {field_name}")


class GatewayInternalError(GatewayError):
    """500 with the underlying cause exposed as ``message``."""

    def __init__(self, detail: str):
        self.detail = detail or "Unknown error"
        super().__init__()

    def to_body(self) -> dict:
        body = super().to_body()
        body["message"] = self.detail
        return body


class GatewayUpstreamError(GatewayInternalError):
    pass


def missing_api_key() -> GatewayAuthError:
    return GatewayAuthError("UNAUTHORIZED", "API key required")


def invalid_api_key() -> GatewayAuthError:
    return GatewayAuthError("INVALID_API_KEY", "Invalid API key")


def expired_api_key() -> GatewayAuthError:
    return GatewayAuthError("API_KEY_EXPIRED", "API key has expired")


@dataclass
class GatewayResponse:
    status_code: int
    body: Any
    headers: dict = field(default_factory=dict)


@dataclass
class _Call:
    slug: str
    request_id: str
    started: float
    raw_body: str | None = None
    state: GatewayState = GatewayState.RESOLVE_API
    api: GeneratedAPI | None = None
    key: APIKey | None = None


def extract_api_key(headers: Mapping[str, str]) -> str | None:
    """Bearer token if an ``Authorization: Bearer`` header is present, else ``x-api-key``."""
    normalized = {str(name).lower(): value for name, value in headers.items()}
    authorization = normalized.get("authorization") or ""
    if authorization.startswith("Bearer "):
        # A Bearer header wins even when empty; x-api-key is not consulted.
        return authorization[len("Bearer "):].strip() or None
    api_key = (normalized.get("x-api-key") or "").strip()
    return api_key or None


def new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:16]}"


def _as_utc(value: datetime) -> datetime:
    # Some drivers hand back naive timestamps; treat them as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _decode_body(body: bytes | str | None) -> str | None:
    if body is None:
        return None
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return body


class GatewayHandler:
    def __init__(self, store: CredentialStore, invoker: ModelInvoker, recorder: UsageRecorder | None = None):
        self.store = store
        self.invoker = invoker
        self.recorder = recorder or UsageRecorder(store)

    @staticmethod
    def _elapsed_ms(call: _Call) -> int:
        return int(round((time.perf_counter() - call.started) * 1000))

    def execute(self, slug: str, headers: Mapping[str, str], body: bytes | str | None) -> GatewayResponse:
        call = _Call(
            slug=slug,
            request_id=new_request_id(),
            started=time.perf_counter(),
            raw_body=_decode_body(body),
        )
        try:
            output = self._run(call, headers)
        except GatewayError as exc:
            return self._fail(call, exc)
        except Exception as exc:
            logger.exception("Gateway call failed slug=%s state=%s", slug, call.state.value)
            return self._fail(call, GatewayInternalError(str(exc) or exc.__class__.__name__))

        call.state = GatewayState.RECORD_SUCCESS
        latency_ms = self._elapsed_ms(call)
        self.recorder.record_success(
            slug=slug,
            request_id=call.request_id,
            api=call.api,
            key=call.key,
            request_body=call.raw_body,
            response_body=output,
            latency_ms=latency_ms,
        )
        call.state = GatewayState.RESPOND
        return GatewayResponse(
            status_code=200,
            body=output,
            headers={"X-Request-Id": call.request_id, "X-Latency-Ms": str(latency_ms)},
        )

    def _run(self, call: _Call, headers: Mapping[str, str]) -> Any:
        call.state = GatewayState.RESOLVE_API
        api = self.store.find_api_by_slug(call.slug)
        if api is None:
            raise GatewayNotFound()
        call.api = api

        call.state = GatewayState.CHECK_STATUS
        if api.status != ApiStatus.ACTIVE:
            raise GatewayStatusError()

        call.state = GatewayState.EXTRACT_KEY
        presented = extract_api_key(headers)
        if presented is None:
            raise missing_api_key()

        call.state = GatewayState.RESOLVE_KEY
        key = self.store.find_active_key(api.id, hash_api_key(presented))
        if key is None:
            raise invalid_api_key()
        call.key = key

        call.state = GatewayState.CHECK_EXPIRY
        if key.expires_at is not None and _as_utc(key.expires_at) < datetime.now(timezone.utc):
            raise expired_api_key()

        call.state = GatewayState.PARSE_BODY
        try:
            payload = json.loads(call.raw_body or "")
        except ValueError as exc:
            raise GatewayInternalError(f"Invalid JSON body: {exc}") from exc

        call.state = GatewayState.VALIDATE_SCHEMA
        try:
            validate_payload(InputSchema.from_declared(api.input_schema), payload)
        except MissingFieldError as exc:
            raise GatewayValidationError(exc.field_name) from exc

        call.state = GatewayState.INVOKE_MODEL
        try:
            text = self.invoker.invoke(api.system_prompt, payload, api.configuration)
        except ModelInvocationError as exc:
            raise GatewayUpstreamError(exc.message) from exc

        call.state = GatewayState.COERCE_OUTPUT
        return coerce_output(text)

    def _fail(self, call: _Call, error: GatewayError) -> GatewayResponse:
        failed_at = call.state
        call.state = GatewayState.RECORD_FAILURE
        detail = error.detail if isinstance(error, GatewayInternalError) else error.message
        logger.info(
            "Gateway call rejected slug=%s state=%s code=%s status=%s",
            call.slug,
            failed_at.value,
            error.code,
            error.status_code,
        )
        self.recorder.record_failure(
            slug=call.slug,
            request_id=call.request_id,
            api=call.api,
            key=call.key,
            request_body=call.raw_body,
            status_code=error.status_code,
            latency_ms=self._elapsed_ms(call),
            error_message=detail,
        )
        call.state = GatewayState.RESPOND
        return GatewayResponse(status_code=error.status_code, body=error.to_body())

    def describe(self, slug: str) -> GatewayResponse:
        """Public introspection; never exposes the system prompt or keys."""
        api = self.store.find_api_by_slug(slug)
        if api is None:
            return GatewayResponse(status_code=404, body=GatewayNotFound().to_body())
        status = api.status.value if isinstance(api.status, ApiStatus) else str(api.status)
        return GatewayResponse(
            status_code=200,
            body={
                "name": api.name,
                "description": api.description,
                "status": status,
                "inputSchema": api.input_schema or {},
                "outputSchema": api.output_schema or {},
            },
        )
