import json
import logging
from typing import Any

from app.models import APIKey, GeneratedAPI, UsageLog
from app.services.store import CredentialStore


logger = logging.getLogger(__name__)


class UsageRecorder:
    """Writes one UsageLog per gateway attempt.

    Write failures are logged and dropped; the response is already decided.
    """

    def __init__(self, store: CredentialStore):
        self.store = store

    def _build_entry(
        self,
        *,
        slug: str,
        request_id: str,
        api: GeneratedAPI | None,
        key: APIKey | None,
        request_body: str | None,
        status_code: int,
        latency_ms: int,
        response_body: Any = None,
        error_message: str | None = None,
    ) -> UsageLog:
        return UsageLog(
            api_id=api.id if api is not None else None,
            api_key_id=key.id if key is not None else None,
            user_id=api.user_id if api is not None else None,
            slug=slug,
            request_id=request_id,
            request_body=request_body,
            response_body=json.dumps(response_body, ensure_ascii=False) if response_body is not None else None,
            status_code=status_code,
            latency_ms=latency_ms,
            error_message=error_message,
        )

    def record_success(
        self,
        *,
        slug: str,
        request_id: str,
        api: GeneratedAPI,
        key: APIKey,
        request_body: str | None,
        response_body: Any,
        latency_ms: int,
        status_code: int = 200,
    ) -> None:
        entry = self._build_entry(
            slug=slug,
            request_id=request_id,
            api=api,
            key=key,
            request_body=request_body,
            status_code=status_code,
            latency_ms=latency_ms,
            response_body=response_body,
        )
        try:
            self.store.record_outcome(entry, api_id=api.id, key_id=key.id)
        except Exception as exc:
            logger.warning("Usage write failed slug=%s request_id=%s error=%s", slug, request_id, exc)

    def record_failure(
        self,
        *,
        slug: str,
        request_id: str,
        api: GeneratedAPI | None,
        key: APIKey | None,
        request_body: str | None,
        status_code: int,
        latency_ms: int,
        error_message: str,
    ) -> None:
        entry = self._build_entry(
            slug=slug,
            request_id=request_id,
            api=api,
            key=key,
            request_body=request_body,
            status_code=status_code,
            latency_ms=latency_ms,
            error_message=error_message or "Unknown error",
        )
        try:
            self.store.append_usage_log(entry)
        except Exception as exc:
            logger.warning("Usage log write failed slug=%s request_id=%s error=%s", slug, request_id, exc)
