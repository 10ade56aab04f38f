from datetime import datetime, timezone

from fastapi import Depends
from sqlalchemy import update
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.models import APIKey, GeneratedAPI, UsageLog


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CredentialStore:
    """Gateway-facing persistence built on one SQLAlchemy session per request."""

    def __init__(self, db: Session):
        self.db = db

    def find_api_by_slug(self, slug: str) -> GeneratedAPI | None:
        return self.db.query(GeneratedAPI).filter(GeneratedAPI.slug == slug).first()

    def find_active_key(self, api_id: int, key_hash: str) -> APIKey | None:
        # Expiry is the caller's check.
        return (
            self.db.query(APIKey)
            .filter(
                APIKey.api_id == api_id,
                APIKey.key_hash == key_hash,
                APIKey.is_active.is_(True),
            )
            .first()
        )

    def _stage_api_usage(self, api_id: int) -> None:
        # SQL-side increment; a deleted row simply matches nothing.
        self.db.execute(
            update(GeneratedAPI)
            .where(GeneratedAPI.id == api_id)
            .values(usage_count=GeneratedAPI.usage_count + 1, last_used_at=_utcnow())
            .execution_options(synchronize_session=False)
        )

    def _stage_key_usage(self, key_id: int) -> None:
        self.db.execute(
            update(APIKey)
            .where(APIKey.id == key_id)
            .values(usage_count=APIKey.usage_count + 1, last_used_at=_utcnow())
            .execution_options(synchronize_session=False)
        )

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def record_api_usage(self, api_id: int) -> None:
        self._stage_api_usage(api_id)
        self._commit()

    def record_key_usage(self, key_id: int) -> None:
        self._stage_key_usage(key_id)
        self._commit()

    def append_usage_log(self, entry: UsageLog) -> UsageLog:
        self.db.add(entry)
        self._commit()
        return entry

    def record_outcome(self, entry: UsageLog, *, api_id: int | None = None, key_id: int | None = None) -> None:
        """Flush the log and both counter bumps in a single round trip."""
        self.db.add(entry)
        if api_id is not None:
            self._stage_api_usage(api_id)
        if key_id is not None:
            self._stage_key_usage(key_id)
        self._commit()


def get_credential_store(db: Session = Depends(get_db)) -> CredentialStore:
    return CredentialStore(db)
