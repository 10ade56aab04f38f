from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, DateTime, Index
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.base import TimestampMixin


class APIKey(Base, TimestampMixin):
    __tablename__ = "api_keys"

    id = Column(Integer, primary_key=True, index=True)
    api_id = Column(Integer, ForeignKey("generated_apis.id", ondelete="CASCADE"), nullable=False)
    # Only the SHA-256 digest is stored; the plaintext is returned once at issuance.
    key_hash = Column(String(64), unique=True, nullable=False, index=True)
    key_prefix = Column(String(16), nullable=False)
    name = Column(String(100), nullable=False, default="Default Key")
    is_active = Column(Boolean, default=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    usage_count = Column(Integer, nullable=False, default=0)
    last_used_at = Column(DateTime(timezone=True), nullable=True)

    api = relationship("GeneratedAPI", back_populates="api_keys")


Index("ix_api_keys_api_hash_active", APIKey.api_id, APIKey.key_hash, APIKey.is_active)
