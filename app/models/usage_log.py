from sqlalchemy import Column, Integer, String, Text, ForeignKey, Index
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.base import TimestampMixin


class UsageLog(Base, TimestampMixin):
    __tablename__ = "usage_logs"

    id = Column(Integer, primary_key=True, index=True)
    # References survive deletion of the API/key as NULL so history is kept.
    api_id = Column(Integer, ForeignKey("generated_apis.id", ondelete="SET NULL"), nullable=True)
    api_key_id = Column(Integer, ForeignKey("api_keys.id", ondelete="SET NULL"), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    slug = Column(String(120), nullable=False)
    request_id = Column(String(64), nullable=False)
    request_body = Column(Text, nullable=True)
    response_body = Column(Text, nullable=True)
    status_code = Column(Integer, nullable=False)
    latency_ms = Column(Integer, nullable=False)
    error_message = Column(Text, nullable=True)

    api = relationship("GeneratedAPI", back_populates="usage_logs")


Index("ix_usage_logs_user_status", UsageLog.user_id, UsageLog.status_code)
Index("ix_usage_logs_api_created", UsageLog.api_id, UsageLog.created_at)
