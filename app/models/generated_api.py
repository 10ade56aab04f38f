import enum
from sqlalchemy import Column, Integer, String, Text, ForeignKey, Enum, DateTime, JSON, Index
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.base import TimestampMixin, enum_values


class ApiStatus(str, enum.Enum):
    DRAFT = "draft"
    CONFIGURING = "configuring"
    ACTIVE = "active"
    PAUSED = "paused"
    ERROR = "error"


class GeneratedAPI(Base, TimestampMixin):
    __tablename__ = "generated_apis"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")
    slug = Column(String(120), unique=True, nullable=False, index=True)
    user_prompt = Column(Text, nullable=False, default="")
    system_prompt = Column(Text, nullable=False)
    input_schema = Column(JSON, nullable=False, default=dict)
    output_schema = Column(JSON, nullable=False, default=dict)
    configuration = Column(JSON, nullable=False, default=dict)
    status = Column(Enum(ApiStatus, name="apistatus", values_callable=enum_values), nullable=False, default=ApiStatus.DRAFT)
    usage_count = Column(Integer, nullable=False, default=0)
    last_used_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="apis")
    api_keys = relationship(
        "APIKey",
        back_populates="api",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="APIKey.id.desc()",
    )
    usage_logs = relationship("UsageLog", back_populates="api", passive_deletes=True)


Index("ix_generated_apis_user_status", GeneratedAPI.user_id, GeneratedAPI.status)
