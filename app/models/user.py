import enum
from sqlalchemy import Column, Integer, String, Boolean, Enum, Index
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.base import TimestampMixin, enum_values


class UserPlan(str, enum.Enum):
    FREE = "free"
    STARTER = "starter"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    hashed_password = Column(String(255), nullable=False)
    plan = Column(Enum(UserPlan, name="userplan", values_callable=enum_values), nullable=False, default=UserPlan.FREE)
    is_active = Column(Boolean, default=True, nullable=False)

    apis = relationship(
        "GeneratedAPI",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


Index("ix_users_plan_active", User.plan, User.is_active)
