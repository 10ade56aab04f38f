from app.models.user import User, UserPlan
from app.models.generated_api import GeneratedAPI, ApiStatus
from app.models.api_key import APIKey
from app.models.usage_log import UsageLog

__all__ = [
    "User",
    "UserPlan",
    "GeneratedAPI",
    "ApiStatus",
    "APIKey",
    "UsageLog",
]
