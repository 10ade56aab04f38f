from pydantic import BaseModel, ConfigDict, EmailStr
from app.models.user import UserPlan


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: EmailStr
    full_name: str
    plan: UserPlan
    is_active: bool


class PlanLimits(BaseModel):
    max_apis: int
    requests_per_minute: int
    requests_per_day: int
    max_tokens_per_request: int


class AccountOut(BaseModel):
    user: UserOut
    limits: PlanLimits
    api_count: int
