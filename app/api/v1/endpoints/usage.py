from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.dependencies import get_current_user
from app.models import User
from app.schemas.usage import UsageStatsOut
from app.services.usage_stats import get_usage_stats

router = APIRouter()


@router.get("", response_model=UsageStatsOut)
def usage_stats(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return get_usage_stats(db, user.id)
