from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.dependencies import get_current_user
from app.models import APIKey, GeneratedAPI, User
from app.schemas.apis import ApiKeyListItem, ApiKeyOut

router = APIRouter()


@router.get("", response_model=list[ApiKeyListItem])
def list_keys(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    rows = (
        db.query(APIKey, GeneratedAPI.name, GeneratedAPI.slug)
        .join(GeneratedAPI, APIKey.api_id == GeneratedAPI.id)
        .filter(GeneratedAPI.user_id == user.id)
        .order_by(APIKey.created_at.desc(), APIKey.id.desc())
        .all()
    )
    return [
        ApiKeyListItem(**ApiKeyOut.model_validate(key).model_dump(), api_name=name, api_slug=slug)
        for key, name, slug in rows
    ]
