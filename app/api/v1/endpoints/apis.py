import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.dependencies import get_current_user, get_owned_api
from app.models import APIKey, GeneratedAPI, User
from app.schemas.apis import (
    ApiDetailOut,
    ApiKeyBrief,
    ApiKeyOut,
    ApiSummaryOut,
    ApisResponse,
    CreateApiRequest,
    CreateApiResponse,
    IssueApiKeyRequest,
    IssuedApiKeyOut,
    UpdateApiRequest,
)
from app.schemas.auth import Message
from app.services.provisioning import (
    create_generated_api,
    deactivate_api_key,
    issue_api_key,
    public_endpoint,
    validate_api_configuration,
)
from app.services.usage_stats import request_counts

router = APIRouter()
logger = logging.getLogger(__name__)


def _summary_fields(api: GeneratedAPI, request_count: int) -> dict:
    return {
        "id": api.id,
        "name": api.name,
        "slug": api.slug,
        "description": api.description or "",
        "status": api.status,
        "endpoint": public_endpoint(api.slug),
        "usage_count": api.usage_count or 0,
        "request_count": request_count,
        "last_used_at": api.last_used_at,
        "created_at": api.created_at,
        "api_keys": [ApiKeyBrief.model_validate(key) for key in api.api_keys],
    }


def _detail(db: Session, api: GeneratedAPI) -> ApiDetailOut:
    counts = request_counts(db, [api.id])
    return ApiDetailOut(
        **_summary_fields(api, counts.get(api.id, 0)),
        user_prompt=api.user_prompt or "",
        system_prompt=api.system_prompt,
        input_schema=api.input_schema or {},
        output_schema=api.output_schema or {},
        configuration=api.configuration or {},
    )


@router.get("", response_model=ApisResponse)
def list_apis(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    apis = (
        db.query(GeneratedAPI)
        .filter(GeneratedAPI.user_id == user.id)
        .order_by(GeneratedAPI.created_at.desc(), GeneratedAPI.id.desc())
        .all()
    )
    counts = request_counts(db, [api.id for api in apis])
    return ApisResponse(items=[ApiSummaryOut(**_summary_fields(api, counts.get(api.id, 0))) for api in apis])


@router.post("", response_model=CreateApiResponse, status_code=201)
def create_api(payload: CreateApiRequest, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    setup = payload.setup.model_dump(by_alias=True)
    config = payload.config.model_dump(by_alias=True, exclude_none=True) if payload.config else None
    api, plaintext = create_generated_api(db, user_id=user.id, prompt=payload.prompt, setup=setup, config=config)
    logger.info("Created API id=%s slug=%s user_id=%s", api.id, api.slug, user.id)
    return CreateApiResponse(id=api.id, slug=api.slug, api_key=plaintext, endpoint=public_endpoint(api.slug))


@router.get("/{api_id}", response_model=ApiDetailOut)
def get_api(api_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    api = get_owned_api(db, user, api_id)
    return _detail(db, api)


@router.patch("/{api_id}", response_model=ApiDetailOut)
def update_api(api_id: int, payload: UpdateApiRequest, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    api = get_owned_api(db, user, api_id)

    if payload.configuration is not None:
        errors = validate_api_configuration(payload.configuration)
        if errors:
            raise HTTPException(status_code=400, detail=errors[0])
        api.configuration = payload.configuration
    if payload.name:
        api.name = payload.name
    if payload.description:
        api.description = payload.description
    if payload.status is not None:
        api.status = payload.status
    if payload.system_prompt:
        api.system_prompt = payload.system_prompt

    db.commit()
    db.refresh(api)
    return _detail(db, api)


@router.delete("/{api_id}", response_model=Message)
def delete_api(api_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    api = get_owned_api(db, user, api_id)
    db.delete(api)
    db.commit()
    logger.info("Deleted API id=%s user_id=%s", api_id, user.id)
    return Message(message="API deleted")


@router.post("/{api_id}/keys", response_model=IssuedApiKeyOut, status_code=201)
def create_key(
    api_id: int,
    payload: IssueApiKeyRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    api = get_owned_api(db, user, api_id)
    key, plaintext = issue_api_key(db, api, name=payload.name, expires_at=payload.expires_at)
    return IssuedApiKeyOut(**ApiKeyOut.model_validate(key).model_dump(), key=plaintext)


@router.delete("/{api_id}/keys/{key_id}", response_model=ApiKeyOut)
def revoke_key(api_id: int, key_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    api = get_owned_api(db, user, api_id)
    key = db.query(APIKey).filter(APIKey.id == key_id, APIKey.api_id == api.id).first()
    if not key:
        raise HTTPException(status_code=404, detail="API key not found")
    return deactivate_api_key(db, key)
