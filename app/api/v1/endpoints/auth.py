import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from jose import JWTError
from sqlalchemy import func
from sqlalchemy.orm import Session
from app.core.security import hash_password, verify_password, create_access_token, create_refresh_token, decode_token
from app.core.database import get_db
from app.middlewares.rate_limit import limiter
from app.models import GeneratedAPI, User, UserPlan
from app.schemas.auth import RegisterRequest, LoginRequest, TokenPair, RefreshRequest
from app.schemas.user import AccountOut, PlanLimits, UserOut
from app.dependencies import get_current_user
from app.services.provisioning import plan_limits

router = APIRouter()
logger = logging.getLogger(__name__)


def _token_pair(user: User) -> TokenPair:
    return TokenPair(
        access_token=create_access_token(str(user.id)),
        refresh_token=create_refresh_token(str(user.id)),
    )


@router.post("/register", response_model=UserOut, status_code=201)
@limiter.limit("10/minute")
def register(request: Request, payload: RegisterRequest, db: Session = Depends(get_db)):
    email = payload.email.lower()
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        raise HTTPException(status_code=400, detail="Email already registered")

    user = User(
        email=email,
        full_name=payload.full_name.strip(),
        hashed_password=hash_password(payload.password),
        plan=UserPlan.FREE,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user id=%s", user.id)
    return user


@router.post("/login", response_model=TokenPair)
@limiter.limit("10/minute")
def login(request: Request, payload: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == payload.email.lower()).first()
    if not user or not verify_password(payload.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="User is inactive")
    return _token_pair(user)


@router.post("/refresh", response_model=TokenPair)
@limiter.limit("30/minute")
def refresh(request: Request, payload: RefreshRequest, db: Session = Depends(get_db)):
    try:
        decoded = decode_token(payload.refresh_token)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid refresh token")
    if decoded.get("type") != "refresh":
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    try:
        user_id = int(decoded.get("sub"))
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return _token_pair(user)


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    return user


@router.get("/account", response_model=AccountOut)
def account(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    limits = plan_limits(user.plan)
    api_count = db.query(func.count(GeneratedAPI.id)).filter(GeneratedAPI.user_id == user.id).scalar() or 0
    return AccountOut(
        user=UserOut.model_validate(user),
        limits=PlanLimits(
            max_apis=limits["maxApis"],
            requests_per_minute=limits["requestsPerMinute"],
            requests_per_day=limits["requestsPerDay"],
            max_tokens_per_request=limits["maxTokensPerRequest"],
        ),
        api_count=int(api_count),
    )
