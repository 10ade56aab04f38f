import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from app.dependencies import get_current_user
from app.middlewares.rate_limit import limiter
from app.models import User
from app.schemas.apis import GenerateSetupRequest, GenerateSetupResponse
from app.services.groq import GroqApiError, GroqClient, get_groq_client
from app.services.setup_generator import generate_api_setup

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("", response_model=GenerateSetupResponse)
@limiter.limit("20/minute")
def generate_setup(
    request: Request,
    payload: GenerateSetupRequest,
    user: User = Depends(get_current_user),
    client: GroqClient = Depends(get_groq_client),
):
    try:
        setup = generate_api_setup(client, payload.prompt)
    except GroqApiError as exc:
        logger.warning("Setup generation failed user_id=%s status=%s error=%s", user.id, exc.status_code, exc.message)
        raise HTTPException(status_code=500, detail="Failed to generate API setup")
    return GenerateSetupResponse(setup=setup)
