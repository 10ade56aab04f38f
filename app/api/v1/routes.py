from fastapi import APIRouter
from app.api.v1.endpoints import auth, apis, keys, setup, usage, gateway

# Dashboard API, mounted under settings.api_prefix.
router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(setup.router, prefix="/generate-setup", tags=["setup"])
router.include_router(apis.router, prefix="/apis", tags=["apis"])
router.include_router(keys.router, prefix="/keys", tags=["keys"])
router.include_router(usage.router, prefix="/usage", tags=["usage"])

# Generated endpoints, mounted under settings.gateway_prefix.
gateway_router = APIRouter()

gateway_router.include_router(gateway.router, tags=["gateway"])
