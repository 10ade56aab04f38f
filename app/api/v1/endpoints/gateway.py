from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from app.services.gateway import GatewayHandler
from app.services.invoker import ModelInvoker, get_model_invoker
from app.services.store import CredentialStore, get_credential_store

router = APIRouter()


def get_gateway(
    store: CredentialStore = Depends(get_credential_store),
    invoker: ModelInvoker = Depends(get_model_invoker),
) -> GatewayHandler:
    return GatewayHandler(store, invoker)


@router.post("/{slug}")
async def execute_api(slug: str, request: Request, gateway: GatewayHandler = Depends(get_gateway)):
    body = await request.body()
    # The handler does blocking DB and HTTP work; keep it off the event loop.
    result = await run_in_threadpool(gateway.execute, slug, request.headers, body)
    return JSONResponse(status_code=result.status_code, content=result.body, headers=result.headers)


@router.get("/{slug}")
def describe_api(slug: str, gateway: GatewayHandler = Depends(get_gateway)):
    result = gateway.describe(slug)
    return JSONResponse(status_code=result.status_code, content=result.body)
