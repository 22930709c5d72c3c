from __future__ import annotations
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from .checks import readiness_payload, liveness_payload

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def live():
    data = await liveness_payload()
    return JSONResponse(data, status_code=200 if data["ok"] else 500)


@router.get("/ready")
async def ready(request: Request):
    store = getattr(request.app.state, "context_store", None)
    data = await readiness_payload(store)
    return JSONResponse(data, status_code=200 if data["ok"] else 503)
