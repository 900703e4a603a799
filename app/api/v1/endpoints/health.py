"""Health check endpoint for load balancers and monitoring."""

import os

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.api.deps import get_registry
from app.services.engine_registry import EngineRegistry

router = APIRouter()


@router.get("")
async def health():
    """Simple liveness check. Optionally includes built_at if BACKEND_BUILT_AT env is set."""
    payload: dict = {"status": "ok"}
    built_at = os.environ.get("BACKEND_BUILT_AT")
    if built_at:
        payload["built_at"] = built_at
    return payload


@router.get("/ready")
async def readiness(registry: EngineRegistry = Depends(get_registry)):
    """Readiness: app + storage round trip."""
    try:
        await registry.store.get("health", "ping")
        return {"status": "ok", "storage": type(registry.store).__name__}
    except Exception as e:
        return JSONResponse(
            status_code=500,
            content={"status": "error", "storage": str(e)},
        )
