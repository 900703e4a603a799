"""API v1 router aggregation."""

from fastapi import APIRouter

from app.api.v1.endpoints import (
    health,
    history,
    pr,
    preferences,
    rest_timer,
    session,
    templates,
)

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(session.router, prefix="/session", tags=["session"])
api_router.include_router(rest_timer.router, prefix="/rest-timer", tags=["rest-timer"])
api_router.include_router(templates.router, prefix="/templates", tags=["templates"])
api_router.include_router(history.router, prefix="/history", tags=["history"])
api_router.include_router(pr.router, prefix="/pr", tags=["pr"])
api_router.include_router(preferences.router, prefix="/preferences", tags=["preferences"])
