"""Shared FastAPI dependencies: who is calling and which engine serves them."""

from collections.abc import AsyncGenerator

from fastapi import Depends, Header, Request

from app.core.constants import DEFAULT_USER_ID
from app.services.engine_registry import EngineRegistry
from app.services.notifications import EventDispatcher
from app.services.session_store import SessionStore


def get_current_user(x_user_id: str | None = Header(default=None)) -> str:
    """Caller identity; requests without the header belong to the single default user."""
    return (x_user_id or "").strip() or DEFAULT_USER_ID


def get_registry(request: Request) -> EngineRegistry:
    return request.app.state.registry


async def get_engine(
    registry: EngineRegistry = Depends(get_registry),
    user_id: str = Depends(get_current_user),
) -> AsyncGenerator[SessionStore, None]:
    """Yield the caller's engine while holding its lock."""
    async with registry.engine(user_id) as engine:
        yield engine


def get_dispatcher(request: Request) -> EventDispatcher:
    return request.app.state.dispatcher
