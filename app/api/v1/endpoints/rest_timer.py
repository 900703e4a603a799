"""Rest timer between sets."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.deps import get_dispatcher, get_engine
from app.schemas.events import DomainEvent
from app.schemas.rest_timer import (
    AdjustRestRequest,
    DefaultRest,
    RestTimerResponse,
    StartRestRequest,
)
from app.services.notifications import EventDispatcher
from app.services.rest_timer import default_rest_seconds
from app.services.session_store import SessionStore

router = APIRouter()


def _response(engine: SessionStore, dispatcher: EventDispatcher, events: list[DomainEvent]) -> RestTimerResponse:
    dispatcher.dispatch(events)
    return RestTimerResponse(state=engine.rest_timer.state(), events=events)


@router.get("", response_model=RestTimerResponse)
async def get_rest_timer(
    engine: SessionStore = Depends(get_engine),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    """Remaining time, recomputed from the stored end timestamp; reports completion once."""
    return _response(engine, dispatcher, list(engine.rest_timer.tick()))


@router.post("/start", response_model=RestTimerResponse)
async def start_rest_timer(
    payload: StartRestRequest,
    engine: SessionStore = Depends(get_engine),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    duration = payload.duration_seconds
    if duration is None:
        duration = default_rest_seconds(payload.exercise_name, engine.preferences.custom_default_rest_seconds)
    return _response(engine, dispatcher, [engine.rest_timer.start(duration, payload.exercise_name)])


@router.post("/adjust", response_model=RestTimerResponse)
async def adjust_rest_timer(
    payload: AdjustRestRequest,
    engine: SessionStore = Depends(get_engine),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    """Add or remove seconds (the UI sends +/-15)."""
    return _response(engine, dispatcher, list(engine.rest_timer.adjust(payload.delta_seconds)))


@router.post("/skip", response_model=RestTimerResponse)
async def skip_rest_timer(
    engine: SessionStore = Depends(get_engine),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    engine.rest_timer.skip()
    return _response(engine, dispatcher, [])


@router.get("/default", response_model=DefaultRest)
async def default_rest(exercise_name: str = "", engine: SessionStore = Depends(get_engine)):
    seconds = default_rest_seconds(exercise_name, engine.preferences.custom_default_rest_seconds)
    return DefaultRest(exercise_name=exercise_name, seconds=seconds)
