"""Workout preferences (goal, units, progressive overload, rest timer)."""

from fastapi import APIRouter, Depends

from app.api.deps import get_engine
from app.schemas.preferences import WorkoutPreferences, WorkoutPreferencesUpdate
from app.services.session_store import SessionStore

router = APIRouter()


@router.get("", response_model=WorkoutPreferences)
async def get_preferences(engine: SessionStore = Depends(get_engine)):
    return engine.preferences


@router.put("", response_model=WorkoutPreferences)
async def replace_preferences(
    payload: WorkoutPreferences,
    engine: SessionStore = Depends(get_engine),
):
    return await engine.update_preferences(payload)


@router.patch("", response_model=WorkoutPreferences)
async def update_preferences(
    payload: WorkoutPreferencesUpdate,
    engine: SessionStore = Depends(get_engine),
):
    """Change only the fields sent."""
    data = {**engine.preferences.model_dump(), **payload.model_dump(exclude_unset=True)}
    return await engine.update_preferences(WorkoutPreferences.model_validate(data))
