"""Finished workouts, newest first."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import get_engine
from app.schemas.coaching import ExerciseHistorySummary, OverloadSuggestion
from app.schemas.history import WorkoutComparison, WorkoutHistoryRecord
from app.services.progressive_overload import calculate_progressive_overload
from app.services.session_context import exercise_history_summary
from app.services.session_store import SessionStore
from app.services.workout_comparison import compare_workouts

router = APIRouter()


def _find(engine: SessionStore, workout_id: str) -> WorkoutHistoryRecord:
    for record in engine.history:
        if record.id == workout_id:
            return record
    raise HTTPException(status_code=404, detail="Workout not found")


@router.get("", response_model=list[WorkoutHistoryRecord])
async def list_history(
    skip: int = 0,
    limit: int = 50,
    engine: SessionStore = Depends(get_engine),
):
    return engine.history[skip : skip + limit]


@router.get("/exercises/{exercise_name}/summary", response_model=ExerciseHistorySummary)
async def exercise_summary(exercise_name: str, engine: SessionStore = Depends(get_engine)):
    """Recent completed sets, averages, best set and trend for one exercise."""
    return exercise_history_summary(engine.history, exercise_name)


@router.get("/exercises/{exercise_name}/next-weight", response_model=OverloadSuggestion)
async def next_weight(exercise_name: str, engine: SessionStore = Depends(get_engine)):
    """Progressive overload hint from the last time the exercise was performed."""
    previous_sets = []
    for record in engine.history:
        performed = next((ex for ex in record.exercises if ex.name == exercise_name), None)
        if performed is not None:
            previous_sets = [s for s in performed.sets if s.completed]
            break
    return calculate_progressive_overload(previous_sets, engine.preferences)


@router.get("/{workout_id}", response_model=WorkoutHistoryRecord)
async def get_workout(workout_id: str, engine: SessionStore = Depends(get_engine)):
    return _find(engine, workout_id)


@router.get("/{workout_id}/comparison", response_model=WorkoutComparison)
async def workout_comparison(workout_id: str, engine: SessionStore = Depends(get_engine)):
    """Compare a workout with the one before it from the same template."""
    record = _find(engine, workout_id)
    older = engine.history[engine.history.index(record) + 1 :]
    return compare_workouts(record, older, engine.preferences.unit_system)
