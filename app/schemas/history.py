"""Workout history records and completion summaries."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from app.schemas.events import DomainEvent
from app.schemas.pr import PRCelebration
from app.schemas.session import SessionExercise


class WorkoutHistoryRecord(BaseModel):
    """Snapshot appended to history on finish; never mutated afterwards."""

    model_config = ConfigDict(frozen=True)

    id: str
    template_id: str
    template_name: str
    emoji: str
    date: str  # YYYY-MM-DD
    duration: int  # minutes
    exercises: tuple[SessionExercise, ...] = ()


class ExerciseImprovement(BaseModel):
    name: str
    old_weight: float
    new_weight: float
    change: float


class WorkoutComparison(BaseModel):
    """Comparison against the previous workout of the same template (or first-time highlights)."""

    is_first_workout: bool
    total_volume: float
    total_sets: int
    previous_volume: float | None = None
    volume_change: float | None = None
    volume_change_percent: int | None = None
    days_since_previous: int | None = None
    improvements: list[ExerciseImprovement] = []
    best_exercise: str | None = None
    best_weight: float | None = None
    best_reps: int | None = None
    message: str


class CompletionSummary(BaseModel):
    workout_name: str
    emoji: str
    duration: int
    total_sets: int
    total_volume: int
    prs: list[PRCelebration] = []
    comparison_message: str | None = None


class FinishResult(BaseModel):
    """Everything ``finish_session`` produced; ``events`` ends with ``SessionFinished``."""

    record: WorkoutHistoryRecord
    summary: CompletionSummary
    comparison: WorkoutComparison
    drift: list[str] = []
    events: list[DomainEvent] = []
