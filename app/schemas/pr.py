"""Personal record schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from app.core.enums import StatsPeriod


class PersonalRecord(BaseModel):
    """Best weight for an exercise at the time it was set. Superseded entries are kept."""

    model_config = ConfigDict(frozen=True)

    exercise_name: str
    weight: float
    reps: int
    estimated_1rm: float
    date: str
    workout_id: str


class PRCelebration(BaseModel):
    """Before/after payload carried by a PR event."""

    exercise_name: str
    new_weight: float
    new_reps: int
    old_weight: float | None = None
    old_reps: int | None = None
    is_first_time: bool = False
    improvement: str


class PRResult(BaseModel):
    is_new_pr: bool
    record: PersonalRecord | None = None
    celebration: PRCelebration | None = None


class BestLift(BaseModel):
    exercise_name: str
    weight: float
    reps: int
    estimated_1rm: float


class LifetimeStats(BaseModel):
    period: StatsPeriod
    total_workouts: int
    total_sets: int
    total_reps: int
    total_volume: float
    prs_in_period: int
    best_lift: BestLift | None = None
