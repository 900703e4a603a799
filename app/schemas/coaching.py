"""Coaching payloads: overload hints and the read-only context handed to AI coaching."""

from __future__ import annotations

from pydantic import BaseModel

from app.core.enums import PerformanceTrend, PrimaryGoal


class OverloadSuggestion(BaseModel):
    should_progress: bool
    suggested_weight: float
    reason: str


class LoggedSet(BaseModel):
    weight: str
    reps: str
    timestamp: str


class ExercisePerformance(BaseModel):
    sets: list[LoggedSet] = []
    performance_trend: PerformanceTrend = PerformanceTrend.STABLE


class SessionContext(BaseModel):
    """Running summary of the active session (persisted so coaching survives restarts)."""

    workout_id: str
    workout_name: str
    emoji: str
    start_time: str  # ISO
    total_sets_completed: int = 0
    total_volume: float = 0
    last_set_completed: LoggedSet | None = None
    last_exercise_name: str | None = None
    exercise_performance: dict[str, ExercisePerformance] = {}


class HistoricalSet(BaseModel):
    weight: str
    reps: str
    date: str


class ExerciseHistorySummary(BaseModel):
    exercise_name: str
    recent_sets: list[HistoricalSet] = []
    average_weight: float = 0
    average_reps: float = 0
    best_set: HistoricalSet | None = None
    performance_trend: PerformanceTrend = PerformanceTrend.STABLE


class CoachingContext(BaseModel):
    """Snapshot an external coaching collaborator may read; it never writes back."""

    exercise_name: str
    current_weight: str
    current_reps: str
    session_sets: list[LoggedSet] = []
    session_trend: PerformanceTrend = PerformanceTrend.STABLE
    history: ExerciseHistorySummary
    primary_goal: PrimaryGoal
