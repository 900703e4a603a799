"""
Coaching context for the active session.

The engine keeps a running ``SessionContext`` (totals, last set, per-exercise
set log and trend) and persists it so a restart mid-workout keeps it. The
read-only ``CoachingContext`` built here is what an external text generator
gets to see; nothing in this module calls one.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta

from app.core.constants import STALE_SESSION_HOURS
from app.core.enums import PerformanceTrend, PrimaryGoal
from app.schemas.coaching import (
    CoachingContext,
    ExerciseHistorySummary,
    ExercisePerformance,
    HistoricalSet,
    LoggedSet,
    SessionContext,
)
from app.schemas.history import WorkoutHistoryRecord
from app.services.set_input import parse_reps, parse_weight

HISTORY_WORKOUT_LIMIT = 10
TREND_WINDOW = 3
TREND_TOLERANCE = 0.05

GOAL_FOCUS = {
    PrimaryGoal.MUSCLE_GAIN: "Focus on hypertrophy (8-12 reps, moderate weight, controlled tempo)",
    PrimaryGoal.STRENGTH: "Focus on strength (3-6 reps, heavy weight, progressive overload)",
    PrimaryGoal.WEIGHT_LOSS: "Focus on fat loss + muscle retention (higher volume, shorter rest)",
    PrimaryGoal.ATHLETIC_PERFORMANCE: "Focus on explosive power and conditioning",
    PrimaryGoal.GENERAL_FITNESS: "Focus on balanced health and wellness",
}


def start_context(workout_id: str, workout_name: str, emoji: str, start_time: datetime) -> SessionContext:
    return SessionContext(
        workout_id=workout_id,
        workout_name=workout_name,
        emoji=emoji,
        start_time=start_time.isoformat(),
    )


def is_stale(context: SessionContext, now: datetime, max_hours: float = STALE_SESSION_HOURS) -> bool:
    """A context older than ``max_hours`` belongs to an abandoned workout."""
    started = datetime.fromisoformat(context.start_time)
    return now - started > timedelta(hours=max_hours)


def _trend(sets: Sequence[LoggedSet]) -> PerformanceTrend:
    if len(sets) < 2:
        return PerformanceTrend.STABLE
    last_reps = parse_reps(sets[-1].reps)
    previous_reps = parse_reps(sets[-2].reps)
    if last_reps < previous_reps - 1:
        return PerformanceTrend.DECLINING
    if last_reps > previous_reps:
        return PerformanceTrend.IMPROVING
    return PerformanceTrend.STABLE


def record_completed_set(
    context: SessionContext,
    exercise_name: str,
    weight: str,
    reps: str,
    timestamp: datetime,
) -> SessionContext:
    """Return ``context`` with one more completed set folded in."""
    logged = LoggedSet(weight=weight, reps=reps, timestamp=timestamp.isoformat())
    performance = context.exercise_performance.get(exercise_name, ExercisePerformance())
    sets = [*performance.sets, logged]
    exercise_performance = {
        **context.exercise_performance,
        exercise_name: ExercisePerformance(sets=sets, performance_trend=_trend(sets)),
    }
    return context.model_copy(
        update={
            "last_set_completed": logged,
            "last_exercise_name": exercise_name,
            "total_sets_completed": context.total_sets_completed + 1,
            "total_volume": context.total_volume + parse_weight(weight) * parse_reps(reps),
            "exercise_performance": exercise_performance,
        }
    )


def _volume(s: HistoricalSet) -> float:
    return parse_weight(s.weight) * parse_reps(s.reps)


def exercise_history_summary(
    history: Sequence[WorkoutHistoryRecord],
    exercise_name: str,
    limit: int = 10,
) -> ExerciseHistorySummary:
    """Completed sets of ``exercise_name`` over the most recent workouts (name match ignores case)."""
    wanted = exercise_name.lower()
    recent: list[HistoricalSet] = []
    for workout in history[:HISTORY_WORKOUT_LIMIT]:
        exercise = next((ex for ex in workout.exercises if ex.name.lower() == wanted), None)
        if exercise is None:
            continue
        for s in exercise.sets:
            if s.completed and s.weight and s.reps:
                recent.append(HistoricalSet(weight=s.weight, reps=s.reps, date=workout.date))

    if not recent:
        return ExerciseHistorySummary(exercise_name=exercise_name)

    best: HistoricalSet | None = None
    best_volume = 0.0
    for s in recent:
        if _volume(s) > best_volume:
            best, best_volume = s, _volume(s)

    trend = PerformanceTrend.STABLE
    if len(recent) >= TREND_WINDOW * 2:
        latest = sum(_volume(s) for s in recent[:TREND_WINDOW])
        earlier = sum(_volume(s) for s in recent[TREND_WINDOW : TREND_WINDOW * 2])
        if latest > earlier * (1 + TREND_TOLERANCE):
            trend = PerformanceTrend.IMPROVING
        elif latest < earlier * (1 - TREND_TOLERANCE):
            trend = PerformanceTrend.DECLINING

    return ExerciseHistorySummary(
        exercise_name=exercise_name,
        recent_sets=recent[:limit],
        average_weight=sum(parse_weight(s.weight) for s in recent) / len(recent),
        average_reps=sum(parse_reps(s.reps) for s in recent) / len(recent),
        best_set=best,
        performance_trend=trend,
    )


def build_coaching_context(
    exercise_name: str,
    current_weight: str,
    current_reps: str,
    session: SessionContext | None,
    history: Sequence[WorkoutHistoryRecord],
    primary_goal: PrimaryGoal,
) -> CoachingContext:
    performance = session.exercise_performance.get(exercise_name) if session else None
    return CoachingContext(
        exercise_name=exercise_name,
        current_weight=current_weight,
        current_reps=current_reps,
        session_sets=performance.sets if performance else [],
        session_trend=performance.performance_trend if performance else PerformanceTrend.STABLE,
        history=exercise_history_summary(history, exercise_name),
        primary_goal=primary_goal,
    )


def should_offer_form_tip(context: SessionContext, exercise_name: str, set_number: int) -> bool:
    """Form coaching is worth asking for when reps are dropping, or right after the second set."""
    performance = context.exercise_performance.get(exercise_name)
    if performance is None:
        return False
    if performance.performance_trend == PerformanceTrend.DECLINING:
        return True
    return len(performance.sets) == 2 and set_number == 2


def render_coaching_prompt(context: CoachingContext, unit: str = "lbs") -> str:
    """Plain-text rendering of ``context`` for a language model prompt."""
    lines = [
        f"Exercise: {context.exercise_name}",
        f"Current set: {context.current_weight}{unit} × {context.current_reps} reps",
        f"Primary Goal: {GOAL_FOCUS[context.primary_goal]}",
        "",
    ]
    history = context.history
    if history.recent_sets:
        lines.append("Historical Performance:")
        lines.append(f"- Average: {history.average_weight:.1f}{unit} × {history.average_reps:.1f} reps")
        if history.best_set:
            lines.append(f"- Best set: {history.best_set.weight}{unit} × {history.best_set.reps} reps")
        lines.append(f"- Overall trend: {history.performance_trend.value}")
        lines.append("")

    if context.session_sets:
        lines.append("Today's Performance:")
        for index, s in enumerate(context.session_sets, start=1):
            lines.append(f"- Set {index}: {s.weight}{unit} × {s.reps} reps")
        lines.append(f"- Today's trend: {context.session_trend.value}")
        lines.append("")

    if history.recent_sets:
        current_volume = parse_weight(context.current_weight) * parse_reps(context.current_reps)
        average_volume = history.average_weight * history.average_reps
        if current_volume > average_volume * 1.1:
            lines.append("💪 Current set is 10%+ above average - great progress!")
        elif current_volume < average_volume * 0.9:
            lines.append("⚠️ Current set is 10%+ below average - may indicate fatigue.")

        reps = parse_reps(context.current_reps)
        goal = context.primary_goal
        if goal == PrimaryGoal.MUSCLE_GAIN and not 8 <= reps <= 12:
            lines.append("💡 For muscle gain, aim for 8-12 reps. Adjust weight accordingly.")
        elif goal == PrimaryGoal.STRENGTH and reps > 6:
            lines.append("💡 For strength, focus on heavier weight with 3-6 reps.")
        elif goal == PrimaryGoal.WEIGHT_LOSS and reps < 10:
            lines.append("💡 For fat loss, higher reps (10-15) with moderate weight burns more calories.")

    return "\n".join(lines)
