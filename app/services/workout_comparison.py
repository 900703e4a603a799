"""Completion comparison and lifetime stats computed from workout history."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, timedelta

from app.core.constants import MAX_COMPARISON_IMPROVEMENTS
from app.core.enums import StatsPeriod, UnitSystem
from app.schemas.history import ExerciseImprovement, WorkoutComparison, WorkoutHistoryRecord
from app.schemas.pr import LifetimeStats
from app.schemas.session import SessionExercise
from app.services.pr_detection import best_lift, count_prs_in_period, estimate_1rm
from app.services.set_input import format_weight, parse_reps, parse_weight

PERIOD_DAYS = {StatsPeriod.WEEK: 7, StatsPeriod.MONTH: 30}


def workout_totals(record: WorkoutHistoryRecord) -> tuple[float, int]:
    """(volume, completed sets); volume = sum of weight * reps over completed sets."""
    volume = 0.0
    sets = 0
    for exercise in record.exercises:
        for s in exercise.sets:
            if s.completed:
                volume += parse_weight(s.weight) * parse_reps(s.reps)
                sets += 1
    return volume, sets


def _heaviest_completed(exercise: SessionExercise) -> tuple[float, int] | None:
    best_weight, best_reps = 0.0, 0
    for s in exercise.sets:
        if s.completed:
            weight = parse_weight(s.weight)
            if weight > best_weight:
                best_weight, best_reps = weight, parse_reps(s.reps)
    return (best_weight, best_reps) if best_weight > 0 else None


def _improvements(current: WorkoutHistoryRecord, previous: WorkoutHistoryRecord) -> list[ExerciseImprovement]:
    improvements = []
    for exercise in current.exercises:
        before = next((ex for ex in previous.exercises if ex.name == exercise.name), None)
        if before is None:
            continue
        now_best = _heaviest_completed(exercise)
        then_best = _heaviest_completed(before)
        if now_best and then_best and now_best[0] > then_best[0]:
            improvements.append(
                ExerciseImprovement(
                    name=exercise.name,
                    old_weight=then_best[0],
                    new_weight=now_best[0],
                    change=now_best[0] - then_best[0],
                )
            )
    return improvements


def compare_workouts(
    current: WorkoutHistoryRecord,
    history: Sequence[WorkoutHistoryRecord],
    unit: UnitSystem = UnitSystem.LBS,
) -> WorkoutComparison:
    """Compare with the most recent earlier workout of the same template, or highlight a first one."""
    previous = next(
        (w for w in history if w.template_id == current.template_id and w.id != current.id),
        None,
    )
    volume, sets = workout_totals(current)
    unit_label = unit.value

    if previous is None:
        best_name, best_weight, best_reps, best_e1rm = None, 0.0, 0, 0.0
        for exercise in current.exercises:
            for s in exercise.sets:
                if not s.completed:
                    continue
                weight, reps = parse_weight(s.weight), parse_reps(s.reps)
                if estimate_1rm(weight, reps) > best_e1rm:
                    best_name, best_weight, best_reps = exercise.name, weight, reps
                    best_e1rm = estimate_1rm(weight, reps)
        lines = [f"**FIRST {current.template_name.upper()}**", "", f"💪 {volume / 1000:.1f}k {unit_label} crushed"]
        if best_name:
            lines.append(f"🔥 {best_name}: {format_weight(best_weight)}×{best_reps}")
        if current.duration > 0:
            lines.append(f"⚡ {current.duration} min - solid pace")
        return WorkoutComparison(
            is_first_workout=True,
            total_volume=volume,
            total_sets=sets,
            best_exercise=best_name,
            best_weight=best_weight if best_name else None,
            best_reps=best_reps if best_name else None,
            message="\n".join(lines),
        )

    previous_volume, _ = workout_totals(previous)
    change = volume - previous_volume
    percent = round(change / previous_volume * 100) if previous_volume > 0 else 0
    days_since = abs((date.fromisoformat(current.date) - date.fromisoformat(previous.date)).days)
    improvements = _improvements(current, previous)

    lines = [f"**COMPARED TO LAST {current.template_name.upper()}**", ""]
    if percent > 0:
        lines.append(f"💪 Crushed +{abs(change):.0f} {unit_label} (↑{abs(percent)}%)")
    elif percent < 0:
        lines.append(f"📉 {abs(change):.0f} {unit_label} down ({percent}%)")
    else:
        lines.append(f"💪 Matched {volume / 1000:.1f}k {unit_label}")
    for imp in improvements[:MAX_COMPARISON_IMPROVEMENTS]:
        lines.append(f"🔥 {imp.name}: {format_weight(imp.old_weight)}→{format_weight(imp.new_weight)} {unit_label}")
    if current.duration > 0 and previous.duration > current.duration:
        lines.append(f"⚡ {previous.duration - current.duration} min faster")

    return WorkoutComparison(
        is_first_workout=False,
        total_volume=volume,
        total_sets=sets,
        previous_volume=previous_volume,
        volume_change=change,
        volume_change_percent=percent,
        days_since_previous=days_since,
        improvements=improvements,
        message="\n".join(lines),
    )


def lifetime_stats(
    history: Sequence[WorkoutHistoryRecord],
    period: StatsPeriod,
    today: date,
) -> LifetimeStats:
    """Totals, best lift and PR count for the last week, month, or all time."""
    if period == StatsPeriod.ALL:
        start = None
        in_period = list(history)
    else:
        start = today - timedelta(days=PERIOD_DAYS[period])
        in_period = [w for w in history if date.fromisoformat(w.date) >= start]

    total_sets = total_reps = 0
    total_volume = 0.0
    for workout in in_period:
        for exercise in workout.exercises:
            for s in exercise.sets:
                if s.completed:
                    reps = parse_reps(s.reps)
                    total_sets += 1
                    total_reps += reps
                    total_volume += parse_weight(s.weight) * reps

    return LifetimeStats(
        period=period,
        total_workouts=len(in_period),
        total_sets=total_sets,
        total_reps=total_reps,
        total_volume=total_volume,
        prs_in_period=count_prs_in_period(history, start, today + timedelta(days=1) if start else None),
        best_lift=best_lift(in_period),
    )
