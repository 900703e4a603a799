"""PR detection: flag a completed set as a PR if no earlier set for the exercise was as heavy."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date

from app.core.constants import EPLEY_DIVISOR
from app.schemas.history import WorkoutHistoryRecord
from app.schemas.pr import BestLift, PersonalRecord, PRCelebration, PRResult
from app.services.set_input import format_weight, parse_reps, parse_weight


def estimate_1rm(weight: float, reps: int) -> float:
    """Epley estimate: weight * (1 + reps/30)."""
    return weight * (1 + reps / EPLEY_DIVISOR)


def _completed_sets(history: Iterable[WorkoutHistoryRecord], exercise_name: str):
    for workout in history:
        for exercise in workout.exercises:
            if exercise.name != exercise_name:
                continue
            for s in exercise.sets:
                if s.completed:
                    yield s


def current_records(records: Iterable[PersonalRecord]) -> dict[str, PersonalRecord]:
    """Current best per exercise name (the latest record wins; older ones were superseded)."""
    best: dict[str, PersonalRecord] = {}
    for record in records:
        best[record.exercise_name] = record
    return best


def check_for_new_pr(
    history: Sequence[WorkoutHistoryRecord],
    records: Sequence[PersonalRecord],
    exercise_name: str,
    weight: float,
    reps: int,
    workout_id: str,
    on_date: str,
) -> PRResult:
    """
    Compare a just-completed set against every completed set for ``exercise_name``.
    ``history`` never contains the running session. Only records carrying
    ``workout_id`` are consulted, so the same weight is not celebrated twice
    within a session while records left by cancelled sessions never block a PR.
    """
    if weight <= 0 or reps <= 0:
        return PRResult(is_new_pr=False)

    previous: tuple[float, int] | None = None
    for s in _completed_sets(history, exercise_name):
        set_weight = parse_weight(s.weight)
        if set_weight >= weight:
            return PRResult(is_new_pr=False)
        if set_weight > 0 and (previous is None or set_weight > previous[0]):
            previous = (set_weight, parse_reps(s.reps))

    this_session = current_records(r for r in records if r.workout_id == workout_id).get(exercise_name)
    if this_session is not None:
        if this_session.weight >= weight:
            return PRResult(is_new_pr=False)
        previous = (this_session.weight, this_session.reps)

    record = PersonalRecord(
        exercise_name=exercise_name,
        weight=weight,
        reps=reps,
        estimated_1rm=round(estimate_1rm(weight, reps), 2),
        date=on_date,
        workout_id=workout_id,
    )
    if previous is None:
        celebration = PRCelebration(
            exercise_name=exercise_name,
            new_weight=weight,
            new_reps=reps,
            is_first_time=True,
            improvement="First time!",
        )
    else:
        old_weight, old_reps = previous
        celebration = PRCelebration(
            exercise_name=exercise_name,
            new_weight=weight,
            new_reps=reps,
            old_weight=old_weight,
            old_reps=old_reps,
            improvement=f"+{format_weight(weight - old_weight)}",
        )
    return PRResult(is_new_pr=True, record=record, celebration=celebration)


def save_pr(records: Sequence[PersonalRecord], record: PersonalRecord) -> list[PersonalRecord]:
    """Append; the previous best stays in the list as a superseded entry."""
    return [*records, record]


def _best_1rm_by_workout(history: Iterable[WorkoutHistoryRecord]) -> dict[str, list[tuple[date, float]]]:
    by_exercise: dict[str, list[tuple[date, float]]] = {}
    for workout in history:
        workout_date = date.fromisoformat(workout.date)
        for exercise in workout.exercises:
            best = 0.0
            for s in exercise.sets:
                if s.completed and s.weight and s.reps:
                    best = max(best, estimate_1rm(parse_weight(s.weight), parse_reps(s.reps)))
            if best > 0:
                by_exercise.setdefault(exercise.name, []).append((workout_date, best))
    for entries in by_exercise.values():
        entries.sort(key=lambda e: e[0])
    return by_exercise


def count_prs_in_period(
    history: Iterable[WorkoutHistoryRecord],
    period_start: date | None,
    period_end: date | None = None,
) -> int:
    """
    Number of exercises with a PR in [period_start, period_end).
    A PR means some workout in the window beat the best estimated 1RM from
    before the window. ``period_start=None`` is "all time": every exercise
    with a completed set counts once.
    """
    by_exercise = _best_1rm_by_workout(history)
    if period_start is None:
        return len(by_exercise)

    count = 0
    for entries in by_exercise.values():
        max_before = 0.0
        for entry_date, value in entries:
            if entry_date < period_start:
                max_before = max(max_before, value)
        in_window = [
            value
            for entry_date, value in entries
            if entry_date >= period_start and (period_end is None or entry_date < period_end)
        ]
        if any(value > max_before for value in in_window):
            count += 1
    return count


def best_lift(history: Iterable[WorkoutHistoryRecord]) -> BestLift | None:
    """Set with the highest estimated 1RM."""
    best: BestLift | None = None
    for workout in history:
        for exercise in workout.exercises:
            for s in exercise.sets:
                if not (s.completed and s.weight and s.reps):
                    continue
                weight = parse_weight(s.weight)
                reps = parse_reps(s.reps)
                e1rm = estimate_1rm(weight, reps)
                if e1rm <= 0:
                    continue
                if best is None or e1rm > best.estimated_1rm:
                    best = BestLift(exercise_name=exercise.name, weight=weight, reps=reps, estimated_1rm=round(e1rm, 2))
    return best
