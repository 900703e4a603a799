"""Progressive overload: in-session coaching hints and the post-session template rewrite.

Both policies use the "best set rule": the heaviest completed set, ties broken
by more reps, then by the earlier set.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

from app.core.constants import COACHING_SET_NUMBER
from app.core.enums import CoachingScope, PrimaryGoal
from app.schemas.coaching import OverloadSuggestion
from app.schemas.events import CoachingSuggested
from app.schemas.history import WorkoutHistoryRecord
from app.schemas.preferences import ProgressiveOverloadConfig, WorkoutPreferences
from app.schemas.session import SessionExercise, SessionSet
from app.schemas.template import SetDefinition, WorkoutTemplate
from app.services.set_input import format_weight, parse_reps, parse_weight

logger = logging.getLogger(__name__)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def goal_multiplier(goal: PrimaryGoal, reps: int, increase_at_reps: int) -> float:
    if goal == PrimaryGoal.STRENGTH:
        # Faster when the threshold is beaten comfortably
        return 1.5 if reps >= increase_at_reps + 2 else 1.2
    if goal == PrimaryGoal.WEIGHT_LOSS:
        return 0.75
    return 1.0


def select_best_set(sets: Sequence[SessionSet]) -> SessionSet | None:
    """Heaviest set, then most reps, then earliest."""
    best: SessionSet | None = None
    best_key = (0.0, 0)
    for s in sets:
        key = (parse_weight(s.weight), parse_reps(s.reps))
        if best is None or key > best_key:
            best, best_key = s, key
    return best


def next_weight(best: SessionSet, config: ProgressiveOverloadConfig, goal: PrimaryGoal) -> float:
    """Weight the template should carry after a session whose best set was ``best``."""
    best_reps = parse_reps(best.reps)
    best_weight = parse_weight(best.weight)
    if best_reps >= config.increase_at_reps:
        multiplier = goal_multiplier(goal, best_reps, config.increase_at_reps)
        return best_weight + _round_half_up(config.weight_increment * multiplier)
    return best_weight


def rewrite_template_weights(
    template: WorkoutTemplate,
    record: WorkoutHistoryRecord,
    config: ProgressiveOverloadConfig,
    goal: PrimaryGoal = PrimaryGoal.GENERAL_FITNESS,
) -> WorkoutTemplate:
    """
    Return ``template`` with every performed exercise set to its next weight.
    Exercises not performed, or without a completed set, are left as they are.
    Reps are cleared so the next session autofills them from history.
    """
    exercises = []
    for template_exercise in template.exercises:
        performed = next((ex for ex in record.exercises if ex.name == template_exercise.name), None)
        completed = [s for s in performed.sets if s.completed] if performed else []
        if not completed or not isinstance(template_exercise.sets, list):
            exercises.append(template_exercise)
            continue

        best = select_best_set(completed)
        weight = format_weight(next_weight(best, config, goal))
        logger.debug(
            "%s: best %sx%s -> template weight %s",
            template_exercise.name,
            best.weight,
            best.reps,
            weight,
        )
        exercises.append(
            template_exercise.model_copy(
                update={
                    "sets": [
                        SetDefinition(id=s.id, reps="", weight=weight)
                        for s in template_exercise.sets
                    ]
                }
            )
        )
    return template.model_copy(update={"exercises": exercises})


def coaching_suggestion(
    exercise: SessionExercise,
    set_id: str,
    preferences: WorkoutPreferences,
) -> CoachingSuggested | None:
    """
    Advisory weight bump after the third completed set of an exercise, when
    the last three completed sets match exactly and reps reached the bottom of
    the target range. Nothing is stored.
    """
    if not preferences.enable_progressive_overload:
        return None
    current = next((s for s in exercise.sets if s.id == set_id), None)
    if current is None or not current.completed:
        return None

    completed = [s for s in exercise.sets if s.completed]
    config = preferences.progressive_overload_config
    if len(completed) != COACHING_SET_NUMBER:
        return None
    if parse_reps(current.reps) < config.target_rep_range.min:
        return None

    last_three = completed[-COACHING_SET_NUMBER:]
    weights = {parse_weight(s.weight) for s in last_three}
    reps = {parse_reps(s.reps) for s in last_three}
    if len(weights) != 1 or len(reps) != 1:
        return None

    current_weight = parse_weight(current.weight)
    suggested = current_weight + config.weight_increment
    unit = preferences.unit_system.value
    if len(exercise.sets) > COACHING_SET_NUMBER:
        scope = CoachingScope.NEXT_SET
        message = (
            f"3 strong sets at {format_weight(current_weight)}{unit}! "
            f"Challenge yourself - try {format_weight(suggested)}{unit} for set 4?"
        )
    else:
        scope = CoachingScope.NEXT_WORKOUT
        message = (
            f"Crushed all 3 sets at {format_weight(current_weight)}{unit}! "
            f"Next workout, try {format_weight(suggested)}{unit}"
        )
    return CoachingSuggested(
        exercise_name=exercise.name,
        current_weight=current_weight,
        suggested_weight=suggested,
        scope=scope,
        message=message,
    )


def calculate_progressive_overload(
    previous_sets: Sequence[SessionSet],
    preferences: WorkoutPreferences,
) -> OverloadSuggestion:
    """Hint for the next workout from the sets logged last time for one exercise."""
    if not previous_sets:
        return OverloadSuggestion(should_progress=False, suggested_weight=0, reason="No previous workout data")

    config = preferences.progressive_overload_config
    unit = preferences.unit_system.value
    best = select_best_set(previous_sets)
    reps = parse_reps(best.reps)
    weight = parse_weight(best.weight)
    if reps == 0 or weight == 0:
        return OverloadSuggestion(should_progress=False, suggested_weight=weight, reason="Invalid previous workout data")

    if reps >= config.increase_at_reps:
        multiplier = goal_multiplier(preferences.primary_goal, reps, config.increase_at_reps)
        increment = _round_half_up(config.weight_increment * multiplier)
        note = ""
        if multiplier != 1.0:
            style = "aggressive" if increment > config.weight_increment else "conservative"
            note = f" ({preferences.primary_goal.value} focus: {style})"
        return OverloadSuggestion(
            should_progress=True,
            suggested_weight=weight + increment,
            reason=f"Hit {reps} reps at {format_weight(weight)} {unit} (threshold: {config.increase_at_reps}){note}",
        )
    return OverloadSuggestion(
        should_progress=False,
        suggested_weight=weight,
        reason=f"Keep working at {format_weight(weight)} {unit} ({reps}/{config.increase_at_reps} reps)",
    )
