"""Repair templates saved in older shapes (set count instead of a set list, missing ids)."""

from __future__ import annotations

from app.core.constants import DEFAULT_LEGACY_SET_COUNT
from app.schemas.template import ExerciseDefinition, SetDefinition, WorkoutTemplate, new_id


def _normalize_exercise(exercise: ExerciseDefinition) -> ExerciseDefinition | None:
    """Normalized copy, or None when the exercise is already well formed."""
    if isinstance(exercise.sets, list):
        if exercise.id and all(s.id for s in exercise.sets):
            return None
        exercise_id = exercise.id or new_id()
        return exercise.model_copy(
            update={
                "id": exercise_id,
                "sets": [s if s.id else s.model_copy(update={"id": new_id()}) for s in exercise.sets],
            }
        )

    count = exercise.sets if isinstance(exercise.sets, int) and exercise.sets > 0 else DEFAULT_LEGACY_SET_COUNT
    return exercise.model_copy(
        update={
            "id": exercise.id or new_id(),
            "sets": [SetDefinition(id=new_id()) for _ in range(count)],
        }
    )


def normalize_template(template: WorkoutTemplate) -> tuple[WorkoutTemplate, bool]:
    """Return ``(template, changed)``; ``changed`` means the caller should persist it back."""
    changed = False
    exercises = []
    for exercise in template.exercises:
        fixed = _normalize_exercise(exercise)
        if fixed is None:
            exercises.append(exercise)
        else:
            exercises.append(fixed)
            changed = True
    if not changed:
        return template, False
    return template.model_copy(update={"exercises": exercises}), True
