"""Structural drift between the template a session started from and what was performed."""

from __future__ import annotations

from app.schemas.history import WorkoutHistoryRecord
from app.schemas.template import ExerciseDefinition, SetDefinition, WorkoutTemplate


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count > 1 else ''}"


def detect_template_changes(original: WorkoutTemplate, completed: WorkoutHistoryRecord) -> list[str]:
    """Human-readable list of structural changes; empty means the structure matched."""
    changes: list[str] = []
    original_by_name = {}
    for ex in original.exercises:
        original_by_name.setdefault(ex.name, ex)
    completed_names = {ex.name for ex in completed.exercises}

    added = [ex for ex in completed.exercises if ex.name not in original_by_name]
    if added:
        changes.append(f"Added {_plural(len(added), 'exercise')}")

    removed = [ex for ex in original.exercises if ex.name not in completed_names]
    if removed:
        changes.append(f"Removed {_plural(len(removed), 'exercise')}")

    for ex in completed.exercises:
        original_ex = original_by_name.get(ex.name)
        if original_ex is not None and len(ex.sets) > len(original_ex.set_list):
            changes.append(f"Added {_plural(len(ex.sets) - len(original_ex.set_list), 'set')} to {ex.name}")

    for ex in completed.exercises:
        original_ex = original_by_name.get(ex.name)
        if original_ex is not None and len(ex.sets) < len(original_ex.set_list):
            changes.append(f"Removed {_plural(len(original_ex.set_list) - len(ex.sets), 'set')} from {ex.name}")

    return changes


def apply_structure(template: WorkoutTemplate, completed: WorkoutHistoryRecord) -> WorkoutTemplate:
    """
    Template after the user accepts the drift: the completed session's
    exercises and set counts, in session order. Weights already written to the
    template for a matching exercise are carried over; reps start empty.
    """
    current_by_name = {}
    for ex in template.exercises:
        current_by_name.setdefault(ex.name, ex)

    exercises = []
    for ex in completed.exercises:
        existing = current_by_name.get(ex.name)
        existing_sets = existing.set_list if existing is not None else []
        weight = existing_sets[0].weight if existing_sets else ""
        exercises.append(
            ExerciseDefinition(
                id=existing.id if existing is not None and existing.id else ex.id,
                name=ex.name,
                sets=[SetDefinition(id=s.id, reps="", weight=weight) for s in ex.sets],
            )
        )
    return template.model_copy(update={"exercises": exercises})
