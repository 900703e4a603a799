"""Workout template schemas."""

from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict, Field


def new_id() -> str:
    """Fresh string id for templates, exercises and sets."""
    return uuid.uuid4().hex


class SetDefinition(BaseModel):
    """Planned set. Reps/weight are kept as typed; parsed only for computation."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    reps: str = ""
    weight: str = ""


class ExerciseDefinition(BaseModel):
    """Exercise in a template.

    ``sets`` is a list for every template written by this service. Older stored
    templates may carry a bare set count (or nothing usable); those are
    normalized by :mod:`app.services.template_normalizer` on session start.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    name: str
    sets: list[SetDefinition] | int | None = Field(default_factory=list)

    @property
    def set_list(self) -> list[SetDefinition]:
        return self.sets if isinstance(self.sets, list) else []


class WorkoutTemplateBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    emoji: str = "💪"
    category: str | None = None
    exercises: list[ExerciseDefinition] = []


class WorkoutTemplateCreate(WorkoutTemplateBase):
    pass


class WorkoutTemplateUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    emoji: str | None = None
    category: str | None = None
    exercises: list[ExerciseDefinition] | None = None


class WorkoutTemplate(WorkoutTemplateBase):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=new_id)


class CategoriesUpdate(BaseModel):
    categories: list[str]
