"""Active session snapshots and session command payloads."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.core.enums import MoveDirection, SessionState, SetField


class SessionSet(BaseModel):
    """One live set. Immutable: the store hands out copies, never its own state."""

    model_config = ConfigDict(frozen=True)

    id: str
    reps: str = ""
    weight: str = ""
    completed: bool = False
    notes: str | None = None

    @property
    def is_filled(self) -> bool:
        return bool(self.reps.strip()) and bool(self.weight.strip())


class SessionExercise(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    sets: tuple[SessionSet, ...] = ()


class ActiveSession(BaseModel):
    """Read-only view of the single active session."""

    model_config = ConfigDict(frozen=True)

    template_id: str
    template_name: str
    emoji: str
    start_time: datetime
    exercises: tuple[SessionExercise, ...] = ()


class SessionStatus(BaseModel):
    state: SessionState
    session: ActiveSession | None = None
    pending_template_changes: list[str] = []


class IncompleteSet(BaseModel):
    """Uncompleted set that already has reps and weight entered."""

    exercise_name: str
    set_number: int


# ── Command payloads ─────────────────────────────────────────────────────


class StartSessionRequest(BaseModel):
    template_id: str


class UpdateSetRequest(BaseModel):
    field: SetField
    value: str = ""


class AdjustWeightRequest(BaseModel):
    delta: float


class SetNoteRequest(BaseModel):
    text: str = ""


class AddExerciseRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class RenameExerciseRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class MoveExerciseRequest(BaseModel):
    direction: MoveDirection


class FinishSessionRequest(BaseModel):
    """``force_complete`` marks filled-but-unchecked sets as done before finishing."""

    force_complete: bool = False


class TemplateDriftDecision(BaseModel):
    accept: bool
