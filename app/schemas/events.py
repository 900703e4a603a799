"""Domain events returned by session-engine commands.

Commands never call notification, speech or sync integrations directly; they
return a list of these events and the caller dispatches them. ``type`` is the
discriminator so a list round-trips through JSON unchanged.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from app.core.enums import CoachingScope
from app.schemas.pr import PersonalRecord, PRCelebration
from app.schemas.session import SessionSet, SessionStatus


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)


class SessionStarted(_Event):
    type: Literal["session_started"] = "session_started"
    template_id: str
    template_name: str


class SetCompleted(_Event):
    type: Literal["set_completed"] = "set_completed"
    exercise_id: str
    exercise_name: str
    set_id: str
    weight: str
    reps: str


class SetUncompleted(_Event):
    type: Literal["set_uncompleted"] = "set_uncompleted"
    exercise_id: str
    set_id: str


class PRAchieved(_Event):
    type: Literal["pr_achieved"] = "pr_achieved"
    record: PersonalRecord
    celebration: PRCelebration


class RestTimerArmed(_Event):
    type: Literal["rest_timer_armed"] = "rest_timer_armed"
    exercise_name: str
    duration_seconds: int
    end_timestamp: int


class RestComplete(_Event):
    type: Literal["rest_complete"] = "rest_complete"
    exercise_name: str


class CoachingSuggested(_Event):
    type: Literal["coaching_suggested"] = "coaching_suggested"
    exercise_name: str
    current_weight: float
    suggested_weight: float
    scope: CoachingScope
    message: str


class SetDeleted(_Event):
    type: Literal["set_deleted"] = "set_deleted"
    exercise_id: str
    set: SessionSet
    original_index: int


class ExerciseRemoved(_Event):
    type: Literal["exercise_removed"] = "exercise_removed"
    exercise_id: str
    exercise_name: str


class SetRestored(_Event):
    type: Literal["set_restored"] = "set_restored"
    exercise_id: str
    set_id: str
    index: int


class SessionFinished(_Event):
    type: Literal["session_finished"] = "session_finished"
    workout_id: str
    template_id: str
    total_sets: int
    total_volume: int
    template_changes: list[str] = []


class SessionCancelled(_Event):
    type: Literal["session_cancelled"] = "session_cancelled"
    template_id: str


class TemplateUpdated(_Event):
    type: Literal["template_updated"] = "template_updated"
    template_id: str
    structural: bool


class PersistenceFailed(_Event):
    type: Literal["persistence_failed"] = "persistence_failed"
    key: str
    error: str


DomainEvent = Annotated[
    Union[
        SessionStarted,
        SetCompleted,
        SetUncompleted,
        PRAchieved,
        RestTimerArmed,
        RestComplete,
        CoachingSuggested,
        SetDeleted,
        ExerciseRemoved,
        SetRestored,
        SessionFinished,
        SessionCancelled,
        TemplateUpdated,
        PersistenceFailed,
    ],
    Field(discriminator="type"),
]


class CommandResult(BaseModel):
    """Response envelope for session commands: the state after the command and what it emitted."""

    status: SessionStatus
    events: list[DomainEvent] = []
