"""Rest timer schemas."""

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.events import DomainEvent


class RestTimerState(BaseModel):
    model_config = ConfigDict(frozen=True)

    active: bool = False
    end_timestamp: int | None = None  # epoch milliseconds
    duration_seconds: int = 0
    exercise_name: str = ""
    remaining_seconds: int = 0


class StartRestRequest(BaseModel):
    exercise_name: str = ""
    duration_seconds: int | None = Field(None, ge=0, le=600)


class AdjustRestRequest(BaseModel):
    delta_seconds: int = Field(..., ge=-600, le=600)


class RestTimerResponse(BaseModel):
    state: RestTimerState
    events: list[DomainEvent] = []


class DefaultRest(BaseModel):
    exercise_name: str
    seconds: int
