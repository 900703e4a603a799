"""Active workout session - every command runs on the caller's engine under its lock."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.deps import get_dispatcher, get_engine
from app.core.enums import SetField
from app.schemas.coaching import CoachingContext
from app.schemas.events import CommandResult, DomainEvent
from app.schemas.history import FinishResult
from app.schemas.session import (
    AddExerciseRequest,
    AdjustWeightRequest,
    FinishSessionRequest,
    IncompleteSet,
    MoveExerciseRequest,
    RenameExerciseRequest,
    SessionStatus,
    SetNoteRequest,
    StartSessionRequest,
    TemplateDriftDecision,
    UpdateSetRequest,
)
from app.services.notifications import EventDispatcher
from app.services.session_context import render_coaching_prompt
from app.services.session_store import SessionStore

router = APIRouter()


def _result(
    engine: SessionStore,
    dispatcher: EventDispatcher,
    events: list[DomainEvent] | None = None,
) -> CommandResult:
    emitted = [*(events or []), *engine.persistence_failures()]
    dispatcher.dispatch(emitted)
    return CommandResult(status=engine.status(), events=emitted)


@router.get("", response_model=SessionStatus)
async def get_session(engine: SessionStore = Depends(get_engine)):
    """Current state, the live session (if any) and any pending template decision."""
    return engine.status()


@router.post("/start", response_model=CommandResult, status_code=201)
async def start_session(
    payload: StartSessionRequest,
    engine: SessionStore = Depends(get_engine),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    template = engine.get_template(payload.template_id)
    return _result(engine, dispatcher, engine.start_session(template))


@router.post("/cancel", response_model=CommandResult)
async def cancel_session(
    engine: SessionStore = Depends(get_engine),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    return _result(engine, dispatcher, engine.cancel_session())


@router.post("/exercises", response_model=CommandResult, status_code=201)
async def add_exercise(
    payload: AddExerciseRequest,
    engine: SessionStore = Depends(get_engine),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    """Append an exercise (name title-cased) with one blank set."""
    engine.add_exercise(payload.name)
    return _result(engine, dispatcher)


@router.patch("/exercises/{exercise_id}", response_model=CommandResult)
async def rename_exercise(
    exercise_id: str,
    payload: RenameExerciseRequest,
    engine: SessionStore = Depends(get_engine),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    engine.rename_exercise(exercise_id, payload.name)
    return _result(engine, dispatcher)


@router.delete("/exercises/{exercise_id}", response_model=CommandResult)
async def remove_exercise(
    exercise_id: str,
    engine: SessionStore = Depends(get_engine),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    return _result(engine, dispatcher, engine.remove_exercise(exercise_id))


@router.post("/exercises/{exercise_id}/move", response_model=CommandResult)
async def move_exercise(
    exercise_id: str,
    payload: MoveExerciseRequest,
    engine: SessionStore = Depends(get_engine),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    engine.move_exercise(exercise_id, payload.direction)
    return _result(engine, dispatcher)


@router.post("/exercises/{exercise_id}/sets", response_model=CommandResult, status_code=201)
async def add_set(
    exercise_id: str,
    engine: SessionStore = Depends(get_engine),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    """New set pre-filled from the exercise's last set."""
    engine.add_set(exercise_id)
    return _result(engine, dispatcher)


@router.patch("/exercises/{exercise_id}/sets/{set_id}", response_model=CommandResult)
async def update_set(
    exercise_id: str,
    set_id: str,
    payload: UpdateSetRequest,
    engine: SessionStore = Depends(get_engine),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    engine.update_set(exercise_id, set_id, payload.field, payload.value)
    return _result(engine, dispatcher)


@router.post("/exercises/{exercise_id}/sets/{set_id}/adjust-weight", response_model=CommandResult)
async def adjust_weight(
    exercise_id: str,
    set_id: str,
    payload: AdjustWeightRequest,
    engine: SessionStore = Depends(get_engine),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    engine.adjust_weight(exercise_id, set_id, payload.delta)
    return _result(engine, dispatcher)


@router.post("/exercises/{exercise_id}/sets/{set_id}/copy-previous", response_model=CommandResult)
async def copy_from_previous(
    exercise_id: str,
    set_id: str,
    engine: SessionStore = Depends(get_engine),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    engine.copy_from_previous(exercise_id, set_id)
    return _result(engine, dispatcher)


@router.post("/exercises/{exercise_id}/sets/{set_id}/autofill", response_model=CommandResult)
async def autofill_from_last_filled(
    exercise_id: str,
    set_id: str,
    field: SetField,
    engine: SessionStore = Depends(get_engine),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    engine.autofill_from_last_filled(exercise_id, set_id, field)
    return _result(engine, dispatcher)


@router.put("/exercises/{exercise_id}/sets/{set_id}/note", response_model=CommandResult)
async def set_note(
    exercise_id: str,
    set_id: str,
    payload: SetNoteRequest,
    engine: SessionStore = Depends(get_engine),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    engine.set_note(exercise_id, set_id, payload.text)
    return _result(engine, dispatcher)


@router.post("/exercises/{exercise_id}/sets/{set_id}/toggle", response_model=CommandResult)
async def toggle_set_complete(
    exercise_id: str,
    set_id: str,
    engine: SessionStore = Depends(get_engine),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    """Check or uncheck a set. Checking may also report a PR, arm the rest timer and suggest a weight."""
    return _result(engine, dispatcher, engine.toggle_set_complete(exercise_id, set_id))


@router.delete("/exercises/{exercise_id}/sets/{set_id}", response_model=CommandResult)
async def delete_set(
    exercise_id: str,
    set_id: str,
    engine: SessionStore = Depends(get_engine),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    """Delete now; the set can be restored through /undo for a few seconds."""
    return _result(engine, dispatcher, engine.delete_set(exercise_id, set_id))


@router.get("/exercises/{exercise_id}/sets/{set_id}/coaching")
async def coaching_context(
    exercise_id: str,
    set_id: str,
    engine: SessionStore = Depends(get_engine),
):
    context: CoachingContext = engine.coaching_context(exercise_id, set_id)
    return {
        "context": context,
        "prompt": render_coaching_prompt(context, engine.preferences.unit_system.value),
    }


@router.post("/undo", response_model=CommandResult)
async def undo(
    engine: SessionStore = Depends(get_engine),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    restored = engine.undo()
    return _result(engine, dispatcher, [restored] if restored else [])


@router.get("/incomplete-sets", response_model=list[IncompleteSet])
async def incomplete_sets(engine: SessionStore = Depends(get_engine)):
    """Sets with reps and weight entered that were never checked off."""
    return engine.incomplete_filled_sets()


@router.post("/finish", response_model=FinishResult)
async def finish_session(
    payload: FinishSessionRequest | None = None,
    engine: SessionStore = Depends(get_engine),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    forced: list[DomainEvent] = []
    if payload is not None and payload.force_complete:
        forced = engine.force_complete_filled_sets()
    result = engine.finish_session()
    events = [*forced, *result.events, *engine.persistence_failures()]
    dispatcher.dispatch(events)
    return result.model_copy(update={"events": events})


@router.post("/template-drift", response_model=CommandResult)
async def resolve_template_drift(
    payload: TemplateDriftDecision,
    engine: SessionStore = Depends(get_engine),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    """Accept or reject copying the finished session's structure into its template."""
    return _result(engine, dispatcher, engine.resolve_template_drift(payload.accept))
