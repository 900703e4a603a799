"""
Active workout session state machine.

One ``SessionStore`` owns one user's live session plus the documents the
session reads and rewrites (templates, history, personal records,
preferences). State is kept normalized (exercise order, exercises by id, sets
by id, per-exercise set order) and handed out as frozen snapshots.

Commands are synchronous and return the domain events they produced; writes
go through the repository's write-behind queue.
"""

from __future__ import annotations

import logging
from datetime import datetime

from app.core.constants import (
    MAX_WEIGHT,
    REST_TIMER_MAX_SECONDS,
    STALE_SESSION_HOURS,
    UNDO_WINDOW_SECONDS,
)
from app.core.enums import MoveDirection, SessionState, SetField
from app.core.exceptions import (
    ExerciseNotFoundError,
    IncompleteSetError,
    NoActiveSessionError,
    NoPendingDriftError,
    SessionAlreadyActiveError,
    SetNotFoundError,
    TemplateNotFoundError,
)
from app.schemas.coaching import CoachingContext, SessionContext
from app.schemas.events import (
    DomainEvent,
    ExerciseRemoved,
    PersistenceFailed,
    PRAchieved,
    SessionCancelled,
    SessionFinished,
    SessionStarted,
    SetCompleted,
    SetDeleted,
    SetRestored,
    SetUncompleted,
    TemplateUpdated,
)
from app.schemas.history import CompletionSummary, FinishResult, WorkoutHistoryRecord
from app.schemas.pr import PersonalRecord, PRCelebration
from app.schemas.preferences import WorkoutPreferences
from app.schemas.session import ActiveSession, IncompleteSet, SessionExercise, SessionSet, SessionStatus
from app.schemas.template import WorkoutTemplate, new_id
from app.services import session_context
from app.services.clock import Clock, SystemClock, now_datetime
from app.services.pr_detection import check_for_new_pr, save_pr
from app.services.progressive_overload import coaching_suggestion, rewrite_template_weights
from app.services.rest_timer import RestTimer, default_rest_seconds
from app.services.set_input import format_weight, parse_reps, parse_weight, sanitize_set_value
from app.services.storage import (
    CATEGORIES_KEY,
    HISTORY_KEY,
    RECORDS_KEY,
    SESSION_CONTEXT_KEY,
    TEMPLATES_KEY,
    WorkoutRepository,
)
from app.services.template_drift import apply_structure, detect_template_changes
from app.services.template_normalizer import normalize_template
from app.services.undo_buffer import UndoBuffer
from app.services.workout_comparison import compare_workouts, workout_totals

logger = logging.getLogger(__name__)


def title_case(name: str) -> str:
    return " ".join(word[:1].upper() + word[1:].lower() for word in name.split())


class SessionStore:
    def __init__(
        self,
        repository: WorkoutRepository,
        clock: Clock | None = None,
        *,
        undo_window_seconds: float = UNDO_WINDOW_SECONDS,
        rest_timer_max_seconds: int = REST_TIMER_MAX_SECONDS,
        stale_session_hours: float = STALE_SESSION_HOURS,
    ):
        self.repository = repository
        self.clock = clock or SystemClock()
        self.rest_timer = RestTimer(self.clock, max_seconds=rest_timer_max_seconds)
        self.undo_buffer = UndoBuffer(self.clock, window_seconds=undo_window_seconds)
        self.stale_session_hours = stale_session_hours

        self.templates: list[WorkoutTemplate] = []
        self.history: list[WorkoutHistoryRecord] = []
        self.records: list[PersonalRecord] = []
        self.categories: list[str] = []
        self.preferences = WorkoutPreferences()
        self.context: SessionContext | None = None

        self.state = SessionState.IDLE
        self._workout_id = ""
        self._template_id = ""
        self._template_name = ""
        self._emoji = ""
        self._start_time: datetime | None = None
        self._start_snapshot: WorkoutTemplate | None = None
        self._session_prs: list[PRCelebration] = []

        self._exercise_order: list[str] = []
        self._exercise_names: dict[str, str] = {}
        self._sets: dict[str, SessionSet] = {}
        self._set_order: dict[str, list[str]] = {}

        self._pending_drift: list[str] = []
        self._drift_template_id = ""
        self._drift_record: WorkoutHistoryRecord | None = None

    async def load(self) -> None:
        """Hydrate documents from the repository."""
        self.templates = await self.repository.load_templates()
        self.history = await self.repository.load_history()
        self.records = await self.repository.load_records()
        self.categories = await self.repository.load_categories()
        self.preferences = await self.repository.load_preferences()
        context = await self.repository.load_session_context()
        if context is not None and session_context.is_stale(
            context, now_datetime(self.clock), self.stale_session_hours
        ):
            logger.info("Discarding stale session context for %s", self.repository.user_id)
            context = None
            self.repository.queue(SESSION_CONTEXT_KEY, None)
        self.context = context
        logger.debug(
            "Loaded %d templates, %d workouts, %d records for %s",
            len(self.templates),
            len(self.history),
            len(self.records),
            self.repository.user_id,
        )

    async def flush(self) -> None:
        await self.repository.flush()

    @property
    def is_active(self) -> bool:
        return self.state == SessionState.ACTIVE

    @property
    def last_error(self) -> str | None:
        return self.repository.writer.last_error

    def persistence_failures(self) -> list[PersistenceFailed]:
        return self.repository.writer.take_failures()

    async def update_preferences(self, preferences: WorkoutPreferences) -> WorkoutPreferences:
        self.preferences = preferences
        await self.repository.save_preferences(preferences)
        return preferences

    # ── Templates and categories ────────────────────────────────────────

    def get_template(self, template_id: str) -> WorkoutTemplate:
        for template in self.templates:
            if template.id == template_id:
                return template
        raise TemplateNotFoundError(template_id)

    def save_template(self, template: WorkoutTemplate) -> WorkoutTemplate:
        """Insert or replace by id; an unseen category is added to the category list."""
        for index, existing in enumerate(self.templates):
            if existing.id == template.id:
                self.templates[index] = template
                break
        else:
            self.templates.append(template)
        self.repository.queue(TEMPLATES_KEY, self.templates)
        if template.category and template.category not in self.categories:
            self.set_categories([*self.categories, template.category])
        return template

    def delete_template(self, template_id: str) -> None:
        self.get_template(template_id)
        self.templates = [t for t in self.templates if t.id != template_id]
        self.repository.queue(TEMPLATES_KEY, self.templates)

    def set_categories(self, categories: list[str]) -> list[str]:
        cleaned: list[str] = []
        for category in categories:
            category = category.strip()
            if category and category not in cleaned:
                cleaned.append(category)
        self.categories = cleaned
        self.repository.queue(CATEGORIES_KEY, self.categories)
        return self.categories

    # ── Session lifecycle ───────────────────────────────────────────────

    def _require_active(self) -> None:
        if self.state != SessionState.ACTIVE:
            raise NoActiveSessionError()

    def _require_exercise(self, exercise_id: str) -> list[str]:
        self._require_active()
        order = self._set_order.get(exercise_id)
        if order is None:
            raise ExerciseNotFoundError(exercise_id)
        return order

    def _require_set(self, exercise_id: str, set_id: str) -> SessionSet:
        order = self._require_exercise(exercise_id)
        if set_id not in order:
            raise SetNotFoundError(set_id)
        return self._sets[set_id]

    def _replace_set(self, updated: SessionSet) -> SessionSet:
        self._sets[updated.id] = updated
        return updated

    def _unique_id(self, candidate: str, taken: set[str]) -> str:
        if not candidate or candidate in taken:
            candidate = new_id()
        taken.add(candidate)
        return candidate

    def _last_performed(self, exercise_name: str) -> SessionExercise | None:
        for workout in self.history:
            for exercise in workout.exercises:
                if exercise.name == exercise_name:
                    return exercise
        return None

    def start_session(self, template: WorkoutTemplate) -> list[DomainEvent]:
        if self.state == SessionState.ACTIVE:
            raise SessionAlreadyActiveError()
        if self.state == SessionState.DRIFT_CHECK:
            logger.info("Dropping pending template decision for %s", self._drift_template_id)
            self._clear_drift()

        template, changed = normalize_template(template)
        if changed:
            logger.info("Normalized legacy template %s", template.id)
            if any(t.id == template.id for t in self.templates):
                self.save_template(template)
        self._start_snapshot = template

        self._exercise_order = []
        self._exercise_names = {}
        self._sets = {}
        self._set_order = {}
        exercise_ids: set[str] = set()
        set_ids: set[str] = set()
        carry_weight = self.preferences.enable_progressive_overload
        for exercise in template.exercises:
            exercise_id = self._unique_id(exercise.id, exercise_ids)
            previous = self._last_performed(exercise.name)
            order: list[str] = []
            for index, planned in enumerate(exercise.set_list):
                historical = previous.sets[index] if previous and index < len(previous.sets) else None
                reps = historical.reps if historical and historical.reps else planned.reps
                weight = planned.weight
                if not weight and carry_weight and historical is not None:
                    weight = historical.weight
                set_id = self._unique_id(planned.id, set_ids)
                self._sets[set_id] = SessionSet(id=set_id, reps=reps, weight=weight)
                order.append(set_id)
            self._exercise_order.append(exercise_id)
            self._exercise_names[exercise_id] = exercise.name
            self._set_order[exercise_id] = order

        self._workout_id = new_id()
        self._template_id = template.id
        self._template_name = template.name
        self._emoji = template.emoji
        self._start_time = now_datetime(self.clock)
        self._session_prs = []
        self.rest_timer.skip()
        self.undo_buffer.clear()
        self.context = session_context.start_context(
            self._workout_id, template.name, template.emoji, self._start_time
        )
        self.repository.queue(SESSION_CONTEXT_KEY, self.context)
        self.state = SessionState.ACTIVE
        logger.info("Started session %s from template %s", self._workout_id, template.id)
        return [SessionStarted(template_id=template.id, template_name=template.name)]

    def cancel_session(self) -> list[DomainEvent]:
        self._require_active()
        template_id = self._template_id
        kept = [r for r in self.records if r.workout_id != self._workout_id]
        if len(kept) != len(self.records):
            self.records = kept
            self.repository.queue(RECORDS_KEY, self.records)
        self._reset_session()
        logger.info("Cancelled session from template %s", template_id)
        return [SessionCancelled(template_id=template_id)]

    def _reset_session(self) -> None:
        self._exercise_order = []
        self._exercise_names = {}
        self._sets = {}
        self._set_order = {}
        self._start_time = None
        self._start_snapshot = None
        self._session_prs = []
        self.rest_timer.skip()
        self.undo_buffer.clear()
        self.context = None
        self.repository.queue(SESSION_CONTEXT_KEY, None)
        self.state = SessionState.IDLE

    def _clear_drift(self) -> None:
        self._pending_drift = []
        self._drift_template_id = ""
        self._drift_record = None
        self.state = SessionState.IDLE

    # ── Set editing ─────────────────────────────────────────────────────

    def update_set(self, exercise_id: str, set_id: str, field: SetField, value: str) -> SessionSet:
        current = self._require_set(exercise_id, set_id)
        sanitized = sanitize_set_value(field, value)
        return self._replace_set(current.model_copy(update={field.value: sanitized}))

    def adjust_weight(self, exercise_id: str, set_id: str, delta: float) -> SessionSet:
        current = self._require_set(exercise_id, set_id)
        weight = min(MAX_WEIGHT, max(0.0, parse_weight(current.weight) + delta))
        return self._replace_set(current.model_copy(update={"weight": format_weight(weight)}))

    def copy_from_previous(self, exercise_id: str, set_id: str) -> SessionSet:
        current = self._require_set(exercise_id, set_id)
        order = self._set_order[exercise_id]
        index = order.index(set_id)
        if index == 0:
            return current
        previous = self._sets[order[index - 1]]
        return self._replace_set(current.model_copy(update={"reps": previous.reps, "weight": previous.weight}))

    def autofill_from_last_filled(self, exercise_id: str, set_id: str, field: SetField) -> SessionSet:
        """Fill an empty field from the nearest earlier set that has both values."""
        current = self._require_set(exercise_id, set_id)
        if getattr(current, field.value):
            return current
        order = self._set_order[exercise_id]
        for earlier_id in reversed(order[: order.index(set_id)]):
            earlier = self._sets[earlier_id]
            if earlier.is_filled:
                return self._replace_set(current.model_copy(update={field.value: getattr(earlier, field.value)}))
        return current

    def set_note(self, exercise_id: str, set_id: str, text: str) -> SessionSet:
        current = self._require_set(exercise_id, set_id)
        note = text.strip() or None
        return self._replace_set(current.model_copy(update={"notes": note}))

    def rename_exercise(self, exercise_id: str, name: str) -> SessionExercise:
        self._require_exercise(exercise_id)
        if name.strip():
            self._exercise_names[exercise_id] = name.strip()
        return self._exercise_snapshot(exercise_id)

    # ── Completion ──────────────────────────────────────────────────────

    def _check_pr(self, exercise_name: str, done: SessionSet) -> PRAchieved | None:
        result = check_for_new_pr(
            self.history,
            self.records,
            exercise_name,
            parse_weight(done.weight),
            parse_reps(done.reps),
            self._workout_id,
            now_datetime(self.clock).date().isoformat(),
        )
        if not result.is_new_pr:
            return None
        self.records = save_pr(self.records, result.record)
        self.repository.queue(RECORDS_KEY, self.records)
        self._session_prs.append(result.celebration)
        logger.info("New PR for %s: %sx%s", exercise_name, done.weight, done.reps)
        return PRAchieved(record=result.record, celebration=result.celebration)

    def toggle_set_complete(self, exercise_id: str, set_id: str) -> list[DomainEvent]:
        current = self._require_set(exercise_id, set_id)
        if current.completed:
            self._replace_set(current.model_copy(update={"completed": False}))
            return [SetUncompleted(exercise_id=exercise_id, set_id=set_id)]
        if not current.is_filled:
            raise IncompleteSetError(set_id)

        done = self._replace_set(current.model_copy(update={"completed": True}))
        name = self._exercise_names[exercise_id]
        events: list[DomainEvent] = [
            SetCompleted(
                exercise_id=exercise_id,
                exercise_name=name,
                set_id=set_id,
                weight=done.weight,
                reps=done.reps,
            )
        ]
        pr = self._check_pr(name, done)
        if pr is not None:
            events.append(pr)
        if self.preferences.rest_timer_enabled:
            duration = default_rest_seconds(name, self.preferences.custom_default_rest_seconds)
            events.append(self.rest_timer.start(duration, name))
        suggestion = coaching_suggestion(self._exercise_snapshot(exercise_id), set_id, self.preferences)
        if suggestion is not None:
            events.append(suggestion)

        if self.context is not None:
            self.context = session_context.record_completed_set(
                self.context, name, done.weight, done.reps, now_datetime(self.clock)
            )
            self.repository.queue(SESSION_CONTEXT_KEY, self.context)
        return events

    def incomplete_filled_sets(self) -> list[IncompleteSet]:
        self._require_active()
        pending = []
        for exercise_id in self._exercise_order:
            for number, set_id in enumerate(self._set_order[exercise_id], start=1):
                s = self._sets[set_id]
                if not s.completed and s.is_filled:
                    pending.append(IncompleteSet(exercise_name=self._exercise_names[exercise_id], set_number=number))
        return pending

    def force_complete_filled_sets(self) -> list[DomainEvent]:
        self._require_active()
        events: list[DomainEvent] = []
        for exercise_id in self._exercise_order:
            for set_id in self._set_order[exercise_id]:
                s = self._sets[set_id]
                if s.completed or not s.is_filled:
                    continue
                done = self._replace_set(s.model_copy(update={"completed": True}))
                pr = self._check_pr(self._exercise_names[exercise_id], done)
                if pr is not None:
                    events.append(pr)
        return events

    # ── Structure ───────────────────────────────────────────────────────

    def add_exercise(self, name: str) -> SessionExercise:
        self._require_active()
        exercise_id = new_id()
        set_id = new_id()
        self._exercise_order.append(exercise_id)
        self._exercise_names[exercise_id] = title_case(name)
        self._sets[set_id] = SessionSet(id=set_id)
        self._set_order[exercise_id] = [set_id]
        return self._exercise_snapshot(exercise_id)

    def add_set(self, exercise_id: str) -> SessionSet:
        order = self._require_exercise(exercise_id)
        last = self._sets[order[-1]] if order else None
        added = SessionSet(
            id=new_id(),
            reps=last.reps if last else "",
            weight=last.weight if last else "",
        )
        self._sets[added.id] = added
        order.append(added.id)
        return added

    def remove_exercise(self, exercise_id: str) -> list[DomainEvent]:
        order = self._require_exercise(exercise_id)
        for set_id in order:
            self._sets.pop(set_id, None)
        del self._set_order[exercise_id]
        self._exercise_order.remove(exercise_id)
        name = self._exercise_names.pop(exercise_id)
        return [ExerciseRemoved(exercise_id=exercise_id, exercise_name=name)]

    def remove_set(self, exercise_id: str, set_id: str) -> list[DomainEvent]:
        """Delete immediately into the undo buffer; removing the last set removes the exercise, with no undo."""
        removed = self._require_set(exercise_id, set_id)
        order = self._set_order[exercise_id]
        index = order.index(set_id)
        order.pop(index)
        del self._sets[set_id]
        events: list[DomainEvent] = [SetDeleted(exercise_id=exercise_id, set=removed, original_index=index)]
        if not order:
            # The exercise goes too; an earlier deletion stays undoable
            events.extend(self.remove_exercise(exercise_id))
        else:
            self.undo_buffer.push(exercise_id, removed, index)
        return events

    delete_set = remove_set

    def undo(self) -> SetRestored | None:
        """Restore the last deleted set if its undo window is still open."""
        entry = self.undo_buffer.pop()
        if entry is None or not self.is_active:
            return None
        order = self._set_order.get(entry.exercise_id)
        if order is None:
            return None
        index = min(entry.original_index, len(order))
        order.insert(index, entry.set.id)
        self._sets[entry.set.id] = entry.set
        return SetRestored(exercise_id=entry.exercise_id, set_id=entry.set.id, index=index)

    def move_exercise(self, exercise_id: str, direction: MoveDirection) -> list[str]:
        self._require_exercise(exercise_id)
        index = self._exercise_order.index(exercise_id)
        target = index - 1 if direction == MoveDirection.UP else index + 1
        if 0 <= target < len(self._exercise_order):
            order = self._exercise_order
            order[index], order[target] = order[target], order[index]
        return list(self._exercise_order)

    # ── Finish and template drift ───────────────────────────────────────

    def finish_session(self, now: datetime | None = None) -> FinishResult:
        self._require_active()
        finished_at = now or now_datetime(self.clock)
        duration = max(0, int((finished_at - self._start_time).total_seconds() // 60))
        session = self.snapshot()
        record = WorkoutHistoryRecord(
            id=self._workout_id,
            template_id=self._template_id,
            template_name=self._template_name,
            emoji=self._emoji,
            date=finished_at.date().isoformat(),
            duration=duration,
            exercises=session.exercises,
        )
        comparison = compare_workouts(record, self.history, self.preferences.unit_system)
        self.history = [record, *self.history]
        self.repository.queue(HISTORY_KEY, self.history)

        drift: list[str] = []
        events: list[DomainEvent] = []
        try:
            template = self.get_template(self._template_id)
        except TemplateNotFoundError:
            logger.info("Template %s is gone; skipping template rewrite", self._template_id)
            template = None
        if template is not None:
            if self._start_snapshot is not None:
                drift = detect_template_changes(self._start_snapshot, record)
            rewritten = rewrite_template_weights(
                template,
                record,
                self.preferences.progressive_overload_config,
                self.preferences.primary_goal,
            )
            self.save_template(rewritten)
            events.append(TemplateUpdated(template_id=rewritten.id, structural=False))

        total_volume, total_sets = workout_totals(record)
        summary = CompletionSummary(
            workout_name=self._template_name,
            emoji=self._emoji,
            duration=duration,
            total_sets=total_sets,
            total_volume=round(total_volume),
            prs=list(self._session_prs),
            comparison_message=comparison.message or None,
        )
        events.append(
            SessionFinished(
                workout_id=record.id,
                template_id=record.template_id,
                total_sets=total_sets,
                total_volume=round(total_volume),
                template_changes=drift,
            )
        )

        self._reset_session()
        if drift:
            self._pending_drift = drift
            self._drift_template_id = record.template_id
            self._drift_record = record
            self.state = SessionState.DRIFT_CHECK
        logger.info(
            "Finished session %s: %d sets, %d min, %d template changes",
            record.id,
            total_sets,
            duration,
            len(drift),
        )
        return FinishResult(record=record, summary=summary, comparison=comparison, drift=drift, events=events)

    @property
    def pending_template_changes(self) -> list[str]:
        return list(self._pending_drift)

    def resolve_template_drift(self, accept: bool) -> list[DomainEvent]:
        if self.state != SessionState.DRIFT_CHECK or self._drift_record is None:
            raise NoPendingDriftError()
        template_id = self._drift_template_id
        record = self._drift_record
        self._clear_drift()
        if not accept:
            return []
        try:
            template = self.get_template(template_id)
        except TemplateNotFoundError:
            logger.info("Template %s was deleted before the drift decision", template_id)
            return []
        self.save_template(apply_structure(template, record))
        return [TemplateUpdated(template_id=template_id, structural=True)]

    # ── Snapshots ───────────────────────────────────────────────────────

    def coaching_context(self, exercise_id: str, set_id: str) -> CoachingContext:
        """Read-only context for an external coaching text generator."""
        current = self._require_set(exercise_id, set_id)
        return session_context.build_coaching_context(
            self._exercise_names[exercise_id],
            current.weight,
            current.reps,
            self.context,
            self.history,
            self.preferences.primary_goal,
        )

    def _exercise_snapshot(self, exercise_id: str) -> SessionExercise:
        return SessionExercise(
            id=exercise_id,
            name=self._exercise_names[exercise_id],
            sets=tuple(self._sets[set_id] for set_id in self._set_order[exercise_id]),
        )

    def snapshot(self) -> ActiveSession:
        self._require_active()
        return ActiveSession(
            template_id=self._template_id,
            template_name=self._template_name,
            emoji=self._emoji,
            start_time=self._start_time,
            exercises=tuple(self._exercise_snapshot(exercise_id) for exercise_id in self._exercise_order),
        )

    def status(self) -> SessionStatus:
        return SessionStatus(
            state=self.state,
            session=self.snapshot() if self.is_active else None,
            pending_template_changes=self.pending_template_changes,
        )
