"""Session store: lifecycle, set editing, completion side effects, undo, finish and drift."""

from datetime import timedelta

import pytest

from app.core.enums import MoveDirection, SessionState, SetField
from app.core.exceptions import (
    ExerciseNotFoundError,
    IncompleteSetError,
    InvalidSetValueError,
    NoActiveSessionError,
    NoPendingDriftError,
    SessionAlreadyActiveError,
    SetNotFoundError,
)
from app.schemas.events import (
    CoachingSuggested,
    ExerciseRemoved,
    PRAchieved,
    RestTimerArmed,
    SessionCancelled,
    SessionFinished,
    SessionStarted,
    SetCompleted,
    SetDeleted,
    SetRestored,
    SetUncompleted,
    TemplateUpdated,
)
from app.schemas.template import ExerciseDefinition, WorkoutTemplate
from app.services.clock import now_datetime
from app.services.storage import HISTORY_KEY, TEMPLATES_KEY
from tests.factories import make_record, make_template


def _start(store, template=None):
    store.start_session(template or store.templates[0])
    return store.snapshot()


def _fill(store, exercise_id, set_id, reps="8", weight="185"):
    store.update_set(exercise_id, set_id, SetField.REPS, reps)
    store.update_set(exercise_id, set_id, SetField.WEIGHT, weight)


# ── Lifecycle ────────────────────────────────────────────────────────────


def test_start_session(store):
    events = store.start_session(store.templates[0])

    assert events == [SessionStarted(template_id="tpl-push", template_name="Push Day")]
    assert store.state == SessionState.ACTIVE
    session = store.snapshot()
    assert session.template_name == "Push Day"
    bench = session.exercises[0]
    assert bench.name == "Bench Press"
    assert [(s.reps, s.weight, s.completed) for s in bench.sets] == [("", "185", False)] * 3


def test_start_twice_raises(store):
    _start(store)
    with pytest.raises(SessionAlreadyActiveError):
        store.start_session(store.templates[0])


def test_commands_need_an_active_session(store):
    with pytest.raises(NoActiveSessionError):
        store.add_exercise("Curl")
    with pytest.raises(NoActiveSessionError):
        store.snapshot()
    with pytest.raises(NoActiveSessionError):
        store.finish_session()


def test_unknown_ids(store):
    session = _start(store)
    with pytest.raises(ExerciseNotFoundError):
        store.add_set("nope")
    with pytest.raises(SetNotFoundError):
        store.toggle_set_complete(session.exercises[0].id, "nope")


def test_reps_autofill_from_history_and_weight_from_template(store):
    store.history = [
        make_record({"Bench Press": [("10", "175", True), ("9", "175", True)]}, "w2", date="2023-11-12"),
        make_record({"Bench Press": [("6", "165", True)] * 3}, "w1", date="2023-11-01"),
    ]
    session = _start(store)
    assert [(s.reps, s.weight) for s in session.exercises[0].sets] == [("10", "185"), ("9", "185"), ("", "185")]


def test_historical_weight_only_with_progressive_overload(store):
    store.templates = [make_template({"Bench Press": [("", "")] * 2})]
    store.history = [make_record({"Bench Press": [("10", "175", True)] * 2})]

    session = _start(store)
    assert [s.weight for s in session.exercises[0].sets] == ["", ""]
    store.cancel_session()

    store.preferences = store.preferences.model_copy(update={"enable_progressive_overload": True})
    session = _start(store)
    assert [s.weight for s in session.exercises[0].sets] == ["175", "175"]


def test_legacy_template_is_normalized_and_persisted(store, repository):
    legacy = WorkoutTemplate(id="legacy", name="Old", exercises=[ExerciseDefinition(name="Squat", sets=2)])
    store.templates.append(legacy)

    session = _start(store, legacy)

    assert len(session.exercises[0].sets) == 2
    saved = store.get_template("legacy")
    assert isinstance(saved.exercises[0].sets, list)
    assert TEMPLATES_KEY in repository.writer.pending_keys


def test_cancel_discards_everything(store):
    session = _start(store)
    bench = session.exercises[0]
    _fill(store, bench.id, bench.sets[0].id)
    store.toggle_set_complete(bench.id, bench.sets[0].id)
    store.delete_set(bench.id, bench.sets[1].id)

    assert store.cancel_session() == [SessionCancelled(template_id="tpl-push")]
    assert store.state == SessionState.IDLE
    assert not store.rest_timer.active
    assert store.undo() is None
    assert store.history == []
    assert store.templates[0] == make_template()


# ── Editing ──────────────────────────────────────────────────────────────


def test_update_set_sanitizes(store):
    session = _start(store)
    bench = session.exercises[0]
    updated = store.update_set(bench.id, bench.sets[0].id, SetField.WEIGHT, "187.5 lbs")
    assert updated.weight == "187.5"


def test_over_cap_value_is_rejected_and_unchanged(store):
    session = _start(store)
    bench = session.exercises[0]
    with pytest.raises(InvalidSetValueError):
        store.update_set(bench.id, bench.sets[0].id, SetField.WEIGHT, "12000")
    assert store.snapshot().exercises[0].sets[0].weight == "185"


def test_adjust_weight_clamps(store):
    session = _start(store)
    bench = session.exercises[0]
    set_id = bench.sets[0].id
    assert store.adjust_weight(bench.id, set_id, 5).weight == "190"
    assert store.adjust_weight(bench.id, set_id, -500).weight == "0"
    store.update_set(bench.id, set_id, SetField.WEIGHT, "9990")
    assert store.adjust_weight(bench.id, set_id, 45).weight == "9999"


def test_copy_and_autofill(store):
    session = _start(store)
    bench = session.exercises[0]
    s0, s1, s2 = (s.id for s in bench.sets)
    _fill(store, bench.id, s0, "8", "190")

    assert store.copy_from_previous(bench.id, s0) == store.snapshot().exercises[0].sets[0]
    copied = store.copy_from_previous(bench.id, s1)
    assert (copied.reps, copied.weight) == ("8", "190")

    filled = store.autofill_from_last_filled(bench.id, s2, SetField.REPS)
    assert filled.reps == "8"
    # weight already present, left alone
    assert store.autofill_from_last_filled(bench.id, s2, SetField.WEIGHT).weight == "185"


def test_notes_and_rename(store):
    session = _start(store)
    bench = session.exercises[0]
    set_id = bench.sets[0].id
    assert store.set_note(bench.id, set_id, " felt heavy ").notes == "felt heavy"
    assert store.set_note(bench.id, set_id, "   ").notes is None
    assert store.rename_exercise(bench.id, "Incline Bench").name == "Incline Bench"


def test_add_exercise_title_cases_and_has_one_blank_set(store):
    _start(store)
    added = store.add_exercise("cable  FLY")
    assert added.name == "Cable Fly"
    assert len(added.sets) == 1
    assert (added.sets[0].reps, added.sets[0].weight) == ("", "")
    assert store.snapshot().exercises[-1].id == added.id


def test_add_set_copies_last_set(store):
    session = _start(store)
    bench = session.exercises[0]
    _fill(store, bench.id, bench.sets[-1].id, "6", "205")
    store.toggle_set_complete(bench.id, bench.sets[-1].id)

    added = store.add_set(bench.id)
    assert (added.reps, added.weight, added.completed) == ("6", "205", False)
    assert len(store.snapshot().exercises[0].sets) == 4


def test_move_exercise(store):
    store.templates = [make_template({"A": [("", "")], "B": [("", "")], "C": [("", "")]})]
    session = _start(store)
    a, b, c = (ex.id for ex in session.exercises)

    store.move_exercise(b, MoveDirection.UP)
    assert [ex.id for ex in store.snapshot().exercises] == [b, a, c]
    store.move_exercise(b, MoveDirection.UP)
    assert [ex.id for ex in store.snapshot().exercises] == [b, a, c]
    store.move_exercise(c, MoveDirection.DOWN)
    store.move_exercise(a, MoveDirection.DOWN)
    assert [ex.id for ex in store.snapshot().exercises] == [b, c, a]


# ── Completion ───────────────────────────────────────────────────────────


def test_completing_empty_set_raises(store):
    store.templates = [make_template({"Bench Press": [("", "")]})]
    session = _start(store)
    bench = session.exercises[0]
    with pytest.raises(IncompleteSetError):
        store.toggle_set_complete(bench.id, bench.sets[0].id)
    assert not store.snapshot().exercises[0].sets[0].completed


def test_complete_emits_pr_and_rest_timer(store, clock):
    session = _start(store)
    bench = session.exercises[0]
    set_id = bench.sets[0].id
    _fill(store, bench.id, set_id)

    events = store.toggle_set_complete(bench.id, set_id)

    assert [type(e) for e in events] == [SetCompleted, PRAchieved, RestTimerArmed]
    assert events[1].celebration.is_first_time
    assert events[2].duration_seconds == 180
    assert store.rest_timer.active
    assert store.snapshot().exercises[0].sets[0].completed


def test_same_weight_not_celebrated_twice(store):
    session = _start(store)
    bench = session.exercises[0]
    s0, s1 = bench.sets[0].id, bench.sets[1].id
    _fill(store, bench.id, s0)
    _fill(store, bench.id, s1)

    store.toggle_set_complete(bench.id, s0)
    events = store.toggle_set_complete(bench.id, s1)
    assert not any(isinstance(e, PRAchieved) for e in events)
    assert len(store.records) == 1


def test_cancelled_pr_does_not_block_later_pr(store):
    store.history = [make_record({"Bench Press": [("5", "135", True)]})]
    bench = _start(store).exercises[0]
    _fill(store, bench.id, bench.sets[0].id, reps="1", weight="200")
    assert isinstance(store.toggle_set_complete(bench.id, bench.sets[0].id)[1], PRAchieved)
    store.cancel_session()
    assert store.records == []

    bench = _start(store).exercises[0]
    _fill(store, bench.id, bench.sets[0].id, reps="5", weight="150")
    events = store.toggle_set_complete(bench.id, bench.sets[0].id)

    pr = next(e for e in events if isinstance(e, PRAchieved))
    assert pr.celebration.old_weight == 135
    assert not pr.celebration.is_first_time


def test_rest_timer_respects_preferences(store):
    store.preferences = store.preferences.model_copy(
        update={"rest_timer_enabled": False}
    )
    session = _start(store)
    bench = session.exercises[0]
    _fill(store, bench.id, bench.sets[0].id)
    events = store.toggle_set_complete(bench.id, bench.sets[0].id)
    assert not any(isinstance(e, RestTimerArmed) for e in events)

    store.preferences = store.preferences.model_copy(
        update={"rest_timer_enabled": True, "custom_default_rest_seconds": 75}
    )
    _fill(store, bench.id, bench.sets[1].id)
    events = store.toggle_set_complete(bench.id, bench.sets[1].id)
    assert events[-1] == RestTimerArmed(
        exercise_name="Bench Press",
        duration_seconds=75,
        end_timestamp=events[-1].end_timestamp,
    )


def test_uncheck_has_no_side_effects(store):
    session = _start(store)
    bench = session.exercises[0]
    set_id = bench.sets[0].id
    _fill(store, bench.id, set_id)
    store.toggle_set_complete(bench.id, set_id)
    store.rest_timer.skip()

    events = store.toggle_set_complete(bench.id, set_id)

    assert events == [SetUncompleted(exercise_id=bench.id, set_id=set_id)]
    assert not store.rest_timer.active
    assert store.context.total_sets_completed == 1


def test_coaching_on_third_matching_set(store):
    store.preferences = store.preferences.model_copy(update={"enable_progressive_overload": True})
    store.templates = [make_template({"Bench Press": [("10", "135")] * 3})]
    session = _start(store)
    bench = session.exercises[0]
    for s in bench.sets[:2]:
        events = store.toggle_set_complete(bench.id, s.id)
        assert not any(isinstance(e, CoachingSuggested) for e in events)

    events = store.toggle_set_complete(bench.id, bench.sets[2].id)
    assert isinstance(events[-1], CoachingSuggested)
    assert events[-1].suggested_weight == 140


def test_completion_tracks_session_context(store):
    session = _start(store)
    bench = session.exercises[0]
    _fill(store, bench.id, bench.sets[0].id, "10", "185")
    _fill(store, bench.id, bench.sets[1].id, "7", "185")
    store.toggle_set_complete(bench.id, bench.sets[0].id)
    store.toggle_set_complete(bench.id, bench.sets[1].id)

    context = store.context
    assert context.total_sets_completed == 2
    assert context.total_volume == 185 * 17
    assert context.last_exercise_name == "Bench Press"
    assert context.exercise_performance["Bench Press"].performance_trend == "declining"


def test_incomplete_and_force_complete(store):
    session = _start(store)
    bench = session.exercises[0]
    _fill(store, bench.id, bench.sets[0].id)
    _fill(store, bench.id, bench.sets[2].id, "5", "205")

    pending = store.incomplete_filled_sets()
    assert [(p.exercise_name, p.set_number) for p in pending] == [("Bench Press", 1), ("Bench Press", 3)]

    events = store.force_complete_filled_sets()
    assert [e.celebration.new_weight for e in events] == [185, 205]
    assert store.incomplete_filled_sets() == []
    assert [s.completed for s in store.snapshot().exercises[0].sets] == [True, False, True]


# ── Delete and undo ──────────────────────────────────────────────────────


def _four_set_session(store):
    store.templates = [make_template({"Bench Press": [("8", "185")] * 4})]
    return _start(store).exercises[0]


def test_delete_then_undo_restores_at_original_index(store, clock):
    bench = _four_set_session(store)
    deleted = bench.sets[2]

    events = store.delete_set(bench.id, deleted.id)
    assert events == [SetDeleted(exercise_id=bench.id, set=deleted, original_index=2)]
    assert len(store.snapshot().exercises[0].sets) == 3

    clock.advance(3)
    restored = store.undo()
    assert restored == SetRestored(exercise_id=bench.id, set_id=deleted.id, index=2)
    assert store.snapshot().exercises[0].sets[2] == deleted


def test_undo_after_window_has_no_effect(store, clock):
    bench = _four_set_session(store)
    store.delete_set(bench.id, bench.sets[2].id)

    clock.advance(4)
    assert store.undo() is None
    assert len(store.snapshot().exercises[0].sets) == 3


def test_undo_only_restores_latest_deletion(store):
    bench = _four_set_session(store)
    store.delete_set(bench.id, bench.sets[0].id)
    store.delete_set(bench.id, bench.sets[3].id)

    assert store.undo().set_id == bench.sets[3].id
    assert store.undo() is None
    assert [s.id for s in store.snapshot().exercises[0].sets] == [s.id for s in bench.sets[1:]]


def test_undo_index_is_clamped(store):
    bench = _four_set_session(store)
    s0, s1, s2, s3 = (s.id for s in bench.sets)
    store.delete_set(bench.id, s3)
    store.delete_set(bench.id, s2)
    # Re-arm the buffer with an index past the end of the shrunken list
    store.undo_buffer.push(bench.id, bench.sets[3], 3)

    restored = store.undo()
    assert restored.index == 2
    assert [s.id for s in store.snapshot().exercises[0].sets] == [s0, s1, s3]


def test_removing_only_set_removes_exercise(store):
    store.templates = [make_template({"Bench Press": [("8", "185")], "Dip": [("10", "25")]})]
    session = _start(store)
    bench = session.exercises[0]

    events = store.remove_set(bench.id, bench.sets[0].id)

    assert [type(e) for e in events] == [SetDeleted, ExerciseRemoved]
    assert [ex.name for ex in store.snapshot().exercises] == ["Dip"]
    assert store.undo() is None


def test_cascade_delete_keeps_earlier_undo(store):
    store.templates = [make_template({"Bench Press": [("8", "185")] * 3, "Dip": [("10", "25")]})]
    session = _start(store)
    bench, dip = session.exercises
    store.delete_set(bench.id, bench.sets[1].id)

    events = store.delete_set(dip.id, dip.sets[0].id)
    assert [type(e) for e in events] == [SetDeleted, ExerciseRemoved]

    restored = store.undo()
    assert restored == SetRestored(exercise_id=bench.id, set_id=bench.sets[1].id, index=1)
    assert [s.id for s in store.snapshot().exercises[0].sets] == [s.id for s in bench.sets]


def test_remove_exercise(store):
    session = _start(store)
    bench = session.exercises[0]
    assert store.remove_exercise(bench.id) == [ExerciseRemoved(exercise_id=bench.id, exercise_name="Bench Press")]
    assert store.snapshot().exercises == ()


# ── Finish and drift ─────────────────────────────────────────────────────


def _complete_all(store, reps="12", weight="185"):
    for exercise in store.snapshot().exercises:
        for s in exercise.sets:
            _fill(store, exercise.id, s.id, reps, weight)
            store.toggle_set_complete(exercise.id, s.id)


def test_finish_saves_history_and_rewrites_template(store, repository, clock):
    _start(store)
    _complete_all(store)
    clock.advance(47 * 60 + 30)

    result = store.finish_session()

    assert result.record.duration == 47
    assert result.record.template_id == "tpl-push"
    assert result.record.date == now_datetime(clock).date().isoformat()
    assert store.history[0] == result.record
    assert result.summary.total_sets == 3
    assert result.summary.total_volume == 185 * 12 * 3
    assert len(result.summary.prs) == 1
    assert result.comparison.is_first_workout
    assert result.summary.comparison_message.startswith("**FIRST PUSH DAY**")
    assert isinstance(result.events[-1], SessionFinished)
    assert TemplateUpdated(template_id="tpl-push", structural=False) in result.events
    assert result.drift == []
    assert store.state == SessionState.IDLE

    bench = store.get_template("tpl-push").exercises[0]
    assert [(s.reps, s.weight) for s in bench.sets] == [("", "190")] * 3
    assert {HISTORY_KEY, TEMPLATES_KEY} <= set(repository.writer.pending_keys)
    assert store.context is None
    assert not store.rest_timer.active


def test_finish_with_explicit_time(store, clock):
    _start(store)
    result = store.finish_session(now=now_datetime(clock) + timedelta(minutes=20, seconds=59))
    assert result.record.duration == 20


def test_history_is_newest_first(store):
    _start(store)
    first = store.finish_session()
    _start(store)
    second = store.finish_session()
    assert [r.id for r in store.history] == [second.record.id, first.record.id]


def test_comparison_against_previous_workout(store):
    store.history = [make_record({"Bench Press": [("10", "175", True)] * 3}, "old", date="2023-11-10")]
    _start(store)
    _complete_all(store, reps="10", weight="185")

    result = store.finish_session()

    assert not result.comparison.is_first_workout
    assert result.comparison.days_since_previous == 4
    assert result.comparison.improvements[0].change == 10
    assert result.summary.comparison_message.startswith("**COMPARED TO LAST PUSH DAY**")


def test_drift_then_accept(store):
    _start(store)
    store.add_exercise("tricep pushdown")
    _complete_all(store)

    result = store.finish_session()

    assert result.drift == ["Added 1 exercise"]
    assert result.events[-1].template_changes == ["Added 1 exercise"]
    assert store.state == SessionState.DRIFT_CHECK
    assert store.status().pending_template_changes == ["Added 1 exercise"]

    events = store.resolve_template_drift(accept=True)

    assert events == [TemplateUpdated(template_id="tpl-push", structural=True)]
    assert store.state == SessionState.IDLE
    template = store.get_template("tpl-push")
    assert [ex.name for ex in template.exercises] == ["Bench Press", "Tricep Pushdown"]
    assert [s.weight for s in template.exercises[0].sets] == ["190"] * 3
    assert [s.weight for s in template.exercises[1].sets] == [""]


def test_drift_reject_keeps_weight_rewrite(store):
    _start(store)
    bench = store.snapshot().exercises[0]
    store.delete_set(bench.id, bench.sets[2].id)
    _complete_all(store)

    result = store.finish_session()
    assert result.drift == ["Removed 1 set from Bench Press"]

    assert store.resolve_template_drift(accept=False) == []
    template = store.get_template("tpl-push")
    assert [(s.reps, s.weight) for s in template.exercises[0].sets] == [("", "190")] * 3


def test_resolve_without_pending_drift_raises(store):
    with pytest.raises(NoPendingDriftError):
        store.resolve_template_drift(accept=True)


def test_start_from_drift_check_drops_decision(store):
    _start(store)
    store.add_exercise("Curl")
    store.finish_session()
    assert store.state == SessionState.DRIFT_CHECK

    _start(store)
    assert store.state == SessionState.ACTIVE
    assert store.pending_template_changes == []


def test_finish_after_template_deleted(store):
    _start(store)
    store.delete_template("tpl-push")
    store.add_exercise("Curl")

    result = store.finish_session()

    assert result.drift == []
    assert store.state == SessionState.IDLE
    assert store.history[0].id == result.record.id
