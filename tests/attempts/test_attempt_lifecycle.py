from __future__ import annotations

from types import SimpleNamespace

import pytest
from sqlalchemy.dialects import postgresql

from lms_quiz.attempts import lifecycle
from lms_quiz.attempts.deadlines import EffectiveTiming
from lms_quiz.attempts.errors import (
    AttemptAccessError,
    AttemptNotFoundError,
    PreviousAttemptMissingError,
    QuestionDraftOnlyError,
    UngradeableQuizError,
)
from lms_quiz.attempts.layout import SectionDefinition
from lms_quiz.attempts.permissions import StaticAccessPolicy
from lms_quiz.attempts.structure import QuizStructure, SlotDefinition
from lms_quiz.db.models.quiz_attempts import QuizAttempt
from lms_quiz.questions.types import RandomFilter
from tests.attempts.attempt_fixtures import (
    FakeQuestionEngine,
    FakeSession,
    RecordingDispatcher,
    make_question,
    make_quiz,
)


def _patch_timing(monkeypatch: pytest.MonkeyPatch, timing: EffectiveTiming) -> None:
    async def fake_load_effective_timing(session, *, quiz, user_id):  # noqa: ANN001
        del session, quiz, user_id
        return timing

    monkeypatch.setattr(lifecycle, "load_effective_timing", fake_load_effective_timing)


def _patch_create(monkeypatch: pytest.MonkeyPatch, *, attempt_id: int = 501) -> list[QuizAttempt]:
    created: list[QuizAttempt] = []

    async def fake_create(session, *, attempt):  # noqa: ANN001
        del session
        attempt.id = attempt_id
        created.append(attempt)
        return attempt

    monkeypatch.setattr("lms_quiz.attempts.lifecycle.QuizAttemptsRepo.create", fake_create)
    return created


def _stored_attempt(**overrides: object) -> QuizAttempt:
    values: dict[str, object] = {
        "id": 7,
        "quiz_id": 1,
        "user_id": 5,
        "attempt": 1,
        "state": "finished",
        "preview": False,
        "layout": "1,0",
        "unique_id": 100,
        "time_start": 1000,
        "time_finish": 1500,
        "sum_grades": 2.0,
    }
    values.update(overrides)
    return QuizAttempt(**values)


def test_create_attempt_rejects_ungradeable_quiz() -> None:
    quiz = make_quiz(sum_grades=0.0, grade=10.0)

    with pytest.raises(UngradeableQuizError):
        lifecycle.create_attempt(quiz=quiz, attempt_number=1, last_attempt=None, timenow=1000, user_id=5)


def test_create_attempt_allows_zero_grade_quiz_without_marks() -> None:
    quiz = make_quiz(sum_grades=0.0, grade=0.0)

    attempt = lifecycle.create_attempt(quiz=quiz, attempt_number=1, last_attempt=None, timenow=1000, user_id=5)

    assert attempt.state == "notstarted"
    assert attempt.id is None


def test_create_attempt_sets_time_check_state_from_effective_timing() -> None:
    quiz = make_quiz(time_limit=600)

    attempt = lifecycle.create_attempt(
        quiz=quiz,
        attempt_number=1,
        last_attempt=None,
        timenow=1000,
        user_id=5,
        timing=EffectiveTiming(time_open=0, time_close=1300, time_limit=600),
    )

    assert attempt.time_check_state == 1300
    assert attempt.time_start == 1000
    assert attempt.layout == ""


def test_create_preview_attempt_never_sets_time_check_state() -> None:
    quiz = make_quiz(time_close=1300, time_limit=600)

    attempt = lifecycle.create_attempt(
        quiz=quiz,
        attempt_number=1,
        last_attempt=None,
        timenow=1000,
        user_id=5,
        is_preview=True,
    )

    assert attempt.preview is True
    assert attempt.time_check_state is None


def test_create_attempt_on_last_copies_layout_and_preview_flag() -> None:
    quiz = make_quiz(attempt_on_last=True)
    last_attempt = _stored_attempt(layout="1,2,0,3,0", preview=True)

    with pytest.raises(PreviousAttemptMissingError):
        lifecycle.create_attempt(quiz=quiz, attempt_number=2, last_attempt=None, timenow=2000, user_id=5)

    attempt = lifecycle.create_attempt(
        quiz=quiz,
        attempt_number=2,
        last_attempt=last_attempt,
        timenow=2000,
        user_id=5,
    )
    assert attempt.layout == "1,2,0,3,0"
    assert attempt.preview is True
    assert attempt.attempt == 2


@pytest.mark.asyncio
async def test_save_started_inserts_new_in_progress_attempt(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_timing(monkeypatch, EffectiveTiming(time_open=0, time_close=0, time_limit=900))
    created = _patch_create(monkeypatch)
    engine = FakeQuestionEngine()
    dispatcher = RecordingDispatcher()
    quiz = make_quiz()
    usage = engine.make_usage(preferred_behaviour="deferredfeedback")
    usage.add_question(make_question(11), 1.0)
    attempt = lifecycle.create_attempt(quiz=quiz, attempt_number=1, last_attempt=None, timenow=1000, user_id=5)

    saved = await lifecycle.save_started(
        FakeSession(),
        quiz=quiz,
        usage=usage,
        attempt=attempt,
        timenow=1010,
        engine=engine,
        dispatcher=dispatcher,
    )

    assert created == [saved]
    assert saved.state == "inprogress"
    assert saved.unique_id == 100
    assert saved.time_start == 1010
    assert saved.time_check_state == 1910
    assert dispatcher.event_names == ["attempt_started"]
    assert dispatcher.events[0]["object_id"] == 501
    assert len(dispatcher.state_changes) == 1
    assert dispatcher.state_changes[0].old_state is None
    assert dispatcher.state_changes[0].new_state == "inprogress"


@pytest.mark.asyncio
async def test_save_started_preview_emits_preview_event(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_timing(monkeypatch, EffectiveTiming(time_open=0, time_close=5000, time_limit=900))
    _patch_create(monkeypatch)
    engine = FakeQuestionEngine()
    dispatcher = RecordingDispatcher()
    quiz = make_quiz()
    attempt = lifecycle.create_attempt(
        quiz=quiz,
        attempt_number=1,
        last_attempt=None,
        timenow=1000,
        user_id=5,
        is_preview=True,
    )

    saved = await lifecycle.save_started(
        FakeSession(),
        quiz=quiz,
        usage=engine.make_usage(preferred_behaviour="deferredfeedback"),
        attempt=attempt,
        timenow=1000,
        engine=engine,
        dispatcher=dispatcher,
    )

    assert saved.time_check_state is None
    assert dispatcher.event_names == ["attempt_preview_started"]


@pytest.mark.asyncio
async def test_save_started_promotes_pre_created_attempt_in_place(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_timing(monkeypatch, EffectiveTiming(time_open=0, time_close=0, time_limit=0))

    async def fail_create(session, *, attempt):  # noqa: ANN001
        raise AssertionError("pre-created attempts are updated, not inserted")

    monkeypatch.setattr("lms_quiz.attempts.lifecycle.QuizAttemptsRepo.create", fail_create)

    engine = FakeQuestionEngine()
    pre_created_usage = engine.make_usage(preferred_behaviour="deferredfeedback")
    for question_id in (11, 12, 13):
        pre_created_usage.add_question(make_question(question_id), 1.0)
    usage_id = await engine.save(pre_created_usage)
    attempt = _stored_attempt(id=42, state="notstarted", unique_id=usage_id, sum_grades=None)
    structure = QuizStructure(
        quiz=make_quiz(),
        slots=[
            SlotDefinition(slot=1, page=1, max_mark=1.0, bank_entry_id=110),
            SlotDefinition(slot=2, page=1, max_mark=1.0, random_filter=RandomFilter(category_id=4)),
            SlotDefinition(slot=3, page=2, max_mark=1.0, bank_entry_id=130, requested_version=4),
            SlotDefinition(slot=4, page=2, max_mark=1.0, bank_entry_id=140),
        ],
    )
    dispatcher = RecordingDispatcher()
    session = FakeSession()

    saved = await lifecycle.save_started(
        session,
        quiz=make_quiz(),
        usage=engine.make_usage(preferred_behaviour="deferredfeedback"),
        attempt=attempt,
        timenow=3000,
        engine=engine,
        dispatcher=dispatcher,
        structure=structure,
    )

    assert saved is attempt
    assert saved.state == "inprogress"
    assert saved.time_check_state is None
    assert engine.upgraded_slots == [[1]]
    assert session.flushes == 1
    assert dispatcher.state_changes[0].old_state == "notstarted"
    assert dispatcher.state_changes[0].new_state == "inprogress"
    assert dispatcher.event_names == ["attempt_started"]


@pytest.mark.asyncio
async def test_save_not_started_persists_record_and_notifies(monkeypatch: pytest.MonkeyPatch) -> None:
    created = _patch_create(monkeypatch, attempt_id=77)
    engine = FakeQuestionEngine()
    dispatcher = RecordingDispatcher()
    attempt = lifecycle.create_attempt(
        quiz=make_quiz(),
        attempt_number=1,
        last_attempt=None,
        timenow=1000,
        user_id=5,
    )

    saved = await lifecycle.save_not_started(
        FakeSession(),
        usage=engine.make_usage(preferred_behaviour="deferredfeedback"),
        attempt=attempt,
        engine=engine,
        dispatcher=dispatcher,
    )

    assert created == [saved]
    assert saved.state == "notstarted"
    assert saved.unique_id == 100
    assert dispatcher.event_names == []
    assert dispatcher.state_changes[0].old_state is None
    assert dispatcher.state_changes[0].new_state == "notstarted"


def _patch_delete(
    monkeypatch: pytest.MonkeyPatch,
    *,
    remaining_attempts: bool,
) -> dict[str, list[object]]:
    calls: dict[str, list[object]] = {"deleted": [], "grade_deleted": [], "recomputed": []}

    async def fake_delete_by_id(session, attempt_id):  # noqa: ANN001
        del session
        calls["deleted"].append(attempt_id)

    async def fake_exists_for_user(session, *, quiz_id, user_id):  # noqa: ANN001
        del session, quiz_id, user_id
        return remaining_attempts

    async def fake_delete_for_user(session, *, quiz_id, user_id):  # noqa: ANN001
        del session
        calls["grade_deleted"].append((quiz_id, user_id))
        return 1

    async def fake_recompute_final_grade(session, *, quiz, user_id, timenow):  # noqa: ANN001
        del session
        calls["recomputed"].append((quiz.id, user_id, timenow))
        return 7.5

    monkeypatch.setattr("lms_quiz.attempts.lifecycle.QuizAttemptsRepo.delete_by_id", fake_delete_by_id)
    monkeypatch.setattr("lms_quiz.attempts.lifecycle.QuizAttemptsRepo.exists_for_user", fake_exists_for_user)
    monkeypatch.setattr("lms_quiz.attempts.lifecycle.QuizGradesRepo.delete_for_user", fake_delete_for_user)
    monkeypatch.setattr(lifecycle, "recompute_final_grade", fake_recompute_final_grade)
    return calls


@pytest.mark.asyncio
async def test_deleting_sole_attempt_removes_stored_grade(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _patch_delete(monkeypatch, remaining_attempts=False)
    engine = FakeQuestionEngine()
    dispatcher = RecordingDispatcher()

    deleted = await lifecycle.delete_attempt(
        FakeSession(),
        attempt=_stored_attempt(),
        quiz=make_quiz(),
        timenow=4000,
        engine=engine,
        dispatcher=dispatcher,
    )

    assert deleted is not None
    assert deleted.attempt_id == 7
    assert calls["deleted"] == [7]
    assert calls["grade_deleted"] == [(1, 5)]
    assert calls["recomputed"] == []
    assert engine.deleted_usage_ids == [100]
    assert dispatcher.event_names == ["attempt_deleted"]
    assert dispatcher.state_changes[0].old_state == "finished"
    assert dispatcher.state_changes[0].new_state is None


@pytest.mark.asyncio
async def test_deleting_one_of_two_attempts_recomputes_grade(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _patch_delete(monkeypatch, remaining_attempts=True)

    await lifecycle.delete_attempt(
        FakeSession(),
        attempt=_stored_attempt(),
        quiz=make_quiz(),
        timenow=4000,
        engine=FakeQuestionEngine(),
        dispatcher=RecordingDispatcher(),
    )

    assert calls["grade_deleted"] == []
    assert calls["recomputed"] == [(1, 5, 4000)]


@pytest.mark.asyncio
async def test_deleting_preview_is_silent(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_delete(monkeypatch, remaining_attempts=False)
    dispatcher = RecordingDispatcher()

    await lifecycle.delete_attempt(
        FakeSession(),
        attempt=_stored_attempt(preview=True),
        quiz=make_quiz(),
        timenow=4000,
        engine=FakeQuestionEngine(),
        dispatcher=dispatcher,
    )

    assert dispatcher.events == []
    assert dispatcher.state_changes == []


@pytest.mark.asyncio
async def test_deleting_attempt_of_other_quiz_is_ignored(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _patch_delete(monkeypatch, remaining_attempts=False)

    result = await lifecycle.delete_attempt(
        FakeSession(),
        attempt=_stored_attempt(quiz_id=2),
        quiz=make_quiz(id=1),
        timenow=4000,
        engine=FakeQuestionEngine(),
        dispatcher=RecordingDispatcher(),
    )

    assert result is None
    assert calls["deleted"] == []


@pytest.mark.asyncio
async def test_deleting_unknown_attempt_id_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_get_by_id(session, attempt_id):  # noqa: ANN001
        del session, attempt_id
        return None

    monkeypatch.setattr("lms_quiz.attempts.lifecycle.QuizAttemptsRepo.get_by_id", fake_get_by_id)

    with pytest.raises(AttemptNotFoundError):
        await lifecycle.delete_attempt(
            FakeSession(),
            attempt=404,
            quiz=make_quiz(),
            timenow=4000,
            engine=FakeQuestionEngine(),
            dispatcher=RecordingDispatcher(),
        )


def _patch_attempt_list(monkeypatch: pytest.MonkeyPatch, attempts: list[QuizAttempt]) -> None:
    async def fake_list_for_user(session, *, quiz_id, user_id, include_previews):  # noqa: ANN001
        del session, quiz_id, user_id, include_previews
        return attempts

    monkeypatch.setattr("lms_quiz.attempts.lifecycle.QuizAttemptsRepo.list_for_user", fake_list_for_user)


@pytest.mark.asyncio
async def test_resolve_next_attempt_requires_capability() -> None:
    with pytest.raises(AttemptAccessError):
        await lifecycle.resolve_next_attempt(
            FakeSession(),
            quiz=make_quiz(),
            user_id=5,
            policy=StaticAccessPolicy(),
            timenow=1000,
        )


@pytest.mark.asyncio
async def test_resolve_next_attempt_numbers_after_last_non_preview(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_attempt_list(
        monkeypatch,
        [
            _stored_attempt(id=1, attempt=1),
            _stored_attempt(id=2, attempt=2),
        ],
    )

    decision = await lifecycle.resolve_next_attempt(
        FakeSession(),
        quiz=make_quiz(),
        user_id=5,
        policy=StaticAccessPolicy.for_users({5: ["mod/quiz:attempt"]}),
        timenow=1000,
    )

    assert decision.current_attempt is None
    assert decision.attempt_number == 3
    assert decision.last_attempt.id == 2
    assert decision.is_preview_user is False


@pytest.mark.asyncio
async def test_resolve_next_attempt_resumes_unfinished_attempt(monkeypatch: pytest.MonkeyPatch) -> None:
    unfinished = _stored_attempt(id=3, attempt=2, state="inprogress")
    _patch_attempt_list(monkeypatch, [_stored_attempt(id=1), unfinished])
    checked: list[int] = []

    async def fake_handle_if_time_expired(session, *, attempt, **kwargs):  # noqa: ANN001
        del session, kwargs
        checked.append(attempt.id)
        return attempt

    monkeypatch.setattr(lifecycle, "handle_if_time_expired", fake_handle_if_time_expired)

    decision = await lifecycle.resolve_next_attempt(
        FakeSession(),
        quiz=make_quiz(),
        user_id=5,
        policy=StaticAccessPolicy.for_users({5: ["mod/quiz:attempt"]}),
        timenow=1000,
        engine=FakeQuestionEngine(),
        dispatcher=RecordingDispatcher(),
    )

    assert checked == [3]
    assert decision.current_attempt is unfinished
    assert decision.attempt_number is None


@pytest.mark.asyncio
async def test_forced_preview_restart_abandons_only_open_previews(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_attempt_list(monkeypatch, [_stored_attempt(id=1)])
    statements: list[object] = []

    class CapturingSession(FakeSession):
        async def execute(self, stmt):  # noqa: ANN001
            statements.append(stmt)
            return SimpleNamespace(rowcount=1)

    decision = await lifecycle.resolve_next_attempt(
        CapturingSession(),
        quiz=make_quiz(),
        user_id=5,
        policy=StaticAccessPolicy.for_users({5: ["mod/quiz:preview"]}),
        timenow=1000,
        force_new_preview=True,
    )

    assert decision.attempt_number == 2
    assert len(statements) == 1
    sql = str(statements[0].compile(dialect=postgresql.dialect()))
    assert sql.startswith("UPDATE quiz_attempts SET state=")
    assert "quiz_attempts.preview IS true" in sql
    assert "quiz_attempts.state IN" in sql


@pytest.mark.asyncio
async def test_resolve_next_attempt_starts_pre_created_attempt_with_its_number(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    pre_created = _stored_attempt(id=3, attempt=2, state="notstarted", sum_grades=None)
    _patch_attempt_list(monkeypatch, [_stored_attempt(id=1), pre_created])

    async def fail_handle_if_time_expired(session, **kwargs):  # noqa: ANN001
        raise AssertionError("not-started attempts have no timer to check")

    monkeypatch.setattr(lifecycle, "handle_if_time_expired", fail_handle_if_time_expired)

    decision = await lifecycle.resolve_next_attempt(
        FakeSession(),
        quiz=make_quiz(),
        user_id=5,
        policy=StaticAccessPolicy.for_users({5: ["mod/quiz:attempt"]}),
        timenow=1000,
    )

    assert decision.current_attempt is None
    assert decision.attempt_number == 2
    assert decision.last_attempt.id == 1


@pytest.mark.asyncio
async def test_delete_previews_removes_each_preview(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _patch_delete(monkeypatch, remaining_attempts=False)
    previews = [
        _stored_attempt(id=11, preview=True, unique_id=111),
        _stored_attempt(id=12, preview=True, unique_id=112),
    ]

    async def fake_list_previews(session, *, quiz_id, user_id=None):  # noqa: ANN001
        del session
        assert (quiz_id, user_id) == (1, 5)
        return previews

    monkeypatch.setattr("lms_quiz.attempts.lifecycle.QuizAttemptsRepo.list_previews", fake_list_previews)
    engine = FakeQuestionEngine()

    removed = await lifecycle.delete_previews(
        FakeSession(),
        quiz=make_quiz(),
        timenow=4000,
        user_id=5,
        engine=engine,
        dispatcher=RecordingDispatcher(),
    )

    assert removed == 2
    assert calls["deleted"] == [11, 12]
    assert engine.deleted_usage_ids == [111, 112]


@pytest.mark.asyncio
async def test_prepare_and_start_new_attempt_builds_and_starts(monkeypatch: pytest.MonkeyPatch) -> None:
    quiz = make_quiz(time_limit=900)
    structure = QuizStructure(
        quiz=quiz,
        slots=[
            SlotDefinition(slot=1, page=1, max_mark=1.0, bank_entry_id=110),
            SlotDefinition(slot=2, page=1, max_mark=2.0, bank_entry_id=120),
        ],
        sections=[SectionDefinition(first_slot=1)],
    )

    async def fake_load_quiz_structure(session, *, quiz_id):  # noqa: ANN001
        del session
        assert quiz_id == 1
        return structure

    async def no_rows(session, **kwargs):  # noqa: ANN001
        del session, kwargs
        return []

    async def no_attempt(session, **kwargs):  # noqa: ANN001
        del session, kwargs
        return None

    monkeypatch.setattr(lifecycle, "load_quiz_structure", fake_load_quiz_structure)
    monkeypatch.setattr("lms_quiz.attempts.lifecycle.QuizAttemptsRepo.list_previews", no_rows)
    monkeypatch.setattr("lms_quiz.attempts.lifecycle.QuizAttemptsRepo.list_usage_ids_for_user", no_rows)
    monkeypatch.setattr("lms_quiz.attempts.lifecycle.QuizAttemptsRepo.get_not_started_for_user", no_attempt)
    _patch_timing(monkeypatch, EffectiveTiming(time_open=0, time_close=0, time_limit=900))
    created = _patch_create(monkeypatch)
    engine = FakeQuestionEngine(
        [make_question(11, bank_entry_id=110), make_question(12, bank_entry_id=120)]
    )
    dispatcher = RecordingDispatcher()

    attempt = await lifecycle.prepare_and_start_new_attempt(
        FakeSession(),
        quiz_id=1,
        user_id=5,
        attempt_number=1,
        last_attempt=None,
        policy=StaticAccessPolicy.for_users({5: ["mod/quiz:attempt"]}),
        timenow=1000,
        offline=True,
        engine=engine,
        dispatcher=dispatcher,
    )

    assert created == [attempt]
    assert attempt.state == "inprogress"
    assert attempt.layout == "1,2,0"
    assert attempt.unique_id == 100
    assert attempt.time_check_state == 1900
    assert attempt.time_modified_offline == 1000
    assert engine.usages[100].question_ids() == [11, 12]
    assert dispatcher.event_names == ["attempt_started"]


@pytest.mark.asyncio
async def test_prepare_and_start_new_attempt_with_draft_question_leaves_nothing_behind(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    quiz = make_quiz()
    structure = QuizStructure(
        quiz=quiz,
        slots=[
            SlotDefinition(slot=1, page=1, max_mark=1.0, bank_entry_id=110),
            SlotDefinition(slot=2, page=1, max_mark=2.0, bank_entry_id=120),
        ],
    )

    async def fake_load_quiz_structure(session, *, quiz_id):  # noqa: ANN001
        del session, quiz_id
        return structure

    async def no_rows(session, **kwargs):  # noqa: ANN001
        del session, kwargs
        return []

    async def no_attempt(session, **kwargs):  # noqa: ANN001
        del session, kwargs
        return None

    async def fail_create(session, *, attempt):  # noqa: ANN001
        raise AssertionError("no attempt row may be written")

    monkeypatch.setattr(lifecycle, "load_quiz_structure", fake_load_quiz_structure)
    monkeypatch.setattr("lms_quiz.attempts.lifecycle.QuizAttemptsRepo.list_previews", no_rows)
    monkeypatch.setattr("lms_quiz.attempts.lifecycle.QuizAttemptsRepo.list_usage_ids_for_user", no_rows)
    monkeypatch.setattr("lms_quiz.attempts.lifecycle.QuizAttemptsRepo.get_not_started_for_user", no_attempt)
    monkeypatch.setattr("lms_quiz.attempts.lifecycle.QuizAttemptsRepo.create", fail_create)
    _patch_timing(monkeypatch, EffectiveTiming(time_open=0, time_close=0, time_limit=0))
    engine = FakeQuestionEngine(
        [
            make_question(11, bank_entry_id=110),
            make_question(12, bank_entry_id=120, status="draft"),
        ]
    )
    dispatcher = RecordingDispatcher()
    session = FakeSession()

    with pytest.raises(QuestionDraftOnlyError):
        await lifecycle.prepare_and_start_new_attempt(
            session,
            quiz_id=1,
            user_id=5,
            attempt_number=1,
            last_attempt=None,
            policy=StaticAccessPolicy.for_users({5: ["mod/quiz:attempt"]}),
            timenow=1000,
            engine=engine,
            dispatcher=dispatcher,
        )

    assert engine.usages == {}
    assert dispatcher.events == []
    assert len(session.nested) == 1
    assert isinstance(session.nested[0].exc, QuestionDraftOnlyError)


@pytest.mark.asyncio
async def test_unfinished_and_existing_attempt_lookups(monkeypatch: pytest.MonkeyPatch) -> None:
    unfinished = _stored_attempt(state="overdue")

    async def fake_latest_unfinished(session, *, quiz_id, user_id):  # noqa: ANN001
        del session
        return unfinished if (quiz_id, user_id) == (1, 5) else None

    async def fake_exists_non_preview(session, *, quiz_id):  # noqa: ANN001
        del session
        return quiz_id == 1

    monkeypatch.setattr(
        "lms_quiz.attempts.lifecycle.QuizAttemptsRepo.get_latest_unfinished_for_user",
        fake_latest_unfinished,
    )
    monkeypatch.setattr("lms_quiz.attempts.lifecycle.QuizAttemptsRepo.exists_non_preview", fake_exists_non_preview)

    assert await lifecycle.get_user_attempt_unfinished(FakeSession(), quiz_id=1, user_id=5) is unfinished
    assert await lifecycle.get_user_attempt_unfinished(FakeSession(), quiz_id=1, user_id=6) is None
    assert await lifecycle.has_attempts(FakeSession(), quiz_id=1) is True
    assert await lifecycle.has_attempts(FakeSession(), quiz_id=2) is False
