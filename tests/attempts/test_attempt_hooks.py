from __future__ import annotations

from types import SimpleNamespace

import pytest

from lms_quiz.attempts.builder import repaginate_slots
from lms_quiz.attempts.hooks import (
    AttemptSnapshot,
    AttemptStateChanged,
    OutboxAttemptEventDispatcher,
)
from lms_quiz.db.models.quiz_attempts import QuizAttempt
from tests.attempts.attempt_fixtures import FakeSession, RecordingDispatcher


def _attempt(**overrides: object) -> QuizAttempt:
    values: dict[str, object] = {
        "id": 4,
        "quiz_id": 1,
        "user_id": 5,
        "attempt": 2,
        "state": "inprogress",
        "layout": "1,0",
        "unique_id": 100,
        "time_start": 1000,
    }
    values.update(overrides)
    return QuizAttempt(**values)


def test_snapshot_captures_attempt_fields() -> None:
    snapshot = AttemptSnapshot.from_attempt(_attempt())

    assert snapshot.as_dict()["attempt_id"] == 4
    assert snapshot.state == "inprogress"
    assert snapshot.time_finish == 0


@pytest.mark.asyncio
async def test_outbox_dispatcher_records_state_change(monkeypatch: pytest.MonkeyPatch) -> None:
    emitted: list[dict[str, object]] = []

    async def fake_emit_quiz_event(session, **kwargs):  # noqa: ANN001
        del session
        emitted.append(kwargs)

    monkeypatch.setattr("lms_quiz.attempts.hooks.emit_quiz_event", fake_emit_quiz_event)

    dispatcher = OutboxAttemptEventDispatcher(object())
    before = AttemptSnapshot.from_attempt(_attempt(state="notstarted"))
    after = AttemptSnapshot.from_attempt(_attempt())
    await dispatcher.dispatch_state_changed(AttemptStateChanged(before=before, after=after))
    await dispatcher.emit(
        "attempt_started",
        object_id=4,
        related_user_id=5,
        payload={"quiz_id": 1},
        snapshots={},
    )

    assert emitted[0]["event_type"] == "attempt_state_changed"
    assert emitted[0]["object_id"] == 4
    assert emitted[0]["payload"] == {"old_state": "notstarted", "new_state": "inprogress"}
    assert emitted[0]["snapshots"]["before"]["state"] == "notstarted"
    assert emitted[1]["event_type"] == "attempt_started"
    assert emitted[1]["payload"] == {"quiz_id": 1}


@pytest.mark.asyncio
async def test_outbox_dispatcher_handles_deletion(monkeypatch: pytest.MonkeyPatch) -> None:
    emitted: list[dict[str, object]] = []

    async def fake_emit_quiz_event(session, **kwargs):  # noqa: ANN001
        del session
        emitted.append(kwargs)

    monkeypatch.setattr("lms_quiz.attempts.hooks.emit_quiz_event", fake_emit_quiz_event)

    before = AttemptSnapshot.from_attempt(_attempt(state="finished"))
    await OutboxAttemptEventDispatcher(object()).dispatch_state_changed(
        AttemptStateChanged(before=before, after=None)
    )

    assert emitted[0]["payload"] == {"old_state": "finished", "new_state": None}
    assert emitted[0]["snapshots"]["after"] is None
    assert emitted[0]["related_user_id"] == 5


@pytest.mark.asyncio
async def test_repaginate_slots_updates_changed_pages(monkeypatch: pytest.MonkeyPatch) -> None:
    page_updates: list[tuple[int, int]] = []

    async def fake_list_sections(session, *, quiz_id):  # noqa: ANN001
        del session, quiz_id
        return [SimpleNamespace(first_slot=1), SimpleNamespace(first_slot=3)]

    async def fake_list_slots(session, *, quiz_id):  # noqa: ANN001
        del session, quiz_id
        return [
            SimpleNamespace(id=101, slot=1, page=1),
            SimpleNamespace(id=102, slot=2, page=1),
            SimpleNamespace(id=103, slot=3, page=1),
        ]

    async def fake_set_slot_page(session, *, slot_id, page):  # noqa: ANN001
        del session
        page_updates.append((slot_id, page))

    monkeypatch.setattr("lms_quiz.attempts.builder.QuizzesRepo.list_sections", fake_list_sections)
    monkeypatch.setattr("lms_quiz.attempts.builder.QuizzesRepo.list_slots", fake_list_slots)
    monkeypatch.setattr("lms_quiz.attempts.builder.QuizzesRepo.set_slot_page", fake_set_slot_page)
    dispatcher = RecordingDispatcher()

    pages = await repaginate_slots(FakeSession(), quiz_id=1, slots_per_page=1, dispatcher=dispatcher)

    assert pages == {1: 1, 2: 2, 3: 3}
    assert page_updates == [(102, 2), (103, 3)]
    assert dispatcher.event_names == ["quiz_repaginated"]
