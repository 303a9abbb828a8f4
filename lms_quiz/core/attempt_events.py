from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from lms_quiz.db.repo.quiz_events_repo import QuizEventsRepo


async def emit_quiz_event(
    session: AsyncSession,
    *,
    event_type: str,
    object_id: int | None,
    related_user_id: int | None = None,
    payload: dict[str, object] | None = None,
    snapshots: dict[str, object] | None = None,
) -> None:
    await QuizEventsRepo.create(
        session,
        event_type=event_type,
        object_id=object_id,
        related_user_id=related_user_id,
        payload=payload or {},
        snapshots=snapshots or {},
    )
