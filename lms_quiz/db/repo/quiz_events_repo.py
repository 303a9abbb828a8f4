from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lms_quiz.db.models.quiz_events import QuizEvent


class QuizEventsRepo:
    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        event_type: str,
        object_id: int | None,
        related_user_id: int | None,
        payload: dict[str, object],
        snapshots: dict[str, object],
    ) -> QuizEvent:
        event = QuizEvent(
            event_type=event_type,
            object_id=object_id,
            related_user_id=related_user_id,
            payload=payload,
            snapshots=snapshots,
        )
        session.add(event)
        await session.flush()
        return event

    @staticmethod
    async def list_for_object_since(
        session: AsyncSession,
        *,
        object_id: int,
        since_utc: datetime,
    ) -> list[QuizEvent]:
        stmt = (
            select(QuizEvent)
            .where(QuizEvent.object_id == object_id, QuizEvent.created_at >= since_utc)
            .order_by(QuizEvent.created_at.asc(), QuizEvent.id.asc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())
