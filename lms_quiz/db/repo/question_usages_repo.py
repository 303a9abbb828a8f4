from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lms_quiz.db.models.question_usages import QuestionAttemptRecord, QuestionUsageRecord


class QuestionUsagesRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, usage_id: int) -> QuestionUsageRecord | None:
        return await session.get(QuestionUsageRecord, usage_id)

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        component: str,
        preferred_behaviour: str,
    ) -> QuestionUsageRecord:
        record = QuestionUsageRecord(component=component, preferred_behaviour=preferred_behaviour)
        session.add(record)
        await session.flush()
        return record

    @staticmethod
    async def list_attempts(session: AsyncSession, *, usage_id: int) -> list[QuestionAttemptRecord]:
        stmt = (
            select(QuestionAttemptRecord)
            .where(QuestionAttemptRecord.usage_id == usage_id)
            .order_by(QuestionAttemptRecord.slot.asc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def add_attempts(
        session: AsyncSession,
        *,
        records: Sequence[QuestionAttemptRecord],
    ) -> None:
        session.add_all(list(records))
        await session.flush()

    @staticmethod
    async def set_question_id(
        session: AsyncSession,
        *,
        usage_id: int,
        slot: int,
        question_id: int,
    ) -> None:
        stmt = (
            update(QuestionAttemptRecord)
            .where(
                QuestionAttemptRecord.usage_id == usage_id,
                QuestionAttemptRecord.slot == slot,
            )
            .values(question_id=question_id)
        )
        await session.execute(stmt)

    @staticmethod
    async def delete_by_id(session: AsyncSession, usage_id: int) -> None:
        await session.execute(
            delete(QuestionAttemptRecord).where(QuestionAttemptRecord.usage_id == usage_id)
        )
        await session.execute(delete(QuestionUsageRecord).where(QuestionUsageRecord.id == usage_id))
