from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lms_quiz.db.models.quiz_sections import QuizSection
from lms_quiz.db.models.quiz_slots import QuizSlot
from lms_quiz.db.models.quizzes import Quiz


class QuizzesRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, quiz_id: int) -> Quiz | None:
        return await session.get(Quiz, quiz_id)

    @staticmethod
    async def list_ids_for_course(session: AsyncSession, *, course_id: int) -> list[int]:
        stmt = select(Quiz.id).where(Quiz.course_id == course_id).order_by(Quiz.id.asc())
        result = await session.execute(stmt)
        return [int(quiz_id) for quiz_id in result.scalars().all()]

    @staticmethod
    async def list_slots(session: AsyncSession, *, quiz_id: int) -> list[QuizSlot]:
        stmt = select(QuizSlot).where(QuizSlot.quiz_id == quiz_id).order_by(QuizSlot.slot.asc())
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_sections(session: AsyncSession, *, quiz_id: int) -> list[QuizSection]:
        stmt = (
            select(QuizSection)
            .where(QuizSection.quiz_id == quiz_id)
            .order_by(QuizSection.first_slot.asc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def set_slot_page(session: AsyncSession, *, slot_id: int, page: int) -> None:
        stmt = update(QuizSlot).where(QuizSlot.id == slot_id).values(page=page)
        await session.execute(stmt)
