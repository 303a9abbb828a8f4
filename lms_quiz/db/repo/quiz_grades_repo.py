from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.ext.asyncio import AsyncSession

from lms_quiz.db.models.quiz_grades import QuizGrade


class QuizGradesRepo:
    @staticmethod
    async def get_for_user(session: AsyncSession, *, quiz_id: int, user_id: int) -> QuizGrade | None:
        stmt = select(QuizGrade).where(QuizGrade.quiz_id == quiz_id, QuizGrade.user_id == user_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def upsert(
        session: AsyncSession,
        *,
        quiz_id: int,
        user_id: int,
        grade: float,
        time_modified: int,
    ) -> None:
        stmt = (
            postgresql_insert(QuizGrade)
            .values(
                quiz_id=quiz_id,
                user_id=user_id,
                grade=grade,
                time_modified=time_modified,
            )
            .on_conflict_do_update(
                index_elements=[QuizGrade.quiz_id, QuizGrade.user_id],
                set_={"grade": grade, "time_modified": time_modified},
            )
        )
        await session.execute(stmt)

    @staticmethod
    async def delete_for_user(session: AsyncSession, *, quiz_id: int, user_id: int) -> int:
        stmt = delete(QuizGrade).where(QuizGrade.quiz_id == quiz_id, QuizGrade.user_id == user_id)
        result = await session.execute(stmt)
        return int(result.rowcount or 0)
