from __future__ import annotations

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from lms_quiz.db.models.course_groups import CourseGroup, GroupMember
from lms_quiz.db.models.quiz_overrides import QuizOverride
from lms_quiz.db.models.quizzes import Quiz


class QuizOverridesRepo:
    @staticmethod
    async def list_applicable_for_user(
        session: AsyncSession,
        *,
        quiz_id: int,
        user_id: int,
    ) -> list[QuizOverride]:
        user_group_ids = select(GroupMember.group_id).where(GroupMember.user_id == user_id)
        stmt = (
            select(QuizOverride)
            .where(
                QuizOverride.quiz_id == quiz_id,
                or_(
                    QuizOverride.user_id == user_id,
                    QuizOverride.group_id.in_(user_group_ids),
                ),
            )
            .order_by(QuizOverride.id.asc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def delete_orphaned_group_overrides_in_course(
        session: AsyncSession,
        *,
        course_id: int,
    ) -> list[int]:
        course_quiz_ids = select(Quiz.id).where(Quiz.course_id == course_id)
        existing_group_ids = select(CourseGroup.id)
        stmt = (
            delete(QuizOverride)
            .where(
                QuizOverride.quiz_id.in_(course_quiz_ids),
                QuizOverride.group_id.is_not(None),
                QuizOverride.group_id.not_in(existing_group_ids),
            )
            .returning(QuizOverride.quiz_id)
        )
        result = await session.execute(stmt)
        return sorted({int(quiz_id) for quiz_id in result.scalars().all()})
