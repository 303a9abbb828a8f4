from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import delete, exists, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lms_quiz.attempts.constants import (
    ATTEMPT_STATE_ABANDONED,
    ATTEMPT_STATE_FINISHED,
    ATTEMPT_STATE_NOT_STARTED,
    OPEN_ATTEMPT_STATES,
    UNFINISHED_ATTEMPT_STATES,
)
from lms_quiz.db.models.quiz_attempts import QuizAttempt


class QuizAttemptsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, attempt_id: int) -> QuizAttempt | None:
        return await session.get(QuizAttempt, attempt_id)

    @staticmethod
    async def create(session: AsyncSession, *, attempt: QuizAttempt) -> QuizAttempt:
        session.add(attempt)
        await session.flush()
        return attempt

    @staticmethod
    async def get_not_started_for_user(
        session: AsyncSession,
        *,
        quiz_id: int,
        user_id: int,
    ) -> QuizAttempt | None:
        stmt = (
            select(QuizAttempt)
            .where(
                QuizAttempt.quiz_id == quiz_id,
                QuizAttempt.user_id == user_id,
                QuizAttempt.preview.is_(False),
                QuizAttempt.state == ATTEMPT_STATE_NOT_STARTED,
            )
            .order_by(QuizAttempt.attempt.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_for_user(
        session: AsyncSession,
        *,
        quiz_id: int,
        user_id: int,
        include_previews: bool = False,
        states: Sequence[str] | None = None,
    ) -> list[QuizAttempt]:
        stmt = (
            select(QuizAttempt)
            .where(
                QuizAttempt.quiz_id == quiz_id,
                QuizAttempt.user_id == user_id,
            )
            .order_by(QuizAttempt.attempt.asc(), QuizAttempt.id.asc())
        )
        if not include_previews:
            stmt = stmt.where(QuizAttempt.preview.is_(False))
        if states:
            stmt = stmt.where(QuizAttempt.state.in_(tuple(states)))
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def get_latest_unfinished_for_user(
        session: AsyncSession,
        *,
        quiz_id: int,
        user_id: int,
    ) -> QuizAttempt | None:
        stmt = (
            select(QuizAttempt)
            .where(
                QuizAttempt.quiz_id == quiz_id,
                QuizAttempt.user_id == user_id,
                QuizAttempt.preview.is_(False),
                QuizAttempt.state.in_(tuple(UNFINISHED_ATTEMPT_STATES)),
            )
            .order_by(QuizAttempt.attempt.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_previews(
        session: AsyncSession,
        *,
        quiz_id: int,
        user_id: int | None = None,
    ) -> list[QuizAttempt]:
        stmt = (
            select(QuizAttempt)
            .where(QuizAttempt.quiz_id == quiz_id, QuizAttempt.preview.is_(True))
            .order_by(QuizAttempt.id.asc())
        )
        if user_id is not None:
            stmt = stmt.where(QuizAttempt.user_id == user_id)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_usage_ids_for_user(
        session: AsyncSession,
        *,
        quiz_id: int,
        user_id: int,
    ) -> list[int]:
        stmt = (
            select(QuizAttempt.unique_id)
            .where(
                QuizAttempt.quiz_id == quiz_id,
                QuizAttempt.user_id == user_id,
                QuizAttempt.unique_id.is_not(None),
            )
            .order_by(QuizAttempt.attempt.asc())
        )
        result = await session.execute(stmt)
        return [int(usage_id) for usage_id in result.scalars().all()]

    @staticmethod
    async def exists_for_user(session: AsyncSession, *, quiz_id: int, user_id: int) -> bool:
        stmt = select(
            exists().where(
                QuizAttempt.quiz_id == quiz_id,
                QuizAttempt.user_id == user_id,
            )
        )
        result = await session.execute(stmt)
        return bool(result.scalar())

    @staticmethod
    async def exists_non_preview(session: AsyncSession, *, quiz_id: int) -> bool:
        stmt = select(
            exists().where(
                QuizAttempt.quiz_id == quiz_id,
                QuizAttempt.preview.is_(False),
            )
        )
        result = await session.execute(stmt)
        return bool(result.scalar())

    @staticmethod
    async def list_finished_graded_for_user(
        session: AsyncSession,
        *,
        quiz_id: int,
        user_id: int,
    ) -> list[QuizAttempt]:
        stmt = (
            select(QuizAttempt)
            .where(
                QuizAttempt.quiz_id == quiz_id,
                QuizAttempt.user_id == user_id,
                QuizAttempt.preview.is_(False),
                QuizAttempt.state == ATTEMPT_STATE_FINISHED,
                QuizAttempt.sum_grades.is_not(None),
            )
            .order_by(QuizAttempt.attempt.asc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def abandon_open_previews_for_user(session: AsyncSession, *, quiz_id: int, user_id: int) -> int:
        stmt = (
            update(QuizAttempt)
            .where(
                QuizAttempt.quiz_id == quiz_id,
                QuizAttempt.user_id == user_id,
                QuizAttempt.preview.is_(True),
                QuizAttempt.state.in_(UNFINISHED_ATTEMPT_STATES),
            )
            .values(state=ATTEMPT_STATE_ABANDONED)
            .execution_options(synchronize_session="fetch")
        )
        result = await session.execute(stmt)
        return int(result.rowcount or 0)

    @staticmethod
    async def list_due_for_update(
        session: AsyncSession,
        *,
        timenow: int,
        limit: int,
    ) -> list[QuizAttempt]:
        resolved_limit = max(1, int(limit))
        stmt = (
            select(QuizAttempt)
            .where(
                QuizAttempt.state.in_(tuple(OPEN_ATTEMPT_STATES)),
                QuizAttempt.time_check_state.is_not(None),
                QuizAttempt.time_check_state <= timenow,
            )
            .order_by(QuizAttempt.time_check_state.asc(), QuizAttempt.id.asc())
            .limit(resolved_limit)
            .with_for_update(skip_locked=True)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def delete_by_id(session: AsyncSession, attempt_id: int) -> None:
        await session.execute(delete(QuizAttempt).where(QuizAttempt.id == attempt_id))
