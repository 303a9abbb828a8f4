from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased
from sqlalchemy.sql.elements import ColumnElement

from lms_quiz.attempts.constants import OPEN_ATTEMPT_STATES
from lms_quiz.attempts.deadlines import attempt_user_timing_subquery, time_check_state_expression
from lms_quiz.db.models.quiz_attempts import QuizAttempt
from lms_quiz.db.models.quiz_overrides import QuizOverride
from lms_quiz.db.models.quizzes import Quiz
from lms_quiz.db.repo.quiz_overrides_repo import QuizOverridesRepo

logger = structlog.get_logger(__name__)


def _ids(values: Iterable[int] | int | None) -> tuple[int, ...]:
    if values is None:
        return ()
    if isinstance(values, int):
        return (values,)
    return tuple(int(value) for value in values)


@dataclass(frozen=True, slots=True)
class OpenAttemptFilters:
    course_ids: tuple[int, ...] = ()
    user_ids: tuple[int, ...] = ()
    quiz_ids: tuple[int, ...] = ()
    group_ids: tuple[int, ...] = ()

    @classmethod
    def build(
        cls,
        *,
        course_ids: Iterable[int] | int | None = None,
        user_ids: Iterable[int] | int | None = None,
        quiz_ids: Iterable[int] | int | None = None,
        group_ids: Iterable[int] | int | None = None,
    ) -> OpenAttemptFilters:
        return cls(
            course_ids=_ids(course_ids),
            user_ids=_ids(user_ids),
            quiz_ids=_ids(quiz_ids),
            group_ids=_ids(group_ids),
        )

    def where_clauses(self) -> list[ColumnElement]:
        clauses: list[ColumnElement] = []
        if self.course_ids:
            course_quiz = aliased(Quiz)
            clauses.append(
                QuizAttempt.quiz_id.in_(
                    select(course_quiz.id).where(course_quiz.course_id.in_(self.course_ids))
                )
            )
        if self.user_ids:
            clauses.append(QuizAttempt.user_id.in_(self.user_ids))
        if self.quiz_ids:
            clauses.append(QuizAttempt.quiz_id.in_(self.quiz_ids))
        if self.group_ids:
            group_override = aliased(QuizOverride)
            clauses.append(
                QuizAttempt.quiz_id.in_(
                    select(group_override.quiz_id).where(group_override.group_id.in_(self.group_ids))
                )
            )
        return clauses


async def update_open_attempts(session: AsyncSession, filters: OpenAttemptFilters) -> int:
    """Recompute time_check_state for every matching open attempt in one UPDATE."""

    clauses = filters.where_clauses()
    user_timing = attempt_user_timing_subquery(*clauses)
    stmt = (
        update(QuizAttempt)
        .where(
            QuizAttempt.id == user_timing.c.attempt_id,
            Quiz.id == QuizAttempt.quiz_id,
            QuizAttempt.state.in_(tuple(OPEN_ATTEMPT_STATES)),
            *clauses,
        )
        .values(
            time_check_state=time_check_state_expression(
                state=QuizAttempt.state,
                time_start=QuizAttempt.time_start,
                time_close=user_timing.c.user_time_close,
                time_limit=user_timing.c.user_time_limit,
                grace_period=Quiz.grace_period,
            )
        )
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    updated = int(result.rowcount or 0)
    logger.info(
        "quiz_open_attempts_refreshed",
        updated=updated,
        course_ids=list(filters.course_ids),
        user_ids=list(filters.user_ids),
        quiz_ids=list(filters.quiz_ids),
        group_ids=list(filters.group_ids),
    )
    return updated


async def process_group_deleted_in_course(session: AsyncSession, *, course_id: int) -> int:
    quiz_ids = await QuizOverridesRepo.delete_orphaned_group_overrides_in_course(
        session,
        course_id=course_id,
    )
    if not quiz_ids:
        return 0
    logger.info("quiz_group_overrides_removed", course_id=course_id, quiz_ids=quiz_ids)
    return await update_open_attempts(session, OpenAttemptFilters.build(quiz_ids=quiz_ids))
