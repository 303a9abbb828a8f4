from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from sqlalchemy import and_, case, func, null, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from lms_quiz.attempts.constants import ATTEMPT_STATE_OVERDUE, OPEN_ATTEMPT_STATES
from lms_quiz.db.models.course_groups import GroupMember
from lms_quiz.db.models.quiz_attempts import QuizAttempt
from lms_quiz.db.models.quiz_overrides import QuizOverride
from lms_quiz.db.models.quizzes import Quiz
from lms_quiz.db.repo.quiz_overrides_repo import QuizOverridesRepo


@dataclass(frozen=True, slots=True)
class OverrideTiming:
    time_open: int | None = None
    time_close: int | None = None
    time_limit: int | None = None


@dataclass(frozen=True, slots=True)
class EffectiveTiming:
    time_open: int
    time_close: int
    time_limit: int


def resolve_most_lenient(values: Iterable[int | None], default: int) -> int:
    """Latest applicable override value, where 0 (unlimited) beats any finite value.

    Zero wins even over a later user override; the quiz default is only used
    when no override provides a value.
    """
    provided = [int(value) for value in values if value is not None]
    if not provided:
        return int(default)
    if min(provided) == 0:
        return 0
    return max(provided)


def resolve_earliest_open(values: Iterable[int | None], default: int) -> int:
    provided = [int(value) for value in values if value is not None]
    if not provided:
        return int(default)
    if min(provided) == 0:
        return 0
    return min(provided)


def resolve_user_timing(
    *,
    quiz_time_open: int,
    quiz_time_close: int,
    quiz_time_limit: int,
    overrides: Sequence[OverrideTiming],
) -> EffectiveTiming:
    return EffectiveTiming(
        time_open=resolve_earliest_open((item.time_open for item in overrides), quiz_time_open),
        time_close=resolve_most_lenient((item.time_close for item in overrides), quiz_time_close),
        time_limit=resolve_most_lenient((item.time_limit for item in overrides), quiz_time_limit),
    )


def compute_attempt_end_time(*, time_start: int, time_close: int, time_limit: int) -> int | None:
    if time_limit == 0 and time_close == 0:
        return None
    if time_limit == 0:
        return time_close
    if time_close == 0:
        return time_start + time_limit
    return min(time_start + time_limit, time_close)


def compute_time_check_state(
    *,
    state: str,
    time_start: int,
    time_close: int,
    time_limit: int,
    grace_period: int,
    preview: bool = False,
) -> int | None:
    if preview:
        return None
    end_time = compute_attempt_end_time(
        time_start=time_start,
        time_close=time_close,
        time_limit=time_limit,
    )
    if end_time is None:
        return None
    if state == ATTEMPT_STATE_OVERDUE:
        return end_time + grace_period
    return end_time


def time_check_state_expression(
    *,
    state: ColumnElement,
    time_start: ColumnElement,
    time_close: ColumnElement,
    time_limit: ColumnElement,
    grace_period: ColumnElement,
) -> ColumnElement:
    end_time = case(
        (and_(time_limit == 0, time_close == 0), null()),
        (time_limit == 0, time_close),
        (time_close == 0, time_start + time_limit),
        (time_start + time_limit < time_close, time_start + time_limit),
        else_=time_close,
    )
    return end_time + case((state == ATTEMPT_STATE_OVERDUE, grace_period), else_=0)


def most_lenient_expression(override_column: ColumnElement, quiz_default: ColumnElement) -> ColumnElement:
    return case(
        (func.min(override_column) == 0, 0),
        else_=func.coalesce(func.max(override_column), quiz_default),
    )


def attempt_user_timing_subquery(*filters: ColumnElement):
    """Per-attempt effective close time and time limit for open attempts."""

    user_group_ids = select(GroupMember.group_id).where(GroupMember.user_id == QuizAttempt.user_id)
    stmt = (
        select(
            QuizAttempt.id.label("attempt_id"),
            most_lenient_expression(QuizOverride.time_close, Quiz.time_close).label("user_time_close"),
            most_lenient_expression(QuizOverride.time_limit, Quiz.time_limit).label("user_time_limit"),
        )
        .select_from(QuizAttempt)
        .join(Quiz, Quiz.id == QuizAttempt.quiz_id)
        .outerjoin(
            QuizOverride,
            and_(
                QuizOverride.quiz_id == QuizAttempt.quiz_id,
                or_(
                    QuizOverride.user_id == QuizAttempt.user_id,
                    QuizOverride.group_id.in_(user_group_ids),
                ),
            ),
        )
        .where(QuizAttempt.state.in_(tuple(OPEN_ATTEMPT_STATES)), *filters)
        .group_by(QuizAttempt.id, Quiz.time_close, Quiz.time_limit)
    )
    return stmt.subquery("attempt_user_timing")


async def load_effective_timing(session: AsyncSession, *, quiz: Quiz, user_id: int) -> EffectiveTiming:
    overrides = await QuizOverridesRepo.list_applicable_for_user(
        session,
        quiz_id=int(quiz.id),
        user_id=user_id,
    )
    return resolve_user_timing(
        quiz_time_open=int(quiz.time_open),
        quiz_time_close=int(quiz.time_close),
        quiz_time_limit=int(quiz.time_limit),
        overrides=[
            OverrideTiming(
                time_open=item.time_open,
                time_close=item.time_close,
                time_limit=item.time_limit,
            )
            for item in overrides
        ],
    )
