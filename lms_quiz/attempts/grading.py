from __future__ import annotations

from collections.abc import Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from lms_quiz.attempts.constants import (
    ALMOST_ZERO,
    GRADE_METHOD_AVERAGE,
    GRADE_METHOD_FIRST,
    GRADE_METHOD_LAST,
)
from lms_quiz.db.models.quizzes import Quiz
from lms_quiz.db.repo.quiz_attempts_repo import QuizAttemptsRepo
from lms_quiz.db.repo.quiz_grades_repo import QuizGradesRepo

logger = structlog.get_logger(__name__)


def rescale_grade(
    raw_grade: float | None,
    *,
    quiz_grade: float,
    quiz_sum_grades: float,
    decimal_points: int | None = None,
) -> float | None:
    if raw_grade is None:
        return None
    if quiz_sum_grades >= ALMOST_ZERO:
        grade = float(raw_grade) * float(quiz_grade) / float(quiz_sum_grades)
    else:
        grade = 0.0
    if decimal_points is not None:
        grade = round(grade, decimal_points)
    return grade


def calculate_best_grade(grade_method: int, attempt_grades: Sequence[float]) -> float | None:
    """Pick the raw grade that counts, attempts given in attempt-number order."""

    if not attempt_grades:
        return None
    if grade_method == GRADE_METHOD_FIRST:
        return float(attempt_grades[0])
    if grade_method == GRADE_METHOD_LAST:
        return float(attempt_grades[-1])
    if grade_method == GRADE_METHOD_AVERAGE:
        return sum(float(grade) for grade in attempt_grades) / len(attempt_grades)
    return max(float(grade) for grade in attempt_grades)


async def recompute_final_grade(
    session: AsyncSession,
    *,
    quiz: Quiz,
    user_id: int,
    timenow: int,
) -> float | None:
    attempts = await QuizAttemptsRepo.list_finished_graded_for_user(
        session,
        quiz_id=int(quiz.id),
        user_id=user_id,
    )
    best_grade = calculate_best_grade(
        int(quiz.grade_method),
        [float(item.sum_grades) for item in attempts if item.sum_grades is not None],
    )
    final_grade = rescale_grade(
        best_grade,
        quiz_grade=float(quiz.grade),
        quiz_sum_grades=float(quiz.sum_grades),
    )
    if final_grade is None:
        await QuizGradesRepo.delete_for_user(session, quiz_id=int(quiz.id), user_id=user_id)
        logger.info("quiz_grade_cleared", quiz_id=quiz.id, user_id=user_id)
        return None

    await QuizGradesRepo.upsert(
        session,
        quiz_id=int(quiz.id),
        user_id=user_id,
        grade=final_grade,
        time_modified=timenow,
    )
    logger.info("quiz_grade_recomputed", quiz_id=quiz.id, user_id=user_id, grade=final_grade)
    return final_grade
