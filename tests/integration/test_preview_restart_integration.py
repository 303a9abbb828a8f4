from __future__ import annotations

import pytest
from sqlalchemy import select

from lms_quiz.db.models.quiz_attempts import QuizAttempt
from lms_quiz.db.models.quizzes import Quiz
from lms_quiz.db.repo.quiz_attempts_repo import QuizAttemptsRepo
from lms_quiz.db.session import SessionLocal


async def _seed_quiz() -> int:
    async with SessionLocal.begin() as session:
        quiz = Quiz(course_id=7, name="Practice quiz")
        session.add(quiz)
        await session.flush()
        return int(quiz.id)


async def _add_attempt(quiz_id: int, user_id: int, *, attempt: int, state: str, preview: bool) -> int:
    async with SessionLocal.begin() as session:
        row = QuizAttempt(
            quiz_id=quiz_id,
            user_id=user_id,
            attempt=attempt,
            state=state,
            preview=preview,
            time_start=1000,
        )
        session.add(row)
        await session.flush()
        return int(row.id)


async def _states() -> dict[int, str]:
    async with SessionLocal() as session:
        result = await session.execute(select(QuizAttempt.id, QuizAttempt.state))
        return {int(attempt_id): str(state) for attempt_id, state in result.all()}


@pytest.mark.asyncio
async def test_restarting_preview_only_abandons_unfinished_previews() -> None:
    quiz_id = await _seed_quiz()
    graded = await _add_attempt(quiz_id, 5, attempt=1, state="finished", preview=False)
    open_attempt = await _add_attempt(quiz_id, 5, attempt=2, state="inprogress", preview=False)
    open_preview = await _add_attempt(quiz_id, 5, attempt=3, state="inprogress", preview=True)
    closed_preview = await _add_attempt(quiz_id, 5, attempt=4, state="finished", preview=True)
    other_user_preview = await _add_attempt(quiz_id, 6, attempt=1, state="inprogress", preview=True)

    async with SessionLocal.begin() as session:
        abandoned = await QuizAttemptsRepo.abandon_open_previews_for_user(session, quiz_id=quiz_id, user_id=5)

    assert abandoned == 1
    assert await _states() == {
        graded: "finished",
        open_attempt: "inprogress",
        open_preview: "abandoned",
        closed_preview: "finished",
        other_user_preview: "inprogress",
    }
