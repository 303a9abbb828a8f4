from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from lms_quiz.attempts.bulk_refresh import (
    OpenAttemptFilters,
    process_group_deleted_in_course,
    update_open_attempts,
)
from lms_quiz.attempts.errors import QuizNotFoundError
from lms_quiz.attempts.hooks import AttemptEventDispatcher
from lms_quiz.attempts.lifecycle import prepare_and_start_new_attempt, resolve_next_attempt
from lms_quiz.attempts.permissions import AccessPolicy
from lms_quiz.db.models.quiz_attempts import QuizAttempt
from lms_quiz.db.repo.quizzes_repo import QuizzesRepo
from lms_quiz.questions.engine import QuestionEngine


class QuizAttemptServiceFacade:
    """Facade for attempt orchestration used by the API and worker layers."""

    @staticmethod
    async def start_or_resume_attempt(
        session: AsyncSession,
        *,
        quiz_id: int,
        user_id: int,
        policy: AccessPolicy,
        timenow: int,
        force_new_preview: bool = False,
        engine: QuestionEngine | None = None,
        dispatcher: AttemptEventDispatcher | None = None,
    ) -> QuizAttempt:
        quiz = await QuizzesRepo.get_by_id(session, quiz_id)
        if quiz is None:
            raise QuizNotFoundError(f"quiz {quiz_id} does not exist")
        decision = await resolve_next_attempt(
            session,
            quiz=quiz,
            user_id=user_id,
            policy=policy,
            timenow=timenow,
            force_new_preview=force_new_preview,
            engine=engine,
            dispatcher=dispatcher,
        )
        if decision.current_attempt is not None:
            return decision.current_attempt
        return await prepare_and_start_new_attempt(
            session,
            quiz_id=quiz_id,
            user_id=user_id,
            attempt_number=int(decision.attempt_number or 1),
            last_attempt=decision.last_attempt,
            policy=policy,
            timenow=timenow,
            engine=engine,
            dispatcher=dispatcher,
        )

    @staticmethod
    async def refresh_open_attempts(
        session: AsyncSession,
        *,
        filters: OpenAttemptFilters,
    ) -> int:
        return await update_open_attempts(session, filters)

    @staticmethod
    async def handle_group_deleted(session: AsyncSession, *, course_id: int) -> int:
        return await process_group_deleted_in_course(session, course_id=course_id)
