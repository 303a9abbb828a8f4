from __future__ import annotations

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from lms_quiz.attempts.constants import (
    ALLOWED_TRANSITIONS,
    ATTEMPT_STATE_ABANDONED,
    ATTEMPT_STATE_FINISHED,
    ATTEMPT_STATE_OVERDUE,
    ATTEMPT_STATE_SUBMITTED,
    EVENT_ATTEMPT_ABANDONED,
    EVENT_ATTEMPT_BECAME_OVERDUE,
    EVENT_ATTEMPT_SUBMITTED,
    OPEN_ATTEMPT_STATES,
    OVERDUE_HANDLING_AUTOABANDON,
    OVERDUE_HANDLING_AUTOSUBMIT,
    OVERDUE_HANDLING_GRACEPERIOD,
)
from lms_quiz.attempts.deadlines import (
    compute_attempt_end_time,
    compute_time_check_state,
    load_effective_timing,
)
from lms_quiz.attempts.errors import (
    InvalidStateTransitionError,
    QuestionUsageNotFoundError,
    QuizAttemptError,
)
from lms_quiz.attempts.grading import recompute_final_grade
from lms_quiz.attempts.hooks import (
    AttemptEventDispatcher,
    AttemptSnapshot,
    AttemptStateChanged,
    OutboxAttemptEventDispatcher,
)
from lms_quiz.db.models.quiz_attempts import QuizAttempt
from lms_quiz.db.models.quizzes import Quiz
from lms_quiz.db.repo.quiz_attempts_repo import QuizAttemptsRepo
from lms_quiz.db.repo.quizzes_repo import QuizzesRepo
from lms_quiz.questions.engine import QuestionEngine, SqlQuestionEngine
from lms_quiz.questions.errors import UsageNotFoundError

logger = structlog.get_logger(__name__)


def ensure_transition_allowed(from_state: str | None, to_state: str) -> None:
    if from_state is None or to_state not in ALLOWED_TRANSITIONS.get(from_state, frozenset()):
        raise InvalidStateTransitionError(from_state, to_state)


async def transition_attempt(
    session: AsyncSession,
    *,
    attempt: QuizAttempt,
    to_state: str,
    dispatcher: AttemptEventDispatcher,
    timenow: int,
    event_name: str | None = None,
    time_check_state: int | None = None,
) -> QuizAttempt:
    ensure_transition_allowed(attempt.state, to_state)
    before = AttemptSnapshot.from_attempt(attempt)

    attempt.state = to_state
    attempt.time_modified = timenow
    attempt.time_check_state = time_check_state
    if to_state in (ATTEMPT_STATE_SUBMITTED, ATTEMPT_STATE_FINISHED, ATTEMPT_STATE_ABANDONED):
        if not attempt.time_finish:
            attempt.time_finish = timenow
    await session.flush()

    after = AttemptSnapshot.from_attempt(attempt)
    if event_name is not None and not attempt.preview:
        await dispatcher.emit(
            event_name,
            object_id=attempt.id,
            related_user_id=int(attempt.user_id),
            payload={"quiz_id": int(attempt.quiz_id), "timestamp": timenow},
            snapshots={"quiz_attempts": after.as_dict()},
        )
    await dispatcher.dispatch_state_changed(AttemptStateChanged(before=before, after=after))
    return attempt


async def finish_attempt(
    session: AsyncSession,
    *,
    attempt: QuizAttempt,
    quiz: Quiz,
    engine: QuestionEngine,
    dispatcher: AttemptEventDispatcher,
    timenow: int,
    time_finish: int | None = None,
) -> QuizAttempt:
    """Close an attempt; it waits in submitted while any question needs manual grading."""

    if attempt.unique_id is None:
        raise QuestionUsageNotFoundError(f"attempt {attempt.id} has no question usage")
    try:
        usage = await engine.load_by_id(int(attempt.unique_id))
    except UsageNotFoundError as exc:
        raise QuestionUsageNotFoundError(str(exc)) from exc

    attempt.time_finish = time_finish if time_finish is not None else timenow
    total_mark = usage.total_mark()
    if total_mark is None:
        attempt.sum_grades = None
        return await transition_attempt(
            session,
            attempt=attempt,
            to_state=ATTEMPT_STATE_SUBMITTED,
            dispatcher=dispatcher,
            timenow=timenow,
            event_name=EVENT_ATTEMPT_SUBMITTED,
        )

    attempt.sum_grades = total_mark
    attempt = await transition_attempt(
        session,
        attempt=attempt,
        to_state=ATTEMPT_STATE_FINISHED,
        dispatcher=dispatcher,
        timenow=timenow,
        event_name=EVENT_ATTEMPT_SUBMITTED,
    )
    if not attempt.preview:
        await recompute_final_grade(session, quiz=quiz, user_id=int(attempt.user_id), timenow=timenow)
    return attempt


async def complete_grading(
    session: AsyncSession,
    *,
    attempt: QuizAttempt,
    quiz: Quiz,
    engine: QuestionEngine,
    dispatcher: AttemptEventDispatcher,
    timenow: int,
) -> QuizAttempt:
    if attempt.state != ATTEMPT_STATE_SUBMITTED:
        raise InvalidStateTransitionError(attempt.state, ATTEMPT_STATE_FINISHED)
    return await finish_attempt(
        session,
        attempt=attempt,
        quiz=quiz,
        engine=engine,
        dispatcher=dispatcher,
        timenow=timenow,
        time_finish=int(attempt.time_finish or timenow),
    )


async def abandon_attempt(
    session: AsyncSession,
    *,
    attempt: QuizAttempt,
    dispatcher: AttemptEventDispatcher,
    timenow: int,
) -> QuizAttempt:
    return await transition_attempt(
        session,
        attempt=attempt,
        to_state=ATTEMPT_STATE_ABANDONED,
        dispatcher=dispatcher,
        timenow=timenow,
        event_name=EVENT_ATTEMPT_ABANDONED,
    )


async def mark_attempt_overdue(
    session: AsyncSession,
    *,
    attempt: QuizAttempt,
    quiz: Quiz,
    dispatcher: AttemptEventDispatcher,
    timenow: int,
) -> QuizAttempt:
    timing = await load_effective_timing(session, quiz=quiz, user_id=int(attempt.user_id))
    return await transition_attempt(
        session,
        attempt=attempt,
        to_state=ATTEMPT_STATE_OVERDUE,
        dispatcher=dispatcher,
        timenow=timenow,
        event_name=EVENT_ATTEMPT_BECAME_OVERDUE,
        time_check_state=compute_time_check_state(
            state=ATTEMPT_STATE_OVERDUE,
            time_start=int(attempt.time_start),
            time_close=timing.time_close,
            time_limit=timing.time_limit,
            grace_period=int(quiz.grace_period),
            preview=bool(attempt.preview),
        ),
    )


async def handle_if_time_expired(
    session: AsyncSession,
    *,
    attempt: QuizAttempt,
    quiz: Quiz,
    engine: QuestionEngine,
    dispatcher: AttemptEventDispatcher,
    timenow: int,
) -> QuizAttempt:
    if attempt.state not in OPEN_ATTEMPT_STATES:
        return attempt

    timing = await load_effective_timing(session, quiz=quiz, user_id=int(attempt.user_id))
    end_time = compute_attempt_end_time(
        time_start=int(attempt.time_start),
        time_close=timing.time_close,
        time_limit=timing.time_limit,
    )
    if end_time is None or timenow < end_time:
        # Overrides may have moved the deadline since the check time was stored.
        attempt.time_check_state = compute_time_check_state(
            state=attempt.state,
            time_start=int(attempt.time_start),
            time_close=timing.time_close,
            time_limit=timing.time_limit,
            grace_period=int(quiz.grace_period),
            preview=bool(attempt.preview),
        )
        await session.flush()
        return attempt

    grace_deadline = end_time + int(quiz.grace_period)
    if attempt.state == ATTEMPT_STATE_OVERDUE:
        if timenow >= grace_deadline:
            return await abandon_attempt(session, attempt=attempt, dispatcher=dispatcher, timenow=timenow)
        return attempt

    if quiz.overdue_handling == OVERDUE_HANDLING_AUTOSUBMIT:
        return await finish_attempt(
            session,
            attempt=attempt,
            quiz=quiz,
            engine=engine,
            dispatcher=dispatcher,
            timenow=timenow,
            time_finish=end_time,
        )
    if quiz.overdue_handling == OVERDUE_HANDLING_GRACEPERIOD and timenow < grace_deadline:
        return await mark_attempt_overdue(
            session,
            attempt=attempt,
            quiz=quiz,
            dispatcher=dispatcher,
            timenow=timenow,
        )
    if quiz.overdue_handling not in (OVERDUE_HANDLING_GRACEPERIOD, OVERDUE_HANDLING_AUTOABANDON):
        logger.warning(
            "quiz_unknown_overdue_handling",
            quiz_id=quiz.id,
            overdue_handling=quiz.overdue_handling,
        )
    return await abandon_attempt(session, attempt=attempt, dispatcher=dispatcher, timenow=timenow)


async def process_attempts_due(
    session: AsyncSession,
    *,
    timenow: int,
    batch_size: int,
    engine: QuestionEngine | None = None,
    dispatcher: AttemptEventDispatcher | None = None,
) -> dict[str, int]:
    engine = engine or SqlQuestionEngine(session)
    dispatcher = dispatcher or OutboxAttemptEventDispatcher(session)
    due_attempts = await QuizAttemptsRepo.list_due_for_update(session, timenow=timenow, limit=batch_size)

    quizzes: dict[int, Quiz | None] = {}
    result = {"examined": 0, "changed": 0, "failed": 0}
    for attempt in due_attempts:
        result["examined"] += 1
        quiz_id = int(attempt.quiz_id)
        if quiz_id not in quizzes:
            quizzes[quiz_id] = await QuizzesRepo.get_by_id(session, quiz_id)
        quiz = quizzes[quiz_id]
        if quiz is None:
            result["failed"] += 1
            logger.warning("quiz_attempt_due_missing_quiz", attempt_id=attempt.id, quiz_id=quiz_id)
            continue

        state_before = attempt.state
        try:
            async with session.begin_nested():
                await handle_if_time_expired(
                    session,
                    attempt=attempt,
                    quiz=quiz,
                    engine=engine,
                    dispatcher=dispatcher,
                    timenow=timenow,
                )
        except QuizAttemptError:
            result["failed"] += 1
            logger.exception("quiz_attempt_due_processing_failed", attempt_id=attempt.id)
            continue
        if attempt.state != state_before:
            result["changed"] += 1
    return result
