from __future__ import annotations

import random
from collections.abc import Mapping
from dataclasses import dataclass

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from lms_quiz.attempts.builder import build_attempt_on_last, build_new_attempt
from lms_quiz.attempts.constants import (
    ALMOST_ZERO,
    ATTEMPT_STATE_IN_PROGRESS,
    ATTEMPT_STATE_NOT_STARTED,
    CAPABILITY_ATTEMPT,
    CAPABILITY_PREVIEW,
    EVENT_ATTEMPT_DELETED,
    EVENT_ATTEMPT_PREVIEW_STARTED,
    EVENT_ATTEMPT_STARTED,
    TERMINAL_ATTEMPT_STATES,
    UNFINISHED_ATTEMPT_STATES,
)
from lms_quiz.attempts.deadlines import EffectiveTiming, compute_time_check_state, load_effective_timing
from lms_quiz.attempts.errors import (
    AttemptAccessError,
    AttemptAlreadyClosedError,
    AttemptNotFoundError,
    PreviousAttemptMissingError,
    QuestionUsageNotFoundError,
    UngradeableQuizError,
)
from lms_quiz.attempts.grading import recompute_final_grade
from lms_quiz.attempts.hooks import (
    AttemptEventDispatcher,
    AttemptSnapshot,
    AttemptStateChanged,
    OutboxAttemptEventDispatcher,
)
from lms_quiz.attempts.permissions import AccessPolicy
from lms_quiz.attempts.structure import QuizStructure, load_quiz_structure
from lms_quiz.attempts.transitions import ensure_transition_allowed, handle_if_time_expired
from lms_quiz.db.models.quiz_attempts import QuizAttempt
from lms_quiz.db.models.quizzes import Quiz
from lms_quiz.db.repo.quiz_attempts_repo import QuizAttemptsRepo
from lms_quiz.db.repo.quiz_grades_repo import QuizGradesRepo
from lms_quiz.questions.engine import QuestionEngine, SqlQuestionEngine
from lms_quiz.questions.errors import UsageNotFoundError
from lms_quiz.questions.random_loader import RandomQuestionLoader
from lms_quiz.questions.usage import QuestionUsage
from lms_quiz.questions.variants import LeastUsedVariantStrategy

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class NextAttemptDecision:
    current_attempt: QuizAttempt | None
    attempt_number: int | None
    last_attempt: QuizAttempt | None
    is_preview_user: bool


def quiz_snapshot(quiz: Quiz) -> dict[str, object]:
    return {
        "id": quiz.id,
        "course_id": quiz.course_id,
        "name": quiz.name,
        "grade": quiz.grade,
        "sum_grades": quiz.sum_grades,
        "time_open": quiz.time_open,
        "time_close": quiz.time_close,
        "time_limit": quiz.time_limit,
        "attempt_on_last": quiz.attempt_on_last,
    }


def create_attempt(
    *,
    quiz: Quiz,
    attempt_number: int,
    last_attempt: QuizAttempt | None,
    timenow: int,
    user_id: int,
    is_preview: bool = False,
    timing: EffectiveTiming | None = None,
) -> QuizAttempt:
    """Build an unsaved, not-started attempt."""

    if float(quiz.sum_grades) < ALMOST_ZERO and float(quiz.grade) > ALMOST_ZERO:
        raise UngradeableQuizError(int(quiz.id), float(quiz.grade))

    build_on_last = attempt_number > 1 and bool(quiz.attempt_on_last)
    if build_on_last and last_attempt is None:
        raise PreviousAttemptMissingError(
            f"cannot find the previous attempt to build attempt {attempt_number} of quiz {quiz.id} on"
        )

    timing = timing or EffectiveTiming(
        time_open=int(quiz.time_open),
        time_close=int(quiz.time_close),
        time_limit=int(quiz.time_limit),
    )
    preview = is_preview or bool(build_on_last and last_attempt.preview)
    return QuizAttempt(
        quiz_id=int(quiz.id),
        user_id=user_id,
        attempt=attempt_number,
        unique_id=None,
        layout=last_attempt.layout if build_on_last else "",
        current_page=0,
        preview=preview,
        state=ATTEMPT_STATE_NOT_STARTED,
        time_start=timenow,
        time_finish=0,
        time_modified=timenow,
        time_modified_offline=0,
        time_check_state=compute_time_check_state(
            state=ATTEMPT_STATE_IN_PROGRESS,
            time_start=timenow,
            time_close=timing.time_close,
            time_limit=timing.time_limit,
            grace_period=int(quiz.grace_period),
            preview=preview,
        ),
        sum_grades=None,
        graded_notification_sent_time=None,
    )


async def save_started(
    session: AsyncSession,
    *,
    quiz: Quiz,
    usage: QuestionUsage,
    attempt: QuizAttempt,
    timenow: int,
    engine: QuestionEngine | None = None,
    dispatcher: AttemptEventDispatcher | None = None,
    structure: QuizStructure | None = None,
) -> QuizAttempt:
    engine = engine or SqlQuestionEngine(session)
    dispatcher = dispatcher or OutboxAttemptEventDispatcher(session)

    attempt.time_start = timenow
    timing = await load_effective_timing(session, quiz=quiz, user_id=int(attempt.user_id))
    attempt.time_check_state = compute_time_check_state(
        state=ATTEMPT_STATE_IN_PROGRESS,
        time_start=timenow,
        time_close=timing.time_close,
        time_limit=timing.time_limit,
        grace_period=int(quiz.grace_period),
        preview=bool(attempt.preview),
    )

    before: AttemptSnapshot | None = None
    if attempt.id is not None and attempt.state == ATTEMPT_STATE_NOT_STARTED:
        before = AttemptSnapshot.from_attempt(attempt)
        # Questions may have been edited since the attempt was pre-created.
        await _upgrade_pre_created_questions(session, engine=engine, attempt=attempt, structure=structure)
        ensure_transition_allowed(attempt.state, ATTEMPT_STATE_IN_PROGRESS)
        attempt.state = ATTEMPT_STATE_IN_PROGRESS
        await session.flush()
    else:
        attempt.unique_id = await engine.save(usage)
        ensure_transition_allowed(attempt.state, ATTEMPT_STATE_IN_PROGRESS)
        attempt.state = ATTEMPT_STATE_IN_PROGRESS
        await QuizAttemptsRepo.create(session, attempt=attempt)

    after = AttemptSnapshot.from_attempt(attempt)
    event_name = EVENT_ATTEMPT_PREVIEW_STARTED if attempt.preview else EVENT_ATTEMPT_STARTED
    await dispatcher.emit(
        event_name,
        object_id=attempt.id,
        related_user_id=int(attempt.user_id),
        payload={"quiz_id": int(quiz.id), "course_id": int(quiz.course_id)},
        snapshots={"quiz": quiz_snapshot(quiz), "quiz_attempts": after.as_dict()},
    )
    await dispatcher.dispatch_state_changed(AttemptStateChanged(before=before, after=after))
    logger.info(
        "quiz_attempt_started",
        attempt_id=attempt.id,
        quiz_id=quiz.id,
        user_id=attempt.user_id,
        attempt_number=attempt.attempt,
        preview=attempt.preview,
        time_check_state=attempt.time_check_state,
    )
    return attempt


async def _upgrade_pre_created_questions(
    session: AsyncSession,
    *,
    engine: QuestionEngine,
    attempt: QuizAttempt,
    structure: QuizStructure | None,
) -> None:
    if attempt.unique_id is None:
        raise QuestionUsageNotFoundError(f"attempt {attempt.id} has no question usage")
    try:
        usage = await engine.load_by_id(int(attempt.unique_id))
    except UsageNotFoundError as exc:
        raise QuestionUsageNotFoundError(str(exc)) from exc
    if structure is None:
        structure = await load_quiz_structure(session, quiz_id=int(attempt.quiz_id))
    latest_version_slots = [slot for slot in structure.latest_version_slots if slot in usage.question_attempts]
    await engine.upgrade_to_latest_versions(usage, slots=latest_version_slots)


async def save_not_started(
    session: AsyncSession,
    *,
    usage: QuestionUsage,
    attempt: QuizAttempt,
    engine: QuestionEngine | None = None,
    dispatcher: AttemptEventDispatcher | None = None,
) -> QuizAttempt:
    engine = engine or SqlQuestionEngine(session)
    dispatcher = dispatcher or OutboxAttemptEventDispatcher(session)

    attempt.unique_id = await engine.save(usage)
    attempt.state = ATTEMPT_STATE_NOT_STARTED
    await QuizAttemptsRepo.create(session, attempt=attempt)
    await dispatcher.dispatch_state_changed(
        AttemptStateChanged(before=None, after=AttemptSnapshot.from_attempt(attempt))
    )
    return attempt


async def get_user_attempt_unfinished(
    session: AsyncSession,
    *,
    quiz_id: int,
    user_id: int,
) -> QuizAttempt | None:
    return await QuizAttemptsRepo.get_latest_unfinished_for_user(session, quiz_id=quiz_id, user_id=user_id)


async def has_attempts(session: AsyncSession, *, quiz_id: int) -> bool:
    return await QuizAttemptsRepo.exists_non_preview(session, quiz_id=quiz_id)


async def delete_attempt(
    session: AsyncSession,
    *,
    attempt: QuizAttempt | int,
    quiz: Quiz,
    timenow: int,
    engine: QuestionEngine | None = None,
    dispatcher: AttemptEventDispatcher | None = None,
) -> AttemptSnapshot | None:
    engine = engine or SqlQuestionEngine(session)
    dispatcher = dispatcher or OutboxAttemptEventDispatcher(session)

    if isinstance(attempt, int):
        attempt_id = attempt
        loaded = await QuizAttemptsRepo.get_by_id(session, attempt_id)
        if loaded is None:
            raise AttemptNotFoundError(f"attempt {attempt_id} does not exist")
        attempt = loaded

    if int(attempt.quiz_id) != int(quiz.id):
        logger.warning(
            "quiz_attempt_delete_quiz_mismatch",
            attempt_id=attempt.id,
            attempt_quiz_id=attempt.quiz_id,
            quiz_id=quiz.id,
        )
        return None

    deleted = AttemptSnapshot.from_attempt(attempt)
    user_id = int(attempt.user_id)
    await QuizAttemptsRepo.delete_by_id(session, int(attempt.id))
    if attempt.unique_id is not None:
        await engine.delete(int(attempt.unique_id))

    if not attempt.preview:
        await dispatcher.emit(
            EVENT_ATTEMPT_DELETED,
            object_id=deleted.attempt_id,
            related_user_id=user_id,
            payload={"quiz_id": int(quiz.id)},
            snapshots={"quiz_attempts": deleted.as_dict()},
        )
        await dispatcher.dispatch_state_changed(AttemptStateChanged(before=deleted, after=None))

    if not await QuizAttemptsRepo.exists_for_user(session, quiz_id=int(quiz.id), user_id=user_id):
        await QuizGradesRepo.delete_for_user(session, quiz_id=int(quiz.id), user_id=user_id)
    else:
        await recompute_final_grade(session, quiz=quiz, user_id=user_id, timenow=timenow)

    logger.info(
        "quiz_attempt_deleted",
        attempt_id=deleted.attempt_id,
        quiz_id=quiz.id,
        user_id=user_id,
        preview=deleted.preview,
    )
    return deleted


async def delete_previews(
    session: AsyncSession,
    *,
    quiz: Quiz,
    timenow: int,
    user_id: int | None = None,
    engine: QuestionEngine | None = None,
    dispatcher: AttemptEventDispatcher | None = None,
) -> int:
    previews = await QuizAttemptsRepo.list_previews(session, quiz_id=int(quiz.id), user_id=user_id)
    for preview in previews:
        await delete_attempt(
            session,
            attempt=preview,
            quiz=quiz,
            timenow=timenow,
            engine=engine,
            dispatcher=dispatcher,
        )
    return len(previews)


async def resolve_next_attempt(
    session: AsyncSession,
    *,
    quiz: Quiz,
    user_id: int,
    policy: AccessPolicy,
    timenow: int,
    force_new_preview: bool = False,
    engine: QuestionEngine | None = None,
    dispatcher: AttemptEventDispatcher | None = None,
) -> NextAttemptDecision:
    """Decide whether the user resumes an unfinished attempt or starts attempt N+1."""

    quiz_id = int(quiz.id)
    is_preview_user = await policy.has_capability(CAPABILITY_PREVIEW, user_id=user_id, quiz_id=quiz_id)
    if not is_preview_user and not await policy.has_capability(
        CAPABILITY_ATTEMPT,
        user_id=user_id,
        quiz_id=quiz_id,
    ):
        raise AttemptAccessError(f"user {user_id} may not attempt quiz {quiz_id}")

    if is_preview_user and force_new_preview:
        # Abandoned previews are removed when the new attempt starts.
        await QuizAttemptsRepo.abandon_open_previews_for_user(session, quiz_id=quiz_id, user_id=user_id)

    attempts = await QuizAttemptsRepo.list_for_user(
        session,
        quiz_id=quiz_id,
        user_id=user_id,
        include_previews=True,
    )
    last_attempt = attempts[-1] if attempts else None

    if last_attempt is not None and last_attempt.state == ATTEMPT_STATE_NOT_STARTED:
        # A pre-created attempt is started in place, keeping its number.
        earlier = [item for item in attempts[:-1] if not item.preview]
        return NextAttemptDecision(
            current_attempt=None,
            attempt_number=int(last_attempt.attempt),
            last_attempt=earlier[-1] if earlier else None,
            is_preview_user=is_preview_user,
        )

    if last_attempt is not None and last_attempt.state in UNFINISHED_ATTEMPT_STATES:
        last_attempt = await handle_if_time_expired(
            session,
            attempt=last_attempt,
            quiz=quiz,
            engine=engine or SqlQuestionEngine(session),
            dispatcher=dispatcher or OutboxAttemptEventDispatcher(session),
            timenow=timenow,
        )
        if last_attempt.state in TERMINAL_ATTEMPT_STATES:
            raise AttemptAlreadyClosedError(f"attempt {last_attempt.id} is already closed")
        return NextAttemptDecision(
            current_attempt=last_attempt,
            attempt_number=None,
            last_attempt=last_attempt,
            is_preview_user=is_preview_user,
        )

    non_preview = [item for item in attempts if not item.preview]
    last_attempt = non_preview[-1] if non_preview else None
    return NextAttemptDecision(
        current_attempt=None,
        attempt_number=int(last_attempt.attempt) + 1 if last_attempt is not None else 1,
        last_attempt=last_attempt,
        is_preview_user=is_preview_user,
    )


async def prepare_and_start_new_attempt(
    session: AsyncSession,
    *,
    quiz_id: int,
    user_id: int,
    attempt_number: int,
    last_attempt: QuizAttempt | None,
    policy: AccessPolicy,
    timenow: int,
    offline: bool = False,
    forced_question_ids: Mapping[int, int] | None = None,
    forced_variants: Mapping[int, int] | None = None,
    engine: QuestionEngine | None = None,
    dispatcher: AttemptEventDispatcher | None = None,
    rng: random.Random | None = None,
) -> QuizAttempt:
    engine = engine or SqlQuestionEngine(session)
    dispatcher = dispatcher or OutboxAttemptEventDispatcher(session)

    structure = await load_quiz_structure(session, quiz_id=quiz_id)
    quiz = structure.quiz
    is_preview = await policy.has_capability(CAPABILITY_PREVIEW, user_id=user_id, quiz_id=quiz_id)

    async with session.begin_nested():
        await delete_previews(
            session,
            quiz=quiz,
            timenow=timenow,
            user_id=user_id,
            engine=engine,
            dispatcher=dispatcher,
        )

        usage = engine.make_usage(preferred_behaviour=quiz.preferred_behaviour)
        attempt = await QuizAttemptsRepo.get_not_started_for_user(session, quiz_id=quiz_id, user_id=user_id)
        if attempt is None:
            timing = await load_effective_timing(session, quiz=quiz, user_id=user_id)
            attempt = create_attempt(
                quiz=quiz,
                attempt_number=attempt_number,
                last_attempt=last_attempt,
                timenow=timenow,
                user_id=user_id,
                is_preview=is_preview,
                timing=timing,
            )
            if quiz.attempt_on_last and last_attempt is not None:
                await build_attempt_on_last(
                    engine=engine,
                    usage=usage,
                    attempt=attempt,
                    last_attempt=last_attempt,
                    timenow=timenow,
                )
            else:
                prior_usage_ids = await QuizAttemptsRepo.list_usage_ids_for_user(
                    session,
                    quiz_id=quiz_id,
                    user_id=user_id,
                )
                await build_new_attempt(
                    engine=engine,
                    usage=usage,
                    attempt=attempt,
                    structure=structure,
                    loader=RandomQuestionLoader(session, prior_usage_ids=prior_usage_ids, rng=rng),
                    variant_strategy=LeastUsedVariantStrategy(
                        session,
                        prior_usage_ids=prior_usage_ids,
                        rng=rng,
                    ),
                    timenow=timenow,
                    forced_question_ids=forced_question_ids,
                    forced_variants=forced_variants,
                    rng=rng,
                )

        if offline:
            attempt.time_modified_offline = attempt.time_modified
        attempt = await save_started(
            session,
            quiz=quiz,
            usage=usage,
            attempt=attempt,
            timenow=timenow,
            engine=engine,
            dispatcher=dispatcher,
            structure=structure,
        )
    return attempt
