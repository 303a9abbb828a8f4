from __future__ import annotations

import random
from collections.abc import Mapping

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from lms_quiz.attempts.constants import EVENT_QUIZ_REPAGINATED
from lms_quiz.attempts.errors import (
    QuestionDraftOnlyError,
    QuestionUsageNotFoundError,
    SlotNumberingError,
)
from lms_quiz.attempts.hooks import AttemptEventDispatcher, OutboxAttemptEventDispatcher
from lms_quiz.attempts.layout import (
    build_attempt_layout,
    format_layout,
    remap_layout,
    repaginate_slot_pages,
)
from lms_quiz.attempts.selection import select_questions
from lms_quiz.attempts.structure import QuizStructure
from lms_quiz.db.models.quiz_attempts import QuizAttempt
from lms_quiz.db.repo.question_bank_repo import QUESTION_STATUS_DRAFT
from lms_quiz.db.repo.quizzes_repo import QuizzesRepo
from lms_quiz.questions.engine import QuestionEngine
from lms_quiz.questions.errors import UsageNotFoundError
from lms_quiz.questions.random_loader import RandomQuestionLoader
from lms_quiz.questions.usage import QuestionUsage
from lms_quiz.questions.variants import ForcedVariantStrategy, VariantStrategy

logger = structlog.get_logger(__name__)


async def build_new_attempt(
    *,
    engine: QuestionEngine,
    usage: QuestionUsage,
    attempt: QuizAttempt,
    structure: QuizStructure,
    loader: RandomQuestionLoader,
    variant_strategy: VariantStrategy,
    timenow: int,
    forced_question_ids: Mapping[int, int] | None = None,
    forced_variants: Mapping[int, int] | None = None,
    rng: random.Random | None = None,
) -> QuizAttempt:
    quiz = structure.quiz
    selected = await select_questions(
        engine=engine,
        loader=loader,
        slots=structure.slots,
        shuffle_answers=bool(quiz.shuffle_answers),
        forced_question_ids=forced_question_ids,
    )

    for slot, item in selected.items():
        assigned_slot = engine.register(usage, item.question, item.max_mark)
        if assigned_slot != slot:
            raise SlotNumberingError(slot, assigned_slot)

    if forced_variants:
        variant_strategy = ForcedVariantStrategy(forced_variants, variant_strategy)
    await engine.start_all(
        usage,
        variant_strategy=variant_strategy,
        timestamp=timenow,
        user_id=int(attempt.user_id),
    )

    attempt.layout = format_layout(
        build_attempt_layout(
            structure.slot_pages,
            structure.sections,
            questions_per_page=int(quiz.questions_per_page),
            rng=rng,
        )
    )
    logger.info(
        "quiz_attempt_built",
        quiz_id=quiz.id,
        user_id=attempt.user_id,
        attempt_number=attempt.attempt,
        slots=len(selected),
    )
    return attempt


async def build_attempt_on_last(
    *,
    engine: QuestionEngine,
    usage: QuestionUsage,
    attempt: QuizAttempt,
    last_attempt: QuizAttempt,
    timenow: int,
) -> QuizAttempt:
    """Carry the previous attempt's questions, and their state, into a new usage."""

    if last_attempt.unique_id is None:
        raise QuestionUsageNotFoundError(f"attempt {last_attempt.id} has no question usage")
    try:
        old_usage = await engine.load_by_id(int(last_attempt.unique_id))
    except UsageNotFoundError as exc:
        raise QuestionUsageNotFoundError(str(exc)) from exc

    slot_map: dict[int, int] = {}
    for old_qa in old_usage:
        if old_qa.question.status == QUESTION_STATUS_DRAFT:
            raise QuestionDraftOnlyError(old_qa.question.name)
        new_slot = engine.register(usage, old_qa.question, old_qa.max_mark)
        usage.start_question_based_on(
            new_slot,
            old_qa,
            timestamp=timenow,
            user_id=int(attempt.user_id),
        )
        slot_map[old_qa.slot] = new_slot

    attempt.layout = remap_layout(last_attempt.layout, slot_map)
    logger.info(
        "quiz_attempt_built_on_last",
        quiz_id=attempt.quiz_id,
        user_id=attempt.user_id,
        attempt_number=attempt.attempt,
        previous_attempt_id=last_attempt.id,
        slots=len(slot_map),
    )
    return attempt


async def repaginate_slots(
    session: AsyncSession,
    *,
    quiz_id: int,
    slots_per_page: int,
    dispatcher: AttemptEventDispatcher | None = None,
) -> dict[int, int]:
    """Rewrite stored slot pages; every section after the first opens a new page."""

    dispatcher = dispatcher or OutboxAttemptEventDispatcher(session)
    async with session.begin_nested():
        sections = await QuizzesRepo.list_sections(session, quiz_id=quiz_id)
        slots = await QuizzesRepo.list_slots(session, quiz_id=quiz_id)
        new_pages = repaginate_slot_pages(
            [int(item.slot) for item in slots],
            section_first_slots=[int(item.first_slot) for item in sections],
            slots_per_page=slots_per_page,
        )
        for item in slots:
            page = new_pages[int(item.slot)]
            if int(item.page) != page:
                await QuizzesRepo.set_slot_page(session, slot_id=int(item.id), page=page)

    await dispatcher.emit(
        EVENT_QUIZ_REPAGINATED,
        object_id=quiz_id,
        related_user_id=None,
        payload={"slots_per_page": slots_per_page},
        snapshots={},
    )
    logger.info("quiz_repaginated", quiz_id=quiz_id, slots_per_page=slots_per_page)
    return new_pages
