from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

import structlog

from lms_quiz.attempts.errors import (
    ForcedQuestionUnavailableError,
    NotEnoughRandomQuestionsError,
    QuestionDraftOnlyError,
)
from lms_quiz.attempts.structure import SlotDefinition
from lms_quiz.db.repo.question_bank_repo import QUESTION_STATUS_DRAFT
from lms_quiz.questions.engine import QuestionEngine
from lms_quiz.questions.random_loader import RandomQuestionLoader
from lms_quiz.questions.types import QuestionDefinition

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class SelectedQuestion:
    slot: int
    question: QuestionDefinition
    max_mark: float
    from_random_slot: bool = False


async def select_questions(
    *,
    engine: QuestionEngine,
    loader: RandomQuestionLoader,
    slots: Sequence[SlotDefinition],
    shuffle_answers: bool,
    forced_question_ids: Mapping[int, int] | None = None,
) -> dict[int, SelectedQuestion]:
    """Resolve one concrete question per slot, keyed by slot number.

    Fixed slots are loaded first so that a draft-only question fails the
    whole selection before any random pick is made.
    """

    forced_question_ids = forced_question_ids or {}
    ordered_slots = sorted(slots, key=lambda item: item.slot)
    selected: dict[int, SelectedQuestion] = {}

    for slot in ordered_slots:
        if slot.is_random:
            continue
        question = await engine.load_slot_question(
            bank_entry_id=int(slot.bank_entry_id),
            requested_version=slot.requested_version,
            shuffle_answers=shuffle_answers,
        )
        if question.status == QUESTION_STATUS_DRAFT:
            raise QuestionDraftOnlyError(question.name)
        loader.mark_used(question.question_id)
        selected[slot.slot] = SelectedQuestion(
            slot=slot.slot,
            question=question,
            max_mark=slot.max_mark,
        )

    for slot in ordered_slots:
        if not slot.is_random:
            continue
        forced_question_id = forced_question_ids.get(slot.slot)
        if forced_question_id is not None:
            if not await loader.is_question_available(slot.random_filter, forced_question_id):
                raise ForcedQuestionUnavailableError(slot.slot, forced_question_id)
            loader.mark_used(forced_question_id)
            question_id = forced_question_id
        else:
            question_id = await loader.get_next_question_id(slot.random_filter)
            if question_id is None:
                raise NotEnoughRandomQuestionsError(slot.slot)

        question = await engine.load_question(question_id, shuffle_answers=shuffle_answers)
        selected[slot.slot] = SelectedQuestion(
            slot=slot.slot,
            question=question,
            max_mark=slot.max_mark,
            from_random_slot=True,
        )

    logger.debug(
        "quiz_questions_selected",
        slots=len(selected),
        random_slots=sum(1 for item in selected.values() if item.from_random_slot),
    )
    return dict(sorted(selected.items()))
