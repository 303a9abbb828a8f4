from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from lms_quiz.db.models.question_usages import QuestionAttemptRecord
from lms_quiz.db.models.questions import Question
from lms_quiz.db.repo.question_bank_repo import QUESTION_STATUS_DRAFT, QuestionBankRepo
from lms_quiz.db.repo.question_usages_repo import QuestionUsagesRepo
from lms_quiz.questions.errors import QuestionNotFoundError, UsageNotFoundError
from lms_quiz.questions.types import QuestionDefinition
from lms_quiz.questions.usage import QuestionAttempt, QuestionUsage
from lms_quiz.questions.variants import VariantStrategy

logger = structlog.get_logger(__name__)

USAGE_COMPONENT = "mod_quiz"


def to_question_definition(question: Question, *, shuffle_answers: bool = True) -> QuestionDefinition:
    return QuestionDefinition(
        question_id=int(question.id),
        bank_entry_id=int(question.bank_entry_id),
        version=int(question.version),
        status=str(question.status),
        qtype=str(question.qtype),
        name=str(question.name),
        category_id=int(question.category_id),
        tags=tuple(question.tags or ()),
        default_mark=float(question.default_mark),
        variants=int(question.variants or 1),
        shuffle_answers=shuffle_answers,
    )


class QuestionEngine(Protocol):
    async def load_question(self, question_id: int, *, shuffle_answers: bool) -> QuestionDefinition: ...

    async def load_slot_question(
        self,
        *,
        bank_entry_id: int,
        requested_version: int | None,
        shuffle_answers: bool,
    ) -> QuestionDefinition: ...

    def make_usage(self, *, preferred_behaviour: str) -> QuestionUsage: ...

    def register(self, usage: QuestionUsage, question: QuestionDefinition, max_mark: float) -> int: ...

    async def start_all(
        self,
        usage: QuestionUsage,
        *,
        variant_strategy: VariantStrategy,
        timestamp: int,
        user_id: int,
    ) -> None: ...

    async def save(self, usage: QuestionUsage) -> int: ...

    async def delete(self, usage_id: int) -> None: ...

    async def load_by_id(self, usage_id: int) -> QuestionUsage: ...

    async def upgrade_to_latest_versions(self, usage: QuestionUsage, *, slots: Iterable[int]) -> list[int]: ...


class SqlQuestionEngine:
    """Question engine backed by the question bank and usage tables."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def load_question(self, question_id: int, *, shuffle_answers: bool) -> QuestionDefinition:
        question = await QuestionBankRepo.get_by_id(self._session, question_id)
        if question is None:
            raise QuestionNotFoundError(f"question {question_id} does not exist")
        return to_question_definition(question, shuffle_answers=shuffle_answers)

    async def load_slot_question(
        self,
        *,
        bank_entry_id: int,
        requested_version: int | None,
        shuffle_answers: bool,
    ) -> QuestionDefinition:
        question = await QuestionBankRepo.get_for_bank_entry(
            self._session,
            bank_entry_id=bank_entry_id,
            version=requested_version,
        )
        if question is None:
            raise QuestionNotFoundError(
                f"question bank entry {bank_entry_id} has no version {requested_version or 'available'}"
            )
        return to_question_definition(question, shuffle_answers=shuffle_answers)

    def make_usage(self, *, preferred_behaviour: str) -> QuestionUsage:
        return QuestionUsage(preferred_behaviour=preferred_behaviour, component=USAGE_COMPONENT)

    def register(self, usage: QuestionUsage, question: QuestionDefinition, max_mark: float) -> int:
        return usage.add_question(question, max_mark)

    async def start_all(
        self,
        usage: QuestionUsage,
        *,
        variant_strategy: VariantStrategy,
        timestamp: int,
        user_id: int,
    ) -> None:
        for qa in usage:
            variant = await variant_strategy.choose_variant(qa.question, qa.slot)
            usage.start_question(qa.slot, variant=variant, timestamp=timestamp, user_id=user_id)

    async def save(self, usage: QuestionUsage) -> int:
        if usage.usage_id is None:
            record = await QuestionUsagesRepo.create(
                self._session,
                component=usage.component,
                preferred_behaviour=usage.preferred_behaviour,
            )
            usage.usage_id = int(record.id)
        else:
            existing = await QuestionUsagesRepo.list_attempts(self._session, usage_id=usage.usage_id)
            for record in existing:
                await self._session.delete(record)
            await self._session.flush()

        await QuestionUsagesRepo.add_attempts(
            self._session,
            records=[_to_record(usage.usage_id, qa) for qa in usage],
        )
        return usage.usage_id

    async def delete(self, usage_id: int) -> None:
        await QuestionUsagesRepo.delete_by_id(self._session, usage_id)

    async def load_by_id(self, usage_id: int) -> QuestionUsage:
        record = await QuestionUsagesRepo.get_by_id(self._session, usage_id)
        if record is None:
            raise UsageNotFoundError(f"question usage {usage_id} does not exist")
        attempt_records = await QuestionUsagesRepo.list_attempts(self._session, usage_id=usage_id)
        questions = await QuestionBankRepo.list_by_ids(
            self._session,
            question_ids=[item.question_id for item in attempt_records],
        )
        questions_by_id = {int(question.id): question for question in questions}

        usage = QuestionUsage(
            preferred_behaviour=record.preferred_behaviour,
            component=record.component,
            usage_id=int(record.id),
        )
        for item in attempt_records:
            question = questions_by_id.get(int(item.question_id))
            if question is None:
                raise QuestionNotFoundError(f"question {item.question_id} does not exist")
            usage.question_attempts[int(item.slot)] = QuestionAttempt(
                slot=int(item.slot),
                question=to_question_definition(question, shuffle_answers=bool(item.shuffle_answers)),
                max_mark=float(item.max_mark),
                variant=item.variant,
                state=item.state,
                fraction=item.fraction,
                response_summary=item.response_summary,
                time_started=item.time_started,
                started_by_user_id=item.started_by_user_id,
            )
        return usage

    async def upgrade_to_latest_versions(self, usage: QuestionUsage, *, slots: Iterable[int]) -> list[int]:
        upgraded_slots: list[int] = []
        for slot in slots:
            qa = usage.get_question_attempt(slot)
            latest = await QuestionBankRepo.get_for_bank_entry(
                self._session,
                bank_entry_id=qa.question.bank_entry_id,
            )
            if latest is None or latest.status == QUESTION_STATUS_DRAFT:
                continue
            if int(latest.id) == qa.question.question_id:
                continue
            qa.question = to_question_definition(latest, shuffle_answers=qa.question.shuffle_answers)
            if usage.usage_id is not None:
                await QuestionUsagesRepo.set_question_id(
                    self._session,
                    usage_id=usage.usage_id,
                    slot=slot,
                    question_id=qa.question.question_id,
                )
            upgraded_slots.append(slot)
        if upgraded_slots:
            logger.info(
                "question_usage_versions_upgraded",
                usage_id=usage.usage_id,
                slots=upgraded_slots,
            )
        return upgraded_slots


def _to_record(usage_id: int, qa: QuestionAttempt) -> QuestionAttemptRecord:
    return QuestionAttemptRecord(
        usage_id=usage_id,
        slot=qa.slot,
        question_id=qa.question.question_id,
        max_mark=qa.max_mark,
        variant=qa.variant or 1,
        shuffle_answers=qa.question.shuffle_answers,
        state=qa.state,
        fraction=qa.fraction,
        response_summary=qa.response_summary,
        time_started=qa.time_started or 0,
        started_by_user_id=qa.started_by_user_id,
    )
