from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lms_quiz.db.models.question_usages import QuestionAttemptRecord
from lms_quiz.db.models.questions import Question

QUESTION_STATUS_READY = "ready"
QUESTION_STATUS_HIDDEN = "hidden"
QUESTION_STATUS_DRAFT = "draft"


class QuestionBankRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, question_id: int) -> Question | None:
        return await session.get(Question, question_id)

    @staticmethod
    async def list_by_ids(session: AsyncSession, *, question_ids: Sequence[int]) -> list[Question]:
        if not question_ids:
            return []
        stmt = select(Question).where(Question.id.in_(tuple(question_ids)))
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def get_for_bank_entry(
        session: AsyncSession,
        *,
        bank_entry_id: int,
        version: int | None = None,
    ) -> Question | None:
        stmt = select(Question).where(Question.bank_entry_id == bank_entry_id)
        if version is not None:
            stmt = stmt.where(Question.version == version)
        else:
            # Latest non-draft version; a draft is only returned when nothing else exists.
            stmt = stmt.order_by(
                case((Question.status == QUESTION_STATUS_DRAFT, 1), else_=0).asc(),
                Question.version.desc(),
            )
        result = await session.execute(stmt.limit(1))
        return result.scalar_one_or_none()

    @staticmethod
    async def list_candidate_ids(
        session: AsyncSession,
        *,
        category_id: int,
        tags: Sequence[str] = (),
    ) -> list[int]:
        latest_versions = (
            select(
                Question.bank_entry_id.label("bank_entry_id"),
                func.max(Question.version).label("version"),
            )
            .where(Question.status != QUESTION_STATUS_DRAFT)
            .group_by(Question.bank_entry_id)
            .subquery()
        )
        stmt = (
            select(Question.id)
            .join(
                latest_versions,
                (latest_versions.c.bank_entry_id == Question.bank_entry_id)
                & (latest_versions.c.version == Question.version),
            )
            .where(
                Question.category_id == category_id,
                Question.status == QUESTION_STATUS_READY,
            )
            .order_by(Question.id.asc())
        )
        if tags:
            stmt = stmt.where(Question.tags.contains(list(tags)))
        result = await session.execute(stmt)
        return [int(question_id) for question_id in result.scalars().all()]

    @staticmethod
    async def count_question_usages(
        session: AsyncSession,
        *,
        usage_ids: Sequence[int],
        question_ids: Sequence[int],
    ) -> dict[int, int]:
        if not usage_ids or not question_ids:
            return {}
        stmt = (
            select(QuestionAttemptRecord.question_id, func.count(QuestionAttemptRecord.id))
            .where(
                QuestionAttemptRecord.usage_id.in_(tuple(usage_ids)),
                QuestionAttemptRecord.question_id.in_(tuple(question_ids)),
            )
            .group_by(QuestionAttemptRecord.question_id)
        )
        result = await session.execute(stmt)
        return {int(question_id): int(count) for question_id, count in result.all()}

    @staticmethod
    async def count_variant_usages(
        session: AsyncSession,
        *,
        usage_ids: Sequence[int],
        question_id: int,
    ) -> dict[int, int]:
        if not usage_ids:
            return {}
        stmt = (
            select(QuestionAttemptRecord.variant, func.count(QuestionAttemptRecord.id))
            .where(
                QuestionAttemptRecord.usage_id.in_(tuple(usage_ids)),
                QuestionAttemptRecord.question_id == question_id,
            )
            .group_by(QuestionAttemptRecord.variant)
        )
        result = await session.execute(stmt)
        return {int(variant): int(count) for variant, count in result.all()}
