from __future__ import annotations

import random
from collections.abc import Mapping, Sequence
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from lms_quiz.db.repo.question_bank_repo import QuestionBankRepo
from lms_quiz.questions.types import QuestionDefinition


class VariantStrategy(Protocol):
    async def choose_variant(self, question: QuestionDefinition, slot: int) -> int: ...


def pick_least_used_variant(
    variants: int,
    usage_counts: Mapping[int, int],
    *,
    rng: random.Random,
) -> int:
    if variants <= 1:
        return 1
    counts = {variant: int(usage_counts.get(variant, 0)) for variant in range(1, variants + 1)}
    lowest = min(counts.values())
    return rng.choice([variant for variant, count in counts.items() if count == lowest])


class LeastUsedVariantStrategy:
    """Picks the variant this user has seen least often in earlier attempts."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        prior_usage_ids: Sequence[int],
        rng: random.Random | None = None,
    ) -> None:
        self._session = session
        self._prior_usage_ids = tuple(prior_usage_ids)
        self._rng = rng or random.Random()

    async def choose_variant(self, question: QuestionDefinition, slot: int) -> int:
        del slot
        if question.variants <= 1:
            return 1
        usage_counts = await QuestionBankRepo.count_variant_usages(
            self._session,
            usage_ids=self._prior_usage_ids,
            question_id=question.question_id,
        )
        return pick_least_used_variant(question.variants, usage_counts, rng=self._rng)


class ForcedVariantStrategy:
    def __init__(self, forced_variants: Mapping[int, int], fallback: VariantStrategy) -> None:
        self._forced_variants = dict(forced_variants)
        self._fallback = fallback

    async def choose_variant(self, question: QuestionDefinition, slot: int) -> int:
        forced = self._forced_variants.get(slot)
        if forced is not None:
            return min(max(1, int(forced)), question.variants)
        return await self._fallback.choose_variant(question, slot)
