from __future__ import annotations

import random
from collections.abc import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from lms_quiz.db.repo.question_bank_repo import QuestionBankRepo
from lms_quiz.questions.types import RandomFilter


class RandomQuestionLoader:
    """Stateful picker for random slots within a single attempt.

    Candidates are ranked by how often the user already met them in the
    prior usages, least used first, with a random tie-break. A question is
    never handed out twice within the same attempt.
    """

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
        self._usage_counts: dict[RandomFilter, dict[int, int]] = {}
        self._used_question_ids: set[int] = set()

    def mark_used(self, question_id: int) -> None:
        self._used_question_ids.add(int(question_id))

    async def _load_usage_counts(self, random_filter: RandomFilter) -> dict[int, int]:
        cached = self._usage_counts.get(random_filter)
        if cached is not None:
            return cached
        candidate_ids = await QuestionBankRepo.list_candidate_ids(
            self._session,
            category_id=random_filter.category_id,
            tags=random_filter.tags,
        )
        prior_counts = await QuestionBankRepo.count_question_usages(
            self._session,
            usage_ids=self._prior_usage_ids,
            question_ids=candidate_ids,
        )
        counts = {question_id: prior_counts.get(question_id, 0) for question_id in candidate_ids}
        self._usage_counts[random_filter] = counts
        return counts

    async def get_next_question_id(self, random_filter: RandomFilter) -> int | None:
        counts = await self._load_usage_counts(random_filter)
        remaining = {
            question_id: count
            for question_id, count in counts.items()
            if question_id not in self._used_question_ids
        }
        if not remaining:
            return None
        lowest = min(remaining.values())
        least_used = sorted(question_id for question_id, count in remaining.items() if count == lowest)
        selected_id = self._rng.choice(least_used)
        counts[selected_id] += 1
        self.mark_used(selected_id)
        return selected_id

    async def is_question_available(self, random_filter: RandomFilter, question_id: int) -> bool:
        counts = await self._load_usage_counts(random_filter)
        return question_id in counts
