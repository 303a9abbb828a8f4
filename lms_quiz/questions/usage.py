from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from lms_quiz.questions.errors import UnknownSlotError
from lms_quiz.questions.types import QuestionDefinition

QUESTION_STATE_NOT_STARTED = "notstarted"
QUESTION_STATE_TODO = "todo"
QUESTION_STATE_COMPLETE = "complete"
QUESTION_STATE_NEEDS_GRADING = "needsgrading"
QUESTION_STATE_GRADED_RIGHT = "gradedright"
QUESTION_STATE_GRADED_PARTIAL = "gradedpartial"
QUESTION_STATE_GRADED_WRONG = "gradedwrong"
QUESTION_STATE_GAVE_UP = "gaveup"

GRADED_QUESTION_STATES = frozenset(
    {
        QUESTION_STATE_GRADED_RIGHT,
        QUESTION_STATE_GRADED_PARTIAL,
        QUESTION_STATE_GRADED_WRONG,
        QUESTION_STATE_GAVE_UP,
    }
)


@dataclass(slots=True)
class QuestionAttempt:
    slot: int
    question: QuestionDefinition
    max_mark: float
    variant: int | None = None
    state: str = QUESTION_STATE_NOT_STARTED
    fraction: float | None = None
    response_summary: str | None = None
    time_started: int | None = None
    started_by_user_id: int | None = None

    @property
    def mark(self) -> float | None:
        if self.fraction is None:
            return None
        return self.fraction * self.max_mark

    @property
    def needs_grading(self) -> bool:
        return self.state == QUESTION_STATE_NEEDS_GRADING


@dataclass(slots=True)
class QuestionUsage:
    """In-memory set of question attempts belonging to one quiz attempt."""

    preferred_behaviour: str
    component: str = "mod_quiz"
    usage_id: int | None = None
    question_attempts: dict[int, QuestionAttempt] = field(default_factory=dict)

    def __iter__(self) -> Iterator[QuestionAttempt]:
        for slot in self.slots():
            yield self.question_attempts[slot]

    def __len__(self) -> int:
        return len(self.question_attempts)

    def slots(self) -> list[int]:
        return sorted(self.question_attempts)

    def next_slot_number(self) -> int:
        return len(self.question_attempts) + 1

    def question_ids(self) -> list[int]:
        return [qa.question.question_id for qa in self]

    def get_question_attempt(self, slot: int) -> QuestionAttempt:
        try:
            return self.question_attempts[slot]
        except KeyError as exc:
            raise UnknownSlotError(f"usage has no slot {slot}") from exc

    def add_question(self, question: QuestionDefinition, max_mark: float) -> int:
        slot = self.next_slot_number()
        self.question_attempts[slot] = QuestionAttempt(
            slot=slot,
            question=question,
            max_mark=float(max_mark),
        )
        return slot

    def start_question(
        self,
        slot: int,
        *,
        variant: int,
        timestamp: int,
        user_id: int,
    ) -> None:
        qa = self.get_question_attempt(slot)
        if not 1 <= variant <= qa.question.variants:
            raise ValueError(f"variant {variant} out of range for question {qa.question.question_id}")
        qa.variant = variant
        qa.state = QUESTION_STATE_TODO
        qa.time_started = timestamp
        qa.started_by_user_id = user_id

    def start_question_based_on(
        self,
        slot: int,
        old_attempt: QuestionAttempt,
        *,
        timestamp: int,
        user_id: int,
    ) -> None:
        qa = self.get_question_attempt(slot)
        qa.variant = old_attempt.variant or 1
        qa.response_summary = old_attempt.response_summary
        qa.state = QUESTION_STATE_TODO
        qa.time_started = timestamp
        qa.started_by_user_id = user_id

    def has_ungraded_questions(self) -> bool:
        return any(qa.needs_grading for qa in self)

    def total_mark(self) -> float | None:
        if self.has_ungraded_questions():
            return None
        return sum(qa.mark or 0.0 for qa in self)
