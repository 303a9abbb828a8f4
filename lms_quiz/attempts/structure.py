from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from lms_quiz.attempts.errors import QuizNotFoundError
from lms_quiz.attempts.layout import SectionDefinition
from lms_quiz.db.models.quiz_slots import QuizSlot
from lms_quiz.db.models.quizzes import Quiz
from lms_quiz.db.repo.quizzes_repo import QuizzesRepo
from lms_quiz.questions.types import RandomFilter


@dataclass(frozen=True, slots=True)
class SlotDefinition:
    slot: int
    page: int
    max_mark: float
    bank_entry_id: int | None = None
    requested_version: int | None = None
    random_filter: RandomFilter | None = None
    slot_id: int | None = None

    def __post_init__(self) -> None:
        if (self.bank_entry_id is None) == (self.random_filter is None):
            raise ValueError(f"slot {self.slot} must reference either a question or a random filter")

    @property
    def is_random(self) -> bool:
        return self.random_filter is not None

    @classmethod
    def from_model(cls, slot: QuizSlot) -> SlotDefinition:
        return cls(
            slot=int(slot.slot),
            page=int(slot.page),
            max_mark=float(slot.max_mark),
            bank_entry_id=slot.question_bank_entry_id,
            requested_version=slot.requested_version,
            random_filter=(
                RandomFilter.from_condition(slot.filter_condition)
                if slot.filter_condition is not None
                else None
            ),
            slot_id=int(slot.id) if slot.id is not None else None,
        )


@dataclass(slots=True)
class QuizStructure:
    quiz: Quiz
    slots: list[SlotDefinition] = field(default_factory=list)
    sections: list[SectionDefinition] = field(default_factory=list)

    @property
    def slot_pages(self) -> dict[int, int]:
        return {item.slot: item.page for item in self.slots}

    @property
    def latest_version_slots(self) -> list[int]:
        return [
            item.slot
            for item in self.slots
            if not item.is_random and item.requested_version is None
        ]


async def load_quiz_structure(session: AsyncSession, *, quiz_id: int) -> QuizStructure:
    quiz = await QuizzesRepo.get_by_id(session, quiz_id)
    if quiz is None:
        raise QuizNotFoundError(f"quiz {quiz_id} does not exist")
    slots = await QuizzesRepo.list_slots(session, quiz_id=quiz_id)
    sections = await QuizzesRepo.list_sections(session, quiz_id=quiz_id)
    return QuizStructure(
        quiz=quiz,
        slots=[SlotDefinition.from_model(item) for item in slots],
        sections=[
            SectionDefinition(
                first_slot=int(item.first_slot),
                shuffle_questions=bool(item.shuffle_questions),
                heading=item.heading,
            )
            for item in sections
        ],
    )
