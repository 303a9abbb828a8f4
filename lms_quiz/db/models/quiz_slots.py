from __future__ import annotations

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, Integer, Numeric, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from lms_quiz.db.models.base import Base


class QuizSlot(Base):
    __tablename__ = "quiz_slots"
    __table_args__ = (
        CheckConstraint("slot >= 1", name="slot_positive"),
        CheckConstraint("page >= 1", name="page_positive"),
        CheckConstraint(
            "(question_bank_entry_id IS NOT NULL AND filter_condition IS NULL) "
            "OR (question_bank_entry_id IS NULL AND filter_condition IS NOT NULL)",
            name="fixed_or_random",
        ),
        UniqueConstraint("quiz_id", "slot", name="uq_quiz_slots_quiz_slot"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    quiz_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("quizzes.id"), nullable=False)
    slot: Mapped[int] = mapped_column(Integer, nullable=False)
    page: Mapped[int] = mapped_column(Integer, nullable=False)
    max_mark: Mapped[float] = mapped_column(Numeric(12, 7, asdecimal=False), nullable=False)
    question_bank_entry_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    # None means always the latest non-draft version.
    requested_version: Mapped[int | None] = mapped_column(Integer, nullable=True)
    filter_condition: Mapped[dict[str, object] | None] = mapped_column(JSONB, nullable=True)

    @property
    def is_random(self) -> bool:
        return self.filter_condition is not None
