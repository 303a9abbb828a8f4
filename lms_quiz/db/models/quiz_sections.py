from __future__ import annotations

from sqlalchemy import BigInteger, Boolean, CheckConstraint, ForeignKey, Integer, Text, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column

from lms_quiz.db.models.base import Base


class QuizSection(Base):
    __tablename__ = "quiz_sections"
    __table_args__ = (
        CheckConstraint("first_slot >= 1", name="first_slot_positive"),
        UniqueConstraint("quiz_id", "first_slot", name="uq_quiz_sections_quiz_first_slot"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    quiz_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("quizzes.id"), nullable=False)
    first_slot: Mapped[int] = mapped_column(Integer, nullable=False)
    heading: Mapped[str | None] = mapped_column(Text, nullable=True)
    shuffle_questions: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
    )
