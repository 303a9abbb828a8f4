from __future__ import annotations

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from lms_quiz.db.models.base import Base


class QuestionUsageRecord(Base):
    __tablename__ = "question_usages"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    component: Mapped[str] = mapped_column(String(32), nullable=False)
    preferred_behaviour: Mapped[str] = mapped_column(String(32), nullable=False)


class QuestionAttemptRecord(Base):
    __tablename__ = "question_attempts"
    __table_args__ = (
        CheckConstraint("slot >= 1", name="slot_positive"),
        UniqueConstraint("usage_id", "slot", name="uq_question_attempts_usage_slot"),
        Index("idx_question_attempts_question", "question_id"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    usage_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("question_usages.id", ondelete="CASCADE"),
        nullable=False,
    )
    slot: Mapped[int] = mapped_column(Integer, nullable=False)
    question_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("questions.id"), nullable=False)
    max_mark: Mapped[float] = mapped_column(Numeric(12, 7, asdecimal=False), nullable=False)
    variant: Mapped[int] = mapped_column(Integer, nullable=False)
    shuffle_answers: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("true"),
    )
    state: Mapped[str] = mapped_column(String(32), nullable=False)
    fraction: Mapped[float | None] = mapped_column(Numeric(12, 7, asdecimal=False), nullable=True)
    response_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    time_started: Mapped[int] = mapped_column(BigInteger, nullable=False)
    started_by_user_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
