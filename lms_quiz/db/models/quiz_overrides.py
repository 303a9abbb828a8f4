from __future__ import annotations

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column

from lms_quiz.db.models.base import Base


class QuizOverride(Base):
    __tablename__ = "quiz_overrides"
    __table_args__ = (
        CheckConstraint(
            "(user_id IS NULL) <> (group_id IS NULL)",
            name="user_xor_group",
        ),
        CheckConstraint("time_close IS NULL OR time_close >= 0", name="time_close_non_negative"),
        CheckConstraint("time_limit IS NULL OR time_limit >= 0", name="time_limit_non_negative"),
        Index("idx_quiz_overrides_quiz_user", "quiz_id", "user_id"),
        Index("idx_quiz_overrides_quiz_group", "quiz_id", "group_id"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    quiz_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("quizzes.id"), nullable=False)
    user_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    group_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    time_open: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    time_close: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    time_limit: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    attempts: Mapped[int | None] = mapped_column(Integer, nullable=True)
