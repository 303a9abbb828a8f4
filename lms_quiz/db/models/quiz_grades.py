from __future__ import annotations

from sqlalchemy import BigInteger, ForeignKey, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from lms_quiz.db.models.base import Base


class QuizGrade(Base):
    __tablename__ = "quiz_grades"
    __table_args__ = (UniqueConstraint("quiz_id", "user_id", name="uq_quiz_grades_quiz_user"),)

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    quiz_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("quizzes.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    grade: Mapped[float] = mapped_column(Numeric(10, 5, asdecimal=False), nullable=False)
    time_modified: Mapped[int] = mapped_column(BigInteger, nullable=False)
