from __future__ import annotations

from sqlalchemy import BigInteger, Boolean, CheckConstraint, Index, Integer, Numeric, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from lms_quiz.db.models.base import Base


class Quiz(Base):
    __tablename__ = "quizzes"
    __table_args__ = (
        CheckConstraint("grade_method IN (1, 2, 3, 4)", name="grade_method"),
        CheckConstraint(
            "overdue_handling IN ('autosubmit','graceperiod','autoabandon')",
            name="overdue_handling",
        ),
        CheckConstraint("time_limit >= 0", name="time_limit_non_negative"),
        CheckConstraint("grace_period >= 0", name="grace_period_non_negative"),
        CheckConstraint("questions_per_page >= 0", name="questions_per_page_non_negative"),
        Index("idx_quizzes_course", "course_id"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    course_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    grade_method: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("1"))
    grade: Mapped[float] = mapped_column(Numeric(10, 5, asdecimal=False), nullable=False, server_default=text("10"))
    sum_grades: Mapped[float] = mapped_column(
        Numeric(10, 5, asdecimal=False),
        nullable=False,
        server_default=text("0"),
    )
    decimal_points: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("2"))
    time_open: Mapped[int] = mapped_column(BigInteger, nullable=False, server_default=text("0"))
    time_close: Mapped[int] = mapped_column(BigInteger, nullable=False, server_default=text("0"))
    time_limit: Mapped[int] = mapped_column(BigInteger, nullable=False, server_default=text("0"))
    grace_period: Mapped[int] = mapped_column(BigInteger, nullable=False, server_default=text("0"))
    overdue_handling: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        server_default=text("'autosubmit'"),
    )
    attempt_on_last: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
    )
    questions_per_page: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("1"))
    shuffle_answers: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("true"),
    )
    preferred_behaviour: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        server_default=text("'deferredfeedback'"),
    )
    review_attempt: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    review_correctness: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    review_marks: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    review_max_marks: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    review_specific_feedback: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        server_default=text("0"),
    )
    review_general_feedback: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        server_default=text("0"),
    )
    review_right_answer: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    review_overall_feedback: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        server_default=text("0"),
    )
    time_modified: Mapped[int] = mapped_column(BigInteger, nullable=False, server_default=text("0"))
