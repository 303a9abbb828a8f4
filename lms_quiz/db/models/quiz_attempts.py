from __future__ import annotations

import re

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
from sqlalchemy.orm import Mapped, mapped_column, validates

from lms_quiz.attempts.constants import ATTEMPT_STATE_NOT_STARTED, ATTEMPT_STATES
from lms_quiz.db.models.base import Base

_LAYOUT_RE = re.compile(r"^(\d+(,\d+)*)?$")


class QuizAttempt(Base):
    __tablename__ = "quiz_attempts"
    __table_args__ = (
        CheckConstraint(
            "state IN ('notstarted','inprogress','overdue','submitted','finished','abandoned')",
            name="state",
        ),
        CheckConstraint("attempt >= 1", name="attempt_positive"),
        UniqueConstraint("quiz_id", "user_id", "attempt", name="uq_quiz_attempts_quiz_user_attempt"),
        UniqueConstraint("unique_id", name="uq_quiz_attempts_unique_id"),
        Index("idx_quiz_attempts_state_check", "state", "time_check_state"),
        Index("idx_quiz_attempts_user_quiz", "user_id", "quiz_id"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    quiz_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("quizzes.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    attempt: Mapped[int] = mapped_column(Integer, nullable=False)
    unique_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("question_usages.id"),
        nullable=True,
    )
    layout: Mapped[str] = mapped_column(Text, nullable=False, default="")
    current_page: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    preview: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )
    state: Mapped[str] = mapped_column(String(16), nullable=False, default=ATTEMPT_STATE_NOT_STARTED)
    time_start: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    time_finish: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    time_modified: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    time_modified_offline: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    time_check_state: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    sum_grades: Mapped[float | None] = mapped_column(Numeric(10, 5, asdecimal=False), nullable=True)
    graded_notification_sent_time: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    @validates("state")
    def _validate_state(self, key: str, value: str) -> str:
        del key
        if value not in ATTEMPT_STATES:
            raise ValueError(f"unknown attempt state: {value!r}")
        return value

    @validates("layout")
    def _validate_layout(self, key: str, value: str) -> str:
        del key
        if _LAYOUT_RE.match(value) is None:
            raise ValueError(f"malformed attempt layout: {value!r}")
        return value

    @validates("attempt")
    def _validate_attempt_number(self, key: str, value: int) -> int:
        del key
        if int(value) < 1:
            raise ValueError("attempt numbers start at 1")
        return int(value)
