from __future__ import annotations

import pytest
from sqlalchemy import CheckConstraint, UniqueConstraint

from lms_quiz.db.models import QuizAttempt
from lms_quiz.db.models.base import Base


def test_all_quiz_tables_registered() -> None:
    expected_tables = {
        "quizzes",
        "quiz_sections",
        "quiz_slots",
        "course_groups",
        "group_members",
        "quiz_overrides",
        "questions",
        "question_usages",
        "question_attempts",
        "quiz_attempts",
        "quiz_grades",
        "quiz_events",
    }
    assert expected_tables == set(Base.metadata.tables)


def test_critical_constraints_present() -> None:
    attempts = Base.metadata.tables["quiz_attempts"]
    attempt_checks = {
        constraint.name for constraint in attempts.constraints if isinstance(constraint, CheckConstraint)
    }
    assert "ck_quiz_attempts_state" in attempt_checks
    attempt_uniques = {
        constraint.name for constraint in attempts.constraints if isinstance(constraint, UniqueConstraint)
    }
    assert "uq_quiz_attempts_quiz_user_attempt" in attempt_uniques
    assert "idx_quiz_attempts_state_check" in {index.name for index in attempts.indexes}

    slots = Base.metadata.tables["quiz_slots"]
    slot_checks = {constraint.name for constraint in slots.constraints if isinstance(constraint, CheckConstraint)}
    assert "ck_quiz_slots_fixed_or_random" in slot_checks

    overrides = Base.metadata.tables["quiz_overrides"]
    override_checks = {
        constraint.name for constraint in overrides.constraints if isinstance(constraint, CheckConstraint)
    }
    assert "ck_quiz_overrides_user_xor_group" in override_checks

    grades = Base.metadata.tables["quiz_grades"]
    grade_uniques = {
        constraint.name for constraint in grades.constraints if isinstance(constraint, UniqueConstraint)
    }
    assert "uq_quiz_grades_quiz_user" in grade_uniques


def test_quiz_attempt_rejects_unknown_state_and_bad_layout() -> None:
    with pytest.raises(ValueError, match="unknown attempt state"):
        QuizAttempt(quiz_id=1, user_id=2, attempt=1, state="paused")
    with pytest.raises(ValueError, match="malformed attempt layout"):
        QuizAttempt(quiz_id=1, user_id=2, attempt=1, layout="1,,2")
    with pytest.raises(ValueError, match="attempt numbers start at 1"):
        QuizAttempt(quiz_id=1, user_id=2, attempt=0)


def test_quiz_attempt_accepts_layout_with_page_breaks() -> None:
    attempt = QuizAttempt(quiz_id=1, user_id=2, attempt=3, layout="1,2,0,3,0", state="inprogress")
    assert attempt.layout == "1,2,0,3,0"
    assert attempt.attempt == 3
