from __future__ import annotations

import os

import pytest
from sqlalchemy import text

from lms_quiz.core.integration_db_safety import assert_safe_integration_db
from lms_quiz.db.session import engine

LMS_TABLES = (
    "quiz_events",
    "quiz_grades",
    "quiz_attempts",
    "question_attempts",
    "question_usages",
    "quiz_overrides",
    "group_members",
    "course_groups",
    "quiz_slots",
    "quiz_sections",
    "questions",
    "quizzes",
)


@pytest.fixture(scope="session", autouse=True)
def guard_integration_db_target() -> None:
    if "DATABASE_URL" not in os.environ:
        pytest.skip("DATABASE_URL is not set; integration tests need a dedicated test database")
    assert_safe_integration_db(str(engine.url))


@pytest.fixture(autouse=True)
async def clean_lms_tables() -> None:
    await engine.dispose()

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:  # pragma: no cover - environment-dependent
        pytest.skip(f"Postgres is required for integration tests: {exc}")

    async with engine.begin() as conn:
        await conn.execute(text(f"TRUNCATE TABLE {', '.join(LMS_TABLES)} RESTART IDENTITY CASCADE"))

    yield

    await engine.dispose()
