from __future__ import annotations

import time

import structlog

from lms_quiz.attempts.bulk_refresh import OpenAttemptFilters, update_open_attempts
from lms_quiz.attempts.transitions import process_attempts_due
from lms_quiz.db.session import SessionLocal

logger = structlog.get_logger("lms_quiz.workers.tasks.attempt_deadlines")


async def process_due_attempts_async(*, batch_size: int) -> dict[str, int]:
    timenow = int(time.time())
    async with SessionLocal.begin() as session:
        result = await process_attempts_due(
            session,
            timenow=timenow,
            batch_size=max(1, int(batch_size)),
        )
    logger.info("quiz_due_attempts_processed", timenow=timenow, **result)
    return result


async def refresh_open_attempts_async(
    *,
    course_ids: list[int] | None = None,
    quiz_ids: list[int] | None = None,
) -> dict[str, int]:
    filters = OpenAttemptFilters.build(course_ids=course_ids, quiz_ids=quiz_ids)
    async with SessionLocal.begin() as session:
        updated = await update_open_attempts(session, filters)
    return {"updated": updated}
