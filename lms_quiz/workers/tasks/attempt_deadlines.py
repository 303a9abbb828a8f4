from __future__ import annotations

from lms_quiz.core.config import get_settings
from lms_quiz.workers.asyncio_runner import run_async_job
from lms_quiz.workers.celery_app import celery_app
from lms_quiz.workers.tasks.attempt_deadlines_async import (
    process_due_attempts_async,
    refresh_open_attempts_async,
)
from lms_quiz.workers.tasks.attempt_deadlines_schedule import configure_attempt_deadlines_schedule

__all__ = ["process_due_attempts", "refresh_open_attempts"]


@celery_app.task(name="lms_quiz.workers.tasks.attempt_deadlines.process_due_attempts")
def process_due_attempts(batch_size: int | None = None) -> dict[str, int]:
    resolved_batch_size = batch_size or get_settings().quiz_due_attempts_batch_size
    return run_async_job(
        process_due_attempts_async(batch_size=resolved_batch_size),
        job_name="process_due_attempts",
    )


@celery_app.task(name="lms_quiz.workers.tasks.attempt_deadlines.refresh_open_attempts")
def refresh_open_attempts(
    course_ids: list[int] | None = None,
    quiz_ids: list[int] | None = None,
) -> dict[str, int]:
    return run_async_job(
        refresh_open_attempts_async(course_ids=course_ids, quiz_ids=quiz_ids),
        job_name="refresh_open_attempts",
    )


configure_attempt_deadlines_schedule(celery_app)
