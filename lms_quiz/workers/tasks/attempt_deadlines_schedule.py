from __future__ import annotations

from lms_quiz.core.config import get_settings


def configure_attempt_deadlines_schedule(celery_app) -> None:
    settings = get_settings()
    celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
    celery_app.conf.beat_schedule.update(
        {
            "quiz-attempts-process-due": {
                "task": "lms_quiz.workers.tasks.attempt_deadlines.process_due_attempts",
                "schedule": float(settings.quiz_due_attempts_scan_interval_seconds),
                "options": {"queue": "q_normal"},
            },
            "quiz-attempts-refresh-open": {
                "task": "lms_quiz.workers.tasks.attempt_deadlines.refresh_open_attempts",
                "schedule": float(settings.quiz_open_attempts_refresh_interval_seconds),
                "options": {"queue": "q_normal"},
            },
        }
    )
