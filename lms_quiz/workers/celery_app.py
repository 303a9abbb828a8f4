from celery import Celery

from lms_quiz.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "lms_quiz",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "lms_quiz.workers.tasks.attempt_deadlines",
    ],
)

celery_app.conf.update(
    task_default_queue="q_normal",
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
)


@celery_app.task(name="lms_quiz.workers.celery_app.ping")
def ping() -> str:
    return "pong"
