from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable
from typing import TypeVar

import structlog

from lms_quiz.db.session import dispose_engine

T = TypeVar("T")

logger = structlog.get_logger(__name__)


async def _run_isolated(awaitable: Awaitable[T], *, job_name: str | None) -> T:
    # Each asyncio.run owns a fresh loop, so pooled asyncpg connections must not leak across jobs.
    await dispose_engine()
    started = time.monotonic()
    try:
        return await awaitable
    finally:
        await dispose_engine()
        if job_name is not None:
            logger.info(
                "quiz_worker_job_finished",
                job=job_name,
                duration_ms=int((time.monotonic() - started) * 1000),
            )


def run_async_job(awaitable: Awaitable[T], *, job_name: str | None = None) -> T:
    return asyncio.run(_run_isolated(awaitable, job_name=job_name))
