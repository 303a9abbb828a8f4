from __future__ import annotations

import asyncio
from typing import Any

import structlog
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from sqlalchemy import text

from lms_quiz.core.config import get_settings
from lms_quiz.db.session import SessionLocal
from lms_quiz.workers.celery_app import celery_app

router = APIRouter(tags=["health"])
logger = structlog.get_logger(__name__)

CheckResult = dict[str, Any]


def _failed(error_code: str) -> CheckResult:
    # Only stable codes leave the process; exception text may embed DSNs.
    return {"status": "failed", "error": error_code}


async def _check_database() -> CheckResult:
    try:
        async with SessionLocal() as session:
            await session.execute(text("SELECT 1"))
    except Exception as exc:
        logger.warning("health_database_check_failed", error_type=type(exc).__name__)
        return _failed("database_unavailable")
    return {"status": "ok"}


async def _check_redis() -> CheckResult:
    client = Redis.from_url(get_settings().redis_url)
    try:
        if await client.ping() is not True:
            return _failed("redis_unexpected_ping")
    except Exception as exc:
        logger.warning("health_redis_check_failed", error_type=type(exc).__name__)
        return _failed("redis_unavailable")
    finally:
        await client.aclose()
    return {"status": "ok"}


def _check_celery_worker_sync() -> CheckResult:
    try:
        inspector = celery_app.control.inspect(timeout=1.0)
        replies = (inspector.ping() if inspector is not None else None) or {}
    except Exception as exc:
        logger.warning("health_celery_check_failed", error_type=type(exc).__name__)
        return _failed("celery_unavailable")
    if not replies:
        return _failed("celery_no_workers")
    return {"status": "ok", "workers": len(replies)}


async def _check_celery_worker() -> CheckResult:
    return await asyncio.to_thread(_check_celery_worker_sync)


def _respond(checks: dict[str, CheckResult], *, ok_label: str, failed_label: str) -> JSONResponse:
    healthy = all(check.get("status") == "ok" for check in checks.values())
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": ok_label if healthy else failed_label, "checks": checks},
    )


@router.get("/live")
async def live() -> dict[str, str]:
    return {"status": "live"}


@router.get("/ready")
async def ready() -> JSONResponse:
    # Celery is excluded: readiness covers only stores the API touches.
    database, redis_check = await asyncio.gather(_check_database(), _check_redis())
    return _respond(
        {"database": database, "redis": redis_check},
        ok_label="ready",
        failed_label="not_ready",
    )


@router.get("/health")
async def health() -> JSONResponse:
    database, redis_check, celery = await asyncio.gather(
        _check_database(),
        _check_redis(),
        _check_celery_worker(),
    )
    return _respond(
        {"database": database, "redis": redis_check, "celery": celery},
        ok_label="ok",
        failed_label="degraded",
    )
