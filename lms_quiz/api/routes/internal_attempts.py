from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from lms_quiz.attempts.bulk_refresh import OpenAttemptFilters
from lms_quiz.attempts.service_facade import QuizAttemptServiceFacade
from lms_quiz.core.config import get_settings
from lms_quiz.db.session import SessionLocal
from lms_quiz.services.internal_auth import (
    extract_client_ip,
    is_client_ip_allowed,
    is_internal_request_authenticated,
)

router = APIRouter(tags=["internal", "quiz-attempts"])
logger = structlog.get_logger(__name__)


class DeadlineRefreshRequest(BaseModel):
    course_ids: list[int] = Field(default_factory=list)
    user_ids: list[int] = Field(default_factory=list)
    quiz_ids: list[int] = Field(default_factory=list)
    group_ids: list[int] = Field(default_factory=list)


class DeadlineRefreshResponse(BaseModel):
    updated: int = Field(ge=0)


class GroupDeletedRequest(BaseModel):
    course_id: int = Field(ge=1)


def _assert_internal_access(request: Request) -> None:
    settings = get_settings()
    client_ip = extract_client_ip(
        request,
        trusted_proxies=getattr(settings, "internal_api_trusted_proxies", ""),
    )
    if not is_client_ip_allowed(client_ip=client_ip, allowlist=settings.internal_api_allowlist):
        logger.warning("internal_quiz_attempts_auth_failed", reason="ip_not_allowed", client_ip=client_ip)
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})
    if not is_internal_request_authenticated(request, expected_token=settings.internal_api_token):
        logger.warning(
            "internal_quiz_attempts_auth_failed",
            reason="invalid_credentials",
            client_ip=client_ip,
        )
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})


@router.post("/internal/quiz-attempts/deadlines/refresh", response_model=DeadlineRefreshResponse)
async def refresh_attempt_deadlines(
    request: Request,
    body: DeadlineRefreshRequest,
) -> DeadlineRefreshResponse:
    _assert_internal_access(request)
    filters = OpenAttemptFilters.build(
        course_ids=body.course_ids,
        user_ids=body.user_ids,
        quiz_ids=body.quiz_ids,
        group_ids=body.group_ids,
    )
    async with SessionLocal.begin() as session:
        updated = await QuizAttemptServiceFacade.refresh_open_attempts(session, filters=filters)
    return DeadlineRefreshResponse(updated=updated)


@router.post("/internal/quiz-attempts/groups/deleted", response_model=DeadlineRefreshResponse)
async def handle_course_groups_deleted(
    request: Request,
    body: GroupDeletedRequest,
) -> DeadlineRefreshResponse:
    _assert_internal_access(request)
    async with SessionLocal.begin() as session:
        updated = await QuizAttemptServiceFacade.handle_group_deleted(session, course_id=body.course_id)
    return DeadlineRefreshResponse(updated=updated)
