from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Protocol

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from lms_quiz.attempts.constants import EVENT_ATTEMPT_STATE_CHANGED
from lms_quiz.core.attempt_events import emit_quiz_event
from lms_quiz.db.models.quiz_attempts import QuizAttempt

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class AttemptSnapshot:
    attempt_id: int | None
    quiz_id: int
    user_id: int
    attempt: int
    state: str
    preview: bool
    layout: str
    unique_id: int | None
    time_start: int
    time_finish: int
    time_check_state: int | None
    sum_grades: float | None

    @classmethod
    def from_attempt(cls, attempt: QuizAttempt) -> AttemptSnapshot:
        return cls(
            attempt_id=attempt.id,
            quiz_id=int(attempt.quiz_id),
            user_id=int(attempt.user_id),
            attempt=int(attempt.attempt),
            state=str(attempt.state),
            preview=bool(attempt.preview),
            layout=str(attempt.layout or ""),
            unique_id=attempt.unique_id,
            time_start=int(attempt.time_start or 0),
            time_finish=int(attempt.time_finish or 0),
            time_check_state=attempt.time_check_state,
            sum_grades=attempt.sum_grades,
        )

    def as_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class AttemptStateChanged:
    before: AttemptSnapshot | None
    after: AttemptSnapshot | None

    @property
    def old_state(self) -> str | None:
        return self.before.state if self.before is not None else None

    @property
    def new_state(self) -> str | None:
        return self.after.state if self.after is not None else None


class AttemptEventDispatcher(Protocol):
    async def emit(
        self,
        event_name: str,
        *,
        object_id: int | None,
        related_user_id: int | None,
        payload: dict[str, object],
        snapshots: dict[str, object],
    ) -> None: ...

    async def dispatch_state_changed(self, change: AttemptStateChanged) -> None: ...


class OutboxAttemptEventDispatcher:
    """Writes every event to the quiz_events table in the caller's transaction."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def emit(
        self,
        event_name: str,
        *,
        object_id: int | None,
        related_user_id: int | None,
        payload: dict[str, object],
        snapshots: dict[str, object],
    ) -> None:
        await emit_quiz_event(
            self._session,
            event_type=event_name,
            object_id=object_id,
            related_user_id=related_user_id,
            payload=payload,
            snapshots=snapshots,
        )
        logger.info(
            "quiz_event_emitted",
            event_type=event_name,
            object_id=object_id,
            related_user_id=related_user_id,
        )

    async def dispatch_state_changed(self, change: AttemptStateChanged) -> None:
        subject = change.after or change.before
        await emit_quiz_event(
            self._session,
            event_type=EVENT_ATTEMPT_STATE_CHANGED,
            object_id=subject.attempt_id if subject is not None else None,
            related_user_id=subject.user_id if subject is not None else None,
            payload={"old_state": change.old_state, "new_state": change.new_state},
            snapshots={
                "before": change.before.as_dict() if change.before is not None else None,
                "after": change.after.as_dict() if change.after is not None else None,
            },
        )
        logger.info(
            "attempt_state_changed",
            attempt_id=subject.attempt_id if subject is not None else None,
            old_state=change.old_state,
            new_state=change.new_state,
        )

