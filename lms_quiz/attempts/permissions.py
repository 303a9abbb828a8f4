from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Protocol

from lms_quiz.attempts.constants import (
    CAPABILITY_FLAG_QUESTIONS,
    CAPABILITY_GRADE,
    CAPABILITY_PREVIEW,
    CAPABILITY_VIEW_HIDDEN_GRADES,
    CAPABILITY_VIEW_REPORTS,
)


class AccessPolicy(Protocol):
    async def has_capability(self, capability: str, *, user_id: int, quiz_id: int) -> bool: ...


@dataclass(slots=True)
class StaticAccessPolicy:
    """Grants a fixed capability set per user, optionally per quiz."""

    grants: Mapping[int, frozenset[str]] = field(default_factory=dict)
    quiz_grants: Mapping[tuple[int, int], frozenset[str]] = field(default_factory=dict)

    @classmethod
    def for_users(cls, grants: Mapping[int, Iterable[str]]) -> StaticAccessPolicy:
        return cls(grants={user_id: frozenset(caps) for user_id, caps in grants.items()})

    async def has_capability(self, capability: str, *, user_id: int, quiz_id: int) -> bool:
        if capability in self.quiz_grants.get((user_id, quiz_id), frozenset()):
            return True
        return capability in self.grants.get(user_id, frozenset())


@dataclass(frozen=True, slots=True)
class ViewerCapabilities:
    user_id: int
    can_flag: bool = False
    can_grade: bool = False
    can_view_reports: bool = False
    can_view_hidden_grades: bool = False
    can_preview: bool = False

    @property
    def sees_everything(self) -> bool:
        return self.can_view_reports and self.can_view_hidden_grades


async def load_viewer_capabilities(
    policy: AccessPolicy,
    *,
    user_id: int,
    quiz_id: int,
) -> ViewerCapabilities:
    async def _has(capability: str) -> bool:
        return await policy.has_capability(capability, user_id=user_id, quiz_id=quiz_id)

    return ViewerCapabilities(
        user_id=user_id,
        can_flag=await _has(CAPABILITY_FLAG_QUESTIONS),
        can_grade=await _has(CAPABILITY_GRADE),
        can_view_reports=await _has(CAPABILITY_VIEW_REPORTS),
        can_view_hidden_grades=await _has(CAPABILITY_VIEW_HIDDEN_GRADES),
        can_preview=await _has(CAPABILITY_PREVIEW),
    )
