from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass


@dataclass(slots=True)
class QuestionDefinition:
    question_id: int
    bank_entry_id: int
    version: int
    status: str
    qtype: str
    name: str
    category_id: int
    tags: tuple[str, ...] = ()
    default_mark: float = 1.0
    variants: int = 1
    shuffle_answers: bool = True

    def __post_init__(self) -> None:
        if self.variants < 1:
            raise ValueError("a question has at least one variant")


@dataclass(frozen=True, slots=True)
class RandomFilter:
    """Filter condition stored on a random slot."""

    category_id: int
    tags: tuple[str, ...] = ()

    @classmethod
    def from_condition(cls, condition: Mapping[str, object]) -> RandomFilter:
        category_id = condition.get("category_id")
        if category_id is None:
            raise ValueError("random slot filter needs a category_id")
        raw_tags = condition.get("tags") or ()
        if isinstance(raw_tags, str):
            raw_tags = (raw_tags,)
        tags = tuple(sorted({str(tag).strip() for tag in raw_tags if str(tag).strip()}))
        return cls(category_id=int(category_id), tags=tags)
