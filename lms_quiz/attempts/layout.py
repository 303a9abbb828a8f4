from __future__ import annotations

import random
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from lms_quiz.attempts.constants import PAGE_BREAK


@dataclass(frozen=True, slots=True)
class SectionDefinition:
    first_slot: int
    shuffle_questions: bool = False
    heading: str | None = None


@dataclass(frozen=True, slots=True)
class SectionRange:
    first_slot: int
    last_slot: int
    shuffle_questions: bool

    @property
    def slots(self) -> list[int]:
        return list(range(self.first_slot, self.last_slot + 1))


def resolve_section_ranges(
    sections: Sequence[SectionDefinition],
    *,
    total_slots: int,
) -> list[SectionRange]:
    if not sections:
        sections = [SectionDefinition(first_slot=1)]
    ordered = sorted(sections, key=lambda item: item.first_slot)
    ranges: list[SectionRange] = []
    for index, section in enumerate(ordered):
        if index + 1 < len(ordered):
            last_slot = ordered[index + 1].first_slot - 1
        else:
            last_slot = total_slots
        ranges.append(
            SectionRange(
                first_slot=section.first_slot,
                last_slot=last_slot,
                shuffle_questions=section.shuffle_questions,
            )
        )
    return ranges


def build_attempt_layout(
    slot_pages: Mapping[int, int],
    sections: Sequence[SectionDefinition],
    *,
    questions_per_page: int,
    rng: random.Random | None = None,
) -> list[int]:
    """Lay slots out on pages, section by section, each section closed by a page break."""

    rng = rng or random.Random()
    layout: list[int] = []
    for section in resolve_section_ranges(sections, total_slots=len(slot_pages)):
        slots = section.slots
        if section.shuffle_questions:
            rng.shuffle(slots)
            on_this_page = 0
            for slot in slots:
                if on_this_page and on_this_page == questions_per_page:
                    layout.append(PAGE_BREAK)
                    on_this_page = 0
                layout.append(slot)
                on_this_page += 1
        elif slots:
            current_page = slot_pages[slots[0]]
            for slot in slots:
                if slot_pages[slot] != current_page:
                    layout.append(PAGE_BREAK)
                    current_page = slot_pages[slot]
                layout.append(slot)
        layout.append(PAGE_BREAK)
    return layout


def parse_layout(layout: str) -> list[int]:
    if not layout:
        return []
    return [int(item) for item in layout.split(",")]


def format_layout(items: Iterable[int]) -> str:
    return ",".join(str(int(item)) for item in items)


def remap_layout(layout: str, slot_map: Mapping[int, int]) -> str:
    remapped = [PAGE_BREAK if item == PAGE_BREAK else slot_map[item] for item in parse_layout(layout)]
    return format_layout(remapped)


def layout_pages(layout: str) -> list[list[int]]:
    pages: list[list[int]] = []
    current: list[int] = []
    for item in parse_layout(layout):
        if item == PAGE_BREAK:
            pages.append(current)
            current = []
        else:
            current.append(item)
    if current:
        pages.append(current)
    return pages


def repaginate_slot_pages(
    slot_numbers: Sequence[int],
    *,
    section_first_slots: Iterable[int],
    slots_per_page: int,
) -> dict[int, int]:
    new_section_starts = {slot for slot in section_first_slots if slot != 1}
    pages: dict[int, int] = {}
    current_page = 1
    on_this_page = 0
    for slot in sorted(slot_numbers):
        if slot in new_section_starts or (on_this_page and on_this_page == slots_per_page):
            current_page += 1
            on_this_page = 0
        pages[slot] = current_page
        on_this_page += 1
    return pages
