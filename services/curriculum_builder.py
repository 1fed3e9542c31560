"""
Curriculum tree construction.

Admin-authored content entries fully override the static definition for a course: when at least
one entry exists for the course, the tree is built from entries alone. Otherwise the static
modules are used verbatim and the optional bonus module is appended as module 0.

Entry grouping rules:
- Entries are grouped by module_number.
- A module's title/description come from the first entry seen for that module number.
- Episodes sort by episode_index, modules by module_number, both ascending.
- An episode "has content" iff its entry carries at least one file.

Everything here is pure: same input, same output, no I/O.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Optional

from schemas.course import (
    ContentEntry,
    EpisodeStructure,
    ModuleStructure,
    StaticCourseDefinition,
)
from schemas.progress import LessonRef

logger = logging.getLogger("curriculum")

BONUS_MODULE_NUMBER = 0


def build_from_entries(entries: Iterable[ContentEntry]) -> List[ModuleStructure]:
    grouped: Dict[int, ModuleStructure] = {}
    episodes: Dict[int, List[ContentEntry]] = {}

    for entry in entries:
        if entry.module_number not in grouped:
            grouped[entry.module_number] = ModuleStructure(
                number=entry.module_number,
                title=entry.module_title,
                description=entry.module_description,
            )
            episodes[entry.module_number] = []
        episodes[entry.module_number].append(entry)

    modules: List[ModuleStructure] = []
    for number in sorted(grouped):
        module = grouped[number]
        # sorted() is stable, so duplicate episode indexes keep iteration order
        ordered = sorted(episodes[number], key=lambda e: e.episode_index)
        module.episodes = [
            EpisodeStructure(
                index=e.episode_index,
                title=e.episode_title,
                description=e.episode_description,
                duration=e.duration,
                has_content=len(e.files) > 0,
                entry_id=e.id or None,
            )
            for e in ordered
        ]
        modules.append(module)
    return modules


def build_from_static(static: StaticCourseDefinition) -> List[ModuleStructure]:
    modules = [
        ModuleStructure(
            number=m.number,
            title=m.title,
            description=m.description,
            episodes=[
                EpisodeStructure(index=i, title=l.title, description=l.description, duration=l.duration)
                for i, l in enumerate(m.lessons)
            ],
        )
        for m in static.modules
    ]
    if static.bonus_module is not None:
        bonus = static.bonus_module
        modules.append(
            ModuleStructure(
                number=BONUS_MODULE_NUMBER,
                title=bonus.title,
                description=bonus.description,
                is_bonus=True,
                episodes=[
                    EpisodeStructure(index=i, title=l.title, description=l.description, duration=l.duration)
                    for i, l in enumerate(bonus.lessons)
                ],
            )
        )
    return modules


def build_curriculum(
    course_id: str,
    entries: Optional[Iterable[ContentEntry]],
    static: Optional[StaticCourseDefinition],
) -> List[ModuleStructure]:
    """Build the module/episode tree for one course.

    Entries belonging to other courses are ignored. A course with neither entries nor a static
    definition yields an empty tree.
    """
    own = [e for e in (entries or []) if e.course_id == course_id]
    if own:
        logger.debug("curriculum_from_entries", extra={"course_id": course_id, "count": len(own)})
        return build_from_entries(own)
    if static is None:
        return []
    return build_from_static(static)


def flatten_lessons(structure: Iterable[ModuleStructure]) -> Iterator[LessonRef]:
    """Yield lessons in display order: module order, then episode order."""
    for module in structure:
        for episode in module.episodes:
            yield LessonRef(
                module_number=module.number,
                lesson_index=episode.index,
                title=episode.title,
                module_title=module.title,
                is_bonus=module.is_bonus,
            )
