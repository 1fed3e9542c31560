"""
Lesson completion tracking and progress rollups.

Each (user, course, module, lesson) has exactly one record, stored under a deterministic composite
id so a toggle is a true upsert and two toggles can never create duplicate rows. Writes to the
same key are additionally serialised in-process and every query is scoped by user_id.

Rollups are pure functions over a curriculum tree and the learner's entries:
- module percent = completed lessons / lessons in module, rounded half up;
- a module is complete iff its percent is 100 (an empty module is never complete);
- a course is complete iff it has at least one regular module and every regular (non-bonus)
  module is complete;
- the resume target is the first incomplete lesson in tree order.
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Dict, Iterable, List, Optional, Set, Tuple

from core.clock import Clock, utc_now
from core.errors import ValidationFailure
from schemas.course import ModuleStructure
from schemas.progress import CourseProgress, LessonRef, ModuleProgress, ProgressEntry
from services.curriculum_builder import flatten_lessons
from services.document_store import Document, DocumentStore

logger = logging.getLogger("progress")

COLLECTION = "student_progress"


def lesson_key(user_id: str, course_id: str, module_number: int, lesson_index: int) -> str:
    return f"{user_id}:{course_id}:{module_number}:{lesson_index}"


def validate_lesson_key(user_id: str, course_id: str, module_number: int, lesson_index: int) -> None:
    if not user_id or not user_id.strip():
        raise ValidationFailure("user_id is required")
    if not course_id or not course_id.strip():
        raise ValidationFailure("course_id is required")
    if module_number < 0 or lesson_index < 0:
        raise ValidationFailure("module_number and lesson_index must be non-negative")


class KeyedLocks:
    """One asyncio.Lock per key, dropped once nobody holds or waits on it."""

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._holders: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


def _to_entry(doc: Document) -> ProgressEntry:
    data = doc.data
    return ProgressEntry(
        id=doc.id,
        user_id=data.get("user_id", ""),
        course_id=data.get("course_id", ""),
        module_number=data.get("module_number", 0),
        lesson_index=data.get("lesson_index", 0),
        completed=data.get("completed") is True,
        completed_at=data.get("completed_at") or None,
    )


class ProgressTracker:
    def __init__(self, store: DocumentStore, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock
        self._locks = KeyedLocks()

    async def get(self, user_id: str, course_id: str) -> List[ProgressEntry]:
        """All entries for the pair; an empty list when the learner has not started."""
        docs = await self._store.query(COLLECTION, {"user_id": user_id, "course_id": course_id})
        return [_to_entry(d) for d in docs]

    async def set_completion(
        self,
        user_id: str,
        course_id: str,
        module_number: int,
        lesson_index: int,
        completed: bool,
    ) -> ProgressEntry:
        validate_lesson_key(user_id, course_id, module_number, lesson_index)
        key = lesson_key(user_id, course_id, module_number, lesson_index)
        async with self._locks.hold(key):
            now: datetime = self._clock()
            completed_at = now if completed else None
            fields = {
                "user_id": user_id,
                "course_id": course_id,
                "module_number": module_number,
                "lesson_index": lesson_index,
                "completed": completed,
                "completed_at": completed_at.isoformat() if completed_at else None,
                "updated_at": now.isoformat(),
            }
            await self._store.batch().set(COLLECTION, key, fields, merge=True).commit()
        logger.info("progress_upserted", extra={
            "user_id": user_id,
            "course_id": course_id,
            "module_number": module_number,
            "lesson_index": lesson_index,
        })
        return ProgressEntry(
            id=key,
            user_id=user_id,
            course_id=course_id,
            module_number=module_number,
            lesson_index=lesson_index,
            completed=completed,
            completed_at=completed_at,
        )

    async def summarize(self, user_id: str, course_id: str, structure: List[ModuleStructure]) -> Tuple[List[ProgressEntry], CourseProgress]:
        entries = await self.get(user_id, course_id)
        return entries, course_progress(course_id, structure, entries)


def completed_keys(progress: Iterable[ProgressEntry]) -> Set[Tuple[int, int]]:
    return {(p.module_number, p.lesson_index) for p in progress if p.completed}


def round_percent(done: int, total: int) -> int:
    if total <= 0:
        return 0
    return (200 * done + total) // (2 * total)


def module_progress(structure: Iterable[ModuleStructure], progress: Iterable[ProgressEntry]) -> List[ModuleProgress]:
    done = completed_keys(progress)
    out: List[ModuleProgress] = []
    for module in structure:
        indexes = {e.index for e in module.episodes}
        completed = sum(1 for i in indexes if (module.number, i) in done)
        percent = round_percent(completed, len(indexes))
        out.append(ModuleProgress(
            module_number=module.number,
            title=module.title,
            is_bonus=module.is_bonus,
            completed=completed,
            total=len(indexes),
            percent=percent,
            is_complete=len(indexes) > 0 and percent == 100,
        ))
    return out


def next_lesson(structure: Iterable[ModuleStructure], progress: Iterable[ProgressEntry]) -> Optional[LessonRef]:
    done = completed_keys(progress)
    for lesson in flatten_lessons(structure):
        if (lesson.module_number, lesson.lesson_index) not in done:
            return lesson
    return None


def course_progress(course_id: str, structure: List[ModuleStructure], progress: Iterable[ProgressEntry]) -> CourseProgress:
    progress = list(progress)
    modules = module_progress(structure, progress)
    regular = [m for m in modules if not m.is_bonus]
    completed = sum(m.completed for m in modules)
    total = sum(m.total for m in modules)
    return CourseProgress(
        course_id=course_id,
        completed=completed,
        total=total,
        percent=round_percent(completed, total),
        is_complete=bool(regular) and all(m.is_complete for m in regular),
        modules=modules,
        next_lesson=next_lesson(structure, progress),
    )
