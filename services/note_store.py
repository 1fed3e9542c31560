"""
Per-lesson learner notes with debounced autosave.

Storage: one note per (user, course, module, lesson) under a deterministic composite id; the last
write to reach the store wins and concurrent edits are never merged.

Autosave is an explicit state machine (NoteAutosave):

    IDLE/SAVED --edit--> PENDING(deadline) --deadline or save_now--> SAVING
    SAVING --success--> SAVED, or PENDING again if edits arrived during the write
    SAVING --failure--> ERROR --edit--> PENDING

NoteEditor drives the machine on the event loop for one learner. Switching lessons cancels the
pending timer for the previous lesson and discards loads that finish after the switch; at most
one write per lesson is in flight at any time.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Tuple

from core.clock import Clock, utc_now
from core.errors import CourseAccessError
from schemas.progress import NoteEntry
from services.document_store import DocumentStore
from services.progress_tracker import KeyedLocks, lesson_key, validate_lesson_key

logger = logging.getLogger("notes")

COLLECTION = "student_notes"
DEFAULT_DEBOUNCE_SECONDS = 2.0

LessonKey = Tuple[str, int, int]


class NoteStore:
    def __init__(self, store: DocumentStore, clock: Clock = utc_now,
                 autosave_seconds: float = DEFAULT_DEBOUNCE_SECONDS) -> None:
        self._store = store
        self._clock = clock
        self.autosave_seconds = autosave_seconds
        self._locks = KeyedLocks()

    async def get_note(self, user_id: str, course_id: str, module_number: int, lesson_index: int) -> Optional[NoteEntry]:
        key = lesson_key(user_id, course_id, module_number, lesson_index)
        doc = await self._store.get(COLLECTION, key)
        if doc is None or doc.data.get("user_id") != user_id:
            return None
        return NoteEntry(
            id=doc.id,
            user_id=user_id,
            course_id=course_id,
            module_number=module_number,
            lesson_index=lesson_index,
            content=doc.data.get("content") or "",
            updated_at=doc.data.get("updated_at") or None,
        )

    async def save_note(self, user_id: str, course_id: str, module_number: int, lesson_index: int, content: str) -> NoteEntry:
        validate_lesson_key(user_id, course_id, module_number, lesson_index)
        key = lesson_key(user_id, course_id, module_number, lesson_index)
        async with self._locks.hold(key):
            now = self._clock()
            await self._store.set(COLLECTION, key, {
                "user_id": user_id,
                "course_id": course_id,
                "module_number": module_number,
                "lesson_index": lesson_index,
                "content": content,
                "updated_at": now.isoformat(),
            }, merge=True)
        logger.info("note_saved", extra={
            "user_id": user_id,
            "course_id": course_id,
            "module_number": module_number,
            "lesson_index": lesson_index,
        })
        return NoteEntry(
            id=key,
            user_id=user_id,
            course_id=course_id,
            module_number=module_number,
            lesson_index=lesson_index,
            content=content,
            updated_at=now,
        )


class AutosaveState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"


class NoteAutosave:
    """Editor-side save state for a single lesson. Times are monotonic seconds."""

    def __init__(self, debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS, saved_content: str = "",
                 last_saved_at: Optional[datetime] = None) -> None:
        self.debounce_seconds = debounce_seconds
        self.state = AutosaveState.SAVED if last_saved_at else AutosaveState.IDLE
        self.content = saved_content
        self.saved_content = saved_content
        self.last_saved_at = last_saved_at
        self.deadline: Optional[float] = None
        self.in_flight: Optional[str] = None
        self.error: Optional[str] = None

    @property
    def has_changes(self) -> bool:
        return self.content != self.saved_content

    def _settle(self) -> None:
        self.deadline = None
        self.state = AutosaveState.SAVED if self.last_saved_at else AutosaveState.IDLE

    def loaded(self, content: str, updated_at: Optional[datetime]) -> None:
        """Apply the stored note; edits typed while it was loading are kept."""
        untouched = self.state is AutosaveState.IDLE and not self.has_changes
        self.saved_content = content
        self.last_saved_at = updated_at
        if untouched:
            self.content = content
            self._settle()

    def edit(self, content: str, now: float) -> None:
        self.content = content
        if self.state is AutosaveState.SAVING:
            return
        if not self.has_changes:
            self._settle()
            return
        self.state = AutosaveState.PENDING
        self.deadline = now + self.debounce_seconds

    def due(self, now: float) -> bool:
        return self.state is AutosaveState.PENDING and self.deadline is not None and now >= self.deadline

    def begin_save(self) -> Optional[str]:
        """Move to SAVING and return the content to write, or None when there is nothing to do."""
        if self.state is AutosaveState.SAVING or not self.has_changes:
            return None
        self.state = AutosaveState.SAVING
        self.deadline = None
        self.in_flight = self.content
        return self.content

    # Manual save skips the debounce; the transition is the same.
    save_now = begin_save

    def save_succeeded(self, saved_at: Optional[datetime], now: float) -> None:
        self.saved_content = self.in_flight if self.in_flight is not None else self.saved_content
        self.in_flight = None
        self.last_saved_at = saved_at
        self.error = None
        if self.has_changes:
            self.state = AutosaveState.PENDING
            self.deadline = now + self.debounce_seconds
        else:
            self._settle()

    def save_failed(self, error: str) -> None:
        self.in_flight = None
        self.deadline = None
        self.error = error
        self.state = AutosaveState.ERROR


class NoteEditor:
    """Async driver for one learner's note editor."""

    def __init__(self, notes: NoteStore, user_id: str, debounce_seconds: Optional[float] = None,
                 monotonic: Optional[Callable[[], float]] = None) -> None:
        self._notes = notes
        self._user_id = user_id
        # defaults to the store's configured autosave interval
        self._debounce = notes.autosave_seconds if debounce_seconds is None else debounce_seconds
        self._monotonic = monotonic
        self._generation = 0
        self._key: Optional[LessonKey] = None
        self._machine: Optional[NoteAutosave] = None
        self._timer: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Task] = None

    def _now(self) -> float:
        if self._monotonic is not None:
            return self._monotonic()
        return asyncio.get_running_loop().time()

    @property
    def lesson(self) -> Optional[LessonKey]:
        return self._key

    @property
    def state(self) -> AutosaveState:
        return self._machine.state if self._machine else AutosaveState.IDLE

    @property
    def content(self) -> str:
        return self._machine.content if self._machine else ""

    @property
    def has_changes(self) -> bool:
        return bool(self._machine and self._machine.has_changes)

    @property
    def machine(self) -> Optional[NoteAutosave]:
        return self._machine

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def open_lesson(self, course_id: str, module_number: int, lesson_index: int) -> Optional[NoteEntry]:
        """Switch to a lesson and load its note. Returns None if the load was superseded."""
        self._cancel_timer()
        self._generation += 1
        generation = self._generation
        key: LessonKey = (course_id, module_number, lesson_index)
        self._key = key
        machine = NoteAutosave(self._debounce)
        self._machine = machine

        note = await self._notes.get_note(self._user_id, *key)
        if generation != self._generation:
            logger.debug("note_load_discarded", extra={"course_id": course_id})
            return None
        if note is not None:
            machine.loaded(note.content, note.updated_at)
        return note

    def edit(self, content: str) -> None:
        machine = self._machine
        if machine is None:
            return
        machine.edit(content, self._now())
        if machine.state is AutosaveState.PENDING:
            self._schedule(machine)
        elif machine.state is not AutosaveState.SAVING:
            self._cancel_timer()

    def _schedule(self, machine: NoteAutosave) -> None:
        self._cancel_timer()
        delay = max(0.0, (machine.deadline or self._now()) - self._now())
        self._timer = asyncio.create_task(self._fire_after(delay, self._generation))

    async def _fire_after(self, delay: float, generation: int) -> None:
        await asyncio.sleep(delay)
        if generation != self._generation:
            return
        self._timer = None
        # not awaited: cancelling a timer must never cancel a write already started
        self._start_save()

    def _start_save(self) -> Optional[asyncio.Task]:
        machine, key = self._machine, self._key
        if machine is None or key is None:
            return None
        content = machine.begin_save()
        if content is None:
            return None
        self._inflight = asyncio.create_task(self._write(machine, key, content, self._generation))
        return self._inflight

    async def _write(self, machine: NoteAutosave, key: LessonKey, content: str, generation: int) -> None:
        try:
            note = await self._notes.save_note(self._user_id, key[0], key[1], key[2], content)
        except CourseAccessError as e:
            logger.warning("note_save_failed", extra={
                "course_id": key[0],
                "error": e.message,
                "error_type": type(e).__name__,
            })
            machine.save_failed(e.message)
            return
        except Exception as e:
            logger.exception("note_save_failed", extra={
                "course_id": key[0],
                "error_type": type(e).__name__,
            })
            machine.save_failed("Failed to save note")
            return
        machine.save_succeeded(note.updated_at, self._now())
        if machine.state is AutosaveState.PENDING and generation == self._generation:
            self._schedule(machine)

    async def save_now(self) -> AutosaveState:
        """Write immediately, bypassing the debounce. Waits for an in-flight write first."""
        self._cancel_timer()
        machine = self._machine
        if machine is None:
            return AutosaveState.IDLE
        if machine.state is AutosaveState.SAVING and self._inflight is not None:
            await asyncio.shield(self._inflight)
            self._cancel_timer()
        task = self._start_save()
        if task is not None:
            await task
        return machine.state

    async def close(self) -> None:
        """Unmount: drop the pending timer and any late results; let an in-flight write finish."""
        self._cancel_timer()
        self._generation += 1
        if self._inflight is not None and not self._inflight.done():
            await asyncio.shield(self._inflight)
