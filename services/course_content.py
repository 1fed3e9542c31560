"""
Admin-uploaded course content: one entry per (course, module, episode) with its files.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from core.clock import Clock, utc_now
from core.errors import NotFoundError
from schemas.course import ContentCategory, ContentEntry, ContentFile
from services.document_store import Document, DocumentStore

logger = logging.getLogger("course_content")

COLLECTION = "course_content"
DEFAULT_LIST_LIMIT = 200

_UPDATABLE_FIELDS = (
    "module_title",
    "module_description",
    "episode_title",
    "episode_description",
    "duration",
    "files",
    "order",
)


def _int_or_zero(value: Any) -> int:
    return value if isinstance(value, int) and not isinstance(value, bool) else 0


def _to_file(raw: Any) -> ContentFile:
    raw = raw if isinstance(raw, Mapping) else {}
    file_type = raw.get("type") or "other"
    try:
        category = ContentCategory(file_type)
    except ValueError:
        category = ContentCategory.OTHER
    return ContentFile(
        url=str(raw.get("url") or ""),
        type=category,
        name=str(raw.get("name") or ""),
        size=raw.get("size") if isinstance(raw.get("size"), int) else None,
        transcript=raw.get("transcript") or None,
    )


def to_entry(doc: Document) -> ContentEntry:
    data = doc.data
    return ContentEntry(
        id=doc.id,
        course_id=str(data.get("course_id") or ""),
        module_number=_int_or_zero(data.get("module_number")),
        module_title=str(data.get("module_title") or ""),
        module_description=data.get("module_description"),
        episode_index=_int_or_zero(data.get("episode_index")),
        episode_title=str(data.get("episode_title") or ""),
        episode_description=data.get("episode_description"),
        duration=data.get("duration"),
        files=[_to_file(f) for f in (data.get("files") or [])],
        order=_int_or_zero(data.get("order")),
        created_at=str(data["created_at"]) if data.get("created_at") else None,
        updated_at=str(data["updated_at"]) if data.get("updated_at") else None,
    )


def _serialise_files(files: Any) -> List[Dict[str, Any]]:
    out = []
    for f in files or []:
        model = f if isinstance(f, ContentFile) else ContentFile.model_validate(f)
        out.append(model.model_dump(mode="json"))
    return out


class CourseContentRepository:
    def __init__(self, store: DocumentStore, clock: Clock = utc_now, list_limit: int = DEFAULT_LIST_LIMIT) -> None:
        self._store = store
        self._clock = clock
        self._list_limit = list_limit

    async def list_course_content(self, course_id: str) -> List[ContentEntry]:
        docs = await self._store.query(COLLECTION, {"course_id": course_id}, limit=self._list_limit)
        entries = [to_entry(d) for d in docs]
        entries.sort(key=lambda e: (e.module_number, e.episode_index))
        return entries

    async def get_lesson_content(self, course_id: str, module_number: int, episode_index: int) -> Optional[ContentEntry]:
        for entry in await self.list_course_content(course_id):
            if entry.module_number == module_number and entry.episode_index == episode_index:
                return entry
        return None

    async def create_content_entry(self, fields: Mapping[str, Any]) -> ContentEntry:
        now = self._clock().isoformat()
        payload = dict(fields)
        payload["files"] = _serialise_files(payload.get("files"))
        payload["created_at"] = now
        payload["updated_at"] = now
        doc_id = await self._store.create(COLLECTION, payload)
        logger.info("content_entry_created", extra={
            "course_id": payload.get("course_id"),
            "module_number": payload.get("module_number"),
            "lesson_index": payload.get("episode_index"),
        })
        return to_entry(Document(doc_id, payload))

    async def update_content_entry(self, entry_id: str, updates: Mapping[str, Any]) -> ContentEntry:
        existing = await self._store.get(COLLECTION, entry_id)
        if existing is None:
            raise NotFoundError(f"Content entry {entry_id} not found")
        changes = {k: v for k, v in updates.items() if k in _UPDATABLE_FIELDS and v is not None}
        if "files" in changes:
            changes["files"] = _serialise_files(changes["files"])
        changes["updated_at"] = self._clock().isoformat()
        await self._store.update(COLLECTION, entry_id, changes)
        return to_entry(Document(entry_id, {**existing.data, **changes}))

    async def delete_content_entry(self, entry_id: str) -> None:
        await self._store.delete(COLLECTION, entry_id)
        logger.info("content_entry_deleted")
