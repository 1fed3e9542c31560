"""
Course settings repository.

One admin-owned row per course_id. Reads never fail on absence (None / empty list); admin
update and delete targets that do not exist raise NotFoundError.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from core.clock import Clock, utc_now
from core.errors import NotFoundError, ValidationFailure
from schemas.course import CourseSetting
from services.document_store import Document, DocumentStore

logger = logging.getLogger("course_settings")

COLLECTION = "course_settings"

_UPDATABLE_FIELDS = (
    "title",
    "description",
    "price",
    "visible",
    "purchasable",
    "coming_soon_message",
    "is_free",
)

DEFAULT_COURSE_SETTINGS: List[Dict[str, Any]] = [
    {"course_id": "beginner-course", "title": "Beginners", "description": "From Book to Buy-to-Let",
     "price": "£97", "visible": True, "purchasable": True, "coming_soon_message": "", "is_free": False},
    {"course_id": "masterclass", "title": "Property Investor Masterclass", "description": "Advanced course",
     "price": "£297", "visible": True, "purchasable": True, "coming_soon_message": "", "is_free": False},
    {"course_id": "starter-pack", "title": "Starter Pack", "description": "Free resources",
     "price": "Free", "visible": True, "purchasable": False, "coming_soon_message": "", "is_free": True},
]


def to_setting(doc: Document) -> CourseSetting:
    """Normalise a stored record; flags are only true when stored as exactly True."""
    data = doc.data
    return CourseSetting(
        id=doc.id,
        course_id=str(data.get("course_id") or ""),
        title=str(data.get("title") or ""),
        description=str(data.get("description") or ""),
        price=str(data.get("price") or ""),
        visible=data.get("visible") is True,
        purchasable=data.get("purchasable") is True,
        is_free=data.get("is_free") is True,
        coming_soon_message=str(data.get("coming_soon_message") or ""),
        updated_at=str(data["updated_at"]) if data.get("updated_at") else None,
    )


class CourseSettingsRepository:
    def __init__(self, store: DocumentStore, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock

    async def list_course_settings(self) -> List[CourseSetting]:
        docs = await self._store.query(COLLECTION)
        settings = [to_setting(d) for d in docs]
        settings.sort(key=lambda s: s.course_id)
        return settings

    async def get_course_setting(self, course_id: str) -> Optional[CourseSetting]:
        docs = await self._store.query(COLLECTION, {"course_id": course_id}, limit=1)
        return to_setting(docs[0]) if docs else None

    async def _require(self, course_id: str) -> CourseSetting:
        existing = await self.get_course_setting(course_id)
        if existing is None:
            raise NotFoundError(f"Course setting not found for {course_id}")
        return existing

    async def create_course_setting(self, fields: Mapping[str, Any]) -> CourseSetting:
        course_id = str(fields.get("course_id") or "").strip()
        if not course_id:
            raise ValidationFailure("course_id is required")
        if await self.get_course_setting(course_id) is not None:
            raise ValidationFailure(f"Course setting already exists for {course_id}")

        payload = {
            "course_id": course_id,
            "title": fields.get("title") or "",
            "description": fields.get("description") or "",
            "price": fields.get("price") or "£0",
            "visible": fields.get("visible", True) is True,
            "purchasable": fields.get("purchasable", False) is True,
            "coming_soon_message": fields.get("coming_soon_message") or "",
            "is_free": fields.get("is_free", False) is True,
            "updated_at": self._clock().isoformat(),
        }
        doc_id = await self._store.create(COLLECTION, payload)
        logger.info("course_setting_created", extra={"course_id": course_id})
        return to_setting(Document(doc_id, payload))

    async def update_course_setting(self, course_id: str, updates: Mapping[str, Any]) -> CourseSetting:
        existing = await self._require(course_id)
        changes = {k: v for k, v in updates.items() if k in _UPDATABLE_FIELDS and v is not None}
        changes["updated_at"] = self._clock().isoformat()
        await self._store.update(COLLECTION, existing.id, changes)
        logger.info("course_setting_updated", extra={"course_id": course_id, "count": len(changes) - 1})
        return existing.model_copy(update=changes)

    async def delete_course_setting(self, course_id: str) -> None:
        existing = await self._require(course_id)
        await self._store.delete(COLLECTION, existing.id)
        logger.info("course_setting_deleted", extra={"course_id": course_id})

    async def seed_default_course_settings(self) -> List[str]:
        """Create any missing default rows; existing rows are never touched. Returns created ids."""
        existing = {s.course_id for s in await self.list_course_settings()}
        created: List[str] = []
        for default in DEFAULT_COURSE_SETTINGS:
            if default["course_id"] in existing:
                continue
            await self._store.create(COLLECTION, {**default, "updated_at": self._clock().isoformat()})
            existing.add(default["course_id"])
            created.append(default["course_id"])
        if created:
            logger.info("course_settings_seeded", extra={"count": len(created)})
        return created
