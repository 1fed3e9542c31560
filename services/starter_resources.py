"""
Starter pack resources: the files a learner receives after submitting the start form.

Listed in ascending `order`, capped at 100 records.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping

from core.clock import Clock, utc_now
from core.errors import NotFoundError
from schemas.course import ContentCategory, StarterResource
from services.document_store import Document, DocumentStore

logger = logging.getLogger("starter_resources")

COLLECTION = "starter_resources"
LIST_LIMIT = 100

_UPDATABLE_FIELDS = (
    "title",
    "description",
    "transcript",
    "file_url",
    "file_name",
    "file_type",
    "file_size",
    "order",
)


def _category(value: Any) -> ContentCategory:
    try:
        return ContentCategory(value or "other")
    except ValueError:
        return ContentCategory.OTHER


def to_resource(doc: Document) -> StarterResource:
    data = doc.data
    order = data.get("order")
    size = data.get("file_size")
    return StarterResource(
        id=doc.id,
        title=str(data.get("title") or ""),
        description=str(data.get("description") or ""),
        transcript=data.get("transcript") or None,
        file_url=str(data.get("file_url") or ""),
        file_name=str(data.get("file_name") or ""),
        file_type=_category(data.get("file_type")),
        file_size=size if isinstance(size, int) and not isinstance(size, bool) else None,
        order=order if isinstance(order, int) and not isinstance(order, bool) else 0,
        created_at=str(data["created_at"]) if data.get("created_at") else None,
        updated_at=str(data["updated_at"]) if data.get("updated_at") else None,
    )


def _clean(fields: Mapping[str, Any]) -> Dict[str, Any]:
    out = dict(fields)
    if "file_type" in out:
        out["file_type"] = _category(out["file_type"]).value
    if "transcript" in out:
        out["transcript"] = out["transcript"] or None
    return out


class StarterResourcesRepository:
    def __init__(self, store: DocumentStore, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock

    async def list_starter_resources(self) -> List[StarterResource]:
        docs = await self._store.query(COLLECTION, order_by="order", limit=LIST_LIMIT)
        return [to_resource(d) for d in docs]

    async def create_starter_resource(self, fields: Mapping[str, Any]) -> StarterResource:
        now = self._clock().isoformat()
        payload = {
            "title": fields.get("title") or "",
            "description": fields.get("description") or "",
            "transcript": fields.get("transcript") or None,
            "file_url": fields.get("file_url") or "",
            "file_name": fields.get("file_name") or "",
            "file_type": _category(fields.get("file_type")).value,
            "file_size": fields.get("file_size"),
            "order": fields.get("order") if isinstance(fields.get("order"), int) else 0,
            "created_at": now,
            "updated_at": now,
        }
        doc_id = await self._store.create(COLLECTION, payload)
        logger.info("starter_resource_created", extra={"count": 1})
        return to_resource(Document(doc_id, payload))

    async def update_starter_resource(self, resource_id: str, updates: Mapping[str, Any]) -> StarterResource:
        existing = await self._store.get(COLLECTION, resource_id)
        if existing is None:
            raise NotFoundError(f"Starter resource {resource_id} not found")
        changes = _clean({k: v for k, v in updates.items() if k in _UPDATABLE_FIELDS and v is not None})
        changes["updated_at"] = self._clock().isoformat()
        await self._store.update(COLLECTION, resource_id, changes)
        return to_resource(Document(resource_id, {**existing.data, **changes}))

    async def delete_starter_resource(self, resource_id: str) -> None:
        await self._store.delete(COLLECTION, resource_id)
        logger.info("starter_resource_deleted")
