"""
Read-only views over externally-maintained access records.

- Enrollments are written by payment webhooks, coupons and admin grants.
- The starter-pack signal is set when the learner submits the lead-capture form.
"""
from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from services.document_store import DocumentStore

logger = logging.getLogger("enrollments")

ENROLLMENTS_COLLECTION = "course_enrollments"
SUBSCRIPTIONS_COLLECTION = "email_subscriptions"
STARTER_PACK_SOURCE = "starter-pack"


class EnrollmentReader:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def get_user_enrollments(self, user_id: str) -> List[str]:
        """Course ids with an active enrollment for the user."""
        docs = await self._store.query(ENROLLMENTS_COLLECTION, {"user_id": user_id, "status": "active"})
        return [str(d.data.get("course_id")) for d in docs if d.data.get("course_id")]

    async def has_starter_pack_access(self, email: Optional[str]) -> bool:
        """True once the address has submitted the starter-pack form.

        The store has no OR, so the two markers are queried concurrently.
        """
        normalised = (email or "").strip().lower()
        if not normalised or "@" not in normalised:
            return False
        by_source, by_claimed = await asyncio.gather(
            self._store.query(SUBSCRIPTIONS_COLLECTION, {"email": normalised, "source": STARTER_PACK_SOURCE}, limit=1),
            self._store.query(SUBSCRIPTIONS_COLLECTION, {"email": normalised, "starter_pack_claimed": True}, limit=1),
        )
        return bool(by_source) or bool(by_claimed)
