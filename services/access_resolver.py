"""
Course lock-state decisions.

Two branches keyed on one hardcoded course identity:
- Starter pack: locked iff the lead-capture signal is absent; always free, always needs the start form.
  Enrollment and the stored free flag are ignored for it.
- Every other course: locked iff it is not free and the viewer is not enrolled.

Lookups feeding these decisions fail closed: an external error yields "no access" rather than an
exception, so a backend outage can never unlock a course.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AbstractSet, Awaitable, Callable, FrozenSet, Optional, Tuple

logger = logging.getLogger("access")

DEFAULT_STARTER_PACK_ID = "starter-pack"


@dataclass(frozen=True)
class AccessDecision:
    is_locked: bool
    is_free: bool
    requires_start_form: Optional[bool] = None


def resolve_access(
    course_id: str,
    enrollments: Optional[AbstractSet[str]],
    is_free: bool,
    starter_pack_unlocked: Optional[bool] = None,
    starter_pack_id: str = DEFAULT_STARTER_PACK_ID,
) -> AccessDecision:
    if course_id == starter_pack_id:
        return AccessDecision(
            is_locked=not bool(starter_pack_unlocked),
            is_free=True,
            requires_start_form=True,
        )
    enrolled = course_id in (enrollments or frozenset())
    return AccessDecision(is_locked=not is_free and not enrolled, is_free=bool(is_free))


async def fetch_enrollments_fail_closed(
    fetch: Callable[[str], Awaitable[list]],
    user_id: Optional[str],
) -> Tuple[FrozenSet[str], bool]:
    """Return (enrollment set, degraded). Anonymous viewers have no enrollments."""
    if not user_id:
        return frozenset(), False
    try:
        return frozenset(await fetch(user_id)), False
    except Exception as e:
        logger.warning("enrollment_lookup_failed", extra={
            "user_id": user_id,
            "error": str(e),
            "error_type": type(e).__name__,
        })
        return frozenset(), True


async def fetch_starter_signal_fail_closed(
    fetch: Callable[[Optional[str]], Awaitable[bool]],
    email: Optional[str],
) -> Tuple[bool, bool]:
    """Return (unlocked, degraded)."""
    try:
        return bool(await fetch(email)), False
    except Exception as e:
        logger.warning("starter_pack_lookup_failed", extra={
            "error": str(e),
            "error_type": type(e).__name__,
        })
        return False, True
