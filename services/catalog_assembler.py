"""
Dashboard catalog assembly.

Joins three independently-mutable sources into the per-viewer course list:
- admin course settings (visibility, pricing, free flag),
- code-defined static course definitions (structure and UI metadata),
- the viewer's access state (enrollments, starter-pack signal).

Field ownership when a setting and a static definition describe the same course:

    field                 owner
    -------------------   -------
    title                 setting
    description           setting
    price                 setting
    purchasable           setting
    coming_soon_message   setting
    is_free               setting (forced true for the starter pack)
    short_title           static  (first word of the title when no static definition exists)
    modules               static  (empty when no static definition exists)
    bonus_module          static
    resources             static

Catalog guarantees:
- Only visible settings contribute; visibility overrides enrollment.
- No course id appears twice; the first visible setting for an id wins.
- The starter pack is always present and always first, even before an admin has configured it.
- Remaining courses are ordered by title with a root-locale style collation: letters compare
  case- and accent-insensitively first, then lowercase sorts before uppercase.
"""
from __future__ import annotations

import asyncio
import logging
import unicodedata
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from schemas.course import (
    CourseSetting,
    DashboardCourse,
    ModuleStructure,
    StaticCourseDefinition,
)
from services.access_resolver import (
    DEFAULT_STARTER_PACK_ID,
    AccessDecision,
    fetch_enrollments_fail_closed,
    fetch_starter_signal_fail_closed,
    resolve_access,
)
from services.course_content import CourseContentRepository
from services.course_settings import CourseSettingsRepository
from services.curriculum_builder import build_curriculum
from services.enrollments import EnrollmentReader
from services.static_courses import STATIC_COURSES

logger = logging.getLogger("catalog")

SETTING = "setting"
STATIC = "static"

FIELD_OWNERSHIP: Dict[str, str] = {
    "title": SETTING,
    "description": SETTING,
    "price": SETTING,
    "purchasable": SETTING,
    "coming_soon_message": SETTING,
    "is_free": SETTING,
    "short_title": STATIC,
    "modules": STATIC,
    "bonus_module": STATIC,
    "resources": STATIC,
}

_STATIC_DEFAULTS: Dict[str, Any] = {
    "modules": [],
    "bonus_module": None,
    "resources": [],
}


def _fallback_short_title(title: str) -> str:
    parts = title.split(" ")
    return parts[0] or title


def merge_course(
    setting: CourseSetting,
    static: Optional[StaticCourseDefinition],
    decision: AccessDecision,
) -> DashboardCourse:
    """Merge one setting with its static definition according to FIELD_OWNERSHIP."""
    fields: Dict[str, Any] = {}
    for name, owner in FIELD_OWNERSHIP.items():
        if owner == SETTING:
            fields[name] = getattr(setting, name)
        elif static is not None:
            fields[name] = getattr(static, name)
        elif name == "short_title":
            fields[name] = _fallback_short_title(setting.title)
        else:
            fields[name] = _STATIC_DEFAULTS[name]

    fields["price"] = fields["price"] or None
    # the access decision has the final word on free-ness (starter pack is always free)
    fields["is_free"] = decision.is_free
    return DashboardCourse(
        id=setting.course_id,
        is_locked=decision.is_locked,
        requires_start_form=decision.requires_start_form,
        **fields,
    )


def _strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def title_sort_key(title: str) -> Tuple[str, str, str]:
    """Collation key: base letters ignoring case, then lowercase before uppercase, then accents."""
    base = _strip_accents(title)
    return base.casefold(), base.swapcase(), title


def _synthesized_starter_setting(static: Optional[StaticCourseDefinition], starter_pack_id: str) -> CourseSetting:
    title = static.title if static is not None else "Starter Pack"
    return CourseSetting(course_id=starter_pack_id, title=title, visible=True, is_free=True)


def assemble_catalog(
    settings: Iterable[CourseSetting],
    static_courses: Mapping[str, StaticCourseDefinition],
    enrollments: Optional[Iterable[str]],
    starter_pack_unlocked: bool,
    starter_pack_id: str = DEFAULT_STARTER_PACK_ID,
) -> List[DashboardCourse]:
    """Pure catalog assembly over already-fetched inputs."""
    enrollment_set = frozenset(enrollments or ())
    seen: set = set()
    courses: List[DashboardCourse] = []

    for setting in settings:
        if not setting.visible or setting.course_id in seen:
            continue
        seen.add(setting.course_id)
        decision = resolve_access(
            setting.course_id,
            enrollment_set,
            setting.is_free,
            starter_pack_unlocked,
            starter_pack_id=starter_pack_id,
        )
        courses.append(merge_course(setting, static_courses.get(setting.course_id), decision))

    if starter_pack_id not in seen:
        static = static_courses.get(starter_pack_id)
        decision = resolve_access(starter_pack_id, enrollment_set, True, starter_pack_unlocked,
                                  starter_pack_id=starter_pack_id)
        courses.append(merge_course(_synthesized_starter_setting(static, starter_pack_id), static, decision))

    starter = [c for c in courses if c.id == starter_pack_id]
    others = sorted((c for c in courses if c.id != starter_pack_id), key=lambda c: title_sort_key(c.title))
    return starter + others


def get_course_by_id(
    course_id: str,
    courses: Optional[Iterable[DashboardCourse]] = None,
    static_courses: Mapping[str, StaticCourseDefinition] = STATIC_COURSES,
    starter_pack_id: str = DEFAULT_STARTER_PACK_ID,
) -> Optional[DashboardCourse]:
    """Look a course up in an assembled list, or build an unlocked view from static data."""
    if courses is not None:
        return next((c for c in courses if c.id == course_id), None)
    static = static_courses.get(course_id)
    if static is None:
        return None
    return DashboardCourse(
        id=static.id,
        title=static.title,
        short_title=static.short_title,
        modules=static.modules,
        bonus_module=static.bonus_module,
        resources=static.resources,
        is_locked=False,
        is_free=course_id == starter_pack_id,
    )


class CatalogService:
    """Fetches the catalog inputs concurrently and assembles the viewer's dashboard."""

    def __init__(
        self,
        settings_repo: CourseSettingsRepository,
        enrollments: EnrollmentReader,
        content_repo: CourseContentRepository,
        static_courses: Mapping[str, StaticCourseDefinition] = STATIC_COURSES,
        starter_pack_id: str = DEFAULT_STARTER_PACK_ID,
    ) -> None:
        self._settings = settings_repo
        self._enrollments = enrollments
        self._content = content_repo
        self._static = static_courses
        self.starter_pack_id = starter_pack_id

    async def get_dashboard_courses(self, user_id: Optional[str], email: Optional[str] = None) -> List[DashboardCourse]:
        # settings failures propagate; access lookups fail closed
        settings, (enrollments, enrollments_degraded), (unlocked, signal_degraded) = await asyncio.gather(
            self._settings.list_course_settings(),
            fetch_enrollments_fail_closed(self._enrollments.get_user_enrollments, user_id),
            fetch_starter_signal_fail_closed(self._enrollments.has_starter_pack_access, email),
        )
        courses = assemble_catalog(settings, self._static, enrollments, unlocked, self.starter_pack_id)
        logger.info("catalog_assembled", extra={
            "user_id": user_id or "-",
            "count": len(courses),
            "error": "access_degraded" if (enrollments_degraded or signal_degraded) else None,
        })
        return courses

    async def get_curriculum(self, course_id: str) -> List[ModuleStructure]:
        entries = await self._content.list_course_content(course_id)
        return build_curriculum(course_id, entries, self._static.get(course_id))
