import pytest

from schemas.course import CourseSetting
from services.catalog_assembler import CatalogService, assemble_catalog, get_course_by_id, title_sort_key
from services.course_content import CourseContentRepository
from services.course_settings import CourseSettingsRepository
from services.enrollments import EnrollmentReader
from services.static_courses import STATIC_COURSES


def _setting(course_id, title, visible=True, is_free=False, price="£10", **kw):
    return CourseSetting(course_id=course_id, title=title, visible=visible, is_free=is_free, price=price, **kw)


def test_masterclass_only_catalog_for_anonymous_viewer():
    settings = [_setting("masterclass", "Property Investor Masterclass", price="£297")]
    catalog = assemble_catalog(settings, STATIC_COURSES, [], starter_pack_unlocked=False)

    assert [c.id for c in catalog] == ["starter-pack", "masterclass"]
    starter, masterclass = catalog
    assert starter.is_locked is True
    assert starter.is_free is True
    assert starter.requires_start_form is True
    assert masterclass.is_locked is True
    assert masterclass.is_free is False
    assert masterclass.price == "£297"
    assert masterclass.short_title == STATIC_COURSES["masterclass"].short_title
    assert len(masterclass.modules) == 8


def test_invisible_setting_hidden_even_when_enrolled():
    settings = [_setting("masterclass", "Masterclass", visible=False)]
    catalog = assemble_catalog(settings, STATIC_COURSES, ["masterclass"], False)
    assert [c.id for c in catalog] == ["starter-pack"]


def test_duplicate_settings_first_visible_wins():
    settings = [
        _setting("masterclass", "Hidden", visible=False),
        _setting("masterclass", "First"),
        _setting("masterclass", "Second"),
    ]
    catalog = assemble_catalog(settings, STATIC_COURSES, [], False)
    titles = [c.title for c in catalog if c.id == "masterclass"]
    assert titles == ["First"]


def test_starter_pack_first_rest_sorted_by_title():
    settings = [
        _setting("zeta", "Zeta course"),
        _setting("starter-pack", "Starter Pack", is_free=False),
        _setting("alpha", "Alpha course"),
    ]
    catalog = assemble_catalog(settings, STATIC_COURSES, [], starter_pack_unlocked=True)
    assert [c.id for c in catalog] == ["starter-pack", "alpha", "zeta"]
    assert catalog[0].is_locked is False
    assert catalog[0].is_free is True


def test_course_without_static_definition_gets_fallback_fields():
    catalog = assemble_catalog([_setting("webinar", "Live Webinar Series", price="")], STATIC_COURSES, [], False)
    webinar = catalog[1]
    assert webinar.short_title == "Live"
    assert webinar.modules == []
    assert webinar.bonus_module is None
    assert webinar.price is None


def test_enrollment_and_free_flag_unlock():
    settings = [_setting("masterclass", "Masterclass"), _setting("beginner-course", "Beginners", is_free=True)]
    catalog = assemble_catalog(settings, STATIC_COURSES, ["masterclass"], False)
    by_id = {c.id: c for c in catalog}
    assert by_id["masterclass"].is_locked is False
    assert by_id["beginner-course"].is_locked is False
    assert by_id["beginner-course"].bonus_module is not None


def test_get_course_by_id():
    catalog = assemble_catalog([_setting("masterclass", "Masterclass")], STATIC_COURSES, [], False)
    assert get_course_by_id("masterclass", catalog).title == "Masterclass"
    assert get_course_by_id("missing", catalog) is None
    assert get_course_by_id("beginner-course").is_locked is False
    assert get_course_by_id("missing") is None


class FailingEnrollmentReader(EnrollmentReader):
    async def get_user_enrollments(self, user_id):
        raise ConnectionError("enrollments unavailable")

    async def has_starter_pack_access(self, email):
        raise ConnectionError("subscriptions unavailable")


@pytest.mark.asyncio
async def test_catalog_service_reads_store(store, clock):
    settings_repo = CourseSettingsRepository(store, clock)
    await settings_repo.seed_default_course_settings()
    await store.create("course_enrollments", {"user_id": "u1", "course_id": "masterclass", "status": "active"})
    await store.create("email_subscriptions", {"email": "learner@example.com", "source": "starter-pack"})

    service = CatalogService(settings_repo, EnrollmentReader(store), CourseContentRepository(store, clock))
    catalog = await service.get_dashboard_courses("u1", " Learner@Example.com ")

    by_id = {c.id: c for c in catalog}
    assert catalog[0].id == "starter-pack"
    assert by_id["starter-pack"].is_locked is False
    assert by_id["masterclass"].is_locked is False
    assert by_id["beginner-course"].is_locked is True


@pytest.mark.asyncio
async def test_catalog_service_fails_closed_on_access_errors(store, clock):
    settings_repo = CourseSettingsRepository(store, clock)
    await settings_repo.seed_default_course_settings()
    service = CatalogService(settings_repo, FailingEnrollmentReader(store), CourseContentRepository(store, clock))

    catalog = await service.get_dashboard_courses("u1", "learner@example.com")
    assert all(c.is_locked for c in catalog)


@pytest.mark.asyncio
async def test_curriculum_prefers_admin_content(store, clock):
    content = CourseContentRepository(store, clock)
    service = CatalogService(CourseSettingsRepository(store, clock), EnrollmentReader(store), content)

    static_tree = await service.get_curriculum("beginner-course")
    assert static_tree[-1].is_bonus is True

    await content.create_content_entry({
        "course_id": "beginner-course",
        "module_number": 1,
        "module_title": "Uploaded",
        "episode_index": 0,
        "episode_title": "Intro",
        "files": [{"url": "/blobs/a.mp4", "type": "video", "name": "a.mp4"}],
    })
    tree = await service.get_curriculum("beginner-course")
    assert [m.title for m in tree] == ["Uploaded"]
    assert tree[0].episodes[0].has_content is True


def test_titles_collate_ignoring_case_and_accents():
    settings = [
        _setting("b", "Beginners"),
        _setting("a", "advanced investing"),
        _setting("e", "Équité"),
        _setting("z", "Zebra"),
    ]
    catalog = assemble_catalog(settings, STATIC_COURSES, [], False)
    assert [c.title for c in catalog[1:]] == ["advanced investing", "Beginners", "Équité", "Zebra"]


def test_lowercase_title_sorts_before_uppercase_twin():
    assert sorted(["Course", "course", "Cöurse"], key=title_sort_key) == ["course", "Course", "Cöurse"]
