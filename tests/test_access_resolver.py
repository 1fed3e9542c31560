import pytest

from services.access_resolver import (
    fetch_enrollments_fail_closed,
    fetch_starter_signal_fail_closed,
    resolve_access,
)


def test_paid_course_locked_without_enrollment():
    decision = resolve_access("masterclass", frozenset(), is_free=False)
    assert decision.is_locked is True
    assert decision.is_free is False
    assert decision.requires_start_form is None


def test_enrollment_unlocks_paid_course():
    assert resolve_access("masterclass", {"masterclass"}, is_free=False).is_locked is False


def test_free_course_is_unlocked_for_anonymous_viewer():
    assert resolve_access("beginner-course", None, is_free=True).is_locked is False


@pytest.mark.parametrize("signal,locked", [(True, False), (False, True), (None, True)])
def test_starter_pack_follows_signal_only(signal, locked):
    decision = resolve_access("starter-pack", {"starter-pack"}, is_free=False, starter_pack_unlocked=signal)
    assert decision.is_locked is locked
    assert decision.is_free is True
    assert decision.requires_start_form is True


@pytest.mark.asyncio
async def test_enrollment_lookup_fails_closed():
    async def broken(user_id):
        raise ConnectionError("store down")

    enrollments, degraded = await fetch_enrollments_fail_closed(broken, "u1")
    assert enrollments == frozenset()
    assert degraded is True


@pytest.mark.asyncio
async def test_anonymous_viewer_skips_enrollment_lookup():
    calls = []

    async def fetch(user_id):
        calls.append(user_id)
        return ["masterclass"]

    enrollments, degraded = await fetch_enrollments_fail_closed(fetch, None)
    assert enrollments == frozenset() and degraded is False
    assert calls == []


@pytest.mark.asyncio
async def test_starter_signal_fails_closed():
    async def broken(email):
        raise TimeoutError()

    unlocked, degraded = await fetch_starter_signal_fail_closed(broken, "a@b.com")
    assert unlocked is False
    assert degraded is True
