import pytest

from core.config import Settings
from core.errors import ValidationFailure
from schemas.course import ContentCategory
from services.blob_store import (
    MB,
    BlobStore,
    LocalBlobStore,
    UploadPolicy,
    UploadProgress,
    course_content_path,
    safe_blob_name,
    starter_pack_path,
    upload_course_file,
    upload_starter_file,
    validate_upload,
)
from services.container import build_container

VIDEO_ONLY = UploadPolicy(
    "video",
    50 * MB,
    frozenset({"video/mp4", "video/webm", "video/ogg"}),
    "Invalid video type. Use MP4, WebM, or OGG.",
)


class SpyBlobStore(BlobStore):
    def __init__(self):
        self.calls = []

    async def upload(self, path, data, content_type):
        self.calls.append(path)
        yield UploadProgress(percent=50)
        yield UploadProgress(percent=100, url=f"https://cdn.example.com/{path}")


@pytest.mark.asyncio
async def test_disallowed_video_type_rejected_before_upload():
    spy = SpyBlobStore()
    with pytest.raises(ValidationFailure) as exc:
        await upload_course_file(spy, b"data", "clip.avi", "video/avi", "c1", 1, 0, policy=VIDEO_ONLY)
    assert exc.value.message == "Invalid video type. Use MP4, WebM, or OGG."
    assert spy.calls == []


@pytest.mark.asyncio
async def test_oversized_file_rejected_before_upload():
    spy = SpyBlobStore()
    tiny = UploadPolicy("tiny", max_bytes=4)
    with pytest.raises(ValidationFailure):
        await upload_course_file(spy, b"12345", "notes.pdf", "application/pdf", "c1", 1, 0, policy=tiny)
    assert spy.calls == []


def test_size_checked_before_type():
    with pytest.raises(ValidationFailure) as exc:
        validate_upload(51 * MB, "video/avi", VIDEO_ONLY)
    assert "too large" in exc.value.message


@pytest.mark.asyncio
async def test_upload_reports_progress_and_classifies():
    spy = SpyBlobStore()
    seen = []
    content_file = await upload_course_file(
        spy, b"%PDF", "Deal Analyser.pdf", "application/pdf", "beginner-course", 2, 1, on_progress=seen.append,
    )
    assert seen == [50, 100]
    assert content_file.type is ContentCategory.PDF
    assert content_file.size == 4
    assert content_file.name == "Deal Analyser.pdf"
    assert content_file.url.startswith("https://cdn.example.com/course_content/beginner-course/2_1_")


def test_paths_are_sanitised():
    assert safe_blob_name("my file (1).mp4") == "my_file__1_.mp4"
    assert course_content_path("c1", 3, 2, "a b.mp4", millis=42) == "course_content/c1/3_2_42_a_b.mp4"


@pytest.mark.asyncio
async def test_local_blob_store_writes_file(tmp_path):
    store = LocalBlobStore(str(tmp_path), base_url="/blobs", chunk_size=2)
    updates = [u async for u in store.upload("course_content/c1/a.txt", b"hello", "text/plain")]

    assert [u.percent for u in updates] == [40, 80, 100, 100]
    assert updates[-1].url == "/blobs/course_content/c1/a.txt"
    assert (tmp_path / "course_content" / "c1" / "a.txt").read_bytes() == b"hello"


@pytest.mark.asyncio
async def test_local_blob_store_rejects_traversal(tmp_path):
    store = LocalBlobStore(str(tmp_path))
    with pytest.raises(ValidationFailure):
        async for _ in store.upload("../escape.txt", b"x", "text/plain"):
            pass


def test_container_policies_follow_settings():
    container = build_container(Settings(max_course_file_mb=10, max_starter_file_mb=5))
    assert container.course_upload_policy.max_bytes == 10 * MB
    assert container.starter_upload_policy.max_bytes == 5 * MB


@pytest.mark.asyncio
async def test_starter_file_lands_under_starter_pack():
    spy = SpyBlobStore()
    content_file = await upload_starter_file(spy, b"ID3", "Welcome Audio.mp3", "audio/mpeg")
    assert spy.calls[0].startswith("starter_pack/")
    assert spy.calls[0].endswith("_Welcome_Audio.mp3")
    assert content_file.type is ContentCategory.AUDIO
    assert content_file.size == 3


@pytest.mark.asyncio
async def test_starter_file_over_limit_is_rejected():
    spy = SpyBlobStore()
    with pytest.raises(ValidationFailure):
        await upload_starter_file(spy, b"12345", "guide.pdf", "application/pdf", policy=UploadPolicy("starter_pack", 4))
    assert spy.calls == []


def test_starter_pack_path():
    assert starter_pack_path("checklist v2.pdf", millis=7) == "starter_pack/7_checklist_v2.pdf"


def test_container_passes_note_autosave_interval():
    container = build_container(Settings(note_autosave_seconds=0.5))
    assert container.notes.autosave_seconds == 0.5
