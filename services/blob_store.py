"""
Blob store boundary and upload validation.

Validation (size, then media type) always happens before any bytes are sent, so a rejected file
never reaches the store. Uploads report progress as an async stream of percentages; the final
item carries the retrievable URL.
"""
from __future__ import annotations

import asyncio
import logging
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Callable, FrozenSet, Optional

from core.errors import ExternalServiceFailure, ValidationFailure
from schemas.course import ContentFile
from services.content_classifier import classify_content_type

logger = logging.getLogger("blob_store")

MB = 1024 * 1024
CHUNK_SIZE = 256 * 1024

COURSE_CONTENT_PATH = "course_content"
STARTER_PACK_PATH = "starter_pack"


@dataclass(frozen=True)
class UploadPolicy:
    name: str
    max_bytes: int
    allowed_types: Optional[FrozenSet[str]] = None  # None accepts any type
    type_error: str = "File type not allowed."


COURSE_CONTENT_POLICY = UploadPolicy("course_content", 150 * MB)
STARTER_PACK_POLICY = UploadPolicy("starter_pack", 100 * MB)


def validate_upload(size: int, content_type: Optional[str], policy: UploadPolicy) -> None:
    if size > policy.max_bytes:
        raise ValidationFailure(f"File too large. Max {policy.max_bytes // MB}MB.")
    if policy.allowed_types is not None and (content_type or "").lower() not in policy.allowed_types:
        raise ValidationFailure(policy.type_error)


_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


def safe_blob_name(name: str, limit: int = 80) -> str:
    return _UNSAFE_CHARS.sub("_", name or "file")[:limit]


def course_content_path(course_id: str, module_number: int, episode_index: int, filename: str,
                        millis: Optional[int] = None) -> str:
    stamp = millis if millis is not None else int(time.time() * 1000)
    return f"{COURSE_CONTENT_PATH}/{course_id}/{module_number}_{episode_index}_{stamp}_{safe_blob_name(filename)}"


def starter_pack_path(filename: str, millis: Optional[int] = None) -> str:
    stamp = millis if millis is not None else int(time.time() * 1000)
    return f"{STARTER_PACK_PATH}/{stamp}_{safe_blob_name(filename)}"


@dataclass(frozen=True)
class UploadProgress:
    percent: int
    url: Optional[str] = None


class BlobStore(ABC):
    @abstractmethod
    def upload(self, path: str, data: bytes, content_type: str) -> AsyncIterator[UploadProgress]:
        """Yield progress updates; the last one carries the URL."""


class LocalBlobStore(BlobStore):
    """Writes blobs under a root directory; file I/O runs off the event loop."""

    def __init__(self, root: str, base_url: str = "/blobs", chunk_size: int = CHUNK_SIZE) -> None:
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")
        self.chunk_size = chunk_size

    def _target(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if self.root.resolve() not in target.parents:
            raise ValidationFailure("Invalid blob path")
        return target

    async def upload(self, path: str, data: bytes, content_type: str) -> AsyncIterator[UploadProgress]:
        target = self._target(path)
        total = len(data)
        try:
            await asyncio.to_thread(target.parent.mkdir, parents=True, exist_ok=True)
            handle = await asyncio.to_thread(open, target, "wb")
            try:
                written = 0
                while written < total:
                    chunk = data[written:written + self.chunk_size]
                    await asyncio.to_thread(handle.write, chunk)
                    written += len(chunk)
                    yield UploadProgress(percent=round(written * 100 / total))
            finally:
                await asyncio.to_thread(handle.close)
        except OSError as e:
            logger.error("blob_upload_failed", extra={"path": path, "error": str(e)})
            raise ExternalServiceFailure("Blob upload failed") from e
        yield UploadProgress(percent=100, url=f"{self.base_url}/{path}")


async def upload_with_progress(
    store: BlobStore,
    path: str,
    data: bytes,
    content_type: str,
    on_progress: Optional[Callable[[int], None]] = None,
) -> str:
    url: Optional[str] = None
    async for update in store.upload(path, data, content_type):
        if on_progress is not None:
            on_progress(update.percent)
        if update.url:
            url = update.url
    if url is None:
        raise ExternalServiceFailure("Blob store did not return a URL")
    return url


async def upload_course_file(
    store: BlobStore,
    data: bytes,
    filename: str,
    content_type: str,
    course_id: str,
    module_number: int,
    episode_index: int,
    policy: UploadPolicy = COURSE_CONTENT_POLICY,
    on_progress: Optional[Callable[[int], None]] = None,
) -> ContentFile:
    validate_upload(len(data), content_type, policy)
    path = course_content_path(course_id, module_number, episode_index, filename)
    url = await upload_with_progress(store, path, data, content_type, on_progress)
    logger.info("course_file_uploaded", extra={
        "course_id": course_id,
        "module_number": module_number,
        "lesson_index": episode_index,
    })
    return ContentFile(
        url=url,
        type=classify_content_type(content_type),
        name=filename,
        size=len(data),
    )


async def upload_starter_file(
    store: BlobStore,
    data: bytes,
    filename: str,
    content_type: str,
    policy: UploadPolicy = STARTER_PACK_POLICY,
    on_progress: Optional[Callable[[int], None]] = None,
) -> ContentFile:
    validate_upload(len(data), content_type, policy)
    url = await upload_with_progress(store, starter_pack_path(filename), data, content_type, on_progress)
    logger.info("starter_file_uploaded", extra={"count": 1})
    return ContentFile(
        url=url,
        type=classify_content_type(content_type),
        name=filename,
        size=len(data),
    )
