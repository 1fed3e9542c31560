"""
Service wiring.

One container per process, built lazily from Settings. Route handlers receive it through
FastAPI's dependency injection, so tests can swap in a container built on an in-memory store via
`app.dependency_overrides[get_container]`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from core.clock import Clock, utc_now
from core.config import Settings, get_settings
from services.blob_store import MB, BlobStore, LocalBlobStore, UploadPolicy
from services.catalog_assembler import CatalogService
from services.course_content import CourseContentRepository
from services.course_settings import CourseSettingsRepository
from services.document_store import DocumentStore, create_document_store
from services.enrollments import EnrollmentReader
from services.note_store import NoteStore
from services.payment_client import CheckoutClient
from services.progress_tracker import ProgressTracker
from services.starter_resources import StarterResourcesRepository

logger = logging.getLogger("container")


@dataclass
class ServiceContainer:
    settings: Settings
    store: DocumentStore
    blob_store: BlobStore
    course_settings: CourseSettingsRepository
    course_content: CourseContentRepository
    starter_resources: StarterResourcesRepository
    enrollments: EnrollmentReader
    catalog: CatalogService
    progress: ProgressTracker
    notes: NoteStore
    checkout: CheckoutClient
    course_upload_policy: UploadPolicy
    starter_upload_policy: UploadPolicy


def build_container(
    settings: Settings,
    store: Optional[DocumentStore] = None,
    blob_store: Optional[BlobStore] = None,
    checkout: Optional[CheckoutClient] = None,
    clock: Clock = utc_now,
) -> ServiceContainer:
    store = store or create_document_store(settings.database_url, settings.max_query_limit)
    course_settings = CourseSettingsRepository(store, clock)
    course_content = CourseContentRepository(store, clock, list_limit=settings.default_query_limit)
    enrollments = EnrollmentReader(store)
    return ServiceContainer(
        settings=settings,
        store=store,
        blob_store=blob_store or LocalBlobStore(settings.blob_root, settings.blob_base_url),
        course_settings=course_settings,
        course_content=course_content,
        starter_resources=StarterResourcesRepository(store, clock),
        enrollments=enrollments,
        catalog=CatalogService(
            course_settings,
            enrollments,
            course_content,
            starter_pack_id=settings.starter_pack_course_id,
        ),
        progress=ProgressTracker(store, clock),
        notes=NoteStore(store, clock, autosave_seconds=settings.note_autosave_seconds),
        checkout=checkout or CheckoutClient(settings.payment_api_base, settings.payment_timeout_seconds),
        course_upload_policy=UploadPolicy("course_content", settings.max_course_file_mb * MB),
        starter_upload_policy=UploadPolicy("starter_pack", settings.max_starter_file_mb * MB),
    )


@lru_cache(maxsize=1)
def get_container() -> ServiceContainer:
    settings = get_settings()
    logger.info("Building service container for environment %s", settings.environment)
    return build_container(settings)
