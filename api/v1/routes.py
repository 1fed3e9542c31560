"""
Versioned API v1 routes.

Design choices:
- The router does not hardcode a version prefix; main.py mounts it using settings.api_v1_prefix.
- Successful responses are wrapped in the generic ApiResponse envelope.
- Failures raise CourseAccessError subclasses; main.py turns them into `{"error": "..."}` bodies
  with 400/403/404/502 statuses, so handlers stay free of try/except boilerplate.
"""
from __future__ import annotations

import logging
from typing import List, Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import JSONResponse

from core.errors import AccessDeniedError
from core.logging_config import get_request_id
from schemas.api import (
    ApiResponse,
    CheckoutRequest,
    ContentEntryCreateRequest,
    ContentEntryUpdateRequest,
    CourseProgressPayload,
    CourseSettingCreateRequest,
    CourseSettingUpdateRequest,
    ErrorResponse,
    NoteSaveRequest,
    ProgressUpdateRequest,
    StarterResourceCreateRequest,
    StarterResourceUpdateRequest,
)
from schemas.course import ContentEntry, ContentFile, CourseSetting, DashboardCourse, ModuleStructure, StarterResource
from schemas.progress import NoteEntry, ProgressEntry
from services.access_resolver import fetch_starter_signal_fail_closed
from services.blob_store import UploadPolicy, upload_course_file, upload_starter_file, validate_upload
from services.container import ServiceContainer, get_container

router = APIRouter(tags=["courses"])  # mounted under /api/v1 by main.py
logger = logging.getLogger("api")


def _rid() -> str:
    return get_request_id() or str(uuid4())


async def _read_within_policy(file: UploadFile, policy: UploadPolicy) -> bytes:
    """Reject on the declared size and type before the body is read into memory."""
    if file.size is not None:
        validate_upload(file.size, file.content_type, policy)
    return await file.read()


# Learner-facing endpoints

@router.get("/courses", response_model=ApiResponse[List[DashboardCourse]])
async def list_dashboard_courses(
    user_id: Optional[str] = Query(None, description="Viewer id; omit for anonymous"),
    email: Optional[str] = Query(None, description="Viewer e-mail for the starter-pack unlock check"),
    services: ServiceContainer = Depends(get_container),
) -> ApiResponse[List[DashboardCourse]]:
    """Courses the viewer can see, with lock state, starter pack first."""
    courses = await services.catalog.get_dashboard_courses(user_id, email)
    return ApiResponse[List[DashboardCourse]](request_id=_rid(), status="ok", data=courses)


@router.get("/courses/{course_id}/curriculum", response_model=ApiResponse[List[ModuleStructure]])
async def get_curriculum(
    course_id: str,
    services: ServiceContainer = Depends(get_container),
) -> ApiResponse[List[ModuleStructure]]:
    structure = await services.catalog.get_curriculum(course_id)
    return ApiResponse[List[ModuleStructure]](request_id=_rid(), status="ok", data=structure)


@router.get(
    "/courses/{course_id}/lessons/{module_number}/{episode_index}",
    response_model=ApiResponse[Optional[ContentEntry]],
)
async def get_lesson_content(
    course_id: str,
    module_number: int,
    episode_index: int,
    services: ServiceContainer = Depends(get_container),
) -> ApiResponse[Optional[ContentEntry]]:
    """Admin-uploaded content for one lesson; `data` is null when none exists."""
    entry = await services.course_content.get_lesson_content(course_id, module_number, episode_index)
    return ApiResponse[Optional[ContentEntry]](request_id=_rid(), status="ok", data=entry)


@router.get("/courses/{course_id}/progress", response_model=ApiResponse[CourseProgressPayload])
async def get_course_progress(
    course_id: str,
    user_id: str = Query(..., min_length=1),
    services: ServiceContainer = Depends(get_container),
) -> ApiResponse[CourseProgressPayload]:
    """Completion entries plus module/course rollups and the resume target."""
    structure = await services.catalog.get_curriculum(course_id)
    entries, summary = await services.progress.summarize(user_id, course_id, structure)
    payload = CourseProgressPayload(entries=entries, summary=summary)
    return ApiResponse[CourseProgressPayload](request_id=_rid(), status="ok", data=payload)


@router.put("/progress", response_model=ApiResponse[ProgressEntry])
async def set_lesson_completion(
    request: ProgressUpdateRequest,
    services: ServiceContainer = Depends(get_container),
) -> ApiResponse[ProgressEntry]:
    entry = await services.progress.set_completion(
        request.user_id,
        request.course_id,
        request.module_number,
        request.lesson_index,
        request.completed,
    )
    return ApiResponse[ProgressEntry](request_id=_rid(), status="ok", data=entry)


@router.get("/notes", response_model=ApiResponse[Optional[NoteEntry]])
async def get_note(
    user_id: str = Query(..., min_length=1),
    course_id: str = Query(..., min_length=1),
    module_number: int = Query(..., ge=0),
    lesson_index: int = Query(..., ge=0),
    services: ServiceContainer = Depends(get_container),
) -> ApiResponse[Optional[NoteEntry]]:
    note = await services.notes.get_note(user_id, course_id, module_number, lesson_index)
    return ApiResponse[Optional[NoteEntry]](request_id=_rid(), status="ok", data=note)


@router.put("/notes", response_model=ApiResponse[NoteEntry])
async def save_note(
    request: NoteSaveRequest,
    services: ServiceContainer = Depends(get_container),
) -> ApiResponse[NoteEntry]:
    note = await services.notes.save_note(
        request.user_id,
        request.course_id,
        request.module_number,
        request.lesson_index,
        request.content,
    )
    return ApiResponse[NoteEntry](request_id=_rid(), status="ok", data=note)


@router.post("/checkout", responses={400: {"model": ErrorResponse}})
async def create_checkout(
    request: CheckoutRequest,
    services: ServiceContainer = Depends(get_container),
):
    """Start a hosted checkout and return its redirect URL."""
    result = await services.checkout.create_checkout_session(
        request.product_type,
        request.amount,
        request.currency,
        {"email": request.customer_email} if request.customer_email else None,
        request.success_url,
        request.cancel_url,
    )
    if not result.success:
        return JSONResponse(status_code=400, content={"error": result.error or "Checkout failed"})
    return ApiResponse[dict](request_id=_rid(), status="ok", data={"url": result.url})


# Admin endpoints

@router.get("/admin/course-settings", response_model=ApiResponse[List[CourseSetting]])
async def list_course_settings(services: ServiceContainer = Depends(get_container)) -> ApiResponse[List[CourseSetting]]:
    settings = await services.course_settings.list_course_settings()
    return ApiResponse[List[CourseSetting]](request_id=_rid(), status="ok", data=settings)


@router.post("/admin/course-settings", response_model=ApiResponse[CourseSetting], status_code=201)
async def create_course_setting(
    request: CourseSettingCreateRequest,
    services: ServiceContainer = Depends(get_container),
) -> ApiResponse[CourseSetting]:
    setting = await services.course_settings.create_course_setting(request.model_dump())
    return ApiResponse[CourseSetting](request_id=_rid(), status="ok", data=setting)


@router.post("/admin/course-settings/seed", response_model=ApiResponse[List[str]])
async def seed_course_settings(services: ServiceContainer = Depends(get_container)) -> ApiResponse[List[str]]:
    created = await services.course_settings.seed_default_course_settings()
    return ApiResponse[List[str]](request_id=_rid(), status="ok", data=created)


@router.patch("/admin/course-settings/{course_id}", response_model=ApiResponse[CourseSetting])
async def update_course_setting(
    course_id: str,
    request: CourseSettingUpdateRequest,
    services: ServiceContainer = Depends(get_container),
) -> ApiResponse[CourseSetting]:
    setting = await services.course_settings.update_course_setting(course_id, request.model_dump(exclude_none=True))
    return ApiResponse[CourseSetting](request_id=_rid(), status="ok", data=setting)


@router.delete("/admin/course-settings/{course_id}", response_model=ApiResponse[dict])
async def delete_course_setting(
    course_id: str,
    services: ServiceContainer = Depends(get_container),
) -> ApiResponse[dict]:
    await services.course_settings.delete_course_setting(course_id)
    return ApiResponse[dict](request_id=_rid(), status="ok", data={"deleted": course_id})


@router.get("/admin/content", response_model=ApiResponse[List[ContentEntry]])
async def list_content(
    course_id: str = Query(..., min_length=1),
    services: ServiceContainer = Depends(get_container),
) -> ApiResponse[List[ContentEntry]]:
    entries = await services.course_content.list_course_content(course_id)
    return ApiResponse[List[ContentEntry]](request_id=_rid(), status="ok", data=entries)


@router.post("/admin/content", response_model=ApiResponse[ContentEntry], status_code=201)
async def create_content(
    request: ContentEntryCreateRequest,
    services: ServiceContainer = Depends(get_container),
) -> ApiResponse[ContentEntry]:
    entry = await services.course_content.create_content_entry(request.model_dump())
    return ApiResponse[ContentEntry](request_id=_rid(), status="ok", data=entry)


@router.patch("/admin/content/{entry_id}", response_model=ApiResponse[ContentEntry])
async def update_content(
    entry_id: str,
    request: ContentEntryUpdateRequest,
    services: ServiceContainer = Depends(get_container),
) -> ApiResponse[ContentEntry]:
    entry = await services.course_content.update_content_entry(entry_id, request.model_dump(exclude_none=True))
    return ApiResponse[ContentEntry](request_id=_rid(), status="ok", data=entry)


@router.delete("/admin/content/{entry_id}", response_model=ApiResponse[dict])
async def delete_content(
    entry_id: str,
    services: ServiceContainer = Depends(get_container),
) -> ApiResponse[dict]:
    await services.course_content.delete_content_entry(entry_id)
    return ApiResponse[dict](request_id=_rid(), status="ok", data={"deleted": entry_id})


@router.post("/admin/content/upload", response_model=ApiResponse[ContentFile], status_code=201)
async def upload_content_file(
    course_id: str = Form(...),
    module_number: int = Form(..., ge=0),
    episode_index: int = Form(..., ge=0),
    file: UploadFile = File(...),
    services: ServiceContainer = Depends(get_container),
) -> ApiResponse[ContentFile]:
    """Upload one lesson file; returns the ContentFile to attach to a content entry."""
    data = await _read_within_policy(file, services.course_upload_policy)
    content_file = await upload_course_file(
        services.blob_store,
        data,
        file.filename or "file",
        file.content_type or "application/octet-stream",
        course_id,
        module_number,
        episode_index,
        policy=services.course_upload_policy,
    )
    return ApiResponse[ContentFile](request_id=_rid(), status="ok", data=content_file)


@router.get("/starter-resources", response_model=ApiResponse[List[StarterResource]], responses={403: {"model": ErrorResponse}})
async def list_unlocked_starter_resources(
    email: Optional[str] = Query(None, description="Address used on the starter-pack form"),
    services: ServiceContainer = Depends(get_container),
) -> ApiResponse[List[StarterResource]]:
    """Starter pack files for a viewer who has submitted the start form."""
    unlocked, _ = await fetch_starter_signal_fail_closed(services.enrollments.has_starter_pack_access, email)
    if not unlocked:
        raise AccessDeniedError("Complete the starter pack form to unlock these resources")
    resources = await services.starter_resources.list_starter_resources()
    return ApiResponse[List[StarterResource]](request_id=_rid(), status="ok", data=resources)


@router.get("/admin/starter-resources", response_model=ApiResponse[List[StarterResource]])
async def list_starter_resources(services: ServiceContainer = Depends(get_container)) -> ApiResponse[List[StarterResource]]:
    resources = await services.starter_resources.list_starter_resources()
    return ApiResponse[List[StarterResource]](request_id=_rid(), status="ok", data=resources)


@router.post("/admin/starter-resources", response_model=ApiResponse[StarterResource], status_code=201)
async def create_starter_resource(
    request: StarterResourceCreateRequest,
    services: ServiceContainer = Depends(get_container),
) -> ApiResponse[StarterResource]:
    resource = await services.starter_resources.create_starter_resource(request.model_dump())
    return ApiResponse[StarterResource](request_id=_rid(), status="ok", data=resource)


@router.patch("/admin/starter-resources/{resource_id}", response_model=ApiResponse[StarterResource])
async def update_starter_resource(
    resource_id: str,
    request: StarterResourceUpdateRequest,
    services: ServiceContainer = Depends(get_container),
) -> ApiResponse[StarterResource]:
    resource = await services.starter_resources.update_starter_resource(
        resource_id, request.model_dump(exclude_none=True)
    )
    return ApiResponse[StarterResource](request_id=_rid(), status="ok", data=resource)


@router.delete("/admin/starter-resources/{resource_id}", response_model=ApiResponse[dict])
async def delete_starter_resource(
    resource_id: str,
    services: ServiceContainer = Depends(get_container),
) -> ApiResponse[dict]:
    await services.starter_resources.delete_starter_resource(resource_id)
    return ApiResponse[dict](request_id=_rid(), status="ok", data={"deleted": resource_id})


@router.post("/admin/starter-resources/upload", response_model=ApiResponse[ContentFile], status_code=201)
async def upload_starter_resource_file(
    file: UploadFile = File(...),
    services: ServiceContainer = Depends(get_container),
) -> ApiResponse[ContentFile]:
    """Upload one starter pack file; returns the ContentFile to attach to a starter resource."""
    data = await _read_within_policy(file, services.starter_upload_policy)
    content_file = await upload_starter_file(
        services.blob_store,
        data,
        file.filename or "file",
        file.content_type or "application/octet-stream",
        policy=services.starter_upload_policy,
    )
    return ApiResponse[ContentFile](request_id=_rid(), status="ok", data=content_file)
