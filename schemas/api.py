"""
API contract schemas for versioned endpoints.

Notes:
- Request models validate and clean identifiers so services receive trimmed, non-empty ids.
- ApiResponse is a generic wrapper model so different endpoints can return consistent envelopes while varying `data` types.
- Failures never use the envelope; they return ErrorResponse (`{"error": "..."}`) with a 4xx/5xx status.
"""
from __future__ import annotations

from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field, field_validator

from .course import ContentCategory, ContentFile
from .progress import CourseProgress, ProgressEntry


def _clean_id(v: str) -> str:
    if not v or not v.strip():
        raise ValueError("Identifier cannot be empty")
    return v.strip()


class ProgressUpdateRequest(BaseModel):
    user_id: str = Field(description="Owner of the progress record", min_length=1, max_length=128)
    course_id: str = Field(min_length=1, max_length=100)
    module_number: int = Field(ge=0, description="Module number; 0 is the bonus module")
    lesson_index: int = Field(ge=0)
    completed: bool

    @field_validator("user_id", "course_id")
    @classmethod
    def validate_ids(cls, v: str) -> str:
        return _clean_id(v)


class NoteSaveRequest(BaseModel):
    user_id: str = Field(min_length=1, max_length=128)
    course_id: str = Field(min_length=1, max_length=100)
    module_number: int = Field(ge=0)
    lesson_index: int = Field(ge=0)
    content: str = Field(default="", max_length=50000, description="Free-text note; stored verbatim")

    @field_validator("user_id", "course_id")
    @classmethod
    def validate_ids(cls, v: str) -> str:
        return _clean_id(v)


class CourseSettingCreateRequest(BaseModel):
    course_id: str = Field(min_length=1, max_length=100)
    title: str = ""
    description: str = ""
    price: str = "£0"
    visible: bool = True
    purchasable: bool = False
    coming_soon_message: str = ""
    is_free: bool = False

    @field_validator("course_id")
    @classmethod
    def validate_course_id(cls, v: str) -> str:
        return _clean_id(v)


class CourseSettingUpdateRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[str] = None
    visible: Optional[bool] = None
    purchasable: Optional[bool] = None
    coming_soon_message: Optional[str] = None
    is_free: Optional[bool] = None


class ContentEntryCreateRequest(BaseModel):
    course_id: str = Field(min_length=1, max_length=100)
    module_number: int = Field(ge=0)
    module_title: str = ""
    module_description: Optional[str] = None
    episode_index: int = Field(ge=0)
    episode_title: str = ""
    episode_description: Optional[str] = None
    duration: Optional[str] = None
    files: List[ContentFile] = Field(default_factory=list)
    order: int = 0

    @field_validator("course_id")
    @classmethod
    def validate_course_id(cls, v: str) -> str:
        return _clean_id(v)


class ContentEntryUpdateRequest(BaseModel):
    module_title: Optional[str] = None
    module_description: Optional[str] = None
    episode_title: Optional[str] = None
    episode_description: Optional[str] = None
    duration: Optional[str] = None
    files: Optional[List[ContentFile]] = None
    order: Optional[int] = None


class StarterResourceCreateRequest(BaseModel):
    title: str = Field(default="", max_length=200)
    description: str = ""
    transcript: Optional[str] = None
    file_url: str = ""
    file_name: str = ""
    file_type: ContentCategory = ContentCategory.OTHER
    file_size: Optional[int] = Field(default=None, ge=0)
    order: int = 0


class StarterResourceUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = None
    transcript: Optional[str] = None
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    file_type: Optional[ContentCategory] = None
    file_size: Optional[int] = Field(default=None, ge=0)
    order: Optional[int] = None


class CheckoutRequest(BaseModel):
    product_type: str = Field(default="course", max_length=50)
    amount: float = Field(description="Amount in major currency units; validated by the checkout client")
    currency: str = "gbp"
    customer_email: Optional[str] = None
    success_url: str = ""
    cancel_url: str = ""


class CourseProgressPayload(BaseModel):
    entries: List[ProgressEntry] = Field(default_factory=list)
    summary: CourseProgress


T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Generic response wrapper to stabilize external API while allowing inner schema evolution.

    Always return this envelope so clients can rely on `request_id` and `status`, irrespective of changes in `data`.
    """
    request_id: str
    status: str
    data: T


class ErrorResponse(BaseModel):
    error: str
