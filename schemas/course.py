"""
Course, curriculum and catalog schemas.

Three independently-mutable sources meet here:
- CourseSetting: admin-owned row per course_id (visibility, pricing, free flag).
- StaticCourseDefinition: code-defined structure and UI metadata, never mutated at runtime.
- ContentEntry: admin-uploaded lesson unit (one episode's files plus module metadata).

The derived shapes (ModuleStructure, EpisodeStructure, DashboardCourse) are rebuilt per request
and never persisted.
"""
from __future__ import annotations

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ContentCategory(str, Enum):
    VIDEO = "video"
    AUDIO = "audio"
    PDF = "pdf"
    DOCUMENT = "document"
    SPREADSHEET = "spreadsheet"
    OTHER = "other"


class Lesson(BaseModel):
    title: str
    duration: str = ""
    description: str = ""

    model_config = ConfigDict(frozen=True)


class StaticModule(BaseModel):
    number: int
    title: str
    duration: str = ""
    color: str = "indigo"
    description: str = ""
    lessons: List[Lesson] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class BonusModule(BaseModel):
    title: str
    description: str = ""
    lessons: List[Lesson] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class Resource(BaseModel):
    name: str
    description: str = ""
    type: Literal["spreadsheet", "template", "checklist", "pdf", "guide"]
    module_number: Optional[int] = None

    model_config = ConfigDict(frozen=True)


class StaticCourseDefinition(BaseModel):
    id: str
    title: str
    short_title: str
    modules: List[StaticModule] = Field(default_factory=list)
    bonus_module: Optional[BonusModule] = None
    resources: List[Resource] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class CourseSetting(BaseModel):
    id: str = Field(default="", description="Document id in the store")
    course_id: str
    title: str = ""
    description: str = ""
    price: str = ""
    visible: bool = False
    purchasable: bool = False
    is_free: bool = False
    coming_soon_message: str = ""
    updated_at: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class ContentFile(BaseModel):
    url: str = ""
    type: ContentCategory = ContentCategory.OTHER
    name: str = ""
    size: Optional[int] = None
    transcript: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class ContentEntry(BaseModel):
    id: str = ""
    course_id: str
    module_number: int = 0
    module_title: str = ""
    module_description: Optional[str] = None
    episode_index: int = 0
    episode_title: str = ""
    episode_description: Optional[str] = None
    duration: Optional[str] = None
    files: List[ContentFile] = Field(default_factory=list)
    order: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class EpisodeStructure(BaseModel):
    index: int
    title: str
    description: Optional[str] = None
    duration: Optional[str] = None
    has_content: bool = False
    entry_id: Optional[str] = None


class ModuleStructure(BaseModel):
    number: int
    title: str
    description: Optional[str] = None
    is_bonus: bool = False
    episodes: List[EpisodeStructure] = Field(default_factory=list)


class DashboardCourse(BaseModel):
    """Static definition merged with the admin setting plus the viewer's access state."""
    id: str
    title: str
    short_title: str
    description: str = ""
    modules: List[StaticModule] = Field(default_factory=list)
    bonus_module: Optional[BonusModule] = None
    resources: List[Resource] = Field(default_factory=list)
    price: Optional[str] = None
    purchasable: bool = False
    coming_soon_message: str = ""
    is_locked: bool
    is_free: bool
    requires_start_form: Optional[bool] = None


class StarterResource(BaseModel):
    """One downloadable item in the starter pack (admin-managed, unlocked by the start form)."""
    id: str = ""
    title: str = ""
    description: str = ""
    transcript: Optional[str] = None
    file_url: str = ""
    file_name: str = ""
    file_type: ContentCategory = ContentCategory.OTHER
    file_size: Optional[int] = None
    order: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    model_config = ConfigDict(extra="ignore")
