"""
Per-learner records (lesson completion, lesson notes) and the read-only rollups derived from them.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ProgressEntry(BaseModel):
    id: str = ""
    user_id: str
    course_id: str
    module_number: int
    lesson_index: int
    completed: bool = False
    completed_at: Optional[datetime] = None


class NoteEntry(BaseModel):
    id: str = ""
    user_id: str
    course_id: str
    module_number: int
    lesson_index: int
    content: str = ""
    updated_at: Optional[datetime] = None


class LessonRef(BaseModel):
    module_number: int
    lesson_index: int
    title: str
    module_title: str
    is_bonus: bool = False


class ModuleProgress(BaseModel):
    module_number: int
    title: str
    is_bonus: bool = False
    completed: int = 0
    total: int = 0
    percent: int = 0
    is_complete: bool = False


class CourseProgress(BaseModel):
    course_id: str
    completed: int = 0
    total: int = 0
    percent: int = 0
    is_complete: bool = False
    modules: List[ModuleProgress] = Field(default_factory=list)
    next_lesson: Optional[LessonRef] = None
