"""
Map a declared media type to a content category.

Only the type string is consulted, never the filename. First matching rule wins.
"""
from __future__ import annotations

from typing import Optional

from schemas.course import ContentCategory

_SPREADSHEET_MARKERS = ("spreadsheet", "excel", "csv")
_DOCUMENT_MARKERS = ("document", "word", "text")


def classify_content_type(media_type: Optional[str]) -> ContentCategory:
    t = (media_type or "").strip().lower()
    if t.startswith("video/"):
        return ContentCategory.VIDEO
    if t.startswith("audio/"):
        return ContentCategory.AUDIO
    if t == "application/pdf":
        return ContentCategory.PDF
    if any(marker in t for marker in _SPREADSHEET_MARKERS):
        return ContentCategory.SPREADSHEET
    if any(marker in t for marker in _DOCUMENT_MARKERS):
        return ContentCategory.DOCUMENT
    return ContentCategory.OTHER
