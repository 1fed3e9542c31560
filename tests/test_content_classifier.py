import pytest

from schemas.course import ContentCategory
from services.content_classifier import classify_content_type


@pytest.mark.parametrize(
    "media_type,expected",
    [
        ("video/mp4", ContentCategory.VIDEO),
        ("VIDEO/QuickTime", ContentCategory.VIDEO),
        ("audio/mpeg", ContentCategory.AUDIO),
        ("application/pdf", ContentCategory.PDF),
        ("application/vnd.openxmlformats-officedocument.spreadsheetml.sheet", ContentCategory.SPREADSHEET),
        ("application/vnd.ms-excel", ContentCategory.SPREADSHEET),
        ("text/csv", ContentCategory.SPREADSHEET),
        ("application/msword", ContentCategory.DOCUMENT),
        ("text/plain", ContentCategory.DOCUMENT),
        ("image/png", ContentCategory.OTHER),
        ("", ContentCategory.OTHER),
        (None, ContentCategory.OTHER),
    ],
)
def test_classify_content_type(media_type, expected):
    assert classify_content_type(media_type) == expected


def test_spreadsheet_rule_wins_over_document_rule():
    # "openxmlformats-officedocument.spreadsheetml" contains both markers
    t = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    assert classify_content_type(t) is ContentCategory.SPREADSHEET


def test_pdf_requires_exact_match():
    assert classify_content_type("application/pdf+zip") is ContentCategory.OTHER
