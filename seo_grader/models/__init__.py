"""Data model of one audit: the fetched page, grades and the final report."""

from seo_grader.models.page import (
    PageTiming,
    ParsedPage,
    SubResource,
)
from seo_grader.models.report import (
    CATEGORY_KEYS,
    AuditReport,
    Grade,
    clamp_score,
    letter_for,
)

__all__ = [
    "PageTiming",
    "ParsedPage",
    "SubResource",
    "CATEGORY_KEYS",
    "AuditReport",
    "Grade",
    "clamp_score",
    "letter_for",
]
