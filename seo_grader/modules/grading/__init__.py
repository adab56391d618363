"""Grading of analyzer sections into letter grades."""

from seo_grader.modules.grading.grader import grade_all

__all__ = ["grade_all"]
