"""Local business signal analysis module."""

from seo_grader.modules.local_seo.analyzer import LocalSEOAnalyzer

__all__ = ["LocalSEOAnalyzer"]
