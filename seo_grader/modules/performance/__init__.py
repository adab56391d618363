"""Performance analysis module."""

from seo_grader.modules.performance.analyzer import PerformanceAnalyzer

__all__ = ["PerformanceAnalyzer"]
