"""Report rendering (HTML, PDF, JSON)."""

from seo_grader.modules.reporting.report_renderer import ReportRenderer

__all__ = ["ReportRenderer"]
