"""Technical SEO audit module."""

from seo_grader.modules.technical_audit.analyzer import TechnicalAnalyzer
from seo_grader.modules.technical_audit.link_checker import BrokenLinkChecker

__all__ = ["TechnicalAnalyzer", "BrokenLinkChecker"]
