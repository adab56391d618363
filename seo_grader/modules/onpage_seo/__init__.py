"""On-page SEO analysis module."""

from seo_grader.modules.onpage_seo.analyzer import OnPageAnalyzer, check_keyword_consistency

__all__ = ["OnPageAnalyzer", "check_keyword_consistency"]
