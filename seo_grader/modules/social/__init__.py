"""Social metadata analysis module."""

from seo_grader.modules.social.analyzer import SocialAnalyzer

__all__ = ["SocialAnalyzer"]
