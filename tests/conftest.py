"""Shared pytest fixtures for the SEO Grader test-suite."""

import sys
from pathlib import Path
from typing import Optional

import pytest

# Ensure project root is on sys.path so 'seo_grader' is importable.
_project_root = str(Path(__file__).resolve().parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)


def build_html(
    title: str = "",
    meta_description: Optional[str] = None,
    head_extra: str = "",
    body: str = "",
    lang: Optional[str] = "en",
) -> str:
    """Assemble a small HTML document for analyzer tests."""
    lang_attr = ' lang="' + lang + '"' if lang else ""
    meta = ""
    if meta_description is not None:
        meta = '<meta name="description" content="' + meta_description + '">'
    return (
        "<!DOCTYPE html><html" + lang_attr + "><head><title>" + title + "</title>"
        + meta + head_extra + "</head><body>" + body + "</body></html>"
    )


@pytest.fixture()
def html_builder():
    """The :func:`build_html` helper as a fixture."""
    return build_html


@pytest.fixture()
def make_page():
    """Factory fixture returning a ParsedPage built from raw markup."""
    from seo_grader.models.page import ParsedPage

    def _make(html: str, url: str = "https://example.com/", headers=None, resources=None, timing=None):
        return ParsedPage.from_html(url, html, headers=headers, resources=resources, timing=timing)

    return _make


@pytest.fixture()
def perfect_sections():
    """Analyzer sections that trigger no penalty in any category."""
    return {
        "onpage": {
            "title": {"value": "x" * 50, "length": 50, "ok": True},
            "meta_description": {"value": "y" * 145, "length": 145, "ok": True},
            "heading_usage": {
                "h1_present": True,
                "h1_values": ["Welcome"],
                "levels": {"h1": 1, "h2": 2, "h3": 1, "h4": 0, "h5": 0, "h6": 0},
            },
            "keyword_consistency": {"keywords": [], "phrases": []},
            "content_amount": {"word_count": 800, "thin": False},
            "alt_attributes": {"missing": 0, "total": 3},
            "lang": {"value": "en", "present": True},
            "hreflang": {"values": [], "count": 0, "present": False},
            "canonical": {"value": "https://example.com/", "present": True},
            "serp_preview": {"title": "", "url": "", "description": ""},
            "noindex": {"meta": False, "header": False, "blocked": False},
        },
        "performance": {
            "download_size_mb": 1.2,
            "compression": {"brotli_or_gzip": True, "compressed": 5, "sampled": 5},
            "http2": {"enabled": True, "count": 5, "sampled": 5},
            "page_speed_insights": {
                "mobile": {"strategy": "mobile", "score": 95},
                "desktop": {"strategy": "desktop", "score": 99},
            },
        },
        "social": {
            "links": {
                "facebook": "https://facebook.com/acme",
                "instagram": "https://instagram.com/acme",
                "twitter": "https://x.com/acme",
                "linkedin": "https://linkedin.com/company/acme",
                "youtube": "https://youtube.com/@acme",
            },
            "open_graph": {"present": True, "og": {"title": "Acme", "description": "", "image": ""}},
            "twitter_cards": {"present": True, "twitter": {"card": "summary", "title": "", "description": ""}},
            "facebook_pixel": {"present": False},
        },
        "tech": {
            "ssl": {"enabled": True},
            "https_redirect": {"ok": True},
            "robots": {"present": True, "optimized": True},
            "sitemap": {"present": True, "optimized": True, "url_count": 12},
            "schema_org": {"present": True, "optimized": True, "json_ld_count": 1},
            "analytics": {"present": True},
            "noindex": {"header": False, "meta": False, "present": False},
            "broken_links": {"total_checked": 10, "broken_count": 0, "broken_examples": [], "ok": True},
            "viewport": {"present": True},
            "favicon": {"present": True},
            "iframes": {"used": False},
        },
        "local": {
            "address_phone_shown": {"phone": True, "address": True},
            "local_business_schema": {"present": True},
            "google_business_profile": {"detected": True},
            "reviews": {"count": 120},
        },
    }


@pytest.fixture()
def sample_report(perfect_sections):
    """A finished AuditReport built from the zero-penalty sections."""
    from seo_grader.models.report import AuditReport
    from seo_grader.modules.grading import grade_all

    sections = perfect_sections
    sections["onpage"]["title"]["value"] = "Acme <Coffee> & Tea"
    sections["tech"]["broken_links"] = {
        "total_checked": 2,
        "broken_count": 1,
        "broken_examples": [{"url": "https://example.com/gone", "anchor_text": "Old page", "status": 404}],
        "ok": False,
    }
    return AuditReport(
        resolved_url="https://example.com/",
        fetched_at="2026-01-01T00:00:00+00:00",
        sections=sections,
        grades=grade_all(sections),
        timing={"server_response": 0.0, "all_content": 0.8, "all_scripts": 0.8},
        requested_url="https://example.com",
        elapsed_seconds=3.2,
    )
