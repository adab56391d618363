"""On-page SEO analysis of a fetched page.

Evaluates title and meta description lengths, heading structure, content
volume, image alt text, language and canonical declarations, hreflang
alternates, noindex directives and keyword consistency between the body
copy and the title, description and headings.
"""

import logging
import re
from typing import Any

from seo_grader.models.page import ParsedPage
from seo_grader.utils.text_processing import (
    count_words,
    tokenize,
    top_phrases,
    top_terms,
    visible_text,
)

logger = logging.getLogger(__name__)

TITLE_RANGE = (40, 60)
META_DESCRIPTION_RANGE = (130, 160)
THIN_CONTENT_WORDS = 500
TOP_KEYWORDS = 5

_HEADING_LEVELS = ("h1", "h2", "h3", "h4", "h5", "h6")
_NAME_DESCRIPTION = re.compile(r"^description$", re.I)
_NAME_ROBOTS = re.compile(r"^robots$", re.I)


def _in_range(length: int, bounds: tuple[int, int]) -> bool:
    low, high = bounds
    return low <= length <= high


def check_keyword_consistency(
    text: str,
    title: str,
    meta_description: str,
    headings: str,
) -> dict[str, list[dict[str, Any]]]:
    """Top words and two-word phrases of the visible copy, and where they appear.

    Tokens are case-folded and stopword-filtered; ties in frequency keep the
    order in which the terms first occur.
    """
    tokens = tokenize(text)
    title_l = title.lower()
    meta_l = meta_description.lower()
    headings_l = headings.lower()

    keywords = [
        {
            "keyword": word,
            "in_title": word in title_l,
            "in_meta": word in meta_l,
            "in_headings": word in headings_l,
            "frequency": freq,
        }
        for word, freq in top_terms(tokens, TOP_KEYWORDS)
    ]
    phrases = [
        {
            "phrase": phrase,
            "in_title": phrase in title_l,
            "in_meta": phrase in meta_l,
            "in_headings": phrase in headings_l,
            "frequency": freq,
        }
        for phrase, freq in top_phrases(tokens, TOP_KEYWORDS)
    ]
    return {"keywords": keywords, "phrases": phrases}


class OnPageAnalyzer:
    """Analyse on-page SEO signals of a :class:`ParsedPage`.

    Usage::

        analyzer = OnPageAnalyzer()
        section = await analyzer.analyze(page)
    """

    name = "onpage"

    async def analyze(self, page: ParsedPage) -> dict[str, Any]:
        soup = page.soup

        title_tag = soup.find("title")
        title = title_tag.get_text().strip() if title_tag else ""

        md_tag = soup.find("meta", attrs={"name": _NAME_DESCRIPTION})
        meta_desc = (md_tag.get("content") or "").strip() if md_tag else ""

        h1_values = [t for t in (h.get_text().strip() for h in soup.find_all("h1")) if t]
        levels = {level: len(soup.find_all(level)) for level in _HEADING_LEVELS}
        heading_text = " ".join(h.get_text() for h in soup.find_all(list(_HEADING_LEVELS)))

        html_tag = soup.find("html")
        lang = (html_tag.get("lang") or "").strip() if html_tag else ""

        hreflang = [
            link.get("hreflang")
            for link in soup.find_all("link", rel="alternate")
            if link.get("hreflang")
        ]

        canonical_tag = soup.find("link", rel="canonical")
        canonical = (canonical_tag.get("href") or "").strip() if canonical_tag else ""

        body_text = visible_text(page.html)
        word_count = count_words(body_text)

        images = soup.find_all("img")
        alt_missing = sum(1 for img in images if not (img.get("alt") or "").strip())

        noindex_meta = any(
            "noindex" in (tag.get("content") or "").lower()
            for tag in soup.find_all("meta", attrs={"name": _NAME_ROBOTS})
        )
        noindex_header = "noindex" in page.header("x-robots-tag").lower()

        keyword_consistency = check_keyword_consistency(body_text, title, meta_desc, heading_text)

        logger.debug(
            "On-page %s: title=%d chars, meta=%d chars, words=%d, h1=%d",
            page.url, len(title), len(meta_desc), word_count, levels["h1"],
        )

        return {
            "title": {
                "value": title,
                "length": len(title),
                "ok": _in_range(len(title), TITLE_RANGE),
            },
            "meta_description": {
                "value": meta_desc,
                "length": len(meta_desc),
                "ok": _in_range(len(meta_desc), META_DESCRIPTION_RANGE),
            },
            "heading_usage": {
                "h1_present": bool(h1_values),
                "h1_values": h1_values,
                "levels": levels,
            },
            "keyword_consistency": keyword_consistency,
            "content_amount": {"word_count": word_count, "thin": word_count < THIN_CONTENT_WORDS},
            "alt_attributes": {"missing": alt_missing, "total": len(images)},
            "lang": {"value": lang, "present": bool(lang)},
            "hreflang": {"values": hreflang, "count": len(hreflang), "present": bool(hreflang)},
            "canonical": {"value": canonical, "present": bool(canonical)},
            "serp_preview": {"title": title, "url": page.url, "description": meta_desc},
            "noindex": {
                "meta": noindex_meta,
                "header": noindex_header,
                "blocked": noindex_meta or noindex_header,
            },
        }

    @staticmethod
    def default_result() -> dict[str, Any]:
        return {
            "title": {"value": "", "length": 0, "ok": False},
            "meta_description": {"value": "", "length": 0, "ok": False},
            "heading_usage": {
                "h1_present": False,
                "h1_values": [],
                "levels": {level: 0 for level in _HEADING_LEVELS},
            },
            "keyword_consistency": {"keywords": [], "phrases": []},
            "content_amount": {"word_count": 0, "thin": True},
            "alt_attributes": {"missing": 0, "total": 0},
            "lang": {"value": "", "present": False},
            "hreflang": {"values": [], "count": 0, "present": False},
            "canonical": {"value": "", "present": False},
            "serp_preview": {"title": "", "url": "", "description": ""},
            "noindex": {"meta": False, "header": False, "blocked": False},
        }
