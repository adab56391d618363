"""Social metadata analysis: Open Graph, Twitter Cards, profile links, ad pixel.

Page markup is untrusted.  Every lookup below is guarded on its own so a
broken document degrades single fields to empty values instead of losing
the whole section.
"""

import logging
import re
from typing import Any, Callable, Optional, TypeVar

from seo_grader.models.page import ParsedPage

logger = logging.getLogger(__name__)

T = TypeVar("T")

PROFILE_PATTERNS: dict[str, re.Pattern] = {
    "facebook": re.compile(r"facebook\.com", re.I),
    "instagram": re.compile(r"instagram\.com", re.I),
    "twitter": re.compile(r"(?:twitter|x)\.com", re.I),
    "linkedin": re.compile(r"linkedin\.com", re.I),
    "youtube": re.compile(r"youtube\.com|youtu\.be", re.I),
}

_PIXEL_SRC = re.compile(r"connect\.facebook\.net", re.I)
_PIXEL_CALL = re.compile(r"fbq\(")


def _guarded(fn: Callable[[], T], default: T, label: str) -> T:
    try:
        return fn()
    except Exception as exc:
        logger.warning("Social lookup %r failed: %s", label, exc)
        return default


class SocialAnalyzer:
    """Extract social-sharing metadata and profile links from a page.

    Usage::

        section = await SocialAnalyzer().analyze(page)
        section["links"]["facebook"]
    """

    name = "social"

    def _meta_content(self, page: ParsedPage, attr: str, value: str) -> str:
        def _lookup() -> str:
            tag = page.soup.find("meta", attrs={attr: value})
            return (tag.get("content") or "").strip() if tag else ""

        return _guarded(_lookup, "", f"{attr}={value}")

    def _anchors(self, page: ParsedPage) -> list[str]:
        def _collect() -> list[str]:
            hrefs = []
            for a_tag in page.soup.find_all("a"):
                href = _guarded(lambda: a_tag.get("href") or "", "", "a[href]")
                if href:
                    hrefs.append(href)
            return hrefs

        return _guarded(_collect, [], "anchors")

    def _has_pixel(self, page: ParsedPage) -> bool:
        def _detect() -> bool:
            for script in page.soup.find_all("script"):
                if _PIXEL_SRC.search(script.get("src") or ""):
                    return True
                if _PIXEL_CALL.search(script.string or ""):
                    return True
            return False

        return _guarded(_detect, False, "facebook pixel")

    async def analyze(self, page: ParsedPage) -> dict[str, Any]:
        anchors = self._anchors(page)

        def _first_match(pattern: re.Pattern) -> Optional[str]:
            return next((href for href in anchors if pattern.search(href)), None)

        og = {
            "title": self._meta_content(page, "property", "og:title"),
            "description": self._meta_content(page, "property", "og:description"),
            "image": self._meta_content(page, "property", "og:image"),
        }
        twitter = {
            "card": self._meta_content(page, "name", "twitter:card"),
            "title": self._meta_content(page, "name", "twitter:title"),
            "description": self._meta_content(page, "name", "twitter:description"),
        }

        return {
            "links": {network: _first_match(rx) for network, rx in PROFILE_PATTERNS.items()},
            "open_graph": {"present": any(og.values()), "og": og},
            "twitter_cards": {"present": any(twitter.values()), "twitter": twitter},
            "facebook_pixel": {"present": self._has_pixel(page)},
        }

    @staticmethod
    def default_result() -> dict[str, Any]:
        return {
            "links": {network: None for network in PROFILE_PATTERNS},
            "open_graph": {"present": False, "og": {"title": "", "description": "", "image": ""}},
            "twitter_cards": {
                "present": False,
                "twitter": {"card": "", "title": "", "description": ""},
            },
            "facebook_pixel": {"present": False},
        }
