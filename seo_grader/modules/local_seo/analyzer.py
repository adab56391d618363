"""Local SEO signals of a single page.

Looks for LocalBusiness structured data, a visible phone number and
address, a Google Maps / Business Profile reference and a review count.
"""

import logging
import re
from typing import Any, Optional, Union

from seo_grader.models.page import ParsedPage
from seo_grader.utils.text_processing import visible_text

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_LOCAL_BUSINESS = re.compile(r'"@type"\s*:\s*"LocalBusiness"', re.I)
_PHONE_CANDIDATE = re.compile(r"\+?\d[\d\s\-().]{5,}\d")
_MIN_PHONE_DIGITS = 7
_ADDRESS = re.compile(
    r"\b(?:(?:street|road|ave|avenue|city|state|province|zip|postal)\b|(?:st|rd)\.)",
    re.I,
)
_GOOGLE_MAPS_HREF = re.compile(r"google\.[a-z.]+/maps|goo\.gl/maps|maps\.app\.goo\.gl", re.I)
_GOOGLE_REVIEWS_TEXT = re.compile(
    r"google\s*reviews|view\s*on\s*google|reviews?\s+on\s+google",
    re.I,
)
_REVIEW_COUNT = re.compile(r"(\d{1,4})\s*(?:customer\s*)?reviews?\b", re.I)
_STAR_RUN = re.compile(r"★{3,5}")


def has_phone_number(text: str) -> bool:
    """A run of digits and separators holding at least seven digits."""
    for match in _PHONE_CANDIDATE.finditer(text):
        if sum(ch.isdigit() for ch in match.group(0)) >= _MIN_PHONE_DIGITS:
            return True
    return False


def extract_review_count(text: str) -> Optional[Union[int, str]]:
    """``"<N> reviews"`` as an int, ``"stars"`` for star glyph runs, else ``None``."""
    match = _REVIEW_COUNT.search(text)
    if match:
        return int(match.group(1))
    if _STAR_RUN.search(text):
        return "stars"
    return None


class LocalSEOAnalyzer:
    """Detect local-business signals on a page.

    Usage::

        section = await LocalSEOAnalyzer().analyze(page)
        section["reviews"]["count"]
    """

    name = "local"

    async def analyze(self, page: ParsedPage) -> dict[str, Any]:
        soup = page.soup
        json_ld = "\n".join(
            script.string or script.get_text() or ""
            for script in soup.find_all("script", attrs={"type": re.compile(r"^application/ld\+json$", re.I)})
        )
        text = visible_text(page.html)

        maps_link = any(
            _GOOGLE_MAPS_HREF.search(a_tag.get("href") or "")
            for a_tag in soup.find_all("a", href=True)
        )
        review_count = extract_review_count(text)

        result = {
            "address_phone_shown": {
                "phone": has_phone_number(text),
                "address": bool(_ADDRESS.search(text)),
            },
            "local_business_schema": {"present": bool(_LOCAL_BUSINESS.search(json_ld))},
            "google_business_profile": {
                "detected": maps_link or bool(_GOOGLE_REVIEWS_TEXT.search(text)),
            },
            "reviews": {"count": review_count},
        }
        logger.debug("Local signals for %s: %s", page.url, result)
        return result

    @staticmethod
    def default_result() -> dict[str, Any]:
        return {
            "address_phone_shown": {"phone": False, "address": False},
            "local_business_schema": {"present": False},
            "google_business_profile": {"detected": False},
            "reviews": {"count": None},
        }
