"""Technical / crawlability analysis of a fetched page.

Checks HTTPS, robots.txt and sitemap.xml availability, structured data,
analytics snippets, noindex directives, viewport and favicon declarations,
iframe usage, and runs a broken-link scan over the page's outgoing links.
"""

import asyncio
import logging
import re
from typing import Any, Optional
from urllib.parse import urljoin, urlparse

import aiohttp

from seo_grader.models.page import ParsedPage
from seo_grader.modules.technical_audit.link_checker import (
    DEFAULT_USER_AGENT,
    BrokenLinkChecker,
)

logger = logging.getLogger(__name__)

_ANALYTICS = re.compile(
    r"gtag\(|googletagmanager|ga\(|google-analytics\.com|plausible\.io|umami\.is",
    re.I,
)
_SCHEMA_ORG = re.compile(r"schema\.org", re.I)
_LOC_TAG = re.compile(r"<loc>\s*(https?://[^<]+?)\s*</loc>", re.I)
_RAW_URL = re.compile(r"https?://[^\s<>\"']+", re.I)
_ROBOTS_DIRECTIVES = ("user-agent", "disallow", "sitemap")
_NAME_ROBOTS = re.compile(r"^robots$", re.I)
_NAME_VIEWPORT = re.compile(r"^viewport$", re.I)


def robots_is_optimized(content: str) -> bool:
    """A robots.txt counts as optimized when it carries any real directive."""
    lower = content.lower()
    return any(directive in lower for directive in _ROBOTS_DIRECTIVES)


def extract_sitemap_urls(body: str, content_type: str, sitemap_url: str) -> list[str]:
    """URLs listed by a sitemap.

    XML sitemaps are read through their ``<loc>`` entries; anything else is
    scanned for raw URLs on the sitemap's own host.
    """
    if "xml" in content_type.lower():
        return [m.strip() for m in _LOC_TAG.findall(body)]
    host = (urlparse(sitemap_url).hostname or "").lower()
    return [u for u in _RAW_URL.findall(body) if host and host in u.lower()]


def detect_schema_org(page: ParsedPage) -> dict[str, Any]:
    """Structured-data presence and the narrow "optimized" flag.

    Optimized only when the page has exactly one JSON-LD block and it
    mentions schema.org.  Microdata/RDFa is consulted only when no JSON-LD
    block references schema.org.
    """
    soup = page.soup
    json_ld = soup.find_all("script", attrs={"type": re.compile(r"^application/ld\+json$", re.I)})
    schema_scripts = [s for s in json_ld if _SCHEMA_ORG.search(s.string or s.get_text() or "")]

    present = bool(schema_scripts)
    optimized = len(schema_scripts) == 1 and len(json_ld) == 1

    if not present:
        microdata = [
            tag for tag in soup.find_all(attrs={"itemscope": True})
            if _SCHEMA_ORG.search(tag.get("itemtype") or "")
        ]
        rdfa = soup.find_all(attrs={"typeof": _SCHEMA_ORG})
        present = bool(microdata or rdfa)
        optimized = present and len(json_ld) <= 1

    return {"present": present, "optimized": optimized, "json_ld_count": len(json_ld)}


class TechnicalAnalyzer:
    """Technical SEO checks for a single page.

    Usage::

        analyzer = TechnicalAnalyzer()
        section = await analyzer.analyze(page)
    """

    name = "tech"

    def __init__(
        self,
        link_checker: Optional[BrokenLinkChecker] = None,
        request_timeout: int = 8,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._links = link_checker or BrokenLinkChecker(user_agent=user_agent)
        self._timeout = aiohttp.ClientTimeout(total=request_timeout)
        self._headers = {"User-Agent": user_agent}

    # ------------------------------------------------------------------
    # Network helpers
    # ------------------------------------------------------------------

    async def _fetch_text(
        self, session: aiohttp.ClientSession, url: str,
    ) -> tuple[Optional[int], str, str]:
        """GET *url* returning ``(status, body, content_type)``.

        ``status`` is ``None`` when the request failed outright.
        """
        try:
            async with session.get(
                url,
                headers=self._headers,
                timeout=self._timeout,
                allow_redirects=True,
                ssl=False,
            ) as resp:
                body = await resp.text(errors="replace")
                return resp.status, body, resp.headers.get("Content-Type", "")
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.warning("Fetch of %s failed: %s", url, exc)
            return None, "", ""

    # ------------------------------------------------------------------
    # robots.txt / sitemap.xml
    # ------------------------------------------------------------------

    async def check_robots_txt(self, page: ParsedPage, session: aiohttp.ClientSession) -> dict[str, Any]:
        url = urljoin(page.url, "/robots.txt")
        result: dict[str, Any] = {
            "url": url,
            "present": False,
            "optimized": False,
            "content": "",
            "status": None,
        }
        status, body, _ = await self._fetch_text(session, url)
        result["status"] = status
        content = body.strip()
        if status is not None and 200 <= status < 300 and content:
            result["present"] = True
            result["content"] = content
            result["optimized"] = robots_is_optimized(content)
        logger.debug("robots.txt %s: status=%s present=%s", url, status, result["present"])
        return result

    async def check_sitemap(self, page: ParsedPage, session: aiohttp.ClientSession) -> dict[str, Any]:
        url = urljoin(page.url, "/sitemap.xml")
        result: dict[str, Any] = {
            "url": url,
            "present": False,
            "optimized": False,
            "url_count": 0,
            "status": None,
        }
        status, body, content_type = await self._fetch_text(session, url)
        result["status"] = status
        if status is not None and 200 <= status < 300 and body:
            result["present"] = True
            urls = extract_sitemap_urls(body, content_type, url)
            result["url_count"] = len(urls)
            result["optimized"] = len(urls) > 0
            logger.info("Sitemap %s lists %d URLs", url, len(urls))
        return result

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    async def analyze(self, page: ParsedPage) -> dict[str, Any]:
        soup = page.soup
        https = page.is_https

        async with aiohttp.ClientSession() as session:
            robots, sitemap, broken_links = await asyncio.gather(
                self.check_robots_txt(page, session),
                self.check_sitemap(page, session),
                self._links.check(page, session),
            )

        canonical_tag = soup.find("link", rel="canonical")
        canonical = (canonical_tag.get("href") or "").strip() if canonical_tag else ""

        noindex_header = "noindex" in page.header("x-robots-tag").lower()
        noindex_meta = any(
            "noindex" in (tag.get("content") or "").lower()
            for tag in soup.find_all("meta", attrs={"name": _NAME_ROBOTS})
        )

        viewport_tag = soup.find("meta", attrs={"name": _NAME_VIEWPORT})
        viewport = "width=device-width" in ((viewport_tag.get("content") or "").lower() if viewport_tag else "")

        return {
            "ssl": {"enabled": https},
            # No separate HTTP -> HTTPS probe: a page served over HTTPS counts.
            "https_redirect": {"ok": https},
            "robots": robots,
            "sitemap": sitemap,
            "canonical": {"value": canonical, "present": bool(canonical)},
            "schema_org": detect_schema_org(page),
            "analytics": {"present": bool(_ANALYTICS.search(page.html))},
            "noindex": {
                "header": noindex_header,
                "meta": noindex_meta,
                "present": noindex_header or noindex_meta,
            },
            "broken_links": broken_links,
            "viewport": {"present": viewport},
            "favicon": {"present": bool(soup.find("link", rel="icon"))},
            "iframes": {"used": soup.find("iframe") is not None},
        }

    @staticmethod
    def default_result() -> dict[str, Any]:
        return {
            "ssl": {"enabled": False},
            "https_redirect": {"ok": False},
            "robots": {"url": "", "present": False, "optimized": False, "content": "", "status": None},
            "sitemap": {"url": "", "present": False, "optimized": False, "url_count": 0, "status": None},
            "canonical": {"value": "", "present": False},
            "schema_org": {"present": False, "optimized": False, "json_ld_count": 0},
            "analytics": {"present": False},
            "noindex": {"header": False, "meta": False, "present": False},
            "broken_links": BrokenLinkChecker.empty_result(),
            "viewport": {"present": False},
            "favicon": {"present": False},
            "iframes": {"used": False},
        }
