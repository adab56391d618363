"""Fetch one page, probe its sub-resources and build a :class:`ParsedPage`.

Results are kept in an injected :class:`TTLCache` keyed by the normalized
URL, so repeated audits of the same page inside the TTL reuse the first
fetch.
"""

import asyncio
import codecs
import logging
import mimetypes
import time
from typing import Optional
from urllib.parse import urljoin

import aiohttp
from bs4 import BeautifulSoup

from seo_grader.exceptions import FetchError
from seo_grader.models.page import PageTiming, ParsedPage, SubResource
from seo_grader.utils.cache import TTLCache, ttl_from_cache_control
from seo_grader.utils.helpers import ensure_scheme, normalize_url

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

_BROWSER_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


def decode_body(body: bytes, charset: Optional[str]) -> str:
    """Decode *body* with *charset*, falling back to lenient utf-8."""
    encoding = charset or "utf-8"
    try:
        codecs.lookup(encoding)
    except LookupError:
        logger.debug("Unknown charset %r, decoding as utf-8", encoding)
        encoding = "utf-8"
    return body.decode(encoding, errors="replace")


def _is_stylesheet(tag) -> bool:
    rel = tag.get("rel") or []
    if isinstance(rel, str):
        rel = rel.split()
    return "stylesheet" in [r.lower() for r in rel]


def discover_resources(soup: BeautifulSoup, base_url: str) -> list[tuple[str, str]]:
    """``(tag, absolute_url)`` for stylesheets, scripts and images in document order.

    References that cannot be resolved against *base_url* are skipped.
    """
    found: list[tuple[str, str]] = []
    for tag in soup.find_all(["link", "script", "img"]):
        if tag.name == "link":
            if not tag.get("href") or not _is_stylesheet(tag):
                continue
            ref = tag["href"]
        else:
            ref = tag.get("src")
            if not ref:
                continue
        try:
            found.append((tag.name, urljoin(base_url, ref)))
        except ValueError:
            logger.debug("Skipping unresolvable resource %r", ref)
    return found


class PageFetcher:
    """Async page fetcher with an optional response cache.

    Usage::

        fetcher = PageFetcher(cache=TTLCache(max_size=128, ttl_seconds=600))
        page = await fetcher.fetch("example.com")
    """

    def __init__(
        self,
        cache: Optional[TTLCache] = None,
        timeout: int = 20,
        user_agent: str = DEFAULT_USER_AGENT,
        max_resource_probes: int = 10,
        resource_probe_timeout: int = 12,
    ) -> None:
        self._cache = cache
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._probe_timeout = aiohttp.ClientTimeout(total=resource_probe_timeout)
        self._user_agent = user_agent
        self._max_probes = max_resource_probes

    @property
    def cache(self) -> Optional[TTLCache]:
        return self._cache

    # ------------------------------------------------------------------
    # Main document
    # ------------------------------------------------------------------

    async def _get(self, url: str, verify_ssl: bool) -> tuple[str, dict[str, str], str]:
        """GET *url*, returning ``(final_url, headers, text)``."""
        headers = {"User-Agent": self._user_agent, **_BROWSER_HEADERS}
        async with aiohttp.ClientSession(timeout=self._timeout) as session:
            async with session.get(
                url,
                headers=headers,
                allow_redirects=True,
                ssl=None if verify_ssl else False,
            ) as resp:
                body = await resp.read()
                text = decode_body(body, resp.charset)
                return str(resp.url), dict(resp.headers), text

    async def _get_document(self, url: str) -> tuple[str, dict[str, str], str]:
        try:
            return await self._get(url, verify_ssl=True)
        except aiohttp.ClientConnectorCertificateError as exc:
            logger.warning(
                "SSL verification failed for %s (%s). Retrying without certificate validation...",
                url, exc,
            )
            try:
                return await self._get(url, verify_ssl=False)
            except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as retry_exc:
                logger.error("Retry failed for %s: %s", url, retry_exc)
                raise FetchError(url, retry_exc) from retry_exc
        # ValueError covers malformed URLs and hosts the idna codec rejects.
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise FetchError(url, exc) from exc

    # ------------------------------------------------------------------
    # Sub-resources
    # ------------------------------------------------------------------

    async def _probe(
        self,
        session: aiohttp.ClientSession,
        tag: str,
        url: str,
    ) -> SubResource:
        try:
            async with session.head(
                url,
                headers={"User-Agent": self._user_agent},
                allow_redirects=True,
                ssl=False,
            ) as resp:
                length = resp.headers.get("Content-Length", "")
                size = int(length) if length.isdigit() else 0
                ctype = resp.headers.get("Content-Type", "") or mimetypes.guess_type(url)[0] or ""
                return SubResource(tag=tag, url=url, size=size, type=ctype)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            logger.debug("Resource probe failed for %s: %s", url, exc)
            return SubResource(tag=tag, url=url)

    async def probe_resources(self, soup: BeautifulSoup, base_url: str) -> list[SubResource]:
        """HEAD the first few sub-resources concurrently for size and type."""
        candidates = discover_resources(soup, base_url)[: self._max_probes]
        if not candidates:
            return []
        async with aiohttp.ClientSession(timeout=self._probe_timeout) as session:
            return list(await asyncio.gather(
                *(self._probe(session, tag, url) for tag, url in candidates)
            ))

    # ------------------------------------------------------------------
    # Public entry point
    # ------------------------------------------------------------------

    async def fetch(self, url: str) -> ParsedPage:
        """Fetch and parse *url*; raises :class:`FetchError` when unreachable."""
        requested = ensure_scheme(url)
        key = normalize_url(requested)

        if self._cache is not None:
            cached = self._cache.get(key)
            if cached is not None:
                logger.info("Cache hit for %s", key)
                return cached

        t0 = time.monotonic()
        final_url, headers, html = await self._get_document(requested)
        elapsed = round(time.monotonic() - t0, 3)

        soup = BeautifulSoup(html, "html.parser")
        resources = await self.probe_resources(soup, final_url)

        page = ParsedPage(
            url=final_url,
            html=html,
            soup=soup,
            headers=headers,
            resources=tuple(resources),
            timing=PageTiming(server_response=0.0, all_content=elapsed, all_scripts=elapsed),
            requested_url=requested,
        )
        logger.info(
            "Fetched %s -> %s in %.2fs (%d resources probed)",
            requested, final_url, elapsed, len(resources),
        )

        if self._cache is not None:
            self._cache.set(key, page, ttl=ttl_from_cache_control(page.header("cache-control") or None))
        return page
