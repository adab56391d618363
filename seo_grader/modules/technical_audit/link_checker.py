"""Broken-link detection for the absolute links of a page.

Probes each link with HEAD, falls back to GET when HEAD gives no usable
status, and treats unreachable or malformed links as status 0.  403 and
429 come from bot protection far more often than from dead pages, so they
are not counted as broken.
"""

import asyncio
import logging
import re
from typing import Any, Optional

import aiohttp

from seo_grader.models.page import ParsedPage

logger = logging.getLogger(__name__)

_ABSOLUTE_HTTP = re.compile(r"^https?://", re.I)
_IGNORED_CLIENT_ERRORS = frozenset({403, 429})

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; SEOGraderBot/1.0)"


def is_broken(status: int) -> bool:
    """Whether a probe status counts as a broken link."""
    if status == 0:
        return True
    return 400 <= status < 500 and status not in _IGNORED_CLIENT_ERRORS


def collect_links(page: ParsedPage, limit: int) -> list[dict[str, str]]:
    """First *limit* absolute http(s) anchors of the page with their text."""
    links: list[dict[str, str]] = []
    for a_tag in page.soup.find_all("a", href=True):
        href = (a_tag.get("href") or "").strip()
        if not _ABSOLUTE_HTTP.match(href):
            continue
        links.append({"url": href, "anchor_text": a_tag.get_text().strip()})
        if len(links) >= limit:
            break
    return links


class BrokenLinkChecker:
    """Check the outgoing links of a page concurrently.

    Usage::

        checker = BrokenLinkChecker(limit=30)
        async with aiohttp.ClientSession() as session:
            report = await checker.check(page, session)
    """

    def __init__(
        self,
        limit: int = 30,
        timeout: int = 8,
        user_agent: str = DEFAULT_USER_AGENT,
        max_examples: int = 5,
    ) -> None:
        self.limit = limit
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._headers = {"User-Agent": user_agent}
        self._max_examples = max_examples

    async def _request_status(
        self, session: aiohttp.ClientSession, method: str, url: str,
    ) -> Optional[int]:
        async with session.request(
            method, url,
            headers=self._headers,
            timeout=self._timeout,
            allow_redirects=True,
            ssl=False,
        ) as resp:
            return resp.status

    async def _probe(self, session: aiohttp.ClientSession, url: str) -> int:
        """Return the status of *url*, 0 when it cannot be reached at all."""
        try:
            status = await self._request_status(session, "HEAD", url)
            # Some servers reject HEAD outright, so confirm with GET.
            if not status or status >= 400:
                status = await self._request_status(session, "GET", url)
            return status or 0
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            logger.debug("Probe failed for %s, retrying with GET: %s", url, exc)
        try:
            return await self._request_status(session, "GET", url) or 0
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            logger.debug("GET probe failed for %s: %s", url, exc)
            return 0

    async def check(self, page: ParsedPage, session: aiohttp.ClientSession) -> dict[str, Any]:
        links = collect_links(page, self.limit)
        if not links:
            return self.empty_result()

        logger.info("Checking %d links on %s", len(links), page.url)

        async def _check_one(link: dict[str, str]) -> dict[str, Any]:
            status = await self._probe(session, link["url"])
            return {"url": link["url"], "anchor_text": link["anchor_text"], "status": status}

        checked = await asyncio.gather(*(_check_one(link) for link in links))
        broken = [entry for entry in checked if is_broken(entry["status"])]

        logger.info("Link check for %s: %d/%d broken", page.url, len(broken), len(checked))
        return {
            "total_checked": len(checked),
            "broken_count": len(broken),
            "broken_examples": broken[: self._max_examples],
            "ok": not broken,
            "checked": list(checked),
        }

    @staticmethod
    def empty_result() -> dict[str, Any]:
        return {
            "total_checked": 0,
            "broken_count": 0,
            "broken_examples": [],
            "ok": True,
            "checked": [],
        }
