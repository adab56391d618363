"""Performance analysis: page weight, compression, HTTP/2 and PageSpeed.

Sums the sizes of the page's sub-resources, samples a few of them for
content-encoding and protocol version, and folds in the PageSpeed Insights
lab data when the insights client is enabled.
"""

import asyncio
import logging
import re
from typing import Any, Optional

import httpx

from seo_grader.integrations.google_pagespeed import PageSpeedInsights, empty_lookup
from seo_grader.models.page import ParsedPage, SubResource
from seo_grader.utils.helpers import bytes_to_mb

logger = logging.getLogger(__name__)

_COMPRESSED = re.compile(r"gzip|br", re.I)
_CSS = re.compile(r"css", re.I)
_JS = re.compile(r"javascript", re.I)
_IMAGE = re.compile(r"image", re.I)


def meets_share(hits: int, sampled: int, threshold: float) -> bool:
    """Whether *hits* out of *sampled* reach *threshold*; an empty sample never does."""
    if sampled <= 0:
        return False
    return hits / sampled >= threshold


def summarize_resources(resources: tuple[SubResource, ...] | list[SubResource]) -> dict[str, Any]:
    """Byte totals per content category and resource counts per tag."""
    totals = {"total": 0, "css": 0, "js": 0, "images": 0, "other": 0}
    counts = {"html": 1, "js": 0, "css": 0, "img": 0, "total": 1}

    for res in resources:
        size = res.size or 0
        totals["total"] += size
        if _CSS.search(res.type):
            totals["css"] += size
        elif _JS.search(res.type):
            totals["js"] += size
        elif _IMAGE.search(res.type):
            totals["images"] += size
        else:
            totals["other"] += size

        if res.tag == "script":
            counts["js"] += 1
        elif res.tag == "link":
            counts["css"] += 1
        elif res.tag == "img":
            counts["img"] += 1
    counts["total"] = counts["js"] + counts["css"] + counts["img"] + 1

    return {
        "download_size_mb": bytes_to_mb(totals["total"]),
        "breakdown_mb": {
            "html": 0.0,
            "css": bytes_to_mb(totals["css"]),
            "js": bytes_to_mb(totals["js"]),
            "images": bytes_to_mb(totals["images"]),
            "other": bytes_to_mb(totals["other"]),
        },
        "resource_counts": counts,
    }


class PerformanceAnalyzer:
    """Page-weight and delivery checks for a :class:`ParsedPage`.

    Usage::

        analyzer = PerformanceAnalyzer(insights=PageSpeedInsights())
        section = await analyzer.analyze(page)
    """

    name = "performance"

    def __init__(
        self,
        insights: Optional[PageSpeedInsights] = None,
        sample_size: int = 5,
        probe_timeout: int = 5,
        threshold: float = 0.6,
    ) -> None:
        self._insights = insights
        self._sample_size = sample_size
        self._probe_timeout = probe_timeout
        self._threshold = threshold

    async def _probe_resource(self, client: httpx.AsyncClient, url: str) -> tuple[str, str]:
        """HEAD one resource, returning ``(content_encoding, http_version)``."""
        try:
            response = await client.head(url)
            return response.headers.get("content-encoding", ""), response.http_version
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.debug("Resource probe failed for %s: %s", url, exc)
            return "", ""

    async def probe_delivery(self, resources: list[SubResource]) -> dict[str, Any]:
        """Compression and HTTP/2 share over a sample of resources."""
        sample = resources[: self._sample_size]
        results: list[tuple[str, str]] = []
        if sample:
            async with httpx.AsyncClient(
                http2=True,
                timeout=self._probe_timeout,
                follow_redirects=True,
                headers={"Accept-Encoding": "gzip, deflate, br"},
            ) as client:
                results = await asyncio.gather(
                    *(self._probe_resource(client, res.url) for res in sample)
                )

        compressed = sum(1 for encoding, _ in results if _COMPRESSED.search(encoding))
        http2 = sum(1 for _, version in results if version.upper().startswith("HTTP/2"))
        return {
            "compression": {
                "brotli_or_gzip": meets_share(compressed, len(sample), self._threshold),
                "compressed": compressed,
                "sampled": len(sample),
            },
            "http2": {
                "enabled": meets_share(http2, len(sample), self._threshold),
                "count": http2,
                "sampled": len(sample),
            },
        }

    async def _lookup_insights(self, url: str) -> dict[str, dict[str, Any]]:
        if self._insights is None:
            return empty_lookup()
        try:
            return await self._insights.lookup(url)
        except Exception as exc:
            logger.warning("PageSpeed lookup failed for %s: %s", url, exc)
            return empty_lookup()

    async def analyze(self, page: ParsedPage) -> dict[str, Any]:
        summary = summarize_resources(page.resources)
        delivery, insights = await asyncio.gather(
            self.probe_delivery(list(page.resources)),
            self._lookup_insights(page.url),
        )
        logger.info(
            "Performance %s: %.2f MB, compression=%s, http2=%s",
            page.url,
            summary["download_size_mb"],
            delivery["compression"]["brotli_or_gzip"],
            delivery["http2"]["enabled"],
        )
        return {
            "load": page.timing.to_dict(),
            **summary,
            **delivery,
            "page_speed_insights": insights,
        }

    @staticmethod
    def default_result() -> dict[str, Any]:
        return {
            "load": {"server_response": 0.0, "all_content": 0.0, "all_scripts": 0.0},
            "download_size_mb": 0.0,
            "breakdown_mb": {"html": 0.0, "css": 0.0, "js": 0.0, "images": 0.0, "other": 0.0},
            "resource_counts": {"html": 1, "js": 0, "css": 0, "img": 0, "total": 1},
            "compression": {"brotli_or_gzip": False, "compressed": 0, "sampled": 0},
            "http2": {"enabled": False, "count": 0, "sampled": 0},
            "page_speed_insights": empty_lookup(),
        }
