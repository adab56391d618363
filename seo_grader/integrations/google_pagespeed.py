"""Google PageSpeed Insights integration for lab scores and Core Web Vitals."""

import asyncio
import logging
import os
import re
import time
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

PAGESPEED_API_URL = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"

STRATEGIES = ("mobile", "desktop")

_DATA_URI = re.compile(r"^data:image/[a-z]+;base64,", re.I)
_MIN_SCREENSHOT_PAYLOAD = 1000

_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def empty_strategy(strategy: str) -> dict[str, Any]:
    """The record returned for a strategy that produced no data."""
    return {
        "strategy": strategy,
        "score": None,
        "fcp": None,
        "lcp": None,
        "tbt": None,
        "cls": None,
        "si": None,
        "screenshot": None,
    }


def empty_lookup() -> dict[str, dict[str, Any]]:
    return {strategy: empty_strategy(strategy) for strategy in STRATEGIES}


def is_valid_screenshot(data: Optional[str]) -> bool:
    """A base64 image data URI with a payload of plausible size."""
    if not data or not _DATA_URI.match(data):
        return False
    payload = data.split(",", 1)[1] if "," in data else ""
    return len(payload) >= _MIN_SCREENSHOT_PAYLOAD


def _seconds(audits: dict, key: str) -> Optional[float]:
    val = (audits.get(key) or {}).get("numericValue")
    return round(val / 1000, 2) if val is not None else None


def _pick_screenshot(audits: dict, strategy: str) -> Optional[str]:
    candidates = [
        ((audits.get("final-screenshot") or {}).get("details") or {}).get("data"),
        ((audits.get("full-page-screenshot") or {}).get("screenshot") or {}).get("data"),
    ]
    if strategy == "desktop":
        thumbnails = ((audits.get("screenshot-thumbnails") or {}).get("details") or {}).get("data") or []
        if thumbnails:
            first = thumbnails[0]
            candidates.append(first.get("data") if isinstance(first, dict) else first)
    for candidate in candidates:
        if is_valid_screenshot(candidate):
            return candidate
    return None


def parse_strategy_result(data: dict, strategy: str) -> dict[str, Any]:
    """Turn a PageSpeed v5 response into the per-strategy record."""
    lighthouse = data.get("lighthouseResult") or {}
    perf = (lighthouse.get("categories") or {}).get("performance") or {}
    audits = lighthouse.get("audits") or {}

    raw_score = perf.get("score")
    cls_val = (audits.get("cumulative-layout-shift") or {}).get("numericValue")
    return {
        "strategy": strategy,
        "score": round(raw_score * 100) if raw_score is not None else None,
        "fcp": _seconds(audits, "first-contentful-paint"),
        "lcp": _seconds(audits, "largest-contentful-paint"),
        "tbt": _seconds(audits, "total-blocking-time"),
        "cls": round(cls_val, 3) if cls_val is not None else None,
        "si": _seconds(audits, "speed-index"),
        "screenshot": _pick_screenshot(audits, strategy),
    }


class PageSpeedInsights:
    """Client for the Google PageSpeed Insights API.

    Without an API key (or with ``SKIP_PSI=true``) the client is disabled
    and :meth:`lookup` answers with all-null scores without any request.

    Usage::

        psi = PageSpeedInsights(api_key="your-key")
        result = await psi.lookup("https://example.com")
        result["mobile"]["score"], result["desktop"]["lcp"]
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        enabled: Optional[bool] = None,
        requests_per_minute: int = 10,
        timeout: int = 30,
        max_retries: int = 2,
    ):
        self._api_key = api_key or os.getenv("PSI_API_KEY") or os.getenv("PAGESPEED_API_KEY", "")
        if enabled is None:
            enabled = os.getenv("SKIP_PSI", "").lower() != "true"
        self._enabled = bool(enabled and self._api_key)
        self._rpm = requests_per_minute
        self._timeout = timeout
        self._max_retries = max_retries
        self._request_timestamps: list[float] = []
        self._lock = asyncio.Lock()

        if not self._enabled:
            logger.info("PageSpeed Insights disabled (no API key or SKIP_PSI set).")

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def _rate_limit(self) -> None:
        """Sliding one-minute window shared by all strategies."""
        async with self._lock:
            now = time.monotonic()
            self._request_timestamps = [
                t for t in self._request_timestamps if now - t < 60.0
            ]
            if len(self._request_timestamps) >= self._rpm:
                wait = 60.0 - (now - self._request_timestamps[0])
                if wait > 0:
                    logger.debug("PageSpeed rate limit: sleeping %.1fs", wait)
                    await asyncio.sleep(wait)
            self._request_timestamps.append(time.monotonic())

    async def _request_with_retry(
        self,
        client: httpx.AsyncClient,
        params: dict,
    ) -> dict:
        """GET the API with exponential backoff on 429 and timeouts."""
        for attempt in range(self._max_retries + 1):
            try:
                await self._rate_limit()
                response = await client.get(PAGESPEED_API_URL, params=params)
                if response.status_code == 429 and attempt < self._max_retries:
                    wait = 5 * (2 ** attempt)
                    logger.warning(
                        "PageSpeed 429 Too Many Requests. Retry %d/%d in %ds...",
                        attempt + 1, self._max_retries, wait,
                    )
                    await asyncio.sleep(wait)
                    continue
                response.raise_for_status()
                return response.json()
            except httpx.TimeoutException:
                if attempt < self._max_retries:
                    wait = 2 * (2 ** attempt)
                    logger.warning(
                        "PageSpeed timeout. Retry %d/%d in %ds...",
                        attempt + 1, self._max_retries, wait,
                    )
                    await asyncio.sleep(wait)
                    continue
                raise
        return {}

    async def analyze_strategy(self, url: str, strategy: str) -> dict[str, Any]:
        """Run one strategy; any API failure yields the empty record."""
        params: dict[str, Any] = {
            "url": url,
            "strategy": strategy,
            "category": "performance",
            "key": self._api_key,
        }
        if strategy == "desktop":
            params["screenshot"] = "true"
            params["locale"] = "en"

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, headers={"User-Agent": _USER_AGENT},
            ) as client:
                data = await self._request_with_retry(client, params)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("PageSpeed %s lookup failed for %s: %s", strategy, url, exc)
            return empty_strategy(strategy)

        result = parse_strategy_result(data, strategy)
        logger.info("PageSpeed %s score for %s: %s", strategy, url, result["score"])
        return result

    async def lookup(self, url: str) -> dict[str, dict[str, Any]]:
        """Mobile and desktop results for *url*, fetched concurrently."""
        if not self._enabled:
            return empty_lookup()
        mobile, desktop = await asyncio.gather(
            self.analyze_strategy(url, "mobile"),
            self.analyze_strategy(url, "desktop"),
        )
        return {"mobile": mobile, "desktop": desktop}
