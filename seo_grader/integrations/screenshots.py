"""Desktop/mobile screenshots of the audited page."""

import logging
from typing import Optional, Protocol

from seo_grader.integrations.google_pagespeed import PageSpeedInsights

logger = logging.getLogger(__name__)


class ScreenshotCapturer(Protocol):
    async def capture(self, url: str) -> dict[str, Optional[str]]:
        """Return ``{"desktop": data_uri | None, "mobile": data_uri | None}``."""
        ...


def screenshots_from_insights(insights: Optional[dict]) -> dict[str, Optional[str]]:
    """Pick the screenshots PageSpeed already returned for each strategy."""
    insights = insights or {}
    return {
        "desktop": (insights.get("desktop") or {}).get("screenshot"),
        "mobile": (insights.get("mobile") or {}).get("screenshot"),
    }


class PageSpeedScreenshotCapturer:
    """Screenshots taken from a dedicated PageSpeed Insights lookup."""

    def __init__(self, insights: PageSpeedInsights) -> None:
        self._insights = insights

    async def capture(self, url: str) -> dict[str, Optional[str]]:
        result = await self._insights.lookup(url)
        shots = screenshots_from_insights(result)
        logger.debug(
            "Captured screenshots for %s: desktop=%s mobile=%s",
            url, shots["desktop"] is not None, shots["mobile"] is not None,
        )
        return shots
