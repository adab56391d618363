"""Audit pipeline: fetch once, run every analyzer, grade, assemble.

Concurrent audits of the same URL share one execution through the
:class:`InFlightRegistry`.  A failing analyzer is replaced by its default
section; only a failed fetch aborts the audit.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from seo_grader.exceptions import FetchError
from seo_grader.integrations.screenshots import ScreenshotCapturer, screenshots_from_insights
from seo_grader.models.page import ParsedPage
from seo_grader.models.report import AuditReport
from seo_grader.modules.grading import grade_all
from seo_grader.utils.helpers import ensure_scheme, normalize_url
from seo_grader.utils.inflight import InFlightRegistry

logger = logging.getLogger(__name__)


class Analyzer(Protocol):
    name: str

    async def analyze(self, page: ParsedPage) -> dict[str, Any]:
        ...

    def default_result(self) -> dict[str, Any]:
        ...


class Fetcher(Protocol):
    async def fetch(self, url: str) -> ParsedPage:
        ...


class AuditOrchestrator:
    """Run complete audits over a fetcher and a set of analyzers.

    ``light`` analyzers only parse the page (plus a few small requests for
    robots/sitemap/link probes); ``performance`` samples sub-resources and
    queries PageSpeed, so it is awaited as a later phase.

    Usage::

        orchestrator = AuditOrchestrator(
            fetcher=PageFetcher(),
            light=[OnPageAnalyzer(), SocialAnalyzer(), LocalSEOAnalyzer(), TechnicalAnalyzer()],
            performance=PerformanceAnalyzer(),
        )
        report = await orchestrator.run_audit("example.com")
    """

    def __init__(
        self,
        fetcher: Fetcher,
        light: list[Analyzer],
        performance: Analyzer,
        capturer: Optional[ScreenshotCapturer] = None,
        registry: Optional[InFlightRegistry] = None,
    ) -> None:
        self._fetcher = fetcher
        self._light = list(light)
        self._performance = performance
        self._capturer = capturer
        self._registry = registry or InFlightRegistry()

    @property
    def registry(self) -> InFlightRegistry:
        return self._registry

    async def run_audit(self, url: str) -> AuditReport:
        """Audit *url*, joining an identical audit already in flight."""
        key = normalize_url(url)
        return await self._registry.run(key, lambda: self._audit(url))

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _run_isolated(self, analyzer: Analyzer, page: ParsedPage) -> dict[str, Any]:
        try:
            return await analyzer.analyze(page)
        except Exception as exc:
            logger.warning(
                "Analyzer %s failed for %s, using defaults: %s",
                analyzer.name, page.url, exc,
            )
            return analyzer.default_result()

    async def _capture(self, url: str, performance: dict[str, Any]) -> dict[str, Optional[str]]:
        if self._capturer is None:
            return screenshots_from_insights(performance.get("page_speed_insights"))
        try:
            shots = await self._capturer.capture(url)
        except Exception as exc:
            logger.warning("Screenshot capture failed for %s: %s", url, exc)
            return {"desktop": None, "mobile": None}
        return {"desktop": shots.get("desktop"), "mobile": shots.get("mobile")}

    async def _audit(self, url: str) -> AuditReport:
        requested = ensure_scheme(url)
        started = time.monotonic()
        logger.info("Starting audit of %s", requested)

        try:
            page = await self._fetcher.fetch(requested)
        except FetchError as exc:
            logger.error("Audit of %s aborted: %s", requested, exc)
            raise

        perf_task = asyncio.ensure_future(self._run_isolated(self._performance, page))
        try:
            light_results = await asyncio.gather(
                *(self._run_isolated(analyzer, page) for analyzer in self._light)
            )
            sections: dict[str, dict[str, Any]] = {
                analyzer.name: result for analyzer, result in zip(self._light, light_results)
            }
            logger.info(
                "Light analyzers done for %s in %.2fs: %s",
                page.url, time.monotonic() - started, ", ".join(sections),
            )
            sections[self._performance.name] = await perf_task
        finally:
            if not perf_task.done():
                perf_task.cancel()

        shots = await self._capture(page.url, sections[self._performance.name])
        grades = grade_all(sections)
        elapsed = round(time.monotonic() - started, 2)

        report = AuditReport(
            resolved_url=page.url,
            fetched_at=datetime.now(timezone.utc).isoformat(),
            sections=sections,
            grades=grades,
            timing=page.timing.to_dict(),
            screenshot_desktop=shots["desktop"],
            screenshot_mobile=shots["mobile"],
            requested_url=requested,
            elapsed_seconds=elapsed,
        )
        logger.info(
            "Audit of %s finished in %.2fs: overall %d (%s)",
            page.url, elapsed, report.overall.score, report.overall.letter,
        )
        return report
