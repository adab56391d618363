"""Application object that loads configuration and wires the audit pipeline."""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from seo_grader.integrations.fetcher import DEFAULT_USER_AGENT, PageFetcher
from seo_grader.integrations.google_pagespeed import PageSpeedInsights
from seo_grader.integrations.screenshots import PageSpeedScreenshotCapturer
from seo_grader.models.report import AuditReport
from seo_grader.modules.local_seo import LocalSEOAnalyzer
from seo_grader.modules.onpage_seo import OnPageAnalyzer
from seo_grader.modules.performance import PerformanceAnalyzer
from seo_grader.modules.reporting import ReportRenderer
from seo_grader.modules.social import SocialAnalyzer
from seo_grader.modules.technical_audit import BrokenLinkChecker, TechnicalAnalyzer
from seo_grader.orchestrator import AuditOrchestrator
from seo_grader.utils.cache import TTLCache

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: dict[str, dict[str, Any]] = {
    "app": {"name": "SEO Grader"},
    "fetcher": {
        "timeout": 20,
        "user_agent": DEFAULT_USER_AGENT,
        "max_resource_probes": 10,
        "resource_probe_timeout": 12,
    },
    "cache": {"max_size": 128, "ttl_seconds": 600},
    "technical": {"link_check_limit": 30, "link_timeout": 8, "robots_timeout": 8},
    "performance": {"sample_size": 5, "probe_timeout": 5, "compression_threshold": 0.6},
    "pagespeed": {"enabled": True, "timeout": 30, "max_retries": 2, "requests_per_minute": 10},
    "screenshots": {"dedicated_lookup": False},
    "server": {"host": "0.0.0.0", "port": 8080},
}


def merge_config(defaults: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Section-wise merge of a loaded config over the defaults."""
    merged = {section: dict(values) for section, values in defaults.items()}
    for section, values in (overrides or {}).items():
        if isinstance(values, dict):
            merged.setdefault(section, {}).update(values)
        else:
            merged[section] = values
    return merged


class SEOGrader:
    """Central application class that owns the configured orchestrator.

    Usage::

        app = SEOGrader()
        app.initialize()
        report = await app.run_audit("example.com")
    """

    def __init__(
        self,
        config_path: Optional[str] = None,
        env_path: str = ".env",
    ):
        self._config_path = config_path or os.getenv("SEO_GRADER_CONFIG", "config/settings.yaml")
        self._env_path = env_path
        self.config: dict[str, Any] = {}
        self._initialized = False
        self._orchestrator: Optional[AuditOrchestrator] = None
        self._renderer: Optional[ReportRenderer] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Load the environment and configuration."""
        if self._initialized:
            return

        env_file = Path(self._env_path)
        if env_file.exists():
            load_dotenv(env_file)
            logger.info("Loaded environment from %s", self._env_path)

        self.config = merge_config(DEFAULT_CONFIG, self._load_config())
        port = os.getenv("PORT")
        if port and port.isdigit():
            self.config["server"]["port"] = int(port)

        self._initialized = True
        logger.info("%s initialised.", self.config["app"].get("name", "SEO Grader"))

    def _load_config(self) -> dict[str, Any]:
        config_file = Path(self._config_path)
        if not config_file.exists():
            logger.warning("Config file not found: %s, using defaults.", self._config_path)
            return {}
        with open(config_file, "r", encoding="utf-8") as fh:
            config = yaml.safe_load(fh) or {}
        logger.info("Configuration loaded from %s", self._config_path)
        return config

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError("Call initialize() before using the application.")

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    def _build_orchestrator(self) -> AuditOrchestrator:
        fetch_cfg = self.config["fetcher"]
        cache_cfg = self.config["cache"]
        tech_cfg = self.config["technical"]
        perf_cfg = self.config["performance"]
        psi_cfg = self.config["pagespeed"]
        shot_cfg = self.config["screenshots"]
        user_agent = fetch_cfg.get("user_agent", DEFAULT_USER_AGENT)

        fetcher = PageFetcher(
            cache=TTLCache(
                max_size=cache_cfg.get("max_size", 128),
                ttl_seconds=cache_cfg.get("ttl_seconds", 600),
            ),
            timeout=fetch_cfg.get("timeout", 20),
            user_agent=user_agent,
            max_resource_probes=fetch_cfg.get("max_resource_probes", 10),
            resource_probe_timeout=fetch_cfg.get("resource_probe_timeout", 12),
        )
        insights = PageSpeedInsights(
            enabled=None if psi_cfg.get("enabled", True) else False,
            requests_per_minute=psi_cfg.get("requests_per_minute", 10),
            timeout=psi_cfg.get("timeout", 30),
            max_retries=psi_cfg.get("max_retries", 2),
        )
        technical = TechnicalAnalyzer(
            link_checker=BrokenLinkChecker(
                limit=tech_cfg.get("link_check_limit", 30),
                timeout=tech_cfg.get("link_timeout", 8),
            ),
            request_timeout=tech_cfg.get("robots_timeout", 8),
        )
        performance = PerformanceAnalyzer(
            insights=insights,
            sample_size=perf_cfg.get("sample_size", 5),
            probe_timeout=perf_cfg.get("probe_timeout", 5),
            threshold=perf_cfg.get("compression_threshold", 0.6),
        )
        # Off by default: the performance section already carries screenshots.
        capturer = None
        if shot_cfg.get("dedicated_lookup", False):
            capturer = PageSpeedScreenshotCapturer(insights)
        return AuditOrchestrator(
            fetcher=fetcher,
            light=[OnPageAnalyzer(), SocialAnalyzer(), LocalSEOAnalyzer(), technical],
            performance=performance,
            capturer=capturer,
        )

    @property
    def orchestrator(self) -> AuditOrchestrator:
        self._ensure_initialized()
        if self._orchestrator is None:
            self._orchestrator = self._build_orchestrator()
        return self._orchestrator

    @property
    def renderer(self) -> ReportRenderer:
        self._ensure_initialized()
        if self._renderer is None:
            self._renderer = ReportRenderer(brand_name=self.config["app"].get("name", "SEO Grader"))
        return self._renderer

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def run_audit(self, url: str) -> AuditReport:
        """Run one audit through the shared orchestrator."""
        return await self.orchestrator.run_audit(url)

    def get_status(self) -> dict[str, dict[str, Any]]:
        """Health of the configured components."""
        self._ensure_initialized()
        psi_key = bool(os.getenv("PSI_API_KEY") or os.getenv("PAGESPEED_API_KEY"))
        skip_psi = os.getenv("SKIP_PSI", "").lower() == "true"
        return {
            "pagespeed": {
                "status": "ok" if psi_key and not skip_psi else "warning",
                "details": "enabled" if psi_key and not skip_psi else "disabled (no key or SKIP_PSI)",
            },
            "config": {
                "status": "ok",
                "details": f"{len(self.config)} sections loaded",
            },
            "in_flight": {
                "status": "ok",
                "details": f"{len(self.orchestrator.registry)} audits",
            },
        }
