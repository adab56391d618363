"""
report_renderer.py - Audit Report Rendering

Renders a finished audit report into a themed, self-contained HTML page,
a PDF (via WeasyPrint) or pretty-printed JSON.  Accepts either an
:class:`AuditReport` or the dict produced by ``AuditReport.to_dict()``.
"""

import json
import logging
from html import escape
from typing import Any, Union

from seo_grader.exceptions import ReportRenderError
from seo_grader.models.report import AuditReport

logger = logging.getLogger(__name__)

ReportLike = Union[AuditReport, dict]


def _as_dict(report: ReportLike) -> dict:
    if isinstance(report, AuditReport):
        return report.to_dict()
    if isinstance(report, dict):
        return report
    raise TypeError(f"Cannot render report of type {type(report).__name__}")


def _safe_get(data: Any, *keys: str, default: Any = None) -> Any:
    """Walk nested dict keys, returning *default* on any gap."""
    current = data
    for key in keys:
        if not isinstance(current, dict):
            return default
        current = current.get(key)
        if current is None:
            return default
    return current


class ReportRenderer:
    """Renders audit reports into HTML, PDF and JSON."""

    THEMES = {
        "professional": {
            "bg": "#f8fafc",
            "text": "#1e293b",
            "primary": "#2563eb",
            "card_bg": "#ffffff",
            "border": "#e2e8f0",
            "muted": "#64748b",
            "header_bg": "#1e40af",
            "header_text": "#ffffff",
        },
        "minimal": {
            "bg": "#ffffff",
            "text": "#334155",
            "primary": "#64748b",
            "card_bg": "#ffffff",
            "border": "#e2e8f0",
            "muted": "#94a3b8",
            "header_bg": "#f8fafc",
            "header_text": "#1e293b",
        },
    }

    CATEGORY_LABELS = [
        ("onpage", "On-Page SEO"),
        ("performance", "Performance"),
        ("social", "Social"),
        ("techlocal", "Technical & Local"),
    ]

    GOOD = "#16a34a"
    WARN = "#eab308"
    BAD = "#dc2626"

    def __init__(self, brand_name: str = "SEO Grader"):
        self._brand_name = brand_name

    # ------------------------------------------------------------------
    # Public rendering methods
    # ------------------------------------------------------------------

    def render_html(self, report: ReportLike, template: str = "professional") -> str:
        """Generate a self-contained HTML report with embedded CSS."""
        data = _as_dict(report)
        theme = self._get_theme_colors(template)
        meta = data.get("meta") or {}
        sections = data.get("sections") or {}
        grades = data.get("grades") or {}
        url = meta.get("resolved_url") or meta.get("requested_url") or "Unknown URL"

        parts = [
            self._build_html_head(theme, url),
            self._build_header_html(theme, url, meta),
            self._build_score_grid_html(grades),
            self._build_onpage_html(theme, sections.get("onpage") or {}),
            self._build_keywords_html(theme, _safe_get(sections, "onpage", "keyword_consistency", default={})),
            self._build_performance_html(theme, sections.get("performance") or {}),
            self._build_social_html(theme, sections.get("social") or {}),
            self._build_tech_html(theme, sections.get("tech") or {}),
            self._build_broken_links_html(theme, _safe_get(sections, "tech", "broken_links", default={})),
            self._build_local_html(theme, sections.get("local") or {}),
            self._build_screenshots_html(theme, meta.get("screenshots") or {}),
            self._build_footer_html(meta),
            "</div></body></html>",
        ]
        html = "\n".join(p for p in parts if p)
        logger.info("HTML report rendered (%d chars)", len(html))
        return html

    def render_pdf(self, report: ReportLike) -> bytes:
        """Render the professional HTML report to PDF bytes."""
        html_content = self.render_html(report, template="professional")
        from weasyprint import HTML as WeasyprintHTML

        pdf_bytes = WeasyprintHTML(string=html_content).write_pdf()
        if not pdf_bytes:
            raise ReportRenderError("PDF renderer returned an empty document")
        logger.info("PDF generated via weasyprint (%d bytes)", len(pdf_bytes))
        return pdf_bytes

    def render_json(self, report: ReportLike) -> str:
        """Export the report as pretty-printed JSON."""
        output = json.dumps(_as_dict(report), indent=2, default=str, ensure_ascii=False)
        logger.debug("JSON report rendered (%d chars)", len(output))
        return output

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _get_theme_colors(self, template: str) -> dict:
        if template in self.THEMES:
            return dict(self.THEMES[template])
        logger.warning("Unknown template '%s', falling back to 'professional'", template)
        return dict(self.THEMES["professional"])

    def _score_to_color(self, score: Any) -> str:
        try:
            s = float(score)
        except (TypeError, ValueError):
            return self.BAD
        if s >= 80:
            return self.GOOD
        if s >= 60:
            return self.WARN
        return self.BAD

    def _check(self, ok: Any) -> str:
        if ok:
            return '<span style="color:' + self.GOOD + ';font-weight:700;">&#10003;</span>'
        return '<span style="color:' + self.BAD + ';font-weight:700;">&#10007;</span>'

    def _rows_table(self, rows: list[tuple[str, Any, str]]) -> str:
        """A three-column ``check / status / detail`` table."""
        parts = ['<table>', '<tr><th>Check</th><th>Status</th><th>Detail</th></tr>']
        for label, ok, detail in rows:
            parts.append(
                '<tr><td>' + escape(label) + '</td><td>' + self._check(ok) + '</td><td>'
                + escape(str(detail)) + '</td></tr>'
            )
        parts.append('</table>')
        return "\n".join(parts)

    def _section(self, theme: dict, title: str, body: str) -> str:
        return (
            '<div class="section">\n<h2 class="section-title" style="color:' + theme["primary"] + ';">'
            + escape(title) + '</h2>\n' + body + '\n</div>'
        )

    # ------------------------------------------------------------------
    # HTML building helpers
    # ------------------------------------------------------------------

    def _build_html_head(self, theme: dict, url: str) -> str:
        css = []
        css.append("* { margin:0; padding:0; box-sizing:border-box; }")
        css.append("body { font-family: 'Segoe UI', system-ui, -apple-system, sans-serif; ")
        css.append("background-color: " + theme["bg"] + "; color: " + theme["text"] + "; line-height: 1.6; }")
        css.append(".report-container { max-width: 1100px; margin: 0 auto; padding: 30px; }")
        css.append(".header { padding: 30px; border-radius: 12px; margin-bottom: 30px; }")
        css.append(".section { background: " + theme["card_bg"] + "; border: 1px solid " + theme["border"] + "; ")
        css.append("border-radius: 10px; padding: 25px; margin-bottom: 25px; }")
        css.append(".section-title { font-size: 20px; font-weight: 700; margin-bottom: 18px; ")
        css.append("padding-bottom: 12px; border-bottom: 2px solid " + theme["primary"] + "; }")
        css.append(".score-grid { display: flex; flex-wrap: wrap; gap: 16px; margin-bottom: 25px; }")
        css.append(".score-card { flex: 1; min-width: 150px; background: " + theme["card_bg"] + "; ")
        css.append("border: 1px solid " + theme["border"] + "; border-radius: 10px; padding: 20px; text-align: center; }")
        css.append(".score-value { font-size: 32px; font-weight: 800; }")
        css.append(".score-label { font-size: 13px; color: " + theme["muted"] + "; text-transform: uppercase; }")
        css.append("table { width: 100%; border-collapse: collapse; margin: 12px 0; }")
        css.append("th { padding: 10px 14px; text-align: left; font-size: 12px; text-transform: uppercase; ")
        css.append("color: " + theme["muted"] + "; }")
        css.append("td { padding: 8px 14px; border-bottom: 1px solid " + theme["border"] + "; font-size: 14px; ")
        css.append("word-break: break-word; }")
        css.append(".shots img { max-width: 48%; border: 1px solid " + theme["border"] + "; border-radius: 8px; }")
        css.append(".footer { text-align: center; padding: 20px; color: " + theme["muted"] + "; font-size: 12px; }")
        css.append("@media print { .section, .score-card { break-inside: avoid; } ")
        css.append(".header { -webkit-print-color-adjust: exact; print-color-adjust: exact; } }")

        head = []
        head.append('<!DOCTYPE html>')
        head.append('<html lang="en">')
        head.append('<head>')
        head.append('<meta charset="UTF-8">')
        head.append('<title>SEO Audit - ' + escape(url) + '</title>')
        head.append('<style>')
        head.append("\n".join(css))
        head.append('</style>')
        head.append('</head>')
        head.append('<body>')
        head.append('<div class="report-container">')
        return "\n".join(head)

    def _build_header_html(self, theme: dict, url: str, meta: dict) -> str:
        fetched = meta.get("fetched_at") or ""
        parts = []
        parts.append('<div class="header" style="background-color:' + theme["header_bg"] + '; color:' + theme["header_text"] + ';">')
        parts.append('<h1 style="font-size:26px;">' + escape(self._brand_name) + ' - SEO Audit</h1>')
        parts.append('<p style="font-size:15px;">' + escape(url) + '</p>')
        if fetched:
            parts.append('<p style="font-size:12px; opacity:0.85;">Fetched: ' + escape(str(fetched)) + '</p>')
        parts.append('</div>')
        return "\n".join(parts)

    def _build_score_grid_html(self, grades: dict) -> str:
        parts = ['<div class="score-grid">']
        overall = grades.get("overall") or {}
        entries = [("Overall", overall)] + [
            (label, grades.get(key) or {}) for key, label in self.CATEGORY_LABELS
        ]
        for label, grade in entries:
            score = grade.get("score", 0)
            color = self._score_to_color(score)
            parts.append('<div class="score-card" style="border-top:4px solid ' + color + ';">')
            parts.append('<div class="score-value" style="color:' + color + ';">' + escape(str(grade.get("letter", "F"))) + '</div>')
            parts.append('<div>' + escape(str(score)) + '/100</div>')
            parts.append('<div class="score-label">' + escape(label) + '</div>')
            parts.append('</div>')
        parts.append('</div>')
        return "\n".join(parts)

    def _build_onpage_html(self, theme: dict, onpage: dict) -> str:
        if not onpage:
            return ""
        headings = _safe_get(onpage, "heading_usage", "levels", default={})
        rows = [
            ("Title", _safe_get(onpage, "title", "ok"),
             f'{_safe_get(onpage, "title", "value", default="")} ({_safe_get(onpage, "title", "length", default=0)} chars)'),
            ("Meta description", _safe_get(onpage, "meta_description", "ok"),
             f'{_safe_get(onpage, "meta_description", "length", default=0)} chars'),
            ("H1 present", _safe_get(onpage, "heading_usage", "h1_present"),
             ", ".join(f"{k}: {v}" for k, v in headings.items())),
            ("Content amount", not _safe_get(onpage, "content_amount", "thin", default=True),
             f'{_safe_get(onpage, "content_amount", "word_count", default=0)} words'),
            ("Image alt attributes", not _safe_get(onpage, "alt_attributes", "missing", default=0),
             f'{_safe_get(onpage, "alt_attributes", "missing", default=0)} of '
             f'{_safe_get(onpage, "alt_attributes", "total", default=0)} missing'),
            ("Language", _safe_get(onpage, "lang", "present"), _safe_get(onpage, "lang", "value", default="")),
            ("Canonical", _safe_get(onpage, "canonical", "present"), _safe_get(onpage, "canonical", "value", default="")),
            ("Hreflang", _safe_get(onpage, "hreflang", "present"),
             f'{_safe_get(onpage, "hreflang", "count", default=0)} alternates'),
            ("Indexable", not _safe_get(onpage, "noindex", "blocked"), ""),
        ]
        return self._section(theme, "On-Page SEO", self._rows_table(rows))

    def _build_keywords_html(self, theme: dict, consistency: dict) -> str:
        keywords = consistency.get("keywords") or []
        phrases = consistency.get("phrases") or []
        if not keywords and not phrases:
            return ""
        parts = ['<table>', '<tr><th>Term</th><th>Title</th><th>Meta</th><th>Headings</th><th>Frequency</th></tr>']
        for entry in keywords + phrases:
            term = entry.get("keyword") or entry.get("phrase") or ""
            parts.append(
                '<tr><td>' + escape(term) + '</td><td>' + self._check(entry.get("in_title"))
                + '</td><td>' + self._check(entry.get("in_meta")) + '</td><td>'
                + self._check(entry.get("in_headings")) + '</td><td>'
                + escape(str(entry.get("frequency", 0))) + '</td></tr>'
            )
        parts.append('</table>')
        return self._section(theme, "Keyword Consistency", "\n".join(parts))

    def _build_performance_html(self, theme: dict, perf: dict) -> str:
        if not perf:
            return ""
        counts = perf.get("resource_counts") or {}
        rows = [
            ("Download size", (perf.get("download_size_mb") or 0) <= 2, f'{perf.get("download_size_mb", 0)} MB'),
            ("Compression (gzip/brotli)", _safe_get(perf, "compression", "brotli_or_gzip"),
             f'{_safe_get(perf, "compression", "compressed", default=0)}/'
             f'{_safe_get(perf, "compression", "sampled", default=0)} sampled'),
            ("HTTP/2", _safe_get(perf, "http2", "enabled"),
             f'{_safe_get(perf, "http2", "count", default=0)}/{_safe_get(perf, "http2", "sampled", default=0)} sampled'),
            ("Resources", True, ", ".join(f"{k}: {v}" for k, v in counts.items())),
        ]
        for strategy in ("mobile", "desktop"):
            psi = _safe_get(perf, "page_speed_insights", strategy, default={})
            score = psi.get("score")
            if score is None:
                detail = "not available"
            else:
                detail = f'score {score}, LCP {psi.get("lcp")}s, FCP {psi.get("fcp")}s, CLS {psi.get("cls")}'
            rows.append((f"PageSpeed ({strategy})", score is not None and score >= 90, detail))
        return self._section(theme, "Performance", self._rows_table(rows))

    def _build_social_html(self, theme: dict, social: dict) -> str:
        if not social:
            return ""
        rows = [
            (network.title(), href, href or "not found")
            for network, href in (social.get("links") or {}).items()
        ]
        rows.append(("Open Graph", _safe_get(social, "open_graph", "present"),
                     _safe_get(social, "open_graph", "og", "title", default="")))
        rows.append(("Twitter Card", _safe_get(social, "twitter_cards", "present"),
                     _safe_get(social, "twitter_cards", "twitter", "card", default="")))
        rows.append(("Facebook Pixel", _safe_get(social, "facebook_pixel", "present"), ""))
        return self._section(theme, "Social", self._rows_table(rows))

    def _build_tech_html(self, theme: dict, tech: dict) -> str:
        if not tech:
            return ""
        rows = [
            ("SSL", _safe_get(tech, "ssl", "enabled"), ""),
            ("HTTPS redirect", _safe_get(tech, "https_redirect", "ok"), ""),
            ("robots.txt", _safe_get(tech, "robots", "present"),
             "optimized" if _safe_get(tech, "robots", "optimized") else _safe_get(tech, "robots", "url", default="")),
            ("XML sitemap", _safe_get(tech, "sitemap", "present"),
             f'{_safe_get(tech, "sitemap", "url_count", default=0)} URLs'),
            ("Schema.org", _safe_get(tech, "schema_org", "present"),
             "optimized" if _safe_get(tech, "schema_org", "optimized") else ""),
            ("Analytics", _safe_get(tech, "analytics", "present"), ""),
            ("Indexable", not _safe_get(tech, "noindex", "present"), ""),
            ("Viewport meta", _safe_get(tech, "viewport", "present"), ""),
            ("Favicon", _safe_get(tech, "favicon", "present"), ""),
            ("No iframes", not _safe_get(tech, "iframes", "used"), ""),
        ]
        return self._section(theme, "Technical", self._rows_table(rows))

    def _build_broken_links_html(self, theme: dict, broken: dict) -> str:
        if not broken:
            return ""
        summary = (
            '<p>' + escape(str(broken.get("broken_count", 0))) + ' broken of '
            + escape(str(broken.get("total_checked", 0))) + ' checked</p>'
        )
        examples = broken.get("broken_examples") or []
        if not examples:
            return self._section(theme, "Broken Links", summary)
        parts = [summary, '<table>', '<tr><th>URL</th><th>Anchor text</th><th>Status</th></tr>']
        for link in examples:
            status = link.get("status", 0)
            color = self.BAD if status in (0, 404) else theme["muted"]
            parts.append(
                '<tr><td>' + escape(str(link.get("url", ""))) + '</td><td>'
                + escape(str(link.get("anchor_text", ""))) + '</td><td style="color:' + color + ';">'
                + escape(str(status)) + '</td></tr>'
            )
        parts.append('</table>')
        return self._section(theme, "Broken Links", "\n".join(parts))

    def _build_local_html(self, theme: dict, local: dict) -> str:
        if not local:
            return ""
        reviews = _safe_get(local, "reviews", "count")
        rows = [
            ("Phone shown", _safe_get(local, "address_phone_shown", "phone"), ""),
            ("Address shown", _safe_get(local, "address_phone_shown", "address"), ""),
            ("LocalBusiness schema", _safe_get(local, "local_business_schema", "present"), ""),
            ("Google Business Profile", _safe_get(local, "google_business_profile", "detected"), ""),
            ("Reviews", reviews is not None, "" if reviews is None else reviews),
        ]
        return self._section(theme, "Local SEO", self._rows_table(rows))

    def _build_screenshots_html(self, theme: dict, shots: dict) -> str:
        images = [
            '<img src="' + escape(shots[key], quote=True) + '" alt="' + key + ' screenshot">'
            for key in ("desktop", "mobile")
            if shots.get(key)
        ]
        if not images:
            return ""
        return self._section(theme, "Screenshots", '<div class="shots">' + "\n".join(images) + '</div>')

    def _build_footer_html(self, meta: dict) -> str:
        elapsed = meta.get("elapsed_seconds")
        parts = ['<div class="footer">']
        parts.append('<p>Report generated by <strong>' + escape(self._brand_name) + '</strong></p>')
        if elapsed is not None:
            parts.append('<p>Audit took ' + escape(str(elapsed)) + 's</p>')
        parts.append('</div>')
        return "\n".join(parts)
