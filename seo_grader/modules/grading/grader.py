"""Score the analyzer sections into category grades and an overall grade.

Every category starts at 100 and loses a fixed number of points per
missing or failing signal.  Scores are clamped to [0, 100] and the overall
score is the plain mean of the four categories.  Nothing in here performs
I/O or looks at the clock: the same sections always grade the same.
"""

from typing import Any, Mapping

from seo_grader.models.report import CATEGORY_KEYS, Grade
from seo_grader.utils.helpers import round_half_up

# ---------------------------------------------------------------------------
# Penalty tables
# ---------------------------------------------------------------------------

ONPAGE_PENALTIES: dict[str, int] = {
    "title": 14,
    "meta_description": 14,
    "single_h1": 16,
    "h2_and_h3": 14,
    "thin_content": 20,
    "missing_alt": 15,
    "lang": 6,
}

PERFORMANCE_PENALTIES: dict[str, int] = {
    "size_over_5mb": 30,
    "size_over_2mb": 15,
    "compression": 15,
    "http2": 20,
}

# (minimum average insights score, penalty), checked top-down.
PSI_TIERS = [
    (90, 0),
    (80, 10),
    (50, 24),
    (0, 35),
]

SOCIAL_PENALTIES: dict[str, int] = {
    "facebook": 15,
    "instagram": 15,
    "twitter": 15,
    "linkedin": 15,
    "youtube": 15,
    "open_graph": 15,
    "twitter_cards": 10,
}

TECH_PENALTIES: dict[str, int] = {
    "ssl": 15,
    "canonical": 10,
    "https_redirect": 8,
    "schema_present_not_optimized": 5,
    "schema_missing": 15,
    "robots_missing": 8,
    "robots_not_optimized": 4,
    "sitemap_missing": 12,
    "sitemap_not_optimized": 6,
    "noindex_both": 8,
    "noindex_one": 6,
    "viewport": 5,
    "favicon": 5,
}

# (broken link count above, penalty), checked top-down.
BROKEN_LINK_TIERS = [
    (8, 14),
    (5, 10),
    (0, 5),
]


def _section(sections: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = sections.get(name) if sections else None
    return value if isinstance(value, Mapping) else {}


def _flag(record: Mapping[str, Any], *path: str) -> Any:
    """Walk nested dicts, returning ``None`` as soon as a level is missing."""
    current: Any = record
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

def score_onpage(onpage: Mapping[str, Any]) -> int:
    score = 100
    if not _flag(onpage, "title", "ok"):
        score -= ONPAGE_PENALTIES["title"]
    if not _flag(onpage, "meta_description", "ok"):
        score -= ONPAGE_PENALTIES["meta_description"]

    levels = _flag(onpage, "heading_usage", "levels") or {}
    if levels.get("h1", 0) != 1:
        score -= ONPAGE_PENALTIES["single_h1"]
    if levels.get("h2", 0) <= 0 or levels.get("h3", 0) <= 0:
        score -= ONPAGE_PENALTIES["h2_and_h3"]

    # A section with no word count at all counts as thin.
    thin = _flag(onpage, "content_amount", "thin")
    if thin or thin is None:
        score -= ONPAGE_PENALTIES["thin_content"]
    if (_flag(onpage, "alt_attributes", "missing") or 0) > 0:
        score -= ONPAGE_PENALTIES["missing_alt"]
    if not _flag(onpage, "lang", "present"):
        score -= ONPAGE_PENALTIES["lang"]
    return score


def average_insights_score(performance: Mapping[str, Any]) -> float | None:
    """Mean of the non-null mobile/desktop insights scores, or ``None``."""
    scores = [
        _flag(performance, "page_speed_insights", strategy, "score")
        for strategy in ("mobile", "desktop")
    ]
    present = [s for s in scores if s is not None]
    if not present:
        return None
    return sum(present) / len(present)


def score_performance(performance: Mapping[str, Any]) -> int:
    score = 100
    size_mb = performance.get("download_size_mb") or 0
    if size_mb > 5:
        score -= PERFORMANCE_PENALTIES["size_over_5mb"]
    elif size_mb > 2:
        score -= PERFORMANCE_PENALTIES["size_over_2mb"]

    if not _flag(performance, "compression", "brotli_or_gzip"):
        score -= PERFORMANCE_PENALTIES["compression"]
    if not _flag(performance, "http2", "enabled"):
        score -= PERFORMANCE_PENALTIES["http2"]

    avg = average_insights_score(performance)
    if avg is not None:
        for threshold, penalty in PSI_TIERS:
            if avg >= threshold:
                score -= penalty
                break
    return score


def score_social(social: Mapping[str, Any]) -> int:
    score = 100
    links = social.get("links") or {}
    for network in ("facebook", "instagram", "twitter", "linkedin", "youtube"):
        if not links.get(network):
            score -= SOCIAL_PENALTIES[network]
    if not _flag(social, "open_graph", "present"):
        score -= SOCIAL_PENALTIES["open_graph"]
    if not _flag(social, "twitter_cards", "present"):
        score -= SOCIAL_PENALTIES["twitter_cards"]
    return score


def score_techlocal(
    tech: Mapping[str, Any],
    local: Mapping[str, Any],
    onpage: Mapping[str, Any],
) -> int:
    """Technical score; the local section is carried for the report only."""
    score = 100
    if not _flag(tech, "ssl", "enabled"):
        score -= TECH_PENALTIES["ssl"]
    if not _flag(onpage, "canonical", "present"):
        score -= TECH_PENALTIES["canonical"]
    if not _flag(tech, "https_redirect", "ok"):
        score -= TECH_PENALTIES["https_redirect"]

    broken = _flag(tech, "broken_links", "broken_count") or 0
    if broken > 0:
        for above, penalty in BROKEN_LINK_TIERS:
            if broken > above:
                score -= penalty
                break

    if _flag(tech, "schema_org", "optimized"):
        pass
    elif _flag(tech, "schema_org", "present"):
        score -= TECH_PENALTIES["schema_present_not_optimized"]
    else:
        score -= TECH_PENALTIES["schema_missing"]

    if not _flag(tech, "robots", "present"):
        score -= TECH_PENALTIES["robots_missing"]
    elif not _flag(tech, "robots", "optimized"):
        score -= TECH_PENALTIES["robots_not_optimized"]

    if not _flag(tech, "sitemap", "present"):
        score -= TECH_PENALTIES["sitemap_missing"]
    elif not _flag(tech, "sitemap", "optimized"):
        score -= TECH_PENALTIES["sitemap_not_optimized"]

    if _flag(tech, "noindex", "present"):
        if _flag(tech, "noindex", "header") and _flag(tech, "noindex", "meta"):
            score -= TECH_PENALTIES["noindex_both"]
        else:
            score -= TECH_PENALTIES["noindex_one"]

    if not _flag(tech, "viewport", "present"):
        score -= TECH_PENALTIES["viewport"]
    if not _flag(tech, "favicon", "present"):
        score -= TECH_PENALTIES["favicon"]
    return score


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def grade_all(sections: Mapping[str, Any]) -> dict[str, Grade]:
    """Grade every category and the overall result.

    Returns:
        Dict with ``onpage``, ``performance``, ``social``, ``techlocal`` and
        ``overall`` grades.
    """
    onpage = _section(sections, "onpage")
    grades: dict[str, Grade] = {
        "onpage": Grade.from_score(score_onpage(onpage)),
        "performance": Grade.from_score(score_performance(_section(sections, "performance"))),
        "social": Grade.from_score(score_social(_section(sections, "social"))),
        "techlocal": Grade.from_score(score_techlocal(
            _section(sections, "tech"),
            _section(sections, "local"),
            onpage,
        )),
    }
    mean = sum(grades[key].score for key in CATEGORY_KEYS) / len(CATEGORY_KEYS)
    grades["overall"] = Grade.from_score(round_half_up(mean))
    return grades
