"""Grades and the finished audit report."""

import copy
from dataclasses import dataclass, field
from typing import Any, Optional

_LETTER_BREAKPOINTS = [
    (97, "A+"),
    (90, "A"),
    (80, "A-"),
    (70, "B"),
    (60, "C"),
    (50, "D"),
]

CATEGORY_KEYS = ("onpage", "performance", "social", "techlocal")


def letter_for(score: float) -> str:
    """Map a 0-100 score to its letter grade."""
    for threshold, letter in _LETTER_BREAKPOINTS:
        if score >= threshold:
            return letter
    return "F"


def clamp_score(value: float) -> int:
    """Clamp *value* into the integer range [0, 100]."""
    return int(max(0, min(100, value)))


@dataclass(frozen=True)
class Grade:
    score: int
    letter: str

    @classmethod
    def from_score(cls, raw: float) -> "Grade":
        score = clamp_score(raw)
        return cls(score=score, letter=letter_for(score))

    def to_dict(self) -> dict[str, Any]:
        return {"score": self.score, "letter": self.letter}


@dataclass(frozen=True)
class AuditReport:
    """Everything one audit produced.

    Built once by the orchestrator and never modified afterwards;
    :meth:`to_dict` hands out a deep copy so renderers and API callers
    cannot reach back into it.
    """

    resolved_url: str
    fetched_at: str
    sections: dict[str, dict[str, Any]]
    grades: dict[str, Grade]
    timing: dict[str, float] = field(default_factory=dict)
    screenshot_desktop: Optional[str] = None
    screenshot_mobile: Optional[str] = None
    requested_url: str = ""
    elapsed_seconds: float = 0.0

    @property
    def overall(self) -> Grade:
        return self.grades["overall"]

    @property
    def radar(self) -> dict[str, int]:
        return {key: self.grades[key].score for key in CATEGORY_KEYS}

    def to_dict(self) -> dict[str, Any]:
        return {
            "meta": {
                "resolved_url": self.resolved_url,
                "requested_url": self.requested_url,
                "fetched_at": self.fetched_at,
                "elapsed_seconds": self.elapsed_seconds,
                "timing": dict(self.timing),
                "screenshots": {
                    "desktop": self.screenshot_desktop,
                    "mobile": self.screenshot_mobile,
                },
            },
            "sections": copy.deepcopy(self.sections),
            "grades": {key: grade.to_dict() for key, grade in self.grades.items()},
            "summary": {
                "letter": self.overall.letter,
                "radar": self.radar,
            },
        }
