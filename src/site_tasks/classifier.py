"""Keyword-based project type and scale classification."""

from __future__ import annotations

import logging
import re

from .models import ProjectAnalysis

logger = logging.getLogger(__name__)

COMMERCIAL_KEYWORDS = ("commercial", "office", "retail", "warehouse")
RENOVATION_KEYWORDS = ("renovation", "remodel", "upgrade", "retrofit")
SMALL_KEYWORDS = ("small", "minor")
LARGE_KEYWORDS = ("large", "major", "complex")

SHORT_DESCRIPTION_CHARS = 100
LONG_DESCRIPTION_CHARS = 300

WORD_SPLIT_RE = re.compile(r"\W+")


def _contains_any(text: str, needles: tuple[str, ...]) -> bool:
    return any(needle in text for needle in needles)


def extract_keywords(text: str) -> list[str]:
    return [word for word in WORD_SPLIT_RE.split(text.lower()) if len(word) > 2]


def classify_project_type(text: str) -> str:
    # First match wins: a text naming both an office and a remodel is commercial.
    lowered = text.lower()
    if _contains_any(lowered, COMMERCIAL_KEYWORDS):
        return "commercial"
    if _contains_any(lowered, RENOVATION_KEYWORDS):
        return "renovation"
    return "residential"


def classify_scale(text: str, description: str) -> str:
    # The small check runs first and wins when the large check would also match.
    lowered = text.lower()
    if _contains_any(lowered, SMALL_KEYWORDS) or len(description) < SHORT_DESCRIPTION_CHARS:
        return "small"
    if _contains_any(lowered, LARGE_KEYWORDS) or len(description) > LONG_DESCRIPTION_CHARS:
        return "large"
    return "medium"


def analyze_project(title: str, description: str) -> ProjectAnalysis:
    """Classify a project by type and scale from its free-text title and description.

    Matching is plain substring search over the lower-cased text, so "officer"
    counts as "office". Never raises; unknown text classifies as a medium or small
    residential project.
    """
    text = f"{title} {description}".lower()
    analysis = ProjectAnalysis(
        project_type=classify_project_type(text),
        scale=classify_scale(text, description),
        keywords=tuple(extract_keywords(text)),
    )
    logger.debug(
        "Classified %r as %s/%s", title, analysis.project_type, analysis.scale
    )
    return analysis
