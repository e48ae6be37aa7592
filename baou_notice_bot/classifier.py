"""Keyword based classification of notice text."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Tuple

from .models import Category, Notice

URGENT_KEYWORDS: Tuple[str, ...] = (
    "urgent",
    "immediate",
    "important",
    "deadline",
    "today",
    "tomorrow",
    "asap",
    "emergency",
    "critical",
    "required",
    "mandatory",
    "due",
    "અગત્યની",
    "તાકીદની",
)

# Checked in insertion order, first match wins.
CATEGORY_KEYWORDS: Dict[Category, Tuple[str, ...]] = {
    Category.EXAM: ("exam", "examination", "test", "assessment", "પરીક્ષા"),
    Category.ASSIGNMENT: ("assignment", "homework", "submission", "સ્વાધ્યાય"),
    Category.SCHEDULE: ("schedule", "timetable", "dates", "સમયપત્રક"),
    Category.ANNOUNCEMENT: ("announcement", "notice", "circular", "સૂચના"),
    Category.DEADLINE: ("last date", "deadline", "due date", "અંતિમ તારીખ"),
}

GUJARATI_PATTERN = re.compile("[\u0A80-\u0AFF]")

MAX_PRIORITY = 5


@dataclass(frozen=True)
class Classification:
    is_urgent: bool
    category: Category
    priority: int


def _contains_any(text: str, keywords) -> bool:
    lowered = text.lower()
    return any(keyword.lower() in lowered for keyword in keywords)


def detect_urgency(text: str) -> bool:
    """True if any urgency keyword appears anywhere in ``text``.

    Plain substring matching: "due" also matches inside "residue".
    """
    return _contains_any(text, URGENT_KEYWORDS)


def categorize(text: str) -> Category:
    for category, keywords in CATEGORY_KEYWORDS.items():
        if _contains_any(text, keywords):
            return category
    return Category.OTHER


def detect_language(text: str) -> str:
    """Return ``"gujarati"`` if the text has any Gujarati script, else ``"english"``."""
    return "gujarati" if GUJARATI_PATTERN.search(text) else "english"


def score_priority(text: str, *, is_urgent: bool, is_new: bool, category: Category) -> int:
    score = 0
    if is_urgent:
        score += 2
    if is_new:
        score += 1
    if category is Category.DEADLINE:
        score += 1
    if "important" in text.lower():
        score += 1
    return min(MAX_PRIORITY, score)


def calculate_priority(notice: Notice) -> int:
    """Priority in [0, 5] for an already classified notice."""
    return score_priority(
        notice.text,
        is_urgent=notice.is_urgent,
        is_new=notice.is_new,
        category=notice.category,
    )


def classify(text: str, is_new: bool = False) -> Classification:
    is_urgent = detect_urgency(text)
    category = categorize(text)
    return Classification(
        is_urgent=is_urgent,
        category=category,
        priority=score_priority(text, is_urgent=is_urgent, is_new=is_new, category=category),
    )
