"""Data models for the BAOU notice monitor."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class Category(str, Enum):
    """Closed set of notice categories, in classification priority order."""

    EXAM = "EXAM"
    ASSIGNMENT = "ASSIGNMENT"
    SCHEDULE = "SCHEDULE"
    ANNOUNCEMENT = "ANNOUNCEMENT"
    DEADLINE = "DEADLINE"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, value: str) -> "Category":
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.OTHER


def format_timestamp(value: datetime) -> str:
    """Render a datetime as ISO-8601 UTC with milliseconds and a ``Z`` suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    utc = value.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(raw: str) -> datetime:
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class Notice:
    """A single scraped announcement with its derived classification."""

    id: str
    text: str
    link: Optional[str]
    is_new: bool
    is_urgent: bool
    category: Category
    timestamp: datetime

    def __post_init__(self) -> None:
        if self.timestamp.tzinfo is None:
            object.__setattr__(self, "timestamp", self.timestamp.replace(tzinfo=timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "link": self.link,
            "isNew": self.is_new,
            "isUrgent": self.is_urgent,
            "timestamp": format_timestamp(self.timestamp),
            "category": self.category.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Notice":
        """Build a Notice from its stored JSON form.

        Raises KeyError, TypeError or ValueError on malformed records.
        """
        link = data.get("link")
        return cls(
            id=str(data["id"]),
            text=str(data["text"]),
            link=str(link) if link else None,
            is_new=bool(data.get("isNew", False)),
            is_urgent=bool(data.get("isUrgent", False)),
            category=Category.parse(data.get("category", Category.OTHER.value)),
            timestamp=parse_timestamp(data["timestamp"]),
        )
