"""Fetch and parse notices from the BAOU notice page."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from .classifier import classify
from .fingerprint import fingerprint
from .models import Notice

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://baou.edu.in"
USER_AGENT = "BAOU-Notification-Monitor/1.0"
NEW_MARKER_SRC = "baou_new.gif"


def fetch_html(url: str, timeout: float = 10) -> str:
    """Retrieve the HTML contents of the given URL."""
    headers = {"User-Agent": USER_AGENT}
    response = requests.get(url, headers=headers, timeout=timeout)
    response.raise_for_status()
    return response.text


def _has_new_marker(item) -> bool:
    for img in item.find_all("img", class_="blk"):
        if NEW_MARKER_SRC in (img.get("src") or ""):
            return True
    return False


def _extract_link(item, base_url: str) -> Optional[str]:
    anchor = item.find("a")
    if anchor is None:
        return None
    href = (anchor.get("href") or "").strip()
    if not href:
        return None
    return urljoin(base_url, href)


def _extract_text(item) -> str:
    # work on a copy so the marker lookup still sees the images
    clone = BeautifulSoup(str(item), "html.parser")
    for img in clone.find_all("img"):
        img.decompose()
    return " ".join(clone.get_text().split())


def parse_notices(
    html: str,
    *,
    discovered_at: Optional[datetime] = None,
    base_url: str = DEFAULT_BASE_URL,
) -> List[Notice]:
    """Parse ``.dpul li`` entries into classified, fingerprinted notices.

    Every notice of one batch shares ``discovered_at`` as its timestamp.
    """
    soup = BeautifulSoup(html, "html.parser")
    items = soup.select(".dpul li")
    if not items:
        LOGGER.warning("No '.dpul li' entries found in HTML.")
        return []

    timestamp = discovered_at or datetime.now(timezone.utc)
    notices: List[Notice] = []
    for item in items:
        text = _extract_text(item)
        if not text:
            LOGGER.debug("Skipping list item without text: %s", item)
            continue

        is_new = _has_new_marker(item)
        result = classify(text, is_new=is_new)
        notices.append(
            Notice(
                id=fingerprint(text, timestamp),
                text=text,
                link=_extract_link(item, base_url),
                is_new=is_new,
                is_urgent=result.is_urgent,
                category=result.category,
                timestamp=timestamp,
            )
        )

    return notices


def get_latest_notices(
    list_url: str,
    *,
    base_url: str = DEFAULT_BASE_URL,
    timeout: float = 10,
    discovered_at: Optional[datetime] = None,
) -> List[Notice]:
    """Fetch and parse the notice page."""
    html = fetch_html(list_url, timeout=timeout)
    return parse_notices(html, discovered_at=discovered_at, base_url=base_url)
