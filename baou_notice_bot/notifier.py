# baou_notice_bot/notifier.py

from __future__ import annotations

import html
import logging
import time
from datetime import datetime, timezone
from typing import Optional, Sequence

import requests

from .classifier import calculate_priority, detect_language
from .config import Settings
from .models import Notice

LOGGER = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
MAX_RATE_LIMIT_RETRIES = 3

COLORS = {
    "primary": "#1a73e8",
    "secondary": "#f8f9fa",
    "accent": "#fbbc04",
    "text": "#202124",
    "light_text": "#5f6368",
    "danger": "#ea4335",
    "success": "#34a853",
}
FONT_STACK = (
    "-apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Oxygen, Ubuntu, "
    "Cantarell, sans-serif"
)


class NotificationError(Exception):
    """Raised when the alert email could not be delivered."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _post_with_rate_limit(api_key: str, payload: dict, timeout: float = 10) -> dict:
    """POST to the Resend API, waiting out 429 responses a few times."""
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }
    attempts = 0
    while True:
        resp = requests.post(RESEND_API_URL, json=payload, headers=headers, timeout=timeout)

        if resp.status_code == 429 and attempts < MAX_RATE_LIMIT_RETRIES:
            attempts += 1
            try:
                retry_after = float(resp.headers.get("retry-after", 1.0))
            except (TypeError, ValueError):
                retry_after = 1.0
            LOGGER.warning("Resend rate limit, waiting %.1fs", retry_after)
            time.sleep(retry_after)
            continue

        if resp.status_code >= 400:
            raise NotificationError(
                f"Resend API returned {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError:
            # delivery already accepted, only the id is lost
            LOGGER.warning("Resend accepted the email but returned an unreadable body")
            return {}


def format_date(value: datetime) -> str:
    """Render an instant in the server's local time zone."""
    return value.astimezone().strftime("%A, %B %d, %Y, %I:%M %p")


def build_subject(notices: Sequence[Notice]) -> str:
    count = len(notices)
    plural = "" if count == 1 else "s"
    urgent = " (URGENT)" if any(n.is_urgent for n in notices) else ""
    return f"BAOU: {count} New Notification{plural}{urgent}"


def _tag(label: str, background: str) -> str:
    return (
        f'<span style="display:inline-block;padding:4px 8px;border-radius:12px;'
        f'font-size:0.8em;margin-right:8px;background:{background};color:white;">'
        f"{label}</span>"
    )


def _build_card(notice: Notice) -> str:
    tags = []
    if notice.is_new:
        tags.append(_tag("New", COLORS["success"]))
    if notice.is_urgent:
        tags.append(_tag("Urgent", COLORS["danger"]))
    tags.append(_tag(notice.category.value, COLORS["accent"]))
    if detect_language(notice.text) == "gujarati":
        tags.append(_tag("ગુજરાતી", "#4A90E2"))

    text = html.escape(notice.text)
    if notice.link:
        body = (
            f'<a href="{html.escape(notice.link, quote=True)}" '
            f'style="color:{COLORS["primary"]};text-decoration:underline;">{text}</a>'
        )
    else:
        body = text

    border = COLORS["danger"] if notice.is_urgent else COLORS["primary"]
    return (
        f'<div style="background:{COLORS["secondary"]};border-radius:8px;padding:16px;'
        f'margin-bottom:16px;border-left:4px solid {border};">'
        f'<div style="margin-bottom:8px;">{"".join(tags)}</div>'
        f'<div style="font-size:1.1em;">{body}</div>'
        f'<div style="color:{COLORS["light_text"]};font-size:0.9em;margin-top:8px;">'
        f"Priority: {calculate_priority(notice)}/5 &middot; "
        f"Posted: {format_date(notice.timestamp)}</div>"
        "</div>"
    )


def build_email_html(notices: Sequence[Notice], checked_at: Optional[datetime] = None) -> str:
    """Render the alert email body for a batch of new notices."""
    checked = format_date(checked_at or datetime.now(timezone.utc))
    cards = "".join(_build_card(notice) for notice in notices)
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        "<title>BAOU Notifications</title></head>"
        f'<body style="font-family:{FONT_STACK};color:{COLORS["text"]};">'
        '<div style="max-width:600px;margin:0 auto;">'
        f'<div style="background:{COLORS["primary"]};color:white;padding:24px;text-align:center;">'
        f'<h1 style="margin:0;">BAOU Notifications</h1><p>{checked}</p></div>'
        f'<div style="padding:24px;"><h2>New Notifications</h2>{cards}</div>'
        f'<div style="text-align:center;padding:24px;color:{COLORS["light_text"]};">'
        f"<p>BAOU Notification Monitoring System</p><p>Last checked: {checked}</p></div>"
        "</div></body></html>"
    )


def send_email_notification(settings: Settings, notices: Sequence[Notice]) -> str:
    """Send all new notices in one email and return the provider message id."""
    payload = {
        "from": settings.email_from,
        "to": [settings.email_to],
        "reply_to": settings.email_reply_to,
        "subject": build_subject(notices),
        "html": build_email_html(notices),
    }

    try:
        data = _post_with_rate_limit(
            settings.resend_api_key, payload, timeout=settings.request_timeout
        )
    except requests.RequestException as exc:
        raise NotificationError(f"Failed to reach Resend API: {exc}") from exc

    message_id = str(data.get("id", "")) if isinstance(data, dict) else ""
    LOGGER.info("Email sent: %s (%d notices)", message_id or "<no id>", len(notices))
    return message_id
