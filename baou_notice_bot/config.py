"""Configuration handling for the notice monitor."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


DEFAULT_NOTICE_URL = "http://assignment.baou.edu.in/Dp_assignment/check_home.aspx"
DEFAULT_BASE_URL = "https://baou.edu.in"
DEFAULT_CHECK_INTERVAL_SECONDS = 1800
DEFAULT_STORAGE_FILE = "previous-notifications.json"
DEFAULT_EMAIL_FROM = "BAOU Notifications <onboarding@resend.dev>"
DEFAULT_EMAIL_REPLY_TO = "no-reply@yourdomain.com"
DEFAULT_REQUEST_TIMEOUT = 10


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    resend_api_key: str
    email_to: str
    email_from: str = DEFAULT_EMAIL_FROM
    email_reply_to: str = DEFAULT_EMAIL_REPLY_TO
    notice_url: str = DEFAULT_NOTICE_URL
    base_url: str = DEFAULT_BASE_URL
    check_interval_seconds: int = DEFAULT_CHECK_INTERVAL_SECONDS
    storage_file: str = DEFAULT_STORAGE_FILE
    history_max_entries: Optional[int] = None
    request_timeout: int = DEFAULT_REQUEST_TIMEOUT


def _require(name: str) -> str:
    value = os.getenv(name, "").strip()
    if not value:
        raise ValueError(f"{name} is required")
    return value


def _positive_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value <= 0:
        raise ValueError(f"{name} must be positive")
    return value


def get_settings() -> Settings:
    """Load settings from environment variables, raising on missing credentials."""
    load_dotenv()

    return Settings(
        resend_api_key=_require("RESEND_API_KEY"),
        email_to=_require("EMAIL_TO"),
        email_from=os.getenv("EMAIL_FROM", DEFAULT_EMAIL_FROM).strip(),
        email_reply_to=os.getenv("EMAIL_REPLY_TO", DEFAULT_EMAIL_REPLY_TO).strip(),
        notice_url=os.getenv("NOTICE_URL", DEFAULT_NOTICE_URL).strip(),
        base_url=os.getenv("NOTICE_BASE_URL", DEFAULT_BASE_URL).strip(),
        check_interval_seconds=_positive_int(
            "CHECK_INTERVAL_SECONDS", DEFAULT_CHECK_INTERVAL_SECONDS
        ),
        storage_file=os.getenv("STORAGE_FILE", DEFAULT_STORAGE_FILE).strip(),
        history_max_entries=_positive_int("HISTORY_MAX_ENTRIES", None),
        request_timeout=_positive_int("REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
    )
