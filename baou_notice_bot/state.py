# state.py
"""Alert history persistence and the new-notice diff."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .models import Notice

LOGGER = logging.getLogger(__name__)

DEFAULT_STORAGE_FILE = "previous-notifications.json"
BACKUP_SUFFIX = ".backup"
RECENCY_WINDOW = timedelta(hours=24)


def backup_path_for(path: str | Path) -> Path:
    state_path = Path(path)
    return state_path.with_name(state_path.name + BACKUP_SUFFIX)


def load_history(path: str | Path = DEFAULT_STORAGE_FILE) -> List[Notice]:
    """Read previously alerted notices, newest first.

    A missing or unreadable file yields an empty history.
    """
    state_path = Path(path)
    try:
        raw = state_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        LOGGER.info("%s not found -> starting with empty history", state_path)
        return []
    except (OSError, UnicodeDecodeError) as exc:
        LOGGER.warning("Cannot read %s -> starting with empty history: %s", state_path, exc)
        return []

    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        LOGGER.warning("%s is not valid JSON -> starting with empty history", state_path)
        return []

    if not isinstance(data, list):
        LOGGER.warning("%s: expected a JSON array, got %s", state_path, type(data).__name__)
        return []

    history: List[Notice] = []
    for index, record in enumerate(data):
        try:
            history.append(Notice.from_dict(record))
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            LOGGER.warning("Skipping malformed history record #%d: %s", index, exc)
    return history


def _write_json(path: Path, payload: list) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(suffix=".json", prefix=".notices_", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=False, indent=2)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, path)
    except BaseException:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise


def merge_history(
    new_notices: Sequence[Notice],
    history: Sequence[Notice],
    *,
    max_size: Optional[int] = None,
) -> List[Notice]:
    """Prepend new notices to history, optionally keeping only the newest ``max_size``."""
    merged = list(new_notices) + list(history)
    if max_size is not None:
        merged = merged[:max_size]
    return merged


def save_history(
    notices: Iterable[Notice],
    path: str | Path = DEFAULT_STORAGE_FILE,
    *,
    max_size: Optional[int] = None,
) -> None:
    """Persist the history list along with a ``.backup`` sibling copy.

    The backup is written first and its failure is only logged. A failure of
    the main write raises ``OSError``.
    """
    state_path = Path(path)
    items = list(notices)
    if max_size is not None:
        items = items[:max_size]
    payload = [notice.to_dict() for notice in items]

    backup = backup_path_for(state_path)
    try:
        _write_json(backup, payload)
    except OSError as exc:
        LOGGER.error("Failed to write backup %s: %s", backup, exc)

    _write_json(state_path, payload)
    LOGGER.info("Saved %s, %d notices total", state_path, len(payload))


def ensure_history_file(path: str | Path = DEFAULT_STORAGE_FILE) -> None:
    """Create an empty history document if none exists yet."""
    state_path = Path(path)
    if state_path.exists():
        return
    save_history([], state_path)


class HistoryStore:
    """File-backed history bound to one path and an optional size bound."""

    def __init__(self, path: str | Path = DEFAULT_STORAGE_FILE, max_size: Optional[int] = None):
        self.path = Path(path)
        self.max_size = max_size

    def load(self) -> List[Notice]:
        return load_history(self.path)

    def save(self, notices: Iterable[Notice]) -> None:
        save_history(notices, self.path, max_size=self.max_size)

    def ensure_exists(self) -> None:
        ensure_history_file(self.path)


def _is_already_alerted(
    notice: Notice, history: Sequence[Notice], cutoff: datetime
) -> bool:
    for prev in history:
        if prev.id == notice.id:
            return True
        if prev.text == notice.text and prev.timestamp > cutoff:
            return True
    return False


def diff_new_notices(
    notices: Sequence[Notice],
    history: Sequence[Notice],
    *,
    now: Optional[datetime] = None,
    window: timedelta = RECENCY_WINDOW,
) -> List[Notice]:
    """Pick the notices that have not been alerted yet.

    A notice is already alerted if a history entry has the same id, or the same
    text with a timestamp inside the recency window ending at ``now``. Text
    that reappears after the window counts as new again.

    Args:
        notices: scraped notices, in page order
        history: previously alerted notices
        now: reference instant, defaults to the current UTC time
        window: recency window, 24 hours by default

    Returns:
        New notices, in the order they appeared on the page
    """
    reference = now or datetime.now(timezone.utc)
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=timezone.utc)
    cutoff = reference - window

    new_list: List[Notice] = []
    for n in notices:
        if _is_already_alerted(n, history, cutoff):
            LOGGER.debug("Notice %s: already alerted -> skip", n.id)
            continue

        LOGGER.debug(
            "Notice %s: new (text: %s, category: %s)",
            n.id,
            n.text[:20] if len(n.text) > 20 else n.text,
            n.category.value,
        )
        new_list.append(n)

    LOGGER.info(
        "%d current notices, %d in history, %d new (cutoff=%s)",
        len(notices),
        len(history),
        len(new_list),
        cutoff.isoformat(),
    )

    return new_list
