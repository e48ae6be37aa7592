"""Entrypoint for the BAOU notice email monitor."""

from __future__ import annotations

import logging
import os
import sys
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional, Sequence

from apscheduler.events import EVENT_JOB_ERROR
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger
from requests.exceptions import RequestException

from .config import Settings, get_settings
from .crawler import get_latest_notices
from .models import Notice
from .notifier import NotificationError, send_email_notification
from .state import HistoryStore, diff_new_notices, merge_history

LOGGER = logging.getLogger(__name__)

Fetcher = Callable[[Settings, datetime], List[Notice]]
Mailer = Callable[[Settings, Sequence[Notice]], str]


class CycleStatus(str, Enum):
    NO_NEW = "no_new"
    SENT = "sent"
    FETCH_FAILED = "fetch_failed"
    DISPATCH_FAILED = "dispatch_failed"
    PERSIST_FAILED = "persist_failed"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass(frozen=True)
class CycleResult:
    """Outcome of one monitoring cycle."""

    status: CycleStatus
    new_notices: List[Notice] = field(default_factory=list)
    message_id: Optional[str] = None
    error: Optional[str] = None


def fetch_current_notices(settings: Settings, discovered_at: datetime) -> List[Notice]:
    return get_latest_notices(
        settings.notice_url,
        base_url=settings.base_url,
        timeout=settings.request_timeout,
        discovered_at=discovered_at,
    )


def run_cycle(
    settings: Settings,
    store: HistoryStore,
    *,
    fetcher: Fetcher = fetch_current_notices,
    mailer: Mailer = send_email_notification,
    now: Optional[datetime] = None,
) -> CycleResult:
    """Fetch, diff, dispatch and persist once.

    Expected failures end the cycle with a non-success status and leave the
    history untouched. Anything else propagates to the caller.
    """
    started = now or datetime.now(timezone.utc)
    LOGGER.info("Checking for new notifications at %s", started.isoformat())

    history = store.load()

    try:
        current = fetcher(settings, started)
    except RequestException as exc:
        LOGGER.error("Failed to fetch notices: %s", exc)
        return CycleResult(CycleStatus.FETCH_FAILED, error=str(exc))
    except Exception as exc:  # noqa: BLE001
        LOGGER.error("Failed to parse notices: %s", exc)
        return CycleResult(CycleStatus.FETCH_FAILED, error=str(exc))

    new_notices = diff_new_notices(current, history, now=started)
    if not new_notices:
        LOGGER.info("No new notifications found")
        return CycleResult(CycleStatus.NO_NEW)

    LOGGER.info("Found %d new notifications", len(new_notices))
    try:
        message_id = mailer(settings, new_notices)
    except NotificationError as exc:
        LOGGER.error("Failed to send email, will retry next cycle: %s", exc)
        return CycleResult(CycleStatus.DISPATCH_FAILED, new_notices, error=str(exc))

    try:
        store.save(merge_history(new_notices, history))
    except OSError as exc:
        LOGGER.error("Failed to save notification history: %s", exc)
        return CycleResult(
            CycleStatus.PERSIST_FAILED, new_notices, message_id=message_id, error=str(exc)
        )

    return CycleResult(CycleStatus.SENT, new_notices, message_id=message_id)


class Monitor:
    """Runs cycles one at a time; overlapping ticks are skipped."""

    def __init__(
        self,
        settings: Settings,
        store: Optional[HistoryStore] = None,
        *,
        fetcher: Fetcher = fetch_current_notices,
        mailer: Mailer = send_email_notification,
    ):
        self.settings = settings
        self.store = store or HistoryStore(
            settings.storage_file, max_size=settings.history_max_entries
        )
        self.fetcher = fetcher
        self.mailer = mailer
        self._lock = threading.Lock()

    def tick(self, now: Optional[datetime] = None) -> CycleResult:
        if not self._lock.acquire(blocking=False):
            LOGGER.warning("Previous cycle still running, skipping this tick")
            return CycleResult(CycleStatus.SKIPPED)
        try:
            return run_cycle(
                self.settings,
                self.store,
                fetcher=self.fetcher,
                mailer=self.mailer,
                now=now,
            )
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Error in monitoring cycle: %s", exc)
            return CycleResult(CycleStatus.ERROR, error=str(exc))
        finally:
            self._lock.release()


def _job_error_listener(event) -> None:
    LOGGER.error(
        "Scheduled job '%s' failed: %s\n%s",
        event.job_id,
        event.exception,
        event.traceback or "",
    )


def build_scheduler(monitor: Monitor, interval_seconds: int) -> BlockingScheduler:
    """Create a scheduler that runs ``monitor.tick`` now and then every interval."""
    scheduler = BlockingScheduler(timezone=timezone.utc)
    scheduler.add_job(
        monitor.tick,
        IntervalTrigger(seconds=interval_seconds),
        id="notice_check",
        name="BAOU notice check",
        max_instances=1,
        coalesce=True,
        next_run_time=datetime.now(timezone.utc),
        replace_existing=True,
    )
    scheduler.add_listener(_job_error_listener, EVENT_JOB_ERROR)
    return scheduler


def main() -> int:
    """Run the monitoring service until interrupted."""
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

    try:
        settings = get_settings()
    except ValueError as exc:
        LOGGER.error("Configuration error: %s", exc)
        return 1

    monitor = Monitor(settings)
    try:
        monitor.store.ensure_exists()
    except OSError as exc:
        LOGGER.error("Cannot create storage file %s: %s", settings.storage_file, exc)
        return 1

    LOGGER.info(
        "Starting BAOU notification monitor, check interval = %d seconds",
        settings.check_interval_seconds,
    )
    scheduler = build_scheduler(monitor, settings.check_interval_seconds)
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        LOGGER.info("Shutting down")
    return 0


if __name__ == "__main__":
    sys.exit(main())
