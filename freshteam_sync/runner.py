from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Optional

from freshteam_sync.cancel import CancelToken
from freshteam_sync.client import FreshTeamClient
from freshteam_sync.config import FreshTeamSettings, get_settings
from freshteam_sync.logging_utils import log_event
from freshteam_sync.sinks import JobPostingSink

LOGGER = logging.getLogger("freshteam_sync.runner")


@dataclass
class SyncRunStats:
    run_id: str
    fetch_details: bool
    pages_fetched: int = 0
    postings: int = 0
    written: int = 0
    requests_made: int = 0
    failed: bool = False
    error_type: Optional[str] = None
    error: Optional[str] = None
    duration_s: float = 0.0


def build_client_from_settings(
    settings: Optional[FreshTeamSettings] = None,
    *,
    transport: Optional[Any] = None,
    sleep: Optional[Callable[[float], None]] = None,
    cancel: Optional[CancelToken] = None,
) -> FreshTeamClient:
    """Resolve settings into a client. Raises ConfigurationError before any request."""
    settings = settings or get_settings()
    config = settings.resolve()
    if sleep is None:
        sleep = cancel.sleep if cancel is not None else time.sleep

    return FreshTeamClient(
        config,
        per_page=settings.per_page,
        timeout_s=settings.timeout_s,
        pace=settings.pace_requests,
        transport=transport,
        sleep=sleep,
    )


def run_sync(
    client: FreshTeamClient,
    *,
    sink: JobPostingSink,
    fetch_details: bool = False,
    expected_total: Optional[int] = None,
    run_id: Optional[str] = None,
    cancel: Optional[CancelToken] = None,
) -> SyncRunStats:
    """Sync every job posting into `sink`. Partial results are written even when the run fails."""
    run_id = run_id or str(uuid.uuid4())
    stats = SyncRunStats(run_id=run_id, fetch_details=fetch_details)
    start = time.perf_counter()

    log_event(
        LOGGER,
        logging.INFO,
        "sync_start",
        run_id=run_id,
        domain=client.config.domain,
        fetch_details=fetch_details,
        per_page=client.per_page,
        requests_per_minute=client.config.throttle.requests_per_minute,
    )

    result = client.sync_job_postings(fetch_details, expected_total=expected_total, cancel=cancel)
    stats.pages_fetched = result.pages_fetched
    stats.postings = len(result.items)
    stats.requests_made = result.requests_made

    try:
        for posting in result.items:
            sink.write(posting)
            stats.written += 1
    finally:
        sink.close()

    stats.duration_s = time.perf_counter() - start

    if result.error is not None:
        stats.failed = True
        stats.error_type = type(result.error).__name__
        stats.error = str(result.error)
        log_event(
            LOGGER,
            logging.ERROR,
            "sync_failed",
            run_id=run_id,
            pages_fetched=stats.pages_fetched,
            postings=stats.postings,
            written=stats.written,
            requests_made=stats.requests_made,
            error_type=stats.error_type,
            error=stats.error,
            duration_s=round(stats.duration_s, 3),
        )
        return stats

    log_event(
        LOGGER,
        logging.INFO,
        "sync_done",
        run_id=run_id,
        pages_fetched=stats.pages_fetched,
        postings=stats.postings,
        written=stats.written,
        requests_made=stats.requests_made,
        duration_s=round(stats.duration_s, 3),
    )
    return stats
