#!/usr/bin/env python3
from __future__ import annotations

# ruff: noqa: E402
import argparse
import logging
import os
import signal
import sys

# Ensure project root is in path for local execution.
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from freshteam_sync.cancel import CancelToken
from freshteam_sync.config import get_settings
from freshteam_sync.errors import ConfigurationError
from freshteam_sync.runner import build_client_from_settings, run_sync
from freshteam_sync.sinks import JobPostingSink, JsonlSink, StdoutSink


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Sync all FreshTeam job postings (rate-limit aware).")
    parser.add_argument(
        "--details",
        action="store_true",
        help="Fetch full detail for every posting (one extra request per posting).",
    )
    parser.add_argument("--dry-run", action="store_true", help="Print postings to stdout as JSON lines (no writes).")
    parser.add_argument(
        "--output", help="Output JSONL path (default: FRESHTEAM_OUTPUT_PATH or ./data/freshteam/job_postings.jsonl)."
    )
    parser.add_argument(
        "--expected-total",
        type=int,
        help="Known number of postings; stops paging once reached instead of requesting a trailing empty page.",
    )
    parser.add_argument("--pace", action="store_true", help="Space requests evenly at the configured per-minute rate.")
    args = parser.parse_args(argv)

    settings = get_settings()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")

    if args.pace:
        settings = settings.model_copy(update={"pace_requests": True})

    cancel = CancelToken()
    signal.signal(signal.SIGINT, lambda _signum, _frame: cancel.cancel("interrupted"))

    try:
        client = build_client_from_settings(settings, cancel=cancel)
    except ConfigurationError as e:
        print(f"{e}. Set FRESHTEAM_DOMAIN and FRESHTEAM_API_KEY (environment or .env).")
        return 2

    sink: JobPostingSink
    if args.dry_run:
        sink = StdoutSink()
    else:
        out_path = args.output or os.getenv("FRESHTEAM_OUTPUT_PATH", "./data/freshteam/job_postings.jsonl")
        sink = JsonlSink(out_path)

    expected_total = args.expected_total if args.expected_total is not None else settings.expected_total

    with client:
        stats = run_sync(
            client,
            sink=sink,
            fetch_details=args.details or settings.fetch_details,
            expected_total=expected_total,
            cancel=cancel,
        )

    print(
        f"Run summary run_id={stats.run_id} pages={stats.pages_fetched} postings={stats.postings} "
        f"requests={stats.requests_made} failed={stats.failed}",
        file=sys.stderr,
    )
    if stats.failed:
        print(f"Sync stopped early: {stats.error_type}: {stats.error}", file=sys.stderr)
    return 1 if stats.failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
