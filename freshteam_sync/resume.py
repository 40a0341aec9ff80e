from __future__ import annotations

import logging
from typing import Dict, Optional
from urllib.parse import urljoin, urlsplit

from freshteam_sync.config import VENDOR_HOST
from freshteam_sync.errors import FreshTeamHttpError
from freshteam_sync.http import FreshTeamHttpClient
from freshteam_sync.logging_utils import log_event
from freshteam_sync.models import ResumeFile

LOGGER = logging.getLogger("freshteam_sync.resume")

DEFAULT_FILENAME = "resume.pdf"
DEFAULT_CONTENT_TYPE = "application/octet-stream"

_REDIRECT_STATUSES = {301, 302, 303, 307, 308}


def to_absolute_resume_url(url: str, origin: str) -> str:
    u = url.strip()
    if u.startswith(("http://", "https://")):
        return u
    if not origin:
        return u
    return f"{origin}{u}" if u.startswith("/") else f"{origin}/{u}"


def is_freshteam_host(url: str) -> bool:
    host = (urlsplit(url).hostname or "").lower()
    return host.endswith(f".{VENDOR_HOST}")


def _short(url: str) -> str:
    return url[:100]


def download_resume(
    http: FreshTeamHttpClient,
    url: str,
    *,
    filename: Optional[str] = None,
    use_freshteam_auth: bool = False,
) -> Optional[ResumeFile]:
    """Download a resume; returns None (and logs) on any failure.

    The bearer credential is only sent to *.freshteam.com, and never to the
    target of a redirect (typically a pre-signed storage URL).
    """
    absolute_url = to_absolute_resume_url(url, http.config.origin) if use_freshteam_auth else url.strip()

    headers: Dict[str, str] = {"Accept": "*/*"}
    if is_freshteam_host(absolute_url):
        headers["Authorization"] = http.config.authorization

    try:
        resp = http.raw_get(absolute_url, headers=headers)
        if resp.status_code in _REDIRECT_STATUSES:
            location = resp.headers.get("Location")
            if location:
                resp = http.raw_get(urljoin(absolute_url, location), headers={"Accept": "*/*"})
    except FreshTeamHttpError as e:
        log_event(
            LOGGER,
            logging.WARNING,
            "resume_download_error",
            url=_short(absolute_url),
            error_type=type(e).__name__,
            error=str(e),
        )
        return None

    if not resp.is_success:
        log_event(
            LOGGER,
            logging.WARNING,
            "resume_download_failed",
            url=_short(absolute_url),
            status_code=resp.status_code,
        )
        return None

    if not resp.content:
        log_event(LOGGER, logging.WARNING, "resume_download_empty", url=_short(absolute_url))
        return None

    return ResumeFile(
        content=resp.content,
        content_type=resp.headers.get("Content-Type") or DEFAULT_CONTENT_TYPE,
        filename=filename or DEFAULT_FILENAME,
    )
