"""Rate-limit-aware synchronization client for the FreshTeam API.

This package provides:
- A resolved, injectable configuration value (domain, bearer credential, quota)
- An authenticated JSON executor with 429 retries and quota-aware throttling
- A pagination driver and optional per-posting detail enrichment
- Helpers for candidate/applicant listing and resume downloads
"""

from freshteam_sync.cancel import CancelToken
from freshteam_sync.client import FreshTeamClient, SyncResult
from freshteam_sync.config import FreshTeamConfig, resolve_config
from freshteam_sync.errors import (
    ConfigurationError,
    FreshTeamError,
    RateLimitExceededError,
    SyncCancelledError,
    UpstreamError,
)
from freshteam_sync.models import Applicant, Candidate, JobDetail, JobSummary

__all__ = [
    "Applicant",
    "CancelToken",
    "Candidate",
    "ConfigurationError",
    "FreshTeamClient",
    "FreshTeamConfig",
    "FreshTeamError",
    "JobDetail",
    "JobSummary",
    "RateLimitExceededError",
    "SyncCancelledError",
    "SyncResult",
    "UpstreamError",
    "resolve_config",
]
