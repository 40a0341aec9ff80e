from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, TypeVar, Union

from freshteam_sync.cancel import CancelToken, check
from freshteam_sync.config import FreshTeamConfig
from freshteam_sync.errors import FreshTeamError, FreshTeamHttpError, SyncCancelledError, UpstreamError
from freshteam_sync.http import FreshTeamHttpClient
from freshteam_sync.logging_utils import log_event
from freshteam_sync.models import Applicant, Candidate, JobDetail, JobSummary, ResumeFile
from freshteam_sync.pagination import DEFAULT_PER_PAGE, Page, iter_items, iter_pages
from freshteam_sync.resume import download_resume, to_absolute_resume_url

LOGGER = logging.getLogger("freshteam_sync.client")

JobPosting = Union[JobSummary, JobDetail]

T = TypeVar("T")


@dataclass
class SyncResult:
    """Postings gathered by one run, plus the error that ended it early (if any)."""

    items: List[JobPosting] = field(default_factory=list)
    pages_fetched: int = 0
    requests_made: int = 0
    error: Optional[FreshTeamError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> List[JobPosting]:
        if self.error is not None:
            raise self.error
        return self.items


def _raw_list(data: Any) -> List[Any]:
    return data if isinstance(data, list) else []


def _unwrap_applicants(data: Any) -> List[Any]:
    # The applicants endpoint answers with a bare list or one of several envelopes.
    if isinstance(data, Mapping):
        for key in ("applicants", "data", "applicant"):
            if data.get(key) is not None:
                return _raw_list(data.get(key))
        return []
    return _raw_list(data)


def _page_of(entries: List[Any], build: Callable[[Mapping[str, Any]], T], *, url: str, page: int) -> Page[T]:
    items = [build(entry) for entry in entries if isinstance(entry, Mapping)]
    skipped = len(entries) - len(items)
    if skipped:
        log_event(LOGGER, logging.WARNING, "non_object_entries_skipped", url=url, page=page, skipped=skipped)
    return Page(items=items, raw_count=len(entries))


class FreshTeamClient:
    def __init__(
        self,
        config: FreshTeamConfig,
        *,
        http: Optional[FreshTeamHttpClient] = None,
        per_page: int = DEFAULT_PER_PAGE,
        **http_options: Any,
    ) -> None:
        if http is not None and http_options:
            raise TypeError(f"http options {sorted(http_options)} cannot be combined with an explicit http client")
        self._config = config
        self._http = http or FreshTeamHttpClient(config, **http_options)
        self._per_page = max(1, int(per_page))

    @property
    def config(self) -> FreshTeamConfig:
        return self._config

    @property
    def http(self) -> FreshTeamHttpClient:
        return self._http

    @property
    def per_page(self) -> int:
        return self._per_page

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "FreshTeamClient":
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()

    def _get_object(self, path: str, *, cancel: Optional[CancelToken]) -> Mapping[str, Any]:
        """GET a single resource; anything other than a JSON object is an upstream error."""
        data = self._http.get_json(path, cancel=cancel)
        if isinstance(data, Mapping):
            return data

        url = self._http.url_for(path)
        log_event(LOGGER, logging.WARNING, "unexpected_payload", url=url, payload_type=type(data).__name__)
        raise UpstreamError(
            url,
            200,
            json.dumps(data, default=str),
            message=f"FreshTeam API returned an unexpected {type(data).__name__} payload for {url}",
        )

    def _get_page(
        self,
        path: str,
        build: Callable[[Mapping[str, Any]], T],
        *,
        params: Dict[str, Any],
        unwrap: Callable[[Any], List[Any]] = _raw_list,
        cancel: Optional[CancelToken],
    ) -> Page[T]:
        data = self._http.get_json(path, params=params, cancel=cancel)
        return _page_of(unwrap(data), build, url=self._http.url_for(path), page=params["page"])

    # Job postings

    def _job_postings_page(
        self, page: int, per_page: Optional[int] = None, *, cancel: Optional[CancelToken] = None
    ) -> Page[JobSummary]:
        return self._get_page(
            "/job_postings",
            JobSummary.from_api,
            params={"page": page, "per_page": per_page or self._per_page},
            cancel=cancel,
        )

    def list_job_postings(
        self, page: int = 1, per_page: Optional[int] = None, *, cancel: Optional[CancelToken] = None
    ) -> List[JobSummary]:
        return self._job_postings_page(page, per_page, cancel=cancel).items

    def get_job_posting(self, job_id: int, *, cancel: Optional[CancelToken] = None) -> JobDetail:
        return JobDetail.from_api(self._get_object(f"/job_postings/{int(job_id)}", cancel=cancel))

    def _enrich(self, summary: JobSummary, cancel: Optional[CancelToken]) -> JobPosting:
        if summary.id is None:
            return summary
        return self.get_job_posting(summary.id, cancel=cancel)

    def iter_job_postings(
        self,
        fetch_details: bool = False,
        *,
        expected_total: Optional[int] = None,
        cancel: Optional[CancelToken] = None,
    ) -> Iterator[JobPosting]:
        """Yield every posting in traversal order, one request at a time."""
        for summary in iter_items(
            lambda page, per_page: self._job_postings_page(page, per_page, cancel=cancel),
            per_page=self._per_page,
            expected_total=expected_total,
            cancel=cancel,
        ):
            yield self._enrich(summary, cancel) if fetch_details else summary

    def sync_job_postings(
        self,
        fetch_details: bool = False,
        *,
        expected_total: Optional[int] = None,
        cancel: Optional[CancelToken] = None,
    ) -> SyncResult:
        """Walk every page; a fatal error ends the walk but keeps what was gathered."""
        result = SyncResult()
        requests_before = self._http.requests_made

        try:
            for page, summaries in iter_pages(
                lambda p, n: self._job_postings_page(p, n, cancel=cancel),
                per_page=self._per_page,
                expected_total=expected_total,
                cancel=cancel,
            ):
                result.pages_fetched += 1
                for summary in summaries:
                    if fetch_details:
                        check(cancel, f"detail {summary.id}")
                        result.items.append(self._enrich(summary, cancel))
                    else:
                        result.items.append(summary)
                log_event(
                    LOGGER,
                    logging.INFO,
                    "job_postings_page_done",
                    page=page,
                    page_items=len(summaries),
                    total_items=len(result.items),
                    fetch_details=fetch_details,
                )
        except (FreshTeamHttpError, SyncCancelledError) as e:
            result.error = e
            log_event(
                LOGGER,
                logging.ERROR,
                "job_postings_sync_failed",
                pages_fetched=result.pages_fetched,
                items=len(result.items),
                url=getattr(e, "url", None),
                status_code=getattr(e, "status_code", None),
                error_type=type(e).__name__,
                error=str(e),
            )
        finally:
            result.requests_made = self._http.requests_made - requests_before

        return result

    def list_all_job_postings(
        self,
        fetch_details: bool = False,
        *,
        expected_total: Optional[int] = None,
        cancel: Optional[CancelToken] = None,
    ) -> List[JobPosting]:
        """All-or-nothing variant of `sync_job_postings`."""
        return self.sync_job_postings(
            fetch_details, expected_total=expected_total, cancel=cancel
        ).raise_for_error()

    # Candidates and applicants

    def _candidates_page(
        self, page: int, per_page: Optional[int] = None, *, cancel: Optional[CancelToken] = None
    ) -> Page[Candidate]:
        return self._get_page(
            "/candidates",
            Candidate.from_api,
            params={"page": page, "per_page": per_page or self._per_page},
            cancel=cancel,
        )

    def list_candidates(
        self, page: int = 1, per_page: Optional[int] = None, *, cancel: Optional[CancelToken] = None
    ) -> List[Candidate]:
        return self._candidates_page(page, per_page, cancel=cancel).items

    def get_candidate(self, candidate_id: int, *, cancel: Optional[CancelToken] = None) -> Candidate:
        return Candidate.from_api(self._get_object(f"/candidates/{int(candidate_id)}", cancel=cancel))

    def iter_candidates(self, *, cancel: Optional[CancelToken] = None) -> Iterator[Candidate]:
        return iter_items(
            lambda page, per_page: self._candidates_page(page, per_page, cancel=cancel),
            per_page=self._per_page,
            cancel=cancel,
        )

    def _applicants_page(
        self,
        job_posting_id: int,
        page: int,
        per_page: Optional[int] = None,
        *,
        include_candidate: bool = True,
        cancel: Optional[CancelToken] = None,
    ) -> Page[Applicant]:
        params: Dict[str, Any] = {"page": page, "per_page": per_page or self._per_page}
        if include_candidate:
            params["include"] = "candidate"
        return self._get_page(
            f"/job_postings/{int(job_posting_id)}/applicants",
            Applicant.from_api,
            params=params,
            unwrap=_unwrap_applicants,
            cancel=cancel,
        )

    def list_applicants_for_job(
        self,
        job_posting_id: int,
        page: int = 1,
        per_page: Optional[int] = None,
        *,
        include_candidate: bool = True,
        cancel: Optional[CancelToken] = None,
    ) -> List[Applicant]:
        return self._applicants_page(
            job_posting_id, page, per_page, include_candidate=include_candidate, cancel=cancel
        ).items

    def get_applicant(self, applicant_id: int, *, cancel: Optional[CancelToken] = None) -> Applicant:
        return Applicant.from_api(self._get_object(f"/applicants/{int(applicant_id)}", cancel=cancel))

    def iter_applicants_for_job(
        self,
        job_posting_id: int,
        *,
        include_candidate: bool = True,
        cancel: Optional[CancelToken] = None,
    ) -> Iterator[Applicant]:
        return iter_items(
            lambda page, per_page: self._applicants_page(
                job_posting_id, page, per_page, include_candidate=include_candidate, cancel=cancel
            ),
            per_page=self._per_page,
            cancel=cancel,
        )

    # Resumes

    def to_absolute_resume_url(self, url: str) -> str:
        return to_absolute_resume_url(url, self._config.origin)

    def download_resume(
        self, url: str, *, filename: Optional[str] = None, use_freshteam_auth: bool = False
    ) -> Optional[ResumeFile]:
        return download_resume(self._http, url, filename=filename, use_freshteam_auth=use_freshteam_auth)
