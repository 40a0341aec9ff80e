from __future__ import annotations

import base64
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple


def parse_datetime(value: Any) -> Optional[datetime]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value:
        return None
    iso = value.replace("Z", "+00:00")
    try:
        dt = datetime.fromisoformat(iso)
    except ValueError:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "on"}
    return bool(value)


def _mapping(value: Any) -> Optional[Mapping[str, Any]]:
    return value if isinstance(value, Mapping) else None


def _mappings(value: Any) -> List[Mapping[str, Any]]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, Mapping)]


@dataclass(frozen=True)
class _ApiRecord:
    """Base for records parsed from FreshTeam JSON; `raw` keeps the full payload."""

    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def extra(self) -> Dict[str, Any]:
        known = {f.name for f in fields(self)}
        return {k: v for k, v in self.raw.items() if k not in known}

    def as_dict(self) -> Dict[str, Any]:
        return dict(self.raw)


@dataclass(frozen=True)
class Person(_ApiRecord):
    id: Optional[int] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    official_email: Optional[str] = None

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "Person":
        return cls(
            raw=dict(data),
            id=_int(data.get("id")),
            first_name=_str(data.get("first_name")),
            last_name=_str(data.get("last_name")),
            official_email=_str(data.get("official_email")),
        )


@dataclass(frozen=True)
class Salary(_ApiRecord):
    min: Optional[float] = None
    max: Optional[float] = None
    currency: Optional[str] = None

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "Salary":
        return cls(
            raw=dict(data),
            min=_float(data.get("min")),
            max=_float(data.get("max")),
            currency=_str(data.get("currency")),
        )


@dataclass(frozen=True)
class Branch(_ApiRecord):
    id: Optional[int] = None
    name: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country_code: Optional[str] = None
    zip: Optional[str] = None
    street: Optional[str] = None

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "Branch":
        return cls(
            raw=dict(data),
            id=_int(data.get("id")),
            name=_str(data.get("name")),
            city=_str(data.get("city")),
            state=_str(data.get("state")),
            country_code=_str(data.get("country_code")),
            zip=_str(data.get("zip")),
            street=_str(data.get("street")),
        )


@dataclass(frozen=True)
class Department(_ApiRecord):
    id: Optional[int] = None
    name: Optional[str] = None

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "Department":
        return cls(raw=dict(data), id=_int(data.get("id")), name=_str(data.get("name")))


@dataclass(frozen=True)
class Requisition(_ApiRecord):
    id: Optional[int] = None
    title: Optional[str] = None
    recruiters: Tuple[Person, ...] = ()
    hiring_managers: Tuple[Person, ...] = ()

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "Requisition":
        return cls(
            raw=dict(data),
            id=_int(data.get("id")),
            title=_str(data.get("title")),
            recruiters=tuple(Person.from_api(p) for p in _mappings(data.get("recruiters"))),
            hiring_managers=tuple(Person.from_api(p) for p in _mappings(data.get("hiring_managers"))),
        )


@dataclass(frozen=True)
class JobSummary(_ApiRecord):
    """Lightweight posting as returned by the list endpoint."""

    id: Optional[int] = None
    title: Optional[str] = None
    status: Optional[str] = None

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "JobSummary":
        return cls(
            raw=dict(data),
            id=_int(data.get("id")),
            title=_str(data.get("title")),
            status=_str(data.get("status")),
        )


@dataclass(frozen=True)
class JobDetail(JobSummary):
    """Full posting from GET /job_postings/{id}."""

    description: Optional[str] = None
    type: Optional[str] = None
    experience: Optional[str] = None
    remote: Optional[bool] = None
    closing_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    salary: Optional[Salary] = None
    branch: Optional[Branch] = None
    department: Optional[Department] = None
    requisitions: Tuple[Requisition, ...] = ()

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "JobDetail":
        salary = _mapping(data.get("salary"))
        branch = _mapping(data.get("branch"))
        department = _mapping(data.get("department"))
        return cls(
            raw=dict(data),
            id=_int(data.get("id")),
            title=_str(data.get("title")),
            status=_str(data.get("status")),
            description=_str(data.get("description")),
            type=_str(data.get("type")),
            experience=_str(data.get("experience")),
            remote=_bool(data.get("remote")),
            closing_date=parse_datetime(data.get("closing_date")),
            created_at=parse_datetime(data.get("created_at")),
            updated_at=parse_datetime(data.get("updated_at")),
            salary=Salary.from_api(salary) if salary is not None else None,
            branch=Branch.from_api(branch) if branch is not None else None,
            department=Department.from_api(department) if department is not None else None,
            requisitions=tuple(Requisition.from_api(r) for r in _mappings(data.get("requisitions"))),
        )


@dataclass(frozen=True)
class CandidateLocation(_ApiRecord):
    city: Optional[str] = None
    state: Optional[str] = None
    street: Optional[str] = None
    country_code: Optional[str] = None
    zip_code: Optional[str] = None

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "CandidateLocation":
        return cls(
            raw=dict(data),
            city=_str(data.get("city")),
            state=_str(data.get("state")),
            street=_str(data.get("street")),
            country_code=_str(data.get("country_code")),
            zip_code=_str(data.get("zip_code")),
        )


@dataclass(frozen=True)
class ProfileLink(_ApiRecord):
    name: Optional[str] = None
    url: Optional[str] = None

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "ProfileLink":
        return cls(raw=dict(data), name=_str(data.get("name")), url=_str(data.get("url")))


@dataclass(frozen=True)
class Resume(_ApiRecord):
    id: Optional[int] = None
    content_file_name: Optional[str] = None
    content_file_size: Optional[int] = None
    url: Optional[str] = None
    description: Optional[str] = None

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "Resume":
        return cls(
            raw=dict(data),
            id=_int(data.get("id")),
            content_file_name=_str(data.get("content_file_name")),
            content_file_size=_int(data.get("content_file_size")),
            url=_str(data.get("url")),
            description=_str(data.get("description")),
        )


@dataclass(frozen=True)
class Candidate(_ApiRecord):
    id: Optional[int] = None
    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    mobile: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[str] = None
    gender: Optional[str] = None
    description: Optional[str] = None
    total_experience_in_months: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    applicant_ids: Tuple[int, ...] = ()
    location: Optional[CandidateLocation] = None
    profile_links: Tuple[ProfileLink, ...] = ()
    resumes: Tuple[Resume, ...] = ()
    tags: Tuple[str, ...] = ()

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "Candidate":
        location = _mapping(data.get("location"))
        applicant_ids = data.get("applicant_ids") if isinstance(data.get("applicant_ids"), list) else []
        tags = data.get("tags") if isinstance(data.get("tags"), list) else []
        return cls(
            raw=dict(data),
            id=_int(data.get("id")),
            first_name=_str(data.get("first_name")),
            middle_name=_str(data.get("middle_name")),
            last_name=_str(data.get("last_name")),
            email=_str(data.get("email")),
            mobile=_str(data.get("mobile")),
            phone=_str(data.get("phone")),
            date_of_birth=_str(data.get("date_of_birth")),
            gender=_str(data.get("gender")),
            description=_str(data.get("description")),
            total_experience_in_months=_int(data.get("total_experience_in_months")),
            created_at=parse_datetime(data.get("created_at")),
            updated_at=parse_datetime(data.get("updated_at")),
            applicant_ids=tuple(i for i in (_int(v) for v in applicant_ids) if i is not None),
            location=CandidateLocation.from_api(location) if location is not None else None,
            profile_links=tuple(ProfileLink.from_api(p) for p in _mappings(data.get("profile_links"))),
            resumes=tuple(Resume.from_api(r) for r in _mappings(data.get("resumes"))),
            tags=tuple(str(t) for t in tags if t is not None),
        )


@dataclass(frozen=True)
class Applicant(_ApiRecord):
    id: Optional[int] = None
    candidate_id: Optional[int] = None
    job_id: Optional[int] = None
    stage: Optional[str] = None
    sub_stage: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    cover_letter: Optional[str] = None
    referral_source: Optional[str] = None
    source: Optional[str] = None
    candidate: Optional[Candidate] = None

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "Applicant":
        candidate = _mapping(data.get("candidate"))
        return cls(
            raw=dict(data),
            id=_int(data.get("id")),
            candidate_id=_int(data.get("candidate_id")),
            job_id=_int(data.get("job_id")),
            stage=_str(data.get("stage")),
            sub_stage=_str(data.get("sub_stage")),
            created_at=parse_datetime(data.get("created_at")),
            updated_at=parse_datetime(data.get("updated_at")),
            cover_letter=_str(data.get("cover_letter")),
            referral_source=_str(data.get("referral_source")),
            source=_str(data.get("source")),
            candidate=Candidate.from_api(candidate) if candidate is not None else None,
        )


@dataclass(frozen=True)
class ResumeFile:
    content: bytes = field(repr=False)
    content_type: str
    filename: str

    def as_data_url(self) -> str:
        b64 = base64.b64encode(self.content).decode("ascii")
        return f"data:{self.content_type};base64,{b64}"
