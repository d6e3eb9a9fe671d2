from collections.abc import Iterable, Mapping
from typing import Any

from applicant_filters.models import JobPosting, normalize_id


class ApplicantRecord:
    """
    Read-only view over an applicant record of unknown shape.

    Applicant documents have no fixed schema: answers may live in
    ``customResponses``, ``customFieldResponses`` or at the top level, and
    job/company references may be plain ids or populated documents. Only
    this class and the response resolver look at raw keys.
    """

    RESPONSE_KEYS = ("customResponses", "customFieldResponses")

    def __init__(self, raw: Mapping[str, Any] | None) -> None:
        self.top: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}

    @classmethod
    def wrap(cls, applicant: "ApplicantRecord | Mapping[str, Any] | None") -> "ApplicantRecord":
        if isinstance(applicant, ApplicantRecord):
            return applicant
        return cls(applicant)

    @property
    def responses(self) -> Mapping[str, Any]:
        for key in self.RESPONSE_KEYS:
            value = self.top.get(key)
            if isinstance(value, Mapping) and value:
                return value
        return {}

    @property
    def id(self) -> str | None:
        return normalize_id(self.top.get("_id")) or normalize_id(self.top.get("id"))

    @property
    def status(self) -> str:
        status = self.top.get("status")
        return status if isinstance(status, str) else ""

    @property
    def job_id(self) -> str | None:
        return normalize_id(self.top.get("jobPositionId")) or normalize_id(self.top.get("job"))

    def company_id(self, job_position_map: Mapping[str, JobPosting] | None = None) -> str | None:
        """The applicant's own company reference, else the company of its job posting."""
        for key in ("companyId", "company", "companyObj"):
            company = _company_ref(self.top.get(key))
            if company:
                return company

        # A populated jobPositionId document may carry its company
        job_ref = self.top.get("jobPositionId")
        if isinstance(job_ref, Mapping):
            for key in ("companyId", "company", "companyObj"):
                company = _company_ref(job_ref.get(key))
                if company:
                    return company

        job_id = self.job_id
        if job_id and job_position_map and job_id in job_position_map:
            return job_position_map[job_id].company_id
        return None


def _company_ref(value: Any) -> str | None:
    company = normalize_id(value)
    if company is None and isinstance(value, Mapping):
        company = normalize_id(value.get("companyId"))
    return company


def build_job_position_map(job_postings: Iterable[Any]) -> dict[str, JobPosting]:
    """
    Index job postings by id, including the nested id of populated documents.
    Postings without any id are left out.
    """
    job_map: dict[str, JobPosting] = {}
    for raw in job_postings or []:
        posting = JobPosting.from_raw(raw)
        if posting is None:
            continue

        ids: set[str] = set()
        if posting.id:
            ids.add(posting.id)
        if isinstance(raw, Mapping):
            for key in ("_id", "id"):
                nested = raw.get(key)
                if isinstance(nested, Mapping):
                    nested_id = normalize_id(nested.get("_id"))
                    if nested_id:
                        ids.add(nested_id)

        for job_id in ids:
            job_map[job_id] = posting
    return job_map


def parse_job_postings(job_postings: Iterable[Any]) -> list[JobPosting]:
    """Parse raw postings, dropping the ones that cannot be read."""
    parsed = (JobPosting.from_raw(raw) for raw in job_postings or [])
    return [posting for posting in parsed if posting is not None]
