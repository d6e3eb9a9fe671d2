import logging
from collections.abc import Callable, Collection, Iterable, Mapping
from typing import Any

from applicant_filters.models import (
    BIRTHDATE_FIELD_ID,
    EXPECTED_SALARY_FIELD_ID,
    GENDER_FIELD_ID,
    HAS_CV_FIELD_ID,
    ColumnFilter,
    FilterDescriptor,
    JobPosting,
    is_presence_type,
)
from applicant_filters.normalizer import normalize_light
from applicant_filters.records import ApplicantRecord, build_job_position_map
from applicant_filters.resolver import (
    resolve_birth_date,
    resolve_cv_path,
    resolve_expected_salary,
    resolve_gender,
    resolve_value,
)
from applicant_filters.store import COMPANY_COLUMN, JOB_COLUMN, FilterStore
from applicant_filters.values import (
    extract_numbers,
    extract_response_items,
    extract_year,
    parse_number,
    response_text,
)

logger = logging.getLogger(__name__)

TRASHED = "trashed"

Applicant = ApplicantRecord | Mapping[str, Any]
Predicate = Callable[[Applicant], bool]
Clause = Callable[[ApplicantRecord], bool]

# Pseudo fields answered by dedicated resolvers instead of custom responses
PERSONAL_RESOLVERS: dict[str, Callable[[ApplicantRecord], Any]] = {
    GENDER_FIELD_ID: resolve_gender,
    BIRTHDATE_FIELD_ID: resolve_birth_date,
    HAS_CV_FIELD_ID: lambda record: resolve_cv_path(record) or "",
    EXPECTED_SALARY_FIELD_ID: resolve_expected_salary,
}


def _answer(descriptor: FilterDescriptor, record: ApplicantRecord) -> Any:
    resolver = PERSONAL_RESOLVERS.get(descriptor.field_id)
    if resolver is not None:
        return resolver(record)
    return resolve_value(record, descriptor)


def _multi_clause(descriptor: FilterDescriptor) -> Clause:
    # A selected option also matches the other-language text of its choice
    wanted: set[str] = set()
    for option in descriptor.value:
        wanted.add(normalize_light(option))
        for choice in descriptor.choices or []:
            if choice.option_id == option:
                wanted.update(normalize_light(text) for text in (choice.en, choice.ar, choice.id))
    wanted.discard("")

    def clause(record: ApplicantRecord) -> bool:
        items = extract_response_items(_answer(descriptor, record))
        return any(normalize_light(item) in wanted for item in items)

    return clause


def _range_clause(descriptor: FilterDescriptor) -> Clause:
    low = parse_number(descriptor.value.min)
    high = parse_number(descriptor.value.max)

    def clause(record: ApplicantRecord) -> bool:
        if low is None and high is None:
            return True
        for number in extract_numbers(_answer(descriptor, record)):
            if (low is None or number >= low) and (high is None or number <= high):
                return True
        return False

    return clause


def _birth_year_clause(descriptor: FilterDescriptor) -> Clause:
    target = descriptor.value.year
    before = descriptor.value.mode == "before"

    def clause(record: ApplicantRecord) -> bool:
        year = extract_year(_answer(descriptor, record))
        if year is None:
            return False
        return year < target if before else year > target

    return clause


def _presence_clause(descriptor: FilterDescriptor) -> Clause:
    expected = bool(descriptor.value)

    def clause(record: ApplicantRecord) -> bool:
        has_answer = bool(extract_response_items(_answer(descriptor, record)))
        return has_answer == expected

    return clause


def _text_clause(descriptor: FilterDescriptor) -> Clause:
    needle = str(descriptor.value).casefold()

    def clause(record: ApplicantRecord) -> bool:
        return needle in response_text(_answer(descriptor, record)).casefold()

    return clause


def build_clause(descriptor: FilterDescriptor) -> Clause:
    """Turn one filter descriptor into a test over an applicant record."""
    if descriptor.type == "multi":
        return _multi_clause(descriptor)
    if descriptor.type == "range":
        return _range_clause(descriptor)
    if descriptor.type == "birthYear":
        return _birth_year_clause(descriptor)
    if is_presence_type(descriptor.type):
        return _presence_clause(descriptor)
    if descriptor.type == "text":
        return _text_clause(descriptor)
    return lambda record: True


def _as_descriptors(filters: Iterable[Any]) -> list[FilterDescriptor]:
    descriptors: list[FilterDescriptor] = []
    for item in filters or []:
        descriptor = item if isinstance(item, FilterDescriptor) else FilterDescriptor.from_raw(item)
        if descriptor is not None:
            descriptors.append(descriptor)
    return descriptors


def _column_values(column_filters: Iterable[Any], column: str) -> set[str]:
    for item in column_filters or []:
        column_filter = item if isinstance(item, ColumnFilter) else None
        if column_filter is None and isinstance(item, Mapping) and isinstance(item.get("id"), str):
            column_filter = ColumnFilter(id=item["id"], value=item.get("value"))
        if column_filter is None or column_filter.id != column:
            continue
        value = column_filter.value
        values = value if isinstance(value, list) else [value]
        return {str(v) for v in values if v is not None and str(v)}
    return set()


def _status_set(status_filter: str | Collection[str] | None) -> set[str]:
    if status_filter is None or status_filter == "all":
        return set()
    if isinstance(status_filter, str):
        return {status_filter}
    return {s for s in status_filter if s}


def build_predicate(
    active_filters: Iterable[Any],
    job_position_map: Mapping[str, JobPosting] | None = None,
    *,
    column_filters: Iterable[Any] = (),
    status_filter: str | Collection[str] | None = None,
    privileged: bool = False,
) -> Predicate:
    """
    Build the row-visibility test for the applicant table.

    An applicant is visible when all of the following hold:
    - its status passes: trashed applicants are hidden unless the status
      filter names "trashed" and the caller is privileged; with a status
      filter the status must be one of it;
    - its job id is among the selected ``jobPositionId`` values, and its
      company (own, else its job's) among the selected ``companyId`` values;
    - every active filter descriptor matches.

    Clauses never raise: an error while evaluating one counts as a mismatch.
    """
    statuses = _status_set(status_filter)
    job_ids = _column_values(column_filters, JOB_COLUMN)
    company_ids = _column_values(column_filters, COMPANY_COLUMN)
    job_map = job_position_map or {}
    clauses = [(d, build_clause(d)) for d in _as_descriptors(active_filters)]

    def predicate(applicant: Applicant) -> bool:
        record = ApplicantRecord.wrap(applicant)

        status = record.status
        if status == TRASHED and not (privileged and TRASHED in statuses):
            return False
        if statuses and status not in statuses:
            return False

        if job_ids and record.job_id not in job_ids:
            return False
        if company_ids and record.company_id(job_map) not in company_ids:
            return False

        for descriptor, clause in clauses:
            try:
                if not clause(record):
                    return False
            except Exception as e:
                logger.debug(f"Filter '{descriptor.field_id}' failed on applicant {record.id}: {e}")
                return False
        return True

    return predicate


def filter_applicants(applicants: Iterable[Applicant], predicate: Predicate) -> list[Applicant]:
    """Return the applicants the predicate keeps, in their original order."""
    return [applicant for applicant in applicants or [] if predicate(applicant)]


def apply_filter_store(
    applicants: Iterable[Applicant],
    store: FilterStore,
    job_postings: Iterable[Any],
    *,
    status_filter: str | Collection[str] | None = None,
    privileged: bool = False,
) -> list[Applicant]:
    """Filter applicants with the store's descriptors and job/company selection."""
    predicate = build_predicate(
        store.filters,
        build_job_position_map(job_postings),
        column_filters=store.column_filters,
        status_filter=status_filter,
        privileged=privileged,
    )
    visible = filter_applicants(applicants, predicate)
    logger.debug(f"Filtered applicants: {len(visible)} visible")
    return visible
