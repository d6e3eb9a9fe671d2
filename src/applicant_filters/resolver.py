import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

from applicant_filters.canonical import canonical_synonyms, classify
from applicant_filters.models import FieldRef
from applicant_filters.normalizer import expand_forms, normalize_loose
from applicant_filters.records import ApplicantRecord
from applicant_filters.values import extract_response_items

logger = logging.getLogger(__name__)

Applicant = ApplicantRecord | Mapping[str, Any]

GENDER_FIELD = FieldRef(field_id="gender", label_en="Gender", label_ar="النوع")
BIRTHDATE_FIELD = FieldRef(field_id="birthDate", label_en="Birth Date", label_ar="تاريخ الميلاد")
EXPECTED_SALARY_FIELD = FieldRef(
    field_id="expectedSalary", label_en="Expected Salary", label_ar="الراتب المتوقع"
)

BIRTHDATE_KEYS = ("birthdate", "birth_date", "dateOfBirth", "date_of_birth", "dob")
EXPECTED_SALARY_KEYS = ("expected_salary", "expected")

CV_KEYS = (
    "cvFilePath",
    "cvUrl",
    "resume",
    "cv",
    "attachments",
    "resumeUrl",
    "cvFile",
    "resumeFilePath",
    "resumeFile",
    "cv_file_path",
    "cv_file",
    "cv_path",
)
CV_KEY_HINTS = ("cv", "resume")
DOCUMENT_URL_RE = re.compile(r"https?://.+\.(pdf|docx?|rtf|txt|zip)$", re.IGNORECASE)

ARABIC_MALE = ("ذكر", "ذكرً", "ذَكر")
ARABIC_FEMALE = ("انثى", "أنثى", "انثي", "انسه", "أنسه", "انثا")


def as_field_ref(field: Any) -> FieldRef:
    """
    Reduce any field-like value to a FieldRef.

    Accepts models exposing ``field_id``/``label_en``/``label_ar`` (field
    definitions, merged fields, filter descriptors) as well as raw mappings
    using ``fieldId``, ``labelEn``/``labelAr`` or a ``label`` that is either
    a plain string or an ``{en, ar}`` pair. ``field_ids``/``fieldIds`` carry
    the other ids a merged field was declared under.
    """
    if isinstance(field, FieldRef):
        return field

    if isinstance(field, Mapping):
        label = field.get("label")
        label_en = field.get("labelEn") or (label.get("en") if isinstance(label, Mapping) else label)
        label_ar = field.get("labelAr") or (label.get("ar") if isinstance(label, Mapping) else None)
        raw_id = field.get("fieldId")
        raw_ids = field.get("fieldIds")
    else:
        label_en = getattr(field, "label_en", None)
        label_ar = getattr(field, "label_ar", None)
        raw_id = getattr(field, "field_id", None)
        raw_ids = getattr(field, "field_ids", None)

    def text(value: Any) -> str:
        return str(value) if isinstance(value, str | int) and not isinstance(value, bool) else ""

    primary = text(raw_id)
    extra_ids = raw_ids if isinstance(raw_ids, list | tuple) else ()
    others = tuple(dict.fromkeys(i for i in map(text, extra_ids) if i and i != primary))
    return FieldRef(
        field_id=primary, label_en=text(label_en), label_ar=text(label_ar), field_ids=others
    )


def _lookup(record: ApplicantRecord, key: str) -> Any:
    """Direct key lookup in the responses map, then the top-level record."""
    if not key:
        return None
    for source in (record.responses, record.top):
        value = source.get(key)
        if value is not None:
            return value
    return None


def _candidate_keys(ref: FieldRef) -> set[str]:
    candidates: set[str] = set()
    for raw in (ref.label_en, ref.label_ar, ref.field_id, *ref.field_ids):
        candidates.update(expand_forms(normalize_loose(raw)))
    return candidates


def resolve_value(applicant: Applicant | None, field: Any) -> Any:
    """
    Find an applicant's answer to a field whatever key it was stored under.

    Tried in order: the field id, any further ids of a merged field, the
    English label, the Arabic label (each in the custom responses, then at
    the top level); response keys whose normalized form matches the
    normalized ids/labels with spaces and underscores interchangeable;
    and, for canonical fields, response keys matching any synonym of the
    canonical type. Returns "" when nothing is found. A stored None counts
    as no answer.
    """
    record = ApplicantRecord.wrap(applicant)
    if not record.top or field is None:
        return ""

    ref = as_field_ref(field)

    for key in (ref.field_id, *ref.field_ids, ref.label_en, ref.label_ar):
        value = _lookup(record, key)
        if value is not None:
            return value

    responses = record.responses
    candidates = _candidate_keys(ref)
    if candidates:
        for key, value in responses.items():
            if value is None:
                continue
            normalized = normalize_loose(str(key))
            if normalized and any(form in candidates for form in expand_forms(normalized)):
                return value

    canonical = classify(ref)
    if canonical is not None:
        synonyms = canonical_synonyms(canonical)
        for key, value in responses.items():
            if value is None:
                continue
            normalized = normalize_loose(str(key))
            if normalized and any(normalized in s or s in normalized for s in synonyms):
                return value

    return ""


def resolve_values(applicants: Iterable[Applicant], field: Any) -> list[Any]:
    """Resolve the same field for many applicants."""
    return [resolve_value(applicant, field) for applicant in applicants or []]


def normalize_gender(raw: Any) -> str:
    """Map Arabic and abbreviated gender answers onto 'Male'/'Female'."""
    if raw is None or isinstance(raw, bool):
        return ""
    text = str(raw).strip()
    if not text:
        return ""

    lower = text.lower()
    if text in ARABIC_MALE or lower in ("male", "m"):
        return "Male"
    if text in ARABIC_FEMALE or lower in ("female", "f"):
        return "Female"
    return text[0].upper() + text[1:]


def resolve_gender(applicant: Applicant | None) -> str:
    value = resolve_value(applicant, GENDER_FIELD)
    if isinstance(value, Mapping | list):
        # Option objects: use their primitive
        items = extract_response_items(value)
        value = items[0] if items else ""
    return normalize_gender(value)


def resolve_birth_date(applicant: Applicant | None) -> Any:
    value = resolve_value(applicant, BIRTHDATE_FIELD)
    if value != "":
        return value

    record = ApplicantRecord.wrap(applicant)
    for key in BIRTHDATE_KEYS:
        value = _lookup(record, key)
        if value is not None:
            return value
    return ""


def resolve_expected_salary(applicant: Applicant | None) -> Any:
    record = ApplicantRecord.wrap(applicant)
    value = _lookup(record, "expectedSalary")
    if value is not None and value != "":
        return value

    for key in EXPECTED_SALARY_KEYS:
        value = record.top.get(key)
        if value is not None and value != "":
            return value
    return resolve_value(record, EXPECTED_SALARY_FIELD)


def _first_document(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    if isinstance(value, list):
        for item in value:
            if isinstance(item, str) and item.strip():
                return item
    return None


def resolve_cv_path(applicant: Applicant | None) -> str | None:
    """
    Locate an applicant's CV: well-known top-level keys first, then response
    keys mentioning cv/resume, then any response that is a document URL.
    """
    record = ApplicantRecord.wrap(applicant)

    for key in CV_KEYS:
        path = _first_document(record.top.get(key))
        if path:
            return path

    for key, value in record.responses.items():
        lowered = str(key).lower()
        if any(hint in lowered for hint in CV_KEY_HINTS):
            path = _first_document(value)
            if path:
                return path
        if isinstance(value, str) and DOCUMENT_URL_RE.search(value.strip()):
            return value

    return None
