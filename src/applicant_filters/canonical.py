import logging
from enum import StrEnum
from typing import Any

from applicant_filters.normalizer import normalize_loose

logger = logging.getLogger(__name__)


class CanonicalType(StrEnum):
    """
    Semantic categories whose labels vary too much between job postings
    to be matched by normalized label alone.
    """

    SALARY = "salary"
    EDUCATION_LEVEL = "education_level"
    ENGINEERING_SPECIALIZATION = "engineering_specialization"


# Declaration order is the tie-break order.
CANONICAL_SYNONYMS: dict[CanonicalType, list[str]] = {
    CanonicalType.SALARY: [
        "expected salary",
        "expected_salary",
        "الراتب المتوقع",
        "الراتب_المتوقع",
        "راتب",
    ],
    CanonicalType.EDUCATION_LEVEL: [
        "education level",
        "education_level",
        "المؤهل الدراسي",
        "المؤهل_الدراسي",
    ],
    CanonicalType.ENGINEERING_SPECIALIZATION: [
        "engineering specialization",
        "engineering_specialization",
        "التخصص الهندسي",
        "التخصص_الهندسي",
        # Misspelling that shipped in several job templates
        "engineering specializaion",
        "engineering_specializaion",
    ],
}


def canonical_synonyms(canonical_type: CanonicalType) -> list[str]:
    """Return the loose-normalized, non-empty synonyms of a canonical type."""
    synonyms = (normalize_loose(s) for s in CANONICAL_SYNONYMS.get(canonical_type, []))
    return [s for s in synonyms if s]


def classify(field: Any) -> CanonicalType | None:
    """
    Map a field to a canonical type using its English label, Arabic label and id.

    A synonym matches when it contains, or is contained in, the normalized
    lookup string, or when the lower-cased raw field id contains it.
    Returns None when nothing matches.
    """
    if field is None:
        return None

    field_id = getattr(field, "field_id", "") or ""
    label_en = getattr(field, "label_en", "") or ""
    label_ar = getattr(field, "label_ar", "") or ""

    lookup = normalize_loose(f"{label_en} {label_ar} {field_id}")
    raw_id = str(field_id).lower()

    for canonical_type in CANONICAL_SYNONYMS:
        for synonym in canonical_synonyms(canonical_type):
            if lookup and (synonym in lookup or lookup in synonym):
                return canonical_type
            if synonym in raw_id:
                return canonical_type

    logger.debug(f"No canonical type for field '{field_id}'")
    return None
