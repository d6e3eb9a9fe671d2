import logging
from collections.abc import Collection, Iterable
from typing import Any

from applicant_filters.canonical import CANONICAL_SYNONYMS, classify
from applicant_filters.models import Choice, FieldDefinition, MergedField
from applicant_filters.normalizer import normalize_loose
from applicant_filters.records import parse_job_postings

logger = logging.getLogger(__name__)


def field_key(field: FieldDefinition) -> str:
    """
    The merge key of a field: its normalized label (English, else Arabic),
    falling back to the raw field id when the label normalizes to nothing.
    """
    label = field.label.en or field.label.ar
    return normalize_loose(label) or field.field_id


def _union_choices(existing: list[Choice], incoming: Iterable[Choice]) -> list[Choice]:
    """Union two choice lists, de-duplicated by serialized value, first appearance wins."""
    merged = {choice.model_dump_json(): choice for choice in existing}
    for choice in incoming:
        merged.setdefault(choice.model_dump_json(), choice)
    return list(merged.values())


def merge_fields(
    job_postings: Iterable[Any],
    selected_job_ids: Collection[str] | None = None,
) -> list[MergedField]:
    """
    Merge the custom fields of the selected job postings into one control per question.

    ``selected_job_ids=None`` merges every posting (the unfiltered summary
    view); an empty collection selects no posting and yields no fields.
    Fields are grouped by ``field_key``; the first contributing definition
    provides the label and id, choices are unioned, ``jobs`` records
    every contributing posting and ``field_ids`` every id the question
    was declared under. Output keeps first-seen order.
    """
    selected = None if selected_job_ids is None else {str(j) for j in selected_job_ids}
    merged: dict[str, MergedField] = {}

    for posting in parse_job_postings(job_postings):
        if not posting.id:
            continue
        if selected is not None and posting.id not in selected:
            continue

        for field in posting.custom_fields:
            key = field_key(field)
            if not key:
                logger.debug(f"Skipping unlabeled field in job {posting.id}")
                continue

            current = merged.get(key)
            if current is None:
                merged[key] = MergedField(
                    key=key,
                    field_id=field.field_id,
                    label=field.label,
                    choices=_union_choices([], field.choices or []),
                    jobs={posting.id},
                    field_ids=[field.field_id] if field.field_id else [],
                )
                continue

            if field.field_id and field.field_id not in current.field_ids:
                current.field_ids.append(field.field_id)
            if field.choices:
                current.choices = _union_choices(current.choices, field.choices)
            current.jobs.add(posting.id)

    return list(merged.values())


def build_field_job_index(job_postings: Iterable[Any]) -> dict[str, set[str]]:
    """
    Map every way a field can be referred to onto the job postings declaring it.

    Keys are the normalized "label.en label.ar fieldId" string, the raw
    field id, and for canonical fields the canonical type name and each of
    its normalized synonyms. Always covers every posting.
    """
    index: dict[str, set[str]] = {}

    def add(key: str, job_id: str) -> None:
        if key:
            index.setdefault(key, set()).add(job_id)

    for posting in parse_job_postings(job_postings):
        if not posting.id:
            continue
        for field in posting.custom_fields:
            raw = f"{field.label.en} {field.label.ar} {field.field_id}"
            add(normalize_loose(raw) or field.field_id, posting.id)
            add(field.field_id, posting.id)

            canonical = classify(field)
            if canonical is not None:
                add(canonical.value, posting.id)
                for synonym in CANONICAL_SYNONYMS[canonical]:
                    add(normalize_loose(synonym), posting.id)

    return index
