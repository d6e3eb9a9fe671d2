import pytest

from applicant_filters.merger import merge_fields
from applicant_filters.models import FilterDescriptor
from applicant_filters.predicate import (
    apply_filter_store,
    build_clause,
    build_predicate,
    filter_applicants,
)
from applicant_filters.records import ApplicantRecord, build_job_position_map
from applicant_filters.store import FilterStore


def _descriptor(field_id, filter_type, value, **extra):
    return FilterDescriptor.model_validate({"fieldId": field_id, "type": filter_type, "value": value, **extra})


def _ids(applicants):
    return [a["_id"] for a in applicants]


SALARY_APPLICANT = {"_id": "s1", "customResponses": {"expected_salary": "4000"}}


@pytest.mark.parametrize(
    "bounds, expected",
    [
        ({"min": "3000", "max": "5000"}, True),
        ({"min": "4500"}, False),
        ({"max": "4000"}, True),
        ({"min": "4000", "max": "4000"}, True),
        ({"max": "3,999"}, False),
    ],
)
def test_range_clause(bounds, expected):
    descriptor = _descriptor("f1", "range", bounds, labelEn="Expected Salary")
    predicate = build_predicate([descriptor])
    assert predicate(SALARY_APPLICANT) is expected


def test_range_matches_any_number_in_free_text():
    descriptor = _descriptor("f1", "range", {"min": "8000"}, labelEn="Expected Salary")
    applicant = {"customResponses": {"Expected Salary": "6,000 - 9,000"}}
    assert build_predicate([descriptor])(applicant)


def test_range_without_numbers_fails():
    descriptor = _descriptor("f1", "range", {"min": "1"}, labelEn="Expected Salary")
    applicant = {"customResponses": {"Expected Salary": "negotiable"}}
    assert not build_predicate([descriptor])(applicant)


@pytest.mark.parametrize(
    "year, mode, expected",
    [
        (1990, "before", False),
        (1991, "before", True),
        (1989, "after", True),
        (1990, "after", False),
    ],
)
def test_birth_year_is_strict(year, mode, expected):
    applicant = {"birthDate": "1990-06-01"}
    descriptor = _descriptor("__birthdate", "birthYear", {"year": year, "mode": mode})
    assert build_predicate([descriptor])(applicant) is expected


def test_birth_year_unreadable_date_fails():
    descriptor = _descriptor("__birthdate", "birthYear", {"year": 2000, "mode": "before"})
    assert not build_predicate([descriptor])({"birthDate": "unknown"})
    assert not build_predicate([descriptor])({})


def test_multi_matches_other_language_of_choice(applicants):
    descriptor = _descriptor(
        "city",
        "multi",
        ["Riyadh"],
        labelEn="City",
        choices=[{"en": "Riyadh", "ar": "الرياض"}, {"en": "Jeddah", "ar": "جدة"}],
    )
    predicate = build_predicate([descriptor])
    assert _ids(filter_applicants(applicants, predicate)) == ["app-2"]


def test_multi_is_case_insensitive():
    descriptor = _descriptor("edu", "multi", ["Bachelor"], labelEn="Education Level")
    assert build_predicate([descriptor])({"customResponses": {"edu": "  bachelor "}})
    assert not build_predicate([descriptor])({"customResponses": {"edu": "Master"}})


def test_gender_filter(applicants):
    descriptor = _descriptor("__gender", "multi", ["Male"])
    predicate = build_predicate([descriptor])
    assert _ids(filter_applicants(applicants, predicate)) == ["app-1"]


def test_has_cv(applicants):
    has_cv = build_predicate([_descriptor("__has_cv", "hasCV", True)])
    no_cv = build_predicate([_descriptor("__has_cv", "hasCV", False)])
    assert _ids(filter_applicants(applicants, has_cv)) == ["app-1"]
    assert _ids(filter_applicants(applicants, no_cv)) == ["app-2"]


def test_has_field_by_label(applicants):
    """Answers under different field ids and labels count for the merged field."""
    descriptor = _descriptor(
        "edu_a", "hasField", True, labelEn="Education Level", labelAr="المؤهل الدراسي"
    )
    assert _ids(filter_applicants(applicants, build_predicate([descriptor]))) == ["app-1", "app-2"]

    missing = descriptor.with_value(False)
    assert filter_applicants(applicants, build_predicate([missing])) == []


def test_has_work_experience_with_structured_answer(applicants):
    descriptor = _descriptor("exp_a", "hasWorkExperience", True, labelEn="Work Experience")
    assert _ids(filter_applicants(applicants, build_predicate([descriptor]))) == ["app-1"]


def test_empty_answers_count_as_missing():
    descriptor = _descriptor("q", "hasField", False)
    predicate = build_predicate([descriptor])
    assert predicate({"customResponses": {"q": []}})
    assert predicate({"customResponses": {"q": "   "}})
    assert not predicate({"customResponses": {"q": ["x"]}})


def test_text_contains(applicants):
    descriptor = _descriptor("notes", "text", "RELOCATE", labelEn="Notes")
    assert _ids(filter_applicants(applicants, build_predicate([descriptor]))) == ["app-2"]


def test_filters_combine_with_and(applicants):
    filters = [
        _descriptor("__has_cv", "hasCV", True),
        _descriptor("__gender", "multi", ["Female"]),
    ]
    assert filter_applicants(applicants, build_predicate(filters)) == []


def test_no_filters_keeps_everything_but_trashed(applicants):
    assert _ids(filter_applicants(applicants, build_predicate([]))) == ["app-1", "app-2"]


@pytest.mark.parametrize(
    "status_filter, privileged, expected",
    [
        (None, False, ["app-1", "app-2"]),
        ("all", False, ["app-1", "app-2"]),
        ("trashed", False, []),
        ("trashed", True, ["app-3"]),
        (["applied", "trashed"], True, ["app-1", "app-3"]),
        (["interview"], False, ["app-2"]),
        (None, True, ["app-1", "app-2"]),
    ],
)
def test_status_filter(applicants, status_filter, privileged, expected):
    predicate = build_predicate([], status_filter=status_filter, privileged=privileged)
    assert _ids(filter_applicants(applicants, predicate)) == expected


def test_job_column_filter(applicants, job_postings):
    predicate = build_predicate(
        [],
        build_job_position_map(job_postings),
        column_filters=[{"id": "jobPositionId", "value": ["job-b"]}],
    )
    assert _ids(filter_applicants(applicants, predicate)) == ["app-2"]


def test_company_column_filter_uses_job_map(applicants, job_postings):
    job_map = build_job_position_map(job_postings)
    predicate = build_predicate([], job_map, column_filters=[{"id": "companyId", "value": "co-1"}])
    assert _ids(filter_applicants(applicants, predicate)) == ["app-1"]

    # Without the job map the company cannot be determined
    predicate = build_predicate([], column_filters=[{"id": "companyId", "value": "co-1"}])
    assert filter_applicants(applicants, predicate) == []


def test_raw_descriptors_are_accepted_and_invalid_ones_ignored(applicants):
    predicate = build_predicate(
        [
            {"fieldId": "__gender", "type": "multi", "value": ["Female"]},
            {"fieldId": "broken", "type": "multi", "value": []},
        ]
    )
    assert _ids(filter_applicants(applicants, predicate)) == ["app-2"]


def test_clause_errors_count_as_mismatch(monkeypatch, applicants):
    """An exception while evaluating a filter hides the row instead of propagating."""

    def explode(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr("applicant_filters.predicate.resolve_value", explode)
    descriptor = _descriptor("notes", "text", "x")
    predicate = build_predicate([descriptor])
    assert filter_applicants(applicants, predicate) == []


def test_build_clause_works_on_records():
    clause = build_clause(_descriptor("q", "text", "acme"))
    assert clause(ApplicantRecord({"customResponses": {"q": "ACME Ltd"}}))


def test_filter_applicants_accepts_none():
    assert filter_applicants(None, build_predicate([])) == []


def test_apply_filter_store(applicants, job_postings):
    store = FilterStore()
    store.click_has_cv(False)
    store.select_companies(["co-2"])

    visible = apply_filter_store(applicants, store, job_postings)
    assert _ids(visible) == ["app-2"]

    store.clear()
    visible = apply_filter_store(applicants, store, job_postings, status_filter="trashed", privileged=True)
    assert _ids(visible) == ["app-3"]


# --- answers stored under the other postings' ids ---

SHIFT_POSTINGS = [
    {
        "_id": "a",
        "customFields": [
            {"fieldId": "shift_a", "label": {"en": "Preferred Shift"}, "choices": [{"en": "Morning"}]},
        ],
    },
    {
        "_id": "b",
        "customFields": [
            {"fieldId": "shift_b", "label": {"en": "Preferred Shift"}, "choices": [{"en": "Night"}]},
        ],
    },
]


def test_merged_field_matches_answers_under_every_posting_id():
    (shift,) = merge_fields(SHIFT_POSTINGS)
    night_worker = {"_id": "n1", "jobPositionId": "b", "customResponses": {"shift_b": "Night"}}
    silent = {"_id": "n2", "jobPositionId": "b", "customResponses": {}}

    store = FilterStore()
    store.toggle_choice(shift, "Night")
    assert store.get("shift_a").field_ids == ["shift_a", "shift_b"]
    assert _ids(filter_applicants([night_worker, silent], build_predicate(store.filters))) == ["n1"]

    store.click_presence(shift, True)
    assert _ids(filter_applicants([night_worker, silent], build_predicate(store.filters))) == ["n1"]

    store.click_presence(shift, False)
    assert _ids(filter_applicants([night_worker, silent], build_predicate(store.filters))) == ["n2"]


def test_multi_valued_option_counts_as_answered():
    predicate = build_predicate([_descriptor("skills", "hasField", True)])
    assert predicate({"customResponses": {"skills": {"value": ["Excel", "Word"]}}})

    multi = build_predicate([_descriptor("skills", "multi", ["Word"])])
    assert multi({"customResponses": {"skills": {"value": ["Excel", "Word"]}}})


def test_range_reads_arabic_separators():
    descriptor = _descriptor("__expected_salary", "range", {"min": "3000"})
    assert build_predicate([descriptor])({"_id": "s2", "expectedSalary": "٥٬٠٠٠"})
    assert not build_predicate([descriptor])({"_id": "s3", "expectedSalary": "٢٬٥٠٠"})


def test_legacy_presence_type_filters():
    descriptor = _descriptor("edu", "hasEducation", True)
    predicate = build_predicate([descriptor])
    assert predicate({"customResponses": {"edu": "BSc"}})
    assert not predicate({"customResponses": {}})
