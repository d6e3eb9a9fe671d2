import os

import pytest

# Set environment variables for tests before any imports happen
os.environ["FILTER_STATE_KEY"] = "applicants_table_state"
os.environ["LOG_LEVEL"] = "DEBUG"

from applicant_filters.storage import MemoryStorage  # noqa: E402
from applicant_filters.store import FilterStore  # noqa: E402


@pytest.fixture
def job_postings():
    """Two postings sharing an education question under different field ids."""
    return [
        {
            "_id": "job-a",
            "companyId": "co-1",
            "title": "Site Engineer",
            "customFields": [
                {
                    "fieldId": "edu_a",
                    "label": {"en": "Education Level", "ar": "المؤهل الدراسي"},
                    "choices": [{"en": "Bachelor", "ar": ""}],
                },
                {
                    "fieldId": "salary_a",
                    "label": {"en": "Expected Salary", "ar": "الراتب المتوقع"},
                },
                {
                    "fieldId": "exp_a",
                    "label": {"en": "Work Experience", "ar": "الخبرات العملية"},
                },
            ],
        },
        {
            "_id": {"_id": "job-b"},
            "companyId": {"_id": "co-2", "name": "Gulf Trading"},
            "title": {"en": "Accountant", "ar": "محاسب"},
            "customFields": [
                {
                    "fieldId": "edu_b",
                    "label": {"en": "Education Level", "ar": "المؤهل الدراسي"},
                    "choices": [{"en": "Master", "ar": ""}, {"en": "Bachelor", "ar": ""}],
                },
                {
                    "fieldId": "city",
                    "label": {"en": "City", "ar": "المدينة"},
                    "choices": [{"en": "Riyadh", "ar": "الرياض"}, {"en": "Jeddah", "ar": "جدة"}],
                },
                {"fieldId": "notes", "label": {"en": "Notes", "ar": ""}},
            ],
        },
    ]


@pytest.fixture
def applicants():
    """Applicants answering under ids, labels and top-level keys."""
    return [
        {
            "_id": "app-1",
            "status": "applied",
            "jobPositionId": "job-a",
            "gender": "ذكر",
            "birthDate": "1990-05-01",
            "cvUrl": "https://cdn.example.com/cv/app-1.pdf",
            "customResponses": {
                "edu_a": "Bachelor",
                "expected_salary": "4000",
                "Work Experience": [{"company": "Acme", "years": 3}],
            },
        },
        {
            "_id": "app-2",
            "status": "interview",
            "jobPositionId": {"_id": "job-b"},
            "gender": "Female",
            "birthDate": "15/03/1995",
            "customResponses": {
                "المؤهل الدراسي": "Master",
                "city": ["الرياض"],
                "notes": "Willing to relocate",
            },
        },
        {
            "_id": "app-3",
            "status": "trashed",
            "jobPositionId": "job-a",
            "customResponses": {"edu_a": "Bachelor"},
        },
    ]


@pytest.fixture
def storage_tiers():
    """A (session, local) pair of in-memory storage tiers."""
    return MemoryStorage(), MemoryStorage()


@pytest.fixture
def store(storage_tiers):
    """An empty filter store persisting to both in-memory tiers."""
    session, local = storage_tiers
    return FilterStore(session=session, local=local)
