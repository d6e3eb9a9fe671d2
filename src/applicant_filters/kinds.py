import re
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict

from applicant_filters.models import FilterType
from applicant_filters.normalizer import normalize_light


class FieldCategory(StrEnum):
    WORK_EXPERIENCE = "work_experience"
    COURSES = "courses"
    PERSONAL_SKILLS = "personal_skills"
    EDUCATION_LEVEL = "education_level"
    ENGINEERING_SPECIALIZATION = "engineering_specialization"
    GENDER = "gender"
    BIRTHDATE = "birthdate"
    SALARY = "salary"
    CHOICES = "choices"
    TEXT = "text"


CATEGORY_FILTER_TYPES: dict[FieldCategory, FilterType] = {
    FieldCategory.WORK_EXPERIENCE: "hasWorkExperience",
    FieldCategory.COURSES: "hasField",
    FieldCategory.PERSONAL_SKILLS: "hasField",
    FieldCategory.EDUCATION_LEVEL: "hasField",
    FieldCategory.ENGINEERING_SPECIALIZATION: "hasField",
    FieldCategory.GENDER: "multi",
    FieldCategory.BIRTHDATE: "birthYear",
    FieldCategory.SALARY: "range",
    FieldCategory.CHOICES: "multi",
    FieldCategory.TEXT: "text",
}


class FilterKind(BaseModel):
    """How a merged field is rendered and filtered."""

    model_config = ConfigDict(frozen=True)

    category: FieldCategory
    filter_type: FilterType

    @property
    def is_presence(self) -> bool:
        return self.filter_type in ("hasWorkExperience", "hasField")

    @property
    def uses_gender_options(self) -> bool:
        return self.category is FieldCategory.GENDER


class FilterKindResolver:
    """
    Classifies merged fields into filter kinds using English and Arabic
    keyword matching on the field label.

    Categories are tested in the order of CATEGORY_KEYWORDS. Specific
    categories come first so that e.g. "Salary after work experience" is a
    work-experience field, not a salary range.
    """

    CATEGORY_KEYWORDS: list[tuple[FieldCategory, list[str], list[str]]] = [
        (
            FieldCategory.WORK_EXPERIENCE,
            ["work experience", "experience", "experiences", "employment history"],
            ["الخبرات", "خبرات", "الخبرة", "خبرة", "الخبره", "خبره", "سنوات الخبر"],
        ),
        (
            FieldCategory.COURSES,
            ["courses", "course", "certifications", "certification", "certificates", "training"],
            ["الدورات", "دورات", "دورة", "الشهادات", "شهادات", "التدريب", "تدريب"],
        ),
        (
            FieldCategory.PERSONAL_SKILLS,
            ["personal skills", "skills", "skill"],
            ["المهارات", "مهارات", "مهارة"],
        ),
        (
            FieldCategory.EDUCATION_LEVEL,
            ["education level", "education", "qualification", "qualifications", "degree"],
            ["المؤهل", "مؤهل", "المستوى التعليمي", "التعليم", "الدراسي"],
        ),
        (
            FieldCategory.ENGINEERING_SPECIALIZATION,
            [
                "engineering specialization",
                "engineering specializaion",
                "specialization",
                "specialisation",
                "specialty",
                "major",
            ],
            ["التخصص", "تخصص"],
        ),
        (
            FieldCategory.GENDER,
            ["gender", "sex"],
            ["الجنس", "النوع"],
        ),
        (
            FieldCategory.BIRTHDATE,
            ["birthdate", "birth date", "date of birth", "birthday", "dob"],
            ["تاريخ الميلاد", "الميلاد", "تاريخ الولادة"],
        ),
        (
            FieldCategory.SALARY,
            ["expected salary", "salary", "wage", "compensation", "pay"],
            ["الراتب", "راتب", "الأجر", "اجر"],
        ),
    ]

    def __init__(self) -> None:
        self.patterns: list[tuple[FieldCategory, re.Pattern[str]]] = []
        for category, english, arabic in self.CATEGORY_KEYWORDS:
            # English keywords match as whole words; spaces inside a keyword
            # also accept underscores and hyphens ("work_experience").
            eng_pattern = (
                r"\b(?:"
                + "|".join(re.escape(kw).replace(r"\ ", r"[\s_\-]*") for kw in english)
                + r")\b"
            )
            # Arabic words take attached prefixes/suffixes, so no word boundaries.
            ar_pattern = r"(?:" + "|".join(re.escape(kw) for kw in arabic) + r")"
            self.patterns.append(
                (category, re.compile(f"{eng_pattern}|{ar_pattern}", re.IGNORECASE))
            )

    @staticmethod
    def label_text(field: Any) -> str:
        label_en = getattr(field, "label_en", "") or ""
        label_ar = getattr(field, "label_ar", "") or ""
        return normalize_light(f"{label_en} {label_ar}")

    def category(self, field: Any) -> FieldCategory:
        text = self.label_text(field)
        if text:
            for category, pattern in self.patterns:
                if pattern.search(text):
                    return category

        if getattr(field, "choices", None):
            return FieldCategory.CHOICES
        return FieldCategory.TEXT

    def classify(self, field: Any) -> FilterKind:
        category = self.category(field)
        return FilterKind(category=category, filter_type=CATEGORY_FILTER_TYPES[category])


_default_resolver = FilterKindResolver()


def classify_filter_kind(field: Any) -> FilterKind:
    """Classify a merged field with the default keyword tables."""
    return _default_resolver.classify(field)
