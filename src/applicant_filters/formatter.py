from typing import Any

from applicant_filters.kinds import FilterKind
from applicant_filters.models import FilterDescriptor, MergedField


class FilterFormatter:
    """
    Formats filter descriptors and merged fields as short bilingual text
    for filter chips and command-line listings.
    """

    DISPLAY_KEYS = ("en", "ar", "name", "companyName", "title")

    @classmethod
    def display_text(cls, value: Any) -> str:
        """
        Plain text for a value that may be a localized {en, ar} object.
        """
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        if isinstance(value, dict):
            for key in cls.DISPLAY_KEYS:
                text = value.get(key)
                if isinstance(text, str) and text.strip():
                    return text
            return ""
        return str(value)

    @staticmethod
    def label(en: str | None, ar: str | None, fallback: str = "Custom Field") -> str:
        if en and ar:
            return f"{en} / {ar}"
        return en or ar or fallback

    @classmethod
    def format_descriptor(cls, descriptor: FilterDescriptor) -> str:
        """
        One-line summary of an active filter, e.g. "Birth Date: before 1990".
        """
        label = descriptor.label_en or descriptor.label_ar or descriptor.field_id
        value = descriptor.value

        if descriptor.type == "multi":
            titles = []
            for option in value:
                match = next((c for c in descriptor.choices or [] if c.option_id == option), None)
                titles.append((match.en or match.ar or option) if match else option)
            return f"{label}: {', '.join(titles)}"

        if descriptor.type == "range":
            if value.min is not None and value.max is not None:
                return f"{label}: {value.min} - {value.max}"
            if value.min is not None:
                return f"{label}: >= {value.min}"
            return f"{label}: <= {value.max}"

        if descriptor.type == "birthYear":
            return f"{label}: {value.mode} {value.year}"

        if isinstance(value, bool):
            return f"{label}: {'Yes' if value else 'No'}"

        return f'{label}: contains "{value}"'

    @classmethod
    def format_field(cls, field: MergedField, kind: FilterKind) -> str:
        """
        One listing line for a merged field with its filter kind.
        """
        title = cls.label(field.label_en, field.label_ar)
        jobs = len(field.jobs)
        line = f"{title} [{kind.filter_type}] ({jobs} job{'s' if jobs != 1 else ''})"
        if field.choices:
            choices = ", ".join(choice.title for choice in field.choices)
            line += f"\n    choices: {choices}"
        return line
