import logging
from typing import Any, Literal, get_args

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)

logger = logging.getLogger(__name__)

FilterType = Literal["multi", "range", "birthYear", "hasCV", "hasWorkExperience", "hasField", "text"]

FILTER_TYPES: frozenset[str] = frozenset(get_args(FilterType))

PRESENCE_TYPES: frozenset[str] = frozenset({"hasCV", "hasWorkExperience", "hasField"})


def is_presence_type(filter_type: str) -> bool:
    """Known presence types plus stored legacy ones such as "hasEducation"."""
    return filter_type in PRESENCE_TYPES or filter_type.startswith("has")


# Pseudo field ids for the hardcoded personal-information filters
GENDER_FIELD_ID = "__gender"
BIRTHDATE_FIELD_ID = "__birthdate"
HAS_CV_FIELD_ID = "__has_cv"
EXPECTED_SALARY_FIELD_ID = "__expected_salary"


def normalize_id(value: Any) -> str | None:
    """
    Reduce an id that may be a string, a number or a populated document
    ({"_id": ...} / {"id": ...}) to a plain string.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value or None
    if isinstance(value, int | float):
        return str(value)
    if isinstance(value, dict):
        for key in ("_id", "id"):
            nested = normalize_id(value.get(key))
            if nested:
                return nested
    return None


def _to_text(value: Any) -> str:
    """Coerce a scalar to text; None and containers become an empty string."""
    if value is None or isinstance(value, dict | list):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class LocalizedText(BaseModel):
    """An English/Arabic pair. Either side may be empty."""

    model_config = ConfigDict(frozen=True)

    en: str = ""
    ar: str = ""

    @model_validator(mode="before")
    @classmethod
    def coerce_input(cls, data: Any) -> Any:
        if data is None:
            return {}
        if isinstance(data, str):
            return {"en": data}
        if isinstance(data, dict):
            return {"en": _to_text(data.get("en")), "ar": _to_text(data.get("ar"))}
        return data


class Choice(BaseModel):
    """A selectable option of a multi-select field."""

    model_config = ConfigDict(frozen=True)

    en: str = ""
    ar: str = ""
    id: str | None = None

    @model_validator(mode="before")
    @classmethod
    def coerce_input(cls, data: Any) -> Any:
        if isinstance(data, str | int | float):
            return {"en": _to_text(data)}
        if isinstance(data, dict):
            option_id = data.get("id")
            return {
                "en": _to_text(data.get("en", data.get("title"))),
                "ar": _to_text(data.get("ar")),
                "id": _to_text(option_id) or None,
            }
        return data

    @property
    def option_id(self) -> str:
        """The value stored in a multi-select descriptor when this choice is picked."""
        return self.id or self.en or self.ar

    @property
    def title(self) -> str:
        return f"{self.en}{' / ' + self.ar if self.ar else ''}"


def _coerce_choices(value: Any) -> list[Choice] | None:
    if not isinstance(value, list):
        return None
    choices: list[Choice] = []
    for item in value:
        try:
            choices.append(Choice.model_validate(item))
        except ValidationError:
            logger.debug(f"Skipping malformed choice: {item!r}")
    return choices


class FieldRef(BaseModel):
    """The minimal shape the response resolver needs to look a field up."""

    model_config = ConfigDict(frozen=True)

    field_id: str = ""
    label_en: str = ""
    label_ar: str = ""
    # Further ids the same question was declared under by other postings
    field_ids: tuple[str, ...] = ()


class FieldDefinition(BaseModel):
    """
    A custom question declared by a job posting.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    field_id: str = Field(default="", alias="fieldId")
    label: LocalizedText = Field(default_factory=LocalizedText)
    choices: list[Choice] | None = None

    @field_validator("field_id", mode="before")
    @classmethod
    def coerce_field_id(cls, value: Any) -> str:
        return _to_text(value)

    @field_validator("choices", mode="before")
    @classmethod
    def coerce_choices(cls, value: Any) -> list[Choice] | None:
        return _coerce_choices(value)

    @property
    def label_en(self) -> str:
        return self.label.en

    @property
    def label_ar(self) -> str:
        return self.label.ar

    @property
    def is_usable(self) -> bool:
        """A field with no id and no label in either language cannot be matched."""
        return bool(self.field_id or self.label.en or self.label.ar)

    @classmethod
    def from_raw(cls, raw: Any) -> "FieldDefinition | None":
        """Parse an untyped field definition, returning None when it is unusable."""
        try:
            field = cls.model_validate(raw)
        except ValidationError as e:
            logger.debug(f"Skipping malformed field definition: {e}")
            return None
        return field if field.is_usable else None


class JobPosting(BaseModel):
    """
    A job posting as handed over by the job-positions service.
    Ids may arrive as plain strings or as populated documents.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str | None = Field(default=None, validation_alias=AliasChoices("_id", "id"))
    company_id: str | None = Field(
        default=None, validation_alias=AliasChoices("companyId", "company", "companyObj")
    )
    title: str = ""
    custom_fields: list[FieldDefinition] = Field(
        default_factory=list, validation_alias=AliasChoices("customFields", "custom_fields")
    )

    @field_validator("id", "company_id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> str | None:
        return normalize_id(value)

    @field_validator("title", mode="before")
    @classmethod
    def coerce_title(cls, value: Any) -> str:
        if isinstance(value, dict):
            return _to_text(value.get("en")) or _to_text(value.get("ar"))
        return _to_text(value)

    @field_validator("custom_fields", mode="before")
    @classmethod
    def coerce_custom_fields(cls, value: Any) -> list[FieldDefinition]:
        if not isinstance(value, list):
            return []
        parsed = (FieldDefinition.from_raw(item) for item in value)
        return [field for field in parsed if field is not None]

    @classmethod
    def from_raw(cls, raw: Any) -> "JobPosting | None":
        """Parse an untyped job posting, returning None when it cannot be read."""
        if isinstance(raw, JobPosting):
            return raw
        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            logger.debug(f"Skipping malformed job posting: {e}")
            return None


class MergedField(BaseModel):
    """
    One filterable question after merging equivalent fields across job postings.
    """

    key: str
    field_id: str = ""
    label: LocalizedText = Field(default_factory=LocalizedText)
    choices: list[Choice] = Field(default_factory=list)
    jobs: set[str] = Field(default_factory=set)
    # Every contributing fieldId, first-seen order
    field_ids: list[str] = Field(default_factory=list)

    @property
    def label_en(self) -> str:
        return self.label.en

    @property
    def label_ar(self) -> str:
        return self.label.ar

    @property
    def filter_id(self) -> str:
        """The id a filter descriptor for this field is stored under."""
        return self.field_id or self.key


class RangeValue(BaseModel):
    """Inclusive numeric bounds, kept as entered."""

    model_config = ConfigDict(frozen=True)

    min: str | None = None
    max: str | None = None

    @field_validator("min", "max", mode="before")
    @classmethod
    def coerce_bound(cls, value: Any) -> str | None:
        text = _to_text(value).strip()
        return text or None

    @property
    def is_empty(self) -> bool:
        return self.min is None and self.max is None


class BirthYearValue(BaseModel):
    """A strict before/after comparison against a birth year."""

    model_config = ConfigDict(frozen=True)

    year: int
    mode: Literal["before", "after"] = "after"


class FilterDescriptor(BaseModel):
    """
    One active filter. The shape of ``value`` depends on ``type``.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    field_id: str = Field(alias="fieldId")
    label_en: str | None = Field(default=None, alias="labelEn")
    label_ar: str | None = Field(default=None, alias="labelAr")
    type: str
    value: Any
    choices: list[Choice] | None = None
    # Every field id the answer may be stored under, for fields merged across postings
    field_ids: list[str] | None = Field(default=None, alias="fieldIds")

    @field_validator("field_id", mode="before")
    @classmethod
    def coerce_field_id(cls, value: Any) -> str:
        text = _to_text(value)
        if not text:
            raise ValueError("fieldId must not be empty")
        return text

    @field_validator("type")
    @classmethod
    def validate_type(cls, value: str) -> str:
        if value not in FILTER_TYPES and not is_presence_type(value):
            raise ValueError(f"unknown filter type '{value}'")
        return value

    @field_validator("choices", mode="before")
    @classmethod
    def coerce_choices(cls, value: Any) -> list[Choice] | None:
        return _coerce_choices(value)

    @field_validator("field_ids", mode="before")
    @classmethod
    def coerce_field_ids(cls, value: Any) -> list[str] | None:
        if not isinstance(value, list):
            return None
        ids = [_to_text(v) for v in value if _to_text(v)]
        return list(dict.fromkeys(ids)) or None

    @field_validator("value", mode="before")
    @classmethod
    def validate_value(cls, value: Any, info: ValidationInfo) -> Any:
        filter_type = info.data.get("type")
        if filter_type == "multi":
            if isinstance(value, str):
                value = [value]
            if not isinstance(value, list):
                raise ValueError("multi filters need a list of option ids")
            options = [_to_text(v) for v in value if _to_text(v)]
            if not options:
                raise ValueError("multi filters need at least one option")
            return list(dict.fromkeys(options))
        if filter_type == "range":
            bounds = value if isinstance(value, RangeValue) else RangeValue.model_validate(value)
            if bounds.is_empty:
                raise ValueError("range filters need at least one bound")
            return bounds
        if filter_type == "birthYear":
            return value if isinstance(value, BirthYearValue) else BirthYearValue.model_validate(value)
        if filter_type and is_presence_type(filter_type):
            if not isinstance(value, bool):
                raise ValueError(f"{filter_type} filters need a boolean value")
            return value
        if filter_type == "text":
            text = _to_text(value)
            if not text:
                raise ValueError("text filters need a non-empty value")
            return text
        return value

    @classmethod
    def from_raw(cls, raw: Any) -> "FilterDescriptor | None":
        """Parse a persisted descriptor, returning None when it is invalid."""
        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            logger.debug(f"Dropping invalid filter descriptor: {e}")
            return None

    def with_value(self, value: Any) -> "FilterDescriptor":
        """Return a re-validated copy holding a new value."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        data["value"] = value
        return FilterDescriptor.model_validate(data)

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ColumnFilter(BaseModel):
    """A table column filter, e.g. ``{"id": "jobPositionId", "value": [...]}``."""

    id: str
    value: Any = None


class TableStateSnapshot(BaseModel):
    """
    The persisted table state blob. Keys other than the two filter lists
    belong to other collaborators and are carried through untouched.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    custom_filters: list[Any] = Field(default_factory=list, alias="customFilters")
    column_filters: list[Any] = Field(default_factory=list, alias="columnFilters")

    @field_validator("custom_filters", "column_filters", mode="before")
    @classmethod
    def coerce_list(cls, value: Any) -> list[Any]:
        return value if isinstance(value, list) else []
