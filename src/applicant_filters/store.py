import json
import logging
from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any, Literal

from pydantic import ValidationError

from applicant_filters.models import (
    BIRTHDATE_FIELD_ID,
    EXPECTED_SALARY_FIELD_ID,
    GENDER_FIELD_ID,
    HAS_CV_FIELD_ID,
    ColumnFilter,
    FilterDescriptor,
    FilterType,
    LocalizedText,
    MergedField,
    TableStateSnapshot,
    is_presence_type,
)
from applicant_filters.storage import KeyValueStorage
from applicant_filters.values import parse_number

logger = logging.getLogger(__name__)

DEFAULT_STATE_KEY = "applicants_table_state"

JOB_COLUMN = "jobPositionId"
COMPANY_COLUMN = "companyId"

# Hardcoded personal-information controls
GENDER_FIELD = MergedField(
    key=GENDER_FIELD_ID, field_id=GENDER_FIELD_ID, label=LocalizedText(en="Gender", ar="النوع")
)
BIRTHDATE_FIELD = MergedField(
    key=BIRTHDATE_FIELD_ID,
    field_id=BIRTHDATE_FIELD_ID,
    label=LocalizedText(en="Birth Date", ar="تاريخ الميلاد"),
)
HAS_CV_FIELD = MergedField(
    key=HAS_CV_FIELD_ID, field_id=HAS_CV_FIELD_ID, label=LocalizedText(en="Has CV", ar="لديه سيرة ذاتية")
)
EXPECTED_SALARY_FIELD = MergedField(
    key=EXPECTED_SALARY_FIELD_ID,
    field_id=EXPECTED_SALARY_FIELD_ID,
    label=LocalizedText(en="Expected Salary", ar="الراتب المتوقع"),
)

BirthMode = Literal["before", "after"]


class PresenceState(Enum):
    """State of a Has / No toggle pair."""

    UNSET = "unset"
    TRUE = "true"
    FALSE = "false"

    @classmethod
    def of(cls, descriptor: FilterDescriptor | None) -> "PresenceState":
        if descriptor is None or not isinstance(descriptor.value, bool):
            return cls.UNSET
        return cls.TRUE if descriptor.value else cls.FALSE


def next_presence_state(current: PresenceState, clicked: bool) -> PresenceState:
    """
    Clicking "Has" (True) or "No" (False) selects that state; clicking the
    already selected one returns to UNSET.
    """
    target = PresenceState.TRUE if clicked else PresenceState.FALSE
    return PresenceState.UNSET if current is target else target


def revert_descriptor(descriptor: FilterDescriptor) -> FilterDescriptor:
    """
    Invert one descriptor: presence filters flip true/false, birth-year
    filters flip before/after. Anything else is returned unchanged.
    """
    if descriptor.type == "birthYear":
        mode = "before" if descriptor.value.mode == "after" else "after"
        return descriptor.with_value({"year": descriptor.value.year, "mode": mode})
    if is_presence_type(descriptor.type) and isinstance(descriptor.value, bool):
        return descriptor.with_value(not descriptor.value)
    return descriptor


def read_state(
    tiers: Iterable[KeyValueStorage | None], state_key: str = DEFAULT_STATE_KEY
) -> dict[str, Any]:
    """
    Read the persisted table state from the first tier that has it.
    Unreadable or malformed blobs are skipped.
    """
    for tier in tiers:
        if tier is None:
            continue
        try:
            raw = tier.get_item(state_key)
        except Exception as e:
            logger.warning(f"Could not read filter state from {type(tier).__name__}: {e}")
            continue
        if not raw:
            continue
        try:
            parsed = json.loads(raw)
        except ValueError as e:
            logger.warning(f"Ignoring malformed filter state in {type(tier).__name__}: {e}")
            continue
        if isinstance(parsed, dict):
            return parsed
    return {}


def _field_label(field: Any) -> tuple[str | None, str | None]:
    return getattr(field, "label_en", None) or None, getattr(field, "label_ar", None) or None


def _filter_id(field: Any) -> str:
    return getattr(field, "filter_id", None) or getattr(field, "field_id", "")


class FilterStore:
    """
    The active filter descriptors plus the job/company column filters.

    Every descriptor change goes through ``update``, which reads the current
    descriptor for a field id, replaces it (or inserts, or removes when the
    new value is None) and persists the whole state to both storage tiers.
    """

    def __init__(
        self,
        filters: Iterable[FilterDescriptor] = (),
        column_filters: Iterable[ColumnFilter] = (),
        *,
        session: KeyValueStorage | None = None,
        local: KeyValueStorage | None = None,
        state_key: str = DEFAULT_STATE_KEY,
    ) -> None:
        self.session = session
        self.local = local
        self.state_key = state_key
        self._filters: list[FilterDescriptor] = []
        for descriptor in filters:
            if self._index(descriptor.field_id) is None:
                self._filters.append(descriptor)
        self._column_filters: list[ColumnFilter] = list(column_filters)

    @classmethod
    def load(
        cls,
        session: KeyValueStorage | None = None,
        local: KeyValueStorage | None = None,
        state_key: str = DEFAULT_STATE_KEY,
    ) -> "FilterStore":
        """
        Rehydrate from storage. The short-lived tier wins; the long-lived tier
        is used when the short-lived one has been cleared.
        """
        state = TableStateSnapshot.model_validate(read_state((session, local), state_key))

        parsed = (FilterDescriptor.from_raw(raw) for raw in state.custom_filters)
        filters = [descriptor for descriptor in parsed if descriptor is not None]

        column_filters: list[ColumnFilter] = []
        for raw in state.column_filters:
            try:
                column_filters.append(ColumnFilter.model_validate(raw))
            except ValidationError:
                logger.debug(f"Dropping invalid column filter: {raw!r}")

        logger.debug(f"Loaded {len(filters)} filters from storage")
        return cls(filters, column_filters, session=session, local=local, state_key=state_key)

    # --- reading ---

    @property
    def filters(self) -> list[FilterDescriptor]:
        return list(self._filters)

    @property
    def column_filters(self) -> list[ColumnFilter]:
        return list(self._column_filters)

    def __len__(self) -> int:
        return len(self._filters)

    def _index(self, field_id: str) -> int | None:
        for i, descriptor in enumerate(self._filters):
            if descriptor.field_id == field_id:
                return i
        return None

    def get(self, field_id: str) -> FilterDescriptor | None:
        index = self._index(field_id)
        return None if index is None else self._filters[index]

    def active_filter_count(self) -> int:
        """Descriptors plus one per non-empty job/company selection."""
        count = len(self._filters)
        if self.selected_company_ids():
            count += 1
        if self.selected_job_ids():
            count += 1
        return count

    # --- the replace-by-field-id primitive ---

    def update(
        self,
        field_id: str,
        change: Callable[[FilterDescriptor | None], FilterDescriptor | None],
    ) -> FilterDescriptor | None:
        """
        Apply ``change`` to the current descriptor of ``field_id``.

        ``change`` always receives the latest stored descriptor. Returning
        None removes the descriptor; returning a descriptor replaces the old
        one in place or appends it. A change that does not validate (no
        field id, an empty option) leaves the store untouched.
        """
        index = self._index(field_id)
        current = None if index is None else self._filters[index]
        try:
            new = change(current)
        except ValidationError as e:
            logger.warning(f"Ignoring invalid filter change for '{field_id}': {e}")
            return current

        if new is not None and new.field_id != field_id:
            raise ValueError(f"Descriptor for '{new.field_id}' cannot replace '{field_id}'")

        if new is None:
            if index is not None:
                del self._filters[index]
        elif index is None:
            self._filters.append(new)
        else:
            self._filters[index] = new

        self.persist()
        return new

    def remove(self, field_id: str) -> None:
        self.update(field_id, lambda _: None)

    def _build(self, field: Any, filter_type: FilterType, value: Any, **extra: Any) -> FilterDescriptor:
        label_en, label_ar = _field_label(field)
        return FilterDescriptor(
            field_id=_filter_id(field),
            label_en=label_en,
            label_ar=label_ar,
            type=filter_type,
            value=value,
            field_ids=list(getattr(field, "field_ids", None) or []) or None,
            **extra,
        )

    # --- per-type mutations ---

    def toggle_choice(self, field: Any, option_id: str) -> FilterDescriptor | None:
        """Add or remove one option of a multi-select; the last option removed drops the filter."""
        choices = getattr(field, "choices", None) or None
        if not option_id:
            return self.get(_filter_id(field))

        def change(current: FilterDescriptor | None) -> FilterDescriptor | None:
            selected = list(current.value) if current and current.type == "multi" else []
            if option_id in selected:
                selected.remove(option_id)
            else:
                selected.append(option_id)
            if not selected:
                return None
            return self._build(field, "multi", selected, choices=choices)

        return self.update(_filter_id(field), change)

    def set_choices(self, field: Any, option_ids: Iterable[str]) -> FilterDescriptor | None:
        selected = list(dict.fromkeys(o for o in option_ids if o))
        choices = getattr(field, "choices", None) or None
        return self.update(
            _filter_id(field),
            lambda _: self._build(field, "multi", selected, choices=choices) if selected else None,
        )

    def toggle_gender(
        self, option_id: str, gender_options: Iterable[dict[str, Any]]
    ) -> FilterDescriptor | None:
        """Toggle a gender option; options are the caller's ``{id, title}`` list."""
        field = MergedField(
            key=GENDER_FIELD.key,
            field_id=GENDER_FIELD.field_id,
            label=GENDER_FIELD.label,
            choices=list(gender_options),
        )
        return self.toggle_choice(field, option_id)

    def set_range(
        self,
        field: Any,
        minimum: Any = None,
        maximum: Any = None,
        observed: tuple[float, float] | None = None,
    ) -> FilterDescriptor | None:
        """
        Set numeric bounds. The filter is dropped when both bounds are empty,
        or when ``observed`` is given and the bounds cover all of it.
        """

        def change(current: FilterDescriptor | None) -> FilterDescriptor | None:
            low, high = parse_number(minimum), parse_number(maximum)
            if low is None and high is None:
                return None
            if observed is not None:
                covers_low = low is None or low <= observed[0]
                covers_high = high is None or high >= observed[1]
                if covers_low and covers_high:
                    return None
            return self._build(field, "range", {"min": minimum, "max": maximum})

        return self.update(_filter_id(field), change)

    def set_birth_year(
        self, year: Any, field: Any = BIRTHDATE_FIELD
    ) -> FilterDescriptor | None:
        """Set the year of a birth-year filter, keeping its mode. An empty year removes it."""

        def change(current: FilterDescriptor | None) -> FilterDescriptor | None:
            parsed = parse_number(year)
            if parsed is None or parsed == 0:
                return None
            mode = current.value.mode if current and current.type == "birthYear" else "after"
            return self._build(field, "birthYear", {"year": int(parsed), "mode": mode})

        return self.update(_filter_id(field), change)

    def set_birth_mode(self, mode: BirthMode, field: Any = BIRTHDATE_FIELD) -> FilterDescriptor | None:
        """Switch before/after. Without a year there is nothing to persist."""

        def change(current: FilterDescriptor | None) -> FilterDescriptor | None:
            if current is None or current.type != "birthYear":
                return current
            return current.with_value({"year": current.value.year, "mode": mode})

        return self.update(_filter_id(field), change)

    def click_presence(
        self, field: Any, clicked: bool, filter_type: FilterType = "hasField"
    ) -> FilterDescriptor | None:
        """Handle a click on "Has" (True) or "No" (False)."""

        def change(current: FilterDescriptor | None) -> FilterDescriptor | None:
            state = next_presence_state(PresenceState.of(current), clicked)
            if state is PresenceState.UNSET:
                return None
            return self._build(field, filter_type, state is PresenceState.TRUE)

        return self.update(_filter_id(field), change)

    def click_has_cv(self, clicked: bool) -> FilterDescriptor | None:
        return self.click_presence(HAS_CV_FIELD, clicked, filter_type="hasCV")

    def set_text(self, field: Any, text: str | None) -> FilterDescriptor | None:
        value = (text or "").strip()
        return self.update(
            _filter_id(field), lambda _: self._build(field, "text", value) if value else None
        )

    # --- batch actions ---

    def clear(self) -> None:
        """Drop every descriptor and the job/company selection."""
        self._filters = []
        self._column_filters = [
            c for c in self._column_filters if c.id not in (JOB_COLUMN, COMPANY_COLUMN)
        ]
        self.persist()

    def revert(self) -> None:
        """Invert every presence and birth-year filter in place. Never adds filters."""
        self._filters = [revert_descriptor(d) for d in self._filters]
        self.persist()

    # --- job / company selection ---

    def _selected(self, column: str) -> list[str]:
        for column_filter in self._column_filters:
            if column_filter.id != column:
                continue
            value = column_filter.value
            if isinstance(value, list):
                return [str(v) for v in value if v is not None and str(v)]
            if isinstance(value, str) and value:
                return [value]
        return []

    def _select(self, column: str, ids: Iterable[str]) -> None:
        selected = list(dict.fromkeys(str(i) for i in ids if i))
        self._column_filters = [c for c in self._column_filters if c.id != column]
        if selected:
            self._column_filters.append(ColumnFilter(id=column, value=selected))
        self.persist()

    def selected_job_ids(self) -> list[str]:
        return self._selected(JOB_COLUMN)

    def selected_company_ids(self) -> list[str]:
        return self._selected(COMPANY_COLUMN)

    def select_jobs(self, job_ids: Iterable[str]) -> None:
        self._select(JOB_COLUMN, job_ids)

    def select_companies(self, company_ids: Iterable[str]) -> None:
        self._select(COMPANY_COLUMN, company_ids)

    # --- persistence ---

    def snapshot(self) -> TableStateSnapshot:
        """The state blob as it would be written, merged with what storage already holds."""
        snapshot = TableStateSnapshot.model_validate(
            read_state((self.session, self.local), self.state_key)
        )
        snapshot.custom_filters = [d.to_json_dict() for d in self._filters]
        snapshot.column_filters = [c.model_dump(mode="json") for c in self._column_filters]
        return snapshot

    def persist(self) -> None:
        """
        Write the state to both tiers. Failures are logged and swallowed:
        the in-memory store stays authoritative for the session.
        """
        if self.session is None and self.local is None:
            return
        try:
            payload = self.snapshot().model_dump_json(by_alias=True)
        except Exception as e:
            logger.warning(f"Could not serialize filter state: {e}")
            return

        for tier in (self.session, self.local):
            if tier is None:
                continue
            try:
                tier.set_item(self.state_key, payload)
            except Exception as e:
                logger.warning(f"Could not persist filter state to {type(tier).__name__}: {e}")
