import re
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any

# Keys that carry the "primitive" of an option-like object, in priority order
PRIMITIVE_KEYS = ("id", "_id", "value", "val", "en", "ar", "label", "name")

# Arabic-Indic (U+0660..) and extended Arabic-Indic (U+06F0..) digits, plus the
# Arabic thousands (U+066C) and decimal (U+066B) separators
ARABIC_DIGITS = str.maketrans(
    "٠١٢٣٤٥٦٧٨٩۰۱۲۳۴۵۶۷۸۹\u066c\u066b", "01234567890123456789,."
)

NUMBER_RE = re.compile(r"[0-9][0-9,]*(?:\.[0-9]+)?")
YEAR_RE = re.compile(r"(?<![0-9])(1[89][0-9]{2}|20[0-9]{2})(?![0-9])")


def scalar_text(value: Any) -> str:
    """String form of a scalar answer; booleans render as 'true'/'false'."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _primitives(item: Any) -> list[str]:
    if item is None or isinstance(item, bool):
        return []
    if isinstance(item, str):
        return [item]
    if isinstance(item, int | float):
        return [scalar_text(item)]
    if isinstance(item, Mapping):
        for key in PRIMITIVE_KEYS:
            value = item.get(key)
            if value is None:
                continue
            if isinstance(value, Mapping):
                return _primitives(value)
            if isinstance(value, list | tuple):
                # Multi-valued option, e.g. {"value": ["Excel", "Word"]}
                return extract_response_items(value)
            return [scalar_text(value)]
        # Free-form entries such as {"company": ..., "years": ...}
        for value in item.values():
            if isinstance(value, str | int | float) and not isinstance(value, bool):
                text = scalar_text(value)
                if text.strip():
                    return [text]
    return []


def _unique_non_blank(items: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(item for item in items if item and item.strip()))


def extract_response_items(raw: Any) -> list[str]:
    """
    Flatten an applicant answer into its comparable string items.

    - lists contribute the primitive of each element (an option's id, value,
      English/Arabic text, label or name; a list-valued primitive contributes
      each of its items);
    - objects contribute their primitive plus every scalar entry (value and
      key), and the key of every entry set to true;
    - scalars contribute their string form.

    Blank items are dropped, so an empty list means "no answer".
    """
    if raw is None:
        return []

    if isinstance(raw, list | tuple):
        return _unique_non_blank(p for item in raw for p in _primitives(item))

    if isinstance(raw, Mapping):
        candidates = _primitives(raw)
        for key, value in raw.items():
            if value is None or isinstance(value, Mapping | list | tuple):
                continue
            if isinstance(value, bool):
                if value:
                    candidates.append(str(key))
                continue
            candidates.append(scalar_text(value))
            candidates.append(str(key))
        return _unique_non_blank(candidates)

    return _unique_non_blank([scalar_text(raw)])


def response_text(raw: Any) -> str:
    """A single string form of an answer, used for substring matching."""
    if isinstance(raw, str):
        return raw
    return " ".join(extract_response_items(raw))


def is_empty_response(raw: Any) -> bool:
    return not extract_response_items(raw)


def extract_numbers(raw: Any) -> list[float]:
    """
    Pull every number out of an answer.

    Handles Arabic-Indic digits, thousands separators and free-form ranges
    such as "6,000 - 9,000" or "6000:9000".
    """
    if raw is None or isinstance(raw, bool):
        return []
    if isinstance(raw, int | float):
        return [float(raw)] if raw == raw and abs(raw) != float("inf") else []

    items = [raw] if isinstance(raw, str) else extract_response_items(raw)
    numbers: list[float] = []
    for item in items:
        text = item.translate(ARABIC_DIGITS)
        for match in NUMBER_RE.findall(text):
            try:
                numbers.append(float(match.replace(",", "")))
            except ValueError:
                continue
    return numbers


def parse_number(value: Any) -> float | None:
    """Parse a range bound; returns None for anything that is not a finite number."""
    numbers = extract_numbers(value)
    if not numbers:
        return None
    if isinstance(value, str) and value.strip().startswith("-"):
        return -numbers[0]
    return numbers[0]


def extract_year(raw: Any) -> int | None:
    """
    Read a year out of a birth-date answer.
    Accepts years, dates, ISO timestamps, dd/mm/yyyy strings and date-like objects.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, datetime | date):
        return raw.year
    if isinstance(raw, int | float):
        year = int(raw)
        return year if 1000 <= year <= 9999 else None

    if isinstance(raw, Mapping):
        for key in ("year", "$date", "date", "value"):
            year = extract_year(raw.get(key))
            if year is not None:
                return year
        return None

    if isinstance(raw, list | tuple):
        for item in raw:
            year = extract_year(item)
            if year is not None:
                return year
        return None

    text = str(raw).translate(ARABIC_DIGITS).strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).year
    except ValueError:
        pass
    match = YEAR_RE.search(text)
    return int(match.group(1)) if match else None


def observed_range(answers: Iterable[Any]) -> tuple[float, float] | None:
    """
    Smallest and largest positive number across a set of answers.
    Zero and negative entries are ignored; returns None when nothing numeric was seen.
    """
    numbers = [n for answer in answers for n in extract_numbers(answer) if n > 0]
    if not numbers:
        return None
    return min(numbers), max(numbers)
