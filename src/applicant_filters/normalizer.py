import re
import unicodedata
from typing import Any

# Left-to-right / right-to-left marks injected by RTL form inputs
BIDI_MARKS_RE = re.compile("[\u200e\u200f]")

# Anything that is not an ASCII word character, an Arabic-block character or whitespace
NON_WORD_RE = re.compile(r"[^0-9A-Za-z_\u0600-\u06ff\s]")

WHITESPACE_RE = re.compile(r"\s+")


def strip_bidi_marks(text: str) -> str:
    """Remove LRM/RLM marks."""
    return BIDI_MARKS_RE.sub("", text)


def normalize_loose(value: Any) -> str:
    """
    Normalize a label or response key for tolerant comparison.

    Folds compatibility forms to NFKC first so that stylized Latin
    (e.g. mathematical bold) and Arabic presentation forms compare equal
    to their plain letters, then replaces punctuation with spaces while
    keeping Latin and Arabic letters and digits.
    Non-string input normalizes to an empty string.
    """
    if not isinstance(value, str):
        return ""

    text = strip_bidi_marks(value)
    text = unicodedata.normalize("NFKC", text).lower()
    text = NON_WORD_RE.sub(" ", text)
    return WHITESPACE_RE.sub(" ", text).strip()


def normalize_light(value: Any) -> str:
    """
    Normalize for punctuation-sensitive comparison: drop bidi marks, trim, lowercase.
    """
    if not isinstance(value, str):
        return ""
    return strip_bidi_marks(value).strip().lower()


def expand_forms(text: str) -> list[str]:
    """
    Return the text together with its space->underscore and underscore->space variants.
    """
    if not text:
        return []

    forms: list[str] = []
    for form in (text, WHITESPACE_RE.sub("_", text), text.replace("_", " ")):
        if form not in forms:
            forms.append(form)
    return forms
