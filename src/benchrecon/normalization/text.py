"""String folding helpers shared by the normalizers."""

from __future__ import annotations

import re

_WS = re.compile(r"\s+")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_YEAR_SUFFIX = re.compile(r"[\s_\-]*\(?(?:19|20)\d{2}\)?$")
_STOPWORDS = frozenset({"and", "of", "the"})


def collapse_ws(value: str) -> str:
    return _WS.sub(" ", value).strip()


def fold(value: str) -> str:
    """Loose comparison form: lowercase, ``&`` as "and", no punctuation or
    conjunctions, single spaces."""
    text = value.lower().replace("&", " and ")
    words = [w for w in _NON_ALNUM.sub(" ", text).split() if w not in _STOPWORDS]
    return " ".join(words)


def casefold_label(value: str) -> str:
    return collapse_ws(value).lower()


def snake(value: str) -> str:
    """``"Total Cash Comp ($)"`` -> ``"total_cash_comp"``."""
    return _NON_ALNUM.sub("_", value.lower()).strip("_")


def strip_year_suffix(value: str) -> str:
    """``"MGMA 2024"`` -> ``"MGMA"``; repeated suffixes are all removed."""
    text = collapse_ws(value)
    while True:
        stripped = _YEAR_SUFFIX.sub("", text).strip()
        if stripped == text or not stripped:
            return stripped or text
        text = stripped


def source_key(value: str) -> str:
    return strip_year_suffix(value).lower()


def title_case(value: str) -> str:
    """Title-case each hyphen/space separated word, keeping all-caps acronyms."""
    def _word(word: str) -> str:
        if len(word) > 1 and word.isupper():
            return word
        return "-".join(part[:1].upper() + part[1:].lower() for part in word.split("-"))

    return " ".join(_word(w) for w in collapse_ws(value).split(" "))


def has_word(text: str, *words: str) -> bool:
    """Whole-word containment on an already lowercased string."""
    return any(re.search(rf"(?<![a-z0-9]){re.escape(w)}(?![a-z0-9])", text) for w in words)
