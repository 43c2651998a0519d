"""Canonical-name resolution for specialty, region and provider type."""

from __future__ import annotations

from typing import Callable

from benchrecon.models.mapping import Dimension, MappingSnapshot
from benchrecon.normalization.text import (
    casefold_label,
    collapse_ws,
    fold,
    has_word,
    source_key,
    title_case,
)

DEFAULTS: dict[Dimension, str] = {
    Dimension.SPECIALTY: "Unknown",
    Dimension.PROVIDER_TYPE: "Physician",
    Dimension.REGION: "National",
}

Heuristic = Callable[[str], str | None]

# ---------------------------------------------------------------------------
# Dimension heuristics
# ---------------------------------------------------------------------------

REGION_SUBREGIONS: tuple[str, ...] = (
    "great lakes", "plains", "central", "mountain", "pacific", "atlantic",
    "new england", "mid-atlantic", "south atlantic",
    "east north central", "west north central",
    "east south central", "west south central",
)


def region_heuristic(label: str) -> str | None:
    text = label.lower()
    if has_word(text, *REGION_SUBREGIONS):
        return title_case(label)
    if has_word(text, "midwest", "mid west", "midwestern", "nc"):
        return "Midwest"
    if "west" in text:
        return "West"
    if has_word(text, "south", "southern", "southeast", "south east", "southeastern", "se"):
        return "South"
    if has_word(text, "northeast", "north east", "northeastern", "east", "eastern", "ne"):
        return "Northeast"
    if has_word(text, "national", "all", "nationwide", "us", "usa", "united states"):
        return "National"
    return title_case(label)


LEADERSHIP_WORDS: tuple[str, ...] = (
    "chief", "chair", "chairman", "chairperson", "vice chair", "director",
    "head", "president", "officer", "dean", "administrator", "executive", "cmo",
)


def provider_type_heuristic(label: str) -> str | None:
    text = label.lower()
    if has_word(text, *LEADERSHIP_WORDS):
        return title_case(label)
    if has_word(text, "crna", "nurse anesthetist", "nurse anesthetists"):
        return "CRNA"
    if has_word(text, "np", "nurse practitioner", "nurse practitioners", "aprn"):
        return "Nurse Practitioner"
    if has_word(text, "pa", "pa-c", "physician assistant", "physician assistants"):
        return "Physician Assistant"
    if has_word(text, "app", "apc", "advanced practice", "advanced practice provider",
                "midlevel", "mid-level"):
        return "Advanced Practice Provider"
    if has_word(text, "physician", "physicians", "md", "do", "doctor", "phys"):
        return "Physician"
    return None


HEURISTICS: dict[Dimension, Heuristic | None] = {
    Dimension.REGION: region_heuristic,
    Dimension.PROVIDER_TYPE: provider_type_heuristic,
    Dimension.SPECIALTY: None,
}


# ---------------------------------------------------------------------------
# Normalizer
# ---------------------------------------------------------------------------

class NameNormalizer:
    """Resolve raw vendor labels for one dimension against one snapshot.

    Order: curated exact, curated fuzzy, learned, heuristic, passthrough.
    Results are memoized for the lifetime of the instance, which is bound
    to a single MappingSnapshot.
    """

    def __init__(
        self,
        dimension: Dimension,
        snapshot: MappingSnapshot,
        heuristic: Heuristic | None = None,
    ) -> None:
        self.dimension = dimension
        self._heuristic = heuristic if heuristic is not None else HEURISTICS.get(dimension)
        self._default = DEFAULTS.get(dimension, "")
        self._learned = snapshot.learned_for(dimension)
        self._exact: dict[tuple[str, str], str] = {}
        self._fuzzy: dict[tuple[str, str], str] = {}
        for entry in snapshot.table(dimension):
            for src in entry.source_entries:
                key = source_key(src.survey_source)
                self._exact.setdefault((key, casefold_label(src.original_label)),
                                       entry.standardized_name)
                self._fuzzy.setdefault((fold(key), fold(src.original_label)),
                                       entry.standardized_name)
        self._memo: dict[tuple[str, str], str] = {}

    def normalize(self, raw: str | None, survey_source: str = "") -> str:
        if raw is None:
            return self._default
        label = collapse_ws(str(raw))
        if not label:
            return self._default

        memo_key = (source_key(survey_source), label)
        cached = self._memo.get(memo_key)
        if cached is not None:
            return cached

        resolved = self._resolve(label, memo_key[0])
        self._memo[memo_key] = resolved
        return resolved

    def _resolve(self, label: str, src: str) -> str:
        hit = self._exact.get((src, label.lower()))
        if hit is not None:
            return hit
        hit = self._fuzzy.get((fold(src), fold(label)))
        if hit is not None:
            return hit
        hit = self._learned.get(label.lower())
        if hit is not None:
            return hit
        if self._heuristic is not None:
            guess = self._heuristic(label)
            if guess:
                return guess
        return label


def build_name_normalizers(snapshot: MappingSnapshot) -> dict[Dimension, NameNormalizer]:
    return {
        dim: NameNormalizer(dim, snapshot)
        for dim in (Dimension.SPECIALTY, Dimension.REGION, Dimension.PROVIDER_TYPE)
    }
