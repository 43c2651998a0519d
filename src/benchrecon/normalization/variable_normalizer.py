"""Canonical-key resolution for variable labels."""

from __future__ import annotations

from dataclasses import dataclass

from benchrecon.models.mapping import Dimension, MappingSnapshot
from benchrecon.models.variables import VariableCategory
from benchrecon.normalization import variable_rules
from benchrecon.normalization.text import casefold_label, collapse_ws, snake, source_key


@dataclass(frozen=True)
class _Resolution:
    key: str
    ambiguous: bool = False


class VariableNormalizer:
    """Map vendor variable labels to vendor-independent canonical keys.

    Curated table (source-scoped, then label only), learned overrides,
    the alias dictionary and finally the rule table. Curated and learned
    targets are themselves canonicalized, so a table entry of
    "Total Cash Compensation" still lands on ``tcc``. An optional median
    hint corrects ambiguous rule hits whose magnitude says per-wRVU rate.
    """

    def __init__(self, snapshot: MappingSnapshot) -> None:
        self._learned = snapshot.learned_for(Dimension.VARIABLE)
        self._scoped: dict[tuple[str, str], str] = {}
        self._agnostic: dict[str, str] = {}
        for entry in snapshot.table(Dimension.VARIABLE):
            for src in entry.source_entries:
                label = casefold_label(src.original_label)
                self._scoped.setdefault((source_key(src.survey_source), label),
                                        entry.standardized_name)
                self._agnostic.setdefault(label, entry.standardized_name)
        self._memo: dict[tuple[str, str], _Resolution] = {}

    def normalize(self, raw: str, survey_source: str = "",
                  median: float | None = None) -> str:
        label = collapse_ws(str(raw))
        if not label:
            return ""
        memo_key = (source_key(survey_source), label)
        resolution = self._memo.get(memo_key)
        if resolution is None:
            resolution = self._resolve(label, memo_key[0])
            self._memo[memo_key] = resolution
        if resolution.ambiguous:
            return variable_rules.apply_magnitude(resolution.key, median)
        return resolution.key

    def _resolve(self, label: str, src: str) -> _Resolution:
        lowered = label.lower()
        curated = self._scoped.get((src, lowered)) or self._agnostic.get(lowered)
        if curated is not None:
            return _Resolution(canonicalize(curated))
        learned = self._learned.get(lowered)
        if learned is not None:
            return _Resolution(canonicalize(learned))

        alias = variable_rules.alias_lookup(label)
        if alias is not None:
            return _Resolution(alias)

        rule = variable_rules.classify(label)
        if rule is not None:
            return _Resolution(rule.key, ambiguous=rule.ambiguous)
        return _Resolution(snake(label))

    @staticmethod
    def category_for(key: str) -> VariableCategory:
        return variable_rules.category_for(key)

    @staticmethod
    def display_name(key: str) -> str:
        return variable_rules.display_name(key)


def canonicalize(name: str) -> str:
    """Alias-resolve a curated name; otherwise its snake form."""
    return variable_rules.alias_lookup(name) or snake(name)
