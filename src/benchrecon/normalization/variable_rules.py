"""Static variable vocabulary and the ordered classification rule table."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable

from benchrecon.models.variables import VariableCategory
from benchrecon.normalization.text import collapse_ws, has_word, snake

# ---------------------------------------------------------------------------
# Alias dictionary (snake-folded label -> canonical key)
# ---------------------------------------------------------------------------

_ALIAS_GROUPS: dict[str, tuple[str, ...]] = {
    "tcc": (
        "tcc", "total_cash_compensation", "total_compensation", "total_cash_comp",
        "cash_compensation", "total_comp",
    ),
    "tcc_excluding_premium": ("tcc_excluding_premium", "tcc_excluding"),
    "work_rvus": (
        "work_rvus", "work_rvu", "wrvu", "wrvus", "work_relative_value_units",
    ),
    "tcc_per_work_rvu": (
        "tcc_per_work_rvu", "tcc_per_work_rvus", "tcc_per_wrvu", "conversion_factor",
        "cf", "cfs", "comp_per_wrvu", "compensation_per_wrvu",
        "total_cash_compensation_per_work_rvus", "total_cash_compensation_per_work_rvu",
        "compensation_to_work_rvus", "compensation_to_work_rvu", "compensation_to_wrvu",
        "compensation_to_wrvus", "comp_to_work_rvu", "comp_to_wrvu", "comp_to_work_rvus",
        "total_compensation_to_work_rvus", "total_comp_to_work_rvus", "tcc_to_work_rvu",
        "compensation_to_work_rvus_ratio", "compensation_work_rvus_ratio",
    ),
    "base_salary": ("base_salary", "base_compensation", "base_comp", "salary"),
    "base_pay_hourly_rate": ("base_pay_hourly_rate", "hourly_rate", "base_pay_hourly"),
    "asa_units": ("asa_units", "asa", "asa_unit"),
    "panel_size": ("panel_size", "panel", "patient_panel", "patient_panel_size"),
    "total_encounters": (
        "total_encounters", "encounters", "patient_encounters", "total_visits",
    ),
    "tcc_per_encounter": (
        "tcc_per_encounter", "comp_per_encounter", "compensation_per_encounter",
    ),
    "net_collections": ("net_collections", "collections", "net_collection"),
    "tcc_to_net_collections": (
        "tcc_to_net_collections", "tcc_to_collections", "comp_to_collections",
    ),
    "tcc_per_asa_unit": ("tcc_per_asa_unit", "tcc_per_asa", "comp_per_asa"),
    "on_call_compensation": (
        "on_call_compensation", "oncall_compensation", "daily_rate_on_call",
        "daily_rate_oncall", "daily_rate_on_call_compensation",
        "daily_rate_oncall_compensation", "on_call_rate", "oncall_rate", "on_call",
        "oncall", "daily_on_call", "daily_oncall",
    ),
}

ALIASES: dict[str, str] = {
    alias: key for key, aliases in _ALIAS_GROUPS.items() for alias in aliases
}

DISPLAY_NAMES: dict[str, str] = {
    "tcc": "TCC (Total Cash Compensation)",
    "tcc_excluding_premium": "TCC Excluding Premium",
    "work_rvus": "Work RVUs",
    "tcc_per_work_rvu": "TCC per wRVUs (CFs)",
    "base_salary": "Base Salary",
    "base_pay_hourly_rate": "Base Pay Hourly Rate",
    "asa_units": "ASA Units",
    "panel_size": "Panel Size",
    "total_encounters": "Total Encounters",
    "tcc_per_encounter": "TCC per Encounter",
    "net_collections": "Net Collections",
    "tcc_to_net_collections": "TCC to Net Collections",
    "tcc_per_asa_unit": "TCC per ASA Unit",
    "on_call_compensation": "Daily Rate On-Call Compensation",
}

CATEGORIES: dict[str, VariableCategory] = {
    "tcc": VariableCategory.COMPENSATION,
    "tcc_excluding_premium": VariableCategory.COMPENSATION,
    "base_salary": VariableCategory.COMPENSATION,
    "base_pay_hourly_rate": VariableCategory.COMPENSATION,
    "on_call_compensation": VariableCategory.COMPENSATION,
    "work_rvus": VariableCategory.PRODUCTIVITY,
    "asa_units": VariableCategory.PRODUCTIVITY,
    "panel_size": VariableCategory.PRODUCTIVITY,
    "total_encounters": VariableCategory.PRODUCTIVITY,
    "net_collections": VariableCategory.PRODUCTIVITY,
    "tcc_per_work_rvu": VariableCategory.RATIO,
    "tcc_per_encounter": VariableCategory.RATIO,
    "tcc_to_net_collections": VariableCategory.RATIO,
    "tcc_per_asa_unit": VariableCategory.RATIO,
}

_UPPER_WORDS = {"tcc": "TCC", "rvu": "RVU", "rvus": "RVUs", "wrvu": "wRVU",
                "wrvus": "wRVUs", "asa": "ASA", "cf": "CF", "app": "APP"}
_LOWER_WORDS = {"per", "to", "of", "and"}


def display_name(key: str) -> str:
    """Human label for a canonical key; unknown keys are title-cased."""
    if key in DISPLAY_NAMES:
        return DISPLAY_NAMES[key]
    words = [w for w in key.split("_") if w]
    out: list[str] = []
    for i, word in enumerate(words):
        if word in _UPPER_WORDS:
            out.append(_UPPER_WORDS[word])
        elif i > 0 and word in _LOWER_WORDS:
            out.append(word)
        else:
            out.append(word.capitalize())
    return " ".join(out)


def category_for(key: str) -> VariableCategory:
    if key in CATEGORIES:
        return CATEGORIES[key]
    text = rule_text(key)
    oncall = "on" in text and "call" in text
    if not oncall and (
        "per " in text or "/" in text or " to " in f" {text} " or has_word(text, "rate", "ratio")
    ):
        return VariableCategory.RATIO
    if oncall or re.search(r"compensation|salary|tcc|cash|bonus|pay|base", text):
        return VariableCategory.COMPENSATION
    if re.search(r"rvu|units|volume|encounters|panel|visits|asa|collections", text):
        return VariableCategory.PRODUCTIVITY
    return VariableCategory.OTHER


def alias_lookup(label: str) -> str | None:
    """Snake-fold ``label`` and resolve it through the alias dictionary."""
    key = snake(label)
    if key in ALIASES:
        return ALIASES[key]
    if "call" in key and ("on" in key.split("_") or "oncall" in key) and re.search(
        r"rate|compensation|comp|pay|daily", key
    ):
        return "on_call_compensation"
    return None


# ---------------------------------------------------------------------------
# Rule table
# ---------------------------------------------------------------------------

def rule_text(label: str) -> str:
    """Lowercase with ``_``/``-`` as spaces; ``/`` is kept."""
    return collapse_ws(re.sub(r"[_\-]+", " ", label.lower()))


_RVU = r"w?rvus?"
_PER_RVU = re.compile(rf"(?:\bper\s+|/\s*)(?:work\s+)?{_RVU}\b")
_TO_RVU = re.compile(rf"\bto\s+(?:work\s+)?{_RVU}\b")
_ANY_RVU = re.compile(rf"\b{_RVU}\b|relative value")
_PER_ENCOUNTER = re.compile(r"(?:\bper\s+|/\s*)(?:encounter|visit)s?\b")
_PER_ASA = re.compile(r"(?:\bper\s+|/\s*)asa\b")


@dataclass(frozen=True)
class VariableRule:
    """One classification rule. Lower priority runs first."""

    priority: int
    name: str
    predicate: Callable[[str], bool]
    key: str
    ambiguous: bool = False

    def matches(self, text: str) -> bool:
        return self.predicate(text)


RULES: tuple[VariableRule, ...] = tuple(sorted((
    VariableRule(10, "comp_to_collections",
                 lambda t: "collection" in t and has_word(t, "to", "per", "ratio"),
                 "tcc_to_net_collections"),
    VariableRule(20, "per_work_rvu", lambda t: bool(_PER_RVU.search(t)), "tcc_per_work_rvu"),
    VariableRule(21, "to_work_rvu_ratio",
                 lambda t: bool(_TO_RVU.search(t)) or ("ratio" in t and bool(_ANY_RVU.search(t))),
                 "tcc_per_work_rvu"),
    VariableRule(22, "conversion_factor",
                 lambda t: has_word(t, "conversion factor", "cf", "cfs") or "dollars per" in t,
                 "tcc_per_work_rvu"),
    VariableRule(30, "per_encounter", lambda t: bool(_PER_ENCOUNTER.search(t)), "tcc_per_encounter"),
    VariableRule(31, "per_asa", lambda t: bool(_PER_ASA.search(t)), "tcc_per_asa_unit"),
    VariableRule(40, "on_call", lambda t: has_word(t, "on call", "oncall", "call pay"),
                 "on_call_compensation"),
    VariableRule(50, "work_rvu", lambda t: bool(_ANY_RVU.search(t)), "work_rvus", ambiguous=True),
    VariableRule(51, "asa_units", lambda t: has_word(t, "asa"), "asa_units"),
    VariableRule(52, "panel", lambda t: has_word(t, "panel"), "panel_size"),
    VariableRule(53, "encounters", lambda t: has_word(t, "encounters", "encounter", "visits"),
                 "total_encounters"),
    VariableRule(54, "collections", lambda t: has_word(t, "collections", "collection"),
                 "net_collections"),
    VariableRule(60, "hourly", lambda t: has_word(t, "hourly"), "base_pay_hourly_rate"),
    VariableRule(61, "base_salary", lambda t: has_word(t, "base salary", "base pay", "base comp",
                                                       "base compensation", "salary"),
                 "base_salary"),
    VariableRule(62, "excluding_premium", lambda t: "premium" in t and has_word(t, "excluding", "excl"),
                 "tcc_excluding_premium"),
    VariableRule(63, "total_compensation",
                 lambda t: has_word(t, "tcc", "total cash", "compensation", "comp"),
                 "tcc", ambiguous=True),
), key=lambda r: r.priority))


def classify(label: str) -> VariableRule | None:
    """First rule whose predicate accepts the label, in priority order."""
    text = rule_text(label)
    for rule in RULES:
        if rule.matches(text):
            return rule
    return None


# Median thresholds below which an ambiguous hit is really a per-wRVU rate.
MAGNITUDE_THRESHOLDS: dict[str, float] = {
    "work_rvus": 200.0,
    "tcc": 1000.0,
}


def apply_magnitude(key: str, median: float | None) -> str:
    threshold = MAGNITUDE_THRESHOLDS.get(key)
    if threshold is None or median is None or median <= 0:
        return key
    return "tcc_per_work_rvu" if median < threshold else key
