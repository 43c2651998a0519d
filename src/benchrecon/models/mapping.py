"""Curated mapping tables, learned overrides and per-pass snapshots."""

from __future__ import annotations

from enum import StrEnum
from typing import Mapping

from pydantic import BaseModel, Field


class Dimension(StrEnum):
    SPECIALTY = "specialty"
    REGION = "region"
    PROVIDER_TYPE = "provider_type"
    VARIABLE = "variable"


class SourceEntry(BaseModel):
    """One vendor label that maps onto a standardized name."""

    model_config = {"frozen": True}

    survey_source: str
    original_label: str


class MappingEntry(BaseModel):
    """A standardized name and every vendor label curated onto it."""

    model_config = {"frozen": True}

    standardized_name: str
    source_entries: tuple[SourceEntry, ...] = ()


class MappingSnapshot(BaseModel):
    """Copy of all mapping state captured once at the start of a pass.

    The model is frozen and nothing in the engine writes to the nested
    dicts, so every normalization in a pass sees the same tables.
    """

    model_config = {"frozen": True}

    tables: dict[Dimension, tuple[MappingEntry, ...]] = Field(default_factory=dict)
    learned: dict[Dimension, dict[str, str]] = Field(default_factory=dict)

    @classmethod
    def build(
        cls,
        tables: Mapping[Dimension, list[MappingEntry]] | None = None,
        learned: Mapping[Dimension, Mapping[str, str]] | None = None,
    ) -> MappingSnapshot:
        """Copy plain dicts/lists into a snapshot.

        Learned-mapping keys are lowercased so lookups are case-insensitive.
        """
        return cls(
            tables={dim: tuple(entries) for dim, entries in (tables or {}).items()},
            learned={
                dim: {k.strip().lower(): v for k, v in mapping.items()}
                for dim, mapping in (learned or {}).items()
            },
        )

    def table(self, dimension: Dimension) -> tuple[MappingEntry, ...]:
        return self.tables.get(dimension, ())

    def learned_for(self, dimension: Dimension) -> dict[str, str]:
        return self.learned.get(dimension, {})
