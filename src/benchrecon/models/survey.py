"""Survey source descriptors."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel


class SourceCategory(StrEnum):
    COMPENSATION = "COMPENSATION"
    CALL_PAY = "CALL_PAY"
    MOONLIGHTING = "MOONLIGHTING"
    CUSTOM = "CUSTOM"

    @classmethod
    def parse(cls, value: str | None) -> SourceCategory | None:
        """Accept internal values ("CALL_PAY") and display labels ("Call Pay")."""
        if value is None:
            return None
        token = value.strip().upper().replace(" ", "_").replace("-", "_")
        if not token:
            return None
        try:
            return cls(token)
        except ValueError:
            return None


CATEGORY_DISPLAY: dict[SourceCategory, str] = {
    SourceCategory.CALL_PAY: "Call Pay",
    SourceCategory.MOONLIGHTING: "Moonlighting",
}


class SurveySource(BaseModel):
    """One uploaded survey extract (a vendor/year/category combination)."""

    model_config = {"frozen": True}

    id: str
    vendor_name: str
    category: SourceCategory = SourceCategory.COMPENSATION
    provider_type: str | None = None  # PHYSICIAN, APP, legacy CALL
    year: int | None = None
    name: str | None = None
    custom_category: str | None = None

    @property
    def survey_source(self) -> str:
        """Vendor label used as the survey-source key in mapping tables."""
        return self.vendor_name

    @property
    def is_app(self) -> bool:
        return (self.provider_type or "").strip().upper() == "APP"

    @property
    def effective_category(self) -> SourceCategory:
        """Category with legacy provider type CALL treated as CALL_PAY."""
        if (self.provider_type or "").strip().upper() == "CALL":
            return SourceCategory.CALL_PAY
        return self.category

    @property
    def category_display(self) -> str:
        category = self.effective_category
        if category in CATEGORY_DISPLAY:
            return CATEGORY_DISPLAY[category]
        if category == SourceCategory.CUSTOM:
            return self.custom_category or "Custom"
        return "APP" if self.is_app else "Physician"

    @property
    def source_label(self) -> str:
        """Vendor, category display and year, e.g. "MGMA Call Pay 2024"."""
        return self.label_for(self.year)

    def label_for(self, year: int | None) -> str:
        """Source label stamped with ``year``, omitted when unknown."""
        label = f"{self.vendor_name} {self.category_display}"
        return f"{label} {year}" if year is not None else label
