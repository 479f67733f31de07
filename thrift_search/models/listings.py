from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, Field, ValidationInfo, field_validator

DraftSource = Literal["model", "heuristic"]


class ListingDraft(BaseModel):
    """Pre-filled sell form derived from a photo of the item."""

    category: str = Field("Clothing", description="Broad category: Clothing, Footwear, Accessory or Bag.")
    type: str = Field("T-shirt", description="Specific item type.")
    colors: List[str] = Field(default_factory=list, description="Detected colors.")
    material: str | None = Field(None, description="Fabric or material.")
    gender: str = Field("Unknown", description="Men, Women, Unisex or Unknown.")
    style: str | None = Field(None, description="Fashion style.")
    pattern: str | None = Field(None, description="Visible pattern.")
    condition: str = Field("Good", description="Apparent condition.")
    brand: str = Field("Unknown", description="Visible brand or 'Unknown'.")
    description: str = Field("", description="One or two sentence description.")
    tags: List[str] = Field(default_factory=list, description="Search keywords for the listing.")
    source: DraftSource = Field(..., description="'model' when analyzed remotely, 'heuristic' otherwise.")

    @field_validator("category", "type", "gender", "condition", "brand", mode="before")
    @classmethod
    def _blank_to_default(cls, value: object, info: ValidationInfo) -> object:
        if value is None or (isinstance(value, str) and not value.strip()):
            return cls.model_fields[info.field_name].default
        return value.strip() if isinstance(value, str) else value

    @field_validator("colors", "tags", mode="before")
    @classmethod
    def _coerce_list(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        if isinstance(value, (list, tuple)):
            return [str(item).strip() for item in value if item is not None and str(item).strip()]
        return value

    @field_validator("material", "style", "pattern", mode="before")
    @classmethod
    def _optional_scalar(cls, value: object) -> object:
        if isinstance(value, (list, tuple)):
            value = next((item for item in value if isinstance(item, str) and item.strip()), None)
        if not isinstance(value, str) or not value.strip() or value.strip().lower() == "unknown":
            return None
        return value.strip()

    @field_validator("description", mode="before")
    @classmethod
    def _optional_description(cls, value: object) -> object:
        return "" if value is None else value
