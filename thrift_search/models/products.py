from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field, field_validator


class Product(BaseModel):
    id: str = Field(..., min_length=1, description="Listing identifier, unique within the catalog")
    name: str = Field(..., min_length=1, description="Listing title")
    price: float = Field(..., ge=0, description="Asking price in USD")
    location: str = Field(..., min_length=1, description="Free-form 'city, region'")
    condition: str = Field(..., min_length=1, description="Condition label, e.g. Good or Like New")
    category: str = Field("", description="Top-level classification")
    subCategory: str = Field("", description="Second-level classification")
    description: str = Field("", description="Seller description")
    brand: str = Field("Unknown", description="Brand name or 'Unknown'")
    tags: List[str] = Field(default_factory=list, description="Search keywords attached to the listing")
    imageUrl: str | None = Field(None, description="Primary image of the listing")

    model_config = {"extra": "ignore", "frozen": True, "str_strip_whitespace": True}

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: object) -> object:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(int(value)) if float(value).is_integer() else str(value)
        return value

    @field_validator("category", "subCategory", "description", mode="before")
    @classmethod
    def _optional_text(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("brand", mode="before")
    @classmethod
    def _default_brand(cls, value: object) -> object:
        if value is None or (isinstance(value, str) and not value.strip()):
            return "Unknown"
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        if isinstance(value, (list, tuple)):
            return [str(item).strip() for item in value if item is not None and str(item).strip()]
        return value


class SearchFilters(BaseModel):
    city: str | None = Field(None, description="Substring of the listing location")
    productType: str | None = Field(None, description="Product type or category keyword")
    condition: str | None = Field(None, description="Substring of the listing condition")
    minPrice: float | None = Field(None, ge=0, description="Inclusive lower price bound")
    maxPrice: float | None = Field(None, ge=0, description="Inclusive upper price bound")

    @field_validator("city", "productType", "condition")
    @classmethod
    def _strip_fields(cls, value: str | None) -> str | None:
        return value.strip() or None if value else value

    @field_validator("minPrice", "maxPrice", mode="before")
    @classmethod
    def _blank_price(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def describe(self) -> str:
        parts: list[str] = []
        if self.city:
            parts.append(f"in {self.city}")
        if self.productType:
            parts.append(f"of type {self.productType}")
        if self.condition:
            parts.append(f"in {self.condition} condition")
        if self.minPrice is not None and self.maxPrice is not None:
            parts.append(f"with price between ${self.minPrice:g} and ${self.maxPrice:g}")
        elif self.minPrice is not None:
            parts.append(f"with price above ${self.minPrice:g}")
        elif self.maxPrice is not None:
            parts.append(f"with price below ${self.maxPrice:g}")
        return " ".join(parts)


class ProductListResponse(BaseModel):
    total: int = Field(..., ge=0, description="Number of matching listings before truncation")
    products: List[Product] = Field(default_factory=list)
