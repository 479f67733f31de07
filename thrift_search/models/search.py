from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from thrift_search.models.products import Product, SearchFilters

SearchSource = Literal["model", "fallback"]

_PLACEHOLDER_VALUES = {"", "unknown", "n/a", "na", "none", "null", "not applicable", "-"}

_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "category": ("category",),
    "subCategory": ("subCategory", "sub_category", "subcategory", "type", "item_type"),
    "colors": ("colors", "colours", "color", "colour"),
    "materials": ("materials", "material", "fabric"),
    "style": ("style",),
    "pattern": ("pattern",),
    "condition": ("condition",),
    "specific_features": ("specific_features", "specificFeatures", "features"),
    "tags": ("tags", "keywords"),
}

_SCALAR_FIELDS = ("category", "subCategory", "style", "pattern", "condition")
_COLLECTION_FIELDS = ("colors", "materials", "specific_features", "tags")


def _clean_scalar(value: Any) -> Optional[str]:
    if isinstance(value, (list, tuple)):
        value = next((item for item in value if _clean_scalar(item)), None)
    if value is None or isinstance(value, (dict, bool)):
        return None
    text = str(value).strip()
    if text.lower() in _PLACEHOLDER_VALUES:
        return None
    return text


def _clean_collection(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        candidates: list[Any] = value.split(",")
    elif isinstance(value, (list, tuple, set, frozenset)):
        candidates = list(value)
    else:
        candidates = [value]

    cleaned: list[str] = []
    seen: set[str] = set()
    for candidate in candidates:
        text = _clean_scalar(candidate)
        if not text:
            continue
        key = text.lower()
        if key in seen:
            continue
        seen.add(key)
        cleaned.append(text)
    return cleaned


class AttributeSet(BaseModel):
    """Structured description of a sought product, extracted from text or a photo."""

    category: Optional[str] = Field(None, description="Broad category, e.g. Clothing or Footwear.")
    subCategory: Optional[str] = Field(None, description="Specific item type, e.g. Jacket or Sneakers.")
    colors: List[str] = Field(default_factory=list, description="Dominant colors.")
    materials: List[str] = Field(default_factory=list, description="Fabrics or materials.")
    style: Optional[str] = Field(None, description="Fashion style, e.g. Vintage or Streetwear.")
    pattern: Optional[str] = Field(None, description="Visible pattern, e.g. Solid or Floral.")
    condition: Optional[str] = Field(None, description="Apparent condition.")
    specific_features: List[str] = Field(default_factory=list, description="Distinguishing details.")
    tags: List[str] = Field(default_factory=list, description="Search keywords; weighted highest.")

    @model_validator(mode="before")
    @classmethod
    def _normalise_raw(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        lowered = {str(key).lower(): value for key, value in values.items()}
        normalised: dict[str, Any] = {}
        for field_name, aliases in _FIELD_ALIASES.items():
            for alias in aliases:
                if alias in values:
                    normalised[field_name] = values[alias]
                    break
                if alias.lower() in lowered:
                    normalised[field_name] = lowered[alias.lower()]
                    break
        for field_name in _SCALAR_FIELDS:
            if field_name in normalised:
                normalised[field_name] = _clean_scalar(normalised[field_name])
        for field_name in _COLLECTION_FIELDS:
            normalised[field_name] = _clean_collection(normalised.get(field_name))
        return normalised

    @property
    def is_empty(self) -> bool:
        scalars = (self.category, self.subCategory, self.style, self.pattern, self.condition)
        collections = (self.colors, self.materials, self.specific_features, self.tags)
        return not any(scalars) and not any(collections)


class TextSearchRequest(BaseModel):
    query: str = Field("", description="Free-text description of the sought item.")
    filters: SearchFilters = Field(default_factory=SearchFilters)
    limit: int | None = Field(None, description="Maximum number of results; must be positive.")

    @field_validator("query", mode="before")
    @classmethod
    def _strip_query(cls, value: Any) -> Any:
        if value is None:
            return ""
        return value.strip() if isinstance(value, str) else value


class SearchResponse(BaseModel):
    query: str | None = Field(None, description="Text query, when the search was text driven.")
    source: SearchSource = Field(..., description="'model' for ranked catalog results, 'fallback' for offline results.")
    fallbackReason: str | None = Field(None, description="Why the fallback path was taken.")
    attributes: AttributeSet | None = Field(None, description="Attributes extracted by the model.")
    products: List[Product] = Field(default_factory=list, description="Ranked listings.")
