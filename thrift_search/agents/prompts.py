from __future__ import annotations

from dataclasses import dataclass, field
from textwrap import dedent
from typing import Any, Dict

PromptVariables = Dict[str, Any]


class _SafeDict(dict):
    def __missing__(self, key: str) -> str:
        return ""


@dataclass(frozen=True)
class StructuredPrompt:
    prompt_id: str
    template: str
    _template: str = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_template", dedent(self.template).strip())

    def render(self, variables: PromptVariables | None = None) -> str:
        normalized = _SafeDict(**(variables or {}))
        return self._template.format_map(normalized)

    @property
    def raw(self) -> str:
        return self._template


_ATTRIBUTE_SCHEMA = """
    {{
      "category": string or null,           // e.g. "Clothing", "Footwear", "Accessories", "Bag"
      "subCategory": string or null,        // e.g. "Jacket", "Jeans", "Sneakers", "Tote"
      "colors": [string],
      "materials": [string],
      "style": string or null,              // e.g. "Vintage", "Streetwear", "Bohemian"
      "pattern": string or null,            // e.g. "Solid", "Striped", "Floral"
      "condition": string or null,          // one of "New", "Like New", "Good", "Fair", "Poor"
      "specific_features": [string],        // e.g. "distressed", "high-waisted"
      "tags": [string]                      // 3-10 lowercase search keywords
    }}
"""


TEXT_ATTRIBUTES_PROMPT = StructuredPrompt(
    prompt_id="search.text_attributes.v1",
    template="""
    You turn shopper requests for a second-hand fashion marketplace into search attributes.

    Shopper request: "{query}"
    Additional filters: {filters}

    Describe the item the shopper is looking for. Only fill a field when the request
    states or clearly implies it; use null or an empty list otherwise.

    Return exactly one JSON object with this schema and no other text:
    """
    + _ATTRIBUTE_SCHEMA,
)

IMAGE_ATTRIBUTES_PROMPT = StructuredPrompt(
    prompt_id="search.image_attributes.v1",
    template="""
    You analyze photos for a second-hand fashion marketplace.

    Identify the wearable item in the photo: clothing, footwear or accessories
    (bags, jewelry, watches, hats, scarves, belts). Infer its category, colors,
    materials, style, pattern, notable features and apparent condition, and
    produce search tags that would find similar items.

    If the photo does not show clothing, footwear or an accessory, do not
    classify it: return an empty object {{}}.

    Return exactly one JSON object with this schema and no other text:
    """
    + _ATTRIBUTE_SCHEMA,
)

LISTING_ANALYSIS_PROMPT = StructuredPrompt(
    prompt_id="listings.image_analysis.v1",
    template="""
    Identify and classify this fashion item in the image for a resale listing.

    Provide a structured JSON response with the following fields:
    - "category": the broad category ("Clothing", "Accessory", "Footwear", "Bag").
    - "type": the specific item type (e.g. "T-shirt", "Jeans", "Watch", "Sneakers", "Handbag").
    - "colors": array of colors detected in the item.
    - "material": the fabric or material (e.g. "Denim", "Leather", "Cotton", "Metal").
    - "gender": the intended wearer ("Men", "Women", "Unisex" or "Unknown").
    - "style": the fashion style (e.g. "Casual", "Formal", "Sporty", "Luxury", "Vintage").
    - "pattern": any visible pattern (e.g. "Solid", "Striped", "Floral", "Plaid").
    - "condition": apparent condition ("New", "Like New", "Good", "Fair").
    - "brand": the visible brand name or "Unknown".
    - "description": a one or two sentence description of the item.
    - "tags": an array of relevant search keywords.

    Return ONLY the JSON object with these fields, no other text.
    """,
)
