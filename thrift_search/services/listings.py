from __future__ import annotations

import asyncio
import logging
from pathlib import PurePath
from typing import Sequence

from pydantic import ValidationError

from thrift_search.agents.llm import GenerativeModel, GenerativeModelError, InlineImage, get_generative_model
from thrift_search.agents.prompts import LISTING_ANALYSIS_PROMPT
from thrift_search.core.config import AppSettings, get_settings
from thrift_search.core.exceptions import SearchContractError
from thrift_search.models.listings import ListingDraft
from thrift_search.services.parser import extract_json_payload

logger = logging.getLogger("thrift_search.listings")

# Longer keywords first so "t-shirt" wins over "shirt".
_TYPE_KEYWORDS: tuple[tuple[str, str, str], ...] = (
    ("t-shirt", "Clothing", "T-shirt"),
    ("tshirt", "Clothing", "T-shirt"),
    ("backpack", "Bag", "Backpack"),
    ("bracelet", "Accessory", "Bracelet"),
    ("earrings", "Accessory", "Earrings"),
    ("necklace", "Accessory", "Necklace"),
    ("sneakers", "Footwear", "Sneakers"),
    ("handbag", "Bag", "Handbag"),
    ("sandals", "Footwear", "Sandals"),
    ("sweater", "Clothing", "Sweater"),
    ("hoodie", "Clothing", "Hoodie"),
    ("jacket", "Clothing", "Jacket"),
    ("boots", "Footwear", "Boots"),
    ("dress", "Clothing", "Dress"),
    ("jeans", "Clothing", "Jeans"),
    ("pants", "Clothing", "Pants"),
    ("purse", "Bag", "Purse"),
    ("shirt", "Clothing", "Shirt"),
    ("shoes", "Footwear", "Shoes"),
    ("skirt", "Clothing", "Skirt"),
    ("watch", "Accessory", "Watch"),
    ("bag", "Bag", "Handbag"),
    ("hat", "Accessory", "Hat"),
)

_COLORS = ("red", "blue", "green", "black", "white", "yellow", "pink", "purple", "gray", "brown", "navy", "beige")

_MATERIALS: dict[str, tuple[str, ...]] = {
    "Clothing": ("Cotton", "Polyester", "Wool", "Linen", "Denim", "Silk", "Velvet", "Fleece"),
    "Footwear": ("Leather", "Canvas", "Suede", "Synthetic", "Rubber", "Mesh"),
    "Accessory": ("Metal", "Leather", "Plastic", "Fabric", "Wood", "Glass"),
    "Bag": ("Leather", "Canvas", "Nylon", "Polyester", "Suede", "Synthetic"),
}

_CATEGORY_TERMS: dict[str, tuple[str, ...]] = {
    "clothing": ("apparel", "clothes", "fashion"),
    "footwear": ("shoes", "footwear"),
    "accessory": ("accessories",),
    "bag": ("bags", "purse"),
}


def build_listing_tags(
    *,
    category: str,
    item_type: str,
    colors: Sequence[str] = (),
    material: str | None = None,
    style: str | None = None,
    pattern: str | None = None,
    brand: str | None = None,
) -> list[str]:
    candidates: list[str | None] = [category, item_type, *colors, material, style, pattern]
    if brand and brand.strip().lower() != "unknown":
        candidates.append(brand)
    candidates.extend(_CATEGORY_TERMS.get(category.strip().lower(), ()))
    tags = (candidate.strip().lower() for candidate in candidates if candidate and candidate.strip())
    return list(dict.fromkeys(tags))


def _describe(item_type: str, colors: Sequence[str], material: str | None) -> str:
    words = [" and ".join(colors) if colors else "", material.lower() if material else "", item_type.lower()]
    phrase = " ".join(word for word in words if word)
    return f"Pre-loved {phrase} listed from a photo. Please review the details before publishing."


def heuristic_draft(filename: str | None) -> ListingDraft:
    """Infer a draft from filename keywords only; identical input gives identical output."""

    stem = PurePath(filename or "").stem.lower()
    category, item_type = "Clothing", "T-shirt"
    for keyword, keyword_category, keyword_type in _TYPE_KEYWORDS:
        if keyword in stem:
            category, item_type = keyword_category, keyword_type
            break

    colors = [color for color in _COLORS if color in stem]
    material = next((name for name in _MATERIALS[category] if name.lower() in stem), None)

    return ListingDraft(
        category=category,
        type=item_type,
        colors=colors,
        material=material,
        description=_describe(item_type, colors, material),
        tags=build_listing_tags(category=category, item_type=item_type, colors=colors, material=material),
        source="heuristic",
    )


class ListingAnalysisService:
    def __init__(self, model: GenerativeModel, *, timeout: float = 10.0) -> None:
        self._model = model
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings: AppSettings | None = None) -> "ListingAnalysisService":
        settings = settings or get_settings()
        model_factory = get_generative_model(settings)
        return cls(model_factory(), timeout=settings.genai_timeout_sec)

    async def analyze_image(
        self,
        image_bytes: bytes,
        mime_type: str,
        filename: str | None = None,
    ) -> ListingDraft:
        if not image_bytes:
            raise SearchContractError("Image upload is empty.", details={"field": "image"})
        normalized_mime = (mime_type or "").split(";", 1)[0].strip().lower()
        if not normalized_mime.startswith("image/"):
            raise SearchContractError(
                "Uploaded file is not an image.",
                details={"field": "image", "mimeType": mime_type},
            )

        image = InlineImage(mime_type=normalized_mime, data=image_bytes)
        prompt = LISTING_ANALYSIS_PROMPT
        try:
            raw = await asyncio.wait_for(
                self._model.generate_async(prompt.render(), image=image, prompt_id=prompt.prompt_id),
                timeout=self._timeout,
            )
        except (GenerativeModelError, asyncio.TimeoutError) as exc:
            logger.warning("listings.analysis_failed", extra={"reason": str(exc) or type(exc).__name__})
            return heuristic_draft(filename)

        draft = self._draft_from_output(raw)
        if draft is None:
            logger.warning("listings.analysis_failed", extra={"reason": "model response contained no listing"})
            return heuristic_draft(filename)
        return draft

    @staticmethod
    def _draft_from_output(raw: str) -> ListingDraft | None:
        candidates = extract_json_payload(raw).objects()
        if not candidates:
            return None
        try:
            draft = ListingDraft.model_validate({**candidates[0], "source": "model"})
        except ValidationError as exc:
            logger.warning("listings.draft_invalid", extra={"error": str(exc)})
            return None
        if draft.tags:
            return draft
        tags = build_listing_tags(
            category=draft.category,
            item_type=draft.type,
            colors=draft.colors,
            material=draft.material,
            style=draft.style,
            pattern=draft.pattern,
            brand=draft.brand,
        )
        return draft.model_copy(update={"tags": tags})


__all__ = ["ListingAnalysisService", "build_listing_tags", "heuristic_draft"]
