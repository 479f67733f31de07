"""Filter predicates shared by the catalog stores and the fallback generator."""

from __future__ import annotations

from typing import Iterable

PRODUCT_TYPE_KEYWORDS: dict[str, tuple[str, ...]] = {
    "clothing": ("jacket", "dress", "t-shirt", "jeans", "sweater", "skirt", "blouse"),
    "accessories": ("bag", "handbag", "watch", "jewelry", "scarf"),
    "shoes": ("boots", "sneakers", "shoes", "heels"),
    "furniture": ("chair", "table", "desk", "sofa"),
    "electronics": ("radio", "stereo", "walkman", "camera"),
    "books": ("book", "novel", "magazine"),
}

# Fields searched for a product type keyword.
PRODUCT_TYPE_FIELDS = ("name", "category", "subCategory")

# Fields searched by the free-text catalog query.
KEYWORD_FIELDS = ("name", "description", "category", "subCategory", "brand", "tags")


def product_type_terms(product_type: str) -> tuple[str, ...]:
    """The type itself plus its mapped keywords, lower-cased and deduplicated."""
    normalized = product_type.strip().lower()
    if not normalized:
        return ()
    return tuple(dict.fromkeys((normalized, *PRODUCT_TYPE_KEYWORDS.get(normalized, ()))))


def matches_product_type(texts: Iterable[str | None], product_type: str) -> bool:
    terms = product_type_terms(product_type)
    if not terms:
        return True
    searchable = [text.lower() for text in texts if isinstance(text, str)]
    return any(term in text for term in terms for text in searchable)


def matches_keyword(texts: Iterable[str | None], keyword: str) -> bool:
    needle = keyword.strip().lower()
    if not needle:
        return True
    return any(needle in text.lower() for text in texts if isinstance(text, str))


__all__ = [
    "KEYWORD_FIELDS",
    "PRODUCT_TYPE_FIELDS",
    "PRODUCT_TYPE_KEYWORDS",
    "matches_keyword",
    "matches_product_type",
    "product_type_terms",
]
