from __future__ import annotations

import logging
from itertools import count
from typing import Any, Callable, Mapping, Sequence

from thrift_search.models.products import Product, SearchFilters
from thrift_search.services.filters import PRODUCT_TYPE_FIELDS, matches_product_type

logger = logging.getLogger("thrift_search.fallback")

IdGenerator = Callable[[], str]

FALLBACK_ID_PREFIX = "fallback-"
DEFAULT_SUBSET_SIZE = 4

SEED_PRODUCTS: tuple[Mapping[str, Any], ...] = (
    {
        "name": "Vintage Levi's Denim Jacket",
        "price": 45.99,
        "location": "Portland, OR",
        "condition": "Good",
        "category": "Clothing",
        "subCategory": "Outerwear",
        "brand": "Levi's",
        "description": "Classic blue denim trucker jacket with button front and chest pockets.",
        "tags": ["denim", "jacket", "vintage", "blue", "outerwear"],
        "imageUrl": "https://i.imgur.com/IvQWvHp.jpg",
    },
    {
        "name": "Retro Floral Print Dress",
        "price": 28.50,
        "location": "Seattle, WA",
        "condition": "Like New",
        "category": "Clothing",
        "subCategory": "Dresses",
        "description": "Flowy midi dress with a floral print, cotton blend.",
        "tags": ["dress", "floral", "retro", "cotton"],
        "imageUrl": "https://i.imgur.com/9qbQTUr.jpg",
    },
    {
        "name": "Leather Messenger Bag",
        "price": 34.99,
        "location": "Austin, TX",
        "condition": "Excellent",
        "category": "Accessories",
        "subCategory": "Bags",
        "description": "Brown leather messenger bag with adjustable strap.",
        "tags": ["leather", "bag", "messenger", "brown"],
        "imageUrl": "https://i.imgur.com/wzSNCpV.jpg",
    },
    {
        "name": "Vintage Band T-Shirt",
        "price": 22.00,
        "location": "Los Angeles, CA",
        "condition": "Good",
        "category": "Clothing",
        "subCategory": "Tops",
        "description": "Faded black cotton tour tee with a distressed print.",
        "tags": ["t-shirt", "band", "vintage", "black", "distressed"],
        "imageUrl": "https://i.imgur.com/YXaMOg6.jpg",
    },
    {
        "name": "High-Waisted Mom Jeans",
        "price": 32.50,
        "location": "Chicago, IL",
        "condition": "Very Good",
        "category": "Clothing",
        "subCategory": "Jeans",
        "description": "Light wash high-waisted denim with a tapered leg.",
        "tags": ["jeans", "denim", "high-waisted", "mom jeans"],
        "imageUrl": "https://i.imgur.com/3BkNItU.jpg",
    },
    {
        "name": "Vintage Wool Sweater",
        "price": 24.99,
        "location": "Boston, MA",
        "condition": "Good",
        "category": "Clothing",
        "subCategory": "Knitwear",
        "description": "Cream cable-knit wool sweater, warm and chunky.",
        "tags": ["sweater", "wool", "knit", "vintage", "cream"],
        "imageUrl": "https://i.imgur.com/uJq0Kd3.jpg",
    },
    {
        "name": "Classic Leather Boots",
        "price": 65.00,
        "location": "Denver, CO",
        "condition": "Fair",
        "category": "Footwear",
        "subCategory": "Boots",
        "description": "Brown leather lace-up boots with rubber soles.",
        "tags": ["boots", "leather", "brown", "footwear"],
        "imageUrl": "https://i.imgur.com/w6JZ2Wd.jpg",
    },
    {
        "name": "Vintage Designer Handbag",
        "price": 89.99,
        "location": "New York, NY",
        "condition": "Good",
        "category": "Accessories",
        "subCategory": "Bags",
        "description": "Structured black leather handbag with gold hardware.",
        "tags": ["handbag", "designer", "leather", "black", "vintage"],
        "imageUrl": "https://i.imgur.com/Pj3gM5r.jpg",
    },
    {
        "name": "Similar Style Vintage Dress",
        "price": 38.50,
        "location": "San Francisco, CA",
        "condition": "Excellent",
        "category": "Clothing",
        "subCategory": "Dresses",
        "description": "Vintage A-line dress with a fitted waist.",
        "tags": ["dress", "vintage", "a-line"],
        "imageUrl": "https://i.imgur.com/ZCBtpem.jpg",
    },
    {
        "name": "Matching Pattern Skirt",
        "price": 24.99,
        "location": "Miami, FL",
        "condition": "Like New",
        "category": "Clothing",
        "subCategory": "Skirts",
        "description": "Pleated skirt with a plaid pattern.",
        "tags": ["skirt", "plaid", "pleated"],
        "imageUrl": "https://i.imgur.com/KJjt9MG.jpg",
    },
    {
        "name": "Complementary Blouse",
        "price": 19.95,
        "location": "Nashville, TN",
        "condition": "Very Good",
        "category": "Clothing",
        "subCategory": "Tops",
        "description": "White silk blouse with a relaxed fit.",
        "tags": ["blouse", "silk", "white"],
        "imageUrl": "https://i.imgur.com/a2QPPOq.jpg",
    },
    {
        "name": "Similar Color Sweater",
        "price": 29.99,
        "location": "Philadelphia, PA",
        "condition": "Good",
        "category": "Clothing",
        "subCategory": "Knitwear",
        "description": "Soft crewneck sweater in forest green.",
        "tags": ["sweater", "green", "crewneck"],
        "imageUrl": "https://i.imgur.com/vWWKKBb.jpg",
    },
    {
        "name": "Matching Style Jacket",
        "price": 45.00,
        "location": "Atlanta, GA",
        "condition": "Good",
        "category": "Clothing",
        "subCategory": "Outerwear",
        "description": "Cropped bomber jacket in olive nylon.",
        "tags": ["jacket", "bomber", "olive", "nylon"],
        "imageUrl": "https://i.imgur.com/GPb0TDk.jpg",
    },
)


def sequential_ids(prefix: str = FALLBACK_ID_PREFIX, start: int = 1) -> IdGenerator:
    counter = count(start)
    return lambda: f"{prefix}{next(counter)}"


def _contains(haystack: str, needle: str) -> bool:
    return needle.lower() in haystack.lower()


def matches_fallback_filters(product: Product, filters: SearchFilters, query: str | None = None) -> bool:
    if filters.city and not _contains(product.location, filters.city):
        return False
    if filters.productType and not matches_product_type(
        (getattr(product, field) for field in PRODUCT_TYPE_FIELDS), filters.productType
    ):
        return False
    if filters.minPrice is not None and product.price < filters.minPrice:
        return False
    if filters.maxPrice is not None and product.price > filters.maxPrice:
        return False
    if filters.condition and not _contains(product.condition, filters.condition):
        return False
    if query and query.strip():
        needle = query.strip()
        if not any(_contains(text, needle) for text in (product.name, product.condition, product.location)):
            return False
    return True


class FallbackGenerator:
    """Deterministic offline results used when the model pipeline cannot complete."""

    def __init__(
        self,
        *,
        id_generator: IdGenerator | None = None,
        seeds: Sequence[Mapping[str, Any]] = SEED_PRODUCTS,
        default_subset_size: int = DEFAULT_SUBSET_SIZE,
    ) -> None:
        if not seeds:
            raise ValueError("Fallback seed catalog cannot be empty.")
        next_id = id_generator or sequential_ids()
        self._catalog: tuple[Product, ...] = tuple(
            Product.model_validate({**seed, "id": next_id()}) for seed in seeds
        )
        self._ids = frozenset(product.id for product in self._catalog)
        self._default_subset_size = max(1, default_subset_size)

    @property
    def catalog(self) -> tuple[Product, ...]:
        return self._catalog

    def is_fallback(self, product: Product) -> bool:
        return product.id in self._ids

    def generate(self, filters: SearchFilters | None = None, *, query: str | None = None) -> list[Product]:
        filters = filters or SearchFilters()
        matched = [product for product in self._catalog if matches_fallback_filters(product, filters, query)]
        if not matched:
            logger.info(
                "fallback.default_subset",
                extra={"filters": filters.model_dump(exclude_none=True), "query": query},
            )
            return list(self._catalog[: self._default_subset_size])
        return matched
