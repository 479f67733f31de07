from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping, Sequence

from pydantic import ValidationError

from thrift_search.models.products import Product
from thrift_search.models.search import AttributeSet

logger = logging.getLogger("thrift_search.ranker")


class MatchKind(str, Enum):
    # attribute value and product text contain one another
    containment = "containment"
    # attribute value occurs inside the product text
    substring = "substring"
    # attribute tag equals a product tag
    exact = "exact"
    # attribute tag and product tag contain one another without being equal
    partial = "partial"


@dataclass(frozen=True)
class FieldRule:
    attribute: str
    targets: tuple[str, ...]
    kind: MatchKind
    weight: int


_CLASSIFICATION_FIELDS = ("category", "subCategory", "name")
_DESCRIPTIVE_ATTRIBUTES = ("colors", "materials", "style", "pattern", "specific_features")


def _descriptive_rules() -> tuple[FieldRule, ...]:
    rules: list[FieldRule] = []
    for attribute in _DESCRIPTIVE_ATTRIBUTES:
        rules.append(FieldRule(attribute, ("description",), MatchKind.substring, 2))
        rules.append(FieldRule(attribute, ("tags",), MatchKind.substring, 3))
        rules.append(FieldRule(attribute, ("name",), MatchKind.substring, 3))
    return tuple(rules)


SCORING_RULES: tuple[FieldRule, ...] = (
    FieldRule("category", _CLASSIFICATION_FIELDS, MatchKind.containment, 5),
    FieldRule("subCategory", _CLASSIFICATION_FIELDS, MatchKind.containment, 6),
    FieldRule("tags", ("tags",), MatchKind.exact, 4),
    FieldRule("tags", ("tags",), MatchKind.partial, 2),
    *_descriptive_rules(),
    FieldRule("condition", ("condition",), MatchKind.substring, 3),
)


@dataclass(frozen=True)
class ScoredProduct:
    product: Product
    score: int
    position: int


@dataclass(frozen=True)
class _ProductText:
    """Lower-cased product fields, tags deduplicated."""

    fields: Mapping[str, str]
    tags: tuple[str, ...]

    @classmethod
    def from_product(cls, product: Product) -> "_ProductText":
        tags = tuple(dict.fromkeys(tag.strip().lower() for tag in product.tags if tag.strip()))
        return cls(
            fields={
                "name": product.name.lower(),
                "category": product.category.lower(),
                "subCategory": product.subCategory.lower(),
                "description": product.description.lower(),
                "condition": product.condition.lower(),
            },
            tags=tags,
        )

    def texts(self, target: str) -> tuple[str, ...]:
        if target == "tags":
            return self.tags
        value = self.fields.get(target, "")
        return (value,) if value else ()


def _attribute_values(attrs: AttributeSet, attribute: str) -> list[str]:
    value = getattr(attrs, attribute)
    values = value if isinstance(value, list) else [value]
    cleaned = (item.strip().lower() for item in values if isinstance(item, str))
    return list(dict.fromkeys(item for item in cleaned if item))


def _rule_points(rule: FieldRule, needle: str, text: _ProductText) -> int:
    haystacks = [hay for target in rule.targets for hay in text.texts(target)]
    if rule.kind is MatchKind.containment:
        matched = any(needle in hay or hay in needle for hay in haystacks)
        return rule.weight if matched else 0
    if rule.kind is MatchKind.substring:
        return rule.weight if any(needle in hay for hay in haystacks) else 0
    if rule.kind is MatchKind.exact:
        return rule.weight * sum(1 for hay in haystacks if hay == needle)
    if rule.kind is MatchKind.partial:
        return rule.weight * sum(1 for hay in haystacks if hay != needle and (needle in hay or hay in needle))
    raise ValueError(f"Unsupported match kind: {rule.kind}")


def score_product(
    product: Product,
    attrs: AttributeSet,
    *,
    rules: Sequence[FieldRule] = SCORING_RULES,
) -> int:
    text = _ProductText.from_product(product)
    total = 0
    for rule in rules:
        for needle in _attribute_values(attrs, rule.attribute):
            total += _rule_points(rule, needle, text)
    return total


def filter_rankable(records: Iterable[Product | Mapping[str, Any]]) -> list[Product]:
    """Drop records missing id, name, price, location or condition."""

    products: list[Product] = []
    for record in records:
        if isinstance(record, Product):
            products.append(record)
            continue
        try:
            products.append(Product.model_validate(record))
        except ValidationError as exc:
            record_id = record.get("id") if isinstance(record, Mapping) else None
            logger.warning(
                "ranker.record_dropped",
                extra={"recordId": record_id, "errors": [err["loc"] for err in exc.errors()]},
            )
    return products


def rank_with_scores(
    records: Iterable[Product | Mapping[str, Any]],
    attrs: AttributeSet,
    *,
    limit: int | None = None,
    rules: Sequence[FieldRule] = SCORING_RULES,
) -> list[ScoredProduct]:
    products = filter_rankable(records)
    if attrs.is_empty:
        scored = [ScoredProduct(product, 0, position) for position, product in enumerate(products)]
    else:
        scored = [
            ScoredProduct(product, score_product(product, attrs, rules=rules), position)
            for position, product in enumerate(products)
        ]
        scored.sort(key=lambda item: (-item.score, item.position))
    if limit is not None:
        scored = scored[:limit]
    return scored


def rank(
    records: Iterable[Product | Mapping[str, Any]],
    attrs: AttributeSet,
    *,
    limit: int | None = None,
    rules: Sequence[FieldRule] = SCORING_RULES,
) -> list[Product]:
    return [item.product for item in rank_with_scores(records, attrs, limit=limit, rules=rules)]


__all__ = [
    "FieldRule",
    "MatchKind",
    "SCORING_RULES",
    "ScoredProduct",
    "filter_rankable",
    "rank",
    "rank_with_scores",
    "score_product",
]
