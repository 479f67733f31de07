"""Salvage structured data from free-form generative model output.

Model replies are unreliable in formatting: prose around the JSON, markdown
fences, truncated arrays. Parsing is attempted in three stages and the first
stage that yields JSON wins:

1. the whole (fence-stripped) text,
2. the first balanced and well-formed ``[...]`` substring outside any object,
3. every balanced ``{...}`` substring, each parsed on its own.

The result is a tagged :class:`ParsedPayload`. Typed helpers turn it into an
:class:`AttributeSet` or a list of repaired :class:`Product` records.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from itertools import count
from typing import Any, Callable, Iterator, Mapping

from pydantic import ValidationError

from thrift_search.models.products import Product
from thrift_search.models.search import AttributeSet

logger = logging.getLogger("thrift_search.parser")

DEFAULT_PRICE = 25.0
DEFAULT_CONDITION = "Good"

_PRICE_PATTERN = re.compile(r"-?\d+(?:\.\d+)?")


class PayloadKind(str, Enum):
    array = "array"
    objects = "objects"
    none = "none"


@dataclass(frozen=True)
class ParsedPayload:
    kind: PayloadKind
    items: tuple[Any, ...] = ()

    @property
    def found(self) -> bool:
        return self.kind is not PayloadKind.none

    def objects(self) -> list[dict[str, Any]]:
        return [item for item in self.items if isinstance(item, dict)]


NOT_FOUND = ParsedPayload(PayloadKind.none)


def _strip_code_fence(text: str) -> str:
    if not text.startswith("```"):
        return text
    text = text[3:]
    for lang in ("json", "JSON"):
        text = text.removeprefix(lang)
    text = text.lstrip("\n")
    return text.rsplit("```", 1)[0].strip()


def _balanced_end(text: str, start: int) -> int | None:
    """Index just past the bracket closing the one at ``start``, ignoring brackets inside strings."""
    opener = text[start]
    closer = "]" if opener == "[" else "}"
    depth = 0
    in_string = False
    escape_next = False
    for index in range(start, len(text)):
        ch = text[index]
        if escape_next:
            escape_next = False
            continue
        if in_string:
            if ch == "\\":
                escape_next = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return index + 1
    return None


def _enclosing_object_end(text: str, index: int) -> int | None:
    pos = text.find("{")
    while pos != -1 and pos < index:
        end = _balanced_end(text, pos)
        if end is None:
            pos = text.find("{", pos + 1)
            continue
        if end > index:
            return end
        pos = text.find("{", end)
    return None


def _first_array(text: str) -> list[Any] | None:
    """First well-formed array that is not nested inside a balanced object."""
    start = text.find("[")
    while start != -1:
        enclosing = _enclosing_object_end(text, start)
        if enclosing is not None:
            start = text.find("[", enclosing)
            continue
        end = _balanced_end(text, start)
        if end is not None:
            try:
                parsed = json.loads(text[start:end])
            except json.JSONDecodeError:
                parsed = None
            if isinstance(parsed, list):
                return parsed
        start = text.find("[", start + 1)
    return None


def _iter_objects(text: str) -> Iterator[dict[str, Any]]:
    start = text.find("{")
    while start != -1:
        end = _balanced_end(text, start)
        parsed: Any = None
        if end is not None:
            try:
                parsed = json.loads(text[start:end])
            except json.JSONDecodeError:
                parsed = None
        if isinstance(parsed, dict):
            yield parsed
            start = text.find("{", end)
        else:
            start = text.find("{", start + 1)


def extract_json_payload(raw: str | None) -> ParsedPayload:
    text = _strip_code_fence((raw or "").strip())
    if not text:
        return NOT_FOUND

    try:
        whole = json.loads(text)
    except json.JSONDecodeError:
        whole = None
    else:
        if isinstance(whole, list):
            return ParsedPayload(PayloadKind.array, tuple(whole))
        if isinstance(whole, dict):
            return ParsedPayload(PayloadKind.objects, (whole,))

    array = _first_array(text)
    if array is not None:
        return ParsedPayload(PayloadKind.array, tuple(array))

    objects = tuple(_iter_objects(text))
    if objects:
        return ParsedPayload(PayloadKind.objects, objects)

    return NOT_FOUND


def parse_attributes(raw: str | None) -> AttributeSet | None:
    payload = extract_json_payload(raw)
    if not payload.found:
        return None

    candidates = payload.objects()
    if not candidates:
        return AttributeSet()
    try:
        return AttributeSet.model_validate(candidates[0])
    except ValidationError as exc:
        logger.warning("parser.attributes_invalid", extra={"error": str(exc)})
        return AttributeSet()


def coerce_price(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if value >= 0 else None
    match = _PRICE_PATTERN.search(str(value).replace(",", ""))
    if match is None:
        return None
    price = float(match.group(0))
    return price if price >= 0 else None


IdGenerator = Callable[[], str]


def _default_ids() -> IdGenerator:
    counter = count(1)
    return lambda: f"parsed-{next(counter)}"


def _usable_id(value: object) -> bool:
    if isinstance(value, str):
        return bool(value.strip())
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def repair_product_record(record: Mapping[str, Any], *, next_id: IdGenerator) -> Product | None:
    """Fill defaults for repairable fields; records without a name or location are unusable."""

    name = record.get("name") or record.get("title")
    location = record.get("location")
    if not isinstance(name, str) or not name.strip():
        return None
    if not isinstance(location, str) or not location.strip():
        return None

    raw_id = record.get("id")
    price = coerce_price(record.get("price"))
    condition = record.get("condition")
    if not isinstance(condition, str) or not condition.strip():
        condition = DEFAULT_CONDITION

    repaired = {
        **record,
        "id": raw_id if _usable_id(raw_id) else next_id(),
        "name": name,
        "location": location,
        "condition": condition,
        "price": price if price is not None else DEFAULT_PRICE,
    }
    for optional in ("category", "subCategory", "description", "brand", "imageUrl"):
        value = repaired.get(optional)
        if value is not None and not isinstance(value, str):
            repaired[optional] = None
    if not isinstance(repaired.get("tags"), (list, tuple, str)):
        repaired["tags"] = []
    try:
        return Product.model_validate(repaired)
    except ValidationError as exc:
        logger.warning("parser.record_dropped", extra={"error": str(exc), "recordName": name})
        return None


_WRAPPER_KEYS = ("products", "listings", "items", "results")


def _unwrap_records(objects: list[dict[str, Any]]) -> Iterator[dict[str, Any]]:
    for obj in objects:
        nested = next((obj[key] for key in _WRAPPER_KEYS if isinstance(obj.get(key), list)), None)
        if nested is None:
            yield obj
        else:
            yield from (item for item in nested if isinstance(item, dict))


def parse_products(raw: str | None, *, next_id: IdGenerator | None = None) -> list[Product] | None:
    payload = extract_json_payload(raw)
    if not payload.found:
        return None

    next_id = next_id or _default_ids()
    products: list[Product] = []
    for record in _unwrap_records(payload.objects()):
        product = repair_product_record(record, next_id=next_id)
        if product is not None:
            products.append(product)
    return products


__all__ = [
    "DEFAULT_CONDITION",
    "DEFAULT_PRICE",
    "NOT_FOUND",
    "ParsedPayload",
    "PayloadKind",
    "coerce_price",
    "extract_json_payload",
    "parse_attributes",
    "parse_products",
    "repair_product_record",
]
