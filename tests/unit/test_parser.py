from __future__ import annotations

import logging

from thrift_search.services.parser import (
    DEFAULT_CONDITION,
    DEFAULT_PRICE,
    PayloadKind,
    coerce_price,
    extract_json_payload,
    parse_attributes,
    parse_products,
)


def test_array_wrapped_in_prose_is_extracted() -> None:
    raw = 'Sure, here are results:\n[{"id": "1", "name": "Jacket", "price": 10, "location": "NY", "condition": "Good"}]\nHope this helps!'

    payload = extract_json_payload(raw)

    assert payload.kind is PayloadKind.array
    assert payload.objects()[0]["name"] == "Jacket"


def test_price_string_is_coerced_to_number() -> None:
    raw = 'Here you go: [{"id":"1","name":"Jacket","price":"25","location":"NY","condition":"Good"}] enjoy!'

    products = parse_products(raw)

    assert products is not None
    assert len(products) == 1
    assert products[0].price == 25.0
    assert products[0].id == "1"


def test_code_fence_is_stripped() -> None:
    raw = '```json\n{"category": "Clothing", "tags": ["denim"]}\n```'

    attrs = parse_attributes(raw)

    assert attrs is not None
    assert attrs.category == "Clothing"
    assert attrs.tags == ["denim"]


def test_brackets_inside_strings_do_not_break_matching() -> None:
    raw = 'Result: {"category": "Clothing", "specific_features": ["logo [front]"], "tags": ["tee"]} done'

    attrs = parse_attributes(raw)

    assert attrs is not None
    assert attrs.specific_features == ["logo [front]"]


def test_truncated_array_falls_back_to_individual_objects() -> None:
    raw = (
        '[{"name": "Boots", "price": 40, "location": "Denver, CO", "condition": "Fair"},'
        ' {"name": "Bag", "price": 30, "location": "Austin, TX"}, {"name": "Trunc'
    )

    payload = extract_json_payload(raw)
    products = parse_products(raw)

    assert payload.kind is PayloadKind.objects
    assert products is not None
    assert [product.name for product in products] == ["Boots", "Bag"]
    assert products[1].condition == DEFAULT_CONDITION


def test_no_json_returns_none() -> None:
    assert extract_json_payload("I could not find anything, sorry.").found is False
    assert parse_attributes("I could not find anything, sorry.") is None
    assert parse_products("") is None


def test_empty_array_yields_empty_attribute_set() -> None:
    attrs = parse_attributes("[]")

    assert attrs is not None
    assert attrs.is_empty


def test_repair_fills_defaults_and_generates_ids() -> None:
    raw = '[{"name": "Scarf", "location": "Boston, MA", "price": "n/a", "tags": "wool, winter"}]'

    products = parse_products(raw, next_id=lambda: "generated-1")

    assert products is not None
    product = products[0]
    assert product.id == "generated-1"
    assert product.price == DEFAULT_PRICE
    assert product.condition == DEFAULT_CONDITION
    assert product.tags == ["wool", "winter"]
    assert product.brand == "Unknown"


def test_records_without_name_or_location_are_skipped() -> None:
    raw = '[{"price": 10, "location": "NY"}, {"name": "Hat"}, {"title": "Belt", "location": "LA"}]'

    products = parse_products(raw)

    assert products is not None
    assert [product.name for product in products] == ["Belt"]


def test_malformed_optional_field_does_not_discard_record() -> None:
    raw = '[{"name": "Coat", "location": "Seattle, WA", "category": 12, "tags": 7}]'

    products = parse_products(raw)

    assert products is not None
    assert products[0].category == ""
    assert products[0].tags == []


def test_coerce_price_handles_currency_strings() -> None:
    assert coerce_price("$1,250.50") == 1250.5
    assert coerce_price(19) == 19.0
    assert coerce_price(-3) is None
    assert coerce_price(True) is None
    assert coerce_price("free") is None


def test_attribute_aliases_and_placeholders() -> None:
    attrs = parse_attributes(
        '{"type": "Jacket", "color": "Blue, blue, Black", "material": "Denim", "pattern": "unknown"}'
    )

    assert attrs is not None
    assert attrs.subCategory == "Jacket"
    assert attrs.colors == ["Blue", "Black"]
    assert attrs.materials == ["Denim"]
    assert attrs.pattern is None


def test_wrapped_product_list_is_unwrapped() -> None:
    raw = 'Results below {"products": [{"name": "Tote", "location": "Miami, FL", "price": "$12"}]} thanks'

    products = parse_products(raw)

    assert products is not None
    assert [(product.name, product.price) for product in products] == [("Tote", 12.0)]


def test_record_failing_validation_is_dropped_and_others_survive(caplog) -> None:
    raw = '[{"name": "Jacket", "location": "Portland, OR"}, {"id": "2", "name": "Boots", "location": "Denver, CO"}]'

    with caplog.at_level(logging.WARNING, logger="thrift_search.parser"):
        products = parse_products(raw, next_id=lambda: "")

    assert products is not None
    assert [product.id for product in products] == ["2"]
    dropped = [record for record in caplog.records if record.getMessage() == "parser.record_dropped"]
    assert [record.recordName for record in dropped] == ["Jacket"]


def test_malformed_ids_are_regenerated() -> None:
    raw = (
        '[{"id": true, "name": "Jacket", "location": "Portland, OR"},'
        ' {"id": ["x"], "name": "Scarf", "location": "Boston, MA"},'
        ' {"id": {"v": 1}, "name": "Belt", "location": "Austin, TX"},'
        ' {"id": 7, "name": "Boots", "location": "Denver, CO"}]'
    )
    ids = iter(["gen-1", "gen-2", "gen-3"])

    products = parse_products(raw, next_id=lambda: next(ids))

    assert products is not None
    assert [(product.name, product.id) for product in products] == [
        ("Jacket", "gen-1"),
        ("Scarf", "gen-2"),
        ("Belt", "gen-3"),
        ("Boots", "7"),
    ]


def test_negative_price_strings_take_the_default() -> None:
    assert coerce_price("-40") is None
    assert coerce_price("-40") == coerce_price(-40)

    products = parse_products('[{"name": "Lamp", "location": "Austin, TX", "price": "-40"}]')

    assert products is not None
    assert products[0].price == DEFAULT_PRICE
