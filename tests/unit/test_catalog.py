from __future__ import annotations

import json
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from thrift_search.core.config import AppSettings
from thrift_search.core.exceptions import CatalogError
from thrift_search.db.base import Base
from thrift_search.db.models import Listing
from thrift_search.models.products import Product, SearchFilters
from thrift_search.services.catalog import (
    InMemoryCatalogStore,
    SqlCatalogStore,
    build_catalog_store,
    matches_catalog_filters,
)
from thrift_search.services.fallback import matches_fallback_filters

RECORDS = [
    {"id": "a", "name": "Wool Coat", "price": 80, "location": "Boston, MA", "condition": "Like New", "category": "Clothing", "subCategory": "Outerwear"},
    {"id": "b", "name": "Canvas Tote", "price": "15", "location": "Austin, TX", "condition": "Good", "category": "Accessories", "subCategory": "Bags"},
    {"id": "c", "name": "No Price", "location": "Austin, TX", "condition": "Good", "category": "Accessories"},
]


def test_filters_match_location_category_condition_and_price() -> None:
    assert matches_catalog_filters(RECORDS[0], SearchFilters(city="boston", productType="outerwear"))
    assert matches_catalog_filters(RECORDS[0], SearchFilters(condition="new", minPrice=80, maxPrice=80))
    assert not matches_catalog_filters(RECORDS[0], SearchFilters(maxPrice=79.99))
    assert matches_catalog_filters(RECORDS[1], SearchFilters(maxPrice=20))
    assert not matches_catalog_filters(RECORDS[2], SearchFilters(minPrice=1))
    assert matches_catalog_filters(RECORDS[2], SearchFilters(city="austin"))


@pytest.mark.asyncio
async def test_in_memory_store_queries_records() -> None:
    store = InMemoryCatalogStore(RECORDS)

    assert [record["id"] for record in await store.list_all()] == ["a", "b", "c"]
    assert [record["id"] for record in await store.query(SearchFilters(city="Austin"))] == ["b", "c"]


@pytest.mark.asyncio
async def test_in_memory_store_loads_json_export(tmp_path: Path) -> None:
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps({"products": RECORDS}), encoding="utf-8")

    store = InMemoryCatalogStore.from_json_file(path)

    assert len(await store.list_all()) == 3


def test_in_memory_store_rejects_missing_file(tmp_path: Path) -> None:
    with pytest.raises(CatalogError):
        InMemoryCatalogStore.from_json_file(tmp_path / "missing.json")


def build_session_factory() -> sessionmaker[Session]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine)
    with factory() as session:
        session.add_all(
            [
                Listing(external_id="a", name="Wool Coat", price=80, location="Boston, MA", condition="Like New", category="Clothing", sub_category="Outerwear", tags=["wool"]),
                Listing(external_id="b", name="Canvas Tote", price=15, location="Austin, TX", condition="Good", category="Accessories", sub_category="Bags", tags=[]),
                Listing(external_id="c", name="Mystery Box", price=None, location=None, condition="Good"),
            ]
        )
        session.commit()
    return factory


@pytest.mark.asyncio
async def test_sql_store_applies_filters() -> None:
    store = SqlCatalogStore(build_session_factory())

    everything = await store.list_all()
    bags = await store.query(SearchFilters(productType="bags", maxPrice=20))

    assert [record["id"] for record in everything] == ["a", "b", "c"]
    assert everything[2]["location"] is None
    assert [record["id"] for record in bags] == ["b"]
    assert bags[0]["subCategory"] == "Bags"


def test_build_catalog_store_defaults_to_memory() -> None:
    store = build_catalog_store(AppSettings(_env_file=None, catalog_backend="memory", catalog_seed_path=None))

    assert isinstance(store, InMemoryCatalogStore)


def test_build_catalog_store_rejects_unknown_backend() -> None:
    with pytest.raises(CatalogError):
        build_catalog_store(AppSettings(_env_file=None, catalog_backend="mongo"))


BOOTS = {
    "id": "boots-1",
    "name": "Classic Leather Boots",
    "price": 65.0,
    "location": "Denver, CO",
    "condition": "Fair",
    "category": "Footwear",
    "subCategory": "Boots",
}


@pytest.mark.parametrize("product_type", ["shoes", "Footwear", "boots", "clothing", "furniture"])
def test_catalog_and_fallback_agree_on_product_type(product_type: str) -> None:
    filters = SearchFilters(productType=product_type)

    assert matches_catalog_filters(BOOTS, filters) == matches_fallback_filters(Product.model_validate(BOOTS), filters)


@pytest.mark.asyncio
async def test_product_type_keyword_map_applies_to_both_stores() -> None:
    memory = InMemoryCatalogStore([BOOTS, *RECORDS])
    sql = SqlCatalogStore(build_session_factory())

    assert [record["id"] for record in await memory.query(SearchFilters(productType="shoes"))] == ["boots-1"]
    assert [record["id"] for record in await sql.query(SearchFilters(productType="clothing"))] == ["a"]
    assert [record["id"] for record in await sql.query(SearchFilters(productType="accessories"))] == ["b"]


@pytest.mark.asyncio
async def test_keyword_query_searches_text_fields() -> None:
    records = [
        {**RECORDS[0], "brand": "Patagonia", "tags": ["winter"]},
        {**RECORDS[1], "description": "Sturdy tote for the market"},
    ]
    memory = InMemoryCatalogStore(records)
    sql = SqlCatalogStore(build_session_factory())

    assert [r["id"] for r in await memory.query(SearchFilters(), text="patagonia")] == ["a"]
    assert [r["id"] for r in await memory.query(SearchFilters(), text="WINTER")] == ["a"]
    assert [r["id"] for r in await memory.query(SearchFilters(), text="market")] == ["b"]
    assert [r["id"] for r in await memory.query(SearchFilters(city="boston"), text="tote")] == []
    assert [r["id"] for r in await sql.query(SearchFilters(), text="wool")] == ["a"]
    assert [r["id"] for r in await sql.query(SearchFilters(), text="canvas")] == ["b"]
    assert [r["id"] for r in await sql.query(SearchFilters(), text="  ")] == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_get_by_id_returns_record_or_none() -> None:
    memory = InMemoryCatalogStore(RECORDS)
    sql = SqlCatalogStore(build_session_factory())

    assert (await memory.get_by_id("b"))["name"] == "Canvas Tote"
    assert await memory.get_by_id("zzz") is None
    assert (await sql.get_by_id("a"))["subCategory"] == "Outerwear"
    assert await sql.get_by_id("zzz") is None
