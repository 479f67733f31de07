from fastapi.testclient import TestClient

from thrift_search.api.routes.products import get_catalog_store
from thrift_search.core.config import AppSettings, get_settings
from thrift_search.core.exceptions import CatalogError
from thrift_search.main import create_app
from thrift_search.services.catalog import InMemoryCatalogStore

RECORDS = [
    {"id": "1", "name": "Wool Coat", "price": 80, "location": "Boston, MA", "condition": "Good", "category": "Clothing"},
    {"id": "2", "name": "Canvas Tote", "price": 15, "location": "Austin, TX", "condition": "Good", "category": "Accessories"},
    {"id": "3", "name": "Incomplete", "price": 5, "condition": "Good", "category": "Accessories"},
    {"id": "4", "name": "Leather Belt", "price": 18, "location": "Austin, TX", "condition": "Fair", "category": "Accessories"},
]


class BrokenStore:
    async def list_all(self):
        raise CatalogError("Catalog query failed.")

    async def query(self, filters, *, text=None):
        raise CatalogError("Catalog query failed.")

    async def get_by_id(self, listing_id):
        raise CatalogError("Catalog query failed.")


def create_client(store) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_catalog_store] = lambda: store
    return TestClient(app)


def test_products_endpoint_lists_complete_records():
    client = create_client(InMemoryCatalogStore(RECORDS))

    res = client.get("/products")

    assert res.status_code == 200
    payload = res.json()
    assert payload["total"] == 3
    assert [product["id"] for product in payload["products"]] == ["1", "2", "4"]


def test_products_endpoint_filters_and_limits():
    client = create_client(InMemoryCatalogStore(RECORDS))

    res = client.get("/products", params={"city": "austin", "productType": "accessories", "limit": 1})

    assert res.status_code == 200
    payload = res.json()
    assert payload["total"] == 2
    assert [product["id"] for product in payload["products"]] == ["2"]


def test_products_endpoint_surfaces_catalog_errors():
    client = create_client(BrokenStore())

    res = client.get("/products")

    assert res.status_code == 503
    assert res.json()["error"]["type"] == "CATALOG_ERROR"


def test_products_endpoint_keyword_query():
    client = create_client(InMemoryCatalogStore(RECORDS))

    res = client.get("/products", params={"query": "belt"})

    assert res.status_code == 200
    assert [product["id"] for product in res.json()["products"]] == ["4"]


def test_products_endpoint_limit_follows_settings():
    app = create_app()
    app.dependency_overrides[get_catalog_store] = lambda: InMemoryCatalogStore(RECORDS)
    app.dependency_overrides[get_settings] = lambda: AppSettings(
        _env_file=None, search_default_limit=1, search_max_limit=2
    )
    client = TestClient(app)

    default = client.get("/products").json()
    capped = client.get("/products", params={"limit": 50}).json()

    assert default["total"] == 3
    assert [product["id"] for product in default["products"]] == ["1"]
    assert [product["id"] for product in capped["products"]] == ["1", "2"]
    assert client.get("/products", params={"limit": 0}).status_code == 422


def test_product_detail_returns_listing():
    client = create_client(InMemoryCatalogStore(RECORDS))

    res = client.get("/products/2")

    assert res.status_code == 200
    assert res.json()["name"] == "Canvas Tote"


def test_product_detail_missing_or_incomplete_is_404():
    client = create_client(InMemoryCatalogStore(RECORDS))

    missing = client.get("/products/99")
    incomplete = client.get("/products/3")

    assert missing.status_code == 404
    assert missing.json()["error"]["type"] == "LISTING_NOT_FOUND"
    assert incomplete.status_code == 404
