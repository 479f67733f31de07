from fastapi import APIRouter, Depends, Query

from thrift_search.core.config import AppSettings, get_settings
from thrift_search.core.exceptions import ListingNotFoundError
from thrift_search.models.products import Product, ProductListResponse, SearchFilters
from thrift_search.services.catalog import CatalogStore, build_catalog_store
from thrift_search.services.ranker import filter_rankable

router = APIRouter(prefix="/products", tags=["products"])


def get_catalog_store() -> CatalogStore:
    return build_catalog_store(get_settings())


@router.get("", response_model=ProductListResponse)
async def list_products(
    query: str | None = Query(
        None,
        description="Keyword matched against name, description, tags, category, sub-category and brand.",
    ),
    city: str | None = Query(None, description="Substring of the listing location."),
    productType: str | None = Query(None, description="Product type or category keyword."),
    condition: str | None = Query(None, description="Substring of the listing condition."),
    minPrice: float | None = Query(None, ge=0),
    maxPrice: float | None = Query(None, ge=0),
    limit: int | None = Query(
        None,
        ge=1,
        description="Maximum number of listings to return; defaults to and is capped by the search limits.",
    ),
    store: CatalogStore = Depends(get_catalog_store),
    settings: AppSettings = Depends(get_settings),
) -> ProductListResponse:
    filters = SearchFilters(
        city=city,
        productType=productType,
        condition=condition,
        minPrice=minPrice,
        maxPrice=maxPrice,
    )
    resolved_limit = min(limit or settings.search_default_limit, settings.search_max_limit)
    products = filter_rankable(await store.query(filters, text=query))
    return ProductListResponse(total=len(products), products=products[:resolved_limit])


@router.get("/{listing_id}", response_model=Product)
async def get_product(
    listing_id: str,
    store: CatalogStore = Depends(get_catalog_store),
) -> Product:
    record = await store.get_by_id(listing_id)
    products = filter_rankable([record]) if record is not None else []
    if not products:
        raise ListingNotFoundError(f"Listing {listing_id} was not found.", details={"id": listing_id})
    return products[0]
