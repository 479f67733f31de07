from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Callable, Mapping, Protocol, Sequence

from sqlalchemy import String, cast, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from thrift_search.core.config import AppSettings
from thrift_search.core.exceptions import CatalogError
from thrift_search.db.models import Listing
from thrift_search.models.products import SearchFilters
from thrift_search.services.fallback import SEED_PRODUCTS
from thrift_search.services.filters import (
    KEYWORD_FIELDS,
    PRODUCT_TYPE_FIELDS,
    matches_keyword,
    matches_product_type,
    product_type_terms,
)

logger = logging.getLogger("thrift_search.catalog")

CatalogRecord = Mapping[str, Any]
SessionFactory = Callable[[], Session]


class CatalogStore(Protocol):
    """Read-only access to marketplace listings.

    Records are returned as raw mappings; incomplete rows are left for the
    ranker to drop.
    """

    async def list_all(self) -> list[CatalogRecord]:
        ...

    async def query(self, filters: SearchFilters, *, text: str | None = None) -> list[CatalogRecord]:
        ...

    async def get_by_id(self, listing_id: str) -> CatalogRecord | None:
        ...


def _text(record: CatalogRecord, key: str) -> str:
    value = record.get(key)
    return value.lower() if isinstance(value, str) else ""


def _price(record: CatalogRecord) -> float | None:
    value = record.get("price")
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip().lstrip("$"))
    except (TypeError, ValueError):
        return None


def _texts(record: CatalogRecord, fields: Sequence[str]) -> list[str]:
    texts: list[str] = []
    for field in fields:
        value = record.get(field)
        if isinstance(value, str):
            texts.append(value)
        elif isinstance(value, (list, tuple)):
            texts.extend(item for item in value if isinstance(item, str))
    return texts


def matches_catalog_filters(record: CatalogRecord, filters: SearchFilters, text: str | None = None) -> bool:
    if filters.city and filters.city.lower() not in _text(record, "location"):
        return False
    if filters.productType and not matches_product_type(_texts(record, PRODUCT_TYPE_FIELDS), filters.productType):
        return False
    if filters.condition and filters.condition.lower() not in _text(record, "condition"):
        return False
    if filters.minPrice is not None or filters.maxPrice is not None:
        price = _price(record)
        if price is None:
            return False
        if filters.minPrice is not None and price < filters.minPrice:
            return False
        if filters.maxPrice is not None and price > filters.maxPrice:
            return False
    if text and not matches_keyword(_texts(record, KEYWORD_FIELDS), text):
        return False
    return True


def default_catalog_records() -> list[dict[str, Any]]:
    return [{**seed, "id": f"listing-{index}"} for index, seed in enumerate(SEED_PRODUCTS, start=1)]


class InMemoryCatalogStore:
    def __init__(self, records: Sequence[CatalogRecord]) -> None:
        self._records: tuple[CatalogRecord, ...] = tuple(dict(record) for record in records)

    @classmethod
    def from_json_file(cls, path: str | Path) -> "InMemoryCatalogStore":
        source = Path(path)
        try:
            payload = json.loads(source.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise CatalogError(f"Catalog seed file could not be loaded: {source}") from exc
        if isinstance(payload, dict):
            payload = payload.get("products", payload.get("listings"))
        if not isinstance(payload, list):
            raise CatalogError(f"Catalog seed file must contain a list of listings: {source}")
        records = [item for item in payload if isinstance(item, dict)]
        logger.info("catalog.loaded", extra={"path": str(source), "records": len(records)})
        return cls(records)

    async def list_all(self) -> list[CatalogRecord]:
        return list(self._records)

    async def query(self, filters: SearchFilters, *, text: str | None = None) -> list[CatalogRecord]:
        return [record for record in self._records if matches_catalog_filters(record, filters, text)]

    async def get_by_id(self, listing_id: str) -> CatalogRecord | None:
        return next((record for record in self._records if str(record.get("id")) == listing_id), None)


class SqlCatalogStore:
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    async def list_all(self) -> list[CatalogRecord]:
        return await asyncio.to_thread(self._select, None, None)

    async def query(self, filters: SearchFilters, *, text: str | None = None) -> list[CatalogRecord]:
        return await asyncio.to_thread(self._select, filters, text)

    async def get_by_id(self, listing_id: str) -> CatalogRecord | None:
        stmt = select(Listing).where(Listing.external_id == listing_id)
        rows = await asyncio.to_thread(self._fetch, stmt)
        return rows[0] if rows else None

    def _select(self, filters: SearchFilters | None, text: str | None) -> list[CatalogRecord]:
        stmt = select(Listing).order_by(Listing.pk)
        if filters is not None:
            if filters.city:
                stmt = stmt.where(Listing.location.ilike(f"%{filters.city}%"))
            if filters.productType:
                columns = (Listing.name, Listing.category, Listing.sub_category)
                stmt = stmt.where(
                    or_(
                        *(
                            column.ilike(f"%{term}%")
                            for term in product_type_terms(filters.productType)
                            for column in columns
                        )
                    )
                )
            if filters.condition:
                stmt = stmt.where(Listing.condition.ilike(f"%{filters.condition}%"))
            if filters.minPrice is not None:
                stmt = stmt.where(Listing.price >= filters.minPrice)
            if filters.maxPrice is not None:
                stmt = stmt.where(Listing.price <= filters.maxPrice)
        if text and text.strip():
            pattern = f"%{text.strip()}%"
            stmt = stmt.where(
                or_(
                    Listing.name.ilike(pattern),
                    Listing.description.ilike(pattern),
                    Listing.category.ilike(pattern),
                    Listing.sub_category.ilike(pattern),
                    Listing.brand.ilike(pattern),
                    cast(Listing.tags, String).ilike(pattern),
                )
            )
        return self._fetch(stmt)

    def _fetch(self, stmt) -> list[CatalogRecord]:
        session = self._session_factory()
        try:
            rows = session.scalars(stmt).all()
            return [row.to_record() for row in rows]
        except SQLAlchemyError as exc:
            raise CatalogError("Catalog query failed.") from exc
        finally:
            session.close()


def build_catalog_store(settings: AppSettings) -> CatalogStore:
    backend = (settings.catalog_backend or "memory").strip().lower()
    if backend == "memory":
        if settings.catalog_seed_path:
            return InMemoryCatalogStore.from_json_file(settings.catalog_seed_path)
        return InMemoryCatalogStore(default_catalog_records())
    if backend in {"sqlite", "postgres"}:
        from thrift_search.db.session import get_session_factory

        try:
            session_factory = get_session_factory()
        except (ValueError, SQLAlchemyError) as exc:
            raise CatalogError(str(exc), details={"backend": backend}) from exc
        return SqlCatalogStore(session_factory)
    raise CatalogError(f"Unsupported catalog backend: {settings.catalog_backend}", details={"backend": backend})


__all__ = [
    "CatalogRecord",
    "CatalogStore",
    "InMemoryCatalogStore",
    "SqlCatalogStore",
    "build_catalog_store",
    "default_catalog_records",
    "matches_catalog_filters",
]
