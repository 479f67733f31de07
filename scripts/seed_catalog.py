from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass
from itertools import count
from pathlib import Path
from typing import Iterable, List

import httpx
from sqlalchemy import create_engine, select
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from thrift_search.core.config import AppSettings
from thrift_search.db.base import Base
from thrift_search.db.models import Listing
from thrift_search.models.products import Product
from thrift_search.services.parser import parse_products

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
logger = logging.getLogger("seed_catalog")

DEFAULT_SQLITE_DB_URL = "sqlite:///./data/sqlite/catalog.db"


@dataclass
class SeedResult:
    inserted: int = 0
    updated: int = 0


def _default_db_url() -> str:
    settings = AppSettings()
    backend = (settings.catalog_backend or "sqlite").strip().lower()
    postgres_url = (settings.catalog_postgres_url or "").strip()
    sqlite_url = (settings.catalog_sqlite_url or DEFAULT_SQLITE_DB_URL).strip()
    if backend == "postgres":
        if postgres_url:
            return postgres_url
        raise ValueError("CATALOG_POSTGRES_URL must be set when CATALOG_BACKEND=postgres.")
    return sqlite_url


def _salvage(text: str, source: str, id_prefix: str) -> List[Product]:
    counter = count(1)
    products = parse_products(text, next_id=lambda: f"{id_prefix}{next(counter)}")
    if products is None:
        raise ValueError(f"{source} does not contain any JSON listings.")
    if not products:
        raise ValueError(f"{source} did not contain any usable listing records.")
    logger.info("Salvaged %d listings from %s", len(products), source)
    return products


def load_listings_from_file(path: Path, *, id_prefix: str = "import-") -> List[Product]:
    """Read a JSON export or raw model output and keep every listing that can be repaired."""

    if not path.exists():
        raise FileNotFoundError(f"Listings file not found at {path}")
    return _salvage(path.read_text(encoding="utf-8"), str(path), id_prefix)


def load_listings_from_endpoint(url: str, *, id_prefix: str = "import-") -> List[Product]:
    logger.info("Fetching listings from %s", url)
    resp = httpx.get(url, timeout=30.0)
    if resp.status_code >= 400:
        raise ValueError(f"Endpoint {url} returned status {resp.status_code}")
    return _salvage(resp.text, url, id_prefix)


def _prepare_engine(db_url: str):
    url = make_url(db_url)
    if url.get_backend_name() == "sqlite" and url.database:
        db_path = Path(url.database).expanduser()
        if not db_path.is_absolute():
            db_path = (Path.cwd() / db_path).resolve()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        url = url.set(database=str(db_path))
    return create_engine(url, future=True)


def _apply(listing: Listing, product: Product) -> None:
    listing.name = product.name
    listing.price = product.price
    listing.location = product.location
    listing.condition = product.condition
    listing.category = product.category or None
    listing.sub_category = product.subCategory or None
    listing.description = product.description or None
    listing.brand = product.brand
    listing.tags = list(product.tags)
    listing.image_url = product.imageUrl


def seed_catalog(*, records: Iterable[Product], db_url: str) -> SeedResult:
    records = list(records)
    if not records:
        raise ValueError("No listing records were provided.")

    engine = _prepare_engine(db_url)
    Base.metadata.create_all(engine)

    result = SeedResult()
    try:
        with Session(engine) as session:
            for product in records:
                stmt = select(Listing).where(Listing.external_id == product.id)
                listing = session.execute(stmt).scalar_one_or_none()
                if listing is None:
                    listing = Listing(external_id=product.id)
                    _apply(listing, product)
                    session.add(listing)
                    result.inserted += 1
                else:
                    _apply(listing, product)
                    result.updated += 1
            session.commit()
    except SQLAlchemyError as exc:
        logger.error("Failed to seed catalog database: %s", exc)
        raise
    finally:
        engine.dispose()

    logger.info(
        "Seeded catalog database at %s (inserted=%d, updated=%d)",
        db_url,
        result.inserted,
        result.updated,
    )
    return result


def _gather_records(args: argparse.Namespace) -> List[Product]:
    if getattr(args, "endpoint", None):
        return load_listings_from_endpoint(args.endpoint, id_prefix=args.id_prefix)
    return load_listings_from_file(Path(args.file), id_prefix=args.id_prefix)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Seed the listings catalog (SQLite or Postgres) from a JSON export or raw model output."
    )
    parser.add_argument(
        "--file",
        type=Path,
        default=Path("data/catalog/listings.json"),
        help="Path to a listings JSON file; prose around the JSON is tolerated.",
    )
    parser.add_argument(
        "--endpoint",
        type=str,
        default=None,
        help="HTTP endpoint returning listings; takes precedence over --file.",
    )
    parser.add_argument(
        "--id-prefix",
        type=str,
        default="import-",
        help="Prefix for ids generated for records that carry none.",
    )
    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help="SQLAlchemy database URL for the catalog (SQLite or Postgres).",
    )
    args = parser.parse_args(argv)
    if args.db is None:
        args.db = _default_db_url()
    return args


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    records = _gather_records(args)
    seed_catalog(records=records, db_url=args.db)


if __name__ == "__main__":
    main()
