from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from thrift_search.core.config import get_settings

_engine = None
_SessionLocal: sessionmaker[Session] | None = None


def resolve_catalog_db_url() -> str:
    settings = get_settings()
    backend = (settings.catalog_backend or "sqlite").strip().lower()
    if backend == "postgres":
        db_url = (settings.catalog_postgres_url or "").strip()
        if not db_url:
            raise ValueError("CATALOG_POSTGRES_URL must be configured when CATALOG_BACKEND=postgres.")
    elif backend == "sqlite":
        db_url = (settings.catalog_sqlite_url or "").strip()
        if not db_url:
            raise ValueError("CATALOG_SQLITE_URL / SQLITE_URL must be configured when CATALOG_BACKEND=sqlite.")
    else:
        raise ValueError(f"CATALOG_BACKEND={settings.catalog_backend} does not use a database.")
    return db_url


def _get_engine():
    global _engine
    if _engine is None:
        db_url = resolve_catalog_db_url()
        kwargs: dict[str, object] = {}
        if db_url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
        _engine = create_engine(db_url, **kwargs)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(bind=_get_engine(), autoflush=False, autocommit=False)
    return _SessionLocal
