from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest

from thrift_search.db import session as session_module


def _reset_session_state() -> None:
    session_module._engine = None
    session_module._SessionLocal = None


@pytest.fixture(autouse=True)
def _reset_session_globals():
    _reset_session_state()
    yield
    _reset_session_state()


def stub_settings(monkeypatch, **values: Any) -> None:
    defaults = {
        "catalog_backend": "sqlite",
        "catalog_sqlite_url": "sqlite:///unused.db",
        "catalog_postgres_url": None,
    }
    defaults.update(values)
    monkeypatch.setattr(session_module, "get_settings", lambda: SimpleNamespace(**defaults))


def test_get_engine_uses_sqlite_url_and_connect_args(monkeypatch) -> None:
    captured: dict[str, Any] = {}

    def fake_create_engine(url: str, **kwargs: Any):
        captured["url"] = url
        captured["kwargs"] = kwargs
        return object()

    monkeypatch.setattr(session_module, "create_engine", fake_create_engine)
    stub_settings(monkeypatch, catalog_sqlite_url=" sqlite:///tmp/catalog.db ")

    session_module._get_engine()

    assert captured["url"] == "sqlite:///tmp/catalog.db"
    assert captured["kwargs"]["connect_args"] == {"check_same_thread": False}


def test_get_engine_uses_postgres_url_without_sqlite_connect_args(monkeypatch) -> None:
    captured: dict[str, Any] = {}

    def fake_create_engine(url: str, **kwargs: Any):
        captured["url"] = url
        captured["kwargs"] = kwargs
        return object()

    monkeypatch.setattr(session_module, "create_engine", fake_create_engine)
    stub_settings(monkeypatch, catalog_backend="postgres", catalog_postgres_url="postgresql+psycopg://example")

    session_module._get_engine()

    assert captured["url"] == "postgresql+psycopg://example"
    assert "connect_args" not in captured["kwargs"]


def test_get_engine_raises_when_postgres_backend_missing_url(monkeypatch) -> None:
    stub_settings(monkeypatch, catalog_backend="postgres")

    with pytest.raises(ValueError):
        session_module._get_engine()


def test_memory_backend_has_no_database(monkeypatch) -> None:
    stub_settings(monkeypatch, catalog_backend="memory")

    with pytest.raises(ValueError):
        session_module.resolve_catalog_db_url()
