from functools import lru_cache
from typing import List

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    api_title: str = "Thrift Search API"
    api_version: str = "0.1.0"
    log_level: str = "INFO"

    genai_provider: str = "gemini"  # gemini | fake | offline
    gemini_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    )
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta/models"
    gemini_model: str = "gemini-1.5-flash-002"
    genai_temperature: float = 0.2
    genai_top_p: float = 0.8
    genai_top_k: int = 40
    genai_max_output_tokens: int = 2048
    genai_timeout_sec: float = 10.0

    search_default_limit: int = 24
    search_max_limit: int = 100

    catalog_backend: str = Field("memory", alias="CATALOG_BACKEND")  # memory | sqlite | postgres
    catalog_seed_path: str | None = None
    catalog_sqlite_url: str = Field(
        default="sqlite:///./data/sqlite/catalog.db",
        validation_alias=AliasChoices("CATALOG_SQLITE_URL", "SQLITE_URL"),
    )
    catalog_postgres_url: str | None = Field(
        default=None,
        alias="CATALOG_POSTGRES_URL",
    )

    cors_origins: List[str] = Field(
        default_factory=lambda: [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]
    )
    frontend_origin: str | None = Field(default=None, alias="FRONTEND_ORIGIN")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def resolved_cors_origins(self) -> List[str]:
        """
        Returns the configured CORS origins plus the optional deployed frontend origin, deduped.
        """
        normalized: list[str] = []

        def _append(origin: str | None) -> None:
            if not origin:
                return
            cleaned = origin.rstrip("/")
            if cleaned not in normalized:
                normalized.append(cleaned)

        for origin in self.cors_origins:
            _append(origin)

        _append(self.frontend_origin)
        return normalized


@lru_cache
def get_settings() -> AppSettings:
    return AppSettings()
