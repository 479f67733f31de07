from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from thrift_search.api.routes import listings, products, search
from thrift_search.core.config import get_settings
from thrift_search.core.exceptions import register_exception_handlers
from thrift_search.core.logging import configure_logging
from thrift_search.core.middleware import RequestContextMiddleware


def create_app() -> FastAPI:
    """
    Application factory for the thrift marketplace search backend.
    Routes are attached in their respective modules and imported here.
    """

    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.api_title,
        description="Photo and text search over second-hand listings.",
        version=settings.api_version,
    )

    cors_origins = settings.resolved_cors_origins
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    register_exception_handlers(app)
    app.add_middleware(RequestContextMiddleware)

    app.include_router(search.router)
    app.include_router(products.router)
    app.include_router(listings.router)

    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
