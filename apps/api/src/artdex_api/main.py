from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from artdex_api.api.errors import install_error_handlers
from artdex_api.api.routers.artists import router as artists_router
from artdex_api.api.routers.health import router as health_router
from artdex_api.db.session import create_engine
from artdex_api.observability.logging import access_log, configure_logging
from artdex_api.observability.metrics import render_metrics
from artdex_api.observability.middleware import RequestContextMiddleware
from artdex_api.observability.tracing import configure_tracing
from artdex_api.settings import Settings, get_settings

logger = logging.getLogger("artdex_api.main")


def _lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "artdex_api_started",
            extra={
                "illustration_resolver_mode": settings.illustration_resolver_mode,
                "version_merge_window_seconds": settings.version_merge_window_seconds,
                "tracing": configure_tracing(),
            },
        )
        yield
        await create_engine(settings.database_url).dispose()

    return lifespan


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging()
    app = FastAPI(title="Artdex API", version="0.1.0", lifespan=_lifespan(settings))

    # Browser Origin headers carry no trailing slash; AnyHttpUrl adds one.
    cors_origins = [str(origin).rstrip("/") for origin in settings.api_cors_origins]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(RequestContextMiddleware, access_log=access_log)
    install_error_handlers(app)

    app.include_router(health_router)
    app.include_router(artists_router)
    app.add_api_route("/metrics", render_metrics, methods=["GET"], include_in_schema=False)
    return app


app = create_app()
