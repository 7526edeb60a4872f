"""
shelter_core.api.app

FastAPI app factory for the shelter core service.

Responsibilities:
- Build the FastAPI application and register routers/middleware/error handlers.
- Initialize and dispose shared infrastructure (DB engine, document store, services).
- Seed the built-in roles on startup (best effort).
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from shelter_core import __version__
from shelter_core.api.errors import register_error_handlers
from shelter_core.api.routers.auth import router as auth_router
from shelter_core.api.routers.cases import router as cases_router
from shelter_core.api.routers.health import router as health_router
from shelter_core.api.routers.roles import router as roles_router
from shelter_core.api.routers.users import router as users_router
from shelter_core.db.documents import DocumentStore
from shelter_core.db.init_db import init_db
from shelter_core.db.session import create_engine, create_sessionmaker
from shelter_core.observability.logging import configure_logging, get_logger
from shelter_core.observability.middleware import RequestContextMiddleware
from shelter_core.services.container import build_services
from shelter_core.settings import Settings

log = get_logger(__name__)


def create_app(*, settings: Settings) -> FastAPI:
    configure_logging(service_name=settings.service_name, level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        engine = create_engine(settings)
        if settings.env in ("dev", "test"):
            # Production schemas are provisioned out of band.
            await init_db(engine)
        services = build_services(DocumentStore(create_sessionmaker(engine)), settings)
        app.state.engine = engine
        app.state.services = services

        created = await services.roles.ensure_built_in_roles()
        if created:
            log.info("built_in_roles_seeded", roles=created)
        try:
            yield
        finally:
            await services.repairer.drain()
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="Shelter Core",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(RequestContextMiddleware)
    register_error_handlers(app)
    app.include_router(health_router, tags=["health"])
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(roles_router)
    app.include_router(cases_router)
    return app


# --- Module Notes -----------------------------------------------------------
# Composition only; permission logic lives in `auth`, data rules in `db` and `services`.
