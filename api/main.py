"""
FastAPI main application for the Bookshelf Catalog API.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.config import APIConfig, config as api_config
from api.dependencies import Services, build_services
from api.errors import register_exception_handlers
from api.routes import CATALOG_ROUTERS, HEALTH_ROUTER
from storage.database import MongoDBManager
from storage.repositories import (
    MongoAuthorRepository,
    MongoBookRepository,
    MongoFavoriteRepository,
    MongoUserRepository,
)
from utilities.config import AppConfig, config as app_config

logger = structlog.get_logger(__name__)


def create_app(
    services: Optional[Services] = None,
    settings: Optional[AppConfig] = None,
    api_settings: Optional[APIConfig] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        services: Pre-wired services; when omitted, MongoDB is connected at startup
        settings: Catalog configuration
        api_settings: HTTP server configuration

    Returns:
        Configured FastAPI application
    """
    settings = settings or app_config
    api_settings = api_settings or api_config

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info("Starting Bookshelf Catalog API", environment=settings.environment)

        manager = None
        if getattr(app.state, "services", None) is None:
            manager = MongoDBManager(settings.mongodb_url, settings.mongodb_database)
            try:
                database = await manager.connect()
            except Exception as e:
                logger.error("Failed to connect to database", error=str(e))
                raise

            app.state.services = build_services(
                settings,
                users=MongoUserRepository(database),
                authors=MongoAuthorRepository(database),
                books=MongoBookRepository(database),
                favorites=MongoFavoriteRepository(database),
                health_check=manager.health_check,
            )

        if not settings.jwt_secret:
            logger.critical("JWT_SECRET is not set; login and registration will fail")

        yield

        logger.info("Shutting down Bookshelf Catalog API")
        if manager is not None:
            await manager.disconnect()

    app = FastAPI(
        title=api_settings.api_title,
        description=api_settings.api_description,
        version=api_settings.api_version,
        lifespan=lifespan,
    )
    app.state.services = services
    app.state.api_settings = api_settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=api_settings.cors_origins,
        allow_credentials=api_settings.cors_allow_credentials,
        allow_methods=api_settings.cors_allow_methods,
        allow_headers=api_settings.cors_allow_headers,
    )

    register_exception_handlers(app, debug=api_settings.debug or settings.debug)

    app.include_router(HEALTH_ROUTER)
    for router in CATALOG_ROUTERS:
        app.include_router(router, prefix=api_settings.api_prefix)

    return app


app = create_app()
