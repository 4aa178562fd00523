"""
Package Matching & Conversion Service - FastAPI Application
Backends:
- CATALOG_BACKEND=memory: JSON seed in CATALOG_DATA_DIR; mongo: MongoDB
- SESSION_BACKEND=memory: in-process sessions; redis: Redis with optimistic saves
"""

import os
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from . import __version__
from .api import conversions_router, matching_router, pricing_router
from .config import Settings, settings as default_settings
from .interfaces import (
    BookingGateway,
    ConversionSessionStore,
    MemoryBookingGateway,
    MemoryCatalog,
    MongoBookingGateway,
    MongoCatalog,
    PackageCatalog,
    build_session_store,
)
from .services import ConversionService, MatchingService, PricingService

# Configure logging
logger.remove()
logger.add(sys.stderr, level=default_settings.LOG_LEVEL)


def build_catalog(settings: Settings) -> PackageCatalog:
    if settings.CATALOG_BACKEND == "mongo":
        return MongoCatalog(settings.MONGO_URI, settings.MONGO_DB)
    return MemoryCatalog.from_json(os.path.join(settings.CATALOG_DATA_DIR, "catalog.json"))


def build_booking_gateway(settings: Settings) -> BookingGateway:
    if settings.CATALOG_BACKEND == "mongo":
        return MongoBookingGateway(settings.MONGO_URI, settings.MONGO_DB)
    return MemoryBookingGateway()


def create_app(
    settings: Settings = default_settings,
    catalog: Optional[PackageCatalog] = None,
    session_store: Optional[ConversionSessionStore] = None,
    booking_gateway: Optional[BookingGateway] = None
) -> FastAPI:
    """
    Build the FastAPI application

    Collaborators not passed in are built from settings.
    """
    catalog = catalog or build_catalog(settings)
    session_store = session_store or build_session_store(settings)
    booking_gateway = booking_gateway or build_booking_gateway(settings)

    matching_service = MatchingService(
        catalog,
        default_algorithm=settings.MATCHING_DEFAULT_ALGORITHM,
        default_max_results=settings.MATCHING_MAX_RESULTS,
        default_min_score=settings.MATCHING_MIN_SCORE,
    )
    pricing_service = PricingService(catalog, target_margin=settings.PRICING_TARGET_MARGIN)
    conversion_service = ConversionService(
        catalog,
        session_store,
        matching_service,
        pricing_service,
        booking_gateway,
        auto_match_max_results=settings.AUTO_MATCH_MAX_RESULTS,
        auto_match_min_score=settings.AUTO_MATCH_MIN_SCORE,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler"""
        logger.info("=" * 50)
        logger.info("Starting Package Matching & Conversion Service")
        logger.info("=" * 50)
        logger.info(f"Environment: {settings.API_ENV}")
        logger.info(f"Catalog backend: {type(catalog).__name__}")
        logger.info(f"Session backend: {'redis' if session_store.redis_client is not None else 'memory'}")
        logger.info(f"Packages loaded: {len(catalog.get_all_packages())}")

        yield

        logger.info("Package service shutdown complete")

    app = FastAPI(
        title="Package Matching & Conversion Service",
        description="Matches package requests to catalog packages, prices them and converts them to bookings.",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.state.catalog = catalog
    app.state.session_store = session_store
    app.state.matching_service = matching_service
    app.state.pricing_service = pricing_service
    app.state.conversion_service = conversion_service

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(matching_router)
    app.include_router(pricing_router)
    app.include_router(conversions_router)

    @app.get("/")
    def root():
        """Root endpoint"""
        return {
            "service": "Package Matching & Conversion Service",
            "version": __version__,
            "status": "running",
            "docs": "/docs",
            "endpoints": [
                "/api/packages/health",
                "/api/packages/requests/{request_id}/matches",
                "/api/packages/requests/{request_id}/pricing",
                "/api/packages/conversions",
                "/api/packages/conversions/analytics",
                "/api/packages/conversions/candidates",
            ]
        }

    @app.get("/api/packages/health")
    def health_check():
        """Detailed health check"""
        components = {
            "catalog": "connected" if catalog.health_check() else "unavailable",
            "session_store": "connected" if session_store.health_check() else "unavailable",
        }
        healthy = all(status == "connected" for status in components.values())
        return {
            "status": "healthy" if healthy else "degraded",
            "version": __version__,
            "components": components,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "tripmatch.main:app",
        host=default_settings.API_HOST,
        port=default_settings.API_PORT,
        reload=default_settings.API_ENV == "development"
    )
