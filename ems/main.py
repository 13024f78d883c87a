"""
Employee Management System - FastAPI application.

Docs live at /docs and the health probes at the root; everything else is
mounted under ``settings.api_prefix``. The query cache and the auth event bus
are created here and live on ``app.state`` for the lifetime of the process.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from ems.core.cache import QueryCache
from ems.core.config import settings
from ems.core.error_handlers import register_exception_handlers
from ems.core.init_system import init_system_data
from ems.core.limiter import limiter
from ems.core.logging import setup_logging
from ems.core.middleware import CorrelationIdMiddleware, LoggingMiddleware
from ems.database import init_db
from ems.routers import health
from ems.routers.api_router import api_router
from ems.services.identity import AuthEventBus

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.app_name} v{settings.version} ({settings.environment})")
    try:
        init_db()
        logger.info("✓ Database initialized successfully")
    except Exception as e:
        logger.error(f"✗ Database initialization failed: {e}")
        raise

    init_system_data()

    yield

    logger.info("Shutting down, dropping cached queries")
    app.state.query_cache.clear()


def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.app_name,
        version=settings.version,
        description="HR records, leave, attendance, payroll and performance",
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    application.state.query_cache = QueryCache(enabled=settings.enable_caching)
    application.state.auth_events = AuthEventBus()

    # ========================================================================
    # RATE LIMITING AND ERRORS
    # ========================================================================
    application.state.limiter = limiter
    application.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    register_exception_handlers(application)

    # ========================================================================
    # MIDDLEWARE (last added runs first: CORS, correlation id, logging)
    # ========================================================================
    application.add_middleware(LoggingMiddleware)
    application.add_middleware(CorrelationIdMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Process-Time"],
    )

    # ========================================================================
    # ROUTES
    # ========================================================================
    application.include_router(health.router)
    application.include_router(api_router, prefix=settings.api_prefix)
    return application


app = create_app()
