"""
Registrar API - Main Application Entry Point

Admission control for event registrations:
- Per-event critical section (asyncio lock + SELECT ... FOR UPDATE)
- Confirmed / waitlisted admission with FIFO waitlist promotion
- Post-commit notification fan-out (log or Redis pub/sub)
- Structured logging with request correlation, Prometheus metrics
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from registrar.api.exception_handlers import register_exception_handlers
from registrar.api.middleware import RequestLoggingMiddleware
from registrar.api.router import api_router
from registrar.core.config import Settings, get_settings
from registrar.core.logging import get_logger, setup_logging
from registrar.core.metrics import metrics_endpoint
from registrar.infrastructure.redis_client import RedisClient
from registrar.infrastructure.sql_ledger import SqlAlchemyLedger
from registrar.services.factory import build_dispatcher, build_ledger, build_registration_service


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifecycle: startup and shutdown hooks."""
        setup_logging()
        logger = get_logger(__name__)

        logger.info(
            "application_starting",
            app=settings.APP_NAME,
            version=settings.APP_VERSION,
            environment=settings.ENVIRONMENT,
            ledger_backend=settings.LEDGER_BACKEND,
        )

        ledger = build_ledger(settings)
        if isinstance(ledger, SqlAlchemyLedger) and settings.ENVIRONMENT == "development":
            # Production schemas come from alembic
            await ledger.create_schema()

        dispatcher = build_dispatcher(settings)
        app.state.ledger = ledger
        app.state.registration_service = build_registration_service(settings, ledger, dispatcher)

        yield

        await ledger.close()
        await RedisClient.close()
        logger.info("application_shutdown")

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Event registration admission control with waitlist promotion",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Restrict in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)
    app.include_router(api_router)

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint for Docker and load balancers."""
        return {
            "status": "healthy",
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "ledger": settings.LEDGER_BACKEND,
            "notifications": "redis" if settings.REDIS_ENABLED else "log",
        }

    @app.get("/metrics", tags=["Health"], include_in_schema=False)
    async def metrics():
        return metrics_endpoint()

    return app


app = create_app()
