"""
S91 Back-Office API: application entry-point.

``create_app()`` wires middleware, exception handlers and the v1 routers;
the module-level ``app`` is what uvicorn serves::

    uvicorn backoffice.main:app

Tables are created at start-up.  If the database cannot be reached the
service still starts, in degraded mode: ``/health`` reports it and every
database-backed endpoint answers 503 until the database comes back.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel

from backoffice.api.v1.api import api_router
from backoffice.core.cache import cache
from backoffice.core.config import settings
from backoffice.core.exceptions import add_exception_handlers
from backoffice.core.logging import setup_logging
from backoffice.core.resilience import db_circuit_breaker
from backoffice.db.session import AsyncSessionLocal, engine
from backoffice.middleware import RequestIDMiddleware, RequestTimingMiddleware

VERSION = "1.0.0"

logger = logging.getLogger(__name__)


async def create_tables(attempts: int, backoff: float) -> bool:
    """
    Create every table, retrying with exponential back-off.

    Returns ``False`` instead of raising when all attempts fail, so the
    caller can decide to serve in degraded mode.
    """
    # Registers every table class with SQLModel.metadata.
    import backoffice.db.base  # noqa: F401

    delay = backoff
    for attempt in range(1, attempts + 1):
        try:
            async with engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)
            logger.info("Database tables ready")
            return True
        except (SQLAlchemyError, OSError) as exc:
            if attempt == attempts:
                logger.error(
                    "Database unreachable after %d attempts, starting in DEGRADED mode: %s",
                    attempts,
                    exc,
                )
                return False
            logger.warning(
                "Database connection failed (attempt %d/%d): %s; retrying in %.1fs",
                attempt,
                attempts,
                exc,
                delay,
            )
            await asyncio.sleep(delay)
            delay *= 2
    return False


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create tables on start-up, release the connection pool on shutdown."""
    app.state.database_ready = await create_tables(
        settings.DB_CONNECT_ATTEMPTS, settings.DB_CONNECT_BACKOFF
    )
    yield
    logger.info("Shutting down, disposing connection pool")
    await engine.dispose()


async def health_check():
    """
    Liveness / readiness probe.

    Runs ``SELECT 1`` so a readiness probe stops routing traffic to an
    instance that lost its database, and reports the circuit breaker and
    cache state alongside.
    """
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
        db_healthy = True
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("Health check could not reach the database: %s", exc)
        db_healthy = False

    return {
        "status": "ok" if db_healthy else "degraded",
        "version": VERSION,
        "database": db_healthy,
        "waiting_period_days": settings.WAITING_PERIOD_DAYS,
        "circuit_breaker": db_circuit_breaker.get_status(),
        "cache": cache.get_stats(),
    }


def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        version=VERSION,
        description=(
            "Back-office API for investors, capital contributions, monthly returns, "
            "waiting-period capital returns, trading P&L and firm-wide capital figures."
        ),
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        lifespan=lifespan,
    )

    # Added last runs first: CORS wraps timing, which wraps the request id.
    application.add_middleware(GZipMiddleware, minimum_size=500)
    application.add_middleware(RequestIDMiddleware)
    application.add_middleware(RequestTimingMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS.split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    add_exception_handlers(application)
    application.include_router(api_router, prefix=settings.API_V1_STR)
    application.add_api_route("/health", health_check, methods=["GET"], tags=["Health"])
    return application


setup_logging()
app = create_app()
