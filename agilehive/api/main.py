"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures middleware and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from psycopg_pool import ConnectionPool

from agilehive.adapters.repository import (
    InMemoryAccountRepository,
    PostgresAccountRepository,
    run_migrations,
)
from agilehive.adapters.smtp import ConsoleEmailSender, SmtpEmailSender
from agilehive.api.auth import router as auth_router
from agilehive.config.settings import Settings, get_settings
from agilehive.domain.ports import EmailSender
from agilehive.domain.tokens import TokenIssuer

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "auth",
        "description": "Register with an emailed one-time code, log in, and inspect the current user",
    },
]


def build_email_sender(settings: Settings) -> EmailSender:
    """Create the email sender selected by EMAIL_BACKEND."""
    if settings.email_backend == "smtp":
        return SmtpEmailSender(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.email_from,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            timeout=settings.smtp_timeout_seconds,
        )
    return ConsoleEmailSender()


def build_token_issuer(settings: Settings) -> TokenIssuer:
    """
    Create the session token issuer from JWT settings.

    Raises:
        RuntimeError: If JWT_SECRET is not configured
    """
    if not settings.jwt_secret:
        raise RuntimeError("JWT_SECRET must be set to issue session tokens")
    return TokenIssuer(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        ttl=timedelta(hours=settings.token_ttl_hours),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates the token issuer first, refusing to start without JWT_SECRET
    - Creates the account repository (database pool + migrations for postgres)
    - Creates the email sender
    - Closes connection pool on shutdown
    """
    settings = get_settings()
    pool: ConnectionPool | None = None

    logger.info("Starting application...")

    app.state.token_issuer = build_token_issuer(settings)

    if settings.storage_backend == "memory":
        logger.info("Using in-memory storage")
        app.state.repository = InMemoryAccountRepository(settings.otp_ttl_seconds)
    else:
        logger.info("Connecting to database...")
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
        )

        logger.info("Running database migrations...")
        run_migrations(pool)

        app.state.repository = PostgresAccountRepository(pool, settings.otp_ttl_seconds)

    app.state.email_sender = build_email_sender(settings)

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    if pool is not None:
        pool.close()
        logger.info("Database connection pool closed")


app = FastAPI(
    title="agilehive",
    description="AgileHive Auth API - OTP registration, login and role-gated session tokens",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)

app.include_router(auth_router, prefix="/api")
# Compatibility for clients calling /auth/* without /api.
app.include_router(auth_router, include_in_schema=False)


@app.get("/")
async def root() -> dict[str, str]:
    return {"status": "AgileHive Backend is running!"}


@app.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with storage validation.

    Returns 200 OK if application and storage are healthy.
    Raises exception if the storage check fails.
    """
    request.app.state.repository.ping()
    return {"status": "healthy"}
