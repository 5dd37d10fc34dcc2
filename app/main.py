"""
FastAPI Application Entry Point
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException

from app.api.v1.router import api_router
from app.core.config import settings
from app.core.errors import (
    AppError,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    general_exception_handler,
)
from app.core.logging import get_logger, setup_logging, RequestIDMiddleware
from app.core.security import TokenVerifier
from app.infra.db import close_db_connection, create_tables
from app.infra.keycloak import KeycloakClient
from app.infra.queue import TranscriptionDispatcher
from app.infra.redis import init_redis_pool, close_redis_pool
from app.infra.storage import BlobStore
from app.services.pdf_service import PdfRenderer

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging()
    if settings.db_auto_create:
        await create_tables()
    await init_redis_pool()
    logger.info("Dictophone backend started (env=%s)", settings.env)

    yield

    # Shutdown
    await app.state.keycloak.close()
    await close_redis_pool()
    await close_db_connection()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Dictophone Backend",
        description="Voice recordings, folders and transcripts",
        version="0.1.0",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        lifespan=lifespan,
    )

    # External gateways, clients connect lazily on first use
    keycloak = KeycloakClient()
    app.state.keycloak = keycloak
    app.state.token_verifier = TokenVerifier(
        settings.keycloak_issuers, key_loader=keycloak.get_realm_public_key
    )
    app.state.blob_store = BlobStore()
    app.state.dispatcher = TranscriptionDispatcher()
    app.state.pdf_renderer = PdfRenderer()

    # Middleware
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_credentials,
        allow_methods=settings.cors_methods,
        allow_headers=settings.cors_headers,
    )

    # Routes
    app.include_router(api_router, prefix=settings.api_prefix)

    # Exception Handlers
    app.add_exception_handler(AppError, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    return app


app = create_app()
