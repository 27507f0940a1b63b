"""Application factory for the Caffeine FastAPI app.

This module exposes `create_app(config: ServerConfig) -> FastAPI` which
performs all setup (logging, storage init, broker, middleware and router
registration). Nothing happens at import time so tests can construct
isolated apps.

To create an app for production or local runs:

    from caffeine_lib.main import create_app
    from caffeine_lib.config import ServerConfig
    app = create_app(ServerConfig(storage_backend='memory'))

Storage provisioning failures raise out of `create_app`; they are fatal at
startup rather than per-request errors.
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from caffeine_lib.config import ServerConfig
from caffeine_lib.errors import CaffeineError
from caffeine_lib.logging_config import configure_logging
from caffeine_lib.storage import StorageBackend, create_storage


def create_app(config: Optional[ServerConfig] = None, storage: Optional[StorageBackend] = None) -> FastAPI:
    """Create and return a configured FastAPI application.

    `storage` overrides the backend selected by `config` (tests use this to
    inject a prepared backend); it is initialised either way.
    """
    config = config or ServerConfig()
    logger = configure_logging(config.log_level)

    if storage is None:
        storage = create_storage(config.storage_backend, config.backend_config())
    storage.init()
    logger.info("Storage backend '%s' ready", storage.name)

    broker = None
    if config.broker_enabled:
        from caffeine_lib.broker import ChangeBroker
        broker = ChangeBroker(queue_size=config.broker_queue_size)
        logger.info("broker extension enabled")

    from caffeine_lib.documents import DocumentService
    document_service = DocumentService(storage, broker=broker, auth_enabled=config.auth_enabled)

    from caffeine_lib.services import ServiceContainer
    container = ServiceContainer()
    container.register_singleton("config", config)
    container.register_singleton("storage", storage)
    container.register_singleton("document_service", document_service)
    if broker is not None:
        container.register_singleton("broker", broker)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if broker is not None:
            broker.close()
        storage.disconnect()
        logger.info("Storage backend '%s' disconnected", storage.name)

    app = FastAPI(title="Caffeine", lifespan=lifespan)
    app.state.container = container
    app.state.max_body_bytes = config.max_body_bytes
    app.state.broker_keepalive_seconds = config.broker_keepalive_seconds

    # Register middleware; the last added runs first
    if config.auth_enabled:
        from caffeine_lib.middleware import JWTAuthMiddleware, load_public_key
        app.add_middleware(
            JWTAuthMiddleware,
            public_key=load_public_key(config.auth_public_key),
            algorithms=config.auth_algorithms,
        )
        logger.info("authentication middleware enabled")

    if config.enable_brotli:
        logger.info("Brotli compression middleware is enabled")
        from caffeine_lib.middleware import BrotliCompression
        app.add_middleware(BrotliCompression)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # Exception handlers
    from caffeine_lib.server.errors import caffeine_error_handler
    app.add_exception_handler(CaffeineError, caffeine_error_handler)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={'error': 'http_error', 'message': exc.detail},
            headers=getattr(exc, 'headers', None),
        )

    # Router registration: import routers here to avoid import-time side-effects
    from caffeine_lib.documents.api import router as documents_router
    from caffeine_lib.server.api import router as server_router

    app.include_router(documents_router)
    app.include_router(server_router)
    if broker is not None:
        from caffeine_lib.broker.api import router as broker_router
        app.include_router(broker_router)

    return app
