from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import httpx
import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from talawang.api.middleware.correlation_id import CorrelationIdMiddleware
from talawang.api.middleware.timing import RequestTimingMiddleware
from talawang.api.v1.routers import health, kegiatan, keycloak, search
from talawang.application.exceptions import (
    AppError,
    ForbiddenError,
    IllegalTransitionError,
    InvalidInputError,
    NotFoundError,
    StorageError,
    UpstreamAuthError,
)
from talawang.application.ports.cache import TtlCache
from talawang.config import settings
from talawang.infrastructure.cache.memory import InMemoryTtlCache
from talawang.infrastructure.cache.redis_cache import RedisTtlCache
from talawang.infrastructure.keycloak.admin_client import KeycloakAdminClient
from talawang.infrastructure.keycloak.directory import KeycloakDirectory

logger = logging.getLogger(__name__)

STATUS_CODES: dict[type[AppError], int] = {
    InvalidInputError: 400,
    IllegalTransitionError: 400,
    ForbiddenError: 403,
    NotFoundError: 404,
    UpstreamAuthError: 502,
    StorageError: 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    app.state.redis = aioredis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
    )
    logger.info("Redis connection pool created")

    app.state.http = httpx.AsyncClient()
    cache: TtlCache
    if settings.DIRECTORY_CACHE_BACKEND == "redis":
        cache = RedisTtlCache(app.state.redis)
    else:
        cache = InMemoryTtlCache()
    app.state.directory = KeycloakDirectory(
        KeycloakAdminClient(
            app.state.http,
            server_url=settings.KEYCLOAK_SERVER_URL,
            realm=settings.KEYCLOAK_REALM,
            admin_username=settings.KEYCLOAK_ADMIN_USERNAME,
            admin_password=settings.KEYCLOAK_ADMIN_PASSWORD,
            timeout=settings.KEYCLOAK_TIMEOUT,
        ),
        cache,
        ttl=settings.DIRECTORY_CACHE_TTL_SECONDS,
    )
    logger.info("Keycloak directory ready (cache=%s)", settings.DIRECTORY_CACHE_BACKEND)

    yield

    await app.state.http.aclose()
    await app.state.redis.aclose()
    logger.info("Redis connection pool closed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Talawang Nominatif Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(search.router)
    app.include_router(kegiatan.router)
    app.include_router(keycloak.router)

    return app


def _status_for(exc: AppError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return 500


def _error_body(message: str, error: dict[str, Any] | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "message": message}
    if error is not None and settings.expose_error_details:
        body["error"] = error
    return body


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error(_req: Request, exc: AppError) -> JSONResponse:
        status_code = _status_for(exc)
        error: dict[str, Any] | None = None
        if isinstance(exc, StorageError):
            logger.error("Storage failure: %s (code=%s)", exc.cause, exc.code, exc_info=exc)
            error = {"message": exc.cause, "code": exc.code}
        elif isinstance(exc, UpstreamAuthError):
            logger.error("Identity provider failure: %s", exc.detail, exc_info=exc)
            error = {"message": exc.detail, "type": type(exc).__name__}
        return JSONResponse(status_code=status_code, content=_error_body(exc.detail, error))

    @app.exception_handler(SQLAlchemyError)
    async def _storage(_req: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error("Unhandled database error", exc_info=exc)
        storage = StorageError.from_exception(exc)
        return JSONResponse(
            status_code=500,
            content=_error_body(storage.detail, {"message": storage.cause, "code": storage.code}),
        )

    @app.exception_handler(RequestValidationError)
    async def _validation(_req: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "message": "Data permintaan tidak valid",
                "errors": _validation_errors(exc),
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http(_req: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )


def _validation_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
