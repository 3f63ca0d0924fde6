from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from chat_backend.api.deps import get_token_issuer
from chat_backend.api.middleware.correlation_id import CorrelationIdMiddleware
from chat_backend.api.middleware.metrics import RequestTimingMiddleware
from chat_backend.api.routers import auth, health, messages, users
from chat_backend.application.exceptions import (
    AuthError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from chat_backend.config import settings
from chat_backend.infrastructure.db.session import create_schema, dispose_engine
from chat_backend.infrastructure.db.uow import uow_scope
from chat_backend.infrastructure.realtime.server import ChatServer
from chat_backend.infrastructure.realtime.store import UowMessageStore

logger = logging.getLogger(__name__)


def build_chat_server() -> ChatServer:
    return ChatServer(
        UowMessageStore(uow_scope),
        token_issuer=get_token_issuer(),
        host=settings.WS_HOST,
        port=settings.WS_PORT,
        heartbeat_seconds=settings.WS_HEARTBEAT_SECONDS,
        ping_timeout=settings.WS_PING_TIMEOUT_SECONDS,
        send_timeout=settings.WS_SEND_TIMEOUT_SECONDS,
        drain_seconds=settings.WS_SHUTDOWN_DRAIN_SECONDS,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    if settings.DB_CREATE_SCHEMA:
        await create_schema()

    chat_server = build_chat_server()
    await chat_server.start()
    app.state.chat_server = chat_server

    yield

    await chat_server.stop()
    await dispose_engine()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Chat Backend",
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
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(messages.router)

    @app.get("/", include_in_schema=False)
    async def _root() -> RedirectResponse:
        return RedirectResponse("/api/health")

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"message": exc.detail})

    @app.exception_handler(ConflictError)
    async def _conflict(_req: Request, exc: ConflictError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"message": exc.detail})

    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"message": exc.detail})

    @app.exception_handler(AuthError)
    async def _unauthorized(_req: Request, exc: AuthError) -> JSONResponse:
        return JSONResponse(status_code=401, content={"message": exc.detail})

    @app.exception_handler(StarletteHTTPException)
    async def _http(_req: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return JSONResponse(status_code=404, content={"message": "Endpoint not found"})
        return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)})

    @app.exception_handler(Exception)
    async def _unhandled(req: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error on %s %s", req.method, req.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"message": "Internal server error"})
