from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from chat_backend.application.ports.clock import utcnow
from chat_backend.infrastructure.db.session import ping_database

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health(request: Request) -> dict[str, Any]:
    chat_server = getattr(request.app.state, "chat_server", None)
    return {
        "status": "OK",
        "timestamp": utcnow().isoformat(),
        "clients": chat_server.client_count() if chat_server else 0,
    }


@router.get("/readyz")
async def readyz() -> JSONResponse:
    try:
        await ping_database()
    except Exception as exc:  # noqa: BLE001
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "errors": [f"database: {exc}"]},
        )
    return JSONResponse(content={"status": "ready"})
