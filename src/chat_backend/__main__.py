"""Entrypoint: python -m chat_backend"""
from __future__ import annotations

import logging

import uvicorn

from chat_backend.api.middleware.correlation_id import CorrelationIdFilter
from chat_backend.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(request_id)s]: %(message)s"


def configure_logging() -> None:
    logging.basicConfig(level=settings.LOG_LEVEL, format=LOG_FORMAT)
    for handler in logging.getLogger().handlers:
        handler.addFilter(CorrelationIdFilter())


def main() -> None:
    configure_logging()
    uvicorn.run(
        "chat_backend.app:create_app",
        factory=True,
        host=settings.HTTP_HOST,
        port=settings.HTTP_PORT,
        log_level=settings.LOG_LEVEL.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
