"""Entrypoint: python -m teamchat"""
from __future__ import annotations

import logging

import uvicorn

from teamchat.api.middleware.correlation_id import CorrelationIdFilter
from teamchat.config import settings


def main() -> None:
    handler = logging.StreamHandler()
    handler.addFilter(CorrelationIdFilter())
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s",
        handlers=[handler],
    )
    uvicorn.run(
        "teamchat.app:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        log_level=settings.LOG_LEVEL.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
