"""Entry point for the token intermediary and query API server."""

from __future__ import annotations

import logging

import uvicorn

from trino_oauth.config import load_settings
from trino_oauth.server.app import create_app

logger = logging.getLogger(__name__)


def main() -> None:
    settings = load_settings()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = uvicorn.Config(
        app=create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
    server = uvicorn.Server(config)

    logger.info(f"Backend server starting on http://{settings.host}:{settings.port}")
    logger.info(f"Trino connection: {settings.trino_url}")
    server.run()


if __name__ == "__main__":
    main()
