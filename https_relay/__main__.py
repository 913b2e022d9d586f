"""
Process entry point: ``python -m https_relay``.

Configures logging from settings and serves the app with uvicorn.
"""

import logging

import uvicorn

from https_relay.core.setting import settings

logger = logging.getLogger("https_relay")


def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(f"HTTP->HTTPS relay listening on {settings.HOST}:{settings.PORT}")
    uvicorn.run(
        "https_relay.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
