"""Run the Bastion example API under uvicorn."""

import os

import uvicorn
from loguru import logger

from src.core.config import get_settings
from src.core.logging import setup_logging

UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def build_log_config() -> dict[str, object]:
    """Route uvicorn's stdlib loggers through Loguru."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "handlers": {"default": {"class": "src.core.logging.InterceptHandler"}},
        "loggers": {
            name: {"handlers": ["default"], "level": "INFO", "propagate": False}
            for name in UVICORN_LOGGERS
        },
    }


def main() -> None:
    settings = get_settings()
    setup_logging(settings)

    # PORT wins when a platform assigns one
    port = int(os.environ.get("PORT", settings.api_port))
    mode = "development mode with auto-reload" if settings.debug else "production mode"
    logger.info("Starting Uvicorn on http://{}:{} ({})", settings.api_host, port, mode)

    uvicorn.run(
        "src.api.main:app",
        host=settings.api_host,
        port=port,
        reload=settings.debug,
        log_config=build_log_config(),
    )


if __name__ == "__main__":
    main()
