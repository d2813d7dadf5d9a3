"""Process-wide logging setup.

Called once from the app lifespan. Modules log through
`logging.getLogger(__name__)`, so everything lands under the `app` logger.
"""

import logging
import logging.config

from app.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(level: str | None = None) -> None:
    level = (level or settings.log_level).upper()
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": LOG_FORMAT},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "app": {"handlers": ["console"], "level": level, "propagate": False},
            "uvicorn.error": {"level": level},
            "sqlalchemy.engine": {"level": "WARNING"},
        },
    })
    logging.getLogger(__name__).info("Logging initialised at %s", level)
