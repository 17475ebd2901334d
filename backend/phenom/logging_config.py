import os
from logging.config import dictConfig

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging() -> None:
    """Route every logger to stderr at PHENOM_LOG_LEVEL.

    PHENOM_DEBUG_SQL=1 also logs SQLAlchemy statements; PHENOM_TELEMETRY=0
    silences the per-event telemetry lines.
    """
    level = os.getenv("PHENOM_LOG_LEVEL", "INFO").upper()
    loggers = {}
    if os.getenv("PHENOM_DEBUG_SQL", "0") == "1":
        loggers["sqlalchemy.engine"] = {"level": "DEBUG"}
    if os.getenv("PHENOM_TELEMETRY", "1") == "0":
        loggers["phenom.telemetry"] = {"level": "WARNING"}

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": {"format": LOG_FORMAT}},
            "handlers": {"stderr": {"class": "logging.StreamHandler", "formatter": "default"}},
            "root": {"handlers": ["stderr"], "level": level},
            "loggers": loggers,
        }
    )
