import logging
import sys
from pythonjsonlogger import jsonlogger
from spotwise.core.config import Settings

# third-party loggers that only speak up at WARNING and above
_QUIET = ("sqlalchemy.engine", "passlib", "multipart")


def configure_logging(settings: Settings) -> None:
    """
    One JSON object per line on stdout, tagged with service and environment
    so API, realtime and sweeper lines can be told apart downstream.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        jsonlogger.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"levelname": "level", "name": "logger"},
            static_fields={"service": settings.app_name, "env": settings.environment},
        )
    )
    root.addHandler(handler)

    for name in ("uvicorn.access", "uvicorn.error"):
        logging.getLogger(name).setLevel(level)
    for name in _QUIET:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
