import logging
import sys

from blobkeep.settings import Settings
from blobkeep.settings import settings as default_settings

TEXT_FORMAT = "%(levelname)s %(name)s: %(message)s"


def configure_logging(settings: Settings | None = None) -> None:
    """Configure the root logger based on settings.

    Call once at startup, before the storage backend is built.
    """
    settings = settings or default_settings
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)

    if settings.log_json:
        from pythonjsonlogger.json import JsonFormatter

        handler.setFormatter(
            JsonFormatter(
                fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
                rename_fields={"asctime": "timestamp", "levelname": "level"},
            )
        )
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # Transfer routes log each request themselves.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    # botocore is very chatty at DEBUG and may echo request signing details.
    logging.getLogger("botocore").setLevel(max(level, logging.INFO))
