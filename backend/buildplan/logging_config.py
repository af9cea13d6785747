"""Logging setup: plain text by default, JSON lines when LOG_JSON is set."""
import logging
import sys
from typing import Optional

from pythonjsonlogger import json as jsonlogger

from buildplan.config import Settings, get_settings

PLAIN_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def setup_logging(settings: Optional[Settings] = None) -> logging.Handler:
    """
    Configure the root logger with a single stdout handler.

    Calling this again replaces the handler installed by the previous call.

    Args:
        settings: Settings to read log level/format from (defaults to get_settings())

    Returns:
        The installed handler
    """
    settings = settings or get_settings()

    handler = logging.StreamHandler(sys.stdout)
    if settings.log_json:
        handler.setFormatter(
            jsonlogger.JsonFormatter(JSON_FORMAT, rename_fields={"levelname": "level"})
        )
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))
    handler.set_name("buildplan")

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == "buildplan":
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(settings.log_level.upper())

    # Keep SQL echo out of the application log unless explicitly enabled
    if not settings.database_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    return handler
