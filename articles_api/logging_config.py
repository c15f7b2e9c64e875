"""Logging configuration for the API process."""
import logging
import sys

from articles_api.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | int | None = None) -> None:
    """
    Install a single stdout handler on the root logger.

    Safe to call more than once; an existing handler installed by this
    function is replaced rather than duplicated.
    """
    if level is None:
        level = settings.LOG_LEVEL
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_articles_api", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._articles_api = True
    root.addHandler(handler)
    root.setLevel(level)
