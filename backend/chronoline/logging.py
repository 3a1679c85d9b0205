"""
Logging configuration for the Chronoline API and client.

Everything logs under the ``chronoline`` namespace; ``LOG_LEVEL`` picks the
level and ``DEBUG`` forces it down to DEBUG.
"""

import logging
import sys

from chronoline.config import settings

ROOT_LOGGER = 'chronoline'

# Per-request chatter from the HTTP client and the SQLite worker thread.
QUIET_LOGGERS = ('httpx', 'httpcore', 'aiosqlite', 'passlib')


def resolve_level(name: str | None = None) -> int:
    """
    Map a level name such as ``"info"`` to its numeric value.

    Unknown names fall back to INFO.
    """
    if settings.DEBUG:
        return logging.DEBUG
    level = logging.getLevelName((name or settings.LOG_LEVEL).upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(level: str | None = None) -> logging.Logger:
    """
    Configure application logging.

    :param level: Level name overriding ``LOG_LEVEL``
    :type level: str | None
    :return: Root logger for the timeline application
    :rtype: logging.Logger
    """
    logging.basicConfig(
        level=resolve_level(level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logging.getLogger(ROOT_LOGGER)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module, e.g. ``get_logger('services.timeline')``.
    """
    return logging.getLogger(f'{ROOT_LOGGER}.{name}')
