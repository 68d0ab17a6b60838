"""
Logging configuration for the application.

Attaches one stream handler to the ``recordapi`` package logger. Calling
``configure_logging`` again (one call per application instance) replaces
that handler instead of stacking another one. The root logger is left
to the host process.
Never logs sensitive data (request bodies, secrets, raw payloads).
"""

import logging
import sys

PACKAGE_LOGGER = "recordapi"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DEBUG_LOG_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
)
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers and the most verbose level they may emit
THIRD_PARTY_LEVELS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "slowapi": logging.ERROR,
}


class _PackageHandler(logging.StreamHandler):
    """Marker type so a reconfiguration can find the handler it installed."""


def configure_logging(level: str = "INFO", development: bool = False) -> logging.Logger:
    """Configure the package logger.

    Args:
        level: The log level string (DEBUG, INFO, WARNING, ERROR).
            Unknown names fall back to INFO.
        development: Include source line numbers in every record.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in [h for h in logger.handlers if isinstance(h, _PackageHandler)]:
        logger.removeHandler(handler)

    handler = _PackageHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            DEBUG_LOG_FORMAT if development else LOG_FORMAT,
            datefmt=LOG_DATE_FORMAT,
        )
    )
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False

    for name, ceiling in THIRD_PARTY_LEVELS.items():
        logging.getLogger(name).setLevel(ceiling)
    return logger
