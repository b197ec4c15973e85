# localca/common/log.py
import logging
import os
import sys

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

ROOT_LOGGER = "localca"


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the localca namespace (no handlers attached)."""
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def configure(verbose: bool = False) -> logging.Logger:
    """
    Attach a single stderr handler to the localca root logger.
    Called by the command line entry points only; safe to call twice.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    level = logging.DEBUG if verbose else getattr(logging, DEFAULT_LOG_LEVEL, logging.INFO)
    logger.setLevel(level)
    if not getattr(logger, "_localca_configured", False):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)
        logger._localca_configured = True
    return logger
