# ============================================
#   Relay — Central logger
# ============================================

import os
import logging
from logging.handlers import TimedRotatingFileHandler

from relay.config import LOG_DIR, LOG_FILE, LOG_LEVEL, LOG_CONSOLE

os.makedirs(LOG_DIR, exist_ok=True)

ROOT_LOGGER_NAME = os.getenv("RELAY_LOGGER_NAME", "relay")

_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _configure_root_logger() -> logging.Logger:
    """
    Configure the root relay logger once (idempotent).
    Daily rotating file, 30 days kept; optional stderr mirror in dev.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)

    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
    formatter = logging.Formatter(_FORMAT, datefmt=_DATEFMT)

    handler = TimedRotatingFileHandler(
        LOG_FILE,
        when="midnight",
        backupCount=30,
        encoding="utf-8",
        utc=False,
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    if LOG_CONSOLE:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        logger.addHandler(console)

    logger.propagate = False

    return logger


def get_logger(module_name: str) -> logging.Logger:
    """
    Return a child logger for a given module name.
    Example: get_logger("pipeline") → relay.pipeline
    """
    root = _configure_root_logger()
    return root.getChild(module_name)


def log_info(module: str, message: str):
    get_logger(module).info(message)


def log_warning(module: str, message: str):
    get_logger(module).warning(message)


def log_error(module: str, message: str):
    get_logger(module).error(message)


def log_exception(module: str, message: str):
    """
    Log an exception with traceback. To be used inside except blocks.
    """
    get_logger(module).exception(message)
