"""Centralized logging configuration for Pitch Recall.

Per-module levels live in ``MODULE_LOG_LEVELS``. ``setup_logging`` attaches
one shared console handler (and optionally a file handler) to the top of
each logger hierarchy; module loggers propagate to it.
"""

import logging
import os
import sys
from typing import List, Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Environment override, used when no explicit level is passed
LOG_LEVEL_ENV = "PITCH_RECALL_LOG_LEVEL"

# Log levels for different modules
MODULE_LOG_LEVELS = {
    "pitch_recall": logging.INFO,
    "pitch_recall.cli": logging.INFO,
    "pitch_recall.core": logging.INFO,
    # Per audio frame, keep quiet unless debugging
    "pitch_recall.detection": logging.WARNING,
    "pitch_recall.services": logging.INFO,
    "pitch_recall.pitch_session": logging.INFO,
    "pitch_recall.logger": logging.WARNING,
    # Libraries/third-party
    "aubio": logging.ERROR,
    # Root logger
    "": logging.ERROR,
}

# Loggers that own handlers; everything else propagates up to one of them
_HANDLER_ROOTS = ("", "pitch_recall", "aubio")

_handlers: List[logging.Handler] = []


def _resolve_level(level: Optional[str]) -> Optional[int]:
    name = level or os.environ.get(LOG_LEVEL_ENV)
    if not name:
        return None
    numeric_level = logging.getLevelName(name.upper())
    if not isinstance(numeric_level, int):
        logging.getLogger(__name__).error(f"Invalid log level: {name}")
        return None
    return numeric_level


def _build_handlers(log_file: Optional[str]) -> List[logging.Handler]:
    formatter = logging.Formatter(LOG_FORMAT)
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Set up logging configuration for the application.

    Safe to call more than once; handlers from a previous call are replaced.

    Args:
        level: Override for every 'pitch_recall' logger (e.g. "DEBUG"); falls
            back to $PITCH_RECALL_LOG_LEVEL
        log_file: Also write log records to this file
    """
    global _handlers

    for handler in _handlers:
        handler.close()
    _handlers = _build_handlers(log_file)

    log_levels = MODULE_LOG_LEVELS.copy()
    override = _resolve_level(level)
    if override is not None:
        for module_name in log_levels:
            if module_name.startswith("pitch_recall"):
                log_levels[module_name] = override

    for module_name, module_level in log_levels.items():
        logger = logging.getLogger(module_name)
        logger.setLevel(module_level)
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)

        if module_name in _HANDLER_ROOTS:
            for handler in _handlers:
                logger.addHandler(handler)
            logger.propagate = False
        else:
            logger.propagate = True

    logging.getLogger("pitch_recall").info("Logging configuration complete")
