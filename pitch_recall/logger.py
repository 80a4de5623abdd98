"""Module logger lookup for Pitch Recall."""
import logging
from typing import Dict

PACKAGE_LOGGER = "pitch_recall"

# Module-level cache for loggers
_logger_cache: Dict[str, logging.Logger] = {}


def get_logger(name: str) -> logging.Logger:
    """Return the logger for module ``name``.

    Scripts run as ``__main__`` log under the package logger so they pick up
    the handlers installed by ``logging_config.setup_logging``.

    Args:
        name: The full module name (e.g., 'pitch_recall.detection.pitch_tracker')
    """
    if name == "__main__":
        name = f"{PACKAGE_LOGGER}.main"
    if name not in _logger_cache:
        _logger_cache[name] = logging.getLogger(name)
    return _logger_cache[name]
