"""Logging configuration for stmtkit."""

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def resolve_level(log_level: str) -> int:
    """Map a level name such as 'info' to a logging constant.

    Raises:
        ValueError: If the name is not a logging level
    """
    level = logging.getLevelName(log_level.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: '{log_level}'")
    return level


def setup_logging(log_level: str = "warning") -> int:
    """Configure the root logger to write to stderr.

    Args:
        log_level: Level name (debug, info, warning, error)

    Returns:
        The numeric level applied
    """
    level = resolve_level(log_level)
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)
    return level
