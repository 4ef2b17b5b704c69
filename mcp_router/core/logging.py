"""Logging configuration for the mcp_router package.

Only the `mcp_router` logger namespace is touched; library loggers
(httpx, uvicorn, asyncio) keep whatever configuration the host gives them.
"""

import logging
import sys


def setup_logger(
    level: int = logging.INFO,
    debug: bool = False,
    format_string: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
) -> logging.Logger:
    """Set up logging for the mcp_router package only.

    Args:
        level: The logging level for the package logger.
        debug: If True, sets the level to DEBUG regardless of `level`.
        format_string: The format string for log messages.

    Returns:
        The configured `mcp_router` logger.
    """
    logger = logging.getLogger("mcp_router")
    logger.setLevel(logging.DEBUG if debug else level)

    # Avoid duplicate handlers when called more than once
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(format_string))
    logger.addHandler(handler)

    logger.propagate = False
    return logger


def level_from_name(name: str) -> int:
    """Translate a config string such as "info" into a logging level."""
    value = logging.getLevelName(str(name).upper())
    return value if isinstance(value, int) else logging.INFO
