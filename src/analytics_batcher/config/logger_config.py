"""Loguru handlers for the analytics batcher."""

import sys
from typing import List, Optional

from loguru import logger

from .settings import LoggingConfig

# Debounced flushes log from timer threads, so the thread name is part of every line
_CONSOLE_FORMAT = "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <magenta>{thread.name}</magenta> | <cyan>{name}</cyan> - <level>{message}</level>"
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {thread.name} | {name}:{function}:{line} - {message}"


def setup_logging(config: Optional[LoggingConfig] = None) -> List[int]:
    """Replace the loguru handlers with the ones described by ``config``.

    Returns:
        Ids of the installed handlers, for ``logger.remove``
    """
    config = config or LoggingConfig()

    logger.remove()
    handler_ids: List[int] = []

    if config.log_to_console:
        handler_ids.append(logger.add(sys.stderr, format=_CONSOLE_FORMAT, level=config.log_level, colorize=True))

    if config.log_to_file:
        handler_ids.append(
            logger.add(
                str(config.log_file_path),
                format=_FILE_FORMAT,
                level=config.log_level,
                rotation=config.log_rotation,
                retention=config.log_retention,
                compression="gz",
                enqueue=True,
            )
        )
        logger.info(f"Batcher log file: {config.log_file_path} (level {config.log_level})")

    return handler_ids
