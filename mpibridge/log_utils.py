"""
Logging utilities for mpibridge applications.

Library modules only create loggers with ``logging.getLogger(__name__)``;
applications call :func:`setup_logging` once to attach handlers.
"""

import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

from .config import LoggingConfig

ROOT_LOGGER_NAME = "mpibridge"


def _level_of(config: LoggingConfig) -> int:
    return getattr(logging, config.level.value.upper())


def setup_logging(config: Optional[LoggingConfig] = None, rank: Optional[int] = None) -> logging.Logger:
    """
    Configure the ``mpibridge`` logger.

    Args:
        config: Logging configuration (defaults to LoggingConfig())
        rank: MPI rank used as log prefix, when already known

    Returns:
        The configured package logger

    Example:
        >>> import mpibridge
        >>> mpibridge.init()
        >>> logger = setup_logging(rank=mpibridge.world().rank())
        >>> logger.info("ready")
    """
    config = config or LoggingConfig()
    level = _level_of(config)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    fmt = config.format
    if rank is not None:
        fmt = f"[Rank {rank}] {fmt}"
    formatter = logging.Formatter(fmt)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if config.file_path:
        file_handler = RotatingFileHandler(
            config.file_path,
            maxBytes=config.max_file_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
