"""Loguru configuration shared by every SeaWatch module."""

import sys

from loguru import logger

from seawatch.core.config import Settings

_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level> | {extra}"
)


def configure_logging(settings: Settings) -> None:
    """Replace loguru's default sink with the configured ones.

    Args:
        settings: Application settings with the ``log_*`` fields.
    """
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level.upper(), format=_FORMAT)
    if settings.log_to_file:
        logger.add(
            settings.log_file_path,
            level=settings.log_level.upper(),
            rotation=settings.log_rotation,
            retention=settings.log_retention,
            enqueue=True,
            serialize=True,
        )
    logger.debug(f"Logging configured at level {settings.log_level.upper()}")


__all__ = ["configure_logging", "logger"]
