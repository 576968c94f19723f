"""Centralized logging configuration."""

import sys

from loguru import logger

from app.config import settings


log_format = " | ".join(
    (
        "<lk>{time:YYYY-MM-DD HH:mm:ss.SSS}</>",
        "<lvl>{level:<8}</>",
        "<c>{name}::{function}:{line}</>",
        "{message}",
    )
)

# Remove the default handler so every line goes through the shared format
logger.remove()
logger.add(sys.stdout, format=log_format, level=settings.log_level)

__all__ = ["logger"]
