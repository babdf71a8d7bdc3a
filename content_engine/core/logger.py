"""Logger configuration for the content engine.

Structured context passed as keyword arguments (``plan_id=...``,
``resource=...``) is rendered after the message as ``key=value`` pairs.
"""

import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

from loguru import logger

from content_engine.config.settings import settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def format_context(extra: dict[str, Any]) -> str:
    """Render bound context as sorted ``key=value`` pairs."""
    pairs = " ".join(f"{key}={value}" for key, value in sorted(extra.items()))
    # Output is used as a loguru template: double the braces, escape markup tags
    return pairs.replace("{", "{{").replace("}", "}}").replace("<", r"\<")


def _with_context(template: str) -> Callable[[Any], str]:
    def formatter(record: Any) -> str:
        context = format_context(record["extra"])
        suffix = f" | {context}" if context else ""
        return template + suffix + "\n{exception}"

    return formatter


def setup_logger(
    level: str = "INFO",
    log_file: str | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """Configure loguru logger with console and optional file output.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file. If None, only console logging.
        rotation: Log rotation size (e.g., "10 MB", "1 day")
        retention: Log retention period (e.g., "7 days", "1 month")
    """
    logger.remove()

    logger.add(
        sys.stderr,
        format=_with_context(CONSOLE_FORMAT),
        level=level,
        colorize=True,
    )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_path,
            format=_with_context(FILE_FORMAT),
            level=level,
            rotation=rotation,
            retention=retention,
            compression="zip",
            backtrace=True,
            diagnose=True,
        )

    logger.info("Logger initialized", level=level, log_file=log_file or "-")


# Initialize logger on import
setup_logger(level=settings.log_level, log_file=settings.log_file)
