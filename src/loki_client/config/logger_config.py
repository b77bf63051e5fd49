"""Logger configuration for applications embedding the Loki client."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from loguru import logger


@dataclass
class LoggingConfig:
    """Where and how verbosely the client logs."""

    level: str = "WARNING"
    log_to_console: bool = True
    log_file_path: Optional[Path] = None
    rotation: str = "10 MB"
    retention: str = "7 days"


def setup_logging(config: LoggingConfig = LoggingConfig()) -> None:
    """Configure loguru logger for console and file output.

    Sets up:
    - Console output on stderr with colored output
    - File output with rotation and retention when a path is configured
    """

    # Remove default loguru handler
    logger.remove()

    if config.log_to_console:
        logger.add(
            sink=sys.stderr,
            format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{extra[component]}</cyan>:<cyan>{extra[host]}</cyan> - <level>{message}</level>",
            level=config.level,
            colorize=True,
            filter=_with_client_context,
        )

    if config.log_file_path:
        logger.add(
            sink=str(config.log_file_path),
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[component]}:{extra[host]} - {message}",
            level=config.level,
            rotation=config.rotation,
            retention=config.retention,
            compression="gz",  # Compress rotated logs
            enqueue=True,  # Thread-safe logging
            filter=_with_client_context,
        )

        logger.info(f"File logging enabled: {config.log_file_path}")


def _with_client_context(record: dict) -> bool:
    # Records logged outside the client carry no component/host
    record["extra"].setdefault("component", record["name"])
    record["extra"].setdefault("host", "-")
    return True
