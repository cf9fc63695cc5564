"""Centralized logging configuration for the CLI and the API service."""

import logging
import sys
from pathlib import Path
from typing import Optional

from common.config import settings
from common.utils import DateTimeUtils


def setup_logging(
    service_name: str, log_file: Optional[str] = None, log_level: Optional[str] = None
) -> logging.Logger:
    """
    Configure logging for an entry point with consistent formatting.

    Handlers are attached to the root logger so that every module logger
    (``logging.getLogger(__name__)``) reaches the console and the log file.

    Args:
        service_name: Name of the entry point (e.g., 'cli', 'manager')
        log_file: Optional log file path. If None, logs only to console
        log_level: Optional log level override. If None, uses settings.log_level

    Returns:
        Logger named after the service
    """
    level = log_level or settings.log_level
    log_level_value = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level_value)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    detailed_formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    simple_formatter = logging.Formatter(
        fmt="%(asctime)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    )

    # Console goes to stderr so CLI output on stdout stays clean
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level_value)
    console_handler.setFormatter(simple_formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(log_level_value)
        file_handler.setFormatter(detailed_formatter)
        root_logger.addHandler(file_handler)

    logger = logging.getLogger(service_name)
    logger.setLevel(log_level_value)
    return logger


def get_log_file_path(service_name: str) -> str:
    """
    Generate a dated log file path for a service.

    Args:
        service_name: Name of the service

    Returns:
        Path to log file
    """
    date_string = DateTimeUtils.get_date_string_for_log_file()
    return f"./logs/{service_name}_{date_string}.log"


def configure_third_party_loggers(level: str = "WARNING") -> None:
    """
    Configure logging levels for third-party libraries to reduce noise.

    Args:
        level: Log level for third-party libraries
    """
    third_party_loggers = [
        "openai",
        "httpx",
        "httpcore",
        "uvicorn.access",
        "asyncio",
    ]

    log_level = getattr(logging, level.upper(), logging.WARNING)

    for logger_name in third_party_loggers:
        logging.getLogger(logger_name).setLevel(log_level)


def setup_service_logging(
    service_name: str,
    enable_file_logging: bool = False,
    log_level: Optional[str] = None,
) -> logging.Logger:
    """
    Convenience function to set up logging for an entry point.

    Args:
        service_name: Name of the service
        enable_file_logging: Whether to also write a dated log file
        log_level: Optional log level override

    Returns:
        Configured service logger
    """
    configure_third_party_loggers()
    log_file = get_log_file_path(service_name) if enable_file_logging else None
    return setup_logging(service_name, log_file, log_level)
