"""Error handling utilities shared by the CLI and the API service."""

import json
import logging

from translator.exceptions import (
    ConfigurationError,
    DocumentLoadError,
    NoWorkError,
    PersistenceError,
)

logger = logging.getLogger(__name__)


def describe_translation_error(error: Exception) -> str:
    """
    Log an error that prevented a run or document operation and build its user text.

    Args:
        error: Exception raised before or outside the batch loop

    Returns:
        Message suitable for showing to the user
    """
    error_message = str(error)

    if isinstance(error, ConfigurationError):
        logger.error(f"❌ Configuration error: {error_message}")
        return error_message
    if isinstance(error, NoWorkError):
        logger.info(f"ℹ️  {error_message}")
        return error_message
    if isinstance(error, DocumentLoadError):
        logger.error(f"❌ Failed to load document: {error_message}")
        return f"Failed to load document: {error_message}"
    if isinstance(error, PersistenceError):
        logger.error(f"❌ Failed to save document: {error_message}")
        return error_message
    if isinstance(error, json.JSONDecodeError):
        logger.error(f"❌ Failed to parse JSON: {error_message}")
        return f"Failed to parse JSON: {error_message}"

    logger.error(f"❌ Unexpected translation error: {error_message}", exc_info=True)
    return f"Translation error: {error_message}"
