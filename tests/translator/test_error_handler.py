"""Tests for user-facing descriptions of translation errors."""

import json
import logging

import pytest

from translator.error_handler import describe_translation_error
from translator.exceptions import (
    ConfigurationError,
    DocumentLoadError,
    NoWorkError,
    PersistenceError,
)


@pytest.mark.unit
class TestDescribeTranslationError:
    """Test error descriptions and their log levels."""

    @pytest.mark.parametrize(
        "error,expected_message,expected_level",
        [
            (
                ConfigurationError("No API Key found. Please check settings."),
                "No API Key found. Please check settings.",
                logging.ERROR,
            ),
            (
                NoWorkError("missing"),
                "Nothing to translate: no entries match mode 'missing'.",
                logging.INFO,
            ),
            (
                DocumentLoadError("File not found: en.json"),
                "Failed to load document: File not found: en.json",
                logging.ERROR,
            ),
            (
                PersistenceError("pt.json", "disk full"),
                "Failed to save translations to pt.json: disk full. "
                "Translated text is kept in memory; save again once the problem is fixed.",
                logging.ERROR,
            ),
            (
                json.JSONDecodeError("Expecting value", "{", 1),
                "Failed to parse JSON: Expecting value: line 1 column 2 (char 1)",
                logging.ERROR,
            ),
            (
                RuntimeError("boom"),
                "Translation error: boom",
                logging.ERROR,
            ),
        ],
    )
    def test_describe_translation_error(
        self, caplog, error, expected_message, expected_level
    ):
        """Test that each error maps to its user message and is logged once."""
        with caplog.at_level(logging.INFO, logger="translator.error_handler"):
            message = describe_translation_error(error)

        assert message == expected_message
        assert [record.levelno for record in caplog.records] == [expected_level]

    def test_unexpected_error_logs_traceback(self, caplog):
        """Test that unknown errors are logged with exception info."""
        with caplog.at_level(logging.ERROR, logger="translator.error_handler"):
            try:
                raise ValueError("bad value")
            except ValueError as e:
                describe_translation_error(e)

        assert caplog.records[0].exc_info[0] is ValueError
