"""Pytest configuration and shared fixtures."""

import json
import sys
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

# Add src directory to Python path for imports
project_root = Path(__file__).parent.parent
src_path = project_root / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from common.schemas import TranslationEntry, TranslationMode
from translator.schemas import TranslationRunRequest


@pytest.fixture
def write_json(tmp_path):
    """Write a JSON document under tmp_path and return its path."""

    def _write(name, document):
        path = tmp_path / name
        path.write_text(json.dumps(document, indent=4, ensure_ascii=False), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def sample_entries():
    """Entries covering absent, untranslated, translated and structured values."""
    return [
        TranslationEntry(key="menu.open", source="Open", target=None),
        TranslationEntry(key="menu.close", source="Close", target="Close"),
        TranslationEntry(key="menu.save", source="Save", target="Salvar"),
        TranslationEntry(key="title", source="Dashboard", target=""),
        TranslationEntry(key="ids", source=[1, 2], target=None),
    ]


@pytest.fixture
def make_request(tmp_path):
    """Build a TranslationRunRequest pointing at tmp_path/target.json."""

    def _make(**overrides):
        values = {
            "mode": TranslationMode.MISSING,
            "target_path": tmp_path / "target.json",
            "provider": "gemini",
            "api_key": "test-api-key",
            "model": "gemini-1.5-flash",
            "context": "Admin panel",
            "target_language": "Portuguese (Brazil)",
            "project_name": "Test App",
            "project_description": "",
            "batch_size": 2,
            "min_cooldown_ms": 5000,
            "transient_retries": 0,
        }
        values.update(overrides)
        return TranslationRunRequest(**values)

    return _make


@pytest.fixture
def mock_translator():
    """KeyValueTranslator stand-in answering with '<source> (pt)' for every key."""
    translator = AsyncMock()

    async def translate(keys, sources, *args, **kwargs):
        return {key: f"{source} (pt)" for key, source in zip(keys, sources)}

    translator.translate_batch = AsyncMock(side_effect=translate)
    return translator


@pytest.fixture
def no_sleep():
    """Awaitable sleep that records the requested delays instead of waiting."""
    return AsyncMock(return_value=None)
