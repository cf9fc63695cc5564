"""File I/O operations for base and target JSON documents."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Sequence, Union

from common.key_paths import flatten_document, unflatten_entries
from common.schemas import TranslationEntry
from translator.exceptions import DocumentLoadError, PersistenceError

logger = logging.getLogger(__name__)

JSON_INDENT = 4

PathLike = Union[str, Path]


def read_json_document(path: PathLike) -> Dict[str, Any]:
    """
    Read a JSON file that must contain a top-level object.

    Args:
        path: Path to the JSON file

    Returns:
        Parsed JSON object

    Raises:
        DocumentLoadError: If the file is missing, unreadable, invalid JSON
            or not an object
    """
    document_path = Path(path)
    try:
        content = document_path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise DocumentLoadError(f"File not found: {document_path}") from e
    except OSError as e:
        raise DocumentLoadError(f"Cannot read {document_path}: {e}") from e

    try:
        document = json.loads(content)
    except json.JSONDecodeError as e:
        raise DocumentLoadError(f"Error parsing {document_path}: {e}") from e

    if not isinstance(document, dict):
        raise DocumentLoadError(
            f"{document_path} must contain a JSON object, got {type(document).__name__}"
        )
    return document


def write_json_document(path: PathLike, document: Dict[str, Any]) -> Path:
    """
    Write a document as 4-space indented JSON, replacing the file atomically.

    The content goes to a temporary file in the same directory which is then
    moved over the destination, so readers never observe a partial file.

    Args:
        path: Destination path
        document: JSON object to write

    Returns:
        Path written

    Raises:
        PersistenceError: If the file cannot be written
    """
    destination = Path(path)
    content = json.dumps(document, indent=JSON_INDENT, ensure_ascii=False) + "\n"

    temp_name = None
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(
            prefix=f".{destination.name}.", suffix=".tmp", dir=destination.parent
        )
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_name, destination)
    except (OSError, TypeError, ValueError) as e:
        if temp_name and os.path.exists(temp_name):
            os.unlink(temp_name)
        raise PersistenceError(str(destination), str(e)) from e

    return destination


def build_entries(
    base_document: Dict[str, Any], target_document: Dict[str, Any]
) -> List[TranslationEntry]:
    """
    Pair the flattened base and target documents key by key.

    Base keys come first in base order; keys only present in the target
    follow in target order with no source, so they are carried through
    every save.
    """
    target_values = dict(flatten_document(target_document))

    entries = []
    seen = set()
    for key, source in flatten_document(base_document):
        entries.append(
            TranslationEntry(key=key, source=source, target=target_values.get(key))
        )
        seen.add(key)

    for key, target in target_values.items():
        if key not in seen:
            entries.append(TranslationEntry(key=key, source=None, target=target))

    return entries


async def load_translation_entries(
    base_path: PathLike, target_path: PathLike
) -> List[TranslationEntry]:
    """
    Load the base/target document pair as translation entries.

    A target file that does not exist yet (or cannot be parsed) is treated
    as an empty document.

    Raises:
        DocumentLoadError: If the base document cannot be loaded
    """
    logger.info(f"Loading base document: {base_path}")
    base_document = read_json_document(base_path)

    try:
        target_document = read_json_document(target_path)
    except DocumentLoadError as e:
        logger.warning(f"⚠️  Target document unavailable, starting empty: {e}")
        target_document = {}

    entries = build_entries(base_document, target_document)
    logger.info(f"Loaded {len(entries)} entries from {base_path} and {target_path}")
    return entries


async def save_entries(
    target_path: PathLike, entries: Sequence[TranslationEntry]
) -> Path:
    """
    Save the target values of the entries as the target document.

    Entries without a target are omitted.

    Raises:
        PersistenceError: If the file cannot be written
    """
    document = unflatten_entries((entry.key, entry.target) for entry in entries)
    output_path = write_json_document(target_path, document)
    logger.info(f"✅ Saved target document: {output_path}")
    return output_path


async def reset_target_to_base(base_path: PathLike, target_path: PathLike) -> Path:
    """
    Overwrite the target document with the content of the base document.

    Raises:
        DocumentLoadError: If the base document cannot be loaded
        PersistenceError: If the target cannot be written
    """
    base_document = read_json_document(base_path)
    target_file = write_json_document(target_path, base_document)

    logger.info(f"✅ Reset {target_file} to the content of {base_path}")
    return target_file
