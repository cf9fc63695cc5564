"""Conversion between nested JSON documents and flat dot-path entries."""

import logging
from typing import Any, Dict, Iterable, List, Tuple

logger = logging.getLogger(__name__)

PATH_SEPARATOR = "."


def flatten_document(doc: Dict[str, Any], prefix: str = "") -> List[Tuple[str, Any]]:
    """
    Flatten a nested JSON object into ordered ``(path, value)`` pairs.

    Objects are descended into; every other value (including arrays) is a
    leaf. A nested empty object is kept as a ``{}`` leaf so it survives an
    unflatten.

    Args:
        doc: Parsed JSON object
        prefix: Path of ``doc`` inside its parent (empty at the top level)

    Returns:
        List of (dot-joined path, value) in document insertion order

    Examples:
        >>> flatten_document({"menu": {"open": "Open", "ids": [1, 2]}})
        [('menu.open', 'Open'), ('menu.ids', [1, 2])]
    """
    entries: List[Tuple[str, Any]] = []
    for key, value in doc.items():
        path = f"{prefix}{PATH_SEPARATOR}{key}" if prefix else key
        if isinstance(value, dict) and value:
            entries.extend(flatten_document(value, path))
        else:
            entries.append((path, value))
    return entries


def unflatten_entries(entries: Iterable[Tuple[str, Any]]) -> Dict[str, Any]:
    """
    Rebuild a nested JSON object from ``(path, value)`` pairs.

    Entries whose value is ``None`` are omitted, so a key is deleted by
    leaving it out rather than by a tombstone. Keys containing the
    separator cannot be told apart from nested paths.

    Args:
        entries: Ordered (dot-joined path, value) pairs

    Returns:
        Nested JSON object
    """
    document: Dict[str, Any] = {}
    for path, value in entries:
        if value is None:
            continue

        segments = path.split(PATH_SEPARATOR)
        current = document
        conflict = False
        for segment in segments[:-1]:
            existing = current.get(segment)
            if existing is None:
                existing = {}
                current[segment] = existing
            elif not isinstance(existing, dict):
                conflict = True
                break
            current = existing

        if conflict:
            logger.warning(
                f"⚠️  Skipping '{path}': a parent segment already holds a non-object value"
            )
            continue

        leaf = segments[-1]
        if isinstance(current.get(leaf), dict) and current[leaf]:
            logger.warning(
                f"⚠️  Skipping '{path}': it would overwrite nested keys below it"
            )
            continue
        current[leaf] = value

    return document
