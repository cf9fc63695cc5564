"""Selection of entries to translate and their partition into batches."""

from typing import List, Sequence, Union

from common.schemas import TranslationEntry, TranslationMode


def is_missing_translation(entry: TranslationEntry) -> bool:
    """
    An entry counts as missing when its target is absent, empty, or still
    identical to its source text.
    """
    if entry.target is None or entry.target == "":
        return True
    return isinstance(entry.source, str) and entry.target == entry.source


def select_candidates(
    entries: Sequence[TranslationEntry], mode: Union[TranslationMode, str]
) -> List[TranslationEntry]:
    """
    Pick the entries a run should send to the provider.

    Only entries whose source is a string are ever selected; structured
    values are carried through untouched. Order follows ``entries``.

    Args:
        entries: Entries of the document pair, in document order
        mode: 'missing' or 'all'

    Returns:
        Candidate entries in document order
    """
    mode = TranslationMode(mode)
    candidates = []
    for entry in entries:
        if not isinstance(entry.source, str):
            continue
        if mode == TranslationMode.ALL or is_missing_translation(entry):
            candidates.append(entry)
    return candidates


def chunk_candidates(
    candidates: Sequence[TranslationEntry], batch_size: int
) -> List[List[TranslationEntry]]:
    """
    Split candidates into contiguous batches of at most ``batch_size``.

    Raises:
        ValueError: If batch_size is below 1
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be at least 1, got {batch_size}")
    return [
        list(candidates[start : start + batch_size])
        for start in range(0, len(candidates), batch_size)
    ]
