"""Checkpoint manager persisting translation progress into the target document."""

import logging
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Sequence, Tuple, Union

from common.key_paths import unflatten_entries
from common.schemas import TranslationEntry
from translator.file_operations import write_json_document

logger = logging.getLogger(__name__)


class CheckpointManager:
    """
    Writes the merged target document after every completed batch.

    The checkpoint is the target file itself: each write fully replaces it
    with a document that merges the original target values with everything
    translated so far, so a crash loses at most the batch in flight.
    """

    def __init__(self):
        self.writes = 0

    @staticmethod
    def _effective_values(
        entries: Sequence[TranslationEntry], translations: Mapping[str, str]
    ) -> Iterator[Tuple[str, Any]]:
        """
        Resolve the value written for each entry.

        Priority: new translation from this run, then the existing target
        value, else omitted (None).
        """
        for entry in entries:
            value = translations.get(entry.key)
            if value is None:
                value = entry.target
            yield entry.key, value

    def build_document(
        self, entries: Sequence[TranslationEntry], translations: Mapping[str, str]
    ) -> Dict[str, Any]:
        """
        Build the nested target document for the current progress.

        Args:
            entries: Every entry of the document pair the run started from
            translations: Accumulated key to translation map

        Returns:
            Nested JSON object
        """
        return unflatten_entries(self._effective_values(entries, translations))

    async def save_checkpoint(
        self,
        target_path: Union[str, Path],
        entries: Sequence[TranslationEntry],
        translations: Mapping[str, str],
    ) -> Dict[str, Any]:
        """
        Persist the merged document over the target file.

        Args:
            target_path: Path of the target document
            entries: Every entry of the document pair the run started from
            translations: Accumulated key to translation map

        Returns:
            The document that was written

        Raises:
            PersistenceError: If the file cannot be written
        """
        document = self.build_document(entries, translations)
        try:
            write_json_document(target_path, document)
        except Exception as e:
            logger.error(f"❌ Failed to save checkpoint: {e}")
            raise

        self.writes += 1
        logger.info(
            f"💾 Saved checkpoint: {target_path} ({len(translations)} keys translated so far)"
        )
        return document
