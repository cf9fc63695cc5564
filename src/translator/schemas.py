"""Data structures for translation run processing."""

from pathlib import Path
from typing import Dict, List, Optional, Union

from common.config import Settings
from common.schemas import TranslationEntry, TranslationMode


class TranslationRunRequest:
    """Everything one orchestration call needs besides the entries."""

    def __init__(
        self,
        mode: Union[TranslationMode, str],
        target_path: Union[str, Path],
        provider: str,
        api_key: Optional[str],
        model: str,
        context: Optional[str] = None,
        target_language: Optional[str] = None,
        project_name: Optional[str] = None,
        project_description: Optional[str] = None,
        batch_size: int = 600,
        min_cooldown_ms: int = 5000,
        transient_retries: int = 0,
    ):
        self.mode = TranslationMode(mode)
        self.target_path = Path(target_path)
        self.provider = provider
        self.api_key = api_key
        self.model = model
        self.context = context
        self.target_language = target_language
        self.project_name = project_name
        self.project_description = project_description
        self.batch_size = batch_size
        self.min_cooldown_ms = min_cooldown_ms
        self.transient_retries = transient_retries

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        mode: Union[TranslationMode, str],
        target_path: Union[str, Path],
        model: Optional[str] = None,
        batch_size: Optional[int] = None,
    ) -> "TranslationRunRequest":
        """
        Build a request from the configuration store.

        Args:
            settings: Loaded settings
            mode: 'missing' or 'all'
            target_path: Target document path (also the checkpoint path)
            model: Optional model override for the active provider
            batch_size: Optional batch size override

        Returns:
            TranslationRunRequest using the active provider
        """
        provider, api_key, configured_model = settings.get_active_provider()
        return cls(
            mode=mode,
            target_path=target_path,
            provider=provider,
            api_key=api_key,
            model=model or configured_model,
            context=settings.translation_context,
            target_language=settings.target_language,
            project_name=settings.project_name,
            project_description=settings.project_description,
            batch_size=batch_size or settings.translation_batch_size,
            min_cooldown_ms=settings.translation_min_cooldown_ms,
            transient_retries=settings.translation_transient_retries,
        )


class RunState:
    """
    State of one run, threaded through the batch loop.

    ``translations`` only ever gains keys while the run is active.
    """

    def __init__(
        self,
        candidates: List[TranslationEntry],
        batches: List[List[TranslationEntry]],
    ):
        self.candidates = candidates
        self.batches = batches
        self.batch_index = 0
        self.translations: Dict[str, str] = {}
        self.completed_batches = 0
        self.failed_batches = 0
        self.cancelled = False
        self.error: Optional[str] = None
        self.error_kind: Optional[str] = None

    @property
    def total_batches(self) -> int:
        return len(self.batches)

    @property
    def stopped(self) -> bool:
        """True once the loop must not start another batch."""
        return self.cancelled or self.error is not None

    def merge(self, batch: List[TranslationEntry], translations: Dict[str, str]) -> int:
        """
        Add the translations that belong to ``batch``; returns how many were added.
        """
        batch_keys = {entry.key for entry in batch}
        added = 0
        for key, value in translations.items():
            if key in batch_keys:
                self.translations[key] = value
                added += 1
        return added
