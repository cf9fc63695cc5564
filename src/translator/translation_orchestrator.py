"""Batch translation orchestration with per-batch checkpoints and cancellation."""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Union

from common.config import settings
from common.retry_utils import retry_with_exponential_backoff
from common.schemas import (
    ProgressEvent,
    RunPhase,
    TranslationEntry,
    TranslationRunResult,
)
from common.utils import DateTimeUtils, MathUtils
from translator.candidates import chunk_candidates, select_candidates
from translator.cancellation import CancellationToken
from translator.checkpoint_manager import CheckpointManager
from translator.error_classifier import (
    build_user_message,
    classify_error,
    is_retryable_provider_error,
)
from translator.exceptions import ConfigurationError, NoWorkError, PersistenceError
from translator.rate_model import get_batch_cooldown_ms
from translator.schemas import RunState, TranslationRunRequest
from translator.translation_service import (
    SUPPORTED_PROVIDERS,
    KeyValueTranslator,
    validate_api_key,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], Union[None, Awaitable[None]]]

PERSISTENCE_ERROR_KIND = "persistence"


class TranslationOrchestrator:
    """
    Drives one translation run: select, batch, translate, checkpoint, cool down.

    Batches run strictly one after another. The cancellation token is only
    checked before a batch starts, so a batch in flight always finishes (or
    fails) and its checkpoint is written before the run stops. Not
    re-entrant: callers must not start a second run while one is active.
    """

    def __init__(
        self,
        translator: Optional[KeyValueTranslator] = None,
        checkpoint_manager: Optional[CheckpointManager] = None,
        sleep_func: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Initialize the orchestrator.

        Args:
            translator: Provider client (a default KeyValueTranslator if None)
            checkpoint_manager: Checkpoint writer (a default one if None)
            sleep_func: Awaitable sleep used for cooldowns, in seconds
        """
        self.translator = translator or KeyValueTranslator()
        self.checkpoint_manager = checkpoint_manager or CheckpointManager()
        self._sleep = sleep_func
        self.phase = RunPhase.IDLE

    async def run(
        self,
        entries: Sequence[TranslationEntry],
        request: TranslationRunRequest,
        cancellation: Optional[CancellationToken] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> TranslationRunResult:
        """
        Translate the candidates of ``entries`` and persist progress after every batch.

        Args:
            entries: Every entry of the base/target pair, in document order
            request: Provider, model, mode and target path for the run
            cancellation: Optional token checked before each batch
            on_progress: Optional sync or async callback receiving ProgressEvents

        Returns:
            TranslationRunResult (DONE, CANCELLED or FAILED). Fatal provider
            errors and checkpoint write failures are reported in ``error``,
            never raised.

        Raises:
            ConfigurationError: If the API key, provider or batch size is invalid
            NoWorkError: If no entry matches the selected mode
        """
        started_at = DateTimeUtils.get_current_utc_datetime()
        entries = list(entries)

        state, api_key = await self._prepare(entries, request, on_progress)
        call_provider = self._build_provider_call(request)

        for index, batch in enumerate(state.batches):
            if cancellation is not None and cancellation.is_cancelled:
                state.cancelled = True
                logger.info(
                    f"🛑 Run cancelled before batch {index + 1}/{state.total_batches}"
                )
                await self._emit(
                    on_progress,
                    "Cancelled. Saving progress...",
                    MathUtils.calculate_percentage(index, state.total_batches),
                    RunPhase.CANCELLED,
                    index,
                    state.total_batches,
                )
                break

            state, succeeded = await self._run_batch(
                state, index, batch, entries, request, api_key, call_provider, on_progress
            )

            if state.stopped:
                break

            is_last_batch = index == state.total_batches - 1
            if succeeded and not is_last_batch:
                await self._cooldown(state, index, request, on_progress)

        return await self._finish(entries, request, state, started_at, on_progress)

    async def _prepare(
        self,
        entries: List[TranslationEntry],
        request: TranslationRunRequest,
        on_progress: Optional[ProgressCallback],
    ):
        """
        Validate configuration and build the candidate batches.

        Returns:
            Tuple of (RunState, sanitized api key)
        """
        self.phase = RunPhase.PREPARING
        await self._emit(on_progress, "Preparing translation...", 0, RunPhase.PREPARING)

        try:
            if request.provider not in SUPPORTED_PROVIDERS:
                raise ConfigurationError(
                    f"Unknown provider '{request.provider}'. "
                    f"Use one of: {', '.join(SUPPORTED_PROVIDERS)}"
                )
            if request.batch_size < 1:
                raise ConfigurationError(
                    f"Batch size must be at least 1, got {request.batch_size}"
                )
            api_key = validate_api_key(request.api_key, request.provider)
        except ConfigurationError as e:
            self.phase = RunPhase.IDLE
            logger.error(f"❌ Cannot start translation: {e}")
            raise

        candidates = select_candidates(entries, request.mode)
        if not candidates:
            self.phase = RunPhase.IDLE
            logger.info(f"Nothing to translate for mode '{request.mode.value}'")
            raise NoWorkError(request.mode.value)

        batches = chunk_candidates(candidates, request.batch_size)
        logger.info(
            f"🚀 Translating {len(candidates)} keys in {len(batches)} batches "
            f"of up to {request.batch_size} with {request.model} ({request.provider})"
        )
        return RunState(candidates, batches), api_key

    def _build_provider_call(self, request: TranslationRunRequest):
        """Wrap the provider call in bounded retries when the run allows them."""
        call = self.translator.translate_batch
        if request.transient_retries > 0:
            call = retry_with_exponential_backoff(
                max_retries=request.transient_retries,
                initial_delay=settings.translation_retry_initial_delay,
                exponential_base=settings.translation_retry_exponential_base,
                max_delay=settings.translation_retry_max_delay,
                is_retryable=is_retryable_provider_error,
                sleep_func=self._sleep,
            )(call)
        return call

    async def _run_batch(
        self,
        state: RunState,
        index: int,
        batch: List[TranslationEntry],
        entries: List[TranslationEntry],
        request: TranslationRunRequest,
        api_key: str,
        call_provider,
        on_progress: Optional[ProgressCallback],
    ):
        """
        Translate one batch, merge its results and write the checkpoint.

        Returns:
            Tuple of (updated RunState, whether the batch succeeded)
        """
        self.phase = RunPhase.RUNNING
        state.batch_index = index
        total = state.total_batches

        await self._emit(
            on_progress,
            f"Translating batch {index + 1}/{total} using {request.model}...",
            MathUtils.calculate_percentage(index, total),
            RunPhase.RUNNING,
            index,
            total,
        )

        keys = [entry.key for entry in batch]
        sources = [entry.source for entry in batch]

        try:
            result = await call_provider(
                keys,
                sources,
                request.context,
                api_key,
                request.provider,
                request.model,
                request.target_language,
                request.project_name,
                request.project_description,
            )
        except Exception as e:
            classification = classify_error(e)
            if classification.is_fatal:
                state.error = build_user_message(
                    classification, request.model, request.provider
                )
                state.error_kind = classification.kind.value
                logger.error(
                    f"❌ Batch {index + 1}/{total} failed with {classification.kind.value}, "
                    f"stopping run: {e}"
                )
                await self._emit(
                    on_progress,
                    f"Error: {e}. Stopping...",
                    MathUtils.calculate_percentage(index, total),
                    RunPhase.FAILED,
                    index,
                    total,
                )
            else:
                state.failed_batches += 1
                logger.warning(
                    f"⚠️  Batch {index + 1}/{total} failed, skipping its {len(batch)} keys: {e}",
                    exc_info=True,
                )
            return state, False

        added = state.merge(batch, result)
        state.completed_batches += 1
        logger.info(
            f"✅ Completed batch {index + 1}/{total} ({added}/{len(batch)} keys translated)"
        )

        try:
            await self.checkpoint_manager.save_checkpoint(
                request.target_path, entries, state.translations
            )
        except PersistenceError as e:
            state.error = str(e)
            state.error_kind = PERSISTENCE_ERROR_KIND
            logger.error(f"❌ Stopping run, checkpoint could not be written: {e}")

        return state, True

    async def _cooldown(
        self,
        state: RunState,
        index: int,
        request: TranslationRunRequest,
        on_progress: Optional[ProgressCallback],
    ) -> None:
        """Wait out the model's rate budget before the next batch."""
        self.phase = RunPhase.COOLDOWN
        sleep_ms = get_batch_cooldown_ms(request.model, request.min_cooldown_ms)
        await self._emit(
            on_progress,
            f"Cooldown: Waiting {round(sleep_ms / 1000)}s (Rate Limit Protection)...",
            MathUtils.calculate_percentage(index, state.total_batches),
            RunPhase.COOLDOWN,
            index,
            state.total_batches,
        )
        await self._sleep(sleep_ms / 1000)

    async def _finish(
        self,
        entries: List[TranslationEntry],
        request: TranslationRunRequest,
        state: RunState,
        started_at,
        on_progress: Optional[ProgressCallback],
    ) -> TranslationRunResult:
        """Write the final checkpoint and build the run result."""
        if state.translations and state.error_kind != PERSISTENCE_ERROR_KIND:
            try:
                await self.checkpoint_manager.save_checkpoint(
                    request.target_path, entries, state.translations
                )
            except PersistenceError as e:
                state.error = str(e)
                state.error_kind = PERSISTENCE_ERROR_KIND

        updated_entries = [
            entry.model_copy(update={"target": state.translations[entry.key]})
            if entry.key in state.translations
            else entry
            for entry in entries
        ]
        final_document = self.checkpoint_manager.build_document(
            entries, state.translations
        )

        if state.error is not None:
            status = RunPhase.FAILED
            status_text = f"Error: {state.error}"
        elif state.cancelled:
            status = RunPhase.CANCELLED
            status_text = "Cancelled!"
        else:
            status = RunPhase.DONE
            status_text = "Done!"

        self.phase = status
        await self._emit(on_progress, status_text, 100, status, None, state.total_batches)

        logger.info(
            f"🏁 Run {status.value}: {len(state.translations)}/{len(state.candidates)} keys "
            f"translated, {state.completed_batches} batches completed, "
            f"{state.failed_batches} skipped"
        )

        return TranslationRunResult(
            status=status,
            cancelled=state.cancelled,
            error=state.error,
            error_kind=state.error_kind,
            entries=updated_entries,
            final_document=final_document,
            translations=dict(state.translations),
            candidate_count=len(state.candidates),
            total_batches=state.total_batches,
            completed_batches=state.completed_batches,
            failed_batches=state.failed_batches,
            checkpoint_path=str(request.target_path),
            started_at=started_at,
            finished_at=DateTimeUtils.get_current_utc_datetime(),
        )

    async def _emit(
        self,
        on_progress: Optional[ProgressCallback],
        status_text: str,
        progress_percent: int,
        phase: RunPhase,
        batch_index: Optional[int] = None,
        total_batches: Optional[int] = None,
    ) -> None:
        """Send a progress notification to the caller, if it listens."""
        if on_progress is None:
            return

        event = ProgressEvent(
            status_text=status_text,
            progress_percent=progress_percent,
            phase=phase,
            batch_index=batch_index,
            total_batches=total_batches,
        )
        try:
            outcome = on_progress(event)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.warning(f"⚠️  Progress callback failed: {e}", exc_info=True)
