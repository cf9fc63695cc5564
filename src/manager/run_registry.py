"""Single-flight bookkeeping of the translation run driven by the API."""

import asyncio
import logging
from collections import deque
from typing import Callable, Deque, List, Optional
from uuid import uuid4

from common.schemas import ProgressEvent, RunPhase, TranslationEntry, TranslationRunResult
from manager.schemas import RunStatusResponse
from translator.cancellation import CancellationToken
from translator.candidates import select_candidates
from translator.exceptions import ConfigurationError, NoWorkError
from translator.schemas import TranslationRunRequest
from translator.translation_orchestrator import TranslationOrchestrator
from translator.translation_service import SUPPORTED_PROVIDERS, validate_api_key

logger = logging.getLogger(__name__)

MAX_RECENT_EVENTS = 50


class RunAlreadyActiveError(Exception):
    """A run is in progress; only one run may be active at a time."""

    def __init__(self, run_id: str):
        self.run_id = run_id
        super().__init__(f"Translation run {run_id} is already in progress")


class RunRegistry:
    """
    Owns at most one active orchestrator run and remembers the last one.

    The orchestrator itself is not re-entrant, so the guard lives here:
    ``start`` refuses while the current run task has not finished.
    """

    def __init__(
        self,
        orchestrator_factory: Callable[[], TranslationOrchestrator] = TranslationOrchestrator,
    ):
        self._orchestrator_factory = orchestrator_factory
        self._task: Optional[asyncio.Task] = None
        self._token: Optional[CancellationToken] = None
        self._events: Deque[ProgressEvent] = deque(maxlen=MAX_RECENT_EVENTS)
        self._status = RunStatusResponse()

    @property
    def is_active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(
        self,
        entries: List[TranslationEntry],
        request: TranslationRunRequest,
        base_path: str,
    ) -> str:
        """
        Validate the request and start the run in the background.

        Must be called from a running event loop.

        Returns:
            Id of the new run

        Raises:
            RunAlreadyActiveError: If a run is still in progress
            ConfigurationError: If the provider, key or batch size is invalid
            NoWorkError: If no entry matches the selected mode
        """
        if self.is_active:
            raise RunAlreadyActiveError(self._status.run_id)

        # Fail fast so the caller gets the error instead of a FAILED run
        if request.provider not in SUPPORTED_PROVIDERS:
            raise ConfigurationError(f"Unknown provider '{request.provider}'")
        if request.batch_size < 1:
            raise ConfigurationError(
                f"Batch size must be at least 1, got {request.batch_size}"
            )
        validate_api_key(request.api_key, request.provider)
        if not select_candidates(entries, request.mode):
            raise NoWorkError(request.mode.value)

        run_id = str(uuid4())
        self._token = CancellationToken()
        self._events.clear()
        self._status = RunStatusResponse(
            run_id=run_id,
            active=True,
            phase=RunPhase.PREPARING,
            status_text="Preparing translation...",
            base_path=base_path,
            target_path=str(request.target_path),
            model=request.model,
        )

        orchestrator = self._orchestrator_factory()
        self._task = asyncio.create_task(
            self._execute(orchestrator, entries, request, self._token)
        )
        logger.info(
            f"🚀 Started translation run {run_id} ({request.mode.value}) "
            f"for {request.target_path}"
        )
        return run_id

    async def _execute(
        self,
        orchestrator: TranslationOrchestrator,
        entries: List[TranslationEntry],
        request: TranslationRunRequest,
        token: CancellationToken,
    ) -> Optional[TranslationRunResult]:
        try:
            result = await orchestrator.run(entries, request, token, self._record)
        except Exception as e:
            logger.error(
                f"❌ Translation run {self._status.run_id} crashed: {e}", exc_info=True
            )
            self._status.phase = RunPhase.FAILED
            self._status.status_text = f"Error: {e}"
            self._status.error = str(e)
            return None
        finally:
            self._status.active = False

        self._status.result = result
        self._status.phase = result.status
        self._status.error = result.error
        return result

    def _record(self, event: ProgressEvent) -> None:
        self._events.append(event)
        self._status.phase = event.phase
        self._status.status_text = event.status_text
        self._status.progress_percent = event.progress_percent

    def cancel(self) -> bool:
        """
        Request cancellation of the active run.

        Returns:
            True if a run was active, False otherwise
        """
        if not self.is_active or self._token is None:
            return False
        self._token.cancel("Cancelled via API")
        return True

    def snapshot(self) -> RunStatusResponse:
        """Copy of the current run status, with the recent progress events."""
        status = self._status.model_copy(deep=True)
        status.events = list(self._events)
        return status

    async def wait(self) -> Optional[TranslationRunResult]:
        """Wait for the active run (if any) to finish and return its result."""
        if self._task is None:
            return None
        return await self._task

    async def shutdown(self) -> None:
        """Cancel the active run and let the batch in flight finish."""
        if self.is_active:
            logger.info("🛑 Shutting down, waiting for the batch in flight...")
            self.cancel()
            await self.wait()


run_registry = RunRegistry()
