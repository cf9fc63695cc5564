"""Cooperative cancellation for translation runs."""

import logging
import signal
from typing import Optional

logger = logging.getLogger(__name__)


class CancellationToken:
    """
    Flag checked by the orchestrator before each batch.

    Setting it never interrupts a batch that is already in flight: the
    current provider call and its checkpoint complete first.

    Example:
        ```python
        token = CancellationToken()
        task = asyncio.create_task(orchestrator.run(entries, request, token))
        ...
        token.cancel()  # takes effect before the next batch
        result = await task
        ```
    """

    def __init__(self):
        self._cancelled = False
        self._reason: Optional[str] = None

    def cancel(self, reason: str = "Cancelled by user") -> None:
        """Request cancellation. Repeated calls keep the first reason."""
        if not self._cancelled:
            logger.info(f"🛑 Cancellation requested: {reason}")
            self._cancelled = True
            self._reason = reason

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def reset(self) -> None:
        """Clear the flag so the token can drive another run."""
        self._cancelled = False
        self._reason = None


def install_signal_handlers(loop, token: CancellationToken) -> None:
    """
    Cancel the token on SIGINT/SIGTERM.

    The first signal requests cancellation; the loop stops after the batch
    in flight. Platforms without ``add_signal_handler`` (Windows) fall back
    to ``signal.signal``.

    Args:
        loop: Running asyncio event loop
        token: Token to cancel
    """

    def handle_signal(signum: int) -> None:
        signal_name = signal.Signals(signum).name
        if token.is_cancelled:
            logger.warning(
                f"⚠️  Received {signal_name} again, still finishing the batch in flight..."
            )
            return
        token.cancel(f"Received {signal_name}")

    try:
        loop.add_signal_handler(signal.SIGINT, lambda: handle_signal(signal.SIGINT))
        loop.add_signal_handler(signal.SIGTERM, lambda: handle_signal(signal.SIGTERM))
    except NotImplementedError:
        logger.warning(
            "⚠️  asyncio.add_signal_handler not supported on this platform, "
            "using fallback signal.signal()"
        )
        signal.signal(signal.SIGINT, lambda signum, frame: handle_signal(signum))
        signal.signal(signal.SIGTERM, lambda signum, frame: handle_signal(signum))
