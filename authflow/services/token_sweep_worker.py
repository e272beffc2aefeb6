"""Expired-token sweep background worker.

asyncio background task started by the FastAPI lifespan. Runs
AuthService.sweep_expired_tokens() on a configurable interval to bound
memory growth; expired tokens are already rejected at lookup time.
"""

import asyncio
import contextlib
import logging
from datetime import UTC, datetime

from authflow.services.auth_service import AuthService

logger = logging.getLogger(__name__)

# Default interval: 15 minutes
DEFAULT_INTERVAL_SECONDS = 15 * 60


class TokenSweepWorker:
    """Background worker that periodically removes expired tokens.

    Lifecycle:
    - start() creates an asyncio task that runs the sweep loop.
    - stop() cancels the task and waits for graceful shutdown.
    - run_once() executes a single sweep (for testing).

    Args:
        service: Auth service whose token store is swept.
        interval_seconds: Seconds between sweeps.
    """

    def __init__(
        self,
        service: AuthService,
        *,
        interval_seconds: int = DEFAULT_INTERVAL_SECONDS,
    ) -> None:
        self._service = service
        self._interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None
        self._last_run_at: datetime | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        """Whether the background task is currently active."""
        return self._running and self._task is not None and not self._task.done()

    @property
    def last_run_at(self) -> datetime | None:
        """Timestamp of the most recent completed sweep."""
        return self._last_run_at

    def start(self) -> None:
        """Start the background sweep loop.

        Creates an asyncio task. No-op if already running.
        Must be called from an async context (running event loop).
        """
        if self.is_running:
            logger.warning("Token sweep worker already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("Token sweep worker started (interval=%ds)", self._interval_seconds)

    async def stop(self) -> None:
        """Stop the background sweep loop.

        Cancels the task and waits for it to finish.
        """
        self._running = False
        if self._task is not None and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        self._task = None
        logger.info("Token sweep worker stopped")

    def run_once(self) -> int:
        """Execute a single sweep.

        Returns:
            Number of expired tokens removed.
        """
        removed = self._service.sweep_expired_tokens()
        self._last_run_at = datetime.now(UTC)
        return removed

    async def _run_loop(self) -> None:
        """Background loop: sleep → sweep → repeat."""
        try:
            while self._running:
                await asyncio.sleep(self._interval_seconds)
                try:
                    removed = self.run_once()
                    if removed:
                        logger.info("Token sweep removed %d expired tokens", removed)
                except Exception:  # noqa: BLE001
                    logger.exception("Error in token sweep")
        except asyncio.CancelledError:
            logger.debug("Token sweep loop cancelled")
            raise
