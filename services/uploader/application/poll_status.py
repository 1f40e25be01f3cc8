from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from services.uploader.application.interfaces import RecordingApi, StatusCallback
from services.uploader.application.schemas import RecordingStatus
from services.uploader.domain.cancellation import CancellationToken
from services.uploader.domain.errors import RecordingError

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_MS = 3000

ErrorCallback = Callable[[RecordingError], None]


class PollSubscription:
    """Handle on a running poll loop."""

    def __init__(
        self, recording_id: str, token: CancellationToken, task: asyncio.Task
    ) -> None:
        self.recording_id = recording_id
        self._token = token
        self._task = task

    def cancel(self) -> None:
        if not self._token.cancelled:
            logger.info("Stopped polling recording %s", self.recording_id)
        self._token.cancel()

    @property
    def cancelled(self) -> bool:
        return self._token.cancelled

    @property
    def done(self) -> bool:
        return self._task.done()

    async def wait(self) -> Optional[RecordingStatus]:
        """Terminal status, or None if polling was cancelled or gave up."""
        return await self._task


class StatusPoller:
    def __init__(
        self,
        *,
        api: RecordingApi,
        interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        max_consecutive_failures: int = 0,
    ) -> None:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        self._api = api
        self._interval_ms = interval_ms
        # 0 keeps polling through any number of failed ticks
        self._max_consecutive_failures = max_consecutive_failures

    def poll(
        self,
        recording_id: str,
        on_update: StatusCallback,
        *,
        interval_ms: int | None = None,
        on_error: ErrorCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> PollSubscription:
        """Start polling; must be called from a running event loop."""
        if interval_ms is None:
            interval_ms = self._interval_ms
        elif interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        token = CancellationToken()
        task = asyncio.get_running_loop().create_task(
            self._run(recording_id, interval_ms / 1000, on_update, on_error, token)
        )
        subscription = PollSubscription(recording_id, token, task)
        if cancel_token is not None:
            cancel_token.add_callback(subscription.cancel)
        return subscription

    async def _run(
        self,
        recording_id: str,
        interval: float,
        on_update: StatusCallback,
        on_error: ErrorCallback | None,
        token: CancellationToken,
    ) -> Optional[RecordingStatus]:
        failures = 0
        while not token.cancelled:
            try:
                status = await self._api.fetch_recording_status(recording_id)
            except RecordingError as exc:
                if token.cancelled:
                    break
                failures += 1
                logger.warning(
                    "Status poll %d for %s failed: %s", failures, recording_id, exc
                )
                if (
                    self._max_consecutive_failures
                    and failures >= self._max_consecutive_failures
                ):
                    logger.error(
                        "Giving up on %s after %d failed polls", recording_id, failures
                    )
                    if on_error is not None:
                        on_error(exc)
                    return None
            else:
                if token.cancelled:
                    # result of a request that was in flight at cancellation
                    break
                failures = 0
                on_update(status)
                if status.is_terminal:
                    logger.info("Recording %s reached %s", recording_id, status.status)
                    return status
            if await token.sleep(interval):
                break
        return None
