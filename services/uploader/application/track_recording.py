from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from services.uploader.application.interfaces import StatusCallback, StatusSink
from services.uploader.application.poll_status import StatusPoller
from services.uploader.application.schemas import RecordingStatus
from services.uploader.domain.cancellation import CancellationToken
from services.uploader.domain.errors import ProcessingFailedError, RecordingError
from services.uploader.domain.lifecycle import LifecycleEvent, transition
from services.uploader.domain.recording import LifecycleState, RecordingSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrackingOutcome:
    session: RecordingSession
    status: Optional[RecordingStatus] = None


class TrackRecordingUseCase:
    """Follows a handed-off recording until processing reaches a terminal status."""

    def __init__(self, *, poller: StatusPoller, sinks: Iterable[StatusSink] = ()) -> None:
        self._poller = poller
        self._sinks = list(sinks)

    async def follow(
        self,
        session: RecordingSession,
        *,
        on_update: StatusCallback | None = None,
        interval_ms: int | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> TrackingOutcome:
        if session.lifecycle_state is not LifecycleState.POLLING or not session.recording_id:
            raise ValueError(
                f"Recording must be handed off before tracking (state={session.lifecycle_state.value})"
            )

        poll_errors: list[RecordingError] = []

        def deliver(status: RecordingStatus) -> None:
            for sink in self._sinks:
                sink.publish(status)
            if on_update is not None:
                on_update(status)

        subscription = self._poller.poll(
            session.recording_id,
            deliver,
            interval_ms=interval_ms,
            on_error=poll_errors.append,
            cancel_token=cancel_token,
        )
        final = await subscription.wait()

        if final is None:
            if poll_errors:
                failed = session.with_error(poll_errors[-1])
                return TrackingOutcome(transition(failed, LifecycleEvent.FAILED))
            return TrackingOutcome(transition(session, LifecycleEvent.CANCELLED))
        logger.info(
            "Processing of %s finished with %s", session.recording_id, final.status
        )
        if final.status == "COMPLETED":
            completed = transition(session, LifecycleEvent.PROCESSING_COMPLETED)
            return TrackingOutcome(completed, final)
        failed = session.with_error(
            ProcessingFailedError(final.error or "Processing failed.")
        )
        return TrackingOutcome(transition(failed, LifecycleEvent.FAILED), final)
