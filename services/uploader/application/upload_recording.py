from __future__ import annotations

import logging
from typing import Callable

from services.uploader.application.dto import InitRecordingRequest, UploadOutcome
from services.uploader.application.interfaces import (
    FileInspector,
    ProgressCallback,
    RecordingApi,
    UploadTransport,
)
from services.uploader.domain.cancellation import CancellationToken
from services.uploader.domain.errors import OperationCancelledError, RecordingError
from services.uploader.domain.lifecycle import LifecycleEvent, transition
from services.uploader.domain.recording import RecordingSession

logger = logging.getLogger(__name__)

StateCallback = Callable[[RecordingSession], None]


class UploadRecordingUseCase:
    """Runs init -> upload -> acknowledge for one captured recording.

    Each network step is attempted at most once per :meth:`run`; a retry is a
    new run on ``session.restart()``. A successful run ends in the
    ``POLLING`` state, at which point status tracking belongs to the caller.
    """

    def __init__(
        self,
        *,
        api: RecordingApi,
        transport: UploadTransport,
        file_inspector: FileInspector,
        content_type: str,
        max_duration_sec: int | None = None,
    ) -> None:
        self._api = api
        self._transport = transport
        self._file_inspector = file_inspector
        self._content_type = content_type
        self._max_duration_sec = max_duration_sec

    async def run(
        self,
        session: RecordingSession,
        *,
        cancel_token: CancellationToken | None = None,
        on_progress: ProgressCallback | None = None,
        on_state_change: StateCallback | None = None,
    ) -> UploadOutcome:
        token = cancel_token or CancellationToken()

        def advance(current: RecordingSession, event: LifecycleEvent) -> RecordingSession:
            updated = transition(current, event)
            if on_state_change is not None:
                on_state_change(updated)
            return updated

        def report_progress(fraction: float) -> None:
            nonlocal session
            session = session.with_progress(fraction)
            if on_progress is not None:
                on_progress(session.upload_progress)

        session = advance(session, LifecycleEvent.START)
        try:
            token.raise_if_cancelled()
            file_info = self._file_inspector.inspect(session.local_file_ref)
            request = InitRecordingRequest.for_session(
                session,
                file_info,
                content_type=self._content_type,
                max_duration_sec=self._max_duration_sec,
            )
            init_result = await self._api.init_recording(request)
            token.raise_if_cancelled()
            session = session.assign_recording_id(init_result.recordingId)
            logger.info(
                "Reserved upload slot for recording %s (%d bytes)",
                init_result.recordingId,
                request.sizeBytes,
            )

            session = advance(session, LifecycleEvent.INIT_SUCCEEDED)
            await self._transport.transfer(
                file_ref=session.local_file_ref,
                destination_url=init_result.uploadUrl,
                headers=init_result.headers,
                content_type=self._content_type,
                on_progress=report_progress,
                cancel_token=token,
            )

            session = advance(session, LifecycleEvent.UPLOAD_SUCCEEDED)
            token.raise_if_cancelled()
            await self._api.mark_upload_complete(init_result.recordingId)
            token.raise_if_cancelled()
            session = advance(session, LifecycleEvent.NOTIFY_SUCCEEDED)
        except OperationCancelledError:
            logger.info("Upload of %s cancelled", session.local_file_ref)
            session = advance(session, LifecycleEvent.CANCELLED)
        except RecordingError as exc:
            logger.error(
                "Upload of %s failed while %s: %s",
                session.local_file_ref,
                session.lifecycle_state.value,
                exc,
            )
            session = advance(session.with_error(exc), LifecycleEvent.FAILED)
        return UploadOutcome(session=session)
