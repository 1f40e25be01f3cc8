"""Upload lifecycle state machine.

The orchestrator never assigns ``lifecycle_state`` directly; every change
goes through :func:`transition`, so e.g. notifying before an upload has
succeeded raises instead of silently happening.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from enum import Enum

from services.uploader.domain.errors import IllegalTransitionError
from services.uploader.domain.recording import LifecycleState, RecordingSession

logger = logging.getLogger(__name__)


class LifecycleEvent(str, Enum):
    START = "start"
    INIT_SUCCEEDED = "init_succeeded"
    UPLOAD_SUCCEEDED = "upload_succeeded"
    NOTIFY_SUCCEEDED = "notify_succeeded"
    PROCESSING_COMPLETED = "processing_completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


_S = LifecycleState
_E = LifecycleEvent

_TRANSITIONS: dict[tuple[LifecycleState, LifecycleEvent], LifecycleState] = {
    (_S.IDLE, _E.START): _S.INITIALIZING,
    (_S.INITIALIZING, _E.INIT_SUCCEEDED): _S.UPLOADING,
    (_S.INITIALIZING, _E.FAILED): _S.FAILED,
    (_S.INITIALIZING, _E.CANCELLED): _S.CANCELLED,
    (_S.UPLOADING, _E.UPLOAD_SUCCEEDED): _S.NOTIFYING,
    (_S.UPLOADING, _E.FAILED): _S.FAILED,
    (_S.UPLOADING, _E.CANCELLED): _S.CANCELLED,
    (_S.NOTIFYING, _E.NOTIFY_SUCCEEDED): _S.POLLING,
    (_S.NOTIFYING, _E.FAILED): _S.FAILED,
    (_S.NOTIFYING, _E.CANCELLED): _S.CANCELLED,
    (_S.POLLING, _E.PROCESSING_COMPLETED): _S.COMPLETED,
    (_S.POLLING, _E.FAILED): _S.FAILED,
    (_S.POLLING, _E.CANCELLED): _S.CANCELLED,
}


def next_state(state: LifecycleState, event: LifecycleEvent) -> LifecycleState:
    try:
        return _TRANSITIONS[(state, event)]
    except KeyError:
        raise IllegalTransitionError(
            f"Cannot apply {event.value!r} in state {state.value!r}"
        ) from None


def transition(session: RecordingSession, event: LifecycleEvent) -> RecordingSession:
    target = next_state(session.lifecycle_state, event)
    # progress is only meaningful inside one Uploading attempt
    logger.info(
        "Recording %s: %s -> %s",
        session.recording_id or "<pending>",
        session.lifecycle_state.value,
        target.value,
    )
    return replace(session, lifecycle_state=target, upload_progress=0.0)
