from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Tuple

from services.uploader.domain.errors import (
    ErrorKind,
    InvalidRequestError,
    RecordingError,
)


class LifecycleState(str, Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    UPLOADING = "uploading"
    NOTIFYING = "notifying"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (
            LifecycleState.COMPLETED,
            LifecycleState.FAILED,
            LifecycleState.CANCELLED,
        )


@dataclass(frozen=True)
class ErrorDescriptor:
    kind: ErrorKind
    message: str
    status_code: Optional[int] = None

    @classmethod
    def from_exception(cls, exc: RecordingError) -> "ErrorDescriptor":
        return cls(
            kind=exc.kind,
            message=exc.message,
            status_code=getattr(exc, "status_code", None),
        )


@dataclass(frozen=True)
class FileInfo:
    exists: bool
    size_bytes: int = 0


@dataclass(frozen=True)
class RecordingSession:
    local_file_ref: str
    duration_sec: Optional[int] = None
    step_markers_sec: Tuple[int, ...] = field(default_factory=tuple)
    recording_id: Optional[str] = None
    lifecycle_state: LifecycleState = LifecycleState.IDLE
    upload_progress: float = 0.0
    last_error: Optional[ErrorDescriptor] = None

    @classmethod
    def from_capture(
        cls,
        local_file_ref: str,
        *,
        duration_sec: float | None = None,
        step_markers_sec: list[int] | tuple[int, ...] | None = None,
    ) -> "RecordingSession":
        if not local_file_ref:
            raise InvalidRequestError("Missing video to upload.")
        duration = None
        if duration_sec is not None:
            if duration_sec < 0:
                raise InvalidRequestError("Duration must not be negative.")
            duration = int(round(duration_sec))
        markers = tuple(int(marker) for marker in step_markers_sec or ())
        if any(marker < 0 for marker in markers):
            raise InvalidRequestError("Step markers must not be negative.")
        if any(later < earlier for earlier, later in zip(markers, markers[1:])):
            raise InvalidRequestError("Step markers must be in ascending order.")
        return cls(
            local_file_ref=local_file_ref,
            duration_sec=duration,
            step_markers_sec=markers,
        )

    def assign_recording_id(self, recording_id: str) -> "RecordingSession":
        if self.recording_id is not None and self.recording_id != recording_id:
            raise InvalidRequestError(
                f"Session already bound to recording {self.recording_id}"
            )
        return replace(self, recording_id=recording_id)

    def with_progress(self, fraction: float) -> "RecordingSession":
        if self.lifecycle_state is not LifecycleState.UPLOADING:
            return self
        clamped = min(max(fraction, 0.0), 1.0)
        return replace(self, upload_progress=max(self.upload_progress, clamped))

    def with_error(self, exc: RecordingError) -> "RecordingSession":
        return replace(self, last_error=ErrorDescriptor.from_exception(exc))

    def restart(self) -> "RecordingSession":
        """Fresh attempt with the same capture data."""
        return RecordingSession(
            local_file_ref=self.local_file_ref,
            duration_sec=self.duration_sec,
            step_markers_sec=self.step_markers_sec,
        )
