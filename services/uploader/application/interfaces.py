from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Mapping, Protocol

if TYPE_CHECKING:
    from services.uploader.application.dto import InitRecordingRequest
    from services.uploader.application.schemas import InitResult, RecordingStatus
    from services.uploader.domain.cancellation import CancellationToken
    from services.uploader.domain.recording import FileInfo


ProgressCallback = Callable[[float], None]
StatusCallback = Callable[["RecordingStatus"], None]


class RecordingApi(Protocol):
    async def init_recording(self, request: "InitRecordingRequest") -> "InitResult": ...

    async def mark_upload_complete(self, recording_id: str) -> None: ...

    async def fetch_recording_status(self, recording_id: str) -> "RecordingStatus": ...


class UploadTransport(Protocol):
    async def transfer(
        self,
        *,
        file_ref: str,
        destination_url: str,
        headers: Mapping[str, str] | None,
        content_type: str,
        on_progress: ProgressCallback | None = None,
        cancel_token: "CancellationToken | None" = None,
    ) -> None:
        """Send the file once; raises a RecordingError subclass on failure."""
        ...


class FileInspector(Protocol):
    def inspect(self, file_ref: str) -> "FileInfo": ...


class StatusSink(Protocol):
    def publish(self, status: "RecordingStatus") -> None: ...
