from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    MALFORMED_RESPONSE = "malformed_response"
    REJECTED_BY_SERVER = "rejected_by_server"
    NETWORK_FAILURE = "network_failure"
    CANCELLED = "cancelled"
    PROCESSING_FAILED = "processing_failed"


class RecordingError(Exception):
    """Base class for every failure the upload flow reports to its caller."""

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequestError(RecordingError):
    kind = ErrorKind.VALIDATION


class MalformedResponseError(RecordingError):
    kind = ErrorKind.MALFORMED_RESPONSE

    def __init__(self, message: str, *, detail: str | None = None) -> None:
        super().__init__(f"{message}: {detail}" if detail else message)
        self.detail = detail


class ServerRejectedError(RecordingError):
    kind = ErrorKind.REJECTED_BY_SERVER

    def __init__(self, status_code: int, body: str = "", *, prefix: str | None = None) -> None:
        head = prefix or f"rejected by server ({status_code})"
        super().__init__(f"{head}: {body}" if body else head)
        self.status_code = status_code
        self.body = body


class NetworkFailureError(RecordingError):
    kind = ErrorKind.NETWORK_FAILURE


class OperationCancelledError(RecordingError):
    kind = ErrorKind.CANCELLED

    def __init__(self, message: str = "Upload cancelled.") -> None:
        super().__init__(message)


class ProcessingFailedError(RecordingError):
    """The backend finished processing with status FAILED."""

    kind = ErrorKind.PROCESSING_FAILED


class IllegalTransitionError(RuntimeError):
    pass
