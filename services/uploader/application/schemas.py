"""Typed views of backend payloads.

Payloads are validated strictly: wrong types are rejected rather than
coerced, and a failure always surfaces as :class:`MalformedResponseError`.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional
from urllib.parse import urlparse

from pydantic import (
    BaseModel,
    Field,
    StrictStr,
    ValidationError,
    field_validator,
    model_validator,
)

from services.uploader.domain.errors import MalformedResponseError

ProcessingStatus = Literal[
    "CREATED",
    "UPLOADING",
    "UPLOADED",
    "PROCESSING",
    "COMPLETED",
    "FAILED",
]

TERMINAL_STATUSES = frozenset({"COMPLETED", "FAILED"})

_STATUS_COPY = {
    "CREATED": "Waiting for upload…",
    "UPLOADING": "Upload in progress…",
    "UPLOADED": "Upload received. Processing…",
    "PROCESSING": "Processing video…",
    "COMPLETED": "Completed",
    "FAILED": "Failed",
}


def _require_absolute_url(value: str) -> str:
    parsed = urlparse(value)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(f"{value!r} is not an absolute URL")
    return value


class InitResult(BaseModel):
    """Upload slot reserved by the backend."""

    recordingId: str = Field(min_length=1, strict=True)
    uploadUrl: StrictStr
    headers: Optional[Dict[StrictStr, StrictStr]] = None

    @field_validator("uploadUrl")
    @classmethod
    def check_upload_url(cls, value: str) -> str:
        return _require_absolute_url(value)


class Evidence(BaseModel):
    transcriptSnippet: Optional[StrictStr] = None
    keyframeUrl: Optional[StrictStr] = None

    @field_validator("keyframeUrl")
    @classmethod
    def check_keyframe_url(cls, value: str | None) -> str | None:
        return None if value is None else _require_absolute_url(value)


class Step(BaseModel):
    index: int = Field(ge=0, strict=True)
    startSec: float = Field(ge=0, strict=True)
    endSec: float = Field(ge=0, strict=True)
    title: StrictStr
    description: StrictStr
    evidence: Optional[Evidence] = None

    @model_validator(mode="after")
    def check_timing(self) -> "Step":
        if self.endSec < self.startSec:
            raise ValueError(
                f"step {self.index} ends at {self.endSec} before it starts at {self.startSec}"
            )
        return self


class RecordingStatus(BaseModel):
    recordingId: str = Field(min_length=1, strict=True)
    status: ProcessingStatus
    error: Optional[StrictStr] = None
    steps: Optional[List[Step]] = None

    @model_validator(mode="after")
    def check_status_fields(self) -> "RecordingStatus":
        if self.steps is not None and self.status != "COMPLETED":
            raise ValueError("steps are only allowed when status is COMPLETED")
        if self.error is not None and self.status != "FAILED":
            raise ValueError("error is only allowed when status is FAILED")
        if self.steps:
            indexes = [step.index for step in self.steps]
            if any(later <= earlier for earlier, later in zip(indexes, indexes[1:])):
                raise ValueError("step indexes must be unique and ascending")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


def _validate(model: type[BaseModel], payload: Any, what: str) -> Any:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise MalformedResponseError(f"Malformed {what}", detail=str(exc)) from exc


def parse_init_response(payload: Any) -> InitResult:
    return _validate(InitResult, payload, "init response")


def parse_status_response(payload: Any) -> RecordingStatus:
    return _validate(RecordingStatus, payload, "status response")


def describe_status(status: str) -> str:
    return _STATUS_COPY.get(status, status)
