from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import unquote, urlparse

from services.uploader.domain.errors import InvalidRequestError
from services.uploader.domain.recording import (
    FileInfo,
    LifecycleState,
    RecordingSession,
)

logger = logging.getLogger(__name__)

DEFAULT_FILE_NAME = "recording.mp4"


@dataclass(frozen=True)
class InitRecordingRequest:
    fileName: str
    contentType: str
    sizeBytes: int
    durationSec: Optional[int] = None
    stepMarkersSec: List[int] = field(default_factory=list)

    @classmethod
    def for_session(
        cls,
        session: RecordingSession,
        file_info: FileInfo,
        *,
        content_type: str,
        max_duration_sec: int | None = None,
    ) -> "InitRecordingRequest":
        if not file_info.exists or file_info.size_bytes <= 0:
            raise InvalidRequestError("Could not read video file.")
        if (
            max_duration_sec is not None
            and session.duration_sec is not None
            and session.duration_sec > max_duration_sec
        ):
            raise InvalidRequestError(
                f"Recording is {session.duration_sec}s long; the limit is {max_duration_sec}s."
            )
        return cls(
            fileName=file_name_for(session.local_file_ref),
            contentType=content_type,
            sizeBytes=file_info.size_bytes,
            durationSec=session.duration_sec or None,
            stepMarkersSec=list(session.step_markers_sec),
        )

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "fileName": self.fileName,
            "contentType": self.contentType,
            "sizeBytes": self.sizeBytes,
        }
        if self.durationSec:
            payload["durationSec"] = self.durationSec
        if self.stepMarkersSec:
            payload["stepMarkersSec"] = list(self.stepMarkersSec)
        return payload


@dataclass(frozen=True)
class UploadOutcome:
    session: RecordingSession

    @property
    def state(self) -> LifecycleState:
        return self.session.lifecycle_state

    @property
    def recording_id(self) -> Optional[str]:
        return self.session.recording_id

    @property
    def handed_off(self) -> bool:
        """True when the backend acknowledged the upload and polling may begin."""
        return self.session.lifecycle_state is LifecycleState.POLLING


def file_name_for(file_ref: str) -> str:
    path = unquote(urlparse(file_ref).path) if "://" in file_ref else file_ref
    name = PurePosixPath(path.replace("\\", "/")).name
    return name or DEFAULT_FILE_NAME


def parse_step_markers(raw: str | Sequence[str] | None) -> list[int]:
    """Lenient parse of a JSON array of marker seconds."""
    if not raw:
        return []
    value = raw if isinstance(raw, str) else raw[0]
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError) as exc:
        logger.warning("Failed to parse markers %r: %s", value, exc)
        return []
    if not isinstance(parsed, list):
        return []
    markers: list[int] = []
    for item in parsed:
        if isinstance(item, bool):
            continue
        try:
            number = float(item)
        except (TypeError, ValueError):
            continue
        if number != number:  # NaN
            continue
        markers.append(int(number))
    return markers
