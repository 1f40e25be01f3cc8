import pytest

from services.uploader.application.dto import (
    InitRecordingRequest,
    file_name_for,
    parse_step_markers,
)
from services.uploader.domain.errors import InvalidRequestError
from services.uploader.domain.recording import FileInfo, RecordingSession


def test_payload_omits_missing_optional_fields():
    session = RecordingSession.from_capture("/videos/clip.mp4")

    request = InitRecordingRequest.for_session(
        session, FileInfo(exists=True, size_bytes=1024), content_type="video/mp4"
    )

    assert request.to_payload() == {
        "fileName": "clip.mp4",
        "contentType": "video/mp4",
        "sizeBytes": 1024,
    }


def test_payload_includes_duration_and_markers():
    session = RecordingSession.from_capture(
        "file:///data/user/0/cache/Camera/my%20clip.mov",
        duration_sec=30.4,
        step_markers_sec=[2, 9],
    )

    payload = InitRecordingRequest.for_session(
        session, FileInfo(exists=True, size_bytes=5), content_type="video/quicktime"
    ).to_payload()

    assert payload["fileName"] == "my clip.mov"
    assert payload["durationSec"] == 30
    assert payload["stepMarkersSec"] == [2, 9]


@pytest.mark.parametrize(
    "info", [FileInfo(exists=False), FileInfo(exists=True, size_bytes=0)]
)
def test_unreadable_file_is_a_validation_error(info):
    session = RecordingSession.from_capture("/videos/clip.mp4")

    with pytest.raises(InvalidRequestError, match="Could not read video file"):
        InitRecordingRequest.for_session(session, info, content_type="video/mp4")


def test_duration_over_limit_is_rejected():
    session = RecordingSession.from_capture("/videos/clip.mp4", duration_sec=900)

    with pytest.raises(InvalidRequestError):
        InitRecordingRequest.for_session(
            session,
            FileInfo(exists=True, size_bytes=10),
            content_type="video/mp4",
            max_duration_sec=600,
        )


@pytest.mark.parametrize(
    "ref,expected",
    [
        ("/videos/clip.mp4", "clip.mp4"),
        ("file:///cache/abc.mp4", "abc.mp4"),
        ("C:\\videos\\clip.webm", "clip.webm"),
        ("file:///", "recording.mp4"),
    ],
)
def test_file_name_for(ref, expected):
    assert file_name_for(ref) == expected


@pytest.mark.parametrize(
    "raw,expected",
    [
        (None, []),
        ("", []),
        ("[1, 5, 12]", [1, 5, 12]),
        ('[1, "7", "x", null, 3.9]', [1, 7, 3]),
        (["[4]", "[9]"], [4]),
        ("not json", []),
        ('{"a": 1}', []),
    ],
)
def test_parse_step_markers(raw, expected):
    assert parse_step_markers(raw) == expected
