"""Upload a captured video and follow its processing from the command line."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from services.uploader.application.dto import parse_step_markers
from services.uploader.application.poll_status import StatusPoller
from services.uploader.application.schemas import RecordingStatus, describe_status
from services.uploader.application.track_recording import TrackRecordingUseCase
from services.uploader.application.upload_recording import UploadRecordingUseCase
from services.uploader.config import UploaderConfig, load_config
from services.uploader.domain.cancellation import CancellationToken
from services.uploader.domain.errors import InvalidRequestError
from services.uploader.domain.recording import LifecycleState, RecordingSession
from services.uploader.infrastructure.files import LocalFileInspector
from services.uploader.infrastructure.http_api import HttpRecordingApi
from services.uploader.infrastructure.http_upload import HttpUploadTransport
from services.uploader.infrastructure.status_sinks import (
    LoggingStatusSink,
    RedisStatusSink,
)

_EXIT_CODES = {
    LifecycleState.COMPLETED: 0,
    LifecycleState.POLLING: 0,
    LifecycleState.CANCELLED: 130,
}


def exit_code_for(state: LifecycleState) -> int:
    return _EXIT_CODES.get(state, 1)


def _print_progress(fraction: float) -> None:
    print(f"\rUploading {round(fraction * 100)}%", end="", flush=True)


def _print_state(session: RecordingSession) -> None:
    if session.lifecycle_state is LifecycleState.NOTIFYING:
        print()
    print(f"[{session.lifecycle_state.value}] {session.recording_id or 'Pending'}")


def _print_status(status: RecordingStatus) -> None:
    print(f"Status: {describe_status(status.status)}")


def _print_steps(status: RecordingStatus) -> None:
    if status.status == "COMPLETED" and status.steps is None:
        print("Completed, but no steps were returned.")
        return
    for step in status.steps or []:
        print(f"Step {step.index + 1} ({step.startSec:g}s - {step.endSec:g}s): {step.title}")
        print(f"  {step.description}")
        if step.evidence and step.evidence.transcriptSnippet:
            print(f"  \"{step.evidence.transcriptSnippet}\"")
        if step.evidence and step.evidence.keyframeUrl:
            print(f"  keyframe: {step.evidence.keyframeUrl}")


def _install_cancel_handler(token: CancellationToken) -> None:
    try:
        asyncio.get_running_loop().add_signal_handler(signal.SIGINT, token.cancel)
    except (NotImplementedError, RuntimeError):
        # no loop signal handlers on this platform; Ctrl-C aborts instead
        pass


async def upload_and_follow(args: argparse.Namespace, cfg: UploaderConfig) -> int:
    try:
        session = RecordingSession.from_capture(
            args.file,
            duration_sec=args.duration,
            step_markers_sec=parse_step_markers(args.markers),
        )
    except InvalidRequestError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    token = CancellationToken()
    _install_cancel_handler(token)

    api = HttpRecordingApi(
        base_url=cfg.api_base_url, timeout_seconds=cfg.request_timeout_seconds
    )
    transport = HttpUploadTransport(
        timeout_seconds=cfg.upload_timeout_seconds, chunk_size=cfg.chunk_size_bytes
    )
    try:
        use_case = UploadRecordingUseCase(
            api=api,
            transport=transport,
            file_inspector=LocalFileInspector(),
            content_type=cfg.content_type,
            max_duration_sec=cfg.max_duration_sec,
        )
        outcome = await use_case.run(
            session,
            cancel_token=token,
            on_progress=_print_progress,
            on_state_change=_print_state,
        )
        if not outcome.handed_off:
            if outcome.session.last_error is not None:
                print(f"Error: {outcome.session.last_error.message}", file=sys.stderr)
            return exit_code_for(outcome.state)
        if args.no_follow:
            return exit_code_for(outcome.state)

        sinks = [LoggingStatusSink()]
        if args.publish_redis:
            sinks.append(
                RedisStatusSink(
                    host=cfg.redis_host,
                    port=cfg.redis_port,
                    db=cfg.redis_db,
                    channel_prefix=cfg.redis_channel_prefix,
                )
            )
        tracker = TrackRecordingUseCase(
            poller=StatusPoller(
                api=api,
                interval_ms=cfg.poll_interval_ms,
                max_consecutive_failures=cfg.max_poll_failures,
            ),
            sinks=sinks,
        )
        tracked = await tracker.follow(
            outcome.session, on_update=_print_status, cancel_token=token
        )
        if tracked.status is not None:
            _print_steps(tracked.status)
        if tracked.session.last_error is not None:
            print(f"Error: {tracked.session.last_error.message}", file=sys.stderr)
        return exit_code_for(tracked.session.lifecycle_state)
    finally:
        await api.aclose()
        await transport.aclose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("file", help="path or file:// URI of the captured video")
    parser.add_argument("--duration", type=float, default=None, help="capture length in seconds")
    parser.add_argument(
        "--markers", default=None, help="JSON array of step marker seconds, e.g. '[3, 12]'"
    )
    parser.add_argument(
        "--no-follow", action="store_true", help="stop once the backend acknowledges the upload"
    )
    parser.add_argument(
        "--publish-redis", action="store_true", help="also publish status updates to Redis"
    )
    parser.add_argument("--verbose", "-v", action="store_true")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(upload_and_follow(args, load_config()))


if __name__ == "__main__":
    sys.exit(main())
