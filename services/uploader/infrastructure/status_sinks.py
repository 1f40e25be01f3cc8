from __future__ import annotations

import logging

from redis import Redis
from redis.exceptions import RedisError

from services.uploader.application.interfaces import StatusSink
from services.uploader.application.schemas import RecordingStatus

LOGGER = logging.getLogger(__name__)


class LoggingStatusSink(StatusSink):
    def publish(self, status: RecordingStatus) -> None:
        LOGGER.info(
            {
                "event": "recording_status",
                "recording_id": status.recordingId,
                "status": status.status,
                "steps": len(status.steps or []),
            }
        )


class RedisStatusSink(StatusSink):
    """Publishes each status update for presentation listeners."""

    def __init__(
        self,
        *,
        host: str,
        port: int,
        db: int,
        channel_prefix: str,
        client: Redis | None = None,
    ) -> None:
        self._redis = client or Redis(host=host, port=port, db=db, decode_responses=False)
        self._channel_prefix = channel_prefix

    def channel_for(self, recording_id: str) -> str:
        return f"{self._channel_prefix}:{recording_id}:status"

    def publish(self, status: RecordingStatus) -> None:
        try:
            self._redis.publish(
                self.channel_for(status.recordingId),
                status.model_dump_json(exclude_none=True),
            )
        except RedisError as exc:
            LOGGER.error(
                "Failed to publish status %s for %s: %s",
                status.status,
                status.recordingId,
                exc,
            )
