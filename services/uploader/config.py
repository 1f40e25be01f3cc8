from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def _load_repo_env() -> None:
    """Load the nearest .env starting from this file upward."""
    current = Path(__file__).resolve()
    for candidate in [current.parent, *current.parents]:
        env_file = candidate / ".env"
        if env_file.exists():
            load_dotenv(env_file)
            return


_load_repo_env()


def _require_env(name: str) -> str:
    value = os.getenv(name)
    if value is None or value == "":
        raise ValueError(f"Environment variable {name} is required")
    return value


def _env_int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer") from exc
    if value < minimum:
        raise ValueError(f"Environment variable {name} must be at least {minimum}")
    return value


@dataclass(frozen=True)
class UploaderConfig:
    api_base_url: str
    content_type: str
    poll_interval_ms: int
    max_poll_failures: int
    request_timeout_seconds: int
    upload_timeout_seconds: int
    chunk_size_bytes: int
    max_duration_sec: int
    redis_host: str
    redis_port: int
    redis_db: int
    redis_channel_prefix: str


def load_config() -> UploaderConfig:
    return UploaderConfig(
        api_base_url=_require_env("UPLOADER_API_BASE_URL").rstrip("/"),
        content_type=os.getenv("UPLOADER_CONTENT_TYPE", "video/mp4"),
        poll_interval_ms=_env_int("UPLOADER_POLL_INTERVAL_MS", 3000, minimum=1),
        max_poll_failures=_env_int("UPLOADER_MAX_POLL_FAILURES", 0),
        request_timeout_seconds=_env_int(
            "UPLOADER_REQUEST_TIMEOUT_SECONDS", 30, minimum=1
        ),
        upload_timeout_seconds=_env_int(
            "UPLOADER_UPLOAD_TIMEOUT_SECONDS", 3600, minimum=1
        ),
        chunk_size_bytes=_env_int("UPLOADER_CHUNK_SIZE_BYTES", 256 * 1024, minimum=1),
        max_duration_sec=_env_int("UPLOADER_MAX_DURATION_SEC", 600, minimum=1),
        redis_host=os.getenv("UPLOADER_REDIS_HOST", "localhost"),
        redis_port=_env_int("UPLOADER_REDIS_PORT", 6379),
        redis_db=_env_int("UPLOADER_REDIS_DB", 0),
        redis_channel_prefix=os.getenv("UPLOADER_REDIS_CHANNEL_PREFIX", "recording"),
    )
