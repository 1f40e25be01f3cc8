from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import AsyncIterator, Mapping

import httpx

from services.uploader.application.interfaces import ProgressCallback
from services.uploader.domain.cancellation import CancellationToken
from services.uploader.domain.errors import (
    InvalidRequestError,
    NetworkFailureError,
    OperationCancelledError,
    ServerRejectedError,
)
from services.uploader.infrastructure.files import local_path

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 256 * 1024


class HttpUploadTransport:
    """Single streamed PUT of a local file to a presigned destination."""

    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 3600.0,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._chunk_size = chunk_size

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def transfer(
        self,
        *,
        file_ref: str,
        destination_url: str,
        headers: Mapping[str, str] | None,
        content_type: str,
        on_progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        token = cancel_token or CancellationToken()
        path = local_path(file_ref)
        try:
            total = path.stat().st_size
        except OSError as exc:
            raise InvalidRequestError(f"Could not read video file: {exc}") from exc

        request_headers = httpx.Headers(dict(headers or {}))
        request_headers["Content-Type"] = content_type
        if total:
            request_headers["Content-Length"] = str(total)

        token.raise_if_cancelled()
        logger.info("Uploading %s (%d bytes)", path.name, total)
        try:
            response = await self._client.put(
                destination_url,
                content=self._stream(path, total, on_progress, token),
                headers=request_headers,
            )
        except httpx.TransportError as exc:
            if token.cancelled:
                raise OperationCancelledError() from exc
            raise NetworkFailureError("Network error during upload") from exc

        if not response.is_success:
            raise ServerRejectedError(response.status_code, response.text)
        logger.info("Upload of %s accepted (%d)", path.name, response.status_code)

    async def _stream(
        self,
        path: Path,
        total: int,
        on_progress: ProgressCallback | None,
        token: CancellationToken,
    ) -> AsyncIterator[bytes]:
        sent = 0
        with path.open("rb") as file_obj:
            while True:
                token.raise_if_cancelled()
                chunk = await asyncio.to_thread(file_obj.read, self._chunk_size)
                if not chunk:
                    break
                yield chunk
                sent += len(chunk)
                # unknown totals report nothing
                if total and on_progress is not None:
                    on_progress(min(sent / total, 1.0))
