from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from services.uploader.application.dto import InitRecordingRequest
from services.uploader.application.schemas import (
    InitResult,
    RecordingStatus,
    parse_init_response,
    parse_status_response,
)
from services.uploader.domain.errors import (
    MalformedResponseError,
    NetworkFailureError,
    ServerRejectedError,
)

logger = logging.getLogger(__name__)


class HttpRecordingApi:
    """JSON client for the recordings backend."""

    def __init__(
        self,
        *,
        base_url: str,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    async def __aenter__(self) -> "HttpRecordingApi":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def init_recording(self, request: InitRecordingRequest) -> InitResult:
        response = await self._send(
            "POST", "/api/recordings/init", json=request.to_payload()
        )
        return parse_init_response(_json_body(response))

    async def mark_upload_complete(self, recording_id: str) -> None:
        await self._send("POST", f"/api/recordings/{quote(recording_id, safe='')}/complete")

    async def fetch_recording_status(self, recording_id: str) -> RecordingStatus:
        response = await self._send("GET", f"/api/recordings/{quote(recording_id, safe='')}")
        return parse_status_response(_json_body(response))

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self._base_url}{path}"
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            raise NetworkFailureError(
                f"Network error calling {method} {path}: {exc.__class__.__name__} {exc}".rstrip()
            ) from exc
        if not response.is_success:
            logger.debug("%s %s -> %s", method, path, response.status_code)
            raise ServerRejectedError(
                response.status_code,
                response.text,
                prefix=f"Request failed ({response.status_code})",
            )
        return response


def _json_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise MalformedResponseError("Response is not valid JSON", detail=str(exc)) from exc
