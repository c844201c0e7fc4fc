"""HTTP client for the backup endpoint with streamed progress."""

import asyncio
import codecs
import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, Optional

import httpx

from .._utils import logger
from .codec import Frame, FrameDecoder

EVENT_STREAM = "text/event-stream"
DEFAULT_TIMEOUT = 20 * 60  # seconds

Callback = Callable[[Dict[str, Any]], None]


class BackupFailedError(Exception):
    """The server reported a failure, or the exchange could not complete."""

    def __init__(self, message: str, payload: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.payload = payload or {"message": message}


class ClientTimeoutError(BackupFailedError):
    """The client-side deadline passed before a terminal event arrived."""


def _noop(_payload: Dict[str, Any]) -> None:
    return None


class StreamingClient:
    """Start a backup and follow its progress.

    By default the request asks for ``text/event-stream`` and decodes frames
    as they arrive. With ``stream=False`` (or when the server answers with a
    plain JSON body) it does a single request/response exchange instead.

    Args:
        api_endpoint: Full URL of the backup endpoint
        timeout: Overall client deadline in seconds
        on_progress: Called with each progress payload
        on_complete: Called once with the result payload
        on_error: Called once with the error payload
        stream: Prefer the streaming exchange
        http_client: Optional pre-configured ``httpx.AsyncClient``
        headers: Extra request headers (API keys, session cookies)
    """

    def __init__(
        self,
        api_endpoint: str = "http://localhost:8000/api/v1/database-backup",
        timeout: float = DEFAULT_TIMEOUT,
        on_progress: Optional[Callback] = None,
        on_complete: Optional[Callback] = None,
        on_error: Optional[Callback] = None,
        stream: bool = True,
        http_client: Optional[httpx.AsyncClient] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.api_endpoint = api_endpoint
        self.timeout = timeout
        self.on_progress = on_progress or _noop
        self.on_complete = on_complete or _noop
        self.on_error = on_error or _noop
        self.stream = stream
        self.http_client = http_client
        self.headers = headers or {}

    async def start_backup(
        self, backup_data: Dict[str, Any], stream: Optional[bool] = None
    ) -> Dict[str, Any]:
        """Run a backup and return the completion payload.

        Raises:
            BackupFailedError: The backup failed or the exchange broke down
            ClientTimeoutError: The client deadline was exceeded
        """
        use_stream = self.stream if stream is None else stream
        if use_stream:
            operation = self._start_streaming_backup(backup_data)
        else:
            operation = self._start_standard_backup(backup_data)

        try:
            return await asyncio.wait_for(operation, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            message = f"Backup operation timed out after {self.timeout / 60:g} minutes"
            self.on_error({"message": message})
            raise ClientTimeoutError(message) from e
        except httpx.HTTPError as e:
            self.on_error({"message": str(e)})
            raise BackupFailedError(str(e)) from e

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self.http_client is not None:
            yield self.http_client
            return
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(None, connect=30.0), headers=self.headers
        ) as client:
            yield client

    async def _start_streaming_backup(self, backup_data: Dict[str, Any]) -> Dict[str, Any]:
        async with self._client() as client:
            async with client.stream(
                "POST",
                self.api_endpoint,
                params={"stream": "true"},
                json=backup_data,
                headers={"Accept": EVENT_STREAM},
            ) as response:
                if response.is_error:
                    raise self._server_error(response)

                if not response.headers.get("content-type", "").startswith(EVENT_STREAM):
                    logger.debug("Server answered without streaming, reading JSON body")
                    await response.aread()
                    return self._handle_standard_response(response)

                return await self._read_events(response)

    async def _read_events(self, response: httpx.Response) -> Dict[str, Any]:
        decoder = FrameDecoder()
        text_decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

        async for chunk in response.aiter_bytes():
            for frame in decoder.feed(text_decoder.decode(chunk)):
                done, result = self._dispatch(frame)
                if done:
                    return result

        trailing = decoder.feed(text_decoder.decode(b"", final=True))
        last = decoder.flush()
        if last is not None:
            trailing.append(last)
        for frame in trailing:
            done, result = self._dispatch(frame)
            if done:
                return result

        message = "Stream ended before a terminal event"
        self.on_error({"message": message})
        raise BackupFailedError(message)

    def _dispatch(self, frame: Frame):
        """Handle one frame; returns (done, result)."""
        try:
            payload = frame.json()
        except json.JSONDecodeError as e:
            logger.debug(f"Failed to parse {frame.event} data: {e}")
            return False, None

        if frame.event == "progress":
            self.on_progress(payload)
            return False, None
        if frame.event == "complete":
            self.on_complete(payload)
            return True, payload
        if frame.event == "error":
            if not isinstance(payload, dict):
                payload = {"message": str(payload)}
            self.on_error(payload)
            raise BackupFailedError(payload.get("message") or "Backup failed", payload)

        logger.debug(f"Ignoring unknown event type: {frame.event}")
        return False, None

    async def _start_standard_backup(self, backup_data: Dict[str, Any]) -> Dict[str, Any]:
        async with self._client() as client:
            response = await client.post(self.api_endpoint, json=backup_data)
        return self._handle_standard_response(response)

    def _handle_standard_response(self, response: httpx.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and body.get("success") is True:
            data = body.get("data") or {}
            self.on_complete(data)
            return data

        error = body.get("error") if isinstance(body, dict) else None
        if not isinstance(error, dict) or not error.get("message"):
            if response.is_error:
                raise self._server_error(response)
            error = {"message": "Backup failed"}

        self.on_error(error)
        raise BackupFailedError(error["message"], error)

    def _server_error(self, response: httpx.Response) -> BackupFailedError:
        message = f"Server error: {response.status_code} {response.reason_phrase}"
        self.on_error({"message": message})
        return BackupFailedError(message)
