"""
Bidirectional streaming transport to the remote conversational model.

Provides an abstract transport and a Gemini Live implementation over
websockets.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import AsyncIterator

import websockets
from websockets.exceptions import ConnectionClosedError, WebSocketException

from jarvice_interview.config import get_settings
from jarvice_interview.voice.errors import TransportConnectError, TransportSendError
from jarvice_interview.voice.events import ServerEvent, SessionClosed, SessionError, parse_server_message
from jarvice_interview.voice.schemas import LiveConnectConfig, RealtimeInput

logger = logging.getLogger(__name__)


class LiveTransport(ABC):
    """Abstract base class for streaming model transports."""

    @abstractmethod
    async def connect(self, config: LiveConnectConfig) -> None:
        """
        Open the session and complete the setup handshake.

        Raises:
            TransportConnectError: If the endpoint is unreachable or rejects setup.
        """
        ...

    @abstractmethod
    async def send(self, message: RealtimeInput) -> None:
        """
        Send one outbound frame.

        Raises:
            TransportSendError: If the frame could not be delivered.
        """
        ...

    @abstractmethod
    def receive(self) -> AsyncIterator[ServerEvent]:
        """
        Iterate inbound events until the session ends.

        The iterator finishes with a SessionClosed or SessionError event.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the remote session handle."""
        ...


class GeminiLiveTransport(LiveTransport):
    """
    Gemini Live (BidiGenerateContent) transport.

    Sends a ``setup`` message on connect, waits for ``setupComplete`` and
    then streams ``realtimeInput`` frames while yielding parsed server
    events.
    """

    def __init__(
        self,
        api_key: str | None = None,
        endpoint: str | None = None,
        connect_timeout: float | None = None,
        send_timeout: float | None = None,
    ) -> None:
        settings = get_settings()
        self._api_key = api_key or settings.gemini_api_key
        self._endpoint = endpoint or settings.live_endpoint
        self._connect_timeout = connect_timeout or settings.connect_timeout_s
        self._send_timeout = send_timeout or settings.send_timeout_s
        self._ws = None

    @property
    def is_open(self) -> bool:
        return self._ws is not None

    def _url(self) -> str:
        return f"{self._endpoint}?key={self._api_key}"

    async def connect(self, config: LiveConnectConfig) -> None:
        if not self._api_key:
            raise TransportConnectError("Gemini API key not configured")
        if self._ws is not None:
            raise TransportConnectError("Transport is already connected")

        logger.info(f"[VOICE][TRANSPORT] connecting model={config.model} voice={config.voice_name}")
        ws = None
        try:
            ws = await asyncio.wait_for(websockets.connect(self._url(), max_size=None), self._connect_timeout)
            await ws.send(json.dumps(config.to_setup_message()))
            await asyncio.wait_for(self._await_setup_complete(ws), self._connect_timeout)
        except TransportConnectError:
            if ws is not None:
                await ws.close()
            raise
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            if ws is not None:
                await ws.close()
            raise TransportConnectError(f"Failed to connect to streaming endpoint: {e}") from e

        self._ws = ws
        logger.info("[VOICE][TRANSPORT] session opened")

    @staticmethod
    async def _await_setup_complete(ws) -> None:  # noqa: ANN001
        while True:
            raw = await ws.recv()
            try:
                msg = json.loads(raw)
            except (json.JSONDecodeError, UnicodeDecodeError):
                continue
            if "setupComplete" in msg:
                return
            if "error" in msg:
                raise TransportConnectError(f"Setup rejected: {msg['error']}")

    async def send(self, message: RealtimeInput) -> None:
        ws = self._ws
        if ws is None:
            raise TransportSendError("Transport is not connected")
        try:
            await asyncio.wait_for(ws.send(json.dumps(message.to_wire())), self._send_timeout)
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            raise TransportSendError(f"Error sending audio data: {e}") from e

    async def receive(self) -> AsyncIterator[ServerEvent]:
        ws = self._ws
        if ws is None:
            yield SessionClosed(reason="not connected")
            return
        try:
            async for raw in ws:
                for event in parse_server_message(raw):
                    yield event
        except ConnectionClosedError as e:
            yield SessionError(message=f"Connection lost: {e}")
            return
        yield SessionClosed(reason=ws.close_reason or "")

    async def close(self) -> None:
        ws = self._ws
        self._ws = None
        if ws is None:
            return
        await ws.close()
        logger.info("[VOICE][TRANSPORT] session closed")
