import json

import pytest
from websockets.exceptions import ConnectionClosedError

from jarvice_interview.voice import transport as transport_module
from jarvice_interview.voice.errors import TransportConnectError, TransportSendError
from jarvice_interview.voice.events import InputTranscript, SessionClosed, SessionError, TurnComplete
from jarvice_interview.voice.schemas import LiveConnectConfig, MediaBlob, RealtimeInput
from jarvice_interview.voice.transport import GeminiLiveTransport


class FakeWebSocket:
    def __init__(self, replies=(), inbound=(), fail_with: Exception | None = None) -> None:
        self._replies = [json.dumps(r) for r in replies]
        self._inbound = [json.dumps(m) for m in inbound]
        self._fail_with = fail_with
        self.sent: list[dict] = []
        self.closed = False
        self.close_reason = "done"

    async def send(self, text: str) -> None:
        self.sent.append(json.loads(text))

    async def recv(self) -> str:
        return self._replies.pop(0)

    def __aiter__(self):
        return self._iter()

    async def _iter(self):
        for raw in self._inbound:
            yield raw
        if self._fail_with is not None:
            raise self._fail_with

    async def close(self) -> None:
        self.closed = True


def _patch_connect(monkeypatch, ws: FakeWebSocket) -> dict:
    seen = {}

    async def fake_connect(url, **kwargs):
        seen["url"] = url
        seen["kwargs"] = kwargs
        return ws

    monkeypatch.setattr(transport_module.websockets, "connect", fake_connect)
    return seen


def _config() -> LiveConnectConfig:
    return LiveConnectConfig(model="gemini-live-test", voice_name="Zephyr", system_instruction="Be kind.")


class TestGeminiLiveTransport:
    @pytest.mark.asyncio
    async def test_connect_sends_setup_and_waits_for_ack(self, monkeypatch):
        ws = FakeWebSocket(replies=[{"usageMetadata": {}}, {"setupComplete": {}}])
        seen = _patch_connect(monkeypatch, ws)
        t = GeminiLiveTransport(api_key="k", endpoint="wss://live.test/ws", connect_timeout=1, send_timeout=1)

        await t.connect(_config())

        assert seen["url"] == "wss://live.test/ws?key=k"
        assert ws.sent[0]["setup"]["model"] == "models/gemini-live-test"
        assert t.is_open

    @pytest.mark.asyncio
    async def test_setup_rejection_closes_socket(self, monkeypatch):
        ws = FakeWebSocket(replies=[{"error": {"message": "bad model"}}])
        _patch_connect(monkeypatch, ws)
        t = GeminiLiveTransport(api_key="k", endpoint="wss://live.test/ws", connect_timeout=1, send_timeout=1)

        with pytest.raises(TransportConnectError, match="Setup rejected"):
            await t.connect(_config())

        assert ws.closed
        assert not t.is_open

    @pytest.mark.asyncio
    async def test_unreachable_endpoint(self, monkeypatch):
        async def refuse(url, **kwargs):
            raise OSError("connection refused")

        monkeypatch.setattr(transport_module.websockets, "connect", refuse)
        t = GeminiLiveTransport(api_key="k", endpoint="wss://live.test/ws", connect_timeout=1, send_timeout=1)

        with pytest.raises(TransportConnectError, match="connection refused"):
            await t.connect(_config())

    @pytest.mark.asyncio
    async def test_send_and_receive(self, monkeypatch):
        ws = FakeWebSocket(
            replies=[{"setupComplete": {}}],
            inbound=[
                {"serverContent": {"inputTranscription": {"text": "Hi"}}},
                {"serverContent": {"turnComplete": True}},
            ],
        )
        _patch_connect(monkeypatch, ws)
        t = GeminiLiveTransport(api_key="k", endpoint="wss://live.test/ws", connect_timeout=1, send_timeout=1)
        await t.connect(_config())

        await t.send(RealtimeInput(media=MediaBlob(data="AAA=", mime_type="audio/pcm;rate=16000")))
        events = [e async for e in t.receive()]

        assert ws.sent[1] == {"realtimeInput": {"audio": {"data": "AAA=", "mimeType": "audio/pcm;rate=16000"}}}
        assert events == [InputTranscript(text="Hi"), TurnComplete(), SessionClosed(reason="done")]

    @pytest.mark.asyncio
    async def test_connection_loss_is_reported_as_error(self, monkeypatch):
        ws = FakeWebSocket(replies=[{"setupComplete": {}}], fail_with=ConnectionClosedError(None, None))
        _patch_connect(monkeypatch, ws)
        t = GeminiLiveTransport(api_key="k", endpoint="wss://live.test/ws", connect_timeout=1, send_timeout=1)
        await t.connect(_config())

        events = [e async for e in t.receive()]

        assert len(events) == 1
        assert isinstance(events[0], SessionError)

    @pytest.mark.asyncio
    async def test_send_before_connect_fails(self):
        t = GeminiLiveTransport(api_key="k", endpoint="wss://live.test/ws", connect_timeout=1, send_timeout=1)

        with pytest.raises(TransportSendError):
            await t.send(RealtimeInput(media=MediaBlob(data="", mime_type="audio/pcm;rate=16000")))

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, monkeypatch):
        ws = FakeWebSocket(replies=[{"setupComplete": {}}])
        _patch_connect(monkeypatch, ws)
        t = GeminiLiveTransport(api_key="k", endpoint="wss://live.test/ws", connect_timeout=1, send_timeout=1)
        await t.connect(_config())

        await t.close()
        await t.close()

        assert ws.closed
        assert not t.is_open
