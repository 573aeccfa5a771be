"""Live voice interview session (coordinator).

This module owns one streaming conversation end to end:
mic -> encoder -> transport ⇄ remote model ⇄ transport -> events ->
{transcript, playback}

Every producer (microphone thread, transport receiver, playback completion)
posts commands onto one asyncio queue; a single consumer task applies them
in order, so session state is only ever touched from that task or from the
start/end entry points.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Protocol

from jarvice_interview.config import Settings, get_settings
from jarvice_interview.voice.encoder import AudioEncoder, AudioFrame
from jarvice_interview.voice.errors import (
    DecodeError,
    PermissionDenied,
    PersistenceError,
    RemoteSessionError,
    SessionStateError,
    TransportConnectError,
    TransportSendError,
    VoiceInterviewError,
)
from jarvice_interview.voice.events import (
    AudioPayload,
    InputTranscript,
    OutputTranscript,
    SessionClosed,
    SessionError,
    TurnComplete,
)
from jarvice_interview.voice.playback import OutputClock, PlaybackScheduler, PlaybackUnit
from jarvice_interview.voice.recorder import SessionRecorder
from jarvice_interview.voice.schemas import (
    InterviewMetrics,
    LiveConnectConfig,
    RealtimeInput,
    SaveResult,
    SessionState,
    TranscriptEntry,
    build_system_instruction,
)
from jarvice_interview.voice.transcript import TranscriptAssembler
from jarvice_interview.voice.transport import LiveTransport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiveSessionConfig:
    model: str = "gemini-2.5-flash-native-audio-preview-09-2025"
    voice_name: str = "Zephyr"
    role_type: str | None = None
    input_sample_rate: int = 16000
    output_sample_rate: int = 24000
    output_channels: int = 1
    close_timeout_s: float = 5.0
    save_delay_s: float = 1.0

    @classmethod
    def from_settings(cls, settings: Settings | None = None, *, role_type: str | None = None) -> "LiveSessionConfig":
        settings = settings or get_settings()
        return cls(
            model=settings.live_model,
            voice_name=settings.live_voice,
            role_type=role_type,
            input_sample_rate=settings.input_sample_rate,
            output_sample_rate=settings.output_sample_rate,
            close_timeout_s=settings.close_timeout_s,
            save_delay_s=settings.save_delay_s,
        )


class MicrophoneProtocol(Protocol):
    async def start(self, on_frame: Callable[[AudioFrame], None]) -> None: ...

    async def stop(self) -> None: ...


class AudioOutputProtocol(OutputClock, Protocol):
    async def open(self) -> None: ...

    async def close(self) -> None: ...


@dataclass(frozen=True)
class _FrameCaptured:
    frame: AudioFrame


@dataclass(frozen=True)
class _UnitEnded:
    unit: PlaybackUnit


def new_session_id() -> str:
    return f"session_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


def compute_metrics(
    start_time: datetime | None,
    end_time: datetime | None,
    transcript: TranscriptAssembler,
) -> InterviewMetrics:
    duration = (end_time - start_time).total_seconds() if start_time and end_time else 0.0
    return InterviewMetrics(
        start_time=start_time,
        end_time=end_time,
        total_duration=duration,
        questions_asked=transcript.questions_asked,
        answers_given=transcript.answers_given,
    )


class LiveInterviewSession:
    def __init__(
        self,
        *,
        transport_factory: Callable[[], LiveTransport],
        microphone_factory: Callable[[], MicrophoneProtocol],
        output_factory: Callable[[], AudioOutputProtocol],
        recorder: SessionRecorder | None = None,
        config: LiveSessionConfig | None = None,
        on_state_change: Callable[[SessionState], None] | None = None,
        on_transcript: Callable[[TranscriptEntry], None] | None = None,
        on_notify: Callable[[str, str], None] | None = None,
    ) -> None:
        self._transport_factory = transport_factory
        self._microphone_factory = microphone_factory
        self._output_factory = output_factory
        self._recorder = recorder
        self._config = config or LiveSessionConfig()
        self._on_state_change = on_state_change
        self._on_transcript = on_transcript
        self._on_notify = on_notify

        self._encoder = AudioEncoder(self._config.input_sample_rate)
        self._transcript = TranscriptAssembler()

        self._state = SessionState.IDLE
        self._session_id: str | None = None
        self._start_time: datetime | None = None
        self._end_time: datetime | None = None
        self._error: str | None = None
        self._metrics: InterviewMetrics | None = None

        # Owned resources; all None outside CONNECTING/ACTIVE.
        self._loop: asyncio.AbstractEventLoop | None = None
        self._transport: LiveTransport | None = None
        self._microphone: MicrophoneProtocol | None = None
        self._output: AudioOutputProtocol | None = None
        self._scheduler: PlaybackScheduler | None = None
        self._queue: asyncio.Queue | None = None
        self._consumer_task: asyncio.Task | None = None
        self._receiver_task: asyncio.Task | None = None
        self._send_tasks: set[asyncio.Task] = set()

        self._persist_task: asyncio.Task | None = None

    @property
    def config(self) -> LiveSessionConfig:
        return self._config

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def transcript(self) -> tuple[TranscriptEntry, ...]:
        return self._transcript.entries

    @property
    def questions_asked(self) -> int:
        return self._transcript.questions_asked

    @property
    def answers_given(self) -> int:
        return self._transcript.answers_given

    @property
    def scheduler(self) -> PlaybackScheduler | None:
        return self._scheduler

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def metrics(self) -> InterviewMetrics | None:
        return self._metrics

    @property
    def start_time(self) -> datetime | None:
        return self._start_time

    @property
    def end_time(self) -> datetime | None:
        return self._end_time

    @property
    def has_resources(self) -> bool:
        return any(
            r is not None
            for r in (
                self._transport,
                self._microphone,
                self._output,
                self._scheduler,
                self._queue,
                self._consumer_task,
                self._receiver_task,
            )
        ) or bool(self._send_tasks)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> str:
        """
        Connect to the remote model and begin streaming.

        Returns:
            The new session id.

        Raises:
            SessionStateError: If a session is already connecting or active.
            TransportConnectError: If the connect handshake fails.
            PermissionDenied: If the microphone cannot be acquired.
        """
        if self._state in (SessionState.CONNECTING, SessionState.ACTIVE):
            raise SessionStateError(f"Cannot start: session is {self._state.value}")

        # Nothing from a previous run survives a restart.
        await self._cleanup()
        self._transcript.reset()
        self._session_id = new_session_id()
        self._start_time = datetime.now(timezone.utc)
        self._end_time = None
        self._error = None
        self._metrics = None
        self._loop = asyncio.get_running_loop()
        self._set_state(SessionState.CONNECTING)
        logger.info(f"[VOICE][SESSION] starting voice interview session={self._session_id}")

        transport = self._transport_factory()
        self._transport = transport
        connect_config = LiveConnectConfig(
            model=self._config.model,
            voice_name=self._config.voice_name,
            system_instruction=build_system_instruction(self._config.role_type),
        )
        try:
            await self._open_resources(transport, connect_config)
        except asyncio.CancelledError:
            await self._fail(VoiceInterviewError("Interview start was cancelled"))
            raise

        self._consumer_task = asyncio.create_task(self._consume(self._queue))
        self._receiver_task = asyncio.create_task(self._receive(transport))
        self._set_state(SessionState.ACTIVE)
        logger.info(f"[VOICE][SESSION] interview started session={self._session_id}")
        return self._session_id

    async def _open_resources(self, transport: LiveTransport, connect_config: LiveConnectConfig) -> None:
        try:
            await transport.connect(connect_config)
        except TransportConnectError as e:
            await self._fail(e)
            raise
        except Exception as e:
            error = TransportConnectError(f"Failed to start interview: {e}")
            await self._fail(error)
            raise error from e

        self._queue = asyncio.Queue()
        try:
            output = self._output_factory()
            self._output = output
            await output.open()
            self._scheduler = PlaybackScheduler(
                output,
                sample_rate=self._config.output_sample_rate,
                channels=self._config.output_channels,
                on_ended=self._post_unit_ended,
            )
            microphone = self._microphone_factory()
            self._microphone = microphone
            await microphone.start(self._post_frame)
        except PermissionDenied as e:
            await self._fail(e)
            raise
        except Exception as e:
            error = PermissionDenied(f"Failed to set up audio: {e}")
            await self._fail(error)
            raise error from e

    async def end(self) -> None:
        """End an active session gracefully. No-op in any other state."""
        if self._state is not SessionState.ACTIVE:
            logger.debug(f"[VOICE][SESSION] end ignored in state={self._state.value}")
            return
        logger.info("[VOICE][SESSION] ending interview")
        await self._finish(reason="user ended")

    async def wait_for_persistence(self) -> SaveResult | None:
        """Wait for the pending save of the last ended session, if any."""
        task = self._persist_task
        if task is None:
            return None
        return await task

    async def wait_closed(self) -> None:
        """Wait until the session leaves CONNECTING/ACTIVE."""
        while self._state in (SessionState.CONNECTING, SessionState.ACTIVE):
            consumer = self._consumer_task
            if consumer is None:
                await asyncio.sleep(0.05)
                continue
            await asyncio.wait({consumer})

    # ------------------------------------------------------------------
    # Producers
    # ------------------------------------------------------------------

    def _post_frame(self, frame: AudioFrame) -> None:
        # Runs on the audio thread.
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._enqueue, _FrameCaptured(frame))

    def _post_unit_ended(self, unit: PlaybackUnit) -> None:
        self._enqueue(_UnitEnded(unit))

    def _enqueue(self, command: object) -> None:
        queue = self._queue
        if queue is None:
            return
        queue.put_nowait(command)

    async def _receive(self, transport: LiveTransport) -> None:
        try:
            async for event in transport.receive():
                self._enqueue(event)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"[VOICE][SESSION] receive loop failed: {e}")
            self._enqueue(SessionError(message=str(e)))

    # ------------------------------------------------------------------
    # Consumer
    # ------------------------------------------------------------------

    async def _consume(self, queue: asyncio.Queue) -> None:
        while self._queue is queue:
            command = await queue.get()
            if self._queue is not queue:
                break
            try:
                await self._apply(command)
            except VoiceInterviewError as e:
                logger.error(f"[VOICE][SESSION] error processing event: {e}")
            except Exception as e:
                logger.exception(f"[VOICE][SESSION] unexpected error processing {type(command).__name__}")
                await self._fail(VoiceInterviewError(f"Unexpected error: {e}"))

    async def _apply(self, command: object) -> None:
        if isinstance(command, _FrameCaptured):
            self._send_frame(command.frame)
        elif isinstance(command, _UnitEnded):
            if self._scheduler is not None:
                self._scheduler.on_unit_ended(command.unit)
        elif isinstance(command, InputTranscript):
            self._transcript.append_input(command.text)
        elif isinstance(command, OutputTranscript):
            self._transcript.append_output(command.text)
        elif isinstance(command, TurnComplete):
            for entry in self._transcript.complete_turn():
                if self._on_transcript is not None:
                    self._on_transcript(entry)
        elif isinstance(command, AudioPayload):
            self._play(command.data)
        elif isinstance(command, SessionError):
            logger.error(f"[VOICE][SESSION] session error: {command.message}")
            await self._fail(RemoteSessionError(f"Session error: {command.message or 'Unknown error'}"))
        elif isinstance(command, SessionClosed):
            logger.info(f"[VOICE][SESSION] session closed by remote reason={command.reason!r}")
            await self._finish(reason="remote close")
        else:
            logger.warning(f"[VOICE][SESSION] unknown command {type(command).__name__}")

    def _send_frame(self, frame: AudioFrame) -> None:
        transport = self._transport
        if self._state is not SessionState.ACTIVE or transport is None:
            return
        try:
            message = self._encoder.encode(frame)
        except ValueError as e:
            logger.warning(f"[VOICE][SESSION] dropping frame: {e}")
            return
        task = asyncio.create_task(self._send(transport, message))
        self._send_tasks.add(task)
        task.add_done_callback(self._send_tasks.discard)

    @staticmethod
    async def _send(transport: LiveTransport, message: RealtimeInput) -> None:
        try:
            await transport.send(message)
        except TransportSendError as e:
            logger.warning(f"[VOICE][SESSION] dropping frame: {e}")

    def _play(self, data: bytes) -> None:
        scheduler = self._scheduler
        if scheduler is None:
            return
        try:
            scheduler.schedule(data)
        except DecodeError as e:
            logger.warning(f"[VOICE][SESSION] skipping audio payload: {e}")

    # ------------------------------------------------------------------
    # Terminal transitions
    # ------------------------------------------------------------------

    async def _finish(self, *, reason: str) -> None:
        if self._state in (SessionState.ENDED, SessionState.ERROR):
            return
        self._end_time = datetime.now(timezone.utc)
        self._metrics = compute_metrics(self._start_time, self._end_time, self._transcript)
        self._set_state(SessionState.ENDED)
        await self._cleanup()

        logger.info(
            f"[VOICE][SESSION] interview ended reason={reason} duration={self._metrics.total_duration:.1f}s "
            f"questions={self._metrics.questions_asked} answers={self._metrics.answers_given}"
        )
        self._persist_task = asyncio.create_task(
            self._persist(self._transcript.entries, self._metrics, self._session_id or "")
        )

    async def _fail(self, error: VoiceInterviewError) -> None:
        if self._state in (SessionState.ENDED, SessionState.ERROR):
            return
        self._error = str(error)
        self._set_state(SessionState.ERROR)
        await self._cleanup()
        logger.error(f"[VOICE][SESSION] {type(error).__name__}: {error}")
        self._notify("error", self._error)

    async def _persist(
        self,
        transcript: tuple[TranscriptEntry, ...],
        metrics: InterviewMetrics,
        session_id: str,
    ) -> SaveResult | None:
        if self._config.save_delay_s > 0:
            await asyncio.sleep(self._config.save_delay_s)
        if self._recorder is None:
            logger.info("[VOICE][SESSION] no recorder configured; session not saved")
            return None
        try:
            result = await self._recorder.save(transcript, metrics, session_id)
        except PersistenceError as e:
            logger.error(f"[VOICE][SESSION] error saving interview session: {e}")
            self._notify("error", "Failed to save interview session")
            return None
        except Exception as e:
            logger.exception(f"[VOICE][SESSION] unexpected error saving interview session: {e}")
            self._notify("error", "Failed to save interview session")
            return None
        logger.info(f"[VOICE][SESSION] interview session saved: {session_id}")
        return result

    async def _cleanup(self) -> None:
        """
        Release every owned resource exactly once.

        References are detached before any await so a concurrent or repeated
        call finds nothing left to release.
        """
        microphone, self._microphone = self._microphone, None
        scheduler, self._scheduler = self._scheduler, None
        output, self._output = self._output, None
        transport, self._transport = self._transport, None
        receiver, self._receiver_task = self._receiver_task, None
        consumer, self._consumer_task = self._consumer_task, None
        queue, self._queue = self._queue, None
        send_tasks, self._send_tasks = self._send_tasks, set()

        if queue is None and transport is None and microphone is None and output is None:
            return
        logger.info("[VOICE][SESSION] cleaning up resources")

        current = asyncio.current_task()
        for task in (receiver, consumer, *send_tasks):
            if task is not None and task is not current and not task.done():
                task.cancel()

        if microphone is not None:
            try:
                await microphone.stop()
            except Exception as e:
                logger.warning(f"[VOICE][SESSION] error releasing microphone: {e}")

        if scheduler is not None:
            scheduler.stop_all()

        if output is not None:
            try:
                await output.close()
            except Exception as e:
                logger.warning(f"[VOICE][SESSION] error closing output: {e}")

        if transport is not None:
            try:
                await asyncio.wait_for(transport.close(), self._config.close_timeout_s)
            except Exception as e:
                logger.error(f"[VOICE][SESSION] error closing session: {e}")

    # ------------------------------------------------------------------

    def _set_state(self, state: SessionState) -> None:
        if state is self._state:
            return
        logger.debug(f"[VOICE][SESSION] state {self._state.value} -> {state.value}")
        self._state = state
        if self._on_state_change is not None:
            self._on_state_change(state)

    def _notify(self, level: str, message: str) -> None:
        if self._on_notify is not None:
            self._on_notify(level, message)
