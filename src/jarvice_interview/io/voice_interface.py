"""Terminal front end for a live voice interview.

Streaming, transcripts and saving live in `jarvice_interview.voice`; this
module wires the real devices and prints what happens.
"""

from __future__ import annotations

import asyncio

from jarvice_interview.config import Settings, get_settings
from jarvice_interview.io.text_interface import InterviewInterface
from jarvice_interview.voice.audio_io import AudioIOConfig, MicrophoneCapture, SpeakerOutput
from jarvice_interview.voice.errors import VoiceInterviewError
from jarvice_interview.voice.live_session import LiveInterviewSession, LiveSessionConfig
from jarvice_interview.voice.recorder import HttpSessionRecorder, SessionRecorder
from jarvice_interview.voice.schemas import SessionState, TranscriptEntry
from jarvice_interview.voice.transport import GeminiLiveTransport


def build_live_session(
    settings: Settings | None = None,
    *,
    role_type: str | None = None,
    recorder: SessionRecorder | None = None,
    on_state_change=None,  # noqa: ANN001
    on_transcript=None,  # noqa: ANN001
    on_notify=None,  # noqa: ANN001
) -> LiveInterviewSession:
    """Wire a session to the real Gemini endpoint, microphone and speaker."""
    settings = settings or get_settings()
    mic_cfg = AudioIOConfig(sample_rate=settings.input_sample_rate, frame_size=settings.frame_size)
    out_cfg = AudioIOConfig(sample_rate=settings.output_sample_rate)

    return LiveInterviewSession(
        transport_factory=lambda: GeminiLiveTransport(
            api_key=settings.gemini_api_key,
            endpoint=settings.live_endpoint,
            connect_timeout=settings.connect_timeout_s,
            send_timeout=settings.send_timeout_s,
        ),
        microphone_factory=lambda: MicrophoneCapture(mic_cfg),
        output_factory=lambda: SpeakerOutput(out_cfg),
        recorder=recorder if recorder is not None else HttpSessionRecorder(),
        config=LiveSessionConfig.from_settings(settings, role_type=role_type),
        on_state_change=on_state_change,
        on_transcript=on_transcript,
        on_notify=on_notify,
    )


class VoiceInterface(InterviewInterface):
    def __init__(
        self,
        *,
        role_type: str | None = None,
        recorder: SessionRecorder | None = None,
        settings: Settings | None = None,
        session: LiveInterviewSession | None = None,
    ) -> None:
        self._session = session or build_live_session(
            settings,
            role_type=role_type,
            recorder=recorder,
            on_state_change=self._on_state_change,
            on_transcript=self._on_transcript,
            on_notify=self._on_notify,
        )

    @property
    def session(self) -> LiveInterviewSession:
        return self._session

    async def run(self) -> None:
        print("\n" + "=" * 60)
        print("Jarvice AI - Voice Interview")
        print("=" * 60 + "\n")
        print("Have a natural conversation with the AI interviewer. Speak clearly and naturally.")

        try:
            await self._session.start()
        except VoiceInterviewError as e:
            print(f"\n⚠️ {e}\n")
            return

        print("\n🎤 Microphone is active. Press Enter to end the interview.\n")

        stop_requested = asyncio.create_task(self.receive_input())
        closed = asyncio.create_task(self._session.wait_closed())
        done, pending = await asyncio.wait({stop_requested, closed}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()

        await self._session.end()
        await self._session.wait_for_persistence()
        self._print_summary()

    async def send_message(self, message: str) -> None:
        print(message)

    async def receive_input(self) -> str:
        # input() blocks; keep the event loop free for streaming.
        try:
            return await asyncio.to_thread(input, "")
        except EOFError:
            return ""

    def _print_summary(self) -> None:
        metrics = self._session.metrics
        if self._session.state is not SessionState.ENDED or metrics is None:
            return
        print("\n" + "-" * 60)
        print("Interview Summary")
        print("-" * 60)
        print(f"Duration:  {round(metrics.total_duration)}s")
        print(f"Questions: {metrics.questions_asked}")
        print(f"Answers:   {metrics.answers_given}")

    def _on_state_change(self, state: SessionState) -> None:
        print(f"[Status] {state.value}", flush=True)

    def _on_transcript(self, entry: TranscriptEntry) -> None:
        print(f"\n[{entry.speaker.value}] {entry.text}\n", flush=True)

    def _on_notify(self, level: str, message: str) -> None:
        print(f"[{level.upper()}] {message}", flush=True)
