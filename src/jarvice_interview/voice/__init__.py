"""Real-time voice interview subsystem.

mic -> encoder -> transport ⇄ remote model ⇄ transport -> events ->
{transcript assembler, playback scheduler}

The session coordinator owns all per-session state and resources; the
recorder stores finished sessions.
"""

from jarvice_interview.voice.audio_io import AudioIOConfig, MicrophoneCapture, SpeakerOutput
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
from jarvice_interview.voice.live_session import LiveInterviewSession, LiveSessionConfig
from jarvice_interview.voice.playback import PlaybackScheduler, PlaybackUnit
from jarvice_interview.voice.recorder import DatabaseSessionRecorder, HttpSessionRecorder, SessionRecorder
from jarvice_interview.voice.schemas import (
    InterviewMetrics,
    SessionState,
    Speaker,
    TranscriptEntry,
)
from jarvice_interview.voice.transcript import TranscriptAssembler
from jarvice_interview.voice.transport import GeminiLiveTransport, LiveTransport

__all__ = [
    "AudioEncoder",
    "AudioFrame",
    "AudioIOConfig",
    "DatabaseSessionRecorder",
    "DecodeError",
    "GeminiLiveTransport",
    "HttpSessionRecorder",
    "InterviewMetrics",
    "LiveInterviewSession",
    "LiveSessionConfig",
    "LiveTransport",
    "MicrophoneCapture",
    "PermissionDenied",
    "PersistenceError",
    "PlaybackScheduler",
    "PlaybackUnit",
    "RemoteSessionError",
    "SessionRecorder",
    "SessionState",
    "SessionStateError",
    "Speaker",
    "SpeakerOutput",
    "TranscriptAssembler",
    "TranscriptEntry",
    "TransportConnectError",
    "TransportSendError",
    "VoiceInterviewError",
]
