"""
Pydantic schemas for the live voice interview.

Defines session states, transcript entries, metrics, and the messages
exchanged with the streaming model.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _now_utc() -> datetime:
    """Get current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


class SessionState(str, Enum):
    """Lifecycle states of a live interview session."""

    IDLE = "idle"
    CONNECTING = "connecting"
    ACTIVE = "active"
    ENDED = "ended"
    ERROR = "error"


class Speaker(str, Enum):
    """Who produced a transcript entry."""

    USER = "You"
    INTERVIEWER = "Interviewer"


class TranscriptEntry(BaseModel):
    """A finalized utterance. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    speaker: Speaker = Field(..., description="Speaker of the utterance")
    text: str = Field(..., description="Finalized utterance text")
    timestamp: datetime = Field(default_factory=_now_utc, description="When the entry was committed")


class InterviewMetrics(BaseModel):
    """Summary numbers computed once when a session ends."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    start_time: datetime | None = Field(default=None, description="Session start")
    end_time: datetime | None = Field(default=None, description="Session end")
    total_duration: float = Field(default=0.0, description="Duration in seconds")
    questions_asked: int = Field(default=0, description="Committed interviewer utterances")
    answers_given: int = Field(default=0, description="Committed user utterances")
    average_response_time: float = Field(default=0.0, description="Reserved, always 0.0")


class SaveResult(BaseModel):
    """Outcome reported by a session recorder."""

    success: bool = Field(default=True)
    session_id: str = Field(..., description="Session that was stored")
    detail: dict[str, Any] = Field(default_factory=dict, description="Recorder-specific response body")


class LiveConnectConfig(BaseModel):
    """Configuration payload sent with the connect handshake."""

    model: str = Field(..., description="Streaming model identifier")
    response_modalities: list[str] = Field(default_factory=lambda: ["AUDIO"])
    input_audio_transcription: dict[str, Any] = Field(default_factory=dict)
    output_audio_transcription: dict[str, Any] = Field(default_factory=dict)
    voice_name: str = Field(default="Zephyr", description="Prebuilt voice for the interviewer")
    system_instruction: str = Field(default="", description="Interviewer persona instruction")

    def to_setup_message(self) -> dict[str, Any]:
        """Render the Gemini Live ``setup`` message."""
        model = self.model if self.model.startswith("models/") else f"models/{self.model}"
        return {
            "setup": {
                "model": model,
                "generationConfig": {
                    "responseModalities": list(self.response_modalities),
                    "speechConfig": {
                        "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": self.voice_name}},
                    },
                },
                "systemInstruction": {"parts": [{"text": self.system_instruction}]},
                "inputAudioTranscription": dict(self.input_audio_transcription),
                "outputAudioTranscription": dict(self.output_audio_transcription),
            }
        }


class MediaBlob(BaseModel):
    """A base64 encoded media chunk."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    data: str
    mime_type: str


class RealtimeInput(BaseModel):
    """One outbound message carrying a single audio frame."""

    model_config = ConfigDict(frozen=True)

    media: MediaBlob

    def to_wire(self) -> dict[str, Any]:
        return {"realtimeInput": {"audio": self.media.model_dump(by_alias=True)}}


DEFAULT_ROLE_TYPE = "software engineering"

INTERVIEWER_INSTRUCTION = """You are a professional and friendly interviewer conducting a mock interview for a {role_type} position.

Guidelines:
- Ask one question at a time
- Start with a warm greeting
- Ask behavioral and technical questions
- Listen carefully to responses
- Ask follow-up questions when needed
- Be encouraging and professional
- After 5-7 questions, conclude the interview with feedback

Keep responses concise and natural."""


def build_system_instruction(role_type: str | None = None) -> str:
    """Render the interviewer persona for a role."""
    return INTERVIEWER_INSTRUCTION.format(role_type=(role_type or "").strip() or DEFAULT_ROLE_TYPE)
