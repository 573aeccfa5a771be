"""Inbound event parsing.

Server messages from the streaming model are loosely shaped JSON. They are
validated once here and flattened into a small set of event variants that
the session coordinator dispatches on.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from jarvice_interview.voice.errors import DecodeError
from jarvice_interview.voice.pcm import decode_base64

logger = logging.getLogger(__name__)


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class _Transcription(_WireModel):
    text: str | None = None


class _InlineData(_WireModel):
    data: str | None = None
    mime_type: str | None = None


class _Part(_WireModel):
    inline_data: _InlineData | None = None
    text: str | None = None


class _ModelTurn(_WireModel):
    parts: list[_Part] = []


class _ServerContent(_WireModel):
    input_transcription: _Transcription | None = None
    output_transcription: _Transcription | None = None
    turn_complete: bool | None = None
    interrupted: bool | None = None
    model_turn: _ModelTurn | None = None


class _ServerMessage(_WireModel):
    server_content: _ServerContent | None = None
    setup_complete: dict[str, Any] | None = None
    go_away: dict[str, Any] | None = None
    error: Any = None


@dataclass(frozen=True)
class InputTranscript:
    text: str


@dataclass(frozen=True)
class OutputTranscript:
    text: str


@dataclass(frozen=True)
class TurnComplete:
    pass


@dataclass(frozen=True)
class AudioPayload:
    data: bytes
    mime_type: str | None = None


@dataclass(frozen=True)
class SessionError:
    message: str


@dataclass(frozen=True)
class SessionClosed:
    reason: str = ""


ServerEvent = Union[InputTranscript, OutputTranscript, TurnComplete, AudioPayload, SessionError, SessionClosed]


def _error_message(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(error)


def parse_server_message(raw: str | bytes | dict[str, Any]) -> list[ServerEvent]:
    """
    Parse one server message into zero or more events.

    A single message may carry transcription fragments, audio and a
    turn-complete flag at once; all of them are returned, transcripts
    first so the turn commit sees every fragment of the message.

    Args:
        raw: JSON text/bytes or an already decoded mapping.

    Returns:
        Events in dispatch order. Unparseable messages yield no events.
    """
    if isinstance(raw, (str, bytes, bytearray)):
        try:
            raw = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"[VOICE][EVENTS] dropping non-JSON server message: {e}")
            return []

    if not isinstance(raw, dict):
        logger.warning(f"[VOICE][EVENTS] dropping server message of type {type(raw).__name__}")
        return []

    try:
        message = _ServerMessage.model_validate(raw)
    except ValidationError as e:
        logger.warning(f"[VOICE][EVENTS] dropping malformed server message: {e.error_count()} errors")
        return []

    events: list[ServerEvent] = []

    if message.error is not None:
        events.append(SessionError(message=_error_message(message.error)))

    if message.go_away is not None:
        logger.info(f"[VOICE][EVENTS] server announced goAway: {message.go_away}")

    content = message.server_content
    if content is None:
        return events

    if content.input_transcription is not None and content.input_transcription.text:
        events.append(InputTranscript(text=content.input_transcription.text))

    if content.output_transcription is not None and content.output_transcription.text:
        events.append(OutputTranscript(text=content.output_transcription.text))

    if content.turn_complete:
        events.append(TurnComplete())

    if content.model_turn is not None:
        for part in content.model_turn.parts:
            inline = part.inline_data
            if inline is None or not inline.data:
                continue
            try:
                data = decode_base64(inline.data)
            except DecodeError as e:
                logger.warning(f"[VOICE][EVENTS] skipping audio part: {e}")
                continue
            events.append(AudioPayload(data=data, mime_type=inline.mime_type))

    return events
