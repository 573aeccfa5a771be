import base64
import json

from jarvice_interview.voice.events import (
    AudioPayload,
    InputTranscript,
    OutputTranscript,
    SessionError,
    TurnComplete,
    parse_server_message,
)


def _audio_part(data: bytes) -> dict:
    return {"inlineData": {"mimeType": "audio/pcm;rate=24000", "data": base64.b64encode(data).decode()}}


def test_one_message_can_carry_every_event_kind():
    msg = {
        "serverContent": {
            "inputTranscription": {"text": "Hel"},
            "outputTranscription": {"text": "Hi"},
            "turnComplete": True,
            "modelTurn": {"parts": [_audio_part(b"\x01\x00\x02\x00")]},
        }
    }

    events = parse_server_message(json.dumps(msg))

    assert [type(e) for e in events] == [InputTranscript, OutputTranscript, TurnComplete, AudioPayload]
    assert events[0].text == "Hel"
    assert events[1].text == "Hi"
    assert events[3].data == b"\x01\x00\x02\x00"
    assert events[3].mime_type == "audio/pcm;rate=24000"


def test_error_message_becomes_session_error():
    events = parse_server_message({"error": {"code": 429, "message": "quota exceeded"}})
    assert events == [SessionError(message="quota exceeded")]


def test_bytes_input_is_accepted():
    raw = json.dumps({"serverContent": {"outputTranscription": {"text": "Tell me"}}}).encode()
    assert parse_server_message(raw) == [OutputTranscript(text="Tell me")]


def test_setup_complete_and_empty_text_yield_nothing():
    assert parse_server_message({"setupComplete": {}}) == []
    assert parse_server_message({"serverContent": {"inputTranscription": {"text": ""}}}) == []


def test_malformed_messages_are_dropped():
    assert parse_server_message("not json") == []
    assert parse_server_message("[1, 2, 3]") == []
    assert parse_server_message({"serverContent": "oops"}) == []


def test_bad_audio_part_is_skipped_but_others_kept():
    msg = {
        "serverContent": {
            "modelTurn": {
                "parts": [
                    {"inlineData": {"mimeType": "audio/pcm", "data": "%%%"}},
                    {"text": "no audio here"},
                    _audio_part(b"\x00\x00"),
                ]
            }
        }
    }

    events = parse_server_message(msg)

    assert events == [AudioPayload(data=b"\x00\x00", mime_type="audio/pcm;rate=24000")]


def test_unknown_fields_are_ignored():
    msg = {"serverContent": {"turnComplete": True, "generationComplete": True}, "usageMetadata": {"x": 1}}
    assert parse_server_message(msg) == [TurnComplete()]
