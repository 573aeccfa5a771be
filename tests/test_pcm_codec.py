import base64

import numpy as np
import pytest

from jarvice_interview.voice.encoder import AudioEncoder, AudioFrame
from jarvice_interview.voice.errors import DecodeError
from jarvice_interview.voice.pcm import (
    decode_base64,
    encode_base64,
    float_to_int16,
    pcm16_bytes,
    pcm16_to_float_frames,
    pcm_mime_type,
)
from jarvice_interview.voice.schemas import LiveConnectConfig, build_system_instruction


def test_float_to_int16_scales_and_clamps():
    out = float_to_int16(np.array([0.0, 0.5, -0.5, 1.0, -1.0, 2.0, -3.0], dtype=np.float32))
    assert out.dtype == np.int16
    assert out.tolist() == [0, 16384, -16384, 32767, -32768, 32767, -32768]


def test_pcm16_is_little_endian():
    data = pcm16_bytes(np.array([1.0 / 32768.0], dtype=np.float32))
    assert data == b"\x01\x00"


def test_decode_is_within_one_quantum_of_source():
    samples = np.linspace(-1.0, 0.999, 257, dtype=np.float32)
    decoded = pcm16_to_float_frames(pcm16_bytes(samples))
    assert decoded.shape == (257, 1)
    assert decoded.dtype == np.float32
    assert np.max(np.abs(decoded[:, 0] - samples)) <= 1.0 / 32768.0 + 1e-7


def test_decode_splits_interleaved_channels():
    raw = np.array([100, -100, 200, -200], dtype="<i2").tobytes()
    decoded = pcm16_to_float_frames(raw, channels=2)
    assert decoded.shape == (2, 2)
    assert decoded[:, 0].tolist() == pytest.approx([100 / 32768, 200 / 32768])
    assert decoded[:, 1].tolist() == pytest.approx([-100 / 32768, -200 / 32768])


def test_decode_rejects_partial_frames():
    with pytest.raises(DecodeError):
        pcm16_to_float_frames(b"\x00\x01\x02")
    with pytest.raises(DecodeError):
        pcm16_to_float_frames(b"\x00\x01", channels=2)


def test_decode_empty_payload_has_no_frames():
    assert pcm16_to_float_frames(b"").shape == (0, 1)


def test_base64_helpers():
    assert decode_base64(encode_base64(b"\x00\xffabc")) == b"\x00\xffabc"
    with pytest.raises(DecodeError):
        decode_base64("not base64 at all!")


def test_encoder_builds_realtime_input():
    frame = AudioFrame(samples=np.zeros(4096, dtype=np.float32), sample_rate=16000)
    wire = AudioEncoder(16000).encode(frame).to_wire()

    chunk = wire["realtimeInput"]["audio"]
    assert chunk["mimeType"] == pcm_mime_type(16000) == "audio/pcm;rate=16000"
    assert base64.b64decode(chunk["data"]) == b"\x00\x00" * 4096


def test_encoder_keeps_first_channel_only():
    stereo = np.array([[0.5, -0.5], [0.25, -0.25]], dtype=np.float32)
    msg = AudioEncoder(16000).encode(AudioFrame(samples=stereo, sample_rate=16000, channels=2))
    pcm = np.frombuffer(base64.b64decode(msg.media.data), dtype="<i2")
    assert pcm.tolist() == [16384, 8192]


def test_encoder_rejects_rate_mismatch():
    with pytest.raises(ValueError):
        AudioEncoder(16000).encode(AudioFrame(samples=np.zeros(10, dtype=np.float32), sample_rate=48000))


def test_setup_message_shape():
    cfg = LiveConnectConfig(
        model="gemini-2.5-flash-native-audio-preview-09-2025",
        voice_name="Zephyr",
        system_instruction=build_system_instruction("data science"),
    )
    setup = cfg.to_setup_message()["setup"]

    assert setup["model"] == "models/gemini-2.5-flash-native-audio-preview-09-2025"
    assert setup["generationConfig"]["responseModalities"] == ["AUDIO"]
    assert setup["generationConfig"]["speechConfig"]["voiceConfig"]["prebuiltVoiceConfig"]["voiceName"] == "Zephyr"
    assert "data science position" in setup["systemInstruction"]["parts"][0]["text"]
    assert setup["inputAudioTranscription"] == {}
    assert setup["outputAudioTranscription"] == {}


def test_system_instruction_defaults_role():
    assert "software engineering position" in build_system_instruction(None)
    assert "software engineering position" in build_system_instruction("   ")
