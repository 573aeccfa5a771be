"""Linear PCM helpers for the streaming wire format.

The remote model speaks 16-bit signed little-endian PCM, base64 encoded.
Microphone samples arrive as float32 in [-1.0, 1.0].
"""

from __future__ import annotations

import base64
import binascii

import numpy as np

from jarvice_interview.voice.errors import DecodeError

INT16_SCALE = 32768.0
_WIRE_DTYPE = np.dtype("<i2")


def float_to_int16(samples: np.ndarray) -> np.ndarray:
    """Convert float samples to int16 using round(s * 32768), clamped."""
    scaled = np.rint(np.asarray(samples, dtype=np.float64) * INT16_SCALE)
    return np.clip(scaled, -32768, 32767).astype(np.int16)


def int16_to_float(samples: np.ndarray) -> np.ndarray:
    return np.asarray(samples, dtype=np.int16).astype(np.float32) / np.float32(INT16_SCALE)


def pcm16_bytes(samples: np.ndarray) -> bytes:
    """Float samples -> raw little-endian int16 bytes."""
    return float_to_int16(samples).astype(_WIRE_DTYPE, copy=False).tobytes()


def pcm16_to_float_frames(data: bytes, channels: int = 1) -> np.ndarray:
    """
    Decode raw PCM16 bytes into a (frames, channels) float32 array.

    Interleaved samples are split per channel and normalised by 32768.

    Raises:
        DecodeError: If the byte length is not a whole number of frames.
    """
    if channels < 1:
        raise ValueError(f"channels must be >= 1, got {channels}")
    frame_bytes = 2 * channels
    if len(data) % frame_bytes:
        raise DecodeError(
            f"PCM payload of {len(data)} bytes is not a multiple of {frame_bytes} (channels={channels})"
        )
    interleaved = np.frombuffer(data, dtype=_WIRE_DTYPE)
    return int16_to_float(interleaved.reshape(-1, channels))


def encode_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def decode_base64(text: str) -> bytes:
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Invalid base64 audio payload: {e}") from e


def pcm_mime_type(sample_rate: int) -> str:
    return f"audio/pcm;rate={sample_rate}"
