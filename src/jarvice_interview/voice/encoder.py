"""Microphone frame encoding for the outbound stream."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from jarvice_interview.voice.pcm import encode_base64, pcm16_bytes, pcm_mime_type
from jarvice_interview.voice.schemas import MediaBlob, RealtimeInput


@dataclass(frozen=True)
class AudioFrame:
    """A fixed-size block of float samples in [-1.0, 1.0]."""

    samples: np.ndarray
    sample_rate: int = 16000
    channels: int = 1

    @property
    def num_samples(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration(self) -> float:
        return self.num_samples / float(self.sample_rate)


class AudioEncoder:
    """Turns captured frames into outbound realtime-input messages."""

    def __init__(self, sample_rate: int = 16000) -> None:
        self._sample_rate = sample_rate
        self._mime_type = pcm_mime_type(sample_rate)

    @property
    def mime_type(self) -> str:
        return self._mime_type

    def encode(self, frame: AudioFrame) -> RealtimeInput:
        if frame.sample_rate != self._sample_rate:
            raise ValueError(
                f"Frame sample rate {frame.sample_rate} does not match encoder rate {self._sample_rate}"
            )
        # Mono wire format: keep the first channel of multi-channel input.
        samples = frame.samples
        if samples.ndim > 1:
            samples = samples[:, 0]
        data = encode_base64(pcm16_bytes(samples))
        return RealtimeInput(media=MediaBlob(data=data, mime_type=self._mime_type))
