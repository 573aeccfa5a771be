"""Sound device access for live interviews.

Nothing here knows about the remote model or the transcript; both classes
only move float32 samples between the session and PortAudio.

It provides:
- streaming microphone capture, one callback per fixed-size frame
- a speaker output that plays scheduled buffers against its own sample clock
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Callable

import numpy as np

from jarvice_interview.voice.encoder import AudioFrame
from jarvice_interview.voice.errors import PermissionDenied
from jarvice_interview.voice.playback import PlaybackUnit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AudioIOConfig:
    sample_rate: int = 16000
    channels: int = 1
    frame_size: int = 4096  # samples per callback block
    dtype: str = "float32"


def _require_sounddevice():
    try:
        import sounddevice as sd  # type: ignore

        return sd
    except Exception as e:  # pragma: no cover
        raise RuntimeError(
            "sounddevice is required for voice mode. Install Python deps with: pip install -e '.[voice]'. "
            "If you see 'PortAudio library not found', install PortAudio (Debian/Ubuntu: sudo apt-get install portaudio19-dev)."
        ) from e


class MicrophoneCapture:
    """Exclusive microphone stream delivering AudioFrames to a callback."""

    def __init__(self, config: AudioIOConfig | None = None) -> None:
        self._config = config or AudioIOConfig()
        self._stream = None

    @property
    def config(self) -> AudioIOConfig:
        return self._config

    @property
    def is_running(self) -> bool:
        return self._stream is not None

    async def start(self, on_frame: Callable[[AudioFrame], None]) -> None:
        """
        Open the input device and start delivering frames.

        ``on_frame`` runs on the audio thread; it must only hand the frame
        off (e.g. via ``loop.call_soon_threadsafe``).

        Raises:
            PermissionDenied: If the input device cannot be opened.
        """
        if self._stream is not None:
            return
        sd = _require_sounddevice()
        cfg = self._config

        def callback(indata, frames, time, status):  # noqa: ANN001
            if status:
                logger.debug(f"[VOICE][AUDIO] input status: {status}")
            on_frame(AudioFrame(samples=indata[:, 0].copy(), sample_rate=cfg.sample_rate, channels=1))

        try:
            stream = sd.InputStream(
                samplerate=cfg.sample_rate,
                channels=cfg.channels,
                dtype=cfg.dtype,
                blocksize=cfg.frame_size,
                callback=callback,
            )
            await asyncio.to_thread(stream.start)
        except Exception as e:
            raise PermissionDenied(
                "Failed to access microphone. Please check permissions."
            ) from e

        self._stream = stream
        logger.info(f"[VOICE][AUDIO] microphone open rate={cfg.sample_rate} frame={cfg.frame_size}")

    async def stop(self) -> None:
        stream = self._stream
        self._stream = None
        if stream is None:
            return
        await asyncio.to_thread(stream.stop)
        await asyncio.to_thread(stream.close)
        logger.info("[VOICE][AUDIO] microphone released")


class SpeakerOutput:
    """
    Speaker stream with a virtual clock.

    The clock is the number of frames rendered by the device callback
    divided by the sample rate. Units are mixed into the callback buffer
    from their start frame onward; completion is posted back to the event
    loop that opened the output.
    """

    def __init__(self, config: AudioIOConfig | None = None) -> None:
        self._config = config or AudioIOConfig(sample_rate=24000)
        self._stream = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._lock = threading.Lock()
        self._frames_rendered = 0
        # unit -> (start_frame, on_ended)
        self._scheduled: dict[PlaybackUnit, tuple[int, Callable[[PlaybackUnit], None]]] = {}

    @property
    def config(self) -> AudioIOConfig:
        return self._config

    @property
    def current_time(self) -> float:
        with self._lock:
            return self._frames_rendered / float(self._config.sample_rate)

    async def open(self) -> None:
        if self._stream is not None:
            return
        sd = _require_sounddevice()
        self._loop = asyncio.get_running_loop()
        with self._lock:
            self._frames_rendered = 0
            self._scheduled.clear()
        stream = sd.OutputStream(
            samplerate=self._config.sample_rate,
            channels=self._config.channels,
            dtype="float32",
            callback=self._callback,
        )
        await asyncio.to_thread(stream.start)
        self._stream = stream
        logger.info(f"[VOICE][AUDIO] speaker open rate={self._config.sample_rate}")

    async def close(self) -> None:
        stream = self._stream
        self._stream = None
        with self._lock:
            self._scheduled.clear()
        if stream is None:
            return
        await asyncio.to_thread(stream.stop)
        await asyncio.to_thread(stream.close)
        logger.info("[VOICE][AUDIO] speaker released")

    def play(self, unit: PlaybackUnit, on_ended: Callable[[PlaybackUnit], None]) -> None:
        start_frame = int(round(unit.start_time * self._config.sample_rate))
        with self._lock:
            # The callback may have rendered past the requested start already.
            start_frame = max(start_frame, self._frames_rendered)
            self._scheduled[unit] = (start_frame, on_ended)

    def stop(self, unit: PlaybackUnit) -> None:
        with self._lock:
            self._scheduled.pop(unit, None)

    def _callback(self, outdata, frames, time, status):  # noqa: ANN001
        if status:
            logger.debug(f"[VOICE][AUDIO] output status: {status}")
        outdata.fill(0)
        finished: list[tuple[PlaybackUnit, Callable[[PlaybackUnit], None]]] = []

        with self._lock:
            window_start = self._frames_rendered
            window_end = window_start + frames
            for unit, (start, on_ended) in list(self._scheduled.items()):
                end = start + unit.num_frames
                lo = max(window_start, start)
                hi = min(window_end, end)
                if lo < hi:
                    chunk = unit.samples[lo - start : hi - start]
                    outdata[lo - window_start : hi - window_start, : chunk.shape[1]] += chunk
                if end <= window_end:
                    del self._scheduled[unit]
                    finished.append((unit, on_ended))
            self._frames_rendered = window_end

        np.clip(outdata, -1.0, 1.0, out=outdata)

        loop = self._loop
        if loop is None or loop.is_closed():
            return
        for unit, on_ended in finished:
            loop.call_soon_threadsafe(on_ended, unit)
