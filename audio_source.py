"""
wavebpm - Audio Sources
Supply fixed-length mono float64 windows and an authoritative sample rate,
either from a WAV file or live from an input device (sounddevice).
"""

import queue
from pathlib import Path
from typing import Iterator, Optional

import numpy as np
from scipy.io import wavfile

from errors import AudioSourceError
from logging_utils import log_event


def sample_bits(dtype) -> int:
    """Bit depth of a PCM sample type (8/16/24-in-32/32/64)."""
    return np.dtype(dtype).itemsize * 8


def pcm_to_float(data: np.ndarray) -> np.ndarray:
    """Convert integer PCM to float64 in [-1, 1); float input is only upcast."""
    data = np.asarray(data)
    if np.issubdtype(data.dtype, np.floating):
        return data.astype(np.float64)
    if not np.issubdtype(data.dtype, np.integer):
        raise AudioSourceError(f"unsupported sample format {data.dtype}")

    info = np.iinfo(data.dtype)
    scale = float(2 ** (info.bits - 1))
    if info.min == 0:
        # unsigned PCM (8-bit WAV) is centred on the mid value
        return (data.astype(np.float64) - scale) / scale
    return data.astype(np.float64) / scale


def to_mono(frames: np.ndarray) -> np.ndarray:
    """Average interleaved channels (frames x channels) down to one."""
    frames = np.asarray(frames)
    if frames.ndim == 1:
        return frames
    if frames.shape[1] == 1:
        return frames[:, 0]
    return np.mean(frames, axis=1)


class AudioSource:
    """Base class for window producers. Subclasses set ``sample_rate``."""

    sample_rate: float = 0.0

    def windows(self, window_length: int) -> Iterator[np.ndarray]:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class ArraySource(AudioSource):
    """In-memory samples, used for synthetic signals and already decoded audio."""

    def __init__(self, samples, sample_rate: float):
        if not sample_rate or sample_rate <= 0:
            raise AudioSourceError(f"invalid sample rate {sample_rate}")
        self.sample_rate = float(sample_rate)
        self.samples = to_mono(pcm_to_float(samples))

    def windows(self, window_length: int) -> Iterator[np.ndarray]:
        """Consecutive non-overlapping windows; a trailing partial window is dropped."""
        if window_length <= 0:
            raise AudioSourceError(f"window length must be positive, got {window_length}")
        count = len(self.samples) // window_length
        for index in range(count):
            start = index * window_length
            yield self.samples[start:start + window_length]


class WavFileSource(ArraySource):
    def __init__(self, path):
        self.path = Path(path)
        try:
            rate, data = wavfile.read(self.path)
        except (OSError, ValueError) as e:
            raise AudioSourceError(f"cannot read {self.path}: {e}") from e

        channels = 1 if data.ndim == 1 else data.shape[1]
        log_event("INFO", "AudioSource", "Opened WAV file", path=self.path.name,
                  rate=rate, channels=channels, bits=sample_bits(data.dtype),
                  frames=data.shape[0])
        super().__init__(data, rate)


class MicrophoneSource(AudioSource):
    """
    Live capture from an input device.

    The requested format (16-bit, stereo, 44.1 kHz, 256-frame periods by
    default) is negotiated with the device; whatever the device actually
    grants is reported and ``sample_rate`` is taken from the opened stream.
    Blocks arrive on the PortAudio thread and are queued for ``windows``.
    """

    def __init__(
        self,
        device: Optional[int] = None,
        sample_rate: int = 44100,
        channels: int = 2,
        dtype: str = "int16",
        period_frames: int = 256,
        max_queued_blocks: int = 1024,
        read_timeout_s: float = 5.0,
    ):
        self.device = device
        self.dtype = dtype
        self.period_frames = period_frames
        self.read_timeout_s = read_timeout_s
        self.overruns = 0
        self._blocks: queue.Queue = queue.Queue(maxsize=max_queued_blocks)
        self.stream = None
        self._open(sample_rate, channels)

    def _open(self, sample_rate: int, channels: int) -> None:
        try:
            import sounddevice as sd
        except OSError as e:
            # PortAudio shared library missing
            raise AudioSourceError(f"audio backend unavailable: {e}") from e

        try:
            channels = self._negotiate_channels(sd, sample_rate, channels)
            self.stream = sd.InputStream(
                device=self.device,
                channels=channels,
                samplerate=sample_rate,
                dtype=self.dtype,
                blocksize=self.period_frames,
                callback=self._callback,
            )
            self.stream.start()
        except (sd.PortAudioError, ValueError) as e:
            log_event("ERROR", "AudioSource", "Failed to open input device", device=self.device, error=e)
            self.stream = None
            raise AudioSourceError(f"cannot open input device {self.device}: {e}") from e

        self.sample_rate = float(self.stream.samplerate)
        self.channels = channels
        if not self.sample_rate > 0:
            self.close()
            raise AudioSourceError("device reported no sample rate")

        log_event("INFO", "AudioSource", "Input capture started", device=self.device,
                  rate=int(self.sample_rate), channels=channels,
                  bits=sample_bits(self.dtype), period=self.stream.blocksize or self.period_frames)

    def _negotiate_channels(self, sd, sample_rate: int, channels: int) -> int:
        """Requested channel count if the device accepts it, else mono."""
        try:
            sd.check_input_settings(device=self.device, channels=channels,
                                    dtype=self.dtype, samplerate=sample_rate)
            return channels
        except (sd.PortAudioError, ValueError):
            if channels == 1:
                raise
        log_event("WARNING", "AudioSource", "Channel count rejected, falling back to mono",
                  requested=channels)
        sd.check_input_settings(device=self.device, channels=1,
                                dtype=self.dtype, samplerate=sample_rate)
        return 1

    def _callback(self, indata, frames, time_info, status):
        if status:
            log_event("DEBUG", "AudioSource", "Stream status", status=status)
        try:
            self._blocks.put_nowait(indata.copy())
        except queue.Full:
            self.overruns += 1

    def windows(self, window_length: int) -> Iterator[np.ndarray]:
        """Assemble queued blocks into consecutive fixed-length windows."""
        if window_length <= 0:
            raise AudioSourceError(f"window length must be positive, got {window_length}")

        pending: list[np.ndarray] = []
        buffered = 0
        reported_overruns = 0
        while self.stream is not None:
            try:
                block = self._blocks.get(timeout=self.read_timeout_s)
            except queue.Empty:
                if self.stream is None:
                    return
                raise AudioSourceError(f"no audio received for {self.read_timeout_s:.1f}s")

            mono = to_mono(pcm_to_float(block))
            pending.append(mono)
            buffered += len(mono)

            if self.overruns > reported_overruns:
                log_event("WARNING", "AudioSource", "Capture overrun, blocks dropped",
                          dropped=self.overruns - reported_overruns)
                reported_overruns = self.overruns

            if buffered >= window_length:
                joined = np.concatenate(pending)
                yield joined[:window_length]
                rest = joined[window_length:]
                pending = [rest] if len(rest) else []
                buffered = len(rest)

    def close(self) -> None:
        stream, self.stream = self.stream, None
        if stream is not None:
            stream.stop()
            stream.close()
            log_event("INFO", "AudioSource", "Stopped", overruns=self.overruns)


def list_input_devices() -> list[dict]:
    """Input-capable devices as reported by sounddevice."""
    try:
        import sounddevice as sd
    except OSError as e:
        raise AudioSourceError(f"audio backend unavailable: {e}") from e

    devices = []
    for index, device in enumerate(sd.query_devices()):
        if device['max_input_channels'] > 0:
            devices.append({
                'index': index,
                'name': device['name'],
                'channels': device['max_input_channels'],
                'sample_rate': device['default_samplerate'],
            })
    return devices
