"""
wavebpm - Wavelet BPM Detector
Estimates the tempo of one window of samples (Tzanetakis, Essl & Cook,
"Audio Analysis using the Discrete Wavelet Transform").
"""

from typing import Optional

import numpy as np

from config import AnalysisConfig
from correlation import correlate, detect_peak
from envelope import combine_envelopes, extract_envelope
from errors import InsufficientDataError, InvalidSamplesError, NoPeakFoundError
from logging_utils import log_event
from tempo_utils import SearchBounds, lag_to_bpm, tempo_search_bounds
from wavelet_transform import PywtCascade, WaveletTransform


class WaveletBpmDetector:
    """
    Per-window tempo estimator.

    The window is split into ``levels`` sub-bands with a DWT cascade. Each
    band's detail coefficients become an envelope (stride-decimated down to
    the coarsest rate, rectified, mean removed); the envelopes and the
    coarsest approximation are summed and autocorrelated. The strongest
    correlogram peak inside the tempo range gives the beat period.

    Settings are fixed at construction; one instance can serve any number
    of windows, from any thread.
    """
    __slots__ = ('sample_rate', 'levels', 'min_tempo_bpm', 'max_tempo_bpm',
                 'bounds', 'transform')

    def __init__(
        self,
        sample_rate: float,
        analysis: Optional[AnalysisConfig] = None,
        transform: Optional[WaveletTransform] = None,
    ):
        analysis = analysis or AnalysisConfig()
        self.bounds: SearchBounds = tempo_search_bounds(
            sample_rate, analysis.levels, analysis.min_tempo_bpm, analysis.max_tempo_bpm
        )
        self.sample_rate = float(sample_rate)
        self.levels = int(analysis.levels)
        self.min_tempo_bpm = float(analysis.min_tempo_bpm)
        self.max_tempo_bpm = float(analysis.max_tempo_bpm)
        self.transform = transform or PywtCascade(analysis.wavelet, analysis.boundary_mode)

    def full_range_window_length(self) -> int:
        """Samples needed so the correlogram covers the slowest tempo too."""
        return self.bounds.max_index * 2 * self.bounds.max_decimation

    def combined_envelope(self, samples) -> np.ndarray:
        data = self._validated(samples)
        required = self.transform.min_length(self.levels)
        if len(data) < required:
            raise InsufficientDataError(
                f"window has {len(data)} samples, {self.levels}-level decomposition needs {required}"
            )

        decomposition = self.transform.decompose(data, self.levels)

        envelopes = []
        pace = self.bounds.max_decimation
        for level in decomposition:
            envelopes.append(extract_envelope(level.detail, pace))
            pace >>= 1

        # Coarsest approximation is already at the lowest rate
        envelopes.append(extract_envelope(decomposition[-1].approximation))
        return combine_envelopes(envelopes)

    def compute_window_bpm(self, samples) -> float:
        """Tempo of one window in beats per minute.

        Raises InsufficientDataError for windows too short to decompose or
        to reach the fastest tempo lag, and NoPeakFoundError for silence.
        """
        envelope = self.combined_envelope(samples)
        correlogram = correlate(envelope)

        min_index = self.bounds.min_index
        max_index = self.bounds.max_index
        if max_index > len(correlogram):
            log_event("DEBUG", "Detector", "Window shorter than slowest tempo lag, clipping search",
                      max_index=max_index, available=len(correlogram))
            max_index = len(correlogram)
        if min_index >= max_index:
            raise InsufficientDataError(
                f"correlogram of length {len(correlogram)} does not reach lag {min_index}"
            )

        location = detect_peak(correlogram[min_index:max_index])
        if location is None:
            raise NoPeakFoundError("no correlation peak in tempo range (silent window?)")

        real_location = min_index + location
        return lag_to_bpm(real_location, self.sample_rate, self.bounds.max_decimation)

    @staticmethod
    def _validated(samples) -> np.ndarray:
        try:
            data = np.asarray(samples, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise InvalidSamplesError(f"samples are not numeric: {e}") from e
        if data.ndim != 1:
            raise InvalidSamplesError(f"expected a mono 1-D window, got shape {data.shape}")
        if not np.all(np.isfinite(data)):
            raise InvalidSamplesError("window contains NaN or infinite samples")
        return data


def window_length_for(seconds: float, sample_rate: float) -> int:
    return int(round(seconds * sample_rate))


def estimate_window_bpm(samples, sample_rate: float, analysis: Optional[AnalysisConfig] = None) -> float:
    """One-shot tempo estimate for a single window."""
    return WaveletBpmDetector(sample_rate, analysis).compute_window_bpm(samples)
