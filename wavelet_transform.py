"""
wavebpm - Wavelet Transform
Multi-level DWT cascade used to split a window into frequency sub-bands.
"""

from dataclasses import dataclass
from typing import Protocol, Sequence

import numpy as np
import pywt

from errors import ConfigurationError, InsufficientDataError


@dataclass(frozen=True)
class DecompositionLevel:
    """Approximation and detail coefficients of one cascade level."""
    approximation: np.ndarray
    detail: np.ndarray


class WaveletTransform(Protocol):
    def decompose(self, samples: Sequence[float], levels: int) -> list[DecompositionLevel]:
        """Return ``levels`` entries, index 0 finest, last coarsest."""
        ...

    def min_length(self, levels: int) -> int:
        """Smallest window length that supports ``levels`` levels."""
        ...


def _read_only(values: np.ndarray) -> np.ndarray:
    values = np.array(values, dtype=np.float64)
    values.flags.writeable = False
    return values


class PywtCascade:
    """
    Orthogonal DWT cascade built from single-level ``pywt.dwt`` calls.

    Level 0 is computed from the raw samples and every further level from
    the previous level's approximation, so each level keeps its own
    approximation (``pywt.wavedec`` only returns the coarsest one).
    Boundaries are handled with pywt's signal extension ``mode``.
    """

    def __init__(self, wavelet: str = "db4", mode: str = "symmetric"):
        try:
            self.wavelet = pywt.Wavelet(wavelet)
        except ValueError as e:
            raise ConfigurationError(f"unknown wavelet {wavelet!r}") from e
        if mode not in pywt.Modes.modes:
            raise ConfigurationError(f"unknown boundary mode {mode!r}")
        self.mode = mode

    def min_length(self, levels: int) -> int:
        if levels < 1:
            raise ConfigurationError(f"levels must be >= 1, got {levels}")
        # dwt_max_level(n, L) = floor(log2(n / (L - 1)))
        return (self.wavelet.dec_len - 1) * (2 ** levels)

    def decompose(self, samples: Sequence[float], levels: int) -> list[DecompositionLevel]:
        required = self.min_length(levels)
        data = np.asarray(samples, dtype=np.float64)
        if len(data) < required:
            raise InsufficientDataError(
                f"{levels}-level {self.wavelet.name} cascade needs {required} samples, got {len(data)}"
            )

        result: list[DecompositionLevel] = []
        approximation = data
        for _ in range(levels):
            approximation, detail = pywt.dwt(approximation, self.wavelet, mode=self.mode)
            result.append(DecompositionLevel(_read_only(approximation), _read_only(detail)))
        return result
