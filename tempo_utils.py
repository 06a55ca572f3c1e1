import math
from dataclasses import dataclass

from errors import ConfigurationError


@dataclass(frozen=True)
class SearchBounds:
    """Lag-index window of the correlogram that maps to the allowed tempo range."""
    min_index: int          # Lag of the fastest tempo
    max_index: int          # Lag of the slowest tempo (exclusive)
    max_decimation: int     # Decimation factor of the envelope the lags refer to


def max_decimation(levels: int) -> int:
    """Decimation factor of the coarsest cascade level relative to the input."""
    if levels < 1:
        raise ConfigurationError(f"levels must be >= 1, got {levels}")
    return 2 ** (levels - 1)


def tempo_search_bounds(
    sample_rate: float,
    levels: int,
    min_tempo_bpm: float,
    max_tempo_bpm: float,
) -> SearchBounds:
    """Translate a tempo range into correlogram lag indices.

    The fastest tempo gives the smallest lag, so ``min_index`` comes from
    ``max_tempo_bpm`` and ``max_index`` from ``min_tempo_bpm``.
    """
    if sample_rate is None or not sample_rate > 0:
        raise ConfigurationError(f"sample rate must be positive, got {sample_rate}")
    if not min_tempo_bpm > 0 or not max_tempo_bpm > 0:
        raise ConfigurationError("tempo bounds must be positive")
    if min_tempo_bpm >= max_tempo_bpm:
        raise ConfigurationError(
            f"min tempo ({min_tempo_bpm}) must be below max tempo ({max_tempo_bpm})"
        )

    decimation = max_decimation(levels)
    min_index = max(1, math.floor(60.0 / max_tempo_bpm * sample_rate / decimation))
    max_index = math.floor(60.0 / min_tempo_bpm * sample_rate / decimation)
    if min_index >= max_index:
        raise ConfigurationError(
            f"tempo search range collapsed: min_index={min_index} max_index={max_index}"
        )
    return SearchBounds(min_index=min_index, max_index=max_index, max_decimation=decimation)


def lag_to_bpm(lag: float, sample_rate: float, decimation: int) -> float:
    """Tempo of a correlogram lag measured in decimated samples."""
    if lag <= 0:
        raise ValueError(f"lag must be positive, got {lag}")
    return 60.0 / lag * (sample_rate / decimation)


def bpm_to_lag(bpm: float, sample_rate: float, decimation: int) -> float:
    if bpm <= 0:
        raise ValueError(f"bpm must be positive, got {bpm}")
    return 60.0 / bpm * (sample_rate / decimation)
