import math
from typing import Iterable, Optional

from errors import TrackEstimationError, WaveletBpmError


def median(values: Iterable[float]) -> float:
    """Median: middle element, or mean of the two middle ones for even counts."""
    ordered = sorted(values)
    count = len(ordered)
    if count == 0:
        raise TrackEstimationError("median of an empty sequence")
    middle = count // 2
    if count % 2:
        return float(ordered[middle])
    return (ordered[middle - 1] + ordered[middle]) / 2.0


def _is_valid(bpm: Optional[float]) -> bool:
    return bpm is not None and math.isfinite(bpm) and bpm > 0


class TrackBpmAggregator:
    """Append-only collection of per-window tempo estimates for one track."""

    def __init__(self):
        self._values: list[float] = []
        self._failures: list[WaveletBpmError] = []

    def add(self, bpm: Optional[float]) -> None:
        """Record one window estimate; None/NaN count as a failed window."""
        if _is_valid(bpm):
            self._values.append(float(bpm))
        else:
            self._failures.append(TrackEstimationError(f"invalid window estimate {bpm!r}"))

    def add_failure(self, error: WaveletBpmError) -> None:
        self._failures.append(error)

    @property
    def values(self) -> tuple[float, ...]:
        """Valid estimates in arrival order."""
        return tuple(self._values)

    @property
    def failures(self) -> int:
        return len(self._failures)

    @property
    def failure_reasons(self) -> tuple[WaveletBpmError, ...]:
        return tuple(self._failures)

    def __len__(self) -> int:
        return len(self._values) + len(self._failures)

    def median(self) -> float:
        if not self._values:
            raise TrackEstimationError(
                f"no valid window estimates ({self.failures} failed windows)"
            )
        return median(self._values)


def estimate_track_bpm(window_bpms: Iterable[Optional[float]]) -> float:
    """Median tempo of a track from its per-window estimates.

    Invalid entries (None, NaN, non-positive) are skipped; a track with no
    valid entry raises TrackEstimationError.
    """
    aggregator = TrackBpmAggregator()
    for bpm in window_bpms:
        aggregator.add(bpm)
    return aggregator.median()
