"""
wavebpm - Tempo Engine
Feeds windows from an audio source through the wavelet BPM detector and
reduces the per-window estimates to one track tempo.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from audio_source import AudioSource
from bpm_detector import WaveletBpmDetector, window_length_for
from config import Config
from errors import AudioSourceError, TrackEstimationError, WaveletBpmError
from logging_utils import log_event
from tempo_session_reporter import TempoSessionReporter
from track_bpm import TrackBpmAggregator, median


@dataclass
class WindowResult:
    """Outcome of one analysis window"""
    index: int                               # Window position in the track (0-based)
    bpm: Optional[float]                     # None when the window failed
    error: Optional[WaveletBpmError] = None  # Why the window failed
    running_bpm: float = 0.0                 # Median of valid windows so far (live mode)

    @property
    def is_valid(self) -> bool:
        return self.bpm is not None


@dataclass
class TrackResult:
    """Track-level tempo and the per-window estimates it came from"""
    bpm: float
    window_bpms: list = field(default_factory=list)   # Optional[float] per window, in order
    failures: int = 0
    seconds: float = 0.0


class TempoEngine:
    """
    Runs the detector over every window of a source.

    File sources may be analysed on a thread pool (``config.workers``);
    windows are independent, results are joined back in window order.
    Live sources are processed one window at a time as they arrive.
    """

    def __init__(
        self,
        config: Config,
        window_callback: Optional[Callable[[WindowResult], None]] = None,
        report_dir: Optional[Path] = None,
    ):
        self.config = config
        self.window_callback = window_callback
        self.report_dir = Path(report_dir) if report_dir else None
        self.running = False

    def detector_for(self, source: AudioSource) -> WaveletBpmDetector:
        return WaveletBpmDetector(source.sample_rate, self.config.analysis)

    def window_length(self, source: AudioSource) -> int:
        return window_length_for(self.config.audio.window_seconds, source.sample_rate)

    def _estimate(self, detector: WaveletBpmDetector, index: int, window) -> WindowResult:
        try:
            bpm = detector.compute_window_bpm(window)
        except WaveletBpmError as e:
            log_event("WARNING", "Engine", "Window skipped", window=index,
                      reason=type(e).__name__, detail=e)
            return WindowResult(index=index, bpm=None, error=e)
        log_event("DEBUG", "Engine", "Window tempo", window=index, bpm=bpm)
        return WindowResult(index=index, bpm=bpm)

    def analyze_source(self, source: AudioSource, source_name: str = "") -> TrackResult:
        """Estimate the tempo of a finite source (file or in-memory samples)."""
        started = time.time()
        detector = self.detector_for(source)
        window_length = self.window_length(source)
        self._warn_short_window(detector, window_length)

        windows = source.windows(window_length)
        workers = max(1, int(self.config.workers))
        if workers > 1:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                results = list(pool.map(
                    lambda item: self._estimate(detector, item[0], item[1]),
                    enumerate(windows),
                ))
        else:
            results = [self._estimate(detector, index, window) for index, window in enumerate(windows)]

        aggregator = TrackBpmAggregator()
        for result in results:
            self._collect(aggregator, result)
            if self.window_callback:
                self.window_callback(result)

        return self._finish(aggregator, results, source, source_name, started)

    def run_live(self, source: AudioSource, max_windows: Optional[int] = None) -> TrackResult:
        """Estimate windows as the source delivers them until stopped or exhausted.

        Ctrl+C, or a capture error after at least one window, ends the
        session with the windows collected so far. A capture error before
        the first window is re-raised.
        """
        started = time.time()
        detector = self.detector_for(source)
        window_length = self.window_length(source)
        self._warn_short_window(detector, window_length)

        aggregator = TrackBpmAggregator()
        results: list[WindowResult] = []
        self.running = True
        try:
            for index, window in enumerate(source.windows(window_length)):
                result = self._estimate(detector, index, window)
                self._collect(aggregator, result)
                results.append(result)
                if aggregator.values:
                    result.running_bpm = median(aggregator.values)
                if self.window_callback:
                    self.window_callback(result)
                if not self.running or (max_windows is not None and len(results) >= max_windows):
                    break
        except KeyboardInterrupt:
            log_event("INFO", "Engine", "Live analysis interrupted", windows=len(results))
        except AudioSourceError as e:
            if not results:
                raise
            log_event("WARNING", "Engine", "Capture ended early, finishing with collected windows",
                      windows=len(results), error=e)
        finally:
            self.running = False

        return self._finish(aggregator, results, source, "live", started)

    def stop(self) -> None:
        """Ask a running live analysis to stop after the current window."""
        self.running = False

    @staticmethod
    def _collect(aggregator: TrackBpmAggregator, result: WindowResult) -> None:
        if result.is_valid:
            aggregator.add(result.bpm)
        else:
            aggregator.add_failure(result.error)

    def _warn_short_window(self, detector: WaveletBpmDetector, window_length: int) -> None:
        full_range = detector.full_range_window_length()
        if window_length < full_range:
            log_event("WARNING", "Engine", "Window too short for the slowest tempo, search range will be clipped",
                      window=window_length, full_range=full_range)

    def _finish(self, aggregator, results, source, source_name, started) -> TrackResult:
        elapsed_s = max(0.0, time.time() - started)
        values = aggregator.values
        summary = {
            "session_started_at": started,
            "session_ended_at": started + elapsed_s,
            "seconds": round(elapsed_s, 3),
            "source": source_name,
            "sample_rate": source.sample_rate,
            "windows": len(results),
            "valid_windows": len(values),
            "failed_windows": aggregator.failures,
            "bpm": "",
            "bpm_min": min(values) if values else "",
            "bpm_max": max(values) if values else "",
            "bpm_spread": (max(values) - min(values)) if values else "",
        }

        try:
            bpm = aggregator.median()
        except TrackEstimationError:
            log_event("ERROR", "Engine", "No valid window estimate", windows=len(results),
                      failed=aggregator.failures)
            self._save_report(summary)
            raise

        summary["bpm"] = bpm
        log_event("INFO", "Engine", "Session summary",
                  windows=len(results),
                  valid=len(values),
                  failed=aggregator.failures,
                  bpm=bpm,
                  bpm_min=min(values),
                  bpm_max=max(values),
                  seconds=elapsed_s)
        self._save_report(summary)

        return TrackResult(
            bpm=bpm,
            window_bpms=[r.bpm for r in results],
            failures=aggregator.failures,
            seconds=elapsed_s,
        )

    def _save_report(self, summary: dict) -> None:
        if not self.config.report_generation_enabled or self.report_dir is None:
            return
        try:
            TempoSessionReporter(self.report_dir).save_session(summary)
        except OSError as e:
            log_event("WARNING", "Report", "Failed to write session report", error=e)
