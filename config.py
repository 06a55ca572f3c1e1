# wavebpm Configuration
# All default values and constants

from dataclasses import dataclass, field, is_dataclass


CURRENT_CONFIG_VERSION = 1

# pywt wavelet names accepted for the cascade (8-tap Daubechies is "db4")
SUPPORTED_WAVELETS = ("db2", "db3", "db4", "db5", "db6", "haar", "sym4")
SUPPORTED_BOUNDARY_MODES = ("symmetric", "periodization", "zero", "constant", "reflect", "periodic")


@dataclass
class AnalysisConfig:
    """Tempo estimation parameters"""
    levels: int = 4                   # DWT cascade depth
    min_tempo_bpm: float = 40.0       # Slowest tempo searched (largest lag)
    max_tempo_bpm: float = 220.0      # Fastest tempo searched (smallest lag)
    wavelet: str = "db4"              # Daubechies filter pair with 8 taps
    boundary_mode: str = "symmetric"  # pywt signal extension mode


@dataclass
class AudioConfig:
    """Audio capture settings"""
    sample_rate: int = 44100
    channels: int = 2
    dtype: str = "int16"              # PCM format requested from the device
    period_frames: int = 256          # Frames per device read
    # Device index - None means use system default
    device_index: int | None = None
    window_seconds: float = 3.0       # Analysis window length


@dataclass
class Config:
    """Master configuration"""
    version: int = 1                  # Schema version for persisted configs
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    audio: AudioConfig = field(default_factory=AudioConfig)

    # Global
    workers: int = 1                  # Threads used for file analysis (1 = sequential)
    log_level: str = "INFO"           # Logging level (DEBUG/INFO/WARNING/ERROR)
    report_generation_enabled: bool = False   # Write per-session JSON/CSV reports
    report_dir: str = ""              # Empty = config directory


def apply_dict_to_dataclass(target, data) -> None:
    """Recursively apply values from a dict onto a dataclass instance.
    Unknown keys are ignored."""
    if not isinstance(data, dict):
        return

    for key, value in data.items():
        if not hasattr(target, key):
            continue

        current = getattr(target, key)

        if is_dataclass(current) and isinstance(value, dict):
            apply_dict_to_dataclass(current, value)
            continue

        setattr(target, key, value)


def _clamped(value, default, low, high, cast=float):
    try:
        value = cast(value)
    except (TypeError, ValueError):
        value = default
    return max(low, min(high, value))


def migrate_config(config: Config, loaded_version) -> None:
    """Upgrade older config structures to the current schema.
    Replaces missing values with defaults, clamps ranges and bumps version."""
    try:
        version = int(loaded_version) if loaded_version is not None else 0
    except (TypeError, ValueError):
        version = 0

    analysis = config.analysis
    audio = config.audio
    defaults = Config()

    if version < 1:
        # Pre-versioned files stored the window length in samples
        window = getattr(audio, 'window_seconds', None)
        if isinstance(window, (int, float)) and window > 600:
            audio.window_seconds = float(window) / float(audio.sample_rate or 44100)

    analysis.levels = _clamped(analysis.levels, defaults.analysis.levels, 1, 12, int)
    analysis.min_tempo_bpm = _clamped(analysis.min_tempo_bpm, defaults.analysis.min_tempo_bpm, 1.0, 1000.0)
    analysis.max_tempo_bpm = _clamped(analysis.max_tempo_bpm, defaults.analysis.max_tempo_bpm, 1.0, 1000.0)
    if analysis.min_tempo_bpm >= analysis.max_tempo_bpm:
        analysis.min_tempo_bpm = defaults.analysis.min_tempo_bpm
        analysis.max_tempo_bpm = defaults.analysis.max_tempo_bpm
    if analysis.wavelet not in SUPPORTED_WAVELETS:
        analysis.wavelet = defaults.analysis.wavelet
    if analysis.boundary_mode not in SUPPORTED_BOUNDARY_MODES:
        analysis.boundary_mode = defaults.analysis.boundary_mode

    audio.sample_rate = _clamped(audio.sample_rate, defaults.audio.sample_rate, 1000, 384000, int)
    audio.channels = _clamped(audio.channels, defaults.audio.channels, 1, 2, int)
    audio.period_frames = _clamped(audio.period_frames, defaults.audio.period_frames, 32, 8192, int)
    audio.window_seconds = _clamped(audio.window_seconds, defaults.audio.window_seconds, 0.5, 60.0)
    if audio.dtype not in ("int8", "int16", "int32", "float32"):
        audio.dtype = defaults.audio.dtype

    config.workers = _clamped(config.workers, defaults.workers, 1, 64, int)
    if config.log_level is None:
        config.log_level = defaults.log_level
    if config.report_generation_enabled is None:
        config.report_generation_enabled = defaults.report_generation_enabled
    if config.report_dir is None:
        config.report_dir = defaults.report_dir

    config.version = CURRENT_CONFIG_VERSION

