"""Error types raised by the tempo estimation pipeline and the capture layer."""


class WaveletBpmError(Exception):
    """Base class for every error raised by wavebpm."""


class ConfigurationError(WaveletBpmError):
    """Invalid sample rate, tempo range or decomposition depth."""


class InsufficientDataError(WaveletBpmError):
    """Window too short for the requested decomposition or tempo search range."""


class InvalidSamplesError(WaveletBpmError):
    """Samples are not a finite one-dimensional sequence."""


class NoPeakFoundError(WaveletBpmError):
    """The correlogram search region holds no usable extremum (silent window)."""


class TrackEstimationError(WaveletBpmError):
    """No window of the track produced a valid estimate."""


class AudioSourceError(WaveletBpmError):
    """Capture device or audio file could not be opened. Fatal for the session."""
