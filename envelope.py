"""Sub-band envelope extraction: decimate, rectify, remove mean, then sum."""

from typing import Iterable

import numpy as np

from errors import ConfigurationError, InsufficientDataError


def decimate(sequence, pace: int) -> np.ndarray:
    """Keep every ``pace``-th element starting at 0; length is ``len // pace``.

    Plain stride downsampling, no anti-alias filter.
    """
    if pace < 1:
        raise ConfigurationError(f"decimation pace must be >= 1, got {pace}")
    data = np.asarray(sequence, dtype=np.float64)
    count = len(data) // pace
    return data[: count * pace : pace].copy()


def rectify(sequence) -> np.ndarray:
    return np.abs(np.asarray(sequence, dtype=np.float64))


def normalize(sequence) -> np.ndarray:
    """Subtract the sequence's own mean."""
    data = np.asarray(sequence, dtype=np.float64)
    if len(data) == 0:
        return data.copy()
    return data - np.mean(data)


def extract_envelope(coefficients, pace: int = 1) -> np.ndarray:
    return normalize(rectify(decimate(coefficients, pace)))


def add(accumulator, addend) -> np.ndarray:
    """Element-wise sum of two envelopes of equal length."""
    acc = np.asarray(accumulator, dtype=np.float64)
    other = np.asarray(addend, dtype=np.float64)
    if len(acc) != len(other):
        raise ValueError(f"envelope lengths differ: {len(acc)} != {len(other)}")
    return acc + other


def combine_envelopes(envelopes: Iterable[np.ndarray]) -> np.ndarray:
    """Sum envelopes after truncating all of them to the shortest one.

    Levels differ by a few samples because of filter padding, so the
    tail of longer envelopes is dropped.
    """
    envelopes = [np.asarray(e, dtype=np.float64) for e in envelopes]
    if not envelopes:
        raise InsufficientDataError("no envelopes to combine")

    length = min(len(e) for e in envelopes)
    if length == 0:
        raise InsufficientDataError("an envelope is empty after decimation")

    combined = envelopes[0][:length]
    for envelope in envelopes[1:]:
        combined = add(combined, envelope[:length])
    return combined
