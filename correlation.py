from typing import Optional

import numpy as np


def correlate(sequence) -> np.ndarray:
    """Unnormalized autocorrelation for lags ``0 .. n-1``.

    ``r[k] = sum(s[i] * s[i + k])`` over the overlapping part. No division
    by ``n - k`` and no mean removal.
    """
    data = np.asarray(sequence, dtype=np.float64)
    n = len(data)
    if n == 0:
        return np.zeros(0, dtype=np.float64)
    full = np.correlate(data, data, mode="full")
    return full[n - 1:]


def detect_peak(sequence) -> Optional[int]:
    """Index of the largest-magnitude element.

    Positive extrema win over negative ones of the same magnitude and the
    earliest index wins inside each sign. Returns None for empty or
    all-zero input.
    """
    data = np.asarray(sequence, dtype=np.float64)
    if len(data) == 0:
        return None

    magnitude = float(np.max(np.abs(data)))
    if not magnitude > 0:
        return None

    positive = np.flatnonzero(data == magnitude)
    if len(positive):
        return int(positive[0])
    negative = np.flatnonzero(data == -magnitude)
    if len(negative):
        return int(negative[0])
    return None
