"""YIN-style fundamental frequency estimation for single sample blocks."""

from __future__ import annotations

import math
from typing import ClassVar

import numpy as np

from ..core.interfaces import IPitchEstimator
from ..logger import get_logger
from ..pitch_types import PitchEstimate

logger = get_logger(__name__)

DEFAULT_MIN_HZ = 70.0
DEFAULT_MAX_HZ = 900.0
DEFAULT_THRESHOLD = 0.12


def compute_rms(samples: np.ndarray) -> float:
    """Root-mean-square level of ``samples``; 0.0 for an empty block."""
    samples = np.asarray(samples, dtype=np.float64)
    if samples.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(samples**2)))


def _difference_function(samples: np.ndarray, min_lag: int, max_lag: int) -> np.ndarray:
    """Squared difference sums, indexed by lag (entries below min_lag stay 0)."""
    differences = np.zeros(max_lag + 2, dtype=np.float64)
    size = samples.size
    for lag in range(min_lag, max_lag + 1):
        delta = samples[: size - lag] - samples[lag:]
        differences[lag] = float(np.dot(delta, delta))
    return differences


def _cumulative_mean_normalized(
    differences: np.ndarray, min_lag: int, max_lag: int
) -> np.ndarray:
    """Normalise each difference by the running mean over the searched band."""
    cmnd = np.ones_like(differences)
    lags = np.arange(min_lag, max_lag + 1, dtype=np.float64)
    band = differences[min_lag : max_lag + 1]
    running = np.cumsum(band)
    with np.errstate(divide="ignore", invalid="ignore"):
        normalized = np.where(running > 0, band * lags / running, 1.0)
    cmnd[min_lag : max_lag + 1] = normalized
    return cmnd


def _pick_lag(cmnd: np.ndarray, min_lag: int, max_lag: int, threshold: float) -> tuple[int, float]:
    """Walk lags upwards and return ``(lag, distance)``.

    The first local minimum under ``threshold`` wins over the global best so
    the lowest plausible period is preferred to its multiples. Returns a lag
    of -1 when nothing ever dropped below 1.0.
    """
    best_lag = -1
    best_value = 1.0
    for lag in range(min_lag + 1, max_lag - 1):
        value = cmnd[lag]
        if value < best_value:
            best_value = value
            best_lag = lag
        if value < threshold and value <= cmnd[lag - 1] and value <= cmnd[lag + 1]:
            return lag, float(value)
    return best_lag, float(best_value)


def _refine_lag(cmnd: np.ndarray, lag: int) -> float:
    """Parabolic interpolation around ``lag``, shift bounded to half a lag."""
    left = cmnd[lag - 1]
    center = cmnd[lag]
    right = cmnd[lag + 1]
    denominator = left - 2.0 * center + right
    shift = 0.0 if denominator == 0 else 0.5 * (left - right) / denominator
    return lag + max(-0.5, min(0.5, float(shift)))


def estimate(
    samples: np.ndarray,
    sample_rate: int,
    min_hz: float = DEFAULT_MIN_HZ,
    max_hz: float = DEFAULT_MAX_HZ,
    threshold: float = DEFAULT_THRESHOLD,
) -> PitchEstimate:
    """Estimate the fundamental frequency of a mono sample block.

    Args:
        samples: Mono samples normalised to +-1
        sample_rate: Sample rate of ``samples`` in Hz
        min_hz: Lowest frequency to search for
        max_hz: Highest frequency to search for
        threshold: Normalised difference under which a period is accepted

    Returns:
        PitchEstimate with a frequency, or an empty estimate when the block is
        too short for the band, the band is degenerate or nothing periodic
        was found. Silent blocks should be gated by the caller beforehand.
    """
    if sample_rate <= 0 or min_hz <= 0 or max_hz <= 0:
        logger.debug(f"Degenerate estimator band: sr={sample_rate} {min_hz}-{max_hz}Hz")
        return PitchEstimate.empty()

    buffer = np.asarray(samples, dtype=np.float64).reshape(-1)
    min_lag = int(math.floor(sample_rate / max_hz))
    max_lag = int(math.floor(sample_rate / min_hz))
    if max_lag <= min_lag or min_lag < 1 or buffer.size <= max_lag + 2:
        logger.debug(
            f"Cannot search lags {min_lag}-{max_lag} in a block of {buffer.size} samples"
        )
        return PitchEstimate.empty()

    differences = _difference_function(buffer, min_lag, max_lag)
    cmnd = _cumulative_mean_normalized(differences, min_lag, max_lag)

    best_lag, best_value = _pick_lag(cmnd, min_lag, max_lag, threshold)
    if best_lag < 0:
        return PitchEstimate.empty()

    refined_lag = _refine_lag(cmnd, best_lag)
    frequency_hz = sample_rate / refined_lag if refined_lag > 0 else float("nan")
    if not math.isfinite(frequency_hz) or frequency_hz <= 0:
        return PitchEstimate.empty()

    clarity = max(0.0, min(1.0, 1.0 - best_value))
    return PitchEstimate(frequency_hz=float(frequency_hz), clarity=clarity)


class YinPitchEstimator(IPitchEstimator):
    """Pure numpy YIN estimator tuned for singing voices."""

    DEFAULT_MIN_HZ: ClassVar[float] = DEFAULT_MIN_HZ
    DEFAULT_MAX_HZ: ClassVar[float] = DEFAULT_MAX_HZ

    def __init__(
        self,
        min_hz: float = DEFAULT_MIN_HZ,
        max_hz: float = DEFAULT_MAX_HZ,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> None:
        self.min_hz = float(min_hz)
        self.max_hz = float(max_hz)
        self.threshold = float(threshold)

    def estimate(self, samples: np.ndarray, sample_rate: int) -> PitchEstimate:
        return estimate(samples, sample_rate, self.min_hz, self.max_hz, self.threshold)

    def __repr__(self) -> str:
        return f"YinPitchEstimator(min_hz={self.min_hz}, max_hz={self.max_hz}, threshold={self.threshold})"
