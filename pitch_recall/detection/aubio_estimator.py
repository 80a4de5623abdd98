"""Pitch estimation backed by aubio's pitch detectors."""

from __future__ import annotations

from typing import Optional, Tuple

import aubio
import numpy as np

from ..core.interfaces import IPitchEstimator
from ..logger import get_logger
from ..pitch_types import PitchEstimate
from .pitch_estimator import DEFAULT_MAX_HZ, DEFAULT_MIN_HZ

logger = get_logger(__name__)


class AubioPitchEstimator(IPitchEstimator):
    """Estimator using ``aubio.pitch``.

    aubio detectors are bound to a fixed block size and sample rate, so the
    detector is rebuilt whenever either changes between calls.
    """

    def __init__(
        self,
        method: str = "yin",
        min_hz: float = DEFAULT_MIN_HZ,
        max_hz: float = DEFAULT_MAX_HZ,
        tolerance: float = 0.15,
    ) -> None:
        """Initialize the estimator.

        Args:
            method: aubio pitch method ("yin", "yinfft", "yinfast", ...)
            min_hz: Readings below this are reported as no pitch
            max_hz: Readings above this are reported as no pitch
            tolerance: aubio pitch detection tolerance (0.0 to 1.0)
        """
        if not 0.0 <= tolerance <= 1.0:
            raise ValueError("Tolerance must be between 0.0 and 1.0")
        self.method = method
        self.min_hz = float(min_hz)
        self.max_hz = float(max_hz)
        self._tolerance = tolerance
        self._detector: Optional[aubio.pitch] = None
        self._detector_key: Optional[Tuple[int, int]] = None

    def _get_detector(self, block_size: int, sample_rate: int) -> aubio.pitch:
        key = (block_size, sample_rate)
        if self._detector is None or self._detector_key != key:
            logger.info(
                f"Creating aubio '{self.method}' detector: block={block_size}, rate={sample_rate}Hz"
            )
            detector = aubio.pitch(self.method, block_size, block_size, sample_rate)
            detector.set_unit("Hz")
            detector.set_tolerance(self._tolerance)
            self._detector = detector
            self._detector_key = key
        return self._detector

    def estimate(self, samples: np.ndarray, sample_rate: int) -> PitchEstimate:
        block = np.ascontiguousarray(np.asarray(samples).reshape(-1), dtype=np.float32)
        if block.size == 0 or sample_rate <= 0:
            return PitchEstimate.empty()

        detector = self._get_detector(block.size, int(sample_rate))
        pitch = float(detector(block)[0])
        confidence = float(detector.get_confidence())
        clarity = max(0.0, min(1.0, confidence))

        if pitch <= 0 or pitch < self.min_hz or pitch > self.max_hz:
            return PitchEstimate(frequency_hz=None, clarity=clarity)
        return PitchEstimate(frequency_hz=pitch, clarity=clarity)
