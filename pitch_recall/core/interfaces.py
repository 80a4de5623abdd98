"""Defines the core interfaces for the Pitch Recall application."""

from __future__ import annotations
from abc import ABC, abstractmethod

import numpy as np

from ..pitch_types import PitchEstimate


class IPitchEstimator(ABC):
    """Interface for per-frame fundamental frequency estimators."""

    min_hz: float
    max_hz: float

    @abstractmethod
    def estimate(self, samples: np.ndarray, sample_rate: int) -> PitchEstimate:
        """Estimate the fundamental frequency and clarity of one sample block.

        Implementations never raise for degenerate blocks; they report
        ``PitchEstimate.empty()`` instead.
        """
        pass
