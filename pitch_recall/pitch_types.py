"""Type definitions for the Pitch Recall project."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Optional

import numpy as np


class TrackerStatus(Enum):
    """Classification of a single audio frame."""

    IDLE = "idle"
    LISTENING = "listening"
    TOO_QUIET = "too_quiet"
    NO_PITCH = "no_pitch"
    LOW_CONFIDENCE = "low_confidence"


@dataclass
class SampleBlock:
    """One buffer of mono audio as delivered by the capture callback."""

    samples: np.ndarray  # Float samples normalised to +-1
    sample_rate: int  # Hz


@dataclass(frozen=True)
class PitchEstimate:
    """Result of running the pitch estimator over one SampleBlock."""

    frequency_hz: Optional[float]  # None when no periodic signal was found
    clarity: float  # 0-1, how periodic the block looked

    @classmethod
    def empty(cls) -> "PitchEstimate":
        return cls(frequency_hz=None, clarity=0.0)


@dataclass(frozen=True)
class RawFrame:
    """A classified audio frame kept in the tracker history."""

    timestamp_ms: float
    status: TrackerStatus
    frequency_hz: Optional[float]
    clarity: float
    rms: float


@dataclass(frozen=True)
class SmoothedFrame:
    """Median-smoothed view over the trailing window of raw frames."""

    timestamp_ms: float
    status: TrackerStatus
    frequency_hz: Optional[float]
    clarity: float
    rms: float
    note_number: Optional[float] = None  # Fractional MIDI note number
    pitch_class: Optional[int] = None  # 0-11, C=0
    cents_from_target: Optional[float] = None  # Octave-invariant tuning error

    @property
    def has_pitch(self) -> bool:
        return self.frequency_hz is not None


@dataclass(frozen=True)
class TrackerSettings:
    """Tunable thresholds for the pitch tracker."""

    rms_threshold: float = 0.01
    clarity_threshold: float = 0.5
    smoothing_window_ms: float = 200.0

    def merged(self, **partial: Any) -> "TrackerSettings":
        """Return a copy with ``partial`` applied.

        Raises:
            ValueError: If ``partial`` names a setting that does not exist
        """
        known = {f.name for f in fields(self)}
        unknown = set(partial) - known
        if unknown:
            raise ValueError(f"Unknown tracker settings: {sorted(unknown)}")
        updates = {k: float(v) for k, v in partial.items() if v is not None}
        return replace(self, **updates)


@dataclass(frozen=True)
class HoldProgress:
    """Snapshot reported by the hold timer after each update."""

    progress: float  # 0-1
    elapsed_ms: float
    success: bool
    just_succeeded: bool
