"""Pitch Recall: real-time sung pitch tracking against an octave-free target note."""

from .detection.octave_anchor import OctaveAnchor, resolve_anchor
from .detection.pitch_estimator import YinPitchEstimator, estimate
from .detection.pitch_tracker import PitchTracker
from .hold_timer import HoldTimer
from .pitch_session import PitchSession, SessionUpdate
from .pitch_types import (
    HoldProgress,
    PitchEstimate,
    RawFrame,
    SampleBlock,
    SmoothedFrame,
    TrackerSettings,
    TrackerStatus,
)

__version__ = "0.1.0"

__all__ = [
    "HoldProgress",
    "HoldTimer",
    "OctaveAnchor",
    "PitchEstimate",
    "PitchSession",
    "PitchTracker",
    "RawFrame",
    "SampleBlock",
    "SessionUpdate",
    "SmoothedFrame",
    "TrackerSettings",
    "TrackerStatus",
    "YinPitchEstimator",
    "estimate",
    "resolve_anchor",
]
