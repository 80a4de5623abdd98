"""Frame classification and median smoothing of pitch estimates."""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Callable, Deque, Optional, Tuple

import numpy as np

from ..core.interfaces import IPitchEstimator
from ..logger import get_logger
from ..pitch_math import analyze_pitch, cents_from_nearest_target, median, validate_pitch_class
from ..pitch_types import (
    PitchEstimate,
    RawFrame,
    SampleBlock,
    SmoothedFrame,
    TrackerSettings,
    TrackerStatus,
)
from .pitch_estimator import YinPitchEstimator, compute_rms

logger = get_logger(__name__)

# History is kept for at least this long regardless of the smoothing window
MIN_HISTORY_MS = 1200.0


def monotonic_ms() -> float:
    """Default clock for the tracker and session, in milliseconds."""
    return time.perf_counter() * 1000.0


class PitchTracker:
    """Classifies incoming audio frames and serves smoothed pitch readings.

    ``ingest`` is called from the audio callback thread and
    ``get_smoothed_frame`` from the display loop. The history is written by
    that single producer under a lock, and readers smooth over an immutable
    snapshot, so a frame is either fully visible or not at all.
    """

    def __init__(
        self,
        settings: Optional[TrackerSettings] = None,
        estimator: Optional[IPitchEstimator] = None,
        clock: Optional[Callable[[], float]] = None,
        min_hz: float = YinPitchEstimator.DEFAULT_MIN_HZ,
        max_hz: float = YinPitchEstimator.DEFAULT_MAX_HZ,
    ) -> None:
        """Initialize the tracker.

        Args:
            settings: Thresholds and smoothing window, defaults if None
            estimator: Pitch estimator, a YinPitchEstimator if None
            clock: Millisecond clock used when callers omit timestamps
            min_hz: Lowest frequency searched by the default estimator
            max_hz: Highest frequency searched by the default estimator
        """
        self._settings = settings or TrackerSettings()
        self._estimator = estimator or YinPitchEstimator(min_hz=min_hz, max_hz=max_hz)
        self._clock = clock or monotonic_ms
        self._lock = threading.Lock()
        self._history: Deque[RawFrame] = deque()
        self._latest = self._idle_frame(0.0)

        logger.info(f"Pitch tracker initialized: {self._settings}, estimator={self._estimator!r}")

    @staticmethod
    def _idle_frame(timestamp_ms: float) -> RawFrame:
        return RawFrame(
            timestamp_ms=timestamp_ms,
            status=TrackerStatus.IDLE,
            frequency_hz=None,
            clarity=0.0,
            rms=0.0,
        )

    @property
    def settings(self) -> TrackerSettings:
        return self._settings

    @property
    def estimator(self) -> IPitchEstimator:
        return self._estimator

    @property
    def latest(self) -> RawFrame:
        """The most recently classified frame (IDLE before the first one)."""
        return self._latest

    def update_settings(self, **partial) -> None:
        """Apply new settings; they take effect on the next frame.

        Raises:
            ValueError: If an unknown setting is given
        """
        self._settings = self._settings.merged(**partial)
        logger.debug(f"Tracker settings updated: {self._settings}")

    def classify(
        self, rms: float, estimate: Optional[PitchEstimate], timestamp_ms: float
    ) -> RawFrame:
        """Turn a level reading and an estimate into a RawFrame.

        ``estimate`` is only consulted when the block is loud enough. A loud
        block without an estimate is reported as NO_PITCH.
        """
        settings = self._settings
        if rms < settings.rms_threshold:
            return RawFrame(timestamp_ms, TrackerStatus.TOO_QUIET, None, 0.0, rms)
        if estimate is None:
            return RawFrame(timestamp_ms, TrackerStatus.NO_PITCH, None, 0.0, rms)
        if estimate.frequency_hz is None:
            return RawFrame(timestamp_ms, TrackerStatus.NO_PITCH, None, estimate.clarity, rms)
        if estimate.clarity < settings.clarity_threshold:
            return RawFrame(
                timestamp_ms, TrackerStatus.LOW_CONFIDENCE, None, estimate.clarity, rms
            )
        return RawFrame(
            timestamp_ms,
            TrackerStatus.LISTENING,
            estimate.frequency_hz,
            estimate.clarity,
            rms,
        )

    def ingest(self, block: SampleBlock, timestamp_ms: Optional[float] = None) -> RawFrame:
        """Classify one sample block and append it to the history.

        Args:
            block: Mono samples and their sample rate
            timestamp_ms: Capture time, taken from the clock if None

        Returns:
            The classified frame

        Raises:
            ValueError: If the block contains NaN or infinite samples
        """
        if timestamp_ms is None:
            timestamp_ms = self._clock()

        samples = np.asarray(block.samples, dtype=np.float64).reshape(-1)
        if not np.all(np.isfinite(samples)):
            raise ValueError("Sample block contains non-finite values")
        rms = compute_rms(samples)

        estimate: Optional[PitchEstimate] = None
        if rms >= self._settings.rms_threshold:
            estimate = self._estimator.estimate(samples, block.sample_rate)

        frame = self.classify(rms, estimate, timestamp_ms)
        self._push_frame(frame)
        return frame

    def _push_frame(self, frame: RawFrame) -> None:
        keep_ms = max(MIN_HISTORY_MS, self._settings.smoothing_window_ms * 3)
        keep_after = frame.timestamp_ms - keep_ms
        with self._lock:
            self._history.append(frame)
            while self._history and self._history[0].timestamp_ms < keep_after:
                self._history.popleft()
            self._latest = frame

    def snapshot(self) -> Tuple[RawFrame, ...]:
        """Immutable copy of the current history, oldest first."""
        with self._lock:
            return tuple(self._history)

    def get_smoothed_frame(
        self, target_pitch_class: int, now_ms: Optional[float] = None
    ) -> SmoothedFrame:
        """Median-smoothed reading over the trailing smoothing window.

        Args:
            target_pitch_class: Pitch class (0-11) the cents are measured against
            now_ms: End of the window, taken from the clock if None

        Returns:
            SmoothedFrame; pitch fields are None when the window has no
            frame carrying a frequency

        Raises:
            ValueError: If target_pitch_class is not in 0-11
        """
        target_pitch_class = validate_pitch_class(target_pitch_class)
        if now_ms is None:
            now_ms = self._clock()

        with self._lock:
            history = tuple(self._history)
            latest = self._latest

        window_start = now_ms - self._settings.smoothing_window_ms
        recent = [f for f in history if window_start <= f.timestamp_ms <= now_ms]

        if not recent:
            return SmoothedFrame(
                timestamp_ms=now_ms,
                status=latest.status,
                frequency_hz=None,
                clarity=0.0,
                rms=0.0,
            )

        valid = [f for f in recent if f.frequency_hz is not None]
        if not valid:
            last = recent[-1]
            return SmoothedFrame(
                timestamp_ms=now_ms,
                status=last.status,
                frequency_hz=None,
                clarity=last.clarity,
                rms=last.rms,
            )

        smoothed_frequency = median([f.frequency_hz for f in valid])
        pitch = analyze_pitch(smoothed_frequency)
        clarity = sum(f.clarity for f in valid) / len(valid)
        rms = sum(f.rms for f in valid) / len(valid)

        return SmoothedFrame(
            timestamp_ms=now_ms,
            status=TrackerStatus.LISTENING,
            frequency_hz=smoothed_frequency,
            clarity=clarity,
            rms=rms,
            note_number=pitch.note_number,
            pitch_class=pitch.pitch_class,
            cents_from_target=cents_from_nearest_target(pitch.note_number, target_pitch_class),
        )

    def reset(self) -> None:
        """Forget all history; no capture resource is touched."""
        with self._lock:
            self._history.clear()
            self._latest = self._idle_frame(self._clock())
        logger.debug("Tracker history cleared")
