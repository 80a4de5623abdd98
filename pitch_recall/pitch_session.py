"""A pitch recall practice session.

``PitchSession`` is the consumer of the tracking core: once per display
refresh it reads a smoothed frame for the current target, keeps the octave
anchor and voice range up to date, runs the hold timer and turns the result
into a ``SessionUpdate`` that any front end can render.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from .core.events import SessionEvents
from .detection.octave_anchor import OctaveAnchor
from .detection.pitch_tracker import PitchTracker, monotonic_ms
from .detection.voice_range import VoiceMode, VoiceRange, VoiceRangeSelector
from .hold_timer import HoldTimer
from .logger import get_logger
from .notes import DEFAULT_NOTES, NoteDefinition
from .pitch_math import matches_pitch_class, pitch_class_to_label
from .pitch_types import TrackerStatus

logger = get_logger(__name__)

DISPLAY_RANGE_CENTS = 600.0
DEFAULT_HOLD_SECONDS = 5.0
DEFAULT_CENTS_TOLERANCE = 35.0
MIN_CENTS_TOLERANCE = 10.0
MAX_CENTS_TOLERANCE = 80.0
DEFAULT_WRONG_NOTE_COOLDOWN_MS = 3000.0

ORDERS = ("random", "sequential")


@dataclass(frozen=True)
class SessionUpdate:
    """Everything a front end needs to draw one refresh."""

    status_text: str
    line_offset_cents: float
    mic_level: float
    in_tune: bool
    has_pitch: bool
    guidance: Optional[str]  # 'higher', 'lower' or None
    progress: float
    elapsed_seconds: float
    success: bool
    just_succeeded: bool = False
    detected_pitch_class: Optional[int] = None
    voice_range: Optional[VoiceRange] = None


class PitchSession:
    """Practice loop: sing the target pitch class in tune for long enough."""

    def __init__(
        self,
        tracker: PitchTracker,
        notes: Optional[Sequence[NoteDefinition]] = None,
        hold_seconds: float = DEFAULT_HOLD_SECONDS,
        cents_tolerance: float = DEFAULT_CENTS_TOLERANCE,
        voice_mode: VoiceMode = VoiceMode.AUTO,
        order: str = "random",
        clock: Optional[Callable[[], float]] = None,
        rng: Optional[random.Random] = None,
        wrong_note_cooldown_ms: float = DEFAULT_WRONG_NOTE_COOLDOWN_MS,
        events: Optional[SessionEvents] = None,
    ) -> None:
        """Initialize the session.

        Args:
            tracker: Tracker fed by the audio callback
            notes: Target catalogue, the twelve chromatic notes if None
            hold_seconds: Continuous in-tune time needed for success
            cents_tolerance: Maximum tuning error still counted as in tune
            voice_mode: Voice range mode (auto, treble or bass)
            order: 'random' or 'sequential' target order
            clock: Millisecond clock used when step() gets no timestamp
            rng: Random source for random order
            wrong_note_cooldown_ms: Minimum gap between wrong-note events
            events: Emitter for session events, a new one if None
        """
        if order not in ORDERS:
            raise ValueError(f"order must be one of {ORDERS}, got {order!r}")
        self.notes: List[NoteDefinition] = list(notes) if notes else list(DEFAULT_NOTES)
        self.tracker = tracker
        self.order = order
        self.events = events or SessionEvents()
        self.wrong_note_cooldown_ms = wrong_note_cooldown_ms

        self._clock = clock or monotonic_ms
        self._rng = rng or random.Random()
        self._hold_timer = HoldTimer()
        self._anchor = OctaveAnchor()
        self._voice = VoiceRangeSelector(voice_mode)
        self._target_index = 0
        self._cooldown_until_ms: Optional[float] = None

        self._hold_seconds = DEFAULT_HOLD_SECONDS
        self._cents_tolerance = DEFAULT_CENTS_TOLERANCE
        self.hold_seconds = hold_seconds
        self.cents_tolerance = cents_tolerance

        logger.debug(
            f"PitchSession initialized with {len(self.notes)} notes, "
            f"hold={self._hold_seconds:.1f}s, tolerance={self._cents_tolerance:.0f} cents"
        )

    # Settings

    @property
    def hold_seconds(self) -> float:
        return self._hold_seconds

    @hold_seconds.setter
    def hold_seconds(self, value: float) -> None:
        value = float(value)
        self._hold_seconds = max(1.0, value) if math.isfinite(value) else DEFAULT_HOLD_SECONDS

    @property
    def cents_tolerance(self) -> float:
        return self._cents_tolerance

    @cents_tolerance.setter
    def cents_tolerance(self, value: float) -> None:
        value = float(value)
        if not math.isfinite(value):
            self._cents_tolerance = DEFAULT_CENTS_TOLERANCE
        else:
            self._cents_tolerance = min(MAX_CENTS_TOLERANCE, max(MIN_CENTS_TOLERANCE, value))

    @property
    def voice_mode(self) -> VoiceMode:
        return self._voice.mode

    @property
    def voice_range(self) -> VoiceRange:
        return self._voice.current

    @property
    def anchor(self) -> Optional[int]:
        return self._anchor.anchor

    @property
    def cooldown_until_ms(self) -> Optional[float]:
        return self._cooldown_until_ms

    def set_voice_mode(self, mode: VoiceMode) -> None:
        self._voice.set_mode(mode)
        self._anchor.reset()

    # Targets

    @property
    def target(self) -> NoteDefinition:
        return self.notes[self._target_index]

    def select_target(self, index: int) -> NoteDefinition:
        """Jump to a specific catalogue entry."""
        if not 0 <= index < len(self.notes):
            raise IndexError(f"Target index {index} out of range")
        old_target = self.target
        self._target_index = index
        self._clear_progress()
        logger.debug(f"New target note: {self.target.label} (was: {old_target.label})")
        self.events.emit_target_changed(self.target)
        return self.target

    def next_target(self) -> NoteDefinition:
        """Advance to the next target; random order never repeats the current note."""
        count = len(self.notes)
        if self.order == "sequential":
            index = (self._target_index + 1) % count
        elif count <= 1:
            index = 0
        else:
            index = self._rng.randrange(count - 1)
            if index >= self._target_index:
                index += 1
        return self.select_target(index)

    def _clear_progress(self) -> None:
        self._hold_timer.reset()
        self._anchor.reset()
        self._voice.clear()
        self._cooldown_until_ms = None

    def reset(self) -> None:
        """Forget tracker history and all per-target progress."""
        self.tracker.reset()
        self._clear_progress()

    # Per refresh

    def _no_pitch_update(self, status_text: str, rms: float, now_ms: float) -> SessionUpdate:
        hold = self._hold_timer.update(False, now_ms, self._hold_seconds * 1000.0)
        return SessionUpdate(
            status_text=status_text,
            line_offset_cents=0.0,
            mic_level=rms,
            in_tune=False,
            has_pitch=False,
            guidance=None,
            progress=hold.progress,
            elapsed_seconds=0.0,
            success=hold.success,
            voice_range=self._voice.current,
        )

    def _maybe_signal_wrong_note(self, detected_pitch_class: int, now_ms: float) -> None:
        if self._cooldown_until_ms is not None and now_ms < self._cooldown_until_ms:
            return
        self._cooldown_until_ms = now_ms + self.wrong_note_cooldown_ms
        logger.info(
            f"Wrong note: sang {pitch_class_to_label(detected_pitch_class)}, "
            f"target {self.target.label}"
        )
        self.events.emit_wrong_note(detected_pitch_class, self.target)

    def step(self, now_ms: Optional[float] = None) -> SessionUpdate:
        """Evaluate one display refresh.

        Args:
            now_ms: Current time, taken from the clock if None

        Returns:
            SessionUpdate describing what to show
        """
        if now_ms is None:
            now_ms = self._clock()

        target = self.target
        frame = self.tracker.get_smoothed_frame(target.pitch_class, now_ms)

        if frame.status is TrackerStatus.TOO_QUIET:
            return self._no_pitch_update("Too quiet", frame.rms, now_ms)
        if frame.frequency_hz is None or frame.note_number is None:
            return self._no_pitch_update("No pitch detected", frame.rms, now_ms)

        detected = frame.note_number
        cents = frame.cents_from_target or 0.0

        voice_range, changed = self._voice.update(detected, now_ms)
        if changed:
            self._anchor.reset()

        self._anchor.update(detected, target.pitch_class, voice_range.note_range)
        line_offset = self._anchor.visual_cents(detected) or 0.0

        matched = frame.pitch_class is not None and matches_pitch_class(
            frame.pitch_class, target.pitch_class
        )
        in_tune = matched and abs(cents) <= self._cents_tolerance

        hold = self._hold_timer.update(in_tune, now_ms, self._hold_seconds * 1000.0)

        guidance: Optional[str] = None
        if hold.just_succeeded:
            status_text = "Success!"
            self.events.emit_success(target, hold.elapsed_ms)
        elif in_tune:
            remaining = self._hold_seconds - hold.elapsed_ms / 1000.0
            status_text = f"Hold it... {remaining:.1f}s"
        elif frame.pitch_class is not None and not matched:
            status_text = (
                f"Detected {pitch_class_to_label(frame.pitch_class)}. Target is {target.label}."
            )
            self._maybe_signal_wrong_note(frame.pitch_class, now_ms)
        elif abs(cents) > DISPLAY_RANGE_CENTS:
            guidance = "lower" if cents > 0 else "higher"
            status_text = f"Outside range: sing {guidance}"
        else:
            status_text = "Listening..."

        if hold.success and not hold.just_succeeded:
            status_text = "Success!"

        return SessionUpdate(
            status_text=status_text,
            line_offset_cents=line_offset,
            mic_level=frame.rms,
            in_tune=in_tune,
            has_pitch=True,
            guidance=guidance,
            progress=hold.progress,
            elapsed_seconds=hold.elapsed_ms / 1000.0,
            success=hold.success,
            just_succeeded=hold.just_succeeded,
            detected_pitch_class=frame.pitch_class,
            voice_range=voice_range,
        )
