"""Voice range selection, manual or resolved from recent singing."""

from __future__ import annotations

from collections import deque
from enum import Enum
from typing import Deque, Optional, Tuple

from ..logger import get_logger
from ..pitch_math import median

logger = get_logger(__name__)


class VoiceRange(Enum):
    """Plausible note windows for the two supported voice ranges."""

    TREBLE = "treble"  # upper range, A3-G5
    BASS = "bass"  # lower range, A2-G4

    @property
    def note_range(self) -> Tuple[int, int]:
        return VOICE_RANGE_NOTES[self]

    @property
    def description(self) -> str:
        return "Treble (A3-G5)" if self is VoiceRange.TREBLE else "Bass (A2-G4)"


VOICE_RANGE_NOTES = {
    VoiceRange.TREBLE: (57, 79),
    VoiceRange.BASS: (45, 67),
}


class VoiceMode(Enum):
    AUTO = "auto"
    TREBLE = "treble"
    BASS = "bass"


class AutoVoiceRangeResolver:
    """Picks treble or bass from the median of recently sung note numbers."""

    def __init__(
        self,
        window_ms: float = 2500.0,
        min_samples: int = 8,
        split_note: float = 62.0,
        initial: VoiceRange = VoiceRange.TREBLE,
    ) -> None:
        self.window_ms = window_ms
        self.min_samples = min_samples
        self.split_note = split_note
        self._history: Deque[Tuple[float, float]] = deque()
        self._resolved = initial

    @property
    def resolved(self) -> VoiceRange:
        return self._resolved

    def clear(self) -> None:
        self._history.clear()

    def observe(self, note_number: float, now_ms: float) -> VoiceRange:
        """Record a detected note and return the range it points to.

        Until ``min_samples`` notes fall inside the trailing window the
        previously resolved range is kept.
        """
        self._history.append((now_ms, note_number))
        while self._history and now_ms - self._history[0][0] > self.window_ms:
            self._history.popleft()

        if len(self._history) >= self.min_samples:
            center = median([note for _, note in self._history])
            self._resolved = VoiceRange.TREBLE if center >= self.split_note else VoiceRange.BASS
        return self._resolved


class VoiceRangeSelector:
    """Combines the user's voice mode with automatic resolution.

    ``update`` reports whether the effective range changed so the caller can
    clear its octave anchor.
    """

    def __init__(
        self,
        mode: VoiceMode = VoiceMode.AUTO,
        resolver: Optional[AutoVoiceRangeResolver] = None,
    ) -> None:
        self._resolver = resolver or AutoVoiceRangeResolver()
        self._mode = mode
        self._current = self._range_for_mode(mode)

    def _range_for_mode(self, mode: VoiceMode) -> VoiceRange:
        if mode is VoiceMode.AUTO:
            return self._resolver.resolved
        return VoiceRange(mode.value)

    @property
    def mode(self) -> VoiceMode:
        return self._mode

    @property
    def current(self) -> VoiceRange:
        return self._current

    def set_mode(self, mode: VoiceMode) -> None:
        """Switch mode and forget the note history used for auto resolution."""
        self._mode = mode
        self._resolver.clear()
        self._current = self._range_for_mode(mode)
        logger.info(f"Voice mode set to {mode.value} ({self._current.value})")

    def clear(self) -> None:
        self._resolver.clear()

    def update(self, note_number: Optional[float], now_ms: float) -> Tuple[VoiceRange, bool]:
        """Feed one detected note number and return ``(range, changed)``."""
        if self._mode is VoiceMode.AUTO:
            if note_number is None:
                return self._current, False
            effective = self._resolver.observe(note_number, now_ms)
        else:
            effective = VoiceRange(self._mode.value)

        changed = effective is not self._current
        if changed:
            logger.info(f"Voice range changed {self._current.value} -> {effective.value}")
            self._current = effective
        return effective, changed
