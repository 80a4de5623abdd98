"""Stable octave selection for displaying a detected pitch against a target.

The same pitch class exists in several octaves of a singer's range. Picking
the nearest one every frame flickers whenever the sung pitch drifts across
the midpoint between two of them, so the chosen octave (the anchor) is only
abandoned when another candidate is closer by a clear margin.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from ..logger import get_logger

logger = get_logger(__name__)

HYSTERESIS_CENTS = 280.0

NoteRange = Tuple[int, int]


def pitch_class_candidates(target_pitch_class: int, min_note: int, max_note: int) -> List[int]:
    """All note numbers in ``[min_note, max_note]`` with the target pitch class."""
    return [
        note
        for note in range(int(min_note), int(max_note) + 1)
        if ((note % 12) + 12) % 12 == target_pitch_class
    ]


def closest_candidate(detected_note_number: float, candidates: Sequence[int]) -> int:
    """Candidate nearest to the detected note; the lower one wins ties.

    Falls back to the rounded detected note when there are no candidates.
    """
    if not candidates:
        return round(detected_note_number)
    return min(candidates, key=lambda candidate: abs(candidate - detected_note_number))


def visual_cents(detected_note_number: float, anchor: int) -> float:
    """Signed offset of the detected pitch from the anchor note, in cents."""
    return (detected_note_number - anchor) * 100.0


def resolve_anchor(
    detected_note_number: float,
    target_pitch_class: int,
    note_range: NoteRange,
    previous_anchor: Optional[int],
    hysteresis_cents: float = HYSTERESIS_CENTS,
) -> int:
    """Choose the reference note for the target pitch class.

    Args:
        detected_note_number: Fractional note number currently sung
        target_pitch_class: Pitch class of the target (0-11)
        note_range: Inclusive (min, max) note numbers of the voice range
        previous_anchor: Anchor held from the previous frame, or None
        hysteresis_cents: Margin a new candidate must win by

    Returns:
        Note number to use as the anchor for this frame
    """
    min_note, max_note = note_range
    candidates = pitch_class_candidates(target_pitch_class, min_note, max_note)
    best = closest_candidate(detected_note_number, candidates)

    if previous_anchor is None or previous_anchor not in candidates:
        return best
    if best == previous_anchor:
        return previous_anchor

    current_distance = abs(visual_cents(detected_note_number, previous_anchor))
    best_distance = abs(visual_cents(detected_note_number, best))
    if best_distance + hysteresis_cents < current_distance:
        return best
    return previous_anchor


class OctaveAnchor:
    """Holds the anchor for one consumer across frames.

    The anchor is dropped automatically when the target pitch class or the
    voice range differs from the previous call, and by ``reset``.
    """

    def __init__(self, hysteresis_cents: float = HYSTERESIS_CENTS) -> None:
        self.hysteresis_cents = hysteresis_cents
        self._anchor: Optional[int] = None
        self._target_pitch_class: Optional[int] = None
        self._note_range: Optional[NoteRange] = None

    @property
    def anchor(self) -> Optional[int]:
        return self._anchor

    def reset(self) -> None:
        self._anchor = None

    def update(
        self, detected_note_number: float, target_pitch_class: int, note_range: NoteRange
    ) -> int:
        """Resolve the anchor for this frame and remember it."""
        note_range = (int(note_range[0]), int(note_range[1]))
        if target_pitch_class != self._target_pitch_class or note_range != self._note_range:
            self._anchor = None
            self._target_pitch_class = target_pitch_class
            self._note_range = note_range

        anchor = resolve_anchor(
            detected_note_number,
            target_pitch_class,
            note_range,
            self._anchor,
            self.hysteresis_cents,
        )
        if anchor != self._anchor:
            logger.debug(f"Octave anchor {self._anchor} -> {anchor} (detected {detected_note_number:.2f})")
        self._anchor = anchor
        return anchor

    def visual_cents(self, detected_note_number: float) -> Optional[float]:
        """Offset from the held anchor, None before an anchor was chosen."""
        if self._anchor is None:
            return None
        return visual_cents(detected_note_number, self._anchor)
