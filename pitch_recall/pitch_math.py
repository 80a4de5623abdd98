"""Utility functions for working with pitch, note numbers and pitch classes.

Pitch is expressed as a MIDI note number in twelve-tone equal temperament,
referenced to A4 = 440 Hz = note 69. Note numbers may be fractional; the
fractional part is the tuning offset in semitones.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

A4_FREQUENCY = 440.0
A4_NOTE_NUMBER = 69

PITCH_CLASS_LABELS = (
    "C",
    "C#/Db",
    "D",
    "D#/Eb",
    "E",
    "F",
    "F#/Gb",
    "G",
    "G#/Ab",
    "A",
    "A#/Bb",
    "B",
)

NOTE_NAMES_SHARPS = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]
NOTE_NAMES_FLATS = ["C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B"]


@dataclass(frozen=True)
class PitchStats:
    """Decomposition of a frequency into note number and tuning offset."""

    note_number: float
    rounded_note_number: int
    pitch_class: int
    cents_from_rounded: float


def _require_finite(value: float, name: str) -> float:
    value = float(value)
    if not math.isfinite(value):
        raise ValueError(f"{name} must be finite, got {value!r}")
    return value


def hz_to_note_number(frequency_hz: float) -> float:
    """Convert a frequency in Hz to a fractional MIDI note number.

    Raises:
        ValueError: If the frequency is not a positive finite number
    """
    frequency_hz = _require_finite(frequency_hz, "frequency_hz")
    if frequency_hz <= 0:
        raise ValueError(f"frequency_hz must be positive, got {frequency_hz}")
    return A4_NOTE_NUMBER + 12.0 * float(np.log2(frequency_hz / A4_FREQUENCY))


def note_number_to_hz(note_number: float) -> float:
    """Convert a (fractional) MIDI note number to a frequency in Hz."""
    note_number = _require_finite(note_number, "note_number")
    return A4_FREQUENCY * 2.0 ** ((note_number - A4_NOTE_NUMBER) / 12.0)


def pitch_class(note_number: float) -> int:
    """Return the pitch class (0-11, C=0) of the nearest semitone."""
    rounded = round(_require_finite(note_number, "note_number"))
    return ((rounded % 12) + 12) % 12


def validate_pitch_class(value: int) -> int:
    """Return ``value`` as an int, rejecting anything outside 0-11.

    Raises:
        ValueError: If ``value`` is not an integer pitch class
    """
    if isinstance(value, bool) or not float(value).is_integer():
        raise ValueError(f"Pitch class must be an integer in [0, 11], got {value!r}")
    value = int(value)
    if not 0 <= value <= 11:
        raise ValueError(f"Pitch class must be an integer in [0, 11], got {value!r}")
    return value


def analyze_pitch(frequency_hz: float) -> PitchStats:
    """Split a frequency into note number, pitch class and cents offset."""
    note_number = hz_to_note_number(frequency_hz)
    rounded = round(note_number)
    return PitchStats(
        note_number=note_number,
        rounded_note_number=rounded,
        pitch_class=((rounded % 12) + 12) % 12,
        cents_from_rounded=(note_number - rounded) * 100.0,
    )


def nearest_target_note_number(detected_note_number: float, target_pitch_class: int) -> int:
    """Return the octave-equivalent of the target pitch class closest to what was sung.

    Args:
        detected_note_number: Fractional note number that was detected
        target_pitch_class: Pitch class of the target (0-11)

    Returns:
        Note number of the nearest note with the target pitch class
    """
    rounded = round(_require_finite(detected_note_number, "detected_note_number"))
    rounded_pc = ((rounded % 12) + 12) % 12

    diff = target_pitch_class - rounded_pc
    if diff > 6:
        diff -= 12
    if diff < -6:
        diff += 12

    return rounded + diff


def cents_from_nearest_target(detected_note_number: float, target_pitch_class: int) -> float:
    """Signed tuning error in cents against the nearest octave of the target."""
    nearest = nearest_target_note_number(detected_note_number, target_pitch_class)
    return (detected_note_number - nearest) * 100.0


def matches_pitch_class(detected_pitch_class: int, target_pitch_class: int) -> bool:
    """Octave-insensitive comparison of two pitch classes."""
    return ((detected_pitch_class % 12) + 12) % 12 == ((target_pitch_class % 12) + 12) % 12


def pitch_class_to_label(value: int) -> str:
    """Return the display label of a pitch class, e.g. 'C#/Db'."""
    return PITCH_CLASS_LABELS[((value % 12) + 12) % 12]


def label_to_pitch_class(label: str) -> int:
    """Parse a note label such as 'A', 'Bb', 'C#' or 'C#/Db' into a pitch class.

    Raises:
        ValueError: If the label is not a recognised note name
    """
    cleaned = label.strip()
    if cleaned in PITCH_CLASS_LABELS:
        return PITCH_CLASS_LABELS.index(cleaned)
    name = cleaned[:1].upper() + cleaned[1:]
    if name in NOTE_NAMES_SHARPS:
        return NOTE_NAMES_SHARPS.index(name)
    if name in NOTE_NAMES_FLATS:
        return NOTE_NAMES_FLATS.index(name)
    raise ValueError(f"Unknown note label: {label!r}")


def get_note_name(freq: float, use_flats: bool = False) -> str:
    """Convert frequency to note name using Scientific Pitch Notation (SPN).

    Args:
        freq: Frequency in Hz
        use_flats: If True, use flat notes (e.g., 'Bb') instead of sharps (e.g., 'A#')

    Returns:
        Note name with octave in SPN (e.g., 'A4', 'C#4', 'Bb3'), or '---'
        for non-positive input
    """
    if not freq or freq <= 0 or not math.isfinite(freq):
        return "---"

    midi_number = A4_NOTE_NUMBER + int(round(12 * float(np.log2(freq / A4_FREQUENCY))))

    # SPN octave calculation (C4 is middle C)
    octave = (midi_number // 12) - 1
    note_idx = midi_number % 12

    names = NOTE_NAMES_FLATS if use_flats else NOTE_NAMES_SHARPS
    return f"{names[note_idx]}{octave}"


def median(values: Sequence[float]) -> float:
    """Median of ``values``; 0.0 for an empty sequence."""
    if not len(values):
        return 0.0
    return float(np.median(np.asarray(values, dtype=np.float64)))
