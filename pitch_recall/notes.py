"""Catalogue of target notes."""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from .logger import get_logger
from .pitch_math import PITCH_CLASS_LABELS, validate_pitch_class

logger = get_logger(__name__)


@dataclass(frozen=True)
class NoteDefinition:
    """A target note as shown to the singer."""

    label: str  # e.g. 'C#/Db'
    pitch_class: int  # 0-11, C=0
    hex: str  # Display colour, e.g. '#ff0000'
    bell_png: Optional[str] = None
    sample_path: Optional[str] = None


_DEFAULT_COLORS = (
    "#e53935",
    "#f4511e",
    "#fb8c00",
    "#fdd835",
    "#c0ca33",
    "#43a047",
    "#00897b",
    "#00acc1",
    "#1e88e5",
    "#3949ab",
    "#8e24aa",
    "#d81b60",
)

DEFAULT_NOTES: List[NoteDefinition] = [
    NoteDefinition(label=label, pitch_class=pc, hex=_DEFAULT_COLORS[pc])
    for pc, label in enumerate(PITCH_CLASS_LABELS)
]


def load_notes(path: Union[str, Path]) -> List[NoteDefinition]:
    """Load a note catalogue from JSON.

    The file maps labels to ``{"pitchClass", "hex", "bellPng", "sampleMp3"}``
    objects; only ``pitchClass`` and ``hex`` are required.

    Raises:
        ValueError: If the file is not a mapping or an entry is malformed
    """
    path = Path(path)
    with open(path, "r") as f:
        raw = json.load(f)

    if not isinstance(raw, dict):
        raise ValueError(f"{path}: expected an object mapping labels to notes")

    notes: List[NoteDefinition] = []
    for label, entry in raw.items():
        if not isinstance(entry, dict) or "pitchClass" not in entry or "hex" not in entry:
            raise ValueError(f"{path}: note '{label}' needs 'pitchClass' and 'hex'")
        notes.append(
            NoteDefinition(
                label=label,
                pitch_class=validate_pitch_class(entry["pitchClass"]),
                hex=str(entry["hex"]),
                bell_png=entry.get("bellPng"),
                sample_path=entry.get("sampleMp3"),
            )
        )

    if not notes:
        raise ValueError(f"{path}: no notes found")
    logger.info(f"Loaded {len(notes)} notes from {path}")
    return notes


def find_note(notes: List[NoteDefinition], label: str) -> NoteDefinition:
    """Look a note up by label, also accepting either half of 'C#/Db'.

    Raises:
        ValueError: If no note matches
    """
    wanted = label.strip().lower()
    for note in notes:
        names = [note.label.lower()] + [part.lower() for part in note.label.split("/")]
        if wanted in names:
            return note
    raise ValueError(f"No note labelled {label!r}")


def normalize_asset_path(path: str, base: str = "/") -> str:
    """Join an asset path onto ``base`` without doubling the slash."""
    if not base.endswith("/"):
        base = base + "/"
    clean_path = path[1:] if path.startswith("/") else path
    return f"{base}{clean_path}"
