"""Pitch classes and enharmonic spelling.

A pitch class is a plain ``int`` in 0-11 (0 = C). Spellings are strings such
as ``"C#"``, ``"Db"`` or ``"F♯"``; one accidental at most is accepted.
"""

from enum import Enum
from typing import List, Optional, Tuple

from .constants import (
    DEFAULT_FLAT_PITCH_CLASSES,
    FLAT_NAMES,
    FLAT_SIGNS,
    LETTER_PITCH_CLASSES,
    LETTERS,
    SHARP_NAMES,
    SHARP_SIGNS,
)


class Accidental(Enum):
    """Accidental carried by a spelling."""

    NATURAL = "natural"
    SHARP = "sharp"
    FLAT = "flat"

    @property
    def offset(self) -> int:
        return {"natural": 0, "sharp": 1, "flat": -1}[self.value]

    @property
    def sign(self) -> str:
        return {"natural": "", "sharp": "#", "flat": "b"}[self.value]


class SpellingPreference(Enum):
    """Which enharmonic spelling to use for black-key pitch classes."""

    SHARP = "sharp"
    FLAT = "flat"

    @property
    def names(self) -> Tuple[str, ...]:
        return SHARP_NAMES if self is SpellingPreference.SHARP else FLAT_NAMES


def _accidental_for_sign(sign: str) -> Optional[Accidental]:
    if sign in SHARP_SIGNS:
        return Accidental.SHARP
    if sign in FLAT_SIGNS:
        return Accidental.FLAT
    return None


def split_note(text: str) -> Tuple[Optional[str], str]:
    """
    Split a leading note name off a string.

    Args:
        text: Text starting with a note name (e.g. "F#m7", "Bb/D")

    Returns:
        Tuple of (spelling or None, remaining text)
    """
    if not text or text[0] not in LETTER_PITCH_CLASSES:
        return None, text
    if len(text) > 1 and _accidental_for_sign(text[1]) is not None:
        return text[:2], text[2:]
    return text[0], text[1:]


def accidental_of(spelling: str) -> Accidental:
    """Get the accidental of a spelling ("C#" -> SHARP, "E" -> NATURAL)."""
    if len(spelling) > 1:
        accidental = _accidental_for_sign(spelling[1])
        if accidental is not None:
            return accidental
    return Accidental.NATURAL


def pitch_class_of(spelling: str) -> int:
    """
    Resolve a spelling to its pitch class.

    Raises:
        ValueError: If the spelling is not a letter with at most one accidental
    """
    note, rest = split_note(spelling)
    if note is None or rest:
        raise ValueError(f"Invalid note spelling: {spelling!r}")
    return (LETTER_PITCH_CLASSES[note[0]] + accidental_of(note).offset) % 12


def is_valid_spelling(spelling: str) -> bool:
    note, rest = split_note(spelling)
    return note is not None and not rest


def ascii_spelling(spelling: str) -> str:
    """Replace Unicode accidentals with '#' and 'b'."""
    return spelling[0] + accidental_of(spelling).sign


def spell(pitch_class: int, preference: SpellingPreference) -> str:
    """Spell a pitch class with the given sharp/flat preference."""
    return preference.names[pitch_class % 12]


def default_spelling(pitch_class: int) -> str:
    """Spell a pitch class using the fallback table (flats for F, Bb, Eb, Ab, Db, Gb)."""
    pc = pitch_class % 12
    return FLAT_NAMES[pc] if pc in DEFAULT_FLAT_PITCH_CLASSES else SHARP_NAMES[pc]


def spell_with_letter(letter: str, pitch_class: int) -> Optional[str]:
    """
    Spell a pitch class on a given letter, if one accidental is enough.

    ("E", 5) -> "E#", ("F", 4) -> "Fb", ("C", 7) -> None
    """
    diff = (pitch_class - LETTER_PITCH_CLASSES[letter]) % 12
    if diff == 0:
        return letter
    if diff == 1:
        return letter + "#"
    if diff == 11:
        return letter + "b"
    return None


def spellings_of(pitch_class: int) -> List[str]:
    """All single-accidental spellings of a pitch class, naturals first."""
    spellings = [
        s for s in (spell_with_letter(letter, pitch_class) for letter in LETTERS)
        if s is not None
    ]
    return sorted(spellings, key=lambda s: (len(s), accidental_of(s) is Accidental.FLAT))


def letter_index(spelling: str) -> int:
    """Index of the spelling's letter in C D E F G A B."""
    return LETTERS.index(spelling[0])


def preference_for(accidental: Accidental) -> Optional[SpellingPreference]:
    if accidental is Accidental.SHARP:
        return SpellingPreference.SHARP
    if accidental is Accidental.FLAT:
        return SpellingPreference.FLAT
    return None
