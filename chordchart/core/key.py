"""Key signatures - tonic, mode and the spelled scale of a key."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from .constants import (
    LETTERS,
    MAJOR_KEY_NAMES,
    MAJOR_SCALE,
    MINOR_KEY_NAMES,
    NATURAL_MINOR_SCALE,
)
from .pitch import (
    Accidental,
    SpellingPreference,
    accidental_of,
    default_spelling,
    letter_index,
    pitch_class_of,
    spell,
    spell_with_letter,
    split_note,
)


class Mode(Enum):
    """Musical modes supported by key detection."""
    MAJOR = "major"
    MINOR = "minor"


_MODE_WORDS = {
    "": Mode.MAJOR,
    "maj": Mode.MAJOR,
    "major": Mode.MAJOR,
    "m": Mode.MINOR,
    "-": Mode.MINOR,
    "min": Mode.MINOR,
    "minor": Mode.MINOR,
}


@dataclass(frozen=True)
class KeySignature:
    """A key: tonic pitch class plus mode.

    Equality ignores the tonic spelling, so ``C# minor == Db minor``.
    """

    tonic: int
    tonic_spelling: str = field(compare=False)
    mode: Mode = Mode.MAJOR

    @classmethod
    def parse(cls, text: str) -> "KeySignature":
        """
        Parse a key name.

        Accepts "C", "Am", "F# minor", "Bb major", "Ebmin", "D-".

        Raises:
            ValueError: If the text is not a key name
        """
        stripped = text.strip()
        note, rest = split_note(stripped)
        mode = _MODE_WORDS.get(rest.strip().lower()) if note else None
        if note is None or mode is None:
            raise ValueError(f"Invalid key: {text!r}")
        return cls(tonic=pitch_class_of(note), tonic_spelling=note, mode=mode)

    @classmethod
    def from_pitch_class(cls, tonic: int, mode: Mode = Mode.MAJOR) -> "KeySignature":
        """Build a key from a pitch class using conventional tonic spellings."""
        names = MAJOR_KEY_NAMES if mode is Mode.MAJOR else MINOR_KEY_NAMES
        return cls(tonic=tonic % 12, tonic_spelling=names[tonic % 12], mode=mode)

    @property
    def is_minor(self) -> bool:
        return self.mode is Mode.MINOR

    @property
    def name(self) -> str:
        """Long name, e.g. 'C major', 'F# minor'."""
        return f"{self.tonic_spelling} {self.mode.value}"

    @property
    def short_name(self) -> str:
        """Chord-style name, e.g. 'C', 'F#m'."""
        return self.tonic_spelling + ("m" if self.is_minor else "")

    @property
    def scale_steps(self) -> Tuple[int, ...]:
        return NATURAL_MINOR_SCALE if self.is_minor else MAJOR_SCALE

    @property
    def scale(self) -> Tuple[int, ...]:
        """Pitch classes of the scale (natural minor for minor keys)."""
        return tuple((self.tonic + step) % 12 for step in self.scale_steps)

    @property
    def scale_spellings(self) -> Tuple[str, ...]:
        """
        Spelled scale, one letter per degree.

        Degrees that would need a double accidental fall back to the
        key's leaning or the default table.
        """
        base = letter_index(self.tonic_spelling)
        spelled = []
        for degree, pc in enumerate(self.scale):
            letter = LETTERS[(base + degree) % 7]
            spelled.append(spell_with_letter(letter, pc))
        leaning = _leaning_of(s for s in spelled if s is not None)
        return tuple(
            s if s is not None else (spell(pc, leaning) if leaning else default_spelling(pc))
            for s, pc in zip(spelled, self.scale)
        )

    @property
    def leaning(self) -> Optional[SpellingPreference]:
        """Sharp or flat leaning of the key signature (None for C major / A minor)."""
        return _leaning_of(self.scale_spellings)

    @property
    def relative(self) -> "KeySignature":
        """Relative major/minor (3 semitones up from minor, down from major)."""
        if self.is_minor:
            return self._sibling((self.tonic + 3) % 12, Mode.MAJOR, 2)
        return self._sibling((self.tonic - 3) % 12, Mode.MINOR, 5)

    @property
    def parallel(self) -> "KeySignature":
        """Parallel major/minor (same tonic, other mode)."""
        other = Mode.MAJOR if self.is_minor else Mode.MINOR
        return KeySignature(self.tonic, self.tonic_spelling, other)

    def _sibling(self, tonic: int, mode: Mode, letter_steps: int) -> "KeySignature":
        letter = LETTERS[(letter_index(self.tonic_spelling) + letter_steps) % 7]
        spelling = spell_with_letter(letter, tonic)
        if spelling is None:
            return KeySignature.from_pitch_class(tonic, mode)
        return KeySignature(tonic, spelling, mode)

    def spell_degree(self, pitch_class: int) -> Optional[str]:
        """Scale spelling of a pitch class, or None if it is not in the scale."""
        for pc, spelling in zip(self.scale, self.scale_spellings):
            if pc == pitch_class % 12:
                return spelling
        return None

    def degree_of(self, spelling: str) -> Tuple[int, int]:
        """
        Scale degree of a note, measured against the major scale on the tonic.

        The degree comes from the letter distance, so spelling is preserved:
        in C, "Bb" is (7, -1) and "A#" is (6, +1).

        Returns:
            Tuple of (degree 1-7, semitone offset from the major-scale note)
        """
        degree = (letter_index(spelling) - letter_index(self.tonic_spelling)) % 7 + 1
        expected = (self.tonic + MAJOR_SCALE[degree - 1]) % 12
        offset = (pitch_class_of(spelling) - expected) % 12
        return degree, offset - 12 if offset > 6 else offset

    def spell_major_degree(self, degree: int, offset: int = 0) -> str:
        """Inverse of degree_of: spell a (degree, offset) on its scale letter."""
        letter = LETTERS[(letter_index(self.tonic_spelling) + degree - 1) % 7]
        pc = (self.tonic + MAJOR_SCALE[degree - 1] + offset) % 12
        return spell_with_letter(letter, pc) or default_spelling(pc)

    def __str__(self) -> str:
        return self.name


def _leaning_of(spellings) -> Optional[SpellingPreference]:
    sharps = flats = 0
    for spelling in spellings:
        accidental = accidental_of(spelling)
        if accidental is Accidental.SHARP:
            sharps += 1
        elif accidental is Accidental.FLAT:
            flats += 1
    if sharps > flats:
        return SpellingPreference.SHARP
    if flats > sharps:
        return SpellingPreference.FLAT
    return None
