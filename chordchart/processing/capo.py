"""Capo math - Shape/sounding conversion and capo suggestions for guitarists.

A capo on fret N raises every open shape by N semitones:
``apply_capo(shape, N)`` gives the sounding chord and ``remove_capo``
goes back from the sounding chord to the shape to play.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional, Sequence

import numpy as np

from ..core.chord import ChordQuality, ChordSymbol, Extension, render_chord
from ..core.constants import MAX_CAPO_FRET
from ..core.key import KeySignature
from .transpose import transpose, transpose_key


def _check_fret(capo_fret: int):
    if not 0 <= capo_fret <= MAX_CAPO_FRET:
        raise ValueError(f"Capo fret must be between 0 and {MAX_CAPO_FRET}, got {capo_fret}")


def apply_capo(
    chord: ChordSymbol,
    capo_fret: int,
    key_hint: Optional[KeySignature] = None,
) -> ChordSymbol:
    """
    Chord that sounds when a shape is played with a capo.

    Args:
        chord: Chord shape as fingered
        capo_fret: Capo position (0-11)
        key_hint: Sounding key used for spelling

    Returns:
        Chord shifted up by capo_fret semitones

    Raises:
        ValueError: If capo_fret is outside 0-11
    """
    _check_fret(capo_fret)
    return transpose(chord, capo_fret, key_hint)


def remove_capo(
    chord: ChordSymbol,
    capo_fret: int,
    key_hint: Optional[KeySignature] = None,
) -> ChordSymbol:
    """Inverse of apply_capo: the shape to play for a sounding chord."""
    _check_fret(capo_fret)
    return transpose(chord, -capo_fret, key_hint)


def sounding_key(key: KeySignature, capo_fret: int) -> KeySignature:
    """Key that sounds when a chart written in ``key`` is played with a capo."""
    _check_fret(capo_fret)
    return transpose_key(key, capo_fret)


def written_key(key: KeySignature, capo_fret: int) -> KeySignature:
    """Key to write (and finger) so that it sounds in ``key`` with a capo."""
    _check_fret(capo_fret)
    return transpose_key(key, -capo_fret)


def capo_for_transposition(semitones: int) -> int:
    """
    Capo fret that makes the original shapes sound ``semitones`` away.

    Shifts down land an octave up (-2 -> capo 10); a whole number of
    octaves needs no capo.
    """
    return semitones % 12


class ChordDifficulty(IntEnum):
    """How hard a chord shape is to finger on guitar."""
    VERY_EASY = 1  # C, G, Am, Em
    EASY = 2  # D, A, E, Dm and open sevenths
    MODERATE = 3
    HARD = 4  # barre shapes
    VERY_HARD = 5  # extended and diminished/augmented shapes


class CapoAdvisor:
    """Rate chord shapes and suggest capo positions that make them easier."""

    # (root pitch class, quality) of open shapes
    VERY_EASY_SHAPES = frozenset({
        (0, ChordQuality.MAJOR),
        (7, ChordQuality.MAJOR),
        (9, ChordQuality.MINOR),
        (4, ChordQuality.MINOR),
    })
    EASY_SHAPES = frozenset({
        (2, ChordQuality.MAJOR),
        (9, ChordQuality.MAJOR),
        (4, ChordQuality.MAJOR),
        (2, ChordQuality.MINOR),
    })
    # Common barre shapes
    BARRE_SHAPES = frozenset({
        (5, ChordQuality.MAJOR),
        (5, ChordQuality.MINOR),
        (11, ChordQuality.MAJOR),
        (11, ChordQuality.MINOR),
        (10, ChordQuality.MAJOR),
        (7, ChordQuality.MINOR),
        (0, ChordQuality.MINOR),
    })

    # Minimum drop in average difficulty worth suggesting
    IMPROVEMENT_THRESHOLD = 0.3

    # Capo positions tried
    MAX_SUGGESTED_FRET = 7

    def __init__(
        self,
        improvement_threshold: float = IMPROVEMENT_THRESHOLD,
        max_fret: int = MAX_SUGGESTED_FRET,
    ):
        """
        Initialize CapoAdvisor.

        Args:
            improvement_threshold: Minimum difficulty improvement to suggest a capo
            max_fret: Highest capo fret to consider
        """
        self.improvement_threshold = improvement_threshold
        self.max_fret = min(max_fret, MAX_CAPO_FRET)

    def difficulty(self, chord: ChordSymbol) -> ChordDifficulty:
        """Rate a chord shape."""
        if chord.quality in (
            ChordQuality.DIMINISHED,
            ChordQuality.AUGMENTED,
            ChordQuality.HALF_DIMINISHED,
        ) or any(e.degree in (9, 11, 13) for e in chord.extensions):
            return ChordDifficulty.VERY_HARD

        quality = chord.quality
        if quality is ChordQuality.DOMINANT:
            quality = ChordQuality.MAJOR
        plain_seventh = chord.extensions == (Extension(7),)
        other_extensions = bool(chord.extensions) and not plain_seventh

        shape = (chord.root, quality)
        if shape in self.BARRE_SHAPES or len(chord.root_spelling) > 1:
            return ChordDifficulty.HARD
        if other_extensions:
            return ChordDifficulty.MODERATE
        if shape in self.VERY_EASY_SHAPES:
            return ChordDifficulty.EASY if plain_seventh else ChordDifficulty.VERY_EASY
        if shape in self.EASY_SHAPES:
            return ChordDifficulty.EASY
        return ChordDifficulty.MODERATE

    def average_difficulty(self, chords: Sequence[ChordSymbol]) -> float:
        if not chords:
            return 0.0
        return float(np.mean([int(self.difficulty(c)) for c in chords]))

    def suggest(self, chords: Sequence[ChordSymbol]) -> List["CapoSuggestion"]:
        """
        Suggest capo positions for a set of sounding chords.

        Args:
            chords: Chords as they sound

        Returns:
            Suggestions sorted by improvement, best first
        """
        unique = list(dict.fromkeys(chords))
        if not unique:
            return []

        original = self.average_difficulty(unique)
        suggestions = []
        for fret in range(1, self.max_fret + 1):
            shapes = [remove_capo(c, fret) for c in unique]
            capo_difficulty = self.average_difficulty(shapes)
            improvement = original - capo_difficulty
            if improvement > self.improvement_threshold:
                suggestions.append(CapoSuggestion(
                    fret=fret,
                    difficulty=capo_difficulty,
                    improvement=improvement,
                    sample_chords=[render_chord(s) for s in shapes[:4]],
                    reason=self._reason(improvement),
                ))

        suggestions.sort(key=lambda s: (-s.improvement, s.fret))
        return suggestions

    @staticmethod
    def _reason(improvement: float) -> str:
        if improvement > 1.5:
            return "Much easier chords - highly recommended"
        if improvement > 1.0:
            return "Significantly easier chords"
        if improvement > 0.5:
            return "Moderately easier chords"
        return "Slightly easier chords"


@dataclass
class CapoSuggestion:
    """A suggested capo position."""

    fret: int
    difficulty: float  # Average shape difficulty with the capo
    improvement: float  # Drop in average difficulty
    sample_chords: List[str] = field(default_factory=list)  # First shapes to play
    reason: str = ""


def chord_difficulty(chord: ChordSymbol) -> ChordDifficulty:
    return CapoAdvisor().difficulty(chord)


def suggest_capo(chords: Sequence[ChordSymbol]) -> List[CapoSuggestion]:
    """Suggest capo frets 1-7 that make the shapes easier to play."""
    return CapoAdvisor().suggest(chords)
