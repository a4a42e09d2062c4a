"""Transposition - Shift chords and progressions with consistent spelling.

Spelling policy, applied in order:
1. A key hint is given: use the key's scale spelling for diatonic pitch
   classes, otherwise the key's sharp/flat leaning.
2. No hint: keep the original note's accidental type (sharp stays sharp,
   flat stays flat).
3. Fallback table: flats for F, Bb, Eb, Ab, Db, Gb; sharps for the rest.
"""

import logging
from collections import Counter
from dataclasses import replace
from enum import Enum
from typing import List, Optional, Sequence, TypeVar, Union

from ..core.chord import ChordSymbol
from ..core.key import KeySignature
from ..core.pitch import (
    Accidental,
    SpellingPreference,
    accidental_of,
    default_spelling,
    preference_for,
    spell,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TransposeInterval(Enum):
    """Common transposition intervals, in semitones."""
    HALF_STEP_UP = 1
    HALF_STEP_DOWN = -1
    WHOLE_STEP_UP = 2
    WHOLE_STEP_DOWN = -2
    MINOR_THIRD_UP = 3
    MINOR_THIRD_DOWN = -3
    MAJOR_THIRD_UP = 4
    MAJOR_THIRD_DOWN = -4
    FOURTH_UP = 5
    FOURTH_DOWN = -5
    FIFTH_UP = 7
    FIFTH_DOWN = -7

    @property
    def semitones(self) -> int:
        return self.value

    @property
    def label(self) -> str:
        """Human-readable label, e.g. 'Whole step up'."""
        return self.name.replace("_", " ").capitalize()


def spell_pitch(
    pitch_class: int,
    original_spelling: Optional[str] = None,
    key_hint: Optional[KeySignature] = None,
) -> str:
    """
    Choose a spelling for a transposed pitch class.

    Args:
        pitch_class: Target pitch class
        original_spelling: Spelling of the note before transposition
        key_hint: Target key, if known

    Returns:
        Note spelling
    """
    if key_hint is not None:
        diatonic = key_hint.spell_degree(pitch_class)
        if diatonic is not None:
            return diatonic
        leaning = key_hint.leaning
        if leaning is not None:
            return spell(pitch_class, leaning)

    if original_spelling is not None:
        preference = preference_for(accidental_of(original_spelling))
        if preference is not None:
            return spell(pitch_class, preference)

    return default_spelling(pitch_class)


def transpose(
    symbol: ChordSymbol,
    semitones: int,
    key_hint: Optional[KeySignature] = None,
) -> ChordSymbol:
    """
    Transpose one chord.

    Root and bass shift independently; quality, extensions and the suffix
    text are carried over unchanged.

    Args:
        symbol: Chord to transpose
        semitones: Shift, any integer (taken mod 12)
        key_hint: Target key used for spelling

    Returns:
        New ChordSymbol
    """
    shift = semitones % 12
    root = (symbol.root + shift) % 12
    bass = (symbol.bass + shift) % 12 if symbol.bass is not None else None
    return replace(
        symbol,
        root=root,
        root_spelling=spell_pitch(root, symbol.root_spelling, key_hint),
        bass=bass,
        bass_spelling=(
            spell_pitch(bass, symbol.bass_spelling, key_hint) if bass is not None else None
        ),
    )


def transpose_key(key: KeySignature, semitones: int) -> KeySignature:
    """Transpose a key, naming the result with conventional tonic spellings."""
    if semitones % 12 == 0:
        return key
    return KeySignature.from_pitch_class(key.tonic + semitones, key.mode)


def semitones_between(
    from_key: Union[KeySignature, str],
    to_key: Union[KeySignature, str],
) -> int:
    """
    Shortest signed distance between two keys' tonics.

    Returns:
        Semitones in the range -5..6
    """
    if isinstance(from_key, str):
        from_key = KeySignature.parse(from_key)
    if isinstance(to_key, str):
        to_key = KeySignature.parse(to_key)
    diff = (to_key.tonic - from_key.tonic) % 12
    return diff - 12 if diff > 6 else diff


class ProgressionSpeller:
    """Spell every pitch class of a progression the same way.

    Built once per progression from the target key and the source
    spellings; ``spell`` is then a pure function of the pitch class.
    """

    def __init__(
        self,
        key: Optional[KeySignature],
        source_spellings: Sequence[str] = (),
    ):
        self.key = key
        self.leaning = key.leaning if key is not None else None
        if self.leaning is None:
            self.leaning = self._majority_leaning(source_spellings)

    @staticmethod
    def _majority_leaning(spellings: Sequence[str]) -> Optional[SpellingPreference]:
        counts = Counter(accidental_of(s) for s in spellings)
        sharps = counts[Accidental.SHARP]
        flats = counts[Accidental.FLAT]
        if sharps > flats:
            return SpellingPreference.SHARP
        if flats > sharps:
            return SpellingPreference.FLAT
        return None

    def spell(self, pitch_class: int) -> str:
        if self.key is not None:
            diatonic = self.key.spell_degree(pitch_class)
            if diatonic is not None:
                return diatonic
        if self.leaning is not None:
            return spell(pitch_class, self.leaning)
        return default_spelling(pitch_class)

    def respell(self, symbol: ChordSymbol) -> ChordSymbol:
        return replace(
            symbol,
            root_spelling=self.spell(symbol.root),
            bass_spelling=self.spell(symbol.bass) if symbol.bass is not None else None,
        )


def _symbol_of(item) -> Optional[ChordSymbol]:
    if isinstance(item, ChordSymbol):
        return item
    return getattr(item, "symbol", None)


def transpose_progression(
    items: Sequence[T],
    semitones: int,
    key: Optional[KeySignature] = None,
) -> List[T]:
    """
    Transpose a whole progression with one spelling decision.

    Args:
        items: ChordSymbols, or tokens carrying a ``symbol`` attribute
            (tokens whose symbol is None pass through unchanged)
        semitones: Shift in semitones
        key: Source key; detected from the chords when omitted

    Returns:
        List of the same kind of items, transposed
    """
    symbols = [s for s in (_symbol_of(item) for item in items) if s is not None]

    if key is None and symbols:
        from ..inference.key import detect_keys

        key = detect_keys(symbols).top.key
        logger.debug("Transposing from detected key %s", key)

    target = transpose_key(key, semitones) if key is not None else None
    speller = ProgressionSpeller(
        target,
        [s.root_spelling for s in symbols]
        + [s.bass_spelling for s in symbols if s.bass_spelling],
    )

    result = []
    for item in items:
        symbol = _symbol_of(item)
        if symbol is None:
            result.append(item)
            continue
        moved = speller.respell(transpose(symbol, semitones))
        result.append(moved if isinstance(item, ChordSymbol) else replace(item, symbol=moved))
    return result
