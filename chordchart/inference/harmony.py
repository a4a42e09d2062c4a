"""Harmony analysis - Roman numerals, cadences and common progressions.

Builds on key detection:
- Roman numeral labels for every chord in a key
- Chord function (diatonic, borrowed, secondary dominant, foreign)
- Cadence identification (authentic, plagal, deceptive, half)
- Common progression detection
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from ..core.chord import Alteration, ChordQuality, ChordSymbol, render_chord
from ..core.key import KeySignature
from .key import (
    ChordFunction,
    KeyAnalyzer,
    KeyDetectionResult,
    diatonic_entry,
    is_tonic_chord,
)


NUMERALS = ("I", "II", "III", "IV", "V", "VI", "VII")

# Common progressions, matched on numerals without seventh/quality marks
COMMON_PROGRESSIONS = {
    "I-IV-V-I": ("I", "IV", "V", "I"),
    "I-V-vi-IV": ("I", "V", "vi", "IV"),
    "ii-V-I": ("ii", "V", "I"),
    "I-vi-IV-V": ("I", "vi", "IV", "V"),
    "I-IV-vi-V": ("I", "IV", "vi", "V"),
    "vi-IV-I-V": ("vi", "IV", "I", "V"),
    "I-V-vi-iii-IV": ("I", "V", "vi", "iii", "IV"),
    "IV-V-I": ("IV", "V", "I"),
    "I-IV": ("I", "IV"),
    "I-V": ("I", "V"),
    "i-iv-v-i": ("i", "iv", "v", "i"),
    "i-VI-III-VII": ("i", "VI", "III", "VII"),
    "i-VII-VI-V": ("i", "VII", "VI", "V"),
}


class CadenceType(Enum):
    """Cadence types."""
    AUTHENTIC = "authentic"  # V -> I
    PLAGAL = "plagal"  # IV -> I
    DECEPTIVE = "deceptive"  # V -> vi
    HALF = "half"  # ? -> V


@dataclass
class Cadence:
    """A cadence ending at ``index`` in the progression."""
    index: int
    type: CadenceType


def _quality_marks(chord: ChordSymbol) -> str:
    if chord.quality is ChordQuality.HALF_DIMINISHED:
        return "ø7"
    marks = {
        ChordQuality.DIMINISHED: "°",
        ChordQuality.AUGMENTED: "+",
        ChordQuality.SUSPENDED_2: "sus2",
        ChordQuality.SUSPENDED_4: "sus4",
    }.get(chord.quality, "")
    if chord.seventh is Alteration.MAJOR:
        return marks + "maj7"
    if chord.seventh is Alteration.NONE or chord.quality is ChordQuality.DOMINANT:
        return marks + "7"
    return marks


def _numeral_case(numeral: str, chord: ChordSymbol) -> str:
    return numeral.lower() if chord.is_minor_type else numeral


def roman_numeral(chord: ChordSymbol, key: KeySignature) -> str:
    """
    Get roman numeral representation of a chord in a key.

    Diatonic chords use their scale degree; secondary dominants are written
    ``V7/ii``; other chromatic chords get an accidental relative to the
    major scale on the tonic (``bVII``, ``#iv°``).

    Args:
        chord: Chord to label
        key: Key context

    Returns:
        Roman numeral (e.g., "IV", "ii7", "bVII"); unknown chords are
        returned in parentheses
    """
    if chord.quality is ChordQuality.UNKNOWN:
        return f"({render_chord(chord)})"

    entry = diatonic_entry(chord, key)
    if entry is not None:
        base = NUMERALS[entry.degree - 1]
    else:
        target = KeyAnalyzer.secondary_target(chord, key)
        if target is not None:
            return "V" + _quality_marks(chord) + "/" + target.numeral
        degree, offset = key.degree_of(chord.root_spelling)
        accidental = "b" * -offset if offset < 0 else "#" * offset
        base = accidental + NUMERALS[degree - 1]

    return _numeral_case(base, chord) + _quality_marks(chord)


def _plain(numeral: str) -> str:
    for mark in ("maj7", "ø7", "sus2", "sus4", "7", "°", "+"):
        numeral = numeral.replace(mark, "")
    return numeral


def identify_cadences(chords: Sequence[ChordSymbol], key: KeySignature) -> List[Cadence]:
    """
    Identify cadences in a chord progression.

    Args:
        chords: Chords in order
        key: Key context

    Returns:
        List of Cadence (index of the arrival chord)
    """
    cadences = []
    for i in range(1, len(chords)):
        prev = diatonic_entry(chords[i - 1], key)
        curr = diatonic_entry(chords[i], key)
        if prev is None or curr is None:
            continue
        prev_dominant = prev.interval == 7 and prev.triad == "maj"

        if prev_dominant and is_tonic_chord(chords[i], key):
            cadences.append(Cadence(i, CadenceType.AUTHENTIC))
        elif prev.interval == 5 and is_tonic_chord(chords[i], key):
            cadences.append(Cadence(i, CadenceType.PLAGAL))
        elif prev_dominant and curr.degree == 6:
            cadences.append(Cadence(i, CadenceType.DECEPTIVE))
        elif curr.interval == 7 and curr.triad == "maj":
            cadences.append(Cadence(i, CadenceType.HALF))
    return cadences


def find_common_progressions(numerals: Sequence[str]) -> List[Tuple[str, float]]:
    """
    Identify common chord progressions in a numeral sequence.

    Returns:
        List of (progression_name, coverage) tuples, best first
    """
    if len(numerals) < 2:
        return []

    plain = [_plain(n) for n in numerals]
    found = []
    for name, pattern in COMMON_PROGRESSIONS.items():
        size = len(pattern)
        hits = sum(
            1 for i in range(len(plain) - size + 1) if tuple(plain[i:i + size]) == pattern
        )
        if hits:
            coverage = min(1.0, hits * size / len(plain))
            found.append((name, coverage))

    found.sort(key=lambda x: x[1], reverse=True)
    return found


@dataclass
class HarmonyInfo:
    """Container for harmony analysis results."""

    key: Optional[KeySignature] = None
    key_detection: Optional[KeyDetectionResult] = None
    chords: List[ChordSymbol] = field(default_factory=list)
    roman_numerals: List[str] = field(default_factory=list)
    functions: List[ChordFunction] = field(default_factory=list)
    cadences: List[Cadence] = field(default_factory=list)
    progressions: List[Tuple[str, float]] = field(default_factory=list)

    @property
    def chord_symbols(self) -> List[str]:
        return [render_chord(c) for c in self.chords]

    @property
    def diatonic_ratio(self) -> float:
        """Fraction of chords that are diatonic to the key."""
        if not self.functions:
            return 0.0
        return self.functions.count(ChordFunction.DIATONIC) / len(self.functions)


class HarmonyAnalyzer:
    """Integrated harmony analysis: key, chord functions, numerals, cadences."""

    def __init__(self, key_analyzer: Optional[KeyAnalyzer] = None):
        self.key_analyzer = key_analyzer or KeyAnalyzer()

    def analyze(
        self,
        chords: Sequence[Optional[ChordSymbol]],
        key: Optional[KeySignature] = None,
    ) -> HarmonyInfo:
        """
        Analyze a progression.

        Args:
            chords: Chords in order (None entries are skipped)
            key: Known key; detected when omitted

        Returns:
            HarmonyInfo
        """
        chords = [c for c in chords if c is not None]
        detection = self.key_analyzer.detect(chords)
        if key is None:
            if not chords:
                return HarmonyInfo(key_detection=detection)
            key = detection.key

        numerals = [roman_numeral(c, key) for c in chords]
        return HarmonyInfo(
            key=key,
            key_detection=detection,
            chords=chords,
            roman_numerals=numerals,
            functions=[self.key_analyzer.classify(c, key) for c in chords],
            cadences=identify_cadences(chords, key),
            progressions=find_common_progressions(numerals),
        )
