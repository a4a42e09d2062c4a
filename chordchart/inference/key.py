"""Key detection - Identify the tonal center of a chord progression.

Every one of the 24 major/minor keys is scored with named, weighted
components:
- diatonic_score: how many chords are diatonic triads/sevenths of the key
- cadence_score: V->I and IV->I style motion into the tonic
- tonic_score: progression starts (or ends) on the tonic chord
- foreign_penalty: chords diatonic in no closely related key

Scores are turned into confidences with a softmax, so the result is always
a ranked list of alternatives, never a single forced answer.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import FrozenSet, List, Optional, Sequence, Tuple

import numpy as np

from ..core.chord import Alteration, ChordQuality, ChordSymbol, MAJOR_DEGREES
from ..core.constants import KEY_LOW_CONFIDENCE_THRESHOLD, LETTERS
from ..core.key import KeySignature, Mode
from ..core.pitch import ascii_spelling, letter_index, spell_with_letter, spellings_of

logger = logging.getLogger(__name__)


class ChordFunction(Enum):
    """How a chord relates to a key."""
    DIATONIC = "diatonic"
    BORROWED = "borrowed"
    SECONDARY_DOMINANT = "secondary_dominant"
    FOREIGN = "foreign"


@dataclass(frozen=True)
class DiatonicChord:
    """A scale-degree chord of a key."""
    degree: int  # 1-7
    interval: int  # Semitones above the tonic
    triad: str  # "maj", "min", "dim"
    sevenths: FrozenSet[Optional[str]]  # Allowed sevenths: None, "7", "maj7", "dim7"
    numeral: str  # Roman numeral, e.g. "ii", "vii°"


def _degrees(*rows) -> Tuple[DiatonicChord, ...]:
    return tuple(
        DiatonicChord(degree, interval, triad, frozenset(sevenths), numeral)
        for degree, interval, triad, sevenths, numeral in rows
    )


MAJOR_KEY_CHORDS = _degrees(
    (1, 0, "maj", (None, "maj7"), "I"),
    (2, 2, "min", (None, "7"), "ii"),
    (3, 4, "min", (None, "7"), "iii"),
    (4, 5, "maj", (None, "maj7"), "IV"),
    (5, 7, "maj", (None, "7"), "V"),
    (6, 9, "min", (None, "7"), "vi"),
    (7, 11, "dim", (None, "7"), "vii°"),
)

MINOR_KEY_CHORDS = _degrees(
    (1, 0, "min", (None, "7"), "i"),
    (2, 2, "dim", (None, "7"), "ii°"),
    (3, 3, "maj", (None, "maj7"), "III"),
    (4, 5, "min", (None, "7"), "iv"),
    (5, 7, "min", (None, "7"), "v"),
    (6, 8, "maj", (None, "maj7"), "VI"),
    (7, 10, "maj", (None, "7"), "VII"),
    # Harmonic minor
    (5, 7, "maj", (None, "7"), "V"),
    (7, 11, "dim", (None, "dim7"), "vii°"),
)

ALL_KEYS: Tuple[KeySignature, ...] = tuple(
    KeySignature.from_pitch_class(pc, mode) for mode in Mode for pc in range(12)
)


def diatonic_chords(key: KeySignature) -> Tuple[DiatonicChord, ...]:
    """Diatonic chords of a key (minor keys include harmonic V and vii°)."""
    return MINOR_KEY_CHORDS if key.is_minor else MAJOR_KEY_CHORDS


def chord_signature(chord: ChordSymbol) -> Optional[Tuple[str, Optional[str]]]:
    """
    Reduce a chord to (triad, seventh) for diatonic matching.

    Triad is "maj", "min", "dim", "aug" or "open" (sus/power); seventh is
    None, "7", "maj7" or "dim7". Returns None for UNKNOWN chords.
    """
    quality = chord.quality
    if quality is ChordQuality.UNKNOWN:
        return None

    has_major_seventh = any(
        e.alteration is Alteration.MAJOR and e.degree in MAJOR_DEGREES
        for e in chord.extensions
    )
    has_seventh = any(
        e.alteration is Alteration.NONE and e.degree in MAJOR_DEGREES
        for e in chord.extensions
    )

    if quality is ChordQuality.HALF_DIMINISHED:
        return "dim", "7"
    if quality is ChordQuality.DIMINISHED:
        return "dim", "dim7" if has_seventh else None
    if quality is ChordQuality.DOMINANT:
        return "maj", "7"

    triad = {
        ChordQuality.MAJOR: "maj",
        ChordQuality.MINOR: "min",
        ChordQuality.AUGMENTED: "aug",
    }.get(quality, "open")
    if has_major_seventh:
        return triad, "maj7"
    return triad, "7" if has_seventh else None


def _matches(signature: Tuple[str, Optional[str]], entry: DiatonicChord) -> bool:
    triad, seventh = signature
    if triad == "open":
        triad_ok = entry.triad in ("maj", "min")
    else:
        triad_ok = triad == entry.triad
    return triad_ok and seventh in entry.sevenths


def _scale_intervals(key: KeySignature) -> FrozenSet[int]:
    intervals = set(key.scale_steps)
    if key.is_minor:
        intervals.add(11)
    return frozenset(intervals)


def diatonic_entry(chord: ChordSymbol, key: KeySignature) -> Optional[DiatonicChord]:
    """The diatonic chord of ``key`` that ``chord`` is, if any."""
    signature = chord_signature(chord)
    if signature is None:
        return None
    interval = (chord.root - key.tonic) % 12
    for entry in diatonic_chords(key):
        if entry.interval == interval and _matches(signature, entry):
            return entry
    return None


def diatonic_match(chord: ChordSymbol, key: KeySignature) -> float:
    """
    Diatonic credit for one chord.

    Returns:
        1.0 for a diatonic triad/seventh, 0.5 for a scale root with another
        quality, 0.0 otherwise
    """
    if diatonic_entry(chord, key) is not None:
        return 1.0
    if (chord.root - key.tonic) % 12 in _scale_intervals(key):
        return 0.5
    return 0.0


def is_diatonic(chord: ChordSymbol, key: KeySignature) -> bool:
    return diatonic_entry(chord, key) is not None


def is_tonic_chord(chord: ChordSymbol, key: KeySignature) -> bool:
    """True if the chord is the key's tonic triad (sevenths allowed)."""
    entry = diatonic_entry(chord, key)
    return entry is not None and entry.interval == 0


def close_keys(key: KeySignature) -> Tuple[KeySignature, ...]:
    """The key, its relative, the keys a fifth above and below, and their relatives."""
    up = KeySignature.from_pitch_class(key.tonic + 7, key.mode)
    down = KeySignature.from_pitch_class(key.tonic + 5, key.mode)
    return (key, key.relative, up, up.relative, down, down.relative)


# ============================================================================
# Scoring components
# ============================================================================

def diatonic_score(chords: Sequence[ChordSymbol], key: KeySignature) -> float:
    """Mean diatonic credit over the chords (0..1)."""
    if not chords:
        return 0.0
    return float(np.mean([diatonic_match(c, key) for c in chords]))


def _is_cadence(prev: ChordSymbol, chord: ChordSymbol, key: KeySignature) -> bool:
    if not is_tonic_chord(chord, key):
        return False
    entry = diatonic_entry(prev, key)
    if entry is None:
        return False
    if key.is_minor:
        # v/V -> i, iv -> i
        return entry.interval in (7, 5) and entry.triad in ("maj", "min")
    # V/V7 -> I, IV -> I
    return (entry.interval, entry.triad) in ((7, "maj"), (5, "maj"))


def cadence_score(chords: Sequence[ChordSymbol], key: KeySignature) -> float:
    """Fraction of adjacent chord pairs that are cadences into the tonic (0..1)."""
    if len(chords) < 2:
        return 0.0
    hits = sum(
        1 for prev, chord in zip(chords, chords[1:]) if _is_cadence(prev, chord, key)
    )
    return hits / (len(chords) - 1)


def tonic_score(
    chords: Sequence[ChordSymbol],
    key: KeySignature,
    first_bonus: float = 0.5,
    last_bonus: float = 0.25,
) -> float:
    """Bonus for a progression that starts and/or ends on the tonic chord."""
    if not chords:
        return 0.0
    score = 0.0
    if is_tonic_chord(chords[0], key):
        score += first_bonus
    if is_tonic_chord(chords[-1], key):
        score += last_bonus
    return score


def foreign_penalty(chords: Sequence[ChordSymbol], key: KeySignature) -> float:
    """Fraction of chords that are diatonic in none of the key's close keys (0..1)."""
    if not chords:
        return 0.0
    neighbours = close_keys(key)
    foreign = sum(
        1 for c in chords if not any(is_diatonic(c, k) for k in neighbours)
    )
    return foreign / len(chords)


# ============================================================================
# Results
# ============================================================================

@dataclass
class KeyCandidate:
    """A candidate key with its confidence."""
    key: KeySignature
    confidence: float
    score: float = 0.0  # Raw weighted score before normalization

    @property
    def name(self) -> str:
        return self.key.name


@dataclass
class KeyDetectionResult:
    """Ranked key candidates for a progression.

    ``candidates`` always holds all 24 keys, sorted by confidence
    (descending); confidences sum to 1.
    """

    candidates: List[KeyCandidate] = field(default_factory=list)
    is_ambiguous: bool = False
    chord_count: int = 0

    @property
    def top(self) -> KeyCandidate:
        return self.candidates[0]

    @property
    def key(self) -> KeySignature:
        """Most likely key."""
        return self.top.key

    @property
    def confidence(self) -> float:
        return self.top.confidence

    def as_pairs(self) -> List[Tuple[KeySignature, float]]:
        return [(c.key, c.confidence) for c in self.candidates]

    def confidence_of(self, key: KeySignature) -> float:
        for candidate in self.candidates:
            if candidate.key == key:
                return candidate.confidence
        return 0.0

    def __iter__(self):
        return iter(self.candidates)

    def __len__(self) -> int:
        return len(self.candidates)


@dataclass
class KeyScoringConfig:
    """Weights for key scoring.

    Attributes:
        diatonic_weight: Weight of diatonic_score (default: 2.0)
        cadence_weight: Weight of cadence_score (default: 0.5)
        foreign_weight: Weight of foreign_penalty (default: 1.0)
        first_chord_bonus: Tonic bonus for the first chord (default: 0.5)
        last_chord_bonus: Tonic bonus for the last chord (default: 0.25)
        sharpness: Softmax sharpness turning scores into confidences (default: 3.0)
        low_confidence_threshold: Top confidence below this is ambiguous (default: 0.15)
    """

    diatonic_weight: float = 2.0
    cadence_weight: float = 0.5
    foreign_weight: float = 1.0
    first_chord_bonus: float = 0.5
    last_chord_bonus: float = 0.25
    sharpness: float = 3.0
    low_confidence_threshold: float = KEY_LOW_CONFIDENCE_THRESHOLD


class KeyAnalyzer:
    """Detect keys from chord progressions and relate chords to keys.

    Features:
    - Ranked candidates over all 24 major/minor keys
    - Ambiguity flag instead of forced answers
    - Diatonic / borrowed / secondary dominant / foreign classification
    - Enharmonic re-spelling suggestions
    """

    def __init__(self, config: Optional[KeyScoringConfig] = None):
        """
        Initialize KeyAnalyzer.

        Args:
            config: Scoring weights (defaults to KeyScoringConfig())
        """
        self.config = config or KeyScoringConfig()

    def score(self, chords: Sequence[ChordSymbol], key: KeySignature) -> float:
        """Weighted score of one candidate key."""
        cfg = self.config
        return (
            cfg.diatonic_weight * diatonic_score(chords, key)
            + cfg.cadence_weight * cadence_score(chords, key)
            + tonic_score(chords, key, cfg.first_chord_bonus, cfg.last_chord_bonus)
            - cfg.foreign_weight * foreign_penalty(chords, key)
        )

    def detect(self, chords: Sequence[Optional[ChordSymbol]]) -> KeyDetectionResult:
        """
        Rank all 24 keys for a progression.

        Args:
            chords: Chords in order (None entries are skipped)

        Returns:
            KeyDetectionResult with candidates sorted by confidence
        """
        chords = [c for c in chords if c is not None]
        if not chords:
            uniform = 1.0 / len(ALL_KEYS)
            return KeyDetectionResult(
                candidates=[KeyCandidate(k, uniform) for k in self._tie_order(ALL_KEYS, None)],
                is_ambiguous=True,
            )

        scores = np.array([self.score(chords, key) for key in ALL_KEYS])
        weights = np.exp(self.config.sharpness * (scores - scores.max()))
        confidences = weights / weights.sum()

        first_root = chords[0].root
        order = sorted(
            range(len(ALL_KEYS)),
            key=lambda i: (
                -round(float(scores[i]), 9),
                ALL_KEYS[i].tonic != first_root,
                ALL_KEYS[i].tonic,
                ALL_KEYS[i].is_minor,
            ),
        )
        candidates = [
            KeyCandidate(ALL_KEYS[i], float(confidences[i]), float(scores[i])) for i in order
        ]
        result = KeyDetectionResult(
            candidates=candidates,
            is_ambiguous=candidates[0].confidence < self.config.low_confidence_threshold,
            chord_count=len(chords),
        )
        logger.debug(
            "Detected key %s (%.3f) from %d chords%s",
            result.key, result.confidence, len(chords),
            " [ambiguous]" if result.is_ambiguous else "",
        )
        return result

    @staticmethod
    def _tie_order(keys, first_root: Optional[int]) -> List[KeySignature]:
        return sorted(keys, key=lambda k: (k.tonic != first_root, k.tonic, k.is_minor))

    # ------------------------------------------------------------------
    # Chord functions
    # ------------------------------------------------------------------

    def classify(self, chord: ChordSymbol, key: KeySignature) -> ChordFunction:
        """
        Classify a chord relative to a key.

        Checked in order: diatonic, borrowed from the parallel key,
        secondary dominant (V or V7 of a non-tonic diatonic chord), foreign.
        """
        if is_diatonic(chord, key):
            return ChordFunction.DIATONIC
        if is_diatonic(chord, key.parallel):
            return ChordFunction.BORROWED
        if self.secondary_target(chord, key) is not None:
            return ChordFunction.SECONDARY_DOMINANT
        return ChordFunction.FOREIGN

    @staticmethod
    def secondary_target(chord: ChordSymbol, key: KeySignature) -> Optional[DiatonicChord]:
        """The diatonic chord this chord is the dominant of, if any."""
        if chord_signature(chord) not in (("maj", None), ("maj", "7")):
            return None
        target_interval = (chord.root - 7 - key.tonic) % 12
        for entry in diatonic_chords(key):
            if entry.interval == target_interval and entry.interval != 0 and entry.triad != "dim":
                return entry
        return None

    @staticmethod
    def spelled_scale(key: KeySignature) -> FrozenSet[str]:
        """Scale spellings of a key (minor keys include the raised seventh)."""
        spellings = set(key.scale_spellings)
        if key.is_minor:
            letter = LETTERS[(letter_index(key.tonic_spelling) + 6) % 7]
            leading = spell_with_letter(letter, key.tonic + 11)
            if leading is not None:
                spellings.add(leading)
        return frozenset(spellings)

    def _respelling(self, spelling: str, pitch_class: int, allowed: FrozenSet[str]) -> Optional[str]:
        if ascii_spelling(spelling) in allowed:
            return None
        for alternative in spellings_of(pitch_class):
            if alternative != ascii_spelling(spelling) and alternative in allowed:
                return alternative
        return None

    def suggest_correction(
        self, chord: ChordSymbol, key: KeySignature
    ) -> Optional[ChordSymbol]:
        """
        Propose an enharmonic re-spelling, never a different chord.

        A spelling is proposed only when the current spelling is outside
        both the key's and the parallel key's scales and the alternative is
        inside one of them.

        Returns:
            Re-spelled ChordSymbol (equal to the input), or None
        """
        allowed = self.spelled_scale(key) | self.spelled_scale(key.parallel)
        root = self._respelling(chord.root_spelling, chord.root, allowed)
        bass = None
        if chord.bass is not None:
            bass = self._respelling(chord.bass_spelling, chord.bass, allowed)
        if root is None and bass is None:
            return None
        return replace(
            chord,
            root_spelling=root or chord.root_spelling,
            bass_spelling=bass or chord.bass_spelling,
        )


def detect_keys(chords: Sequence[Optional[ChordSymbol]]) -> KeyDetectionResult:
    """Rank the 24 keys for a chord sequence with default weights."""
    return KeyAnalyzer().detect(chords)


def classify_chord(chord: ChordSymbol, key: KeySignature) -> ChordFunction:
    return KeyAnalyzer().classify(chord, key)


def suggest_correction(chord: ChordSymbol, key: KeySignature) -> Optional[ChordSymbol]:
    """Enharmonic re-spelling suggestion for a chord in a key, or None."""
    return KeyAnalyzer().suggest_correction(chord, key)
