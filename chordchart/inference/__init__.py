"""Inference layer - Musical understanding of chord sequences.

This layer builds higher-level musical understanding from chords:
- Key detection (ranked candidates with confidence)
- Chord function in a key (diatonic, borrowed, secondary dominant, foreign)
- Harmony analysis (roman numerals, cadences, common progressions)
- Song structure detection (sections, repetitions, form)

Pipeline: Chords -> [Key, Harmony] ; Song -> Structure
"""

from .key import (
    ChordFunction,
    KeyAnalyzer,
    KeyCandidate,
    KeyDetectionResult,
    KeyScoringConfig,
    classify_chord,
    detect_keys,
    suggest_correction,
)
from .harmony import (
    Cadence,
    CadenceType,
    HarmonyAnalyzer,
    HarmonyInfo,
    find_common_progressions,
    identify_cadences,
    roman_numeral,
)
from .structure import (
    SectionType,
    SongSection,
    StructureConfig,
    StructureDetector,
    StructureInfo,
    detect_structure,
)

__all__ = [
    # Key detection
    "ChordFunction",
    "KeyAnalyzer",
    "KeyCandidate",
    "KeyDetectionResult",
    "KeyScoringConfig",
    "classify_chord",
    "detect_keys",
    "suggest_correction",
    # Harmony analysis
    "Cadence",
    "CadenceType",
    "HarmonyAnalyzer",
    "HarmonyInfo",
    "find_common_progressions",
    "identify_cadences",
    "roman_numeral",
    # Structure analysis
    "SectionType",
    "SongSection",
    "StructureConfig",
    "StructureDetector",
    "StructureInfo",
    "detect_structure",
]
