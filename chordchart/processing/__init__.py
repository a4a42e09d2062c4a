"""Processing layer - Chord-level transformations.

This layer moves chords around without changing what they are:
- Transposition with consistent enharmonic spelling
- Whole-progression transposition (one spelling decision per song)
- Capo math (shape <-> sounding chord, written <-> sounding key)
- Capo suggestions ranked by shape difficulty
"""

from .transpose import (
    TransposeInterval,
    ProgressionSpeller,
    spell_pitch,
    transpose,
    transpose_key,
    transpose_progression,
    semitones_between,
)
from .capo import (
    CapoAdvisor,
    CapoSuggestion,
    ChordDifficulty,
    apply_capo,
    remove_capo,
    sounding_key,
    written_key,
    capo_for_transposition,
    chord_difficulty,
    suggest_capo,
)

__all__ = [
    "TransposeInterval",
    "ProgressionSpeller",
    "spell_pitch",
    "transpose",
    "transpose_key",
    "transpose_progression",
    "semitones_between",
    "CapoAdvisor",
    "CapoSuggestion",
    "ChordDifficulty",
    "apply_capo",
    "remove_capo",
    "sounding_key",
    "written_key",
    "capo_for_transposition",
    "chord_difficulty",
    "suggest_capo",
]
