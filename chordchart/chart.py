"""Full chart analysis pipeline.

text -> read_song -> chords -> key detection -> harmony -> structure
     -> alignment -> (optional) transposition
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .core.chord import ChordWarning, render_chord, validate_chord
from .core.key import KeySignature
from .inference.harmony import HarmonyAnalyzer, HarmonyInfo
from .inference.key import KeyDetectionResult
from .inference.structure import StructureInfo, detect_structure
from .notation.alignment import song_alignment
from .notation.converter import transpose_song
from .notation.document import NotationPattern, Song
from .notation.readers import read_song

logger = logging.getLogger(__name__)


@dataclass
class ChartAnalysis:
    """Everything the engine knows about one chart."""

    song: Song
    detection: KeyDetectionResult
    harmony: HarmonyInfo
    structure: StructureInfo
    key: Optional[KeySignature] = None  # Key used for numerals/functions
    alignment: List[float] = field(default_factory=list)  # Per chord-over-lyric line
    warnings: List[Tuple[str, ChordWarning]] = field(default_factory=list)
    transposed: Optional[Song] = None

    @property
    def pattern(self) -> NotationPattern:
        return self.song.pattern

    @property
    def invalid_tokens(self) -> List[str]:
        return [t.raw for t in self.song.invalid_tokens]

    @property
    def unresolved_numerals(self) -> List[str]:
        """Nashville numerals left unread for lack of a key."""
        return [t.raw for t in self.song.unresolved_tokens]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "pattern": self.pattern.value,
            "title": self.song.title,
            "key": self.key.name if self.key else None,
            "key_candidates": [
                {"key": c.name, "confidence": round(c.confidence, 4)}
                for c in self.detection.candidates[:5]
            ],
            "key_ambiguous": self.detection.is_ambiguous,
            "chords": self.harmony.chord_symbols,
            "roman_numerals": self.harmony.roman_numerals,
            "functions": [f.value for f in self.harmony.functions],
            "cadences": [
                {"index": c.index, "type": c.type.value} for c in self.harmony.cadences
            ],
            "progressions": [
                {"name": name, "coverage": round(coverage, 4)}
                for name, coverage in self.harmony.progressions
            ],
            "sections": [
                {
                    "type": s.type.value,
                    "label": s.label,
                    "lines": list(s.line_range),
                    "confidence": s.confidence,
                }
                for s in self.structure.sections
            ],
            "form": self.structure.form,
            "alignment": [round(score, 4) for score in self.alignment],
            "warnings": [
                {"chord": raw, "kind": w.kind.value, "message": w.message}
                for raw, w in self.warnings
            ],
            "invalid_tokens": self.invalid_tokens,
            "unresolved_numerals": self.unresolved_numerals,
            "transposed_chords": (
                [render_chord(c) for c in self.transposed.chords] if self.transposed else None
            ),
        }


def analyze_chart(
    text: str,
    key: Optional[KeySignature] = None,
    semitones: int = 0,
) -> ChartAnalysis:
    """
    Run the full pipeline on chart text.

    Args:
        text: Chart text in any supported notation
        key: Known key (else the declared {key:} directive, else detected)
        semitones: Transpose the song by this much (0 = no transposition)

    Returns:
        ChartAnalysis

    Raises:
        KeyRequiredError: Transposing Nashville numerals that have no key
    """
    song = read_song(text, key=key)
    chords = song.chords
    key = key or song.declared_key or song.nashville_key

    harmony = HarmonyAnalyzer().analyze(chords, key=key)
    warnings = [
        (token.raw, warning)
        for token in song.tokens
        if token.symbol is not None
        for warning in validate_chord(token.symbol)
    ]

    transposed = None
    if semitones % 12:
        transposed = transpose_song(song, semitones, key=harmony.key)

    analysis = ChartAnalysis(
        song=song,
        detection=harmony.key_detection,
        harmony=harmony,
        structure=detect_structure(song),
        key=harmony.key,
        alignment=song_alignment(song),
        warnings=warnings,
        transposed=transposed,
    )
    logger.debug(
        "Analyzed chart: %s, %d chords, key %s",
        song.pattern.value, len(chords), analysis.key,
    )
    return analysis
