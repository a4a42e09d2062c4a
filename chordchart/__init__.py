"""Chord Chart - Chord notation and music-theory engine.

Architecture Layers:
    1. core/       - Pitch spelling, chord symbols, keys, errors
    2. processing/ - Transposition and capo math
    3. inference/  - Musical understanding (key, harmony, structure)
    4. notation/   - Chart notations (chord-over-lyric, inline, directive, Nashville)
    5. chart.py    - Full analysis pipeline
"""

__version__ = "0.2.0"

# Core types
from .core import (
    ChordChartError,
    ChordParseError,
    ChordQuality,
    ChordSymbol,
    ConversionError,
    KeyRequiredError,
    KeySignature,
    Mode,
    UnsupportedPatternError,
    chord_tones,
    parse_chord,
    render_chord,
    validate_chord,
)

# Processing layer
from .processing import (
    apply_capo,
    capo_for_transposition,
    remove_capo,
    suggest_capo,
    transpose,
    transpose_progression,
)

# Inference layer
from .inference import (
    ChordFunction,
    HarmonyAnalyzer,
    KeyAnalyzer,
    StructureDetector,
    classify_chord,
    detect_keys,
    detect_structure,
    suggest_correction,
)

# Notation layer
from .notation import (
    NotationPattern,
    Song,
    alignment_score,
    convert,
    detect_pattern,
    read_song,
    write_song,
)

# Pipeline
from .chart import ChartAnalysis, analyze_chart

__all__ = [
    # Core
    "ChordChartError",
    "ChordParseError",
    "ChordQuality",
    "ChordSymbol",
    "ConversionError",
    "KeyRequiredError",
    "KeySignature",
    "Mode",
    "UnsupportedPatternError",
    "chord_tones",
    "parse_chord",
    "render_chord",
    "validate_chord",
    # Processing
    "apply_capo",
    "capo_for_transposition",
    "remove_capo",
    "suggest_capo",
    "transpose",
    "transpose_progression",
    # Inference
    "ChordFunction",
    "HarmonyAnalyzer",
    "KeyAnalyzer",
    "StructureDetector",
    "classify_chord",
    "detect_keys",
    "detect_structure",
    "suggest_correction",
    # Notation
    "NotationPattern",
    "Song",
    "alignment_score",
    "convert",
    "detect_pattern",
    "read_song",
    "write_song",
    # Pipeline
    "ChartAnalysis",
    "analyze_chart",
]
