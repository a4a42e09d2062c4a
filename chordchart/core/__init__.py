"""Core types and constants for chordchart."""

from .constants import (
    PITCH_NAMES,
    SHARP_NAMES,
    FLAT_NAMES,
    KEY_LOW_CONFIDENCE_THRESHOLD,
    NASHVILLE_KEY_CONFIDENCE,
)
from .errors import (
    ChordChartError,
    ChordParseError,
    ConversionError,
    KeyRequiredError,
    UnsupportedPatternError,
)
from .pitch import (
    Accidental,
    SpellingPreference,
    pitch_class_of,
    spellings_of,
    default_spelling,
)
from .chord import (
    Alteration,
    ChordQuality,
    ChordSymbol,
    ChordWarning,
    Extension,
    WarningKind,
    chord_tones,
    parse_chord,
    try_parse_chord,
    render_chord,
    validate_chord,
)
from .key import KeySignature, Mode

__all__ = [
    "PITCH_NAMES",
    "SHARP_NAMES",
    "FLAT_NAMES",
    "KEY_LOW_CONFIDENCE_THRESHOLD",
    "NASHVILLE_KEY_CONFIDENCE",
    # Errors
    "ChordChartError",
    "ChordParseError",
    "ConversionError",
    "KeyRequiredError",
    "UnsupportedPatternError",
    # Pitch
    "Accidental",
    "SpellingPreference",
    "pitch_class_of",
    "spellings_of",
    "default_spelling",
    # Chords
    "Alteration",
    "ChordQuality",
    "ChordSymbol",
    "ChordWarning",
    "Extension",
    "WarningKind",
    "chord_tones",
    "parse_chord",
    "try_parse_chord",
    "render_chord",
    "validate_chord",
    # Keys
    "KeySignature",
    "Mode",
]
