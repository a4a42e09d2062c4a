"""Tests for chord symbols, pitch spelling and key signatures.

Tests cover:
- Pitch class resolution and enharmonic spellings
- Chord parsing (qualities, extensions, slash chords, lenient suffixes)
- Rendering round trips
- Chord tones spelled from the root
- Validation warnings
- Key signature parsing and spelled scales
"""

import pytest
from pathlib import Path
import sys

# Add repo root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from chordchart.core import (
    Alteration,
    ChordParseError,
    ChordQuality,
    ChordSymbol,
    Extension,
    KeySignature,
    Mode,
    SpellingPreference,
    WarningKind,
    chord_tones,
    parse_chord,
    pitch_class_of,
    render_chord,
    spellings_of,
    try_parse_chord,
    validate_chord,
)


# ============================================================================
# Test Fixtures - Helper functions to create test data
# ============================================================================

WELL_FORMED_CHORDS = [
    "C", "Am", "G7", "Cmaj7", "F#m7b5", "Bdim", "Caug", "Dsus4", "Dsus2",
    "E5", "C6/9", "Cadd9", "G/B", "Bb13(#11)", "C7#9", "Ebm", "Abmaj7/C",
    "Cm(maj7)", "Gsus", "A7b9", "Dm9", "C+", "Co7", "Bø7",
]


def warning_kinds(text: str) -> set:
    """Warning kinds raised for a chord text."""
    return {w.kind for w in validate_chord(parse_chord(text))}


# ============================================================================
# Pitch Tests
# ============================================================================

class TestPitch:
    """Tests for pitch classes and spellings."""

    def test_naturals(self):
        assert pitch_class_of("C") == 0
        assert pitch_class_of("E") == 4
        assert pitch_class_of("B") == 11

    def test_accidentals(self):
        assert pitch_class_of("C#") == 1
        assert pitch_class_of("Db") == 1
        assert pitch_class_of("E#") == 5
        assert pitch_class_of("Cb") == 11

    def test_unicode_accidentals(self):
        assert pitch_class_of("F♯") == 6
        assert pitch_class_of("B♭") == 10

    def test_invalid_spelling(self):
        with pytest.raises(ValueError):
            pitch_class_of("H")
        with pytest.raises(ValueError):
            pitch_class_of("C##")

    def test_spellings_naturals_first(self):
        assert spellings_of(1) == ["C#", "Db"]
        assert spellings_of(0) == ["C", "B#"]


# ============================================================================
# Chord Parser Tests
# ============================================================================

class TestChordParser:
    """Tests for parse_chord."""

    def test_major_triad(self):
        chord = parse_chord("C")
        assert chord.root == 0
        assert chord.root_spelling == "C"
        assert chord.quality == ChordQuality.MAJOR
        assert chord.extensions == ()
        assert chord.bass is None

    def test_major_seventh(self):
        chord = parse_chord("Cmaj7")
        assert chord.root == 0
        assert chord.quality == ChordQuality.MAJOR
        assert chord.extensions == (Extension(7, Alteration.MAJOR),)

    def test_minor(self):
        assert parse_chord("Am").quality == ChordQuality.MINOR
        assert parse_chord("A-").quality == ChordQuality.MINOR
        assert parse_chord("Amin").quality == ChordQuality.MINOR

    def test_dominant_seventh(self):
        chord = parse_chord("G7")
        assert chord.quality == ChordQuality.DOMINANT
        assert chord.seventh is Alteration.NONE

    def test_half_diminished_normalized(self):
        chord = parse_chord("F#m7b5")
        assert chord.root == 6
        assert chord.quality == ChordQuality.HALF_DIMINISHED
        assert chord.extensions == (Extension(7),)

    def test_half_diminished_symbol(self):
        chord = parse_chord("Bø7")
        assert chord.quality == ChordQuality.HALF_DIMINISHED

    def test_diminished_and_augmented(self):
        assert parse_chord("Bdim").quality == ChordQuality.DIMINISHED
        assert parse_chord("Co7").quality == ChordQuality.DIMINISHED
        assert parse_chord("Caug").quality == ChordQuality.AUGMENTED
        assert parse_chord("C+").quality == ChordQuality.AUGMENTED

    def test_suspended(self):
        assert parse_chord("Dsus4").quality == ChordQuality.SUSPENDED_4
        assert parse_chord("Dsus2").quality == ChordQuality.SUSPENDED_2
        assert parse_chord("Dsus").quality == ChordQuality.SUSPENDED_4

    def test_power_chord(self):
        chord = parse_chord("E5")
        assert chord.quality == ChordQuality.POWER
        assert chord.extensions == ()

    def test_six_nine(self):
        chord = parse_chord("C6/9")
        assert chord.bass is None
        assert chord.extensions == (Extension(6), Extension(9, Alteration.ADD))

    def test_add_nine(self):
        chord = parse_chord("Cadd9")
        assert chord.quality == ChordQuality.MAJOR
        assert chord.has_extension(9, Alteration.ADD)

    def test_altered_extensions(self):
        chord = parse_chord("Bb13(#11)")
        assert chord.root == 10
        assert chord.quality == ChordQuality.DOMINANT
        assert chord.has_extension(13)
        assert chord.has_extension(11, Alteration.SHARP)

    def test_minor_major_seventh(self):
        chord = parse_chord("Cm(maj7)")
        assert chord.quality == ChordQuality.MINOR
        assert chord.seventh is Alteration.MAJOR

    def test_slash_chord(self):
        chord = parse_chord("G/B")
        assert chord.root == 7
        assert chord.bass == 11
        assert chord.bass_spelling == "B"
        assert chord.is_slash

    def test_unknown_suffix_kept(self):
        chord = parse_chord("C?")
        assert chord.quality == ChordQuality.UNKNOWN
        assert chord.unknown_text == "?"
        assert render_chord(chord) == "C?"

    def test_word_is_not_plausible(self):
        chord = parse_chord("Amazing")
        assert chord.quality == ChordQuality.UNKNOWN
        assert not chord.is_plausible

    def test_no_root_raises(self):
        with pytest.raises(ChordParseError):
            parse_chord("Hm7")
        with pytest.raises(ChordParseError):
            parse_chord("")

    def test_parse_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_chord("xyz")

    def test_try_parse(self):
        assert try_parse_chord("Hm") is None
        assert try_parse_chord("Em") is not None

    def test_enharmonic_equality(self):
        assert parse_chord("C#m") == parse_chord("Dbm")
        assert hash(parse_chord("C#m")) == hash(parse_chord("Dbm"))
        assert parse_chord("C") != parse_chord("Cm")


# ============================================================================
# Rendering Tests
# ============================================================================

class TestRendering:
    """Tests for render_chord."""

    @pytest.mark.parametrize("text", WELL_FORMED_CHORDS)
    def test_render_round_trip(self, text):
        assert render_chord(parse_chord(text)) == text

    @pytest.mark.parametrize("text", WELL_FORMED_CHORDS)
    def test_render_idempotent(self, text):
        once = render_chord(parse_chord(text))
        assert render_chord(parse_chord(once)) == once

    def test_preference_respells(self):
        chord = parse_chord("C#m7/G#")
        assert render_chord(chord, SpellingPreference.FLAT) == "Dbm7/Ab"

    def test_build_canonical_suffix(self):
        chord = ChordSymbol.build("F#", ChordQuality.HALF_DIMINISHED, [Extension(7)])
        assert str(chord) == "F#m7b5"
        assert chord == parse_chord("F#m7b5")

    def test_build_six_nine(self):
        chord = ChordSymbol.build(
            "C", ChordQuality.MAJOR, [Extension(6), Extension(9, Alteration.ADD)]
        )
        assert str(chord) == "C6/9"

    def test_build_rejects_wrong_spelling(self):
        with pytest.raises(ValueError):
            ChordSymbol(root=1, root_spelling="C", quality=ChordQuality.MAJOR)


# ============================================================================
# Chord Tone Tests
# ============================================================================

class TestChordTones:
    """Tests for chord_tones."""

    @pytest.mark.parametrize("text,expected", [
        ("C", ["C", "E", "G"]),
        ("Cm7", ["C", "Eb", "G", "Bb"]),
        ("F#7", ["F#", "A#", "C#", "E"]),
        ("Bbmaj7", ["Bb", "D", "F", "A"]),
        ("Dsus4", ["D", "G", "A"]),
        ("Caug", ["C", "E", "G#"]),
        ("E5", ["E", "B"]),
        ("Cm7b5", ["C", "Eb", "Gb", "Bb"]),
        ("C6/9", ["C", "E", "G", "A", "D"]),
        ("G7b9", ["G", "B", "D", "F", "Ab"]),
    ])
    def test_tones(self, text, expected):
        assert chord_tones(parse_chord(text)) == expected

    def test_diminished_seventh_spelled_on_letters(self):
        assert chord_tones(parse_chord("Cdim7")) == ["C", "Eb", "Gb", "Bbb"]

    def test_upper_extension_implies_seventh(self):
        assert chord_tones(parse_chord("C9")) == ["C", "E", "G", "Bb", "D"]
        assert chord_tones(parse_chord("Cmaj9")) == ["C", "E", "G", "B", "D"]

    def test_slash_bass(self):
        assert chord_tones(parse_chord("C/Bb")) == ["Bb", "C", "E", "G"]
        assert chord_tones(parse_chord("G/B")) == ["G", "B", "D"]

    def test_unknown_quality_gives_root(self):
        assert chord_tones(parse_chord("Cxyz")) == ["C"]


# ============================================================================
# Validation Tests
# ============================================================================

class TestValidation:
    """Tests for validate_chord."""

    def test_plain_chords_have_no_warnings(self):
        for text in ("C", "Am7", "G7", "Fmaj7", "Bdim", "E5"):
            assert validate_chord(parse_chord(text)) == []

    def test_augmented_flat_five(self):
        assert WarningKind.AUGMENTED_FLAT_FIVE in warning_kinds("Caug(b5)")

    def test_power_chord_with_extensions(self):
        assert WarningKind.POWER_WITH_EXTENSIONS in warning_kinds("C5add9")

    def test_unknown_suffix(self):
        assert WarningKind.UNKNOWN_SUFFIX in warning_kinds("C?")

    def test_bass_equals_root(self):
        assert WarningKind.BASS_EQUALS_ROOT in warning_kinds("C/C")

    def test_warnings_do_not_reject(self):
        chord = parse_chord("Caug(b5)")
        assert chord.quality == ChordQuality.AUGMENTED


# ============================================================================
# Key Signature Tests
# ============================================================================

class TestKeySignature:
    """Tests for KeySignature."""

    @pytest.mark.parametrize("text,tonic,mode", [
        ("C", 0, Mode.MAJOR),
        ("Am", 9, Mode.MINOR),
        ("F# minor", 6, Mode.MINOR),
        ("Bb major", 10, Mode.MAJOR),
        ("Ebmin", 3, Mode.MINOR),
        ("D-", 2, Mode.MINOR),
    ])
    def test_parse(self, text, tonic, mode):
        key = KeySignature.parse(text)
        assert key.tonic == tonic
        assert key.mode == mode

    def test_parse_invalid(self):
        with pytest.raises(ValueError):
            KeySignature.parse("X major")
        with pytest.raises(ValueError):
            KeySignature.parse("C lydian")

    def test_names(self):
        key = KeySignature.parse("F#m")
        assert key.name == "F# minor"
        assert key.short_name == "F#m"

    def test_spelled_scales(self):
        assert KeySignature.parse("F").scale_spellings == ("F", "G", "A", "Bb", "C", "D", "E")
        assert KeySignature.parse("D").scale_spellings == ("D", "E", "F#", "G", "A", "B", "C#")

    def test_leaning(self):
        assert KeySignature.parse("C").leaning is None
        assert KeySignature.parse("Am").leaning is None
        assert KeySignature.parse("Eb").leaning is SpellingPreference.FLAT
        assert KeySignature.parse("E").leaning is SpellingPreference.SHARP

    def test_relative_and_parallel(self):
        c_major = KeySignature.parse("C")
        assert c_major.relative == KeySignature.parse("Am")
        assert c_major.relative.tonic_spelling == "A"
        assert KeySignature.parse("Am").relative == c_major
        assert c_major.parallel == KeySignature.parse("Cm")

    def test_enharmonic_keys_equal(self):
        assert KeySignature.parse("C#m") == KeySignature.parse("Dbm")

    def test_degree_of(self):
        c_major = KeySignature.parse("C")
        assert c_major.degree_of("G") == (5, 0)
        assert c_major.degree_of("Bb") == (7, -1)
        assert c_major.degree_of("A#") == (6, 1)

    def test_spell_major_degree(self):
        c_major = KeySignature.parse("C")
        assert c_major.spell_major_degree(7, -1) == "Bb"
        assert c_major.spell_major_degree(6, 1) == "A#"
        assert KeySignature.parse("Eb").spell_major_degree(4) == "Ab"
