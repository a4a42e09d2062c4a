"""Tests for key detection and chord classification.

Tests cover:
- Ranked key candidates (confidence bounds, ordering, ambiguity)
- Scoring components
- Diatonic / borrowed / secondary dominant / foreign classification
- Enharmonic correction suggestions
"""

import pytest
from pathlib import Path
import sys

# Add repo root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from chordchart.core import KeySignature, parse_chord
from chordchart.inference import (
    ChordFunction,
    KeyAnalyzer,
    KeyScoringConfig,
    classify_chord,
    detect_keys,
    suggest_correction,
)
from chordchart.inference.key import (
    cadence_score,
    diatonic_score,
    foreign_penalty,
    tonic_score,
)


# ============================================================================
# Test Fixtures - Helper functions to create test data
# ============================================================================

PROGRESSIONS = [
    ("C", "Am", "F", "G"),
    ("G", "D", "Em", "C"),
    ("Am", "Dm", "E", "Am"),
    ("F#m", "D", "A", "E"),
    ("Bb", "Eb", "F7", "Bb"),
    ("C", "Db", "F#", "B"),
]


def chords(*texts) -> list:
    """Parse several chord texts."""
    return [parse_chord(t) for t in texts]


def key(text: str) -> KeySignature:
    return KeySignature.parse(text)


# ============================================================================
# Key Detection Tests
# ============================================================================

class TestKeyDetection:
    """Tests for detect_keys."""

    def test_c_major_pop_progression(self):
        result = detect_keys(chords("C", "Am", "F", "G"))
        assert result.key == key("C")
        assert result.confidence > 0.5
        assert result.candidates[1].key == key("Am")
        assert result.candidates[1].confidence > 0.05
        assert not result.is_ambiguous

    def test_g_major(self):
        assert detect_keys(chords("G", "D", "Em", "C")).key == key("G")

    def test_a_minor_with_harmonic_dominant(self):
        assert detect_keys(chords("Am", "Dm", "E", "Am")).key == key("Am")

    def test_all_24_candidates(self):
        result = detect_keys(chords("C", "F", "G"))
        assert len(result) == 24
        assert len({c.key for c in result}) == 24

    @pytest.mark.parametrize("progression", PROGRESSIONS)
    def test_confidences_sum_to_one(self, progression):
        result = detect_keys(chords(*progression))
        assert sum(c.confidence for c in result) == pytest.approx(1.0)

    @pytest.mark.parametrize("progression", PROGRESSIONS)
    def test_sorted_descending(self, progression):
        confidences = [c.confidence for c in detect_keys(chords(*progression))]
        assert confidences == sorted(confidences, reverse=True)

    def test_empty_is_uniform_and_ambiguous(self):
        result = detect_keys([])
        assert len(result) == 24
        assert result.is_ambiguous
        assert all(c.confidence == pytest.approx(1 / 24) for c in result)

    def test_none_entries_skipped(self):
        result = detect_keys([None, parse_chord("C"), None, parse_chord("G"), parse_chord("C")])
        assert result.chord_count == 3
        assert result.key == key("C")

    def test_deterministic(self):
        progression = chords("Dm", "G", "C", "A7")
        first = detect_keys(progression).as_pairs()
        second = detect_keys(progression).as_pairs()
        assert first == second

    def test_confidence_of(self):
        result = detect_keys(chords("C", "Am", "F", "G"))
        assert result.confidence_of(key("C")) == result.confidence

    def test_sharper_config_raises_confidence(self):
        progression = chords("C", "Am", "F", "G")
        default = KeyAnalyzer().detect(progression).confidence
        sharper = KeyAnalyzer(KeyScoringConfig(sharpness=6.0)).detect(progression).confidence
        assert sharper > default


# ============================================================================
# Scoring Component Tests
# ============================================================================

class TestScoringComponents:
    """Tests for the named scoring functions."""

    def test_diatonic_score(self):
        assert diatonic_score(chords("C", "Dm", "G7"), key("C")) == pytest.approx(1.0)
        # D major: scale root, wrong quality
        assert diatonic_score(chords("D"), key("C")) == pytest.approx(0.5)
        assert diatonic_score(chords("Db"), key("C")) == 0.0
        assert diatonic_score([], key("C")) == 0.0

    def test_cadence_score(self):
        assert cadence_score(chords("F", "C", "G", "C"), key("C")) == pytest.approx(2 / 3)
        assert cadence_score(chords("C"), key("C")) == 0.0

    def test_tonic_score(self):
        assert tonic_score(chords("C", "F", "C"), key("C")) == pytest.approx(0.75)
        assert tonic_score(chords("F", "G"), key("C")) == 0.0

    def test_foreign_penalty(self):
        # D major is V of G, a close key of C
        assert foreign_penalty(chords("C", "D"), key("C")) == 0.0
        assert foreign_penalty(chords("C", "Db"), key("C")) == pytest.approx(0.5)


# ============================================================================
# Classification Tests
# ============================================================================

class TestClassification:
    """Tests for classify_chord."""

    @pytest.mark.parametrize("chord,expected", [
        ("C", ChordFunction.DIATONIC),
        ("Dm7", ChordFunction.DIATONIC),
        ("G7", ChordFunction.DIATONIC),
        ("Bdim", ChordFunction.DIATONIC),
        ("Bb", ChordFunction.BORROWED),
        ("Fm", ChordFunction.BORROWED),
        ("Ab", ChordFunction.BORROWED),
        ("D7", ChordFunction.SECONDARY_DOMINANT),
        ("E", ChordFunction.SECONDARY_DOMINANT),
        ("A7", ChordFunction.SECONDARY_DOMINANT),
        ("Db", ChordFunction.FOREIGN),
        ("F#m", ChordFunction.FOREIGN),
    ])
    def test_c_major(self, chord, expected):
        assert classify_chord(parse_chord(chord), key("C")) == expected

    def test_minor_key_harmonic_dominant(self):
        assert classify_chord(parse_chord("E7"), key("Am")) == ChordFunction.DIATONIC
        assert classify_chord(parse_chord("Em"), key("Am")) == ChordFunction.DIATONIC

    def test_unknown_chord_is_foreign(self):
        assert classify_chord(parse_chord("C?"), key("C")) == ChordFunction.FOREIGN

    def test_every_chord_gets_one_function(self):
        progression = chords("C", "E7", "Am", "Bb", "F", "Fm", "Db", "G7")
        result = detect_keys(progression)
        for chord in progression:
            assert classify_chord(chord, result.key) in set(ChordFunction)


# ============================================================================
# Correction Tests
# ============================================================================

class TestSuggestCorrection:
    """Tests for suggest_correction."""

    def test_foreign_chord_gets_no_suggestion(self):
        assert suggest_correction(parse_chord("Db"), key("C")) is None

    def test_respelling_into_scale(self):
        suggestion = suggest_correction(parse_chord("A#"), key("F"))
        assert suggestion is not None
        assert suggestion.root_spelling == "Bb"
        assert suggestion == parse_chord("A#")

    def test_parallel_minor_spelling(self):
        suggestion = suggest_correction(parse_chord("D#"), key("C"))
        assert suggestion.root_spelling == "Eb"

    def test_correct_spelling_left_alone(self):
        assert suggest_correction(parse_chord("Bb"), key("F")) is None

    def test_slash_bass_respelled(self):
        suggestion = suggest_correction(parse_chord("C/A#"), key("F"))
        assert suggestion.root_spelling == "C"
        assert suggestion.bass_spelling == "Bb"
