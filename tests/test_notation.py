"""Tests for the notation layer.

Tests cover:
- Pattern detection (per document and per line)
- Reading charts into the Song model (metadata, tokens, columns)
- Writing and converting between notations
- Nashville numbers and key resolution
- Song transposition
- Chord/lyric alignment scoring
"""

import pytest
from pathlib import Path
import sys

# Add repo root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from chordchart.core import (
    ChordParseError,
    ConversionError,
    KeyRequiredError,
    KeySignature,
    UnsupportedPatternError,
    parse_chord,
    render_chord,
)
from chordchart.notation import (
    LineKind,
    NotationPattern,
    alignment_score,
    check_convertible,
    chord_to_numeral,
    classify_line,
    convert,
    detect_pattern,
    from_nashville,
    is_nashville_token,
    numeral_to_chord,
    read_song,
    resolve_key,
    resolve_numerals,
    snap_column,
    song_alignment,
    to_nashville,
    transpose_song,
    write_song,
)
from chordchart.notation.patterns import LineClass, label_prefix_length
from chordchart.notation.writers import lyric_padding, unpad_lyric


# ============================================================================
# Test Fixtures - Helper functions to create test data
# ============================================================================

AMAZING_GRACE = "    C       G\nAmazing grace"

CHORDPRO_SONG = """{title: Amazing Grace}
{key: G}
{capo: 2}
G      C
Amazing grace"""


def chart(*lines) -> str:
    """Join chart lines."""
    return "\n".join(lines)


def symbols(song) -> list:
    return [render_chord(c) for c in song.chords]


C_MAJOR = KeySignature.parse("C")


# ============================================================================
# Pattern Detection Tests
# ============================================================================

class TestPatternDetection:
    """Tests for detect_pattern and line classification."""

    def test_chord_over_lyric(self):
        detection = detect_pattern(AMAZING_GRACE)
        assert detection.pattern == NotationPattern.CHORD_OVER_LYRIC
        assert detection.line_patterns == {
            0: NotationPattern.CHORD_OVER_LYRIC,
            1: NotationPattern.CHORD_OVER_LYRIC,
        }

    def test_inline_bracket(self):
        assert detect_pattern("[C]Amazing [G]grace").pattern == NotationPattern.INLINE_BRACKET

    def test_directive_style(self):
        detection = detect_pattern("{c:C}Amazing {c:G}grace")
        assert detection.pattern == NotationPattern.DIRECTIVE_STYLE

    def test_nashville(self):
        detection = detect_pattern(chart("{key: C}", "1 4 5 1"))
        assert detection.pattern == NotationPattern.NASHVILLE_NUMBER

    def test_metadata_only_is_directive_style(self):
        assert detect_pattern("{title: Hymn}").pattern == NotationPattern.DIRECTIVE_STYLE

    def test_plain_text_is_unknown(self):
        assert detect_pattern("Just some words\nand more").pattern == NotationPattern.UNKNOWN

    def test_mixed(self):
        detection = detect_pattern(chart("C   G", "Hello there", "", "[F]Another [C]line"))
        assert detection.pattern == NotationPattern.MIXED
        assert detection.line_patterns[3] == NotationPattern.INLINE_BRACKET

    def test_deterministic(self):
        text = chart("Verse 1:", "C   G", "Hello there", "[F]Another [C]line")
        assert detect_pattern(text) == detect_pattern(text)

    @pytest.mark.parametrize("line,expected", [
        ("", LineClass.BLANK),
        ("# a comment", LineClass.COMMENT),
        ("Verse 1:", LineClass.LABEL),
        ("[Chorus]", LineClass.LABEL),
        ("Pre-Chorus", LineClass.LABEL),
        ("Chorus x2", LineClass.LABEL),
        ("C  G  | Am  F |", LineClass.CHORDS),
        ("1  4  5m  b7", LineClass.NASHVILLE),
        ("Amazing grace", LineClass.LYRIC),
        ("A day in the life", LineClass.LYRIC),
        ("{title: X}", LineClass.DIRECTIVE),
        ("Intro: G D Em C", LineClass.LABELED_CHORDS),
        ("[Solo] Am G", LineClass.LABELED_CHORDS),
        ("Intro: 1 4 5", LineClass.LABELED_NASHVILLE),
        ("Chorus: la la la", LineClass.LYRIC),
    ])
    def test_classify_line(self, line, expected):
        assert classify_line(line) == expected

    def test_label_prefix_length(self):
        assert label_prefix_length("Intro: G D Em C") == 6
        assert label_prefix_length("[Solo] Am G") == 6
        assert label_prefix_length("Note: play softly") == 0
        assert label_prefix_length("Chorus: la la la") == 0

    def test_nashville_tokens(self):
        for token in ("1", "6m", "b7", "5/7", "4maj7", "2m7"):
            assert is_nashville_token(token)
        for token in ("8", "1x", "hello", "C"):
            assert not is_nashville_token(token)


# ============================================================================
# Reader Tests
# ============================================================================

class TestReader:
    """Tests for read_song."""

    def test_chord_over_lyric_pair(self):
        song = read_song(AMAZING_GRACE)
        assert len(song.lines) == 1
        line = song.lines[0]
        assert line.kind == LineKind.LYRIC
        assert line.text == "Amazing grace"
        assert line.line_range == (0, 2)
        assert [t.column for t in line.chords] == [4, 12]
        assert symbols(song) == ["C", "G"]

    def test_metadata(self):
        song = read_song(CHORDPRO_SONG)
        assert song.title == "Amazing Grace"
        assert song.declared_key == KeySignature.parse("G")
        assert song.capo == 2
        assert symbols(song) == ["G", "C"]

    def test_inline_columns(self):
        song = read_song("[C]Amazing [G]grace")
        line = song.lines[0]
        assert line.text == "Amazing grace"
        assert [(t.raw, t.column) for t in line.chords] == [("C", 0), ("G", 8)]

    def test_directive_chords(self):
        song = read_song("{c:C}Amazing {c:G}grace")
        assert song.lines[0].text == "Amazing grace"
        assert symbols(song) == ["C", "G"]

    def test_bad_token_kept(self):
        song = read_song("[X]Hello [G]world")
        assert symbols(song) == ["G"]
        assert [t.raw for t in song.invalid_tokens] == ["X"]
        assert song.tokens[0].symbol is None

    def test_bar_marks_are_not_invalid(self):
        song = read_song("| C | G |")
        assert symbols(song) == ["C", "G"]
        assert song.invalid_tokens == []
        assert song.lines[0].kind == LineKind.CHORDS

    def test_labels_and_comments(self):
        song = read_song(chart("# arranged by me", "Chorus:", "C  G", "La la"))
        kinds = [line.kind for line in song.lines]
        assert kinds == [LineKind.COMMENT, LineKind.LABEL, LineKind.LYRIC]

    def test_nashville_with_declared_key(self):
        song = read_song(chart("{key: G}", "1  4  5"))
        assert symbols(song) == ["G", "C", "D"]
        assert song.nashville_key == KeySignature.parse("G")

    def test_nashville_with_explicit_key(self):
        song = read_song("1  6m  4  5", key=C_MAJOR)
        assert symbols(song) == ["C", "Am", "F", "G"]

    def test_nashville_without_key_stays_unresolved(self):
        song = read_song("1  4  5")
        assert song.pattern == NotationPattern.NASHVILLE_NUMBER
        assert song.chords == []
        assert [t.raw for t in song.unresolved_tokens] == ["1", "4", "5"]
        assert song.invalid_tokens == []
        assert song.nashville_key is None

    def test_labeled_chord_line(self):
        song = read_song(chart("Intro: G D Em C", "", "Verse 1", "C   G", "Hello there"))
        assert symbols(song) == ["G", "D", "Em", "C", "C", "G"]
        label, chords = song.lines[0], song.lines[1]
        assert label.kind == LineKind.LABEL
        assert label.text == "Intro:"
        assert chords.kind == LineKind.CHORDS
        assert chords.line_range == label.line_range == (0, 1)
        assert [t.column for t in chords.chords] == [7, 9, 11, 14]

    def test_labeled_nashville_line(self):
        song = read_song("Intro: 1 4 5", key=C_MAJOR)
        assert symbols(song) == ["C", "F", "G"]
        assert song.pattern == NotationPattern.NASHVILLE_NUMBER

    def test_requested_pattern_demotes_other_lines(self):
        song = read_song(chart("C   G", "Hello there", "[F]Another"),
                         pattern=NotationPattern.INLINE_BRACKET)
        assert symbols(song) == ["F"]


# ============================================================================
# Writer / Conversion Tests
# ============================================================================

class TestConversion:
    """Tests for write_song and convert."""

    def test_chord_over_lyric_to_inline(self):
        result = convert(AMAZING_GRACE, None, NotationPattern.INLINE_BRACKET)
        assert result == "[C]Amazing [G]grace"

    def test_inline_to_chord_over_lyric(self):
        result = convert("[C]Amazing [G]grace", None, NotationPattern.CHORD_OVER_LYRIC)
        assert result == "C       G\nAmazing grace"

    def test_inline_to_directive(self):
        result = convert("[C]Amazing [G]grace", None, NotationPattern.DIRECTIVE_STYLE)
        assert result == "{c:C}Amazing {c:G}grace"

    def test_round_trip_keeps_chords(self):
        text = chart("C       G         Am   F", "Amazing grace how sweet the sound")
        inline = convert(text, None, NotationPattern.INLINE_BRACKET)
        back = convert(inline, None, NotationPattern.CHORD_OVER_LYRIC)
        assert symbols(read_song(back)) == symbols(read_song(text))

    def test_metadata_written(self):
        result = convert(chart("{title: Hi}", "[C]Hello"), None, NotationPattern.CHORD_OVER_LYRIC)
        assert result == chart("{title: Hi}", "C", "Hello")

    def test_chord_only_line_inline(self):
        assert convert("C   G", None, NotationPattern.INLINE_BRACKET) == "[C] [G]"

    def test_chords_past_end(self):
        result = convert(chart("C       G      D", "Hello"), None, NotationPattern.INLINE_BRACKET)
        assert result == "[C]Hello [G] [D]"

    def test_colliding_chords_shift_right(self):
        result = convert("[C][G]Hello", None, NotationPattern.CHORD_OVER_LYRIC)
        assert result == chart("C G", "  Hello")
        assert convert(result, None, NotationPattern.INLINE_BRACKET) == "[C][G]Hello"

    def test_collision_pads_lyric_between_words(self):
        result = convert("[Am7]I [G]a", None, NotationPattern.CHORD_OVER_LYRIC)
        assert result == chart("Am7 G", "I   a")
        assert convert(result, None, NotationPattern.INLINE_BRACKET) == "[Am7]I [G]a"

    def test_collision_inside_word_uses_hyphens(self):
        result = convert("[Cmaj7]a[G]men", None, NotationPattern.CHORD_OVER_LYRIC)
        assert result == chart("Cmaj7 G", "a-----men")
        assert convert(result, None, NotationPattern.INLINE_BRACKET) == "[Cmaj7]a[G]men"

    def test_collision_keeps_later_chords_on_their_words(self):
        text = "[Am7]I [G]am [D]here"
        result = convert(text, None, NotationPattern.CHORD_OVER_LYRIC)
        assert result == chart("Am7 G  D", "I   am here")
        assert convert(result, None, NotationPattern.INLINE_BRACKET) == text

    @pytest.mark.parametrize("text,column,width,expected", [
        ("Hello", 0, 2, "  "),
        ("I a", 2, 2, "  "),
        ("amen", 1, 3, "---"),
        ("amen", 1, 1, "--"),
    ])
    def test_lyric_padding(self, text, column, width, expected):
        assert lyric_padding(text, column, width) == expected

    def test_unpad_lyric(self):
        text, index_map, joins = unpad_lyric("  I   a--men ")
        assert text == "I amen "
        assert len(index_map) == len("  I   a--men ") + 1
        assert index_map[2] == 0
        assert index_map[6] == 2
        assert index_map[9] == 3
        assert joins == {3}

    def test_unpad_lyric_keeps_single_hyphen(self):
        assert unpad_lyric("well-known song") == ("well-known song", list(range(16)), set())

    def test_labeled_chord_line_round_trip(self):
        text = "Intro: G D Em C"
        assert convert(text, None, NotationPattern.CHORD_OVER_LYRIC) == text
        assert convert(text, None, NotationPattern.INLINE_BRACKET) == chart("Intro:", "[G] [D] [Em] [C]")

    def test_labeled_chord_line_to_nashville(self):
        result = convert("Intro: G D Em C", None, NotationPattern.NASHVILLE_NUMBER,
                         key=KeySignature.parse("G"))
        assert result == chart("{key: G}", "Intro: 1 5 6m 4")

    def test_to_nashville(self):
        result = convert("C F G", None, NotationPattern.NASHVILLE_NUMBER, key=C_MAJOR)
        assert result == chart("{key: C}", "1 4 5")

    def test_from_nashville(self):
        result = convert(chart("{key: C}", "1 4 5"), None, NotationPattern.CHORD_OVER_LYRIC)
        assert result == chart("{key: C}", "C F G")

    def test_keyless_numerals_need_a_key_for_chords(self):
        with pytest.raises(KeyRequiredError):
            convert("1  4  5", None, NotationPattern.CHORD_OVER_LYRIC)

    def test_keyless_numerals_with_key_at_write(self):
        song = read_song("1  4  5")
        assert write_song(song, NotationPattern.CHORD_OVER_LYRIC, key=C_MAJOR) == "C  F  G"

    def test_keyless_numerals_stay_numerals(self):
        assert convert("1  4  5", None, NotationPattern.NASHVILLE_NUMBER) == "1  4  5"

    def test_resolve_numerals(self):
        song = resolve_numerals(read_song("1  4  5"), C_MAJOR)
        assert symbols(song) == ["C", "F", "G"]
        assert song.unresolved_tokens == []
        assert song.nashville_key == C_MAJOR

    def test_nashville_without_any_key(self):
        with pytest.raises(KeyRequiredError):
            convert("Just words", None, NotationPattern.NASHVILLE_NUMBER)

    def test_key_required_is_conversion_error(self):
        with pytest.raises(ConversionError):
            convert("Just words", None, NotationPattern.NASHVILLE_NUMBER)

    def test_cannot_write_mixed(self):
        with pytest.raises(ConversionError):
            write_song(read_song(AMAZING_GRACE), NotationPattern.MIXED)

    def test_contradictory_block(self):
        text = chart("[C]Hello there", "{c:G}world")
        with pytest.raises(UnsupportedPatternError):
            convert(text, None, NotationPattern.CHORD_OVER_LYRIC)

    def test_mixed_blocks_convert(self):
        text = chart("C     G", "Hello there", "", "[F]Another [C]line")
        check_convertible(read_song(text))
        result = convert(text, None, NotationPattern.INLINE_BRACKET)
        assert result == chart("[C]Hello [G]there", "", "[F]Another [C]line")

    @pytest.mark.parametrize("column,expected", [
        (0, 0),
        (4, 0),
        (7, 8),
        (10, 8),
        (20, 13),
    ])
    def test_snap_column(self, column, expected):
        assert snap_column(column, "Amazing grace") == expected


# ============================================================================
# Nashville Tests
# ============================================================================

class TestNashville:
    """Tests for Nashville number conversion."""

    def test_to_nashville(self):
        assert to_nashville([parse_chord(c) for c in ("C", "F", "G")], C_MAJOR) == ["1", "4", "5"]

    def test_from_nashville(self):
        chords = from_nashville(["1", "4", "5"], C_MAJOR)
        assert [render_chord(c) for c in chords] == ["C", "F", "G"]

    @pytest.mark.parametrize("numeral,expected", [
        ("6m", "Am"),
        ("b7", "Bb"),
        ("#4", "F#"),
        ("5/7", "G/B"),
        ("2m7", "Dm7"),
    ])
    def test_numeral_to_chord(self, numeral, expected):
        assert render_chord(numeral_to_chord(numeral, C_MAJOR)) == expected

    def test_numeral_in_flat_key(self):
        assert render_chord(numeral_to_chord("4maj7", KeySignature.parse("Eb"))) == "Abmaj7"

    def test_chord_to_numeral_keeps_suffix(self):
        assert chord_to_numeral(parse_chord("Am7"), C_MAJOR) == "6m7"
        assert chord_to_numeral(parse_chord("G/B"), C_MAJOR) == "5/7"

    def test_chromatic_spelling_preserved(self):
        assert chord_to_numeral(parse_chord("Bb"), C_MAJOR) == "b7"
        assert chord_to_numeral(parse_chord("A#"), C_MAJOR) == "#6"

    def test_minor_key_uses_major_reference(self):
        assert chord_to_numeral(parse_chord("C"), KeySignature.parse("Am")) == "b3"

    def test_not_a_numeral(self):
        with pytest.raises(ChordParseError):
            numeral_to_chord("x", C_MAJOR)

    def test_resolve_key_order(self):
        song = read_song(CHORDPRO_SONG)
        assert resolve_key(song, C_MAJOR) == C_MAJOR
        assert resolve_key(song) == KeySignature.parse("G")

    def test_resolve_key_detected(self):
        song = read_song(chart("C   Am   F   G", "Hello there my friend"))
        assert resolve_key(song) == C_MAJOR

    def test_resolve_key_low_confidence(self):
        song = read_song(chart("C   Am   F   G", "Hello there my friend"))
        with pytest.raises(KeyRequiredError):
            resolve_key(song, min_confidence=0.99)


# ============================================================================
# Song Transposition Tests
# ============================================================================

class TestTransposeSong:
    """Tests for transpose_song."""

    def test_chords_and_key_directive(self):
        song = read_song(chart("{key: G}", "G    D", "Hello world"))
        moved = transpose_song(song, 2)
        assert symbols(moved) == ["A", "E"]
        assert moved.metadata["key"] == "A"
        assert write_song(moved, NotationPattern.CHORD_OVER_LYRIC) == chart(
            "{key: A}", "A    E", "Hello world"
        )

    def test_positions_preserved(self):
        song = read_song("[C]Amazing [G]grace")
        moved = transpose_song(song, 2)
        assert [t.column for t in moved.tokens] == [t.column for t in song.tokens]

    def test_original_unchanged(self):
        song = read_song("[C]Amazing [G]grace")
        transpose_song(song, 5)
        assert symbols(song) == ["C", "G"]

    def test_keyless_numerals(self):
        with pytest.raises(KeyRequiredError):
            transpose_song(read_song("1  4  5"), 2)
        moved = transpose_song(read_song("1  4  5"), 2, key=C_MAJOR)
        assert symbols(moved) == ["D", "G", "A"]

    def test_round_trip(self):
        song = read_song(chart("C   Am   F   G7", "Hello there my friend"))
        back = transpose_song(transpose_song(song, 3), -3)
        assert back.chords == song.chords


# ============================================================================
# Alignment Tests
# ============================================================================

class TestAlignment:
    """Tests for chord/lyric alignment scoring."""

    def test_word_starts(self):
        assert alignment_score("C       G", "Amazing grace") == pytest.approx(1.0)

    def test_mid_word(self):
        assert alignment_score("    C       G", "Amazing grace") == pytest.approx(0.0)

    def test_syllable_boundary(self):
        assert alignment_score("   G", "garden") == pytest.approx(0.6)

    def test_past_end(self):
        assert alignment_score("C             G", "Hi") == pytest.approx(0.75)

    def test_no_chords(self):
        assert alignment_score("", "Hello") == 1.0

    def test_song_alignment(self):
        song = read_song(chart("C       G", "Amazing grace", "", "[F]Inline [C]line"))
        assert song_alignment(song) == [pytest.approx(1.0)]
