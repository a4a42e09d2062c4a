"""Notation layer - Chord placement conventions and conversion between them.

Supported notations:
- Chord-over-lyric (chord line above a lyric line)
- Inline brackets ([C]Amazing [G]grace)
- ChordPro-style directives ({c:C}Amazing, {title: ...})
- Nashville numbers (1 4 5, relative to a key)

Pipeline: text -> detect_pattern -> read_song -> Song -> write_song -> text
"""

from .document import (
    ChordToken,
    Directive,
    LineKind,
    NotationPattern,
    Song,
    SongLine,
)
from .patterns import (
    LineClass,
    PatternDetection,
    classify_line,
    detect_pattern,
    is_nashville_token,
    is_plausible_chord,
)
from .nashville import (
    chord_to_numeral,
    numeral_to_chord,
    to_nashville,
    from_nashville,
    resolve_key,
    resolve_numerals,
)
from .readers import SongReader, read_song
from .writers import SongWriter, snap_column, write_song
from .converter import check_convertible, convert, transpose_song
from .alignment import AlignmentScorer, alignment_score, song_alignment

__all__ = [
    # Document model
    "ChordToken",
    "Directive",
    "LineKind",
    "NotationPattern",
    "Song",
    "SongLine",
    # Detection
    "LineClass",
    "PatternDetection",
    "classify_line",
    "detect_pattern",
    "is_nashville_token",
    "is_plausible_chord",
    # Nashville
    "chord_to_numeral",
    "numeral_to_chord",
    "to_nashville",
    "from_nashville",
    "resolve_key",
    "resolve_numerals",
    # Reading / writing
    "SongReader",
    "read_song",
    "SongWriter",
    "snap_column",
    "write_song",
    "check_convertible",
    "convert",
    "transpose_song",
    # Alignment
    "AlignmentScorer",
    "alignment_score",
    "song_alignment",
]
