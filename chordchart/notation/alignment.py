"""Chord/lyric alignment scoring for chord-over-lyric charts.

A layout heuristic only: it says nothing about whether the chords are
right, just whether they sit on sensible places in the lyric.
"""

from typing import List, Optional

import numpy as np

from .document import LineKind, NotationPattern, Song
from .patterns import RUN_RE, is_plausible_chord

VOWELS = frozenset("aeiouyAEIOUY")


class AlignmentScorer:
    """Score where chord columns land in a lyric line."""

    WORD_BOUNDARY_SCORE = 1.0  # Whitespace or start of a word
    SYLLABLE_BOUNDARY_SCORE = 0.6
    MID_WORD_SCORE = 0.0
    PAST_END_SCORE = 0.5  # Chord beyond the end of the lyric

    def __init__(
        self,
        word_boundary: float = WORD_BOUNDARY_SCORE,
        syllable_boundary: float = SYLLABLE_BOUNDARY_SCORE,
        mid_word: float = MID_WORD_SCORE,
        past_end: float = PAST_END_SCORE,
    ):
        self.word_boundary = word_boundary
        self.syllable_boundary = syllable_boundary
        self.mid_word = mid_word
        self.past_end = past_end

    @staticmethod
    def is_syllable_boundary(text: str, column: int) -> bool:
        """
        Rough syllable split test inside a word.

        Accepts hyphen/apostrophe splits, V-CV ("a-ma") and VC-CV ("gar-den").
        """
        prev = text[column - 1]
        if prev in "-'":
            return True
        cur = text[column]
        nxt = text[column + 1] if column + 1 < len(text) else ""
        if not (cur.isalpha() and prev.isalpha()):
            return False
        if prev in VOWELS and cur not in VOWELS and nxt in VOWELS:
            return True
        before = text[column - 2] if column >= 2 else ""
        return (
            prev not in VOWELS and cur not in VOWELS
            and before in VOWELS and nxt in VOWELS
        )

    def column_score(self, column: int, lyric: str) -> float:
        if column >= len(lyric):
            return self.past_end
        if lyric[column].isspace() or column == 0 or lyric[column - 1].isspace():
            return self.word_boundary
        if self.is_syllable_boundary(lyric, column):
            return self.syllable_boundary
        return self.mid_word

    def score_columns(self, columns: List[int], lyric: str) -> float:
        if not columns:
            return 1.0
        return float(np.mean([self.column_score(c, lyric) for c in columns]))

    def score(self, chord_line: str, lyric_line: str) -> float:
        """
        Score a chord line against the lyric line under it.

        Args:
            chord_line: Line of chords
            lyric_line: Lyric line below it

        Returns:
            Mean column score (0..1); 1.0 when there are no chords
        """
        columns = [
            m.start() for m in RUN_RE.finditer(chord_line) if is_plausible_chord(m.group())
        ]
        return self.score_columns(columns, lyric_line)


def alignment_score(chord_line: str, lyric_line: str) -> float:
    """Alignment of a chord line over a lyric line (0..1)."""
    return AlignmentScorer().score(chord_line, lyric_line)


def song_alignment(song: Song, scorer: Optional[AlignmentScorer] = None) -> List[float]:
    """Alignment score for every chord-over-lyric pair in a song, in order."""
    scorer = scorer or AlignmentScorer()
    scores = []
    for line in song.lines:
        if (
            line.kind is LineKind.LYRIC
            and line.pattern is NotationPattern.CHORD_OVER_LYRIC
            and line.line_range[1] - line.line_range[0] == 2
        ):
            columns = [t.column for t in line.chords if t.symbol is not None]
            scores.append(scorer.score_columns(columns, line.text))
    return scores
