"""Writers - Serialize a Song in one of the four concrete notations.

Chord content is preserved exactly; lyric whitespace may be re-normalized.
Chords read from column-aligned notations are snapped to the start of the
word under them when written inline, and the padding an aligned chart put
into the lyric to fit its chords is removed. Metadata and other directives are
written as ``{name: value}`` lines in every notation.
"""

import re
from typing import Callable, List, Optional, Set, Tuple

from ..core.chord import render_chord
from ..core.errors import ConversionError, KeyRequiredError
from ..core.key import KeySignature
from .document import ChordToken, Directive, LineKind, NotationPattern, Song, SongLine
from .nashville import chord_to_numeral, resolve_key, resolve_numerals

# Token patterns whose columns are visual alignment rather than insertion points
_ALIGNED_PATTERNS = (NotationPattern.CHORD_OVER_LYRIC, NotationPattern.NASHVILLE_NUMBER)


def snap_column(column: int, text: str) -> int:
    """
    Move a chord column to an insertion point in the lyric.

    Inside a word -> start of that word; on whitespace -> start of the next
    word; past the end -> end of the text.
    """
    if column >= len(text):
        return len(text)
    if text[column].isspace():
        while column < len(text) and text[column].isspace():
            column += 1
        return column
    while column > 0 and not text[column - 1].isspace():
        column -= 1
    return column


# Padding an aligned writer puts into a lyric: leading whitespace, runs of
# spaces between words, and hyphen runs that stretch a word
_PAD_RE = re.compile(r"^\s+|(?<=\S) {2,}(?=\S)|(?<=[^\W\d_])-{2,}(?=[^\W\d_])")


def lyric_padding(text: str, column: int, width: int) -> str:
    """
    Filler inserted into a lyric before ``column`` to push it right.

    Returns ``width`` spaces at a word boundary, or a run of at least two
    hyphens inside a word.
    """
    inside_word = 0 < column < len(text) and not (
        text[column - 1].isspace() or text[column].isspace()
    )
    if inside_word:
        return "-" * max(width, 2)
    return " " * width


def unpad_lyric(text: str) -> Tuple[str, List[int], Set[int]]:
    """
    Undo the padding of a lyric read from a column-aligned chart.

    Leading whitespace is dropped, space runs between words collapse to one
    space and hyphen runs inside a word are removed.

    Args:
        text: Lyric text from a chord-over-lyric or Nashville line

    Returns:
        Tuple of (plain text, new index for every old index including the
        end of the text, indexes where a stretched word was rejoined)
    """
    parts: List[str] = []
    index_map: List[int] = []
    joins: Set[int] = set()
    length = 0
    last = 0
    for match in _PAD_RE.finditer(text):
        kept = text[last:match.start()]
        index_map.extend(range(length, length + len(kept)))
        parts.append(kept)
        length += len(kept)

        padding = match.group()
        replacement = " " if padding[0] == " " and match.start() > 0 else ""
        if padding[0] == "-":
            joins.add(length)
        # A column on padding lands on the character after it
        index_map.extend([length + len(replacement)] * len(padding))
        parts.append(replacement)
        length += len(replacement)
        last = match.end()

    rest = text[last:]
    index_map.extend(range(length, length + len(rest) + 1))
    parts.append(rest)
    return "".join(parts), index_map, joins


def prefix_label(label: str, chord_line: str) -> str:
    """Put a section label in front of a chord line ("Intro:" + "  G D" -> "Intro: G D")."""
    body = chord_line.lstrip()
    indent = len(chord_line) - len(body)
    return label.ljust(max(indent, len(label) + 1)) + body


class SongWriter:
    """Write a Song in a target notation."""

    def __init__(self, pattern: NotationPattern, key: Optional[KeySignature] = None):
        """
        Initialize SongWriter.

        Args:
            pattern: Target notation (one of the four concrete patterns)
            key: Key for Nashville numerals

        Raises:
            ConversionError: If the pattern cannot be written
        """
        if not pattern.is_concrete:
            raise ConversionError(f"Cannot write a song as {pattern.value}")
        self.pattern = pattern
        self.key = key

    def write(self, song: Song) -> str:
        nashville = self.pattern is NotationPattern.NASHVILLE_NUMBER
        if song.unresolved_tokens:
            if self.key is not None:
                song = resolve_numerals(song, self.key)
            elif not nashville or song.chords:
                raise KeyRequiredError(
                    "Nashville numbers cannot be written as chords without a key"
                )

        # Numerals with no key and no letter chords are copied as they are
        key = None
        if nashville and not song.unresolved_tokens:
            key = resolve_key(song, self.key)
        chord_text = self._chord_formatter(key)

        out: List[str] = []
        if key is not None and not any(
            line.directive is not None and line.directive.name == "key" for line in song.lines
        ):
            out.append(Directive("key", key.short_name).render())

        previous: Optional[SongLine] = None
        for line in song.lines:
            written = self._write_line(line, chord_text, key)
            if self._shares_label_line(previous, line):
                out[-1] = prefix_label(out[-1], written[0])
            else:
                out.extend(written)
            previous = line
        return "\n".join(out)

    def _shares_label_line(self, previous: Optional[SongLine], line: SongLine) -> bool:
        """True for a chord line read from the same source line as its label."""
        return (
            self.pattern in _ALIGNED_PATTERNS
            and previous is not None
            and previous.kind is LineKind.LABEL
            and line.kind is LineKind.CHORDS
            and previous.line_range == line.line_range
        )

    def _chord_formatter(self, key: Optional[KeySignature]) -> Callable[[ChordToken], str]:
        def fmt(token: ChordToken) -> str:
            if token.symbol is None:
                return token.raw
            if key is not None:
                return chord_to_numeral(token.symbol, key)
            return render_chord(token.symbol)
        return fmt

    def _write_line(self, line: SongLine, chord_text, key) -> List[str]:
        if line.kind is LineKind.BLANK:
            return [""]
        if line.kind is LineKind.DIRECTIVE:
            if line.directive is None:
                return [line.text]
            if key is not None and line.directive.name == "key":
                return [Directive("key", key.short_name).render()]
            return [line.directive.render()]
        if line.kind in (LineKind.LABEL, LineKind.COMMENT) or not line.chords:
            return [line.text]

        if self.pattern in _ALIGNED_PATTERNS:
            return self._write_aligned(line, chord_text)
        if self.pattern is NotationPattern.INLINE_BRACKET:
            return [self._write_embedded(line, chord_text, "[{}]")]
        return [self._write_embedded(line, chord_text, "{{c:{}}}")]

    @staticmethod
    def _write_aligned(line: SongLine, chord_text) -> List[str]:
        """
        Chord line over lyric line.

        A chord that would collide with the one before it moves right, and
        the lyric is padded at its column so the chord stays over its
        syllable: spaces between words, hyphens inside a word.
        """
        chord_line = ""
        lyric = line.text
        offset = 0
        for token in line.chords:
            text = chord_text(token)
            column = token.column + offset
            if chord_line and column <= len(chord_line):
                shift = len(chord_line) + 1 - column
                if line.kind is LineKind.LYRIC and column < len(lyric):
                    pad = lyric_padding(lyric, column, shift)
                    lyric = lyric[:column] + pad + lyric[column:]
                    shift = len(pad)
                offset += shift
                column += shift
            chord_line = chord_line.ljust(column) + text
        if line.kind is LineKind.CHORDS:
            return [chord_line]
        return [chord_line, lyric]

    @staticmethod
    def _write_embedded(line: SongLine, chord_text, template: str) -> str:
        """Insert chords into the lyric text at (snapped) positions."""
        text = line.text
        aligned = any(token.pattern in _ALIGNED_PATTERNS for token in line.chords)
        if aligned:
            text, index_map, joins = unpad_lyric(text)

        placed: List[Tuple[int, int, str]] = []
        for order, token in enumerate(line.chords):
            if token.pattern in _ALIGNED_PATTERNS:
                position = index_map[min(token.column, len(index_map) - 1)]
                if position not in joins:
                    position = snap_column(position, text)
            else:
                position = min(token.column, len(text))
            rendered = chord_text(token)
            if not token.is_mark:
                rendered = template.format(rendered)
            placed.append((position, order, rendered))
        placed.sort()

        parts = []
        last = 0
        for position, _, rendered in placed:
            parts.append(text[last:position])
            written = "".join(parts)
            # Chords past the end of the lyric are space separated
            if position >= len(text) and written and not written.endswith(" "):
                parts.append(" ")
            parts.append(rendered)
            last = position
        parts.append(text[last:])
        return "".join(parts)


def write_song(
    song: Song,
    pattern: NotationPattern,
    key: Optional[KeySignature] = None,
) -> str:
    """
    Serialize a Song.

    Args:
        song: Parsed song
        pattern: Target notation
        key: Key for Nashville output (else declared or confidently detected)

    Returns:
        Chart text

    Raises:
        KeyRequiredError: Nashville output without a usable key, or unresolved
            Nashville numerals written as chords without a key
        ConversionError: Target pattern is MIXED or UNKNOWN
    """
    return SongWriter(pattern, key).write(song)
