"""Readers - Build the canonical Song from chart text in any notation.

Reading degrades gracefully: chords that cannot be parsed are kept as
tokens with ``symbol=None`` and lines that are not understood are kept as
lyric text. Nashville numerals read without a key stay unresolved until a
key is supplied (see ``nashville.resolve_numerals``).
"""

import logging
import re
from typing import Dict, List, Optional, Tuple

from ..core.chord import try_parse_chord
from ..core.errors import ChordParseError
from ..core.key import KeySignature
from .document import (
    METADATA_DIRECTIVES,
    ChordToken,
    LineKind,
    NotationPattern,
    Song,
    SongLine,
)
from .nashville import numeral_to_chord
from .patterns import (
    BRACE_RE,
    BRACKET_RE,
    RUN_RE,
    LineClass,
    brace_chord,
    classify_lines,
    document_pattern,
    is_neutral_mark,
    label_prefix_length,
    line_patterns_for,
    parse_directive,
)

logger = logging.getLogger(__name__)


_CHORD_CLASSES = {
    LineClass.CHORDS: NotationPattern.CHORD_OVER_LYRIC,
    LineClass.NASHVILLE: NotationPattern.NASHVILLE_NUMBER,
    LineClass.INLINE: NotationPattern.INLINE_BRACKET,
    LineClass.DIRECTIVE_CHORDS: NotationPattern.DIRECTIVE_STYLE,
    LineClass.LABELED_CHORDS: NotationPattern.CHORD_OVER_LYRIC,
    LineClass.LABELED_NASHVILLE: NotationPattern.NASHVILLE_NUMBER,
}


class SongReader:
    """Read chart text into a Song.

    Args:
        pattern: Notation to read; chord lines of any other notation are
            kept as plain text. None (or MIXED) reads every notation found.
        key: Key for Nashville numerals (else the {key:} directive)
    """

    def __init__(
        self,
        pattern: Optional[NotationPattern] = None,
        key: Optional[KeySignature] = None,
    ):
        self.pattern = pattern
        self.key = key

    def read(self, text: str) -> Song:
        """
        Parse chart text.

        Args:
            text: Multi-line chart text

        Returns:
            Song
        """
        source = tuple(text.splitlines())
        classes = [self._effective_class(cls) for cls in classify_lines(source)]
        line_patterns = line_patterns_for(classes)
        metadata = self._collect_metadata(source, classes)

        nashville_key = None
        if LineClass.NASHVILLE in classes or LineClass.LABELED_NASHVILLE in classes:
            nashville_key = self.key or Song(metadata=metadata).declared_key
            if nashville_key is None:
                logger.debug("No key for Nashville numbers, leaving them unresolved")

        lines: List[SongLine] = []
        i = 0
        while i < len(source):
            cls = classes[i]
            raw = source[i]

            if cls in (LineClass.CHORDS, LineClass.NASHVILLE):
                pattern = _CHORD_CLASSES[cls]
                paired = i + 1 < len(source) and classes[i + 1] is LineClass.LYRIC
                target = i + 1 if paired else i
                tokens = self._read_chord_line(raw, target, pattern, nashville_key)
                if paired:
                    lines.append(SongLine(
                        LineKind.LYRIC, source[i + 1], tokens, (i, i + 2), pattern,
                    ))
                    i += 2
                    continue
                lines.append(SongLine(LineKind.CHORDS, "", tokens, (i, i + 1), pattern))
            elif cls in (LineClass.LABELED_CHORDS, LineClass.LABELED_NASHVILLE):
                # Label and chords share the source line; columns stay source-relative
                pattern = _CHORD_CLASSES[cls]
                cut = label_prefix_length(raw)
                tokens = self._read_chord_line(" " * cut + raw[cut:], i, pattern, nashville_key)
                lines.append(SongLine(LineKind.LABEL, raw[:cut].strip(), line_range=(i, i + 1)))
                lines.append(SongLine(LineKind.CHORDS, "", tokens, (i, i + 1), pattern))
            elif cls is LineClass.INLINE:
                text_, tokens = self._read_spans(
                    raw, i, BRACKET_RE, NotationPattern.INLINE_BRACKET, _bracket_chord
                )
                lines.append(_lyric_or_chords(text_, tokens, i, NotationPattern.INLINE_BRACKET))
            elif cls is LineClass.DIRECTIVE_CHORDS:
                text_, tokens = self._read_spans(
                    raw, i, BRACE_RE, NotationPattern.DIRECTIVE_STYLE, brace_chord
                )
                lines.append(_lyric_or_chords(text_, tokens, i, NotationPattern.DIRECTIVE_STYLE))
            elif cls is LineClass.DIRECTIVE:
                for content in BRACE_RE.findall(raw):
                    lines.append(SongLine(
                        LineKind.DIRECTIVE,
                        raw.strip(),
                        line_range=(i, i + 1),
                        pattern=NotationPattern.DIRECTIVE_STYLE,
                        directive=parse_directive(content),
                    ))
            elif cls is LineClass.LABEL:
                lines.append(SongLine(LineKind.LABEL, raw.strip(), line_range=(i, i + 1)))
            elif cls is LineClass.COMMENT:
                lines.append(SongLine(LineKind.COMMENT, raw, line_range=(i, i + 1)))
            elif cls is LineClass.BLANK:
                lines.append(SongLine(LineKind.BLANK, line_range=(i, i + 1)))
            else:
                lines.append(SongLine(LineKind.LYRIC, raw, line_range=(i, i + 1)))
            i += 1

        detected = document_pattern(classes, line_patterns)
        song = Song(
            lines=lines,
            metadata=metadata,
            pattern=detected,
            line_patterns=line_patterns,
            source_lines=source,
            nashville_key=nashville_key,
        )
        logger.debug(
            "Read %d lines (%s), %d chord tokens", len(source), detected.value, len(song.tokens)
        )
        return song

    def _effective_class(self, cls: LineClass) -> LineClass:
        """Demote chord lines of other notations when one pattern is requested."""
        if self.pattern is None or not self.pattern.is_concrete:
            return cls
        pattern = _CHORD_CLASSES.get(cls)
        if pattern is not None and pattern is not self.pattern:
            return LineClass.LYRIC
        return cls

    @staticmethod
    def _collect_metadata(source, classes) -> Dict[str, str]:
        metadata: Dict[str, str] = {}
        for raw, cls in zip(source, classes):
            if cls is not LineClass.DIRECTIVE:
                continue
            for content in BRACE_RE.findall(raw):
                directive = parse_directive(content)
                if directive is None or directive.value is None:
                    continue
                name = METADATA_DIRECTIVES.get(directive.name)
                if name is not None:
                    metadata[name] = directive.value
        return metadata

    @staticmethod
    def _read_chord_line(
        raw: str,
        line: int,
        pattern: NotationPattern,
        key: Optional[KeySignature],
    ) -> List[ChordToken]:
        tokens = []
        for match in RUN_RE.finditer(raw):
            text = match.group()
            unresolved = False
            if is_neutral_mark(text):
                symbol = None
            elif pattern is NotationPattern.NASHVILLE_NUMBER and key is None:
                symbol = None
                unresolved = True
            elif pattern is NotationPattern.NASHVILLE_NUMBER:
                try:
                    symbol = numeral_to_chord(text, key)
                except ChordParseError:
                    logger.debug("Unreadable Nashville numeral %r on line %d", text, line)
                    symbol = None
            else:
                symbol = try_parse_chord(text)
            tokens.append(ChordToken(symbol, text, line, match.start(), pattern, unresolved))
        return tokens

    @staticmethod
    def _read_spans(
        raw: str,
        line: int,
        span_re: "re.Pattern",
        pattern: NotationPattern,
        chord_of,
    ) -> Tuple[str, List[ChordToken]]:
        """Strip chord spans out of a lyric line, recording their columns."""
        text_parts: List[str] = []
        tokens: List[ChordToken] = []
        column = 0
        last = 0
        for match in span_re.finditer(raw):
            chord_text = chord_of(match.group(1))
            if chord_text is None:
                continue
            segment = raw[last:match.start()]
            text_parts.append(segment)
            column += len(segment)
            symbol = try_parse_chord(chord_text)
            if symbol is None:
                logger.debug("Unparseable chord %r on line %d", chord_text, line)
            tokens.append(ChordToken(symbol, chord_text, line, column, pattern))
            last = match.end()
        text_parts.append(raw[last:])
        return "".join(text_parts), tokens


def _bracket_chord(content: str) -> Optional[str]:
    """Every [..] span on an inline line is a chord slot (maybe unparseable)."""
    stripped = content.strip()
    return stripped if stripped else None


def _lyric_or_chords(
    text: str, tokens: List[ChordToken], line: int, pattern: NotationPattern
) -> SongLine:
    kind = LineKind.LYRIC if text.strip() else LineKind.CHORDS
    return SongLine(kind, text if kind is LineKind.LYRIC else "", tokens, (line, line + 1), pattern)


def read_song(
    text: str,
    pattern: Optional[NotationPattern] = None,
    key: Optional[KeySignature] = None,
) -> Song:
    """
    Read chart text into the canonical Song representation.

    Args:
        text: Chart text in any supported notation
        pattern: Read only this notation (None = detect per line)
        key: Key for Nashville numerals

    Returns:
        Song
    """
    return SongReader(pattern=pattern, key=key).read(text)
