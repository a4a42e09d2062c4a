"""Conversion - Notation changes and song-wide transposition through Song.

Conversion always reads into the canonical Song and writes it back out,
so A -> B -> A keeps chord content intact.
"""

import logging
from dataclasses import replace
from typing import Iterator, List, Optional, Set

from ..core.errors import KeyRequiredError, UnsupportedPatternError
from ..core.key import KeySignature
from ..processing.transpose import transpose_key, transpose_progression
from .document import Directive, LineKind, NotationPattern, Song, SongLine
from .nashville import resolve_numerals
from .readers import read_song
from .writers import write_song

logger = logging.getLogger(__name__)


def _blocks(song: Song) -> Iterator[List[SongLine]]:
    """Blank-line delimited blocks of lines."""
    block: List[SongLine] = []
    for line in song.lines:
        if line.kind is LineKind.BLANK:
            if block:
                yield block
            block = []
        else:
            block.append(line)
    if block:
        yield block


def check_convertible(song: Song):
    """
    Reject MIXED documents that cannot be normalized unambiguously.

    A block (blank-line delimited) with chords in more than one notation
    is contradictory.

    Raises:
        UnsupportedPatternError: For a contradictory block
    """
    if song.pattern is not NotationPattern.MIXED:
        return
    for block in _blocks(song):
        patterns: Set[NotationPattern] = {
            line.pattern for line in block if line.has_chords and line.pattern is not None
        }
        if len(patterns) > 1:
            start = block[0].line_range[0]
            end = block[-1].line_range[1]
            names = ", ".join(sorted(p.value for p in patterns))
            raise UnsupportedPatternError(
                f"Lines {start + 1}-{end} mix chord notations ({names})",
                line_range=(start, end),
            )


def convert(
    text: str,
    source: Optional[NotationPattern],
    target: NotationPattern,
    key: Optional[KeySignature] = None,
) -> str:
    """
    Convert chart text between notations.

    Args:
        text: Chart text
        source: Notation of the text (None or MIXED to detect per line)
        target: Notation to write
        key: Key for Nashville numerals, either direction

    Returns:
        Converted chart text

    Raises:
        KeyRequiredError: Nashville involved and no usable key
        UnsupportedPatternError: Contradictory MIXED document
        ConversionError: Target is MIXED or UNKNOWN
    """
    song = read_song(text, pattern=source, key=key)
    check_convertible(song)
    logger.debug("Converting %s -> %s", song.pattern.value, target.value)
    return write_song(song, target, key=key)


def transpose_song(
    song: Song,
    semitones: int,
    key: Optional[KeySignature] = None,
) -> Song:
    """
    Transpose every chord of a song with one spelling decision.

    Args:
        song: Parsed song
        semitones: Shift in semitones
        key: Source key (else declared, else detected)

    Returns:
        New Song; a {key:} directive is updated to the new key

    Raises:
        KeyRequiredError: If the song has Nashville numerals and no key
    """
    key = key or song.declared_key
    if song.unresolved_tokens:
        if key is None:
            raise KeyRequiredError("Nashville numbers cannot be transposed without a key")
        song = resolve_numerals(song, key)
    tokens = transpose_progression(song.tokens, semitones, key)

    moved = iter(tokens)
    lines = [
        replace(line, chords=[next(moved) for _ in line.chords]) for line in song.lines
    ]

    metadata = dict(song.metadata)
    declared = song.declared_key
    if declared is not None:
        new_key = transpose_key(declared, semitones).short_name
        metadata["key"] = new_key
        lines = [
            replace(line, directive=Directive("key", new_key))
            if line.directive is not None and line.directive.name == "key" else line
            for line in lines
        ]

    nashville_key = song.nashville_key
    if nashville_key is not None:
        nashville_key = transpose_key(nashville_key, semitones)

    return replace(song, lines=lines, metadata=metadata, nashville_key=nashville_key)
