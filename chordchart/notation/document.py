"""Song document model - the canonical form every notation is read into.

A Song is a list of logical lines. Chord-over-lyric pairs collapse into one
logical line whose chord tokens carry a column into the lyric text, so all
notations share one representation and conversion never substitutes text
pattern-to-pattern.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..core.chord import ChordSymbol
from ..core.key import KeySignature

logger = logging.getLogger(__name__)


class NotationPattern(Enum):
    """Chord placement conventions."""
    CHORD_OVER_LYRIC = "chord_over_lyric"
    INLINE_BRACKET = "inline_bracket"
    DIRECTIVE_STYLE = "directive_style"
    NASHVILLE_NUMBER = "nashville_number"
    MIXED = "mixed"
    UNKNOWN = "unknown"

    @property
    def is_concrete(self) -> bool:
        """True for the four patterns that can be written."""
        return self not in (NotationPattern.MIXED, NotationPattern.UNKNOWN)


class LineKind(Enum):
    """What a logical line holds."""
    LYRIC = "lyric"  # Lyric text, with or without chords
    CHORDS = "chords"  # Chords only (intro, instrumental lines)
    LABEL = "label"  # Section label ("Verse 1:", "[Chorus]")
    DIRECTIVE = "directive"  # {name: value} on its own line
    COMMENT = "comment"  # "# ..." line
    BLANK = "blank"


# Bar lines, repeat marks and "no chord" markers kept on chord lines
NEUTRAL_MARKS = frozenset({"|", "||", "|:", ":|", "/", "%", "-", "N.C.", "NC", "N.C"})


@dataclass(frozen=True)
class ChordToken:
    """A chord with its position.

    ``column`` is a character offset into the lyric text of the logical
    line (or into the chord line for chord-only lines). ``symbol`` is None
    for tokens that could not be parsed and for bar/repeat marks. Nashville
    numerals read without a key are ``unresolved``: ``raw`` keeps the
    numeral until a key is known.
    """

    symbol: Optional[ChordSymbol]
    raw: str
    line: int
    column: int
    pattern: NotationPattern
    unresolved: bool = False

    @property
    def is_mark(self) -> bool:
        """True for bar lines and repeat marks rather than chords."""
        return self.symbol is None and (self.raw in NEUTRAL_MARKS or is_repeat_mark(self.raw))

    @property
    def is_valid(self) -> bool:
        return self.symbol is not None


def is_repeat_mark(text: str) -> bool:
    """True for repeat counts such as 'x2', '2x', '(x4)'."""
    core = text.strip("()").lower()
    return len(core) > 1 and (
        (core[0] == "x" and core[1:].isdigit()) or (core[-1] == "x" and core[:-1].isdigit())
    )


@dataclass(frozen=True)
class Directive:
    """A {name: value} directive."""
    name: str
    value: Optional[str] = None

    def render(self) -> str:
        if self.value is None:
            return "{" + self.name + "}"
        return "{" + f"{self.name}: {self.value}" + "}"


@dataclass
class SongLine:
    """One logical line of a song."""

    kind: LineKind
    text: str = ""
    chords: List[ChordToken] = field(default_factory=list)
    line_range: Tuple[int, int] = (0, 0)  # Source lines [start, end)
    pattern: Optional[NotationPattern] = None
    directive: Optional[Directive] = None

    @property
    def has_chords(self) -> bool:
        return bool(self.chords)

    @property
    def is_content(self) -> bool:
        """True for lines that carry lyrics or chords."""
        return self.kind in (LineKind.LYRIC, LineKind.CHORDS)


# Directive names collected into Song.metadata, with their aliases
METADATA_DIRECTIVES = {
    "title": "title",
    "t": "title",
    "subtitle": "subtitle",
    "st": "subtitle",
    "artist": "artist",
    "composer": "composer",
    "lyricist": "lyricist",
    "album": "album",
    "year": "year",
    "key": "key",
    "tempo": "tempo",
    "time": "time",
    "capo": "capo",
    "duration": "duration",
    "copyright": "copyright",
}


@dataclass
class Song:
    """A parsed song document.

    Owns its lines and tokens. Key candidates are not stored; compute them
    on demand from ``chords``.
    """

    lines: List[SongLine] = field(default_factory=list)
    metadata: Dict[str, str] = field(default_factory=dict)
    pattern: NotationPattern = NotationPattern.UNKNOWN
    line_patterns: Dict[int, NotationPattern] = field(default_factory=dict)
    source_lines: Tuple[str, ...] = ()
    nashville_key: Optional[KeySignature] = None  # Key used to read numerals

    @property
    def tokens(self) -> List[ChordToken]:
        """All chord tokens in document order (marks and bad tokens included)."""
        return [token for line in self.lines for token in line.chords]

    @property
    def chords(self) -> List[ChordSymbol]:
        """Parsed chord symbols in document order."""
        return [t.symbol for t in self.tokens if t.symbol is not None]

    @property
    def invalid_tokens(self) -> List[ChordToken]:
        """Tokens that failed to parse (marks and unresolved numerals excluded)."""
        return [
            t for t in self.tokens if t.symbol is None and not (t.is_mark or t.unresolved)
        ]

    @property
    def unresolved_tokens(self) -> List[ChordToken]:
        """Nashville numerals still waiting for a key."""
        return [t for t in self.tokens if t.unresolved]

    @property
    def title(self) -> Optional[str]:
        return self.metadata.get("title")

    @property
    def declared_key(self) -> Optional[KeySignature]:
        """Key from a {key:} directive, if it names a valid key."""
        value = self.metadata.get("key")
        if not value:
            return None
        try:
            return KeySignature.parse(value)
        except ValueError:
            logger.debug("Ignoring unparseable key directive %r", value)
            return None

    @property
    def capo(self) -> Optional[int]:
        value = self.metadata.get("capo", "").strip()
        return int(value) if value.isdigit() else None
