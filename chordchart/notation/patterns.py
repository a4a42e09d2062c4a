"""Notation pattern detection - Which chord placement convention a text uses.

Every line is classified on its own (chord line, Nashville line, inline
brackets, directives, section label, lyric ...). A lyric line directly
under a chord line inherits the chord line's pattern. The document pattern
is the single chord-bearing pattern found, or MIXED when there are several.
Metadata-only directive lines never make a document MIXED.
"""

import re
from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Sequence

from ..core.chord import ChordQuality, try_parse_chord
from .document import NEUTRAL_MARKS, Directive, NotationPattern, is_repeat_mark


class LineClass(Enum):
    """Classification of a single source line."""
    BLANK = "blank"
    COMMENT = "comment"
    LABEL = "label"
    DIRECTIVE = "directive"  # Only non-chord directives
    CHORDS = "chords"  # Letter chords only
    NASHVILLE = "nashville"  # Nashville numerals only
    INLINE = "inline"  # [Chord] spans
    DIRECTIVE_CHORDS = "directive_chords"  # {c:Chord} or {Chord} spans
    LABELED_CHORDS = "labeled_chords"  # "Intro: G D Em C"
    LABELED_NASHVILLE = "labeled_nashville"  # "Intro: 1 4 5"
    LYRIC = "lyric"


# Section labels: "Verse 1", "Chorus:", "[Bridge]", "Pre-Chorus", "V2"
SECTION_LABEL_RE = re.compile(
    r"^\s*[\[(]?\s*"
    r"(?P<name>intro(?:duction)?|verse|v(?=\s*\d)|pre-?\s?chorus|pc|chorus|refrain|hook"
    r"|bridge|outro|ending|end|instrumental|solo|interlude|tag|coda)"
    r"\s*(?P<number>\d+)?\s*[\])]?\s*:?"
    r"(?:\s*\(?(?:[x×]\d+|\d+[x×])\)?)?\s*$",
    re.IGNORECASE,
)

# Leading label candidate on a chord line: "Intro:", "[Solo]", "(Outro)"
LABEL_PREFIX_RE = re.compile(r"^\s*(?:\[[^\]]*\]|\([^)]*\)|[^\[\](){}:]+:)")

BRACKET_RE = re.compile(r"\[([^\[\]]*)\]")
BRACE_RE = re.compile(r"\{([^{}]*)\}")
RUN_RE = re.compile(r"\S+")
DIRECTIVE_RE = re.compile(r"^\s*([A-Za-z_][\w-]*)\s*(?::\s*(.*?))?\s*$")
NASHVILLE_TOKEN_RE = re.compile(
    r"^(?P<acc>[b#♭♯]{0,2})(?P<degree>[1-7])(?P<suffix>.*?)"
    r"(?:/(?P<bass_acc>[b#♭♯]{0,2})(?P<bass>[1-7]))?$"
)

# Directive keywords recognized in braces
DIRECTIVE_KEYWORDS = frozenset({
    "title", "t", "subtitle", "st", "artist", "composer", "lyricist", "album",
    "year", "key", "tempo", "time", "capo", "duration", "copyright", "meta",
    "comment", "c", "comment_italic", "ci", "comment_box", "cb", "highlight",
    "start_of_chorus", "soc", "end_of_chorus", "eoc", "chorus",
    "start_of_verse", "sov", "end_of_verse", "eov",
    "start_of_bridge", "sob", "end_of_bridge", "eob",
    "start_of_tab", "sot", "end_of_tab", "eot",
    "new_song", "ns",
})

# Directive names whose value is a chord ({c:G}) when it parses as one
CHORD_DIRECTIVE_NAMES = frozenset({"c"})


class PatternDetection(NamedTuple):
    """Detected document pattern plus per-line provenance."""
    pattern: NotationPattern
    line_patterns: Dict[int, NotationPattern]


def is_plausible_chord(text: str) -> bool:
    """True if text is a single token that reads as a chord."""
    stripped = text.strip()
    if not stripped or any(ch.isspace() for ch in stripped):
        return False
    symbol = try_parse_chord(stripped)
    return symbol is not None and symbol.is_plausible


def is_neutral_mark(text: str) -> bool:
    """Bar lines, '%' and repeat marks allowed on chord lines."""
    return text in NEUTRAL_MARKS or is_repeat_mark(text)


def is_nashville_token(text: str) -> bool:
    """True for numerals such as '1', '2m', '5/7', 'b7', '4maj7'."""
    match = NASHVILLE_TOKEN_RE.match(text)
    if not match:
        return False
    suffix = match.group("suffix")
    if not suffix:
        return True
    if "/" in suffix:
        return False
    symbol = try_parse_chord("C" + suffix)
    return symbol is not None and symbol.quality is not ChordQuality.UNKNOWN


def parse_directive(content: str) -> Optional[Directive]:
    """Split brace content into a Directive ('title: X' -> ('title', 'X'))."""
    match = DIRECTIVE_RE.match(content)
    if not match:
        return None
    return Directive(match.group(1).lower(), match.group(2))


def brace_chord(content: str) -> Optional[str]:
    """
    Chord text carried by a brace span, if any.

    ``{c:G}`` and a bare ``{G}`` carry chords; ``{c: Chorus}`` is a comment.
    """
    stripped = content.strip()
    if ":" not in stripped:
        if stripped.lower() not in DIRECTIVE_KEYWORDS and is_plausible_chord(stripped):
            return stripped
        return None
    directive = parse_directive(stripped)
    if (
        directive is not None
        and directive.name in CHORD_DIRECTIVE_NAMES
        and directive.value
        and is_plausible_chord(directive.value)
    ):
        return directive.value.strip()
    return None


def _is_token_line(runs: Sequence[str], predicate) -> bool:
    found = False
    for run in runs:
        if predicate(run):
            found = True
        elif not is_neutral_mark(run):
            return False
    return found


def label_prefix_length(line: str) -> int:
    """
    Length of a section label in front of a chord run ("Intro: G D" -> 6).

    Returns 0 unless the line is a label followed only by chords or only by
    Nashville numerals.
    """
    match = LABEL_PREFIX_RE.match(line)
    if not match or not SECTION_LABEL_RE.match(match.group()):
        return 0
    runs = line[match.end():].split()
    if _is_token_line(runs, is_plausible_chord) or _is_token_line(runs, is_nashville_token):
        return match.end()
    return 0


def classify_line(line: str) -> LineClass:
    """Classify one source line."""
    stripped = line.strip()
    if not stripped:
        return LineClass.BLANK
    if stripped.startswith("#"):
        return LineClass.COMMENT
    if SECTION_LABEL_RE.match(stripped):
        return LineClass.LABEL

    braces = BRACE_RE.findall(stripped)
    if braces:
        if any(brace_chord(content) for content in braces):
            return LineClass.DIRECTIVE_CHORDS
        if not BRACE_RE.sub("", stripped).strip():
            return LineClass.DIRECTIVE

    if any(is_plausible_chord(span) for span in BRACKET_RE.findall(stripped)):
        return LineClass.INLINE

    runs = stripped.split()
    if _is_token_line(runs, is_plausible_chord):
        return LineClass.CHORDS
    if _is_token_line(runs, is_nashville_token):
        return LineClass.NASHVILLE

    cut = label_prefix_length(stripped)
    if cut:
        if _is_token_line(stripped[cut:].split(), is_plausible_chord):
            return LineClass.LABELED_CHORDS
        return LineClass.LABELED_NASHVILLE
    return LineClass.LYRIC


def classify_lines(lines: Sequence[str]) -> List[LineClass]:
    return [classify_line(line) for line in lines]


_CLASS_PATTERNS = {
    LineClass.CHORDS: NotationPattern.CHORD_OVER_LYRIC,
    LineClass.NASHVILLE: NotationPattern.NASHVILLE_NUMBER,
    LineClass.INLINE: NotationPattern.INLINE_BRACKET,
    LineClass.DIRECTIVE_CHORDS: NotationPattern.DIRECTIVE_STYLE,
    LineClass.DIRECTIVE: NotationPattern.DIRECTIVE_STYLE,
    LineClass.LABELED_CHORDS: NotationPattern.CHORD_OVER_LYRIC,
    LineClass.LABELED_NASHVILLE: NotationPattern.NASHVILLE_NUMBER,
}


def line_patterns_for(classes: Sequence[LineClass]) -> Dict[int, NotationPattern]:
    """Map line index -> pattern for chord-bearing and directive lines."""
    patterns: Dict[int, NotationPattern] = {}
    for i, cls in enumerate(classes):
        pattern = _CLASS_PATTERNS.get(cls)
        if pattern is None:
            continue
        patterns[i] = pattern
        # Lyric line under a chord line belongs to the pair
        if cls in (LineClass.CHORDS, LineClass.NASHVILLE):
            if i + 1 < len(classes) and classes[i + 1] is LineClass.LYRIC:
                patterns[i + 1] = pattern
    return patterns


def document_pattern(
    classes: Sequence[LineClass],
    line_patterns: Dict[int, NotationPattern],
) -> NotationPattern:
    """Overall pattern from per-line provenance."""
    chord_bearing = {
        pattern for i, pattern in line_patterns.items()
        if classes[i] is not LineClass.DIRECTIVE
    }
    if len(chord_bearing) == 1:
        return next(iter(chord_bearing))
    if len(chord_bearing) > 1:
        return NotationPattern.MIXED
    if LineClass.DIRECTIVE in classes:
        return NotationPattern.DIRECTIVE_STYLE
    return NotationPattern.UNKNOWN


def detect_pattern(text: str) -> PatternDetection:
    """
    Detect the chord notation of a text block.

    Args:
        text: Multi-line chart text

    Returns:
        PatternDetection(pattern, line_patterns)
    """
    classes = classify_lines(text.splitlines())
    line_patterns = line_patterns_for(classes)
    return PatternDetection(document_pattern(classes, line_patterns), line_patterns)
