"""Chord symbols - parsing, validation and rendering of single chord tokens.

Grammar: ``Root [Accidental] [Quality] [Extensions]* [/ Bass]``.

Parsing is lenient: anything after the root that is not understood is kept
verbatim (quality UNKNOWN) so the token can be re-emitted unchanged. Only a
token with no leading root letter raises ChordParseError.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from .constants import LETTER_PITCH_CLASSES, LETTERS, MAJOR_SCALE
from .errors import ChordParseError
from .pitch import SpellingPreference, pitch_class_of, spell, split_note

logger = logging.getLogger(__name__)


class ChordQuality(Enum):
    """Closed set of chord qualities."""
    MAJOR = "major"
    MINOR = "minor"
    DIMINISHED = "diminished"
    AUGMENTED = "augmented"
    DOMINANT = "dominant"
    HALF_DIMINISHED = "half-diminished"
    SUSPENDED_2 = "sus2"
    SUSPENDED_4 = "sus4"
    POWER = "power"
    UNKNOWN = "unknown"


class Alteration(Enum):
    """How an extension degree is modified."""
    NONE = ""
    FLAT = "b"
    SHARP = "#"
    ADD = "add"
    MAJOR = "maj"


@dataclass(frozen=True)
class Extension:
    """A chord extension such as 7, maj7, b9, #11 or add9."""

    degree: int
    alteration: Alteration = Alteration.NONE

    def __str__(self) -> str:
        return f"{self.alteration.value}{self.degree}"


# Extension degrees accepted without an alteration
PLAIN_DEGREES = frozenset({2, 4, 5, 6, 7, 9, 11, 13})

# Degrees that may carry a b/# alteration
ALTERABLE_DEGREES = frozenset({5, 9, 11, 13})

# Degrees a "maj" mark can attach to (maj7, maj9, ...)
MAJOR_DEGREES = frozenset({7, 9, 11, 13})

# Quality marks, longest first so "maj" wins over "m" and "sus4" over "sus"
QUALITY_MARKS: Tuple[Tuple[str, str], ...] = (
    ("sus4", "sus4"),
    ("sus2", "sus2"),
    ("maj", "maj"),
    ("Maj", "maj"),
    ("MAJ", "maj"),
    ("min", "min"),
    ("dim", "dim"),
    ("aug", "aug"),
    ("sus", "sus4"),
    ("M", "maj"),
    ("Δ", "maj"),
    ("m", "min"),
    ("-", "min"),
    ("°", "dim"),
    ("o", "dim"),
    ("ø", "hdim"),
    ("+", "aug"),
)

_DEGREE_RE = re.compile(r"1[13]|\d")
_BASS_RE = re.compile(r"/([A-G][#b♯♭]?)$")
_GROUPING = frozenset("(),")
_FLAT_MARKS = frozenset("b♭")
_SHARP_MARKS = frozenset("#♯")


@dataclass(frozen=True)
class ChordSymbol:
    """A parsed chord symbol.

    Equality and hashing use the structural value (root, quality,
    extensions, bass, unknown text). Spellings and the verbatim suffix are
    carried for display only, so ``C#m`` == ``Dbm``.
    """

    root: int
    root_spelling: str = field(compare=False)
    quality: ChordQuality
    extensions: Tuple[Extension, ...] = ()
    bass: Optional[int] = None
    bass_spelling: Optional[str] = field(default=None, compare=False)
    suffix: str = field(default="", compare=False)
    unknown_text: Optional[str] = None
    is_plausible: bool = field(default=True, compare=False)

    def __post_init__(self):
        if pitch_class_of(self.root_spelling) != self.root:
            raise ValueError(
                f"Root spelling {self.root_spelling!r} does not name pitch class {self.root}"
            )
        if self.bass is not None:
            if self.bass_spelling is None or pitch_class_of(self.bass_spelling) != self.bass:
                raise ValueError(f"Bass spelling {self.bass_spelling!r} does not name {self.bass}")

    @classmethod
    def build(
        cls,
        root_spelling: str,
        quality: ChordQuality = ChordQuality.MAJOR,
        extensions: Sequence[Extension] = (),
        bass_spelling: Optional[str] = None,
    ) -> "ChordSymbol":
        """Construct a chord from parts, rendering the canonical suffix."""
        chord = cls(
            root=pitch_class_of(root_spelling),
            root_spelling=root_spelling,
            quality=quality,
            extensions=tuple(dict.fromkeys(extensions)),
            bass=pitch_class_of(bass_spelling) if bass_spelling else None,
            bass_spelling=bass_spelling,
        )
        return replace(chord, suffix=chord.canonical_suffix())

    @property
    def is_slash(self) -> bool:
        return self.bass is not None

    @property
    def is_minor_type(self) -> bool:
        """True for qualities built on a minor third."""
        return self.quality in (
            ChordQuality.MINOR,
            ChordQuality.DIMINISHED,
            ChordQuality.HALF_DIMINISHED,
        )

    def has_extension(self, degree: int, alteration: Alteration = Alteration.NONE) -> bool:
        return Extension(degree, alteration) in self.extensions

    @property
    def seventh(self) -> Optional[Alteration]:
        """Alteration of the seventh (NONE or MAJOR), or None if there is no seventh."""
        for ext in self.extensions:
            if ext.degree == 7 and ext.alteration in (Alteration.NONE, Alteration.MAJOR):
                return ext.alteration
        return None

    def canonical_suffix(self) -> str:
        """Structural rendering of quality and extensions (ignores the verbatim suffix)."""
        if self.quality is ChordQuality.UNKNOWN:
            return self.unknown_text or ""

        exts = list(self.extensions)
        prefix = {
            ChordQuality.MINOR: "m",
            ChordQuality.DIMINISHED: "dim",
            ChordQuality.AUGMENTED: "aug",
            ChordQuality.POWER: "5",
        }.get(self.quality, "")
        if self.quality is ChordQuality.HALF_DIMINISHED:
            if Extension(7) in exts:
                exts.remove(Extension(7))
                prefix = "m7b5"
            else:
                prefix = "ø"

        parts = []
        for i, ext in enumerate(exts):
            if (
                ext == Extension(9, Alteration.ADD)
                and i > 0
                and exts[i - 1] == Extension(6)
            ):
                parts.append("/9")
            else:
                parts.append(str(ext))

        sus = {ChordQuality.SUSPENDED_2: "sus2", ChordQuality.SUSPENDED_4: "sus4"}
        return prefix + "".join(parts) + sus.get(self.quality, "")

    def __str__(self) -> str:
        return render_chord(self)


class WarningKind(Enum):
    """Implausible-but-accepted chord constructions."""
    DIMINISHED_SHARP_FIVE = "diminished_sharp_five"
    AUGMENTED_FLAT_FIVE = "augmented_flat_five"
    CONFLICTING_FIFTHS = "conflicting_fifths"
    POWER_WITH_EXTENSIONS = "power_with_extensions"
    HALF_DIMINISHED_MAJOR_SEVENTH = "half_diminished_major_seventh"
    UNKNOWN_SUFFIX = "unknown_suffix"
    BASS_EQUALS_ROOT = "bass_equals_root"


@dataclass(frozen=True)
class ChordWarning:
    """A display-only validation warning."""
    kind: WarningKind
    message: str


def parse_chord(text: str) -> ChordSymbol:
    """
    Parse a chord token.

    Args:
        text: Chord text such as "Cmaj7/E", "F#m7b5", "Bb13(#11)"

    Returns:
        ChordSymbol (quality UNKNOWN if the suffix is not understood)

    Raises:
        ChordParseError: If the token does not start with a root letter A-G
    """
    token = text.strip()
    root_spelling, rest = split_note(token)
    if root_spelling is None:
        raise ChordParseError(text)

    bass_spelling = None
    match = _BASS_RE.search(rest)
    if match:
        bass_spelling = match.group(1)
        rest = rest[: match.start()]

    kinds, extensions, stop = _scan_suffix(rest)
    remainder = rest[stop:]

    if remainder:
        logger.debug("Unrecognized chord suffix %r in %r", remainder, token)
        quality = ChordQuality.UNKNOWN
        unknown_text = rest
    else:
        quality, extensions = _resolve_quality(kinds, extensions)
        unknown_text = None

    return ChordSymbol(
        root=pitch_class_of(root_spelling),
        root_spelling=root_spelling,
        quality=quality,
        extensions=tuple(dict.fromkeys(extensions)),
        bass=pitch_class_of(bass_spelling) if bass_spelling else None,
        bass_spelling=bass_spelling,
        suffix=rest,
        unknown_text=unknown_text,
        is_plausible=not remainder or not remainder[0].isalpha(),
    )


def try_parse_chord(text: str) -> Optional[ChordSymbol]:
    """Parse a chord, returning None instead of raising."""
    try:
        return parse_chord(text)
    except ChordParseError:
        return None


def _match_mark(body: str, i: int) -> Optional[Tuple[str, str]]:
    for word, kind in QUALITY_MARKS:
        if body.startswith(word, i):
            return word, kind
    return None


def _scan_suffix(body: str) -> Tuple[List[str], List[Extension], int]:
    """
    Scan quality marks and extensions left to right.

    Returns:
        Tuple of (quality mark kinds, extensions, index where the scan stopped)
    """
    kinds: List[str] = []
    exts: List[Extension] = []
    i = 0
    n = len(body)

    while i < n:
        ch = body[i]

        if ch in _GROUPING:
            i += 1
            continue

        if body.startswith("add", i):
            match = _DEGREE_RE.match(body, i + 3)
            if not match:
                break
            exts.append(Extension(int(match.group()), Alteration.ADD))
            i = match.end()
            continue

        # b9, #11, and the +5 / -9 forms once something precedes them
        is_flat = ch in _FLAT_MARKS or (ch == "-" and (kinds or exts))
        is_sharp = ch in _SHARP_MARKS or (ch == "+" and (kinds or exts))
        if is_flat or is_sharp:
            match = _DEGREE_RE.match(body, i + 1)
            if match and int(match.group()) in ALTERABLE_DEGREES:
                alteration = Alteration.FLAT if is_flat else Alteration.SHARP
                exts.append(Extension(int(match.group()), alteration))
                i = match.end()
                continue
            if ch not in "+-":
                break

        if body.startswith("/9", i) and Extension(6) in exts:
            exts.append(Extension(9, Alteration.ADD))
            i += 2
            continue

        mark = _match_mark(body, i)
        if mark:
            word, kind = mark
            if kind in kinds:
                break
            kinds.append(kind)
            i += len(word)
            if kind == "maj":
                match = _DEGREE_RE.match(body, i)
                if match and int(match.group()) in MAJOR_DEGREES:
                    exts.append(Extension(int(match.group()), Alteration.MAJOR))
                    i = match.end()
                elif word == "Δ":
                    exts.append(Extension(7, Alteration.MAJOR))
            continue

        match = _DEGREE_RE.match(body, i)
        if match and int(match.group()) in PLAIN_DEGREES:
            degree = int(match.group())
            if degree == 9 and exts and exts[-1] == Extension(6):
                exts.append(Extension(9, Alteration.ADD))
            else:
                exts.append(Extension(degree))
            i = match.end()
            continue

        break

    return kinds, exts, i


def _resolve_quality(
    kinds: List[str], exts: List[Extension]
) -> Tuple[ChordQuality, List[Extension]]:
    """Decide the quality from the marks seen, normalizing implied extensions."""
    marks = set(kinds)

    if "hdim" in marks or (
        "min" in marks and Extension(7) in exts and Extension(5, Alteration.FLAT) in exts
    ):
        exts = [e for e in exts if e != Extension(5, Alteration.FLAT)]
        if not any(e.degree == 7 for e in exts):
            exts.insert(0, Extension(7))
        return ChordQuality.HALF_DIMINISHED, exts
    if "dim" in marks:
        return ChordQuality.DIMINISHED, exts
    if "aug" in marks:
        return ChordQuality.AUGMENTED, exts
    if "sus2" in marks:
        return ChordQuality.SUSPENDED_2, exts
    if "sus4" in marks:
        return ChordQuality.SUSPENDED_4, exts
    if "min" in marks:
        return ChordQuality.MINOR, exts
    if not marks and Extension(5) in exts:
        return ChordQuality.POWER, [e for e in exts if e != Extension(5)]
    if "maj" not in marks and any(
        e.alteration is Alteration.NONE and e.degree in MAJOR_DEGREES for e in exts
    ):
        return ChordQuality.DOMINANT, exts
    return ChordQuality.MAJOR, exts


def validate_chord(symbol: ChordSymbol) -> List[ChordWarning]:
    """
    Flag theoretically implausible chords without rejecting them.

    Args:
        symbol: Parsed chord

    Returns:
        List of warnings (empty if the chord looks fine)
    """
    warnings = []
    flat5 = symbol.has_extension(5, Alteration.FLAT)
    sharp5 = symbol.has_extension(5, Alteration.SHARP)

    def warn(kind: WarningKind, message: str):
        warnings.append(ChordWarning(kind, message))

    if symbol.quality is ChordQuality.DIMINISHED and sharp5:
        warn(WarningKind.DIMINISHED_SHARP_FIVE, "Diminished chord with a raised fifth")
    if symbol.quality is ChordQuality.AUGMENTED and flat5:
        warn(WarningKind.AUGMENTED_FLAT_FIVE, "Augmented chord with a lowered fifth")
    if flat5 and sharp5 and symbol.quality is not ChordQuality.DOMINANT:
        warn(WarningKind.CONFLICTING_FIFTHS, "Both b5 and #5 on a non-dominant chord")
    if symbol.quality is ChordQuality.POWER and symbol.extensions:
        warn(WarningKind.POWER_WITH_EXTENSIONS, "Power chord with extensions")
    if symbol.quality is ChordQuality.HALF_DIMINISHED and symbol.seventh is Alteration.MAJOR:
        warn(
            WarningKind.HALF_DIMINISHED_MAJOR_SEVENTH,
            "Half-diminished chord with a major seventh",
        )
    if symbol.quality is ChordQuality.UNKNOWN:
        warn(WarningKind.UNKNOWN_SUFFIX, f"Unrecognized chord suffix {symbol.unknown_text!r}")
    if symbol.bass is not None and symbol.bass == symbol.root:
        warn(WarningKind.BASS_EQUALS_ROOT, "Slash bass is the same note as the root")

    return warnings


def render_chord(
    symbol: ChordSymbol,
    preference: Optional[SpellingPreference] = None,
) -> str:
    """
    Render a chord back to text.

    Args:
        symbol: Chord to render
        preference: Re-spell root and bass with sharps or flats; None keeps
            the stored spellings

    Returns:
        Chord text; ``render_chord(parse_chord(s)) == s`` for well-formed s
    """
    if preference is None:
        root = symbol.root_spelling
        bass = symbol.bass_spelling
    else:
        root = spell(symbol.root, preference)
        bass = spell(symbol.bass, preference) if symbol.bass is not None else None

    text = root + symbol.suffix
    if bass is not None:
        text += "/" + bass
    return text


# Chord degrees and their semitones above the root, per quality
QUALITY_TONES = {
    ChordQuality.MAJOR: ((1, 0), (3, 4), (5, 7)),
    ChordQuality.MINOR: ((1, 0), (3, 3), (5, 7)),
    ChordQuality.DIMINISHED: ((1, 0), (3, 3), (5, 6)),
    ChordQuality.AUGMENTED: ((1, 0), (3, 4), (5, 8)),
    ChordQuality.DOMINANT: ((1, 0), (3, 4), (5, 7)),
    ChordQuality.HALF_DIMINISHED: ((1, 0), (3, 3), (5, 6)),
    ChordQuality.SUSPENDED_2: ((1, 0), (2, 2), (5, 7)),
    ChordQuality.SUSPENDED_4: ((1, 0), (4, 5), (5, 7)),
    ChordQuality.POWER: ((1, 0), (5, 7)),
}


def _degree_semitones(degree: int) -> int:
    """Major-scale size of a chord degree (9 -> 14, 13 -> 21)."""
    return MAJOR_SCALE[(degree - 1) % 7] + 12 * ((degree - 1) // 7)


def _spell_on_letter(letter: str, pitch_class: int) -> str:
    """Name a pitch class on a given letter, adding sharps or flats."""
    offset = (pitch_class - LETTER_PITCH_CLASSES[letter]) % 12
    if offset > 6:
        offset -= 12
    return letter + ("#" * offset if offset > 0 else "b" * -offset)


def chord_tones(symbol: ChordSymbol) -> List[str]:
    """
    Note names of a chord, spelled from the root letter.

    Each tone takes the letter of its chord degree, so Cm7 is C Eb G Bb,
    F#7 is F# A# C# E and Cdim7 is C Eb Gb Bbb. Upper extensions (9, 11,
    13) imply the seventh. A slash bass that is not a chord tone comes
    first.

    Args:
        symbol: Parsed chord

    Returns:
        Note names in degree order (the root alone for an UNKNOWN quality)
    """
    degrees = dict(QUALITY_TONES.get(symbol.quality, ((1, 0),)))
    extensions = () if symbol.quality is ChordQuality.UNKNOWN else symbol.extensions
    for ext in extensions:
        if ext.degree < 1:
            continue
        natural = _degree_semitones(ext.degree)
        if ext.alteration is Alteration.FLAT:
            degrees[ext.degree] = natural - 1
        elif ext.alteration is Alteration.SHARP:
            degrees[ext.degree] = natural + 1
        elif ext.alteration is Alteration.MAJOR:
            degrees[7] = 11
            if ext.degree != 7:
                degrees.setdefault(ext.degree, natural)
        elif ext.degree == 7:
            degrees[7] = 9 if symbol.quality is ChordQuality.DIMINISHED else 10
        else:
            degrees[ext.degree] = natural
            if ext.alteration is Alteration.NONE and ext.degree > 7:
                degrees.setdefault(7, 10)

    root_index = LETTERS.index(symbol.root_spelling[0])
    tones = [
        _spell_on_letter(LETTERS[(root_index + degree - 1) % 7], (symbol.root + semitones) % 12)
        for degree, semitones in sorted(degrees.items())
    ]
    if symbol.bass is not None and all(
        (symbol.root + semitones) % 12 != symbol.bass for semitones in degrees.values()
    ):
        tones.insert(0, symbol.bass_spelling)
    logger.debug("Tones of %s: %s", symbol.root_spelling + symbol.suffix, tones)
    return tones
