"""Nashville number system - Scale-degree chord notation.

Degrees are counted on the major scale of the tonic, by letter distance,
with explicit ``b``/``#`` for chromatic roots. In C, ``Bb`` is ``b7`` and
``A#`` is ``#6``, so numeral <-> chord conversion keeps the spelling.
Minor keys use the same major-scale reference (``C`` in A minor is ``b3``).
"""

import logging
from dataclasses import replace
from typing import List, Optional, Sequence

from ..core.chord import ChordSymbol, parse_chord
from ..core.constants import NASHVILLE_KEY_CONFIDENCE
from ..core.errors import ChordParseError, KeyRequiredError
from ..core.key import KeySignature
from ..inference.key import KeyAnalyzer
from .document import ChordToken, Song
from .patterns import NASHVILLE_TOKEN_RE

logger = logging.getLogger(__name__)

_FLATS = ("b", "♭")


def _offset_of(accidentals: str) -> int:
    return sum(-1 if ch in _FLATS else 1 for ch in accidentals)


def _accidentals_for(offset: int) -> str:
    return "b" * -offset if offset < 0 else "#" * offset


def numeral_to_chord(numeral: str, key: KeySignature) -> ChordSymbol:
    """
    Convert a Nashville numeral to a chord in a key.

    Args:
        numeral: Numeral such as "1", "6m", "5/7", "b7", "4maj7"
        key: Key the numerals are relative to

    Returns:
        ChordSymbol

    Raises:
        ChordParseError: If the text is not a Nashville numeral
    """
    match = NASHVILLE_TOKEN_RE.match(numeral.strip())
    if not match:
        raise ChordParseError(numeral, "not a Nashville numeral")

    root = key.spell_major_degree(int(match.group("degree")), _offset_of(match.group("acc")))
    text = root + match.group("suffix")
    if match.group("bass"):
        bass = key.spell_major_degree(
            int(match.group("bass")), _offset_of(match.group("bass_acc") or "")
        )
        text += "/" + bass
    return parse_chord(text)


def chord_to_numeral(chord: ChordSymbol, key: KeySignature) -> str:
    """
    Convert a chord to a Nashville numeral in a key.

    The quality/extension text is carried over verbatim ("Am7" -> "6m7").
    """
    degree, offset = key.degree_of(chord.root_spelling)
    text = _accidentals_for(offset) + str(degree) + chord.suffix
    if chord.bass is not None:
        bass_degree, bass_offset = key.degree_of(chord.bass_spelling)
        text += "/" + _accidentals_for(bass_offset) + str(bass_degree)
    return text


def to_nashville(chords: Sequence[ChordSymbol], key: KeySignature) -> List[str]:
    """Numerals for a chord sequence ([C, F, G] in C -> ['1', '4', '5'])."""
    return [chord_to_numeral(c, key) for c in chords]


def from_nashville(numerals: Sequence[str], key: KeySignature) -> List[ChordSymbol]:
    """Chords for a numeral sequence (['1', '4', '5'] in C -> [C, F, G])."""
    return [numeral_to_chord(n, key) for n in numerals]


def resolve_numerals(song: Song, key: KeySignature) -> Song:
    """
    Give a song's unresolved Nashville numerals their chords in a key.

    Args:
        song: Song read without a key for its numerals
        key: Key the numerals are relative to

    Returns:
        New Song (the same Song if nothing was unresolved)
    """
    if not song.unresolved_tokens:
        return song

    def resolved(token: ChordToken) -> ChordToken:
        if not token.unresolved:
            return token
        try:
            symbol = numeral_to_chord(token.raw, key)
        except ChordParseError:
            logger.debug("Unreadable Nashville numeral %r on line %d", token.raw, token.line)
            symbol = None
        return replace(token, symbol=symbol, unresolved=False)

    lines = [replace(line, chords=[resolved(t) for t in line.chords]) for line in song.lines]
    return replace(song, lines=lines, nashville_key=key)


def resolve_key(
    song: Optional[Song] = None,
    key: Optional[KeySignature] = None,
    min_confidence: float = NASHVILLE_KEY_CONFIDENCE,
) -> KeySignature:
    """
    Key to use for Nashville conversion.

    Order: explicit key, declared {key:} directive, the key the song's
    numerals were read in, detected key with confidence >= min_confidence.

    Raises:
        KeyRequiredError: If none of these yields a key
    """
    if key is not None:
        return key
    if song is not None:
        declared = song.declared_key or song.nashville_key
        if declared is not None:
            return declared
        chords = song.chords
        if chords:
            detection = KeyAnalyzer().detect(chords)
            if detection.confidence >= min_confidence:
                logger.debug(
                    "Using detected key %s (%.2f) for Nashville numbers",
                    detection.key, detection.confidence,
                )
                return detection.key
            raise KeyRequiredError(
                f"A key is required for Nashville number conversion "
                f"(best guess {detection.key} has confidence {detection.confidence:.2f})"
            )
    raise KeyRequiredError()
