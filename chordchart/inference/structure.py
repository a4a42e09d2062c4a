"""Song structure analysis - Detect sections, repetitions and overall form.

Segments a song on blank lines, section label lines ("Verse 1", "[Chorus]")
and ChordPro environments ({soc} ... {eoc}). A label with nothing under it
repeats the last section it names. Unlabeled segments are typed
by similarity to an already typed segment, then by heuristics with a
per-rule confidence. A section is left UNKNOWN (confidence None) rather
than given a label the detector is not reasonably sure of.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..core.chord import ChordSymbol
from ..notation.document import ChordToken, LineKind, Song, SongLine
from ..notation.patterns import SECTION_LABEL_RE

logger = logging.getLogger(__name__)


class SectionType(Enum):
    """Types of song sections."""

    INTRO = "intro"
    VERSE = "verse"
    PRE_CHORUS = "pre_chorus"
    CHORUS = "chorus"
    BRIDGE = "bridge"
    INSTRUMENTAL = "instrumental"
    OUTRO = "outro"
    TAG = "tag"
    UNKNOWN = "unknown"

    @property
    def title(self) -> str:
        return self.value.replace("_", "-").title()


# Label words -> section type
LABEL_TYPES = {
    "intro": SectionType.INTRO,
    "introduction": SectionType.INTRO,
    "verse": SectionType.VERSE,
    "v": SectionType.VERSE,
    "prechorus": SectionType.PRE_CHORUS,
    "pc": SectionType.PRE_CHORUS,
    "chorus": SectionType.CHORUS,
    "refrain": SectionType.CHORUS,
    "hook": SectionType.CHORUS,
    "bridge": SectionType.BRIDGE,
    "outro": SectionType.OUTRO,
    "ending": SectionType.OUTRO,
    "end": SectionType.OUTRO,
    "instrumental": SectionType.INSTRUMENTAL,
    "solo": SectionType.INSTRUMENTAL,
    "interlude": SectionType.INSTRUMENTAL,
    "tag": SectionType.TAG,
    "coda": SectionType.TAG,
}

# ChordPro environment directives -> (section type, opens)
ENVIRONMENT_DIRECTIVES = {
    "start_of_chorus": (SectionType.CHORUS, True),
    "soc": (SectionType.CHORUS, True),
    "end_of_chorus": (SectionType.CHORUS, False),
    "eoc": (SectionType.CHORUS, False),
    "start_of_verse": (SectionType.VERSE, True),
    "sov": (SectionType.VERSE, True),
    "end_of_verse": (SectionType.VERSE, False),
    "eov": (SectionType.VERSE, False),
    "start_of_bridge": (SectionType.BRIDGE, True),
    "sob": (SectionType.BRIDGE, True),
    "end_of_bridge": (SectionType.BRIDGE, False),
    "eob": (SectionType.BRIDGE, False),
    "start_of_tab": (SectionType.INSTRUMENTAL, True),
    "sot": (SectionType.INSTRUMENTAL, True),
    "end_of_tab": (SectionType.INSTRUMENTAL, False),
    "eot": (SectionType.INSTRUMENTAL, False),
}

# Directives that call for an earlier section again ({chorus})
REPEAT_DIRECTIVES = {"chorus": SectionType.CHORUS}

COMMENT_DIRECTIVES = frozenset({"comment", "c", "comment_italic", "ci", "comment_box", "cb"})


@dataclass
class SongSection:
    """A section of a song."""

    type: SectionType
    label: str  # e.g. "Verse 1", "Chorus"; "" when unknown
    line_range: Tuple[int, int]  # Source lines [start, end)
    chord_tokens: List[ChordToken] = field(default_factory=list)
    confidence: Optional[float] = None  # None = unknown
    lyrics: List[str] = field(default_factory=list)
    repeats: Optional[int] = None  # Index of the section a bare label repeats

    @property
    def chords(self) -> List[ChordSymbol]:
        return [t.symbol for t in self.chord_tokens if t.symbol is not None]

    @property
    def harmony(self) -> List[Union[ChordSymbol, str]]:
        """Chords, with unresolved Nashville numerals as their text."""
        return [
            t.symbol if t.symbol is not None else t.raw
            for t in self.chord_tokens
            if t.symbol is not None or t.unresolved
        ]

    @property
    def has_lyrics(self) -> bool:
        return any(text.strip() for text in self.lyrics)


@dataclass
class StructureInfo:
    """Container for structure analysis results."""

    sections: List[SongSection] = field(default_factory=list)
    repetitions: Dict[int, List[int]] = field(default_factory=dict)  # Near-duplicate sections
    form: str = ""  # e.g. "ABAB"


@dataclass
class StructureConfig:
    """Thresholds and per-rule confidences for structure detection.

    Attributes:
        similarity_threshold: Normalized similarity for "same section" (default: 0.8)
        min_label_confidence: Below this a section stays UNKNOWN (default: 0.4)
        repeated_lyrics_confidence: Unlabeled lyrics repeated elsewhere -> chorus
        edge_chord_only_confidence: Chord-only first/last segment -> intro/outro
        instrumental_confidence: Chord-only segment in the middle -> instrumental
        verse_confidence: Unique segment before the first chorus -> verse
        verse_between_choruses_confidence: Unique segment between choruses -> verse
        bridge_confidence: Unique segment after the second chorus with new chords
        fallback_confidence: Anything else (below the minimum, so unknown)
    """

    similarity_threshold: float = 0.8
    min_label_confidence: float = 0.4
    repeated_lyrics_confidence: float = 0.6
    edge_chord_only_confidence: float = 0.7
    instrumental_confidence: float = 0.6
    verse_confidence: float = 0.5
    verse_between_choruses_confidence: float = 0.45
    bridge_confidence: float = 0.5
    fallback_confidence: float = 0.3


def edit_distance(a: Sequence, b: Sequence) -> int:
    """Levenshtein distance between two sequences."""
    if not a:
        return len(b)
    if not b:
        return len(a)
    prev = np.arange(len(b) + 1)
    for i, x in enumerate(a, 1):
        cost = np.array([x != y for y in b], dtype=int)
        # Substitution and deletion in one step; insertion needs the running row
        best = np.minimum(prev[1:] + 1, prev[:-1] + cost)
        cur = np.empty_like(prev)
        cur[0] = i
        for j in range(1, len(b) + 1):
            cur[j] = min(best[j - 1], cur[j - 1] + 1)
        prev = cur
    return int(prev[-1])


def sequence_similarity(a: Sequence, b: Sequence) -> float:
    """1 - normalized edit distance (1.0 for two empty sequences)."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - edit_distance(a, b) / longest


def clean_label(text: str) -> str:
    """'[Verse 1]:' -> 'Verse 1'."""
    return text.strip().strip("[]():").strip()


def label_type(text: str) -> Optional[SectionType]:
    """Section type named by a label line, or None if it is not a label."""
    match = SECTION_LABEL_RE.match(text)
    if not match:
        return None
    word = re.sub(r"[-\s]", "", match.group("name").lower())
    return LABEL_TYPES.get(word)


@dataclass
class _Segment:
    lines: List[SongLine] = field(default_factory=list)
    label: Optional[str] = None
    type: Optional[SectionType] = None
    in_environment: bool = False
    label_range: Optional[Tuple[int, int]] = None  # Source line of the label
    repeats: Optional[int] = None  # Index of the segment a bare label repeats


class StructureDetector:
    """Segment a song into labeled sections."""

    def __init__(self, config: Optional[StructureConfig] = None):
        """
        Initialize StructureDetector.

        Args:
            config: Thresholds and confidences (defaults to StructureConfig())
        """
        self.config = config or StructureConfig()

    def detect(self, song: Song) -> StructureInfo:
        """
        Detect the structure of a song.

        Args:
            song: Parsed song

        Returns:
            StructureInfo with sections, repetitions and form
        """
        segments = self.segment(song)
        if not segments:
            return StructureInfo()

        sections = [self._to_section(seg) for seg in segments]
        similarity = self.similarity_matrix(sections)
        self._label_sections(segments, sections, similarity)

        threshold = self.config.similarity_threshold
        repetitions = {
            i: [j for j in range(len(sections)) if j != i and similarity[i, j] >= threshold]
            for i in range(len(sections))
        }
        form = self.identify_form(sections, similarity)
        logger.debug("Detected %d sections, form %s", len(sections), form)
        return StructureInfo(sections=sections, repetitions=repetitions, form=form)

    # ------------------------------------------------------------------
    # Segmentation
    # ------------------------------------------------------------------

    def segment(self, song: Song) -> List[_Segment]:
        """
        Split the song's content lines into segments.

        A label with no lines under it ("Chorus" at the end of a chart, or a
        ChordPro ``{chorus}``) repeats the last section with that label or
        type, and covers only its own source line.
        """
        segments: List[_Segment] = []
        current: Optional[_Segment] = None

        def close(repeat: bool = True):
            nonlocal current
            if current is not None:
                if current.lines:
                    segments.append(current)
                elif repeat and current.label_range is not None:
                    copy = self._repeat_segment(current, segments)
                    if copy is not None:
                        segments.append(copy)
            current = None

        for line in song.lines:
            if line.kind is LineKind.BLANK:
                if current is not None and (current.in_environment or not current.lines):
                    continue
                close()
            elif line.kind is LineKind.LABEL:
                close()
                current = _Segment(
                    label=clean_label(line.text),
                    type=label_type(line.text),
                    label_range=line.line_range,
                )
            elif line.kind is LineKind.DIRECTIVE and line.directive is not None:
                name = line.directive.name
                if name in ENVIRONMENT_DIRECTIVES:
                    section_type, opens = ENVIRONMENT_DIRECTIVES[name]
                    close(repeat=False)
                    if opens:
                        current = _Segment(
                            label=line.directive.value or section_type.title,
                            type=section_type,
                            in_environment=True,
                        )
                elif name in REPEAT_DIRECTIVES:
                    close()
                    section_type = REPEAT_DIRECTIVES[name]
                    current = _Segment(
                        label=line.directive.value or section_type.title,
                        type=section_type,
                        label_range=line.line_range,
                    )
                    close()
                elif name in COMMENT_DIRECTIVES and line.directive.value:
                    section_type = label_type(line.directive.value)
                    if section_type is not None:
                        close()
                        current = _Segment(
                            label=clean_label(line.directive.value),
                            type=section_type,
                            label_range=line.line_range,
                        )
            elif line.is_content:
                if current is None:
                    current = _Segment()
                current.lines.append(line)
        close()
        return segments

    @staticmethod
    def _repeat_segment(bare: _Segment, segments: List[_Segment]) -> Optional[_Segment]:
        """Copy of the last segment a bare label refers to, or None."""
        name = (bare.label or "").lower()
        for index in range(len(segments) - 1, -1, -1):
            earlier = segments[index]
            same_label = bool(name) and (earlier.label or "").lower() == name
            same_type = bare.type is not None and earlier.type is bare.type
            if same_label or same_type:
                return _Segment(
                    lines=earlier.lines,
                    label=bare.label,
                    type=bare.type or earlier.type,
                    label_range=bare.label_range,
                    repeats=index if earlier.repeats is None else earlier.repeats,
                )
        logger.debug("Label %r has no lines and no earlier section to repeat", bare.label)
        return None

    @staticmethod
    def _to_section(segment: _Segment) -> SongSection:
        if segment.repeats is not None:
            line_range = segment.label_range
        else:
            line_range = (segment.lines[0].line_range[0], segment.lines[-1].line_range[1])
        return SongSection(
            type=segment.type or SectionType.UNKNOWN,
            label=segment.label or "",
            line_range=line_range,
            chord_tokens=[t for line in segment.lines for t in line.chords],
            confidence=1.0 if segment.type is not None else None,
            lyrics=[line.text for line in segment.lines if line.kind is LineKind.LYRIC],
            repeats=segment.repeats,
        )

    # ------------------------------------------------------------------
    # Similarity
    # ------------------------------------------------------------------

    @staticmethod
    def compute_similarity(a: SongSection, b: SongSection) -> float:
        """
        Similarity of two sections (0.0 to 1.0).

        Word-level edit distance over the lyrics when both have lyrics,
        chord-sequence edit distance when neither does. Nashville numerals
        without a key compare by their text.
        """
        if a.has_lyrics and b.has_lyrics:
            words_a = " ".join(a.lyrics).lower().split()
            words_b = " ".join(b.lyrics).lower().split()
            return sequence_similarity(words_a, words_b)
        if not a.has_lyrics and not b.has_lyrics:
            return sequence_similarity(a.harmony, b.harmony)
        return 0.0

    def similarity_matrix(self, sections: List[SongSection]) -> np.ndarray:
        n = len(sections)
        matrix = np.eye(n)
        for i in range(n):
            for j in range(i + 1, n):
                matrix[i, j] = matrix[j, i] = self.compute_similarity(sections[i], sections[j])
        return matrix

    # ------------------------------------------------------------------
    # Labeling
    # ------------------------------------------------------------------

    def _label_sections(
        self,
        segments: List[_Segment],
        sections: List[SongSection],
        similarity: np.ndarray,
    ):
        cfg = self.config
        threshold = cfg.similarity_threshold
        n = len(sections)
        typed = [seg.type is not None for seg in segments]

        # Copy from the most similar typed section before it, or spot a chorus
        for i in range(n):
            if typed[i]:
                continue
            prior = [j for j in range(i) if typed[j] and similarity[i, j] >= threshold]
            if prior:
                j = max(prior, key=lambda k: (similarity[i, k], -k))
                self._assign(sections[i], sections[j].type, sections[j].label, float(similarity[i, j]))
                typed[i] = True
            elif sections[i].has_lyrics and any(
                similarity[i, k] >= threshold for k in range(n) if k != i
            ):
                self._assign(sections[i], SectionType.CHORUS, "Chorus", cfg.repeated_lyrics_confidence)
                typed[i] = True

        choruses = [i for i in range(n) if typed[i] and sections[i].type is SectionType.CHORUS]
        for i in range(n):
            if typed[i]:
                continue
            section_type, confidence = self._heuristic_type(i, sections, choruses)
            self._assign(sections[i], section_type, section_type.title, confidence)

        self._number_verses(segments, sections)

    def _heuristic_type(
        self, i: int, sections: List[SongSection], choruses: List[int]
    ) -> Tuple[SectionType, float]:
        cfg = self.config
        section = sections[i]
        if not section.has_lyrics:
            if i == 0:
                return SectionType.INTRO, cfg.edge_chord_only_confidence
            if i == len(sections) - 1:
                return SectionType.OUTRO, cfg.edge_chord_only_confidence
            return SectionType.INSTRUMENTAL, cfg.instrumental_confidence
        if choruses and i < choruses[0]:
            return SectionType.VERSE, cfg.verse_confidence
        if len(choruses) >= 2 and i > choruses[1]:
            earlier = {c for s in sections[:i] for c in s.chords}
            if any(c not in earlier for c in section.chords):
                return SectionType.BRIDGE, cfg.bridge_confidence
        if choruses and i < choruses[-1]:
            return SectionType.VERSE, cfg.verse_between_choruses_confidence
        return SectionType.VERSE, cfg.fallback_confidence

    def _assign(self, section: SongSection, section_type: SectionType, label: str, confidence: float):
        if confidence < self.config.min_label_confidence:
            section.type = SectionType.UNKNOWN
            section.label = ""
            section.confidence = None
            return
        section.type = section_type
        section.label = label
        section.confidence = confidence

    @staticmethod
    def _number_verses(segments: List[_Segment], sections: List[SongSection]):
        """Give heuristic verses running numbers ("Verse 1", "Verse 2", ...)."""
        count = 0
        for segment, section in zip(segments, sections):
            if section.type is not SectionType.VERSE:
                continue
            count += 1
            if segment.type is None and section.label == SectionType.VERSE.title:
                section.label = f"Verse {count}"

    # ------------------------------------------------------------------
    # Form
    # ------------------------------------------------------------------

    def identify_form(self, sections: List[SongSection], similarity: np.ndarray) -> str:
        """
        Letter form of the song, e.g. "ABAB".

        Sections of the same known type, or near-duplicates, share a letter.
        """
        letters: List[str] = []
        by_type: Dict[SectionType, str] = {}
        next_letter = 0
        for i, section in enumerate(sections):
            letter = None
            if section.type is not SectionType.UNKNOWN:
                letter = by_type.get(section.type)
            if letter is None:
                for j in range(i):
                    if similarity[i, j] >= self.config.similarity_threshold:
                        letter = letters[j]
                        break
            if letter is None:
                letter = chr(ord("A") + next_letter % 26)
                next_letter += 1
            if section.type is not SectionType.UNKNOWN:
                by_type.setdefault(section.type, letter)
            letters.append(letter)
        return "".join(letters)


def detect_structure(song_or_text: Union[Song, str]) -> StructureInfo:
    """
    Detect sections, repetitions and form.

    Args:
        song_or_text: Parsed Song or raw chart text

    Returns:
        StructureInfo
    """
    if isinstance(song_or_text, str):
        from ..notation.readers import read_song

        song_or_text = read_song(song_or_text)
    return StructureDetector().detect(song_or_text)
