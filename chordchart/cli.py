"""Command-line interface for Chord Chart.

Provides commands for:
- parse: Parse chord symbols
- detect: Detect a chart's chord notation
- key: Rank key candidates for a chart
- transpose: Transpose a chart (optionally for a capo)
- convert: Convert a chart to another notation
- structure: Show song sections and form
- capo: Suggest capo positions
- analyze: Full analysis (key, harmony, structure, alignment)
"""

import json
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .core.constants import MAX_CAPO_FRET
from .core.errors import ChordChartError
from .core.key import KeySignature
from .notation.document import NotationPattern

app = typer.Typer(
    name="chordchart",
    help="Chord notation and music-theory engine",
    rich_markup_mode="markdown",
)
console = Console()

# Command-line names for notations
PATTERN_NAMES = {
    "chord-over-lyric": NotationPattern.CHORD_OVER_LYRIC,
    "chord_over_lyric": NotationPattern.CHORD_OVER_LYRIC,
    "chords-over-lyrics": NotationPattern.CHORD_OVER_LYRIC,
    "inline": NotationPattern.INLINE_BRACKET,
    "inline_bracket": NotationPattern.INLINE_BRACKET,
    "bracket": NotationPattern.INLINE_BRACKET,
    "directive": NotationPattern.DIRECTIVE_STYLE,
    "directive_style": NotationPattern.DIRECTIVE_STYLE,
    "chordpro": NotationPattern.DIRECTIVE_STYLE,
    "nashville": NotationPattern.NASHVILLE_NUMBER,
    "nashville_number": NotationPattern.NASHVILLE_NUMBER,
}


def _fail(message: str):
    console.print(f"[red]Error: {escape(message)}[/red]")
    raise typer.Exit(1)


def _read_chart(path: Path) -> str:
    if not path.exists():
        _fail(f"File not found: {path}")
    return path.read_text(encoding="utf-8")


def _parse_key(text: Optional[str]) -> Optional[KeySignature]:
    if text is None:
        return None
    try:
        return KeySignature.parse(text)
    except ValueError as e:
        _fail(str(e))


def _parse_pattern(text: Optional[str]) -> Optional[NotationPattern]:
    if text is None:
        return None
    pattern = PATTERN_NAMES.get(text.strip().lower())
    if pattern is None:
        _fail(f"Unknown notation {text!r} (use one of: chord-over-lyric, inline, directive, nashville)")
    return pattern


@app.command()
def parse(
    chords: List[str] = typer.Argument(..., help="Chord symbols, e.g. Cmaj7 F#m7b5 G/B"),
):
    """Parse chord symbols and show their parts.

    Examples:
        chordchart parse Cmaj7 "F#m7b5" G/B
    """
    from .core.chord import try_parse_chord, validate_chord

    table = Table(title="Chords")
    table.add_column("Input", style="cyan")
    table.add_column("Root", style="green")
    table.add_column("Quality", style="yellow")
    table.add_column("Extensions", style="magenta")
    table.add_column("Bass")
    table.add_column("Warnings", style="red")

    invalid = 0
    for text in chords:
        symbol = try_parse_chord(text)
        if symbol is None:
            invalid += 1
            table.add_row(escape(text), "-", "[red]not a chord[/red]", "", "", "")
            continue
        table.add_row(
            escape(text),
            symbol.root_spelling,
            symbol.quality.value,
            " ".join(str(e) for e in symbol.extensions),
            symbol.bass_spelling or "",
            "; ".join(w.message for w in validate_chord(symbol)),
        )

    console.print(table)
    if invalid:
        raise typer.Exit(1)


@app.command()
def detect(
    input_file: Path = typer.Argument(..., help="Chart text file"),
):
    """Detect the chord notation of a chart, line by line."""
    from .notation.patterns import detect_pattern

    text = _read_chart(input_file)
    detection = detect_pattern(text)

    console.print(f"\n[bold]Notation:[/bold] [green]{detection.pattern.value}[/green]")
    if not detection.line_patterns:
        console.print("[yellow]No chords found[/yellow]")
        return

    lines = text.splitlines()
    table = Table(title="Line Notation")
    table.add_column("Line", style="cyan", justify="right")
    table.add_column("Notation", style="green")
    table.add_column("Text")
    for index, pattern in sorted(detection.line_patterns.items()):
        table.add_row(str(index + 1), pattern.value, escape(lines[index]))
    console.print(table)


@app.command()
def key(
    input_file: Path = typer.Argument(..., help="Chart text file"),
    top: int = typer.Option(5, "--top", "-n", help="Number of candidates to show"),
):
    """Rank the most likely keys of a chart."""
    from .inference.key import detect_keys
    from .notation.readers import read_song

    try:
        song = read_song(_read_chart(input_file))
    except ChordChartError as e:
        _fail(str(e))

    detection = detect_keys(song.chords)
    if song.declared_key is not None:
        console.print(f"Declared key: {song.declared_key.name}")

    table = Table(title="Key Candidates")
    table.add_column("Rank", style="cyan", justify="right")
    table.add_column("Key", style="green")
    table.add_column("Confidence", style="magenta")
    for rank, candidate in enumerate(detection.candidates[:top], 1):
        table.add_row(str(rank), candidate.name, f"{candidate.confidence:.2f}")
    console.print(table)

    if detection.is_ambiguous:
        console.print("[yellow]Key is ambiguous[/yellow]")


@app.command()
def transpose(
    input_file: Path = typer.Argument(..., help="Chart text file"),
    semitones: int = typer.Option(0, "--semitones", "-s", help="Semitones to shift (+/-)"),
    key_name: Optional[str] = typer.Option(None, "--key", "-k", help="Source key, e.g. G or Em"),
    capo: int = typer.Option(
        0, "--capo", "-c", min=0, max=MAX_CAPO_FRET,
        help="Show the shapes to play with a capo on this fret",
    ),
):
    """Transpose a chart, keeping its notation.

    Examples:
        chordchart transpose song.txt --semitones 2
        chordchart transpose song.txt -s -3 --capo 2
    """
    from .notation.converter import transpose_song
    from .notation.readers import read_song
    from .notation.writers import write_song
    from .processing.capo import capo_for_transposition

    source_key = _parse_key(key_name)
    try:
        song = read_song(_read_chart(input_file), key=source_key)
        if song.pattern is NotationPattern.UNKNOWN:
            _fail("No chords found")
        moved = transpose_song(song, semitones - capo, key=source_key)
        target = song.pattern if song.pattern.is_concrete else NotationPattern.CHORD_OVER_LYRIC
        output = write_song(moved, target)
    except ChordChartError as e:
        _fail(str(e))

    if capo:
        console.print(f"[dim]Capo {capo}: chord shapes shown[/dim]")
    elif semitones % 12:
        fret = capo_for_transposition(semitones)
        console.print(f"[dim]Or keep the original shapes with capo {fret}[/dim]")
    typer.echo(output)


@app.command()
def convert(
    input_file: Path = typer.Argument(..., help="Chart text file"),
    to: str = typer.Option(..., "--to", "-t", help="Target notation"),
    source: Optional[str] = typer.Option(None, "--from", "-f", help="Source notation (default: detect)"),
    key_name: Optional[str] = typer.Option(None, "--key", "-k", help="Key for Nashville numbers"),
):
    """Convert a chart to another notation.

    Notations: chord-over-lyric, inline, directive (chordpro), nashville.

    Examples:
        chordchart convert song.txt --to inline
        chordchart convert song.txt --to nashville --key G
    """
    from .notation.converter import convert as convert_text

    target = _parse_pattern(to)
    source_pattern = _parse_pattern(source)
    chart_key = _parse_key(key_name)
    try:
        output = convert_text(_read_chart(input_file), source_pattern, target, key=chart_key)
    except ChordChartError as e:
        _fail(str(e))
    typer.echo(output)


@app.command()
def structure(
    input_file: Path = typer.Argument(..., help="Chart text file"),
):
    """Show song sections and form."""
    from .inference.structure import detect_structure
    from .notation.readers import read_song

    try:
        info = detect_structure(read_song(_read_chart(input_file)))
    except ChordChartError as e:
        _fail(str(e))

    if not info.sections:
        console.print("[yellow]No sections found[/yellow]")
        return
    _show_sections_table(info)
    console.print(f"\n[green]Form: {info.form}[/green]")


@app.command()
def capo(
    input_file: Path = typer.Argument(..., help="Chart text file"),
):
    """Suggest capo positions that make the chords easier to play."""
    from .notation.readers import read_song
    from .processing.capo import CapoAdvisor, written_key

    try:
        song = read_song(_read_chart(input_file))
    except ChordChartError as e:
        _fail(str(e))

    advisor = CapoAdvisor()
    chords = song.chords
    console.print(f"Current difficulty: {advisor.average_difficulty(chords):.2f}")
    suggestions = advisor.suggest(chords)
    if not suggestions:
        console.print("[yellow]No capo position makes this easier[/yellow]")
        return

    table = Table(title="Capo Suggestions")
    table.add_column("Fret", style="cyan", justify="right")
    table.add_column("Difficulty", style="magenta")
    table.add_column("Shapes", style="green")
    key = song.declared_key
    if key is not None:
        table.add_column("Play in", style="green")
    table.add_column("Reason")
    for suggestion in suggestions:
        row = [
            str(suggestion.fret),
            f"{suggestion.difficulty:.2f}",
            " ".join(suggestion.sample_chords),
        ]
        if key is not None:
            row.append(written_key(key, suggestion.fret).short_name)
        table.add_row(*row, suggestion.reason)
    console.print(table)


@app.command()
def analyze(
    input_file: Path = typer.Argument(..., help="Chart text file"),
    key_name: Optional[str] = typer.Option(None, "--key", "-k", help="Known key"),
    output_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
):
    """Full analysis: notation, key, harmony, structure and alignment.

    Examples:
        chordchart analyze song.txt
        chordchart analyze song.txt --json > report.json
    """
    from .chart import analyze_chart

    chart_key = _parse_key(key_name)
    try:
        analysis = analyze_chart(_read_chart(input_file), key=chart_key)
    except ChordChartError as e:
        _fail(str(e))

    if output_json:
        typer.echo(json.dumps(analysis.to_dict(), indent=2))
        return

    title = analysis.song.title or input_file.name
    console.print(f"\n[bold blue]Full Analysis: {title}[/bold blue]\n")
    console.print(f"   Notation: {analysis.pattern.value}")

    if analysis.key is None:
        if analysis.unresolved_numerals:
            console.print("[yellow]Nashville numbers need a key (use --key)[/yellow]")
        else:
            console.print("[yellow]No chords found![/yellow]")
        return

    console.print(f"   [green]Key: {analysis.key.name}[/green]")
    console.print(f"   Confidence: {analysis.detection.confidence:.2f}")
    if analysis.detection.is_ambiguous:
        console.print("   [yellow]Key is ambiguous[/yellow]")

    _show_chords_table(analysis.harmony)
    if analysis.harmony.progressions:
        names = ", ".join(name for name, _ in analysis.harmony.progressions[:3])
        console.print(f"\n   [green]Progressions: {names}[/green]")
    if analysis.harmony.cadences:
        cadences = ", ".join(c.type.value for c in analysis.harmony.cadences)
        console.print(f"   Cadences: {cadences}")

    if analysis.structure.sections:
        _show_sections_table(analysis.structure)
        console.print(f"   Form: {analysis.structure.form}")

    if analysis.alignment:
        mean = sum(analysis.alignment) / len(analysis.alignment)
        console.print(f"   Alignment: {mean:.2f}")
    for raw, warning in analysis.warnings:
        console.print(f"   [yellow]{escape(raw)}: {warning.message}[/yellow]", highlight=False)
    if analysis.invalid_tokens:
        console.print(f"   [red]Unparsed: {escape(' '.join(analysis.invalid_tokens))}[/red]")

    console.print("\n[green][OK] Analysis complete![/green]")


def _show_chords_table(harmony):
    """Display chords in a table."""
    table = Table(title="Chords")
    table.add_column("Chord", style="cyan")
    table.add_column("Roman", style="green")
    table.add_column("Function", style="yellow")

    for symbol, numeral, function in zip(
        harmony.chord_symbols, harmony.roman_numerals, harmony.functions
    ):
        table.add_row(symbol, numeral, function.value)

    console.print(table)


def _show_sections_table(info):
    """Display sections in a table."""
    table = Table(title="Sections")
    table.add_column("#", style="cyan", justify="right")
    table.add_column("Section", style="green")
    table.add_column("Lines", style="yellow")
    table.add_column("Chords")
    table.add_column("Confidence", style="magenta")

    for i, section in enumerate(info.sections):
        start, end = section.line_range
        confidence = "-" if section.confidence is None else f"{section.confidence:.2f}"
        table.add_row(
            str(i),
            section.label or section.type.value,
            f"{start + 1}-{end}",
            " ".join(str(c) for c in section.chords[:8]),
            confidence,
        )

    console.print(table)


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
