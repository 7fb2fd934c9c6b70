"""chordchart CLI entry point."""

import logging
import sys
from pathlib import Path
from typing import cast

import click

from chordchart import __version__
from chordchart.chord_resolver import VOICINGS, ChordResolver
from chordchart.midi_exporter import MidiExporter, chart_to_midi, opening_time_signature
from chordchart.models import ChordEvent, Document
from chordchart.parser import parse
from chordchart.playback import PlaybackScheduler, SilentSink
from chordchart.renderer import RAW_VIEW, VIEW_MODES, build_page, render_source
from chordchart.serializer import serialize
from chordchart.timing import extract_events, total_beats

TEXT_VIEW = "text"
MIN_TEMPO, MAX_TEMPO = 30, 300


def _read_chart(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        click.echo(f"  ERROR: Could not read chart: {exc}", err=True)
        sys.exit(1)


def _parse_required(text: str) -> Document:
    try:
        return cast(Document, parse(text, require_sections=True))
    except ValueError as exc:
        click.echo(f"  ERROR: {exc}", err=True)
        sys.exit(1)


def _write_output(path: str, content: str | bytes) -> None:
    try:
        if isinstance(content, bytes):
            Path(path).write_bytes(content)
        else:
            Path(path).write_text(content, encoding="utf-8")
    except OSError as exc:
        click.echo(f"  ERROR: Could not write output file: {exc}", err=True)
        sys.exit(1)


def _default_title(path: str) -> str:
    return Path(path).stem.replace("_", " ")


tempo_option = click.option(
    "--tempo",
    type=click.IntRange(MIN_TEMPO, MAX_TEMPO),
    default=MidiExporter.DEFAULT_TEMPO,
    show_default=True,
    help="Playback tempo in BPM.",
)
voicing_option = click.option(
    "--voicing",
    type=click.Choice(sorted(VOICINGS), case_sensitive=False),
    default="triad",
    show_default=True,
    help="triad: close chords from middle C. bass: chords plus a bass note an octave lower.",
)


# ── CLI group ──────────────────────────────────────────────────────────────────

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="chordchart")
@click.option("--verbose", "-v", is_flag=True, help="Log debug details to stderr.")
def main(verbose: bool) -> None:
    """chordchart: chord chart parser, renderer and MIDI exporter."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# ── render subcommand ─────────────────────────────────────────────────────────

@main.command()
@click.argument("chart_file", type=click.Path(exists=True, dir_okay=False, readable=True))
@click.option(
    "--view",
    type=click.Choice([*VIEW_MODES, RAW_VIEW, TEXT_VIEW], case_sensitive=False),
    default="full",
    show_default=True,
    help="full, chords, lyrics and one-line are HTML views; raw echoes the input; "
    "text writes the normalized chart back out.",
)
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Write a standalone HTML page (or plain text for --view text) instead of printing.",
)
@click.option(
    "--title",
    default=None,
    metavar="TEXT",
    help="Page title. Defaults to the chart filename stem.",
)
def render(chart_file: str, view: str, output: str | None, title: str | None) -> None:
    """
    Render CHART_FILE in one of the presentation views.

    \b
    Examples:
      chordchart render song.txt
      chordchart render song.txt --view one-line
      chordchart render song.txt --view chords -o song.html --title "My Song"
    """
    text = _read_chart(chart_file)
    view = view.lower()

    if view == TEXT_VIEW:
        content = serialize(parse(text))
    else:
        content = render_source(text, view)
        if output is not None and content:
            content = build_page(title if title is not None else _default_title(chart_file), content)

    if not content:
        click.echo("  WARNING: The chart is empty; nothing to render.", err=True)
        sys.exit(1)

    if output is None:
        click.echo(content)
        return
    _write_output(output, content)
    click.echo(f"Done!  Wrote '{output}'.")


# ── midi subcommand ───────────────────────────────────────────────────────────

@main.command()
@click.argument("chart_file", type=click.Path(exists=True, dir_okay=False, readable=True))
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Destination MIDI file path. Defaults to the chart path with a .mid suffix.",
)
@tempo_option
@voicing_option
def midi(chart_file: str, output: str | None, tempo: int, voicing: str) -> None:
    """
    Convert CHART_FILE to a Standard MIDI File.

    \b
    Examples:
      chordchart midi song.txt
      chordchart midi song.txt --tempo 90 --voicing bass -o song.mid
    """
    resolved_output = output if output is not None else str(Path(chart_file).with_suffix(".mid"))
    text = _read_chart(chart_file)

    click.echo(f"chordchart v{__version__}")
    click.echo(f"  Chart  : {chart_file}")
    click.echo(f"  Tempo  : {tempo} BPM  |  Voicing: {voicing}")
    click.echo()

    click.echo("[1/2] Encoding MIDI...")
    try:
        data = chart_to_midi(text, tempo=tempo, voicing=voicing.lower())
    except ValueError as exc:
        click.echo(f"  ERROR: {exc}", err=True)
        sys.exit(1)

    click.echo(f"[2/2] Writing MIDI file → '{resolved_output}'...")
    _write_output(resolved_output, data)

    click.echo()
    click.echo(f"Done!  Open '{resolved_output}' in GarageBand, MuseScore, or any MIDI player.")


# ── events subcommand ─────────────────────────────────────────────────────────

@main.command()
@click.argument("chart_file", type=click.Path(exists=True, dir_okay=False, readable=True))
@tempo_option
@voicing_option
def events(chart_file: str, tempo: int, voicing: str) -> None:
    """Print the chord event timeline of CHART_FILE."""
    document = _parse_required(_read_chart(chart_file))
    timeline = extract_events(document, ChordResolver(VOICINGS[voicing.lower()]()))
    seconds_per_beat = 60.0 / tempo

    click.echo(f"  {'beat':>7}  {'time':>8}  {'chord':<8} notes")
    for event in timeline:
        bar = "=" * max(1, int(event.duration_beats * 4))
        click.echo(
            f"  {event.start_beat:7.2f}  {event.start_beat * seconds_per_beat:7.2f}s  "
            f"{event.chord_symbol:<8} {' '.join(str(n) for n in event.notes):<16} {bar}"
        )
    click.echo(f"  {len(timeline)} event(s), {total_beats(document):g} beats")


# ── sheet subcommand ──────────────────────────────────────────────────────────

@main.command()
@click.argument("chart_file", type=click.Path(exists=True, dir_okay=False, readable=True))
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Destination HTML file path. Defaults to the chart path with a .html suffix.",
)
@click.option(
    "--title",
    default=None,
    metavar="TEXT",
    help="Title shown in the output header. Defaults to the chart filename stem.",
)
@tempo_option
@voicing_option
def sheet(chart_file: str, output: str | None, title: str | None, tempo: int, voicing: str) -> None:
    """
    Render CHART_FILE as staff notation in a self-contained HTML file.

    \b
    Examples:
      chordchart sheet song.txt
      chordchart sheet song.txt -o score.html --title "My Song"
    """
    from chordchart.notation_exporter import NotationExporter

    resolved_title = title if title is not None else _default_title(chart_file)
    resolved_output = output if output is not None else str(Path(chart_file).with_suffix(".html"))
    document = _parse_required(_read_chart(chart_file))

    click.echo(f"chordchart v{__version__}")
    click.echo(f"  Chart  : {chart_file}")
    click.echo(f"  Title  : {resolved_title}")
    click.echo(f"  Output : {resolved_output}")
    click.echo()

    exporter = NotationExporter(title=resolved_title)
    try:
        click.echo("[1/3] Building score with music21...")
        musicxml = exporter.musicxml(
            extract_events(document, ChordResolver(VOICINGS[voicing.lower()]())),
            tempo=tempo,
            total_beats=total_beats(document),
            time_signature=opening_time_signature(document),
        )
        click.echo("[2/3] Rendering notation to SVG with verovio...")
        svgs = exporter.render_svgs(musicxml)
    except ValueError as exc:
        click.echo(f"  ERROR: Could not render score: {exc}", err=True)
        sys.exit(1)

    click.echo("[3/3] Writing HTML file...")
    _write_output(resolved_output, exporter.build_html(svgs))

    click.echo()
    click.echo(f"Done!  Open '{resolved_output}' in any browser. Use Print → Save as PDF.")


# ── play subcommand ───────────────────────────────────────────────────────────

@main.command()
@click.argument("chart_file", type=click.Path(exists=True, dir_okay=False, readable=True))
@tempo_option
@click.option(
    "--from-line",
    type=click.IntRange(min=0),
    default=None,
    metavar="INDEX",
    help="Start at the first chord of this (expanded) document line.",
)
def play(chart_file: str, tempo: int, from_line: int | None) -> None:
    """Follow CHART_FILE in real time, printing each chord as it falls due."""
    document = _parse_required(_read_chart(chart_file))
    timeline = extract_events(document)

    def announce(event: ChordEvent) -> None:
        click.echo(f"  {event.start_beat:7.2f}  {event.chord_symbol}")

    scheduler = PlaybackScheduler(SilentSink(), on_event=announce)
    scheduler.start(timeline, tempo, start_line=from_line)
    try:
        scheduler.run()
    except KeyboardInterrupt:
        click.echo("  Stopped.")
    finally:
        scheduler.stop()
