"""NotationExporter: renders chord events as staff notation in an HTML page."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from fractions import Fraction
from typing import Any, cast

from chordchart.models import DEFAULT_TIME_SIGNATURE, ChordEvent, TimeSignature
from chordchart.renderer import build_page

log = logging.getLogger(__name__)

# Notation pages: white cards on screen, one sheet per page in print.
PAGE_CSS = """    .page { background: #fff; margin: 0 auto 3rem; max-width: 860px; padding: 1rem;
             box-shadow: 0 2px 8px rgba(0, 0, 0, 0.15); }
    .page svg { display: block; width: 100%; height: auto; }
    @media print {
      .page { box-shadow: none; margin: 0; padding: 0; max-width: 100%; page-break-after: always; }
      .page:last-child { page-break-after: avoid; }
    }
"""


def _quarter_length(beats: float) -> Fraction:
    """Beats as a quarter length music21 can notate (dotted values become tuplets)."""
    return Fraction(beats).limit_denominator(12)


class NotationExporter:
    """
    Convert chord events into a self-contained HTML score.

    Pipeline: events -> music21 stream (chords, rests, meter, tempo) ->
    MusicXML -> verovio -> inline SVG pages.
    """

    # A4 portrait in verovio units (about 0.1 mm each)
    VEROVIO_OPTIONS: dict[str, Any] = {
        "pageHeight": 2970,
        "pageWidth": 2100,
        "scale": 40,
        "pageMarginTop": 100,
        "pageMarginBottom": 100,
        "pageMarginLeft": 100,
        "pageMarginRight": 100,
        "adjustPageHeight": True,
    }

    def __init__(self, title: str = "") -> None:
        self.title = title

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _build_score(
        self,
        events: Sequence[ChordEvent],
        tempo: int,
        total_beats: float | None,
        time_signature: TimeSignature,
    ) -> Any:
        from music21 import chord, metadata, meter, note, pitch, stream
        from music21 import tempo as m21tempo

        part = stream.Part()
        part.append(meter.TimeSignature(str(time_signature)))
        part.append(m21tempo.MetronomeMark(number=tempo))

        cursor = 0.0
        for event in events:
            if not event.notes:
                continue
            if event.start_beat > cursor:
                part.append(note.Rest(quarterLength=_quarter_length(event.start_beat - cursor)))
            element = chord.Chord(
                [pitch.Pitch(midi=number) for number in event.notes],
                quarterLength=_quarter_length(event.duration_beats),
            )
            element.addLyric(event.chord_symbol)
            part.append(element)
            cursor = max(cursor, event.end_beat)
        if total_beats is not None and total_beats > cursor:
            part.append(note.Rest(quarterLength=_quarter_length(total_beats - cursor)))

        score = stream.Score()
        score.insert(0, metadata.Metadata(title=self.title))
        score.append(part)
        return score

    def _score_to_musicxml_bytes(self, score: Any) -> bytes:
        from music21.musicxml.m21ToXml import GeneralObjectExporter

        exporter = GeneralObjectExporter(score)
        return cast(bytes, exporter.parse())

    def _render_page_svg(self, toolkit: Any, page_no: int) -> str:
        """One page as SVG; older verovio bindings take positional arguments only."""
        calls = (
            lambda: toolkit.renderToSVG(pageNo=page_no, xmlDeclaration=False),
            lambda: toolkit.renderToSVG(page_no, False),
        )
        for call in calls:
            try:
                return cast(str, call())
            except TypeError:
                continue
        return cast(str, toolkit.renderToSVG(page_no))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def render_svgs(self, musicxml_bytes: bytes) -> list[str]:
        """
        Render a MusicXML document to a list of SVG strings via verovio.

        Raises:
            ValueError: If verovio cannot load the MusicXML data.
        """
        import verovio

        toolkit = verovio.toolkit()
        toolkit.setOptions(self.VEROVIO_OPTIONS)
        if not toolkit.loadData(musicxml_bytes.decode("utf-8")):
            raise ValueError("verovio rejected the MusicXML score.")
        pages = range(1, toolkit.getPageCount() + 1)
        return [self._render_page_svg(toolkit, page_no) for page_no in pages]

    def build_html(self, svgs: Sequence[str]) -> str:
        """Wrap SVG pages, one ``.page`` div each, in a standalone document."""
        pages = "\n".join(f'  <div class="page">{svg}</div>' for svg in svgs)
        return build_page(self.title, pages, extra_css=PAGE_CSS)

    def musicxml(
        self,
        events: Sequence[ChordEvent],
        tempo: int = 60,
        total_beats: float | None = None,
        time_signature: TimeSignature = DEFAULT_TIME_SIGNATURE,
    ) -> bytes:
        """MusicXML for the events; chord symbols are attached as lyrics."""
        if not any(event.notes for event in events):
            raise ValueError("No chords to notate.")
        return self._score_to_musicxml_bytes(
            self._build_score(events, tempo, total_beats, time_signature)
        )

    def render(
        self,
        events: Sequence[ChordEvent],
        tempo: int = 60,
        total_beats: float | None = None,
        time_signature: TimeSignature = DEFAULT_TIME_SIGNATURE,
    ) -> str:
        """
        Render events as an HTML page of staff notation.

        Raises:
            ValueError: If there are no chords or verovio rejects the score.
        """
        svgs = self.render_svgs(self.musicxml(events, tempo, total_beats, time_signature))
        log.info("Rendered %d notation page(s)", len(svgs))
        return self.build_html(svgs)

    def export(self, events: Sequence[ChordEvent], output_path: str, **options: Any) -> None:
        """
        Render events and write the HTML page to disk.

        Raises:
            ValueError: If rendering fails.
            OSError: If the output file cannot be written.
        """
        content = self.render(events, **options)
        with open(output_path, "w", encoding="utf-8") as fh:
            fh.write(content)
