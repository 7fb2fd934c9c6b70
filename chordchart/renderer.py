"""Renderer implementations for the chart presentation views."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from chordchart.chordmark import expand_sections
from chordchart.models import (
    Bar,
    ChordLine,
    Document,
    EmptyLine,
    KeyDeclaration,
    LyricLine,
    SectionLabel,
    SongLine,
    TimeSignatureLine,
)
from chordchart.parser import parse

VIEW_MODES: tuple[str, ...] = ("full", "chords", "lyrics", "one-line")
RAW_VIEW = "raw"


def _escape_html(text: str) -> str:
    """Escape the three characters that are unsafe in HTML text content."""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _span(css_class: str, text: str) -> str:
    return f'<span class="{css_class}">{_escape_html(text)}</span>'


def _line(*spans: str, css_class: str = "cmLine") -> str:
    return f'<p class="{css_class}">{"".join(spans)}</p>'


# ── Alignment ───────────────────────────────────────────────────────────────


def align_chords(
    symbols: Sequence[str], positions: Sequence[int], lyrics: str
) -> tuple[list[tuple[str, bool]], str]:
    """
    Lay chord symbols out above a lyric line.

    Each symbol starts at the column of its lyric position. When a symbol
    would run into the next one, the lyric is padded with spaces at that
    point so at least one space separates adjacent symbols. Symbols without
    a position are appended after the last aligned one.

    Args:
        symbols:   Sounding chord symbols of the chord line.
        positions: Character offsets into ``lyrics``, one per aligned chord.
        lyrics:    The lyric text.

    Returns:
        ``(chord_row, lyric_row)`` where ``chord_row`` is a list of
        ``(text, is_symbol)`` segments and ``lyric_row`` the padded lyrics.
    """
    segments: list[tuple[str, bool]] = []
    chord_width = 0
    lyric_row = ""
    consumed = 0
    for symbol, position in zip(symbols, positions):
        lyric_row += lyrics[consumed:position]
        consumed = position
        minimum = chord_width + 1 if chord_width else 0
        if len(lyric_row) < minimum:
            lyric_row += " " * (minimum - len(lyric_row))
        if len(lyric_row) > chord_width:
            segments.append((" " * (len(lyric_row) - chord_width), False))
        segments.append((symbol, True))
        chord_width = len(lyric_row) + len(symbol)
    lyric_row += lyrics[consumed:]

    for symbol in symbols[len(positions):]:
        segments.append((" ", False) if segments else ("", False))
        segments.append((symbol, True))
    return [segment for segment in segments if segment[0]], lyric_row


def inline_chords(symbols: Sequence[str], positions: Sequence[int], lyrics: str) -> str:
    """'[C]Amazing [G]grace' style inlining; extra chords go at the end."""
    parts: list[str] = []
    consumed = 0
    for symbol, position in zip(symbols, positions):
        parts.append(lyrics[consumed:position])
        parts.append(f"[{symbol}]")
        consumed = position
    parts.append(lyrics[consumed:])
    text = "".join(parts).rstrip()
    leftovers = " ".join(f"[{symbol}]" for symbol in symbols[len(positions):])
    if leftovers:
        text = f"{text} {leftovers}" if text else leftovers
    return text


# ── Renderers ───────────────────────────────────────────────────────────────


class ChartRenderer(ABC):
    """
    Abstract view renderer.

    Subclasses turn the expanded document lines into HTML line fragments;
    the base class handles section expansion and the song wrapper.
    """

    @property
    @abstractmethod
    def view_mode(self) -> str:
        """Name of the view, as accepted by ``render``."""

    @abstractmethod
    def render_lines(self, lines: Sequence[SongLine]) -> list[str]:
        """Render expanded document lines into HTML line fragments."""

    def render(self, document: Document | None) -> str:
        if document is None or not document.lines:
            return ""
        # Copies get their bodies; multiplied sections stay single and show xN.
        lines = expand_sections(document.lines, copies=True, multiplies=False)
        body = "\n".join(self.render_lines(lines))
        return f'<div class="cmSong">\n{body}\n</div>'

    # ------------------------------------------------------------------
    # Shared line renderers
    # ------------------------------------------------------------------

    def _label_html(self, label: SectionLabel) -> str:
        spans = [_span("cmSectionLabel", label.label)]
        if label.multiply_times > 1:
            spans.append(" " + _span("cmSectionMultiplier", f"x{label.multiply_times}"))
        return _line(*spans)

    def _bar_html(self, bar: Bar) -> str:
        tokens = []
        for token in bar.chords:
            html = _span("cmChordSymbol", token.symbol)
            if token.dots:
                html += _span("cmChordDuration", "." * token.dots)
            tokens.append(html)
        return " ".join(tokens)

    def _chord_line_html(self, line: ChordLine) -> str:
        separator = _span("cmBarSeparator", "|")
        bars = [f" {self._bar_html(bar)} " if bar.chords else " " for bar in line.bars]
        return _line(f'<span class="cmChordLine">{separator}{separator.join(bars)}{separator}</span>')

    def _meta_html(self, line: SongLine) -> str | None:
        if isinstance(line, KeyDeclaration):
            return _line(_span("cmKeyDeclaration", f"key {line.key}"))
        if isinstance(line, TimeSignatureLine):
            return _line(_span("cmTimeSignature", str(line.time_signature)))
        return None

    def _empty_html(self) -> str:
        return _line(css_class="cmLine cmEmptyLine")


class FullRenderer(ChartRenderer):
    """Chords aligned above their lyrics; bar notation for chord-only lines."""

    @property
    def view_mode(self) -> str:
        return "full"

    def _aligned_html(self, chords: ChordLine, lyric: LyricLine) -> list[str]:
        segments, lyric_row = align_chords(chords.symbols, lyric.chord_positions, lyric.lyrics)
        chord_html = "".join(
            _span("cmChordSymbol", text) if is_symbol else _escape_html(text)
            for text, is_symbol in segments
        )
        return [
            _line(f'<span class="cmChordLine">{chord_html}</span>'),
            _line(_span("cmLyricLine", lyric_row)),
        ]

    def render_lines(self, lines: Sequence[SongLine]) -> list[str]:
        out: list[str] = []
        index = 0
        while index < len(lines):
            line = lines[index]
            following = lines[index + 1] if index + 1 < len(lines) else None
            if isinstance(line, ChordLine) and isinstance(following, LyricLine) and line.symbols:
                out.extend(self._aligned_html(line, following))
                index += 2
                continue
            if isinstance(line, SectionLabel):
                out.append(self._label_html(line))
            elif isinstance(line, ChordLine):
                out.append(self._chord_line_html(line))
            elif isinstance(line, LyricLine):
                out.append(_line(_span("cmLyricLine", line.lyrics)))
            elif isinstance(line, EmptyLine):
                out.append(self._empty_html())
            else:
                meta = self._meta_html(line)
                if meta is not None:
                    out.append(meta)
            index += 1
        return out


class ChordsOnlyRenderer(ChartRenderer):
    """Section labels, key/time changes and packed chord lines; no lyrics."""

    @property
    def view_mode(self) -> str:
        return "chords"

    def render_lines(self, lines: Sequence[SongLine]) -> list[str]:
        out: list[str] = []
        for line in lines:
            if isinstance(line, SectionLabel):
                out.append(self._label_html(line))
            elif isinstance(line, ChordLine):
                out.append(self._chord_line_html(line))
            elif isinstance(line, EmptyLine):
                out.append(self._empty_html())
            elif not isinstance(line, LyricLine):
                meta = self._meta_html(line)
                if meta is not None:
                    out.append(meta)
        return out


class LyricsOnlyRenderer(ChartRenderer):
    """Section labels and lyric lines only."""

    @property
    def view_mode(self) -> str:
        return "lyrics"

    def render_lines(self, lines: Sequence[SongLine]) -> list[str]:
        out: list[str] = []
        for line in lines:
            if isinstance(line, SectionLabel):
                out.append(self._label_html(line))
            elif isinstance(line, LyricLine):
                out.append(_line(_span("cmLyricLine", line.lyrics)))
            elif isinstance(line, EmptyLine):
                out.append(self._empty_html())
        return out


class OneLineRenderer(ChartRenderer):
    """
    Condensed text with chords inlined as ``[Symbol]`` before the lyric
    character they apply to.
    """

    @property
    def view_mode(self) -> str:
        return "one-line"

    def render_text(self, document: Document | None) -> str:
        if document is None or not document.lines:
            return ""
        lines = expand_sections(document.lines, copies=True, multiplies=False)
        return "\n".join(self.text_lines(lines))

    def text_lines(self, lines: Sequence[SongLine]) -> list[str]:
        out: list[str] = []
        pending: ChordLine | None = None

        def flush() -> None:
            nonlocal pending
            if pending is not None and pending.symbols:
                out.append(" ".join(f"[{symbol}]" for symbol in pending.symbols))
            pending = None

        for line in lines:
            if isinstance(line, ChordLine):
                flush()
                pending = line
            elif isinstance(line, LyricLine):
                symbols = pending.symbols if pending is not None else []
                out.append(inline_chords(symbols, line.chord_positions, line.lyrics))
                pending = None
            elif isinstance(line, SectionLabel):
                flush()
                header = f"[{line.label.upper()}]"
                if line.multiply_times > 1:
                    header += f" x{line.multiply_times}"
                out.append(header)
            elif isinstance(line, EmptyLine):
                flush()
                out.append("")
        flush()
        return out

    def render_lines(self, lines: Sequence[SongLine]) -> list[str]:
        text = "\n".join(self.text_lines(lines))
        return [f'<pre class="cmOneLine">{_escape_html(text)}</pre>']


RENDERERS: dict[str, type[ChartRenderer]] = {
    "full": FullRenderer,
    "chords": ChordsOnlyRenderer,
    "lyrics": LyricsOnlyRenderer,
    "one-line": OneLineRenderer,
}


# ── Public API ──────────────────────────────────────────────────────────────


def render(document: Document | None, view_mode: str = "full") -> str:
    """
    Render a document in one of the views.

    Args:
        document:  Parsed document; None or an empty document renders as "".
        view_mode: One of ``VIEW_MODES``.

    Returns:
        An HTML fragment.

    Raises:
        ValueError: If ``view_mode`` is not a known view.
    """
    renderer_cls = RENDERERS.get(view_mode)
    if renderer_cls is None:
        supported = ", ".join(VIEW_MODES)
        raise ValueError(f"Unsupported view mode '{view_mode}'. Use one of: {supported}.")
    return renderer_cls().render(document)


def render_one_line(document: Document | None) -> str:
    """The one-line view as plain text."""
    return OneLineRenderer().render_text(document)


def render_raw(text: str) -> str:
    """The input as written, in an unstyled <pre>."""
    return f"<pre>{_escape_html(text)}</pre>"


def _has_structure(document: Document) -> bool:
    return any(isinstance(line, (ChordLine, SectionLabel)) for line in document.lines)


def render_source(text: str, view_mode: str = "full") -> str:
    """
    Parse and render raw input.

    The ``raw`` view returns the input as written. Input that yields no
    chords or section labels also falls back to the raw text, so nothing a
    user typed is lost.
    """
    if not text.strip():
        return ""
    if view_mode == RAW_VIEW:
        return render_raw(text)
    document = parse(text)
    if document is None or not _has_structure(document):
        return render_raw(text)
    return render(document, view_mode)


def build_page(title: str, body: str, extra_css: str = "") -> str:
    """
    Wrap an HTML fragment in a self-contained HTML document.

    The stylesheet covers the chart views (monospaced chord and lyric rows);
    ``extra_css`` is appended for other content, such as notation pages.
    """
    title_safe = _escape_html(title)
    heading = f"  <h1>{title_safe}</h1>\n" if title else ""

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1.0" />
  <title>{title_safe}</title>
  <style>
    *, *::before, *::after {{ box-sizing: border-box; }}
    body {{
      font-family: Georgia, serif;
      background: #f0f0f0;
      margin: 0;
      padding: 2rem;
    }}
    h1 {{
      text-align: center;
      font-size: 1.6rem;
      margin-bottom: 2rem;
      color: #222;
    }}
    .cmSong {{
      background: #fff;
      margin: 0 auto;
      max-width: 860px;
      padding: 1rem 2rem;
      font-family: "Courier New", monospace;
    }}
    .cmLine {{
      margin: 0;
      white-space: pre;
      min-height: 1.2em;
    }}
    .cmSectionLabel {{
      font-weight: bold;
      display: inline-block;
      margin-top: 1rem;
    }}
    .cmChordLine, .cmChordSymbol {{ color: #1a4f9c; font-weight: bold; }}
    .cmChordDuration, .cmBarSeparator {{ color: #888; font-weight: normal; }}
    .cmOneLine {{ font-family: inherit; white-space: pre-wrap; }}
    @media print {{
      body {{ background: #fff; padding: 0; }}
      .cmSong {{ max-width: 100%; padding: 0; }}
    }}
{extra_css}  </style>
</head>
<body>
{heading}{body}
</body>
</html>"""
