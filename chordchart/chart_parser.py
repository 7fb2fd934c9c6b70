"""ChartParser: single-pass state machine for the bar-chart dialect."""

from __future__ import annotations

import logging
import re

from chordchart.models import (
    IMPLICIT_SECTION,
    Bar,
    ChordLine,
    Document,
    ParsedChart,
    Section,
    SectionLabel,
    SongLine,
)
from chordchart.tokenizer import tokenize_bar_line

log = logging.getLogger(__name__)

SECTION_HEADER_RE = re.compile(
    r"^(Verse \d+|Bridge|Tag|Chorus|Intro|Outro|Pre-Chorus|[A-Z]:)", re.IGNORECASE
)
REPEAT_LINE_RE = re.compile(r"^x\s*(\d+)$", re.IGNORECASE)
TRAILING_REPEAT_RE = re.compile(r"^(.+?)\s+x\s*(\d+)\s*$", re.IGNORECASE)


def clamp_repeat(count: int, limit: int) -> int:
    """Cap a repeat count, warning when the input asked for more."""
    if count > limit:
        log.warning("Repetition count too high, capping at %d: %d", limit, count)
        return limit
    return count


def header_label(matched: str) -> str:
    """Display label for a matched header: "A:" becomes "A"."""
    return matched.rstrip(":").strip()


class ChartParser:
    """
    Parses the bar-chart dialect into sections of bars.

    Rules, evaluated top to bottom for every non-blank line:

    1. **Section header** (``Verse 1``, ``Chorus``, ``A:`` ...) flushes the
       current section and opens a new one. Bar content after the header on
       the same line belongs to the new section.
    2. **Repeat line** (``x4``) appends N-1 more copies of the previous
       bar-producing line.
    3. **Trailing repeat** (``|C|G| x 4``) appends the line's bars N times.
    4. **Bar line** appends its bars.

    Repeat shorthand only ever refers to the immediately preceding bar line,
    so a single forward pass is enough.
    """

    MAX_REPEAT = 100

    def __init__(self, max_repeat: int = MAX_REPEAT) -> None:
        self.max_repeat = max_repeat

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _reset(self) -> None:
        self._sections: list[Section] = []
        self._label: str | None = None
        self._bars: list[Bar] = []
        self._last_line_bars: list[Bar] = []

    def _flush(self) -> None:
        if self._bars:
            label = self._label if self._label is not None else IMPLICIT_SECTION
            self._sections.append(Section(label=label, bars=tuple(self._bars)))
        self._bars = []

    def _handle_bar_line(self, line: str) -> None:
        trailing = TRAILING_REPEAT_RE.match(line)
        if trailing:
            count = clamp_repeat(int(trailing.group(2)), self.max_repeat)
            bars = [Bar(tuple(tokens)) for tokens in tokenize_bar_line(trailing.group(1).strip())]
            self._last_line_bars = bars
            for _ in range(count):
                self._bars.extend(bars)
            return

        bars = [Bar(tuple(tokens)) for tokens in tokenize_bar_line(line)]
        if bars:
            self._last_line_bars = bars
            self._bars.extend(bars)

    def _handle_line(self, line: str) -> None:
        header = SECTION_HEADER_RE.match(line)
        if header:
            self._flush()
            self._label = header_label(header.group(1))
            self._last_line_bars = []
            remainder = line[header.end():].lstrip(":").strip()
            if "|" in remainder:
                self._handle_bar_line(remainder)
            return

        repeat = REPEAT_LINE_RE.match(line)
        if repeat:
            if not self._last_line_bars:
                log.debug("Ignoring repeat line with nothing to repeat: %r", line)
                return
            count = clamp_repeat(int(repeat.group(1)), self.max_repeat)
            for _ in range(count - 1):
                self._bars.extend(self._last_line_bars)
            return

        self._handle_bar_line(line)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def parse(self, text: str) -> ParsedChart:
        """
        Parse chart text into sections.

        Sections without bars are dropped. Bars before any header go to an
        implicit "Main" section.

        Args:
            text: Raw multi-line chart text.

        Returns:
            A new ParsedChart; repeats appear as literal duplicated bars.
        """
        self._reset()
        for raw_line in text.splitlines():
            line = raw_line.strip()
            if line:
                self._handle_line(line)
        self._flush()
        return ParsedChart(sections=tuple(self._sections))


def parse_chart(text: str) -> ParsedChart:
    """Parse bar-chart text with the default repeat limit."""
    return ChartParser().parse(text)


def chart_to_document(chart: ParsedChart) -> Document:
    """
    Lift a ParsedChart into the shared document model.

    Each section becomes a label followed by one chord line holding all of
    its bars; the implicit "Main" label is marked so it is never written out.
    """
    lines: list[SongLine] = []
    for section in chart.sections:
        lines.append(
            SectionLabel(label=section.label, implicit=section.label == IMPLICIT_SECTION)
        )
        lines.append(ChordLine(bars=section.bars))
    return Document(lines=tuple(lines), dialect="chart")
