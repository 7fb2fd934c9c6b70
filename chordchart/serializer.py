"""Round-trip plain-text serialization of parsed documents."""

from __future__ import annotations

from collections.abc import Sequence

from chordchart.chordmark import LYRIC_POSITION_MARK, expand_label
from chordchart.models import (
    Bar,
    ChordLine,
    Document,
    EmptyLine,
    KeyDeclaration,
    LyricLine,
    SectionLabel,
    TimeSignatureLine,
)

CHART_BARS_PER_LINE = 4


def format_bars(bars: Sequence[Bar], bars_per_line: int | None = None) -> list[str]:
    """
    Write bars as bar lines, e.g. ``["| C G | Am |"]``.

    Empty bars only survive tokenizing on a line of bare pipes, so each run
    of them gets its own line (``"| |"`` for two).
    """
    lines: list[str] = []
    run: list[Bar] = []

    def flush() -> None:
        if not run:
            return
        if run[0].is_empty:
            lines.append(" ".join("|" for _ in run))
        else:
            step = bars_per_line or len(run)
            for start in range(0, len(run), step):
                chunk = run[start:start + step]
                inner = " | ".join(" ".join(token.text for token in bar.chords) for bar in chunk)
                lines.append(f"| {inner} |")
        run.clear()

    for bar in bars:
        if run and run[0].is_empty != bar.is_empty:
            flush()
        run.append(bar)
    flush()
    return lines


def format_lyrics(line: LyricLine) -> str:
    """Reinsert a position mark before every aligned character."""
    text = line.lyrics
    for position in reversed(line.chord_positions):
        text = text[:position] + LYRIC_POSITION_MARK + text[position:]
    return text


def _chart_header(label: SectionLabel) -> str:
    return f"{label.label}:" if len(label.label) == 1 else label.label


def _serialize_chart(document: Document) -> str:
    blocks: list[list[str]] = []
    for line in document.lines:
        if isinstance(line, SectionLabel):
            blocks.append([] if line.implicit else [_chart_header(line)])
        elif isinstance(line, ChordLine):
            if not blocks:
                blocks.append([])
            blocks[-1].extend(format_bars(line.bars, CHART_BARS_PER_LINE))
    return "\n\n".join("\n".join(block) for block in blocks if block)


def _chordmark_label(label: SectionLabel) -> str:
    if expand_label(label.label) != label.label:
        # A bare abbreviation such as "c" came from a "c:" header.
        return f"{label.label}:"
    text = f"#{label.label}"
    if label.multiply_times > 1:
        text += f" x{label.multiply_times}"
    return text


def _serialize_chordmark(document: Document) -> str:
    out: list[str] = []
    for line in document.lines:
        if isinstance(line, SectionLabel):
            if not line.implicit:
                out.append(_chordmark_label(line))
        elif isinstance(line, ChordLine):
            out.extend(format_bars(line.bars))
        elif isinstance(line, LyricLine):
            out.append(format_lyrics(line))
        elif isinstance(line, KeyDeclaration):
            out.append(f"key {line.key}")
        elif isinstance(line, TimeSignatureLine):
            out.append(str(line.time_signature))
        elif isinstance(line, EmptyLine):
            out.append("")
    return "\n".join(out).strip("\n")


def serialize(document: Document | None) -> str:
    """
    Write a document back out in the dialect it was parsed from.

    Repeats are written out literally and section copies stay as bare
    labels, so re-parsing the result gives the same sections, bar counts
    and chord symbols.

    Args:
        document: Parsed document, or None.

    Returns:
        Plain text; "" for None.
    """
    if document is None:
        return ""
    if document.dialect == "chart":
        return _serialize_chart(document)
    return _serialize_chordmark(document)
