"""ChordmarkParser: line-oriented parser for the lyric-aware chordmark dialect."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from chordchart.chart_parser import (
    REPEAT_LINE_RE,
    SECTION_HEADER_RE,
    TRAILING_REPEAT_RE,
    ChartParser,
    clamp_repeat,
    header_label,
)
from chordchart.models import (
    DEFAULT_TIME_SIGNATURE,
    REST_SYMBOLS,
    Bar,
    ChordLine,
    Document,
    EmptyLine,
    KeyDeclaration,
    LyricLine,
    SectionLabel,
    SongLine,
    TimeSignature,
    TimeSignatureLine,
)
from chordchart.tokenizer import ELLIPSIS, tokenize_bar, tokenize_bar_line

log = logging.getLogger(__name__)

CHORD_SYMBOL_RE = re.compile(
    r"^[A-Ga-g][#b♯♭]?"
    r"(?:maj|min|dim|aug|sus|add|omit|no|alt|m|M|/[0-9]+|[0-9]|[#b♯♭+\-°øΔ^()])*"
    r"(?:/[A-Ga-g][#b♯♭]?)?$"
)
SECTION_LABEL_RE = re.compile(r"^#([A-Za-z][\w\- ]*?)(?:\s+x\s*(\d+))?\s*$")
WHOLE_HEADER_RE = re.compile(
    r"^(?:(Verse \d+|Bridge|Tag|Chorus|Intro|Outro|Pre-Chorus):?|([A-Z]):)$", re.IGNORECASE
)
KEY_RE = re.compile(r"^(?:\{\s*key\s*:\s*|key\s*:?\s+)([A-G][#b]?m?)\s*\}?$", re.IGNORECASE)
TIME_SIGNATURE_RE = re.compile(r"^(\d{1,2})/(1|2|4|8|16|32)$")
LYRIC_POSITION_MARK = "_"

SECTION_ABBREVIATIONS: dict[str, str] = {
    "v": "Verse",
    "c": "Chorus",
    "b": "Bridge",
    "i": "Intro",
    "o": "Outro",
    "p": "Pre-Chorus",
    "t": "Tag",
}
_ABBREVIATION_RE = re.compile(r"^([vcbiopt])(\d*)$")


# ── Line classification ─────────────────────────────────────────────────────


def is_chord_symbol(word: str) -> bool:
    """True for a chord token as it may appear on a chord line ("Am7..", "%")."""
    stripped = word.replace(ELLIPSIS, ".").rstrip(".")
    if not stripped:
        return True
    return stripped.upper() in REST_SYMBOLS or bool(CHORD_SYMBOL_RE.match(stripped))


def is_chord_line(line: str) -> bool:
    """
    A line with bar lines, or one where every word is a chord, a rest or a
    duration dot. Tokens inside bar lines are not checked: an unknown chord
    there is still a beat of the bar.
    """
    if "|" in line:
        return True
    words = line.split()
    return bool(words) and all(is_chord_symbol(word) for word in words)


def is_chart_line(line: str) -> bool:
    """
    True for lines the bar-chart dialect understands on its own: headers,
    repeat directives and chord lines (optionally with a trailing repeat).
    Any line starting with a section header counts, as ``ChartParser``
    reads it as one whatever follows.
    """
    if SECTION_HEADER_RE.match(line) or REPEAT_LINE_RE.match(line):
        return True
    trailing = TRAILING_REPEAT_RE.match(line)
    if trailing and is_chord_line(trailing.group(1)):
        return True
    return is_chord_line(line)


def expand_label(name: str) -> str:
    """'v2' → 'Verse 2', 'c' → 'Chorus'; anything else is kept as written."""
    match = _ABBREVIATION_RE.match(name.strip())
    if not match:
        return name.strip()
    label = SECTION_ABBREVIATIONS[match.group(1)]
    return f"{label} {match.group(2)}" if match.group(2) else label


# ── Section expansion ───────────────────────────────────────────────────────


def _split_sections(lines: Sequence[SongLine]) -> tuple[list[SongLine], list[tuple[SectionLabel, list[SongLine]]]]:
    preamble: list[SongLine] = []
    sections: list[tuple[SectionLabel, list[SongLine]]] = []
    for line in lines:
        if isinstance(line, SectionLabel):
            sections.append((line, []))
        elif sections:
            sections[-1][1].append(line)
        else:
            preamble.append(line)
    return preamble, sections


def expand_sections(
    lines: Sequence[SongLine],
    copies: bool = True,
    multiplies: bool = True,
) -> list[SongLine]:
    """
    Expand section copies and multipliers into literal lines.

    A copy label takes the body of the most recent section with the same
    label. A multiplied section repeats its body ``multiply_times`` times.

    Args:
        lines:      Document lines as written.
        copies:     Fill in the bodies of copy labels.
        multiplies: Repeat multiplied bodies.

    Returns:
        A new list; the input is not modified.
    """
    preamble, sections = _split_sections(lines)
    bodies: dict[str, list[SongLine]] = {}
    expanded: list[SongLine] = list(preamble)
    for label, body in sections:
        if label.is_copy and copies:
            body = [line for line in bodies.get(label.label, []) if not isinstance(line, EmptyLine)] + body
        elif not label.is_copy:
            bodies[label.label] = body
        expanded.append(label)
        times = label.multiply_times if multiplies else 1
        expanded.extend(body * times)
    return expanded


# ── Parser ──────────────────────────────────────────────────────────────────


class ChordmarkParser:
    """
    Parses chordmark text into a Document.

    Line kinds, first match wins: empty line, ``#label`` (with optional
    ``x2``), whole-line chart header, key declaration, time signature,
    repeat shorthand, chord line, lyric line. Lyric lines mark chord
    positions with "_".
    """

    def __init__(self, max_repeat: int = ChartParser.MAX_REPEAT) -> None:
        self.max_repeat = max_repeat

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _chord_bars(self, text: str, time_signature: TimeSignature) -> list[Bar]:
        if "|" in text:
            token_bars = tokenize_bar_line(text)
        else:
            # Without bar lines every chord is a bar of its own.
            token_bars = [[token] for token in tokenize_bar(text)]
        return [Bar(tuple(tokens), time_signature) for tokens in token_bars]

    def _lyric_line(self, text: str) -> LyricLine:
        lyrics: list[str] = []
        positions: list[int] = []
        for char in text:
            if char == LYRIC_POSITION_MARK:
                positions.append(len(lyrics))
            else:
                lyrics.append(char)
        return LyricLine(lyrics="".join(lyrics), chord_positions=tuple(positions))

    def _mark_copies(self, lines: list[SongLine]) -> list[SongLine]:
        """Flag labels that repeat an earlier label and have no body."""
        seen: set[str] = set()
        marked: list[SongLine] = []
        for index, line in enumerate(lines):
            if isinstance(line, SectionLabel):
                body_empty = True
                for follower in lines[index + 1:]:
                    if isinstance(follower, SectionLabel):
                        break
                    if not isinstance(follower, EmptyLine):
                        body_empty = False
                        break
                if line.label in seen and body_empty:
                    line = SectionLabel(
                        label=line.label,
                        multiply_times=line.multiply_times,
                        is_copy=True,
                    )
                seen.add(line.label)
            marked.append(line)
        return marked

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def parse(self, text: str) -> Document:
        """
        Parse chordmark text.

        Args:
            text: Raw multi-line text.

        Returns:
            A Document with dialect "chordmark".
        """
        lines: list[SongLine] = []
        time_signature = DEFAULT_TIME_SIGNATURE
        last_chord_line: ChordLine | None = None

        for raw_line in text.splitlines():
            line = raw_line.rstrip()
            stripped = line.strip()

            if not stripped:
                lines.append(EmptyLine())
                continue

            if stripped.startswith("#"):
                label = SECTION_LABEL_RE.match(stripped)
                if label is None:
                    log.debug("Skipping comment line: %r", stripped)
                    continue
                times = clamp_repeat(int(label.group(2)), self.max_repeat) if label.group(2) else 1
                lines.append(SectionLabel(label=expand_label(label.group(1)), multiply_times=max(times, 1)))
                last_chord_line = None
                continue

            header = WHOLE_HEADER_RE.match(stripped)
            if header:
                lines.append(SectionLabel(label=header_label(header.group(1) or header.group(2))))
                last_chord_line = None
                continue

            key = KEY_RE.match(stripped)
            if key:
                lines.append(KeyDeclaration(key=key.group(1)))
                continue

            signature = TIME_SIGNATURE_RE.match(stripped)
            if signature:
                time_signature = TimeSignature(int(signature.group(1)), int(signature.group(2)))
                lines.append(TimeSignatureLine(time_signature))
                continue

            repeat = REPEAT_LINE_RE.match(stripped)
            if repeat:
                if last_chord_line is None:
                    log.debug("Ignoring repeat line with nothing to repeat: %r", stripped)
                    continue
                count = clamp_repeat(int(repeat.group(1)), self.max_repeat)
                if count > 1:
                    lines.append(
                        ChordLine(bars=last_chord_line.bars * (count - 1), time_signature=time_signature)
                    )
                continue

            trailing = TRAILING_REPEAT_RE.match(stripped)
            if trailing and is_chord_line(trailing.group(1)):
                count = clamp_repeat(int(trailing.group(2)), self.max_repeat)
                bars = self._chord_bars(trailing.group(1), time_signature)
                last_chord_line = ChordLine(bars=tuple(bars), time_signature=time_signature)
                lines.append(ChordLine(bars=tuple(bars) * count, time_signature=time_signature))
                continue

            if is_chord_line(stripped):
                bars = self._chord_bars(stripped, time_signature)
                last_chord_line = ChordLine(bars=tuple(bars), time_signature=time_signature)
                lines.append(last_chord_line)
                continue

            lines.append(self._lyric_line(line))

        return Document(lines=tuple(self._mark_copies(lines)), dialect="chordmark")


def parse_chordmark(text: str) -> Document:
    """Parse chordmark text with the default repeat limit."""
    return ChordmarkParser().parse(text)
