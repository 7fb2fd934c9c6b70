"""Data models shared by the parsers, renderers and timing extractor."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

REST_SYMBOLS: frozenset[str] = frozenset({"%", "NC", "N.C"})


@dataclass(frozen=True)
class ChordToken:
    """
    One chord occurrence inside a bar.

    Attributes:
        symbol: Chord symbol with its duration dots removed (e.g. "Am7", "%").
        dots:   Number of trailing duration dots. Each chord nominally lasts one
                beat; with n dots only the first ``1/(n+1)`` of it sounds.
    """

    symbol: str
    dots: int = 0

    @classmethod
    def from_text(cls, text: str) -> "ChordToken":
        """Build a token from raw text, counting only the trailing dots."""
        stripped = text.rstrip(".")
        return cls(symbol=stripped.strip(), dots=len(text) - len(stripped))

    @property
    def text(self) -> str:
        """The token as written in a chart, e.g. "Am.."."""
        return self.symbol + "." * self.dots

    @property
    def is_rest(self) -> bool:
        """True for "%", "NC"/"N.C." and tokens that were only dots."""
        return not self.symbol or self.symbol.upper() in REST_SYMBOLS

    def sounding_beats(self, beat: float = 1.0) -> float:
        """Audible part of the nominal beat: ``beat / (dots + 1)``."""
        return beat / (self.dots + 1)


@dataclass(frozen=True)
class TimeSignature:
    count: int = 4
    value: int = 4

    @property
    def beats_per_bar(self) -> int:
        return self.count

    def __str__(self) -> str:
        return f"{self.count}/{self.value}"


DEFAULT_TIME_SIGNATURE = TimeSignature()


@dataclass(frozen=True)
class Bar:
    """An ordered run of chord tokens between two bar lines."""

    chords: tuple[ChordToken, ...] = ()
    time_signature: TimeSignature = DEFAULT_TIME_SIGNATURE

    @property
    def is_empty(self) -> bool:
        return not self.chords

    @property
    def is_repeated(self) -> bool:
        """A bar holding a single bare "%" repeats the previous bar."""
        return (
            len(self.chords) == 1
            and self.chords[0].symbol == "%"
            and self.chords[0].dots == 0
        )


@dataclass(frozen=True)
class Section:
    label: str
    bars: tuple[Bar, ...]


@dataclass(frozen=True)
class ParsedChart:
    """Ordered sections produced by the chart parser; repeats already expanded."""

    sections: tuple[Section, ...] = ()

    @property
    def bar_count(self) -> int:
        return sum(len(section.bars) for section in self.sections)


# ── Document line variants ──────────────────────────────────────────────────


@dataclass(frozen=True)
class EmptyLine:
    pass


@dataclass(frozen=True)
class ChordLine:
    bars: tuple[Bar, ...]
    time_signature: TimeSignature = DEFAULT_TIME_SIGNATURE

    @property
    def chords(self) -> list[ChordToken]:
        """Every token of the line, bar after bar."""
        return [token for bar in self.bars for token in bar.chords]

    @property
    def symbols(self) -> list[str]:
        """Symbols of the sounding chords only, used for lyric alignment."""
        return [token.symbol for token in self.chords if not token.is_rest]


@dataclass(frozen=True)
class LyricLine:
    """
    A line of lyrics and the character offsets at which chords apply.

    Offsets must be non-decreasing and lie within ``0..len(lyrics)``; an offset
    equal to ``len(lyrics)`` anchors a chord after the last character.
    """

    lyrics: str
    chord_positions: tuple[int, ...] = ()

    def __post_init__(self) -> None:
        previous = 0
        for position in self.chord_positions:
            if position < previous or position > len(self.lyrics):
                raise ValueError(
                    f"Invalid chord positions {self.chord_positions} for lyric line "
                    f"of length {len(self.lyrics)}."
                )
            previous = position


@dataclass(frozen=True)
class SectionLabel:
    """
    Attributes:
        label:          Display label, e.g. "Verse 1", "Chorus", "A".
        multiply_times: Play the section body this many times ("#c x2").
        is_copy:        The label has no body and reuses the last section of the
                        same name.
        implicit:       Synthesized "Main" label for unlabeled bars; never
                        written back out.
    """

    label: str
    multiply_times: int = 1
    is_copy: bool = False
    implicit: bool = False


@dataclass(frozen=True)
class KeyDeclaration:
    key: str


@dataclass(frozen=True)
class TimeSignatureLine:
    time_signature: TimeSignature


SongLine = Union[EmptyLine, ChordLine, LyricLine, SectionLabel, KeyDeclaration, TimeSignatureLine]

IMPLICIT_SECTION = "Main"


@dataclass(frozen=True)
class Document:
    """
    A parsed chart in line-oriented form, common to both input dialects.

    ``lines`` holds the lines as written; section copies and multipliers are
    only recorded on their labels (see ``chordchart.chordmark.expand_sections``).
    """

    lines: tuple[SongLine, ...] = ()
    dialect: str = "chordmark"

    def sections(self) -> ParsedChart:
        """Project the document onto sections of bars, expanding repeats."""
        from chordchart.chordmark import expand_sections

        sections: list[Section] = []
        label = IMPLICIT_SECTION
        bars: list[Bar] = []
        for line in expand_sections(self.lines):
            if isinstance(line, SectionLabel):
                if bars:
                    sections.append(Section(label=label, bars=tuple(bars)))
                label = line.label
                bars = []
            elif isinstance(line, ChordLine):
                bars.extend(line.bars)
        if bars:
            sections.append(Section(label=label, bars=tuple(bars)))
        return ParsedChart(sections=tuple(sections))


@dataclass(frozen=True)
class ChordEvent:
    """
    A resolved chord occurrence on the beat timeline.

    Attributes:
        chord_symbol:   Symbol as written (without duration dots).
        notes:          MIDI note numbers, lowest first.
        start_beat:     Beat offset from the start of the chart.
        duration_beats: Sounding length in beats.
        line_index:     Index of the chord line (in the expanded document)
                        the event came from.
    """

    chord_symbol: str
    notes: tuple[int, ...]
    start_beat: float
    duration_beats: float
    line_index: int = field(default=-1, compare=False)

    @property
    def end_beat(self) -> float:
        return self.start_beat + self.duration_beats
