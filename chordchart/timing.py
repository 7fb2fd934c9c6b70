"""Timing extractor: flattens a document into beat-positioned chord events."""

from __future__ import annotations

import bisect
import dataclasses
import logging
from collections.abc import Sequence

from chordchart.chord_resolver import ChordResolver, describe
from chordchart.chordmark import expand_sections
from chordchart.models import Bar, ChordEvent, ChordLine, Document

log = logging.getLogger(__name__)


class EventExtractor:
    """
    Walks the expanded document with a beat cursor and emits ChordEvents.

    Every chord token takes one nominal beat; a token with n duration dots
    sounds for ``1/(n+1)`` of it. Empty and repeated ("%") bars are silent
    for a whole bar. With ``fill_bars`` the cursor always lands on the next
    bar line, and a final undotted chord is held until it.
    """

    def __init__(self, resolver: ChordResolver | None = None, fill_bars: bool = True) -> None:
        self.resolver = resolver if resolver is not None else ChordResolver()
        self.fill_bars = fill_bars
        self._warned: set[str] = set()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _warn_once(self, symbol: str, message: str) -> None:
        if symbol not in self._warned:
            self._warned.add(symbol)
            log.warning(message, symbol)

    def _notes_for(self, symbol: str) -> tuple[int, ...]:
        chord = describe(symbol)
        if chord is None:
            self._warn_once(symbol, "Unknown chord %r, leaving it silent")
            return ()
        if not chord.recognized:
            self._warn_once(symbol, "Unrecognized chord quality in %r, playing the plain triad")
        return tuple(self.resolver.voicer.voice(chord))

    def _bar_events(self, bar: Bar, cursor: float, line_index: int) -> tuple[list[ChordEvent], float]:
        bar_start = cursor
        beats_per_bar = bar.time_signature.beats_per_bar
        if bar.is_empty or bar.is_repeated:
            return [], bar_start + beats_per_bar

        events: list[ChordEvent] = []
        held: ChordEvent | None = None
        for token in bar.chords:
            held = None
            if not token.is_rest:
                notes = self._notes_for(token.symbol)
                if notes:
                    event = ChordEvent(
                        chord_symbol=token.symbol,
                        notes=notes,
                        start_beat=cursor,
                        duration_beats=token.sounding_beats(),
                        line_index=line_index,
                    )
                    events.append(event)
                    if token.dots == 0:
                        held = event
            cursor += 1.0

        bar_end = bar_start + beats_per_bar
        if self.fill_bars and cursor < bar_end:
            if held is not None:
                events[-1] = dataclasses.replace(held, duration_beats=bar_end - held.start_beat)
            cursor = bar_end
        return events, cursor

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def extract(self, document: Document | None) -> list[ChordEvent]:
        """
        Flatten a document into events ordered by start beat.

        Args:
            document: Parsed document; None yields no events.

        Returns:
            A fresh list of events; ``line_index`` refers to the expanded
            document lines.
        """
        if document is None:
            return []
        events: list[ChordEvent] = []
        cursor = 0.0
        for line_index, line in enumerate(expand_sections(document.lines)):
            if not isinstance(line, ChordLine):
                continue
            for bar in line.bars:
                bar_events, cursor = self._bar_events(bar, cursor, line_index)
                events.extend(bar_events)
        log.debug("Extracted %d events over %g beats", len(events), cursor)
        return events

    def total_beats(self, document: Document | None) -> float:
        """Length of the whole timeline in beats, trailing silence included."""
        if document is None:
            return 0.0
        cursor = 0.0
        for line in expand_sections(document.lines):
            if isinstance(line, ChordLine):
                for bar in line.bars:
                    cursor = self._bar_events(bar, cursor, -1)[1]
        return cursor


def extract_events(
    document: Document | None,
    resolver: ChordResolver | None = None,
    fill_bars: bool = True,
) -> list[ChordEvent]:
    """Flatten ``document`` into chord events (see ``EventExtractor``)."""
    return EventExtractor(resolver, fill_bars).extract(document)


def total_beats(document: Document | None, fill_bars: bool = True) -> float:
    return EventExtractor(fill_bars=fill_bars).total_beats(document)


def start_beats(events: Sequence[ChordEvent]) -> list[float]:
    return [event.start_beat for event in events]


def event_at(
    events: Sequence[ChordEvent],
    beat: float,
    starts: Sequence[float] | None = None,
) -> ChordEvent | None:
    """
    The event sounding at ``beat``, or None during silence.

    ``events`` must be ordered by start beat, as ``extract_events`` returns
    them. An event covers ``[start_beat, end_beat)``. Callers polling the
    same list repeatedly pass its ``start_beats`` to keep each lookup
    logarithmic.
    """
    if starts is None:
        starts = start_beats(events)
    index = bisect.bisect_right(starts, beat) - 1
    if index < 0:
        return None
    event = events[index]
    return event if beat < event.end_beat else None


def events_from_line(events: Sequence[ChordEvent], line_index: int) -> list[ChordEvent]:
    """
    Events from the first one of ``line_index`` onwards, shifted so that
    the first starts at beat 0. Used to start playback mid-song.
    """
    for position, event in enumerate(events):
        if event.line_index >= line_index:
            offset = event.start_beat
            return [
                dataclasses.replace(later, start_beat=later.start_beat - offset)
                for later in events[position:]
            ]
    return []
