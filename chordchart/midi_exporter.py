"""MidiExporter: encodes chord events as a single-track Standard MIDI File."""

from __future__ import annotations

import io
import logging
from collections.abc import Sequence
from typing import cast

from midiutil import MIDIFile

from chordchart.chord_resolver import VOICINGS, ChordResolver
from chordchart.models import DEFAULT_TIME_SIGNATURE, ChordEvent, ChordLine, Document, TimeSignature
from chordchart.parser import ChartParseError, parse
from chordchart.timing import extract_events, total_beats

log = logging.getLogger(__name__)

# In midiutil Format 1 files track 0 is the conductor track; midiutil routes
# tempo and time signature there and shifts note tracks up by one.
TRACK_CHORDS = 0
CHANNEL_CHORDS = 0
MIDI_CLOCKS_PER_TICK = 24


class MidiExportError(ValueError):
    """Raised when a chart has nothing to play."""


class MidiExporter:
    """
    Writes chord events to a Standard MIDI File.

    Track layout (Format 1)
    -----------------------
    Conductor track: tempo and time signature at tick 0.
    "Chords" track: every chord as simultaneous notes at ``velocity``.

    Gaps between chords (rests, dotted remainders, unresolved chords,
    repeated bars and trailing silence) are filled with a single
    velocity-1 note on middle C, keeping the track as long as the chart
    without audible output.
    """

    DEFAULT_TEMPO = 60     # BPM; one beat per second
    DEFAULT_VELOCITY = 90  # MIDI velocity for chord notes (0-127)
    SILENT_VELOCITY = 1
    SILENT_PITCH = 60      # Middle C
    BEAT_LENGTH = 480      # Ticks per quarter note

    def __init__(
        self,
        tempo: int = DEFAULT_TEMPO,
        velocity: int = DEFAULT_VELOCITY,
        beat_length: int = BEAT_LENGTH,
    ) -> None:
        """
        Args:
            tempo:       Playback tempo in beats per minute.
            velocity:    MIDI note-on velocity for chord notes.
            beat_length: Ticks per quarter note in the file header.
        """
        self.tempo = tempo
        self.velocity = velocity
        self.beat_length = beat_length

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _add_silence(self, midi: MIDIFile, start: float, duration: float) -> None:
        midi.addNote(
            track=TRACK_CHORDS,
            channel=CHANNEL_CHORDS,
            pitch=self.SILENT_PITCH,
            time=start,
            duration=duration,
            volume=self.SILENT_VELOCITY,
        )

    def _build(
        self,
        events: Sequence[ChordEvent],
        total: float | None,
        time_signature: TimeSignature,
    ) -> MIDIFile:
        if not any(event.notes for event in events):
            raise MidiExportError("No chords found in chord chart - MIDI file would be empty")

        midi = MIDIFile(
            numTracks=1,
            removeDuplicates=False,
            deinterleave=False,
            adjust_origin=False,
            file_format=1,
            ticks_per_quarternote=self.beat_length,
        )
        midi.addTempo(TRACK_CHORDS, 0, self.tempo)
        midi.addTimeSignature(
            TRACK_CHORDS,
            0,
            time_signature.count,
            time_signature.value.bit_length() - 1,
            MIDI_CLOCKS_PER_TICK,
        )
        midi.addTrackName(TRACK_CHORDS, 0, "Chords")

        cursor = 0.0
        for event in sorted(events, key=lambda e: e.start_beat):
            if not event.notes:
                continue
            if event.start_beat > cursor:
                self._add_silence(midi, cursor, event.start_beat - cursor)
            for pitch in event.notes:
                midi.addNote(
                    track=TRACK_CHORDS,
                    channel=CHANNEL_CHORDS,
                    pitch=pitch,
                    time=event.start_beat,
                    duration=event.duration_beats,
                    volume=self.velocity,
                )
            cursor = max(cursor, event.end_beat)

        if total is not None and total > cursor:
            self._add_silence(midi, cursor, total - cursor)
        return midi

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def encode(
        self,
        events: Sequence[ChordEvent],
        total_beats: float | None = None,
        time_signature: TimeSignature = DEFAULT_TIME_SIGNATURE,
    ) -> bytes:
        """
        Encode events as Standard MIDI File bytes.

        Args:
            events:         Chord events, as from ``extract_events``.
            total_beats:    Length of the chart; trailing silence is padded
                            up to it.
            time_signature: Meter written at tick 0.

        Returns:
            The complete file contents.

        Raises:
            MidiExportError: If no event has any notes.
        """
        midi = self._build(events, total_beats, time_signature)
        buffer = io.BytesIO()
        midi.writeFile(buffer)
        return buffer.getvalue()

    def export(self, events: Sequence[ChordEvent], output_path: str, total_beats: float | None = None) -> None:
        """
        Write events to a MIDI file on disk.

        Raises:
            MidiExportError: If no event has any notes.
            OSError: If the output file cannot be opened for writing.
        """
        data = self.encode(events, total_beats)
        with open(output_path, "wb") as f:
            f.write(data)


def encode_midi(
    events: Sequence[ChordEvent],
    tempo: int = MidiExporter.DEFAULT_TEMPO,
    beat_length: int = MidiExporter.BEAT_LENGTH,
) -> bytes:
    """Encode events with the default velocity (see ``MidiExporter.encode``)."""
    return MidiExporter(tempo=tempo, beat_length=beat_length).encode(events)


def opening_time_signature(document: Document) -> TimeSignature:
    """Time signature of the first bar, 4/4 when there are no bars."""
    for line in document.lines:
        if isinstance(line, ChordLine) and line.bars:
            return line.bars[0].time_signature
    return DEFAULT_TIME_SIGNATURE


def chart_to_midi(
    text: str,
    tempo: int = MidiExporter.DEFAULT_TEMPO,
    voicing: str = "triad",
) -> bytes:
    """
    Parse chart text and encode it as MIDI in one step.

    Args:
        text:    Chart or chordmark source.
        tempo:   Beats per minute.
        voicing: Name of a voicing in ``VOICINGS``.

    Raises:
        MidiExportError: If the text has no sections or no playable chords.
    """
    try:
        document = cast(Document, parse(text, require_sections=True))
    except ChartParseError as exc:
        raise MidiExportError(str(exc)) from exc

    resolver = ChordResolver(VOICINGS[voicing]())
    events = extract_events(document, resolver)
    length = total_beats(document)
    log.info("Encoding %d chord events over %g beats at %d BPM", len(events), length, tempo)
    return MidiExporter(tempo=tempo).encode(events, length, opening_time_signature(document))
