"""Chord chart parsing, rendering, timing and MIDI export."""

from chordchart.chord_resolver import resolve
from chordchart.midi_exporter import MidiExportError, encode_midi
from chordchart.parser import ChartParseError, parse
from chordchart.renderer import render
from chordchart.serializer import serialize
from chordchart.timing import event_at, extract_events

__version__ = "0.1.0"

__all__ = [
    "ChartParseError",
    "MidiExportError",
    "encode_midi",
    "event_at",
    "extract_events",
    "parse",
    "render",
    "resolve",
    "serialize",
]
